# Overview: Static role -> permission grants.

# Role administration is owned outside this service; these grants are the
# whole authorization model the order core relies on.

SHOPPER_PERMISSIONS = [
    "USE_CART",
    "PLACE_ORDER",
]

STAFF_PERMISSIONS = SHOPPER_PERMISSIONS + [
    "VIEW_ALL_ORDERS",
    "MANAGE_ORDERS",
    "VIEW_ORDER_STATS",
    "VIEW_INVENTORY",
    "RECEIVE_INVENTORY",
    "ADJUST_INVENTORY",
]

DEFAULT_ROLE_PERMISSIONS = {
    "SUPER_ADMIN": list(STAFF_PERMISSIONS),
    "ADMIN": list(STAFF_PERMISSIONS),
    "USER": list(SHOPPER_PERMISSIONS),
}
