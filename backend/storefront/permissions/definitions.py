# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CART --

CART_PERMISSIONS = [
    (
        "USE_CART",
        "Use Cart",
        "Add, update, park and remove own cart lines",
        PermissionCategory.CART,
    ),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "PLACE_ORDER",
        "Place Order",
        "Check out own cart and cancel own orders",
        PermissionCategory.ORDERS,
    ),
    (
        "VIEW_ALL_ORDERS",
        "View All Orders",
        "List and read any customer's orders",
        PermissionCategory.ORDERS,
    ),
    (
        "MANAGE_ORDERS",
        "Manage Orders",
        "Change order status and cancel any order",
        PermissionCategory.ORDERS,
    ),
    (
        "VIEW_ORDER_STATS",
        "View Order Stats",
        "View order counts and revenue aggregates",
        PermissionCategory.ORDERS,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock levels, movements and low-stock reports",
        PermissionCategory.INVENTORY,
    ),
    (
        "RECEIVE_INVENTORY",
        "Receive Inventory",
        "Record RECEIVED stock movements",
        PermissionCategory.INVENTORY,
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Record manual stock adjustments and low-stock thresholds",
        PermissionCategory.INVENTORY,
    ),
]


PERMISSION_DEFINITIONS = CART_PERMISSIONS + ORDER_PERMISSIONS + INVENTORY_PERMISSIONS
