# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CART = "CART"
    ORDERS = "ORDERS"
    INVENTORY = "INVENTORY"
