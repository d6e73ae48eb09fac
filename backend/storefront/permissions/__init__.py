# Overview: Permission system package.
# Re-exports all public APIs for convenient imports.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CART_PERMISSIONS,
    ORDER_PERMISSIONS,
    INVENTORY_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    validate_permission_code,
    get_role_permissions,
    is_known_role,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CART_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "validate_permission_code",
    "get_role_permissions",
    "is_known_role",
]
