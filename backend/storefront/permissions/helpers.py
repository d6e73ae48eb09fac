# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_category(category):
    """Get all permissions in a category."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[3] == category]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def get_role_permissions(role: str | None) -> frozenset[str]:
    """Permission codes granted to a role; unknown roles get nothing."""
    if not role:
        return frozenset()
    return frozenset(DEFAULT_ROLE_PERMISSIONS.get(role.upper(), ()))


def is_known_role(role: str | None) -> bool:
    return bool(role) and role.upper() in DEFAULT_ROLE_PERMISSIONS
