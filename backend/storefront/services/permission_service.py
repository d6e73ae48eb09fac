# Overview: Request authorization context resolved once per request.

"""
Authorization context

Services never look at role strings or request globals. The route layer
resolves the caller's capabilities once (require_auth) and hands the
resulting AuthContext to every service call, so tests can build one directly.

DESIGN PRINCIPLES:
- Fail closed: unknown roles get an empty permission set
- Ownership checks compare loaded rows against ctx.user_id, never request input
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import ForbiddenError
from ..permissions import get_role_permissions


PRIVILEGED_PERMISSION = "MANAGE_ORDERS"


@dataclass(frozen=True)
class AuthContext:
    user_id: int
    role: str
    permissions: frozenset[str] = field(default_factory=frozenset)
    ip_address: str | None = None
    user_agent: str | None = None

    def can(self, permission_code: str) -> bool:
        return permission_code in self.permissions

    @property
    def is_privileged(self) -> bool:
        """Administrative actor (ADMIN / SUPER_ADMIN grants)."""
        return self.can(PRIVILEGED_PERMISSION)

    def require(self, permission_code: str) -> None:
        if not self.can(permission_code):
            raise ForbiddenError(
                "Permission denied",
                details={"required_permission": permission_code},
            )

    def owns(self, owner_user_id: int | None) -> bool:
        return owner_user_id is not None and owner_user_id == self.user_id


def build_auth_context(
    user,
    *,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AuthContext:
    """Resolve a user's static role grants into an AuthContext."""
    return AuthContext(
        user_id=user.id,
        role=user.role,
        permissions=get_role_permissions(user.role),
        ip_address=ip_address,
        user_agent=user_agent,
    )


def get_user_permissions(user) -> set[str]:
    """Get all permission codes for a user."""
    return set(get_role_permissions(user.role))
