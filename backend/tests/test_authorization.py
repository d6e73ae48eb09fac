"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Shopper role denied staff operations (403)
- Login / logout / me round trip
- Role grants resolve to the expected capability sets
"""

import pytest

from storefront.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    get_all_permission_codes,
    get_permissions_by_category,
    get_role_permissions,
    validate_permission_code,
)
from storefront.services.permission_service import AuthContext, build_auth_context
from storefront.errors import ForbiddenError
from conftest import TEST_PASSWORD, auth_headers


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/cart"),
            ("POST", "/api/cart/add"),
            ("PUT", "/api/cart/1"),
            ("POST", "/api/orders"),
            ("GET", "/api/orders"),
            ("GET", "/api/orders/1"),
            ("POST", "/api/orders/1/status"),
            ("POST", "/api/orders/1/cancel"),
            ("GET", "/api/my-orders"),
            ("GET", "/api/inventory/stats"),
            ("POST", "/api/inventory/product/1/add-stock"),
            ("GET", "/api/auth/me"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json()["error"] == "Unauthorized"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/cart", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401


# =============================================================================
# SHOPPER DENIED STAFF OPERATIONS - 403
# =============================================================================


class TestShopperDeniedStaff:
    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/orders"),
            ("GET", "/api/orders/stats"),
            ("POST", "/api/orders/1/status"),
            ("GET", "/api/inventory/stats"),
            ("GET", "/api/inventory/product/1"),
            ("POST", "/api/inventory/product/1/add-stock"),
            ("POST", "/api/inventory/product/1/adjust-stock"),
            ("POST", "/api/inventory/product/1/set-threshold"),
        ],
    )
    def test_forbidden(self, client, shopper_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=shopper_headers, json={})
        assert resp.status_code == 403
        body = resp.get_json()
        assert body["error"] == "Forbidden"
        assert "required_permission" in body["details"]


class TestSessions:
    def test_login_me_logout(self, client, shopper):
        login = client.post("/api/auth/login", json={"email": "SHOPPER@example.com", "password": TEST_PASSWORD})
        assert login.status_code == 200
        token = login.get_json()["token"]
        assert "PLACE_ORDER" in login.get_json()["permissions"]

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.get_json()["user"]["email"] == "shopper@example.com"

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_bad_password(self, client, shopper):
        resp = client.post("/api/auth/login", json={"email": "shopper@example.com", "password": "wrong"})
        assert resp.status_code == 401

    def test_deactivated_user_token_rejected(self, client, db_session, shopper, shopper_headers):
        shopper.is_active = False
        db_session.commit()

        assert client.get("/api/cart", headers=shopper_headers).status_code == 401


class TestAuthContext:
    def test_role_grants(self):
        assert get_role_permissions("user") == frozenset({"USE_CART", "PLACE_ORDER"})
        assert "MANAGE_ORDERS" in get_role_permissions("ADMIN")
        assert get_role_permissions("SUPER_ADMIN") == get_role_permissions("ADMIN")
        assert get_role_permissions("GHOST") == frozenset()

    def test_privilege_and_ownership(self, admin, shopper):
        admin_ctx = build_auth_context(admin)
        shopper_ctx = build_auth_context(shopper)

        assert admin_ctx.is_privileged
        assert not shopper_ctx.is_privileged
        assert shopper_ctx.owns(shopper.id)
        assert not shopper_ctx.owns(admin.id)
        assert not shopper_ctx.owns(None)

    def test_every_granted_code_is_defined(self):
        known = set(get_all_permission_codes())
        for role in DEFAULT_ROLE_PERMISSIONS:
            assert get_role_permissions(role) <= known
        assert validate_permission_code("ADJUST_INVENTORY")
        assert not validate_permission_code("DELETE_EVERYTHING")
        assert {p[0] for p in get_permissions_by_category("CART")} == {"USE_CART"}

    def test_require_raises_with_code(self):
        ctx = AuthContext(user_id=1, role="USER", permissions=frozenset())
        with pytest.raises(ForbiddenError) as exc:
            ctx.require("ADJUST_INVENTORY")
        assert exc.value.details == {"required_permission": "ADJUST_INVENTORY"}
