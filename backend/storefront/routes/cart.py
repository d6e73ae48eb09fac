# Overview: Flask API routes for the shopper's cart.

# backend/storefront/routes/cart.py
"""
Cart routes.

SECURITY: All routes require authentication and USE_CART.
Line ownership is checked in the service against the loaded row.
"""
from decimal import Decimal

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..errors import ServiceError
from ..services import cart_service
from ..validation import validate_cart_add, validate_cart_update
from ..decorators import require_auth, require_permission


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _tax_rate() -> Decimal:
    return Decimal(str(current_app.config.get("TAX_RATE", "1.0")))


@cart_bp.get("")
@require_auth
@require_permission("USE_CART")
def get_cart_route():
    """Active cart lines with subtotal, tax and total (cents)."""
    try:
        cart = cart_service.get_active(db.session, g.auth, tax_rate=_tax_rate())
    except ServiceError as e:
        return e.to_dict(), e.status_code
    return cart, 200


@cart_bp.post("/add")
@require_auth
@require_permission("USE_CART")
def add_to_cart_route():
    payload = request.get_json(silent=True) or {}

    try:
        data = validate_cart_add(payload)
        line = cart_service.add_item(
            db.session,
            g.auth,
            product_id=data["product_id"],
            quantity=data["quantity"],
            saved_for_later=data["saved_for_later"],
        )
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return {"item": line.to_dict()}, 201


@cart_bp.put("/<int:line_id>")
@require_auth
@require_permission("USE_CART")
def update_cart_line_route(line_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        data = validate_cart_update(payload)
        line = cart_service.update_quantity(db.session, g.auth, line_id, data["quantity"])
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return {"item": line.to_dict()}, 200


@cart_bp.delete("/<int:line_id>")
@require_auth
@require_permission("USE_CART")
def remove_cart_line_route(line_id: int):
    try:
        cart_service.remove(db.session, g.auth, line_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    return {"message": "Item removed from cart"}, 200


@cart_bp.post("/clear")
@require_auth
@require_permission("USE_CART")
def clear_cart_route():
    removed = cart_service.clear(db.session, g.auth)
    return {"message": "Cart cleared", "removed": removed}, 200


@cart_bp.get("/saved")
@require_auth
@require_permission("USE_CART")
def saved_items_route():
    return {"items": cart_service.get_saved(db.session, g.auth)}, 200


@cart_bp.post("/<int:line_id>/save")
@require_auth
@require_permission("USE_CART")
def save_for_later_route(line_id: int):
    try:
        line = cart_service.save(db.session, g.auth, line_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    return {"item": line.to_dict()}, 200


@cart_bp.post("/<int:line_id>/move")
@require_auth
@require_permission("USE_CART")
def move_to_cart_route(line_id: int):
    try:
        line = cart_service.restore(db.session, g.auth, line_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    return {"item": line.to_dict()}, 200
