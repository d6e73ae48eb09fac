# Overview: Flask API routes for checkout, order status and order reporting.

# backend/storefront/routes/orders.py
"""
Order routes.

SECURITY: All routes require authentication.
- Checkout requires PLACE_ORDER
- Listing all orders requires VIEW_ALL_ORDERS, stats require VIEW_ORDER_STATS
- Status changes require MANAGE_ORDERS
- Reading or cancelling a single order is allowed for its owner or staff

Time semantics:
- created_from / created_to accept ISO-8601 datetimes with Z/offsets and are
  inclusive.
"""
from decimal import Decimal

from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..errors import ServiceError
from ..services import order_service, reporting_service
from ..time_utils import parse_datetime_arg
from ..validation import validate_order_create, validate_order_status, parse_int_arg
from ..decorators import require_auth, require_permission


orders_bp = Blueprint("orders", __name__, url_prefix="/api")


def _parse_datetime_arg(name: str):
    return parse_datetime_arg(name, request.args.get(name))


def _page_body(page: dict) -> dict:
    return {
        "orders": [o.to_dict() for o in page["items"]],
        "total": page["total"],
        "limit": page["limit"],
        "offset": page["offset"],
    }


@orders_bp.post("/orders")
@require_auth
@require_permission("PLACE_ORDER")
def create_order_route():
    """
    Check out the caller's active cart.

    Returns 400 (InvalidState) when there is nothing to buy.
    """
    payload = request.get_json(silent=True) or {}
    cfg = current_app.config

    try:
        data = validate_order_create(payload)
        order = order_service.create_order(
            db.session,
            g.auth,
            delivery_address=data["delivery_address"],
            delivery_phone=data["delivery_phone"],
            notes=data.get("notes"),
            tax_rate=Decimal(str(cfg.get("TAX_RATE", "1.0"))),
            warehouse_id=int(cfg.get("DEFAULT_WAREHOUSE_ID", 1)),
            order_number_prefix=cfg.get("ORDER_NUMBER_PREFIX", "ORD"),
            debit_stock=bool(cfg.get("DEBIT_STOCK_ON_ORDER", False)),
        )
    except ServiceError as e:
        return e.to_dict(), e.status_code

    order = reporting_service.get_order(db.session, g.auth, order.id)
    return {"order": reporting_service.order_detail(order)}, 201


@orders_bp.get("/orders")
@require_auth
@require_permission("VIEW_ALL_ORDERS")
def list_orders_route():
    try:
        user_id = request.args.get("user_id")
        page = reporting_service.list_orders(
            db.session,
            g.auth,
            status=request.args.get("status") or None,
            user_id=parse_int_arg("user_id", user_id, 0) if user_id else None,
            created_from=_parse_datetime_arg("created_from"),
            created_to=_parse_datetime_arg("created_to"),
            limit=parse_int_arg("limit", request.args.get("limit"), 50),
            offset=parse_int_arg("offset", request.args.get("offset"), 0),
        )
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return _page_body(page), 200


@orders_bp.get("/orders/stats")
@require_auth
@require_permission("VIEW_ORDER_STATS")
def order_stats_route():
    return {"stats": reporting_service.get_order_stats(db.session, g.auth)}, 200


@orders_bp.get("/orders/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = reporting_service.get_order(db.session, g.auth, order_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    return {"order": reporting_service.order_detail(order)}, 200


@orders_bp.post("/orders/<int:order_id>/status")
@require_auth
@require_permission("MANAGE_ORDERS")
def update_order_status_route(order_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        data = validate_order_status(payload)
        order = order_service.update_status(db.session, g.auth, order_id, data["status"])
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return {"order": order.to_dict()}, 200


@orders_bp.post("/orders/<int:order_id>/cancel")
@require_auth
def cancel_order_route(order_id: int):
    try:
        order = order_service.cancel_order(db.session, g.auth, order_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return {"order": order.to_dict()}, 200


@orders_bp.get("/my-orders")
@require_auth
def my_orders_route():
    try:
        page = reporting_service.list_user_orders(
            db.session,
            g.auth,
            limit=parse_int_arg("limit", request.args.get("limit"), 50),
            offset=parse_int_arg("offset", request.args.get("offset"), 0),
        )
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return _page_body(page), 200
