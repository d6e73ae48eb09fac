# backend/storefront/routes/inventory.py
"""
Inventory management routes.

SECURITY: All routes require authentication.
- View operations require VIEW_INVENTORY permission
- add-stock requires RECEIVE_INVENTORY permission
- adjust-stock and set-threshold require ADJUST_INVENTORY permission
"""
from flask import Blueprint, request, current_app, g

from ..extensions import db
from ..errors import ServiceError
from ..services import inventory_service
from ..validation import (
    validate_add_stock,
    validate_adjust_stock,
    validate_threshold,
    parse_int_arg,
    parse_bool_arg,
)
from ..decorators import require_auth, require_permission


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/product/<int:product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def product_inventory_route(product_id: int):
    try:
        records = inventory_service.get_by_product(db.session, product_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    return {"inventory": [r.to_dict() for r in records]}, 200


@inventory_bp.get("/warehouse/<int:warehouse_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def warehouse_inventory_route(warehouse_id: int):
    try:
        records = inventory_service.get_by_warehouse(
            db.session,
            warehouse_id,
            low_stock_only=parse_bool_arg(request.args.get("low_stock_only")),
        )
    except ServiceError as e:
        return e.to_dict(), e.status_code
    return {"inventory": [r.to_dict() for r in records]}, 200


@inventory_bp.get("/warehouse/<int:warehouse_id>/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_route(warehouse_id: int):
    try:
        records = inventory_service.get_low_stock(db.session, warehouse_id)
    except ServiceError as e:
        return e.to_dict(), e.status_code
    return {"inventory": [r.to_dict() for r in records]}, 200


@inventory_bp.post("/product/<int:product_id>/add-stock")
@require_auth
@require_permission("RECEIVE_INVENTORY")
def add_stock_route(product_id: int):
    """Receive stock into a warehouse. Body: {warehouse_id, quantity>0, notes?}"""
    payload = request.get_json(silent=True) or {}

    try:
        data = validate_add_stock(payload)
        change = inventory_service.add_stock(
            db.session,
            g.auth,
            product_id=product_id,
            warehouse_id=data["warehouse_id"],
            quantity=data["quantity"],
            notes=data.get("notes"),
        )
    except ServiceError as e:
        return e.to_dict(), e.status_code

    current_app.logger.info(
        "Stock received: product=%s warehouse=%s qty=%s by user %s",
        product_id, data["warehouse_id"], data["quantity"], g.auth.user_id,
    )
    return change.to_dict(), 201


@inventory_bp.post("/product/<int:product_id>/adjust-stock")
@require_auth
@require_permission("ADJUST_INVENTORY")
def adjust_stock_route(product_id: int):
    """
    Signed manual adjustment. Body: {warehouse_id, quantity (non-zero), notes?}

    The resulting quantity is clamped at zero.
    """
    payload = request.get_json(silent=True) or {}

    try:
        data = validate_adjust_stock(payload)
        change = inventory_service.adjust_stock(
            db.session,
            g.auth,
            product_id=product_id,
            warehouse_id=data["warehouse_id"],
            delta=data["quantity"],
            notes=data.get("notes"),
        )
    except ServiceError as e:
        return e.to_dict(), e.status_code

    current_app.logger.info(
        "Stock adjusted: product=%s warehouse=%s delta=%s by user %s",
        product_id, data["warehouse_id"], data["quantity"], g.auth.user_id,
    )
    return change.to_dict(), 200


@inventory_bp.post("/product/<int:product_id>/set-threshold")
@require_auth
@require_permission("ADJUST_INVENTORY")
def set_threshold_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        data = validate_threshold(payload)
        record = inventory_service.set_threshold(
            db.session,
            g.auth,
            product_id=product_id,
            warehouse_id=data["warehouse_id"],
            threshold=data["threshold"],
        )
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return {"inventory": record.to_dict()}, 200


@inventory_bp.get("/product/<int:product_id>/movements")
@require_auth
@require_permission("VIEW_INVENTORY")
def movements_route(product_id: int):
    try:
        warehouse_id = request.args.get("warehouse_id")
        page = inventory_service.get_movements(
            db.session,
            product_id,
            page=parse_int_arg("page", request.args.get("page"), 1),
            per_page=parse_int_arg(
                "per_page",
                request.args.get("per_page"),
                int(current_app.config.get("MOVEMENTS_PER_PAGE", 50)),
            ),
            warehouse_id=parse_int_arg("warehouse_id", warehouse_id, 0) if warehouse_id else None,
        )
    except ServiceError as e:
        return e.to_dict(), e.status_code

    return {
        "movements": [m.to_dict() for m in page["items"]],
        "page": page["page"],
        "per_page": page["per_page"],
        "total": page["total"],
    }, 200


@inventory_bp.get("/stats")
@require_auth
@require_permission("VIEW_INVENTORY")
def inventory_stats_route():
    return {"stats": inventory_service.get_stats(db.session)}, 200
