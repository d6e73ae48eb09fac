# Overview: Read-side order queries and aggregates.

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..errors import NotFoundError, ValidationError
from ..models import Order, OrderLine
from .order_service import OrderStatus, VALID_STATUSES, normalize_status
from .permission_service import AuthContext

MAX_LIMIT = 200


def _check_paging(limit: int, offset: int) -> tuple[int, int]:
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    if offset < 0:
        raise ValidationError("offset must be >= 0")
    return min(limit, MAX_LIMIT), offset


def order_detail(order: Order) -> dict:
    """Order with joined lines and user identity."""
    data = order.to_dict()
    user = order.user
    data["user"] = {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
    } if user else None

    lines = []
    for line in order.lines:
        row = line.to_dict()
        row["product_name"] = line.product.name if line.product else None
        row["sku"] = line.product.sku if line.product else None
        lines.append(row)
    data["items"] = lines
    return data


def list_orders(
    session: Session,
    ctx: AuthContext,
    *,
    status: str | None = None,
    user_id: int | None = None,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    """All orders, filtered (requires VIEW_ALL_ORDERS)."""
    ctx.require("VIEW_ALL_ORDERS")
    limit, offset = _check_paging(limit, offset)

    q = session.query(Order)
    if status:
        q = q.filter(Order.status == normalize_status(status))
    if user_id is not None:
        q = q.filter(Order.user_id == user_id)
    if created_from is not None:
        q = q.filter(Order.created_at >= created_from)
    if created_to is not None:
        q = q.filter(Order.created_at <= created_to)

    total = q.count()
    rows = (
        q.options(joinedload(Order.user))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {"items": rows, "total": total, "limit": limit, "offset": offset}


def list_user_orders(session: Session, ctx: AuthContext, *, limit: int = 50, offset: int = 0) -> dict:
    limit, offset = _check_paging(limit, offset)

    q = session.query(Order).filter(Order.user_id == ctx.user_id)
    total = q.count()
    rows = (
        q.order_by(Order.created_at.desc(), Order.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {"items": rows, "total": total, "limit": limit, "offset": offset}


def get_order(session: Session, ctx: AuthContext, order_id: int) -> Order:
    """
    Load one order for the caller.

    A foreign order is reported exactly like a missing one so callers cannot
    probe for other users' order ids.
    """
    order = (
        session.query(Order)
        .options(
            joinedload(Order.user),
            joinedload(Order.lines).joinedload(OrderLine.product),
        )
        .filter(Order.id == order_id)
        .first()
    )
    if order is None:
        raise NotFoundError("Order not found")
    if not (ctx.owns(order.user_id) or ctx.can("VIEW_ALL_ORDERS")):
        raise NotFoundError("Order not found")
    return order


def _average_cents(total, count) -> int:
    if not count:
        return 0
    return int((Decimal(int(total)) / int(count)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def get_order_stats(session: Session, ctx: AuthContext) -> dict:
    """
    Counts per status plus revenue figures.

    total_revenue_cents and average_order_value_cents cover every order;
    the billable_* pair leaves cancelled orders out.
    """
    ctx.require("VIEW_ORDER_STATS")

    by_status = {status: 0 for status in VALID_STATUSES}
    rows = session.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
    for status, count in rows:
        by_status[status] = int(count)

    revenue_query = session.query(
        func.count(Order.id),
        func.coalesce(func.sum(Order.total_amount_cents), 0),
    )
    order_count, revenue = revenue_query.one()
    billable_count, billable_revenue = (
        revenue_query.filter(Order.status != OrderStatus.CANCELLED).one()
    )

    return {
        "total_orders": sum(by_status.values()),
        "by_status": by_status,
        "pending_orders": by_status[OrderStatus.PENDING],
        "delivered_orders": by_status[OrderStatus.DELIVERED],
        "cancelled_orders": by_status[OrderStatus.CANCELLED],
        "total_revenue_cents": int(revenue),
        "average_order_value_cents": _average_cents(revenue, order_count),
        "billable_revenue_cents": int(billable_revenue),
        "billable_average_order_value_cents": _average_cents(billable_revenue, billable_count),
    }
