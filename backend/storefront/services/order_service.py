# Overview: Order lifecycle: checkout, status changes and cancellation.

"""
Order Lifecycle Invariants (authoritative)

States:
    PENDING -> CONFIRMED -> PACKED -> SHIPPED -> DELIVERED
    CANCELLED is reachable from any non-terminal state.
    PROCESSING is a legacy state, accepted on input, not on the forward path.
    DELIVERED and CANCELLED are terminal.

Rules:
- create_order: cart lines -> order header + lines + cart clear, one transaction.
  Unit prices are snapshotted from the product at this instant.
  Stock is only debited when DEBIT_STOCK_ON_ORDER is on.
- update_status: privileged only. Any recognised status may be set from any
  non-terminal state; there is no transition graph beyond the terminal guard.
  A move to CANCELLED goes through cancel_order so stock is always restored.
- cancel_order: owner or privileged. Every line's quantity goes back to its
  warehouse with an ORDER_RESTORE movement in the same transaction as the
  status change.
- Audit records are written after commit and never fail the operation.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import (
    EmptyCartError,
    ForbiddenError,
    InvalidStateError,
    InvalidStatusError,
    NotFoundError,
    ValidationError,
)
from ..models import CartLine, Order, OrderLine, Warehouse
from .audit_service import log_audit_action
from .cart_service import compute_tax_cents, get_active_lines
from .concurrency import CONCURRENCY_ERRORS, begin_write, lock_for_update, run_with_retry
from .inventory_service import debit_order_stock, restore_order_stock
from .permission_service import AuthContext
from .sequence_service import next_order_number

logger = logging.getLogger(__name__)


class OrderStatus:
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    PROCESSING = "PROCESSING"


VALID_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.PROCESSING,
)

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

ENTITY_ORDER = "order"


def normalize_status(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidStatusError("Status is required", details={"valid_statuses": list(VALID_STATUSES)})
    status = value.strip().upper()
    if status not in VALID_STATUSES:
        raise InvalidStatusError(
            f"Invalid status '{value}'",
            details={"valid_statuses": list(VALID_STATUSES)},
        )
    return status


def _lock_order(session: Session, order_id: int) -> Order:
    order = (
        lock_for_update(session.query(Order).filter_by(id=order_id))
        .populate_existing()
        .first()
    )
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _audit(session: Session, ctx: AuthContext, action: str, order: Order, old_values=None, new_values=None) -> None:
    log_audit_action(
        session,
        user_id=ctx.user_id,
        action=action,
        entity_type=ENTITY_ORDER,
        entity_id=order.id,
        old_values=old_values,
        new_values=new_values,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
    )


def _require_text(name: str, value, max_len: int) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    value = value.strip()
    if len(value) > max_len:
        raise ValidationError(f"{name} must be at most {max_len} characters")
    return value


def create_order(
    session: Session,
    ctx: AuthContext,
    *,
    delivery_address: str,
    delivery_phone: str,
    notes: str | None = None,
    tax_rate: Decimal = Decimal("1.0"),
    warehouse_id: int = 1,
    order_number_prefix: str = "ORD",
    debit_stock: bool = False,
) -> Order:
    """
    Turn the caller's active cart into an order.

    Only active lines whose product is still active become order lines, but
    the whole active cart is emptied. Saved lines stay. Raises EmptyCartError
    when nothing is left to buy.
    """
    ctx.require("PLACE_ORDER")
    delivery_address = _require_text("delivery_address", delivery_address, 2000)
    delivery_phone = _require_text("delivery_phone", delivery_phone, 32)
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string")

    def _op():
        begin_write(session)

        cart_lines = [
            line for line in get_active_lines(session, ctx.user_id)
            if line.product.is_active
        ]
        if not cart_lines:
            raise EmptyCartError("Cart is empty")

        if session.get(Warehouse, warehouse_id) is None:
            raise NotFoundError("Fulfillment warehouse not found")

        subtotal = sum(line.product.price_cents * line.quantity for line in cart_lines)
        tax = compute_tax_cents(subtotal, tax_rate)

        order = Order(
            user_id=ctx.user_id,
            order_number=next_order_number(session, prefix=order_number_prefix),
            status=OrderStatus.PENDING,
            subtotal_cents=subtotal,
            tax_amount_cents=tax,
            total_amount_cents=subtotal + tax,
            shipping_address=delivery_address,
            delivery_phone=delivery_phone,
            notes=notes or None,
        )
        session.add(order)
        session.flush()

        order_lines = []
        for line in cart_lines:
            unit_price = line.product.price_cents
            order_line = OrderLine(
                order_id=order.id,
                product_id=line.product_id,
                warehouse_id=warehouse_id,
                quantity=line.quantity,
                unit_price_cents=unit_price,
                total_price_cents=unit_price * line.quantity,
            )
            session.add(order_line)
            order_lines.append(order_line)
        session.flush()

        if debit_stock:
            debit_order_stock(session, order=order, lines=order_lines, actor_user_id=ctx.user_id)

        # The whole active cart is consumed; inactive-product lines are dropped too
        session.query(CartLine).filter_by(
            user_id=ctx.user_id,
            saved_for_later=False,
        ).delete(synchronize_session=False)

        session.commit()
        return order

    # IntegrityError covers a concurrent first order-number allocation of the day
    order = run_with_retry(session, _op, retry_on=CONCURRENCY_ERRORS + (IntegrityError,))

    logger.info("Order %s created for user %s", order.order_number, ctx.user_id)
    _audit(session, ctx, "ORDER_CREATED", order, new_values={
        "order_number": order.order_number,
        "total_amount_cents": order.total_amount_cents,
        "status": order.status,
    })
    return order


def cancel_order(session: Session, ctx: AuthContext, order_id: int) -> Order:
    """
    Cancel an order and restore its stock.

    Owner or privileged actor only. Terminal orders raise InvalidStateError
    and leave inventory untouched.
    """
    old_status = {}

    def _op():
        begin_write(session)
        order = _lock_order(session, order_id)

        if not (ctx.owns(order.user_id) or ctx.is_privileged):
            raise ForbiddenError("You are not allowed to cancel this order")
        if order.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                "Cannot cancel order in current status",
                details={"status": order.status},
            )

        old_status["status"] = order.status
        restore_order_stock(session, order=order, lines=list(order.lines), actor_user_id=ctx.user_id)
        order.status = OrderStatus.CANCELLED

        session.commit()
        return order

    order = run_with_retry(session, _op)

    logger.info("Order %s cancelled by user %s", order.order_number, ctx.user_id)
    _audit(session, ctx, "ORDER_CANCELLED", order, old_values=old_status, new_values={"status": order.status})
    return order


def update_status(session: Session, ctx: AuthContext, order_id: int, new_status) -> Order:
    """
    Set an order's status (privileged).

    Raises InvalidStatusError for unrecognised values and InvalidStateError
    once the order is terminal.
    """
    ctx.require("MANAGE_ORDERS")
    status = normalize_status(new_status)

    if status == OrderStatus.CANCELLED:
        return cancel_order(session, ctx, order_id)

    old_status = {}

    def _op():
        begin_write(session)
        order = _lock_order(session, order_id)
        if order.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Order is already {order.status}",
                details={"status": order.status},
            )
        old_status["status"] = order.status
        order.status = status
        session.commit()
        return order

    order = run_with_retry(session, _op)

    logger.info(
        "Order %s status %s -> %s by user %s",
        order.order_number, old_status["status"], order.status, ctx.user_id,
    )
    _audit(session, ctx, "ORDER_STATUS_UPDATED", order, old_values=old_status, new_values={"status": order.status})
    return order
