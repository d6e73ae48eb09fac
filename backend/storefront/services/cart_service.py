# Overview: Per-user cart staging area consumed at checkout.

"""
Cart rules:
- One row per (user, product). Re-adding a product sums the quantity.
- Saved-for-later lines are parked: excluded from totals and from checkout.
- Ownership is decided from the loaded row's user_id, never from input.
- Lines whose product went inactive stay visible but add nothing to totals.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..errors import ForbiddenError, NotFoundError, ProductUnavailableError, ValidationError
from ..models import CartLine, Product
from .concurrency import CONCURRENCY_ERRORS, begin_write, run_with_retry
from .permission_service import AuthContext


def compute_tax_cents(subtotal_cents: int, tax_rate: Decimal) -> int:
    """Flat tax over the subtotal, rounded half-up to whole cents."""
    tax = (Decimal(subtotal_cents) * Decimal(tax_rate)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(tax)


def _require_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer")
    if quantity < 1:
        raise ValidationError("quantity must be >= 1")
    return quantity


def _load_owned_line(session: Session, ctx: AuthContext, line_id: int) -> CartLine:
    line = session.get(CartLine, line_id)
    if line is None:
        raise NotFoundError("Cart item not found")
    if not ctx.owns(line.user_id):
        raise ForbiddenError("Cart item does not belong to you")
    return line


def _line_view(line: CartLine) -> dict:
    product = line.product
    data = line.to_dict()
    data.update({
        "product_name": product.name,
        "sku": product.sku,
        "image_url": product.image_url,
        "unit_price_cents": product.price_cents,
        "line_total_cents": product.price_cents * line.quantity,
        "is_active": bool(product.is_active),
    })
    return data


def add_item(
    session: Session,
    ctx: AuthContext,
    *,
    product_id: int,
    quantity: int = 1,
    saved_for_later: bool = False,
) -> CartLine:
    ctx.require("USE_CART")
    quantity = _require_quantity(quantity)

    def _op():
        begin_write(session)
        product = session.get(Product, product_id)
        if product is None or not product.is_active:
            raise ProductUnavailableError("Product not found or inactive")

        line = (
            session.query(CartLine)
            .filter_by(user_id=ctx.user_id, product_id=product_id)
            .populate_existing()
            .first()
        )
        if line is not None:
            line.quantity = line.quantity + quantity
            # Re-adding a parked product brings it back into the active cart
            if not saved_for_later:
                line.saved_for_later = False
        else:
            line = CartLine(
                user_id=ctx.user_id,
                product_id=product_id,
                quantity=quantity,
                saved_for_later=bool(saved_for_later),
            )
            session.add(line)

        session.commit()
        return line

    # Two concurrent first adds of one product collide on the unique key
    return run_with_retry(session, _op, retry_on=CONCURRENCY_ERRORS + (IntegrityError,))


def update_quantity(session: Session, ctx: AuthContext, line_id: int, quantity: int) -> CartLine:
    ctx.require("USE_CART")
    quantity = _require_quantity(quantity)

    def _op():
        line = _load_owned_line(session, ctx, line_id)
        line.quantity = quantity
        session.commit()
        return line

    return run_with_retry(session, _op)


def remove(session: Session, ctx: AuthContext, line_id: int) -> None:
    ctx.require("USE_CART")

    def _op():
        line = _load_owned_line(session, ctx, line_id)
        session.delete(line)
        session.commit()

    run_with_retry(session, _op)


def clear(session: Session, ctx: AuthContext) -> int:
    """Remove every active line. Saved lines are kept. Returns rows removed."""
    ctx.require("USE_CART")

    def _op():
        removed = (
            session.query(CartLine)
            .filter_by(user_id=ctx.user_id, saved_for_later=False)
            .delete(synchronize_session=False)
        )
        session.commit()
        return removed

    return run_with_retry(session, _op)


def _set_saved(session: Session, ctx: AuthContext, line_id: int, saved: bool) -> CartLine:
    ctx.require("USE_CART")

    def _op():
        line = _load_owned_line(session, ctx, line_id)
        line.saved_for_later = saved
        session.commit()
        return line

    return run_with_retry(session, _op)


def save(session: Session, ctx: AuthContext, line_id: int) -> CartLine:
    return _set_saved(session, ctx, line_id, True)


def restore(session: Session, ctx: AuthContext, line_id: int) -> CartLine:
    return _set_saved(session, ctx, line_id, False)


def get_active_lines(session: Session, user_id: int) -> list[CartLine]:
    return (
        session.query(CartLine)
        .options(joinedload(CartLine.product))
        .filter_by(user_id=user_id, saved_for_later=False)
        .order_by(CartLine.created_at.desc(), CartLine.id.desc())
        .all()
    )


def get_active(session: Session, ctx: AuthContext, *, tax_rate: Decimal) -> dict:
    """
    Active cart with totals.

    Lines for inactive products are returned (is_active False) but are left
    out of the subtotal. item_count is the number of returned lines.
    """
    ctx.require("USE_CART")
    lines = get_active_lines(session, ctx.user_id)

    subtotal = sum(
        line.product.price_cents * line.quantity
        for line in lines
        if line.product.is_active
    )

    tax = compute_tax_cents(subtotal, tax_rate)
    return {
        "items": [_line_view(line) for line in lines],
        "item_count": len(lines),
        "subtotal_cents": subtotal,
        "tax_amount_cents": tax,
        "total_cents": subtotal + tax,
    }


def get_saved(session: Session, ctx: AuthContext) -> list[dict]:
    ctx.require("USE_CART")
    lines = (
        session.query(CartLine)
        .options(joinedload(CartLine.product))
        .filter_by(user_id=ctx.user_id, saved_for_later=True)
        .order_by(CartLine.updated_at.desc(), CartLine.id.desc())
        .all()
    )
    return [_line_view(line) for line in lines]
