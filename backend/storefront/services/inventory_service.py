# Overview: Service-layer operations for stock levels and the movement ledger.

"""
Storefront Inventory Invariants (authoritative)

Model:
- InventoryRecord holds the current quantity_on_hand per (product, warehouse).
- InventoryMovement is the append-only ledger. Every quantity change to an
  InventoryRecord is written in the same transaction as exactly one movement.
- Movement quantity is a positive magnitude; its direction comes from type:
    RECEIVED, ADJUSTMENT_ADD, ORDER_RESTORE     -> increase
    ADJUSTMENT_SUBTRACT, ORDER_DEBIT            -> decrease

Business rules:
- quantity_on_hand never goes negative.
- Manual adjustments clamp at zero: new = max(0, old + delta). The movement
  still records abs(delta), so ledger and quantity can diverge when the clamp
  fires.
- Order debits never clamp; they fail with InsufficientStockError instead.
- Threshold changes are metadata only and write no movement.

Concurrency:
- Writers take the row lock (SELECT ... FOR UPDATE / BEGIN IMMEDIATE on
  SQLite) and InventoryRecord.version_id guards the read-modify-write.
- Lost races surface as StaleDataError / OperationalError / IntegrityError
  (first insert) and the whole unit is rolled back and retried.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..models import InventoryMovement, InventoryRecord, Product, Warehouse
from .concurrency import CONCURRENCY_ERRORS, begin_write, lock_for_update, run_with_retry
from .permission_service import AuthContext


MOVEMENT_RECEIVED = "RECEIVED"
MOVEMENT_ADJUSTMENT_ADD = "ADJUSTMENT_ADD"
MOVEMENT_ADJUSTMENT_SUBTRACT = "ADJUSTMENT_SUBTRACT"
MOVEMENT_ORDER_DEBIT = "ORDER_DEBIT"
MOVEMENT_ORDER_RESTORE = "ORDER_RESTORE"

INCREASING_MOVEMENTS = {MOVEMENT_RECEIVED, MOVEMENT_ADJUSTMENT_ADD, MOVEMENT_ORDER_RESTORE}
DECREASING_MOVEMENTS = {MOVEMENT_ADJUSTMENT_SUBTRACT, MOVEMENT_ORDER_DEBIT}
MOVEMENT_TYPES = INCREASING_MOVEMENTS | DECREASING_MOVEMENTS

REFERENCE_ORDER = "ORDER"

DEFAULT_LOW_STOCK_THRESHOLD = 10
MAX_PER_PAGE = 200

# A concurrent first insert of the same (product, warehouse) loses on the
# unique constraint; the retry then finds the winner's row.
WRITE_RETRY_ERRORS = CONCURRENCY_ERRORS + (IntegrityError,)


@dataclass
class StockChange:
    record: InventoryRecord
    movement: InventoryMovement | None
    previous_quantity: int

    def to_dict(self) -> dict:
        return {
            "inventory": self.record.to_dict(),
            "movement": self.movement.to_dict() if self.movement else None,
            "previous_quantity": self.previous_quantity,
        }


def _require_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    return value


def _ensure_product(session: Session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _ensure_warehouse(session: Session, warehouse_id: int) -> Warehouse:
    warehouse = session.get(Warehouse, warehouse_id)
    if warehouse is None:
        raise NotFoundError("Warehouse not found")
    return warehouse


def _lock_record(session: Session, product_id: int, warehouse_id: int) -> InventoryRecord | None:
    query = session.query(InventoryRecord).filter_by(
        product_id=product_id,
        warehouse_id=warehouse_id,
    )
    return lock_for_update(query).populate_existing().first()


def _get_or_create_record(session: Session, product_id: int, warehouse_id: int) -> InventoryRecord:
    record = _lock_record(session, product_id, warehouse_id)
    if record is None:
        record = InventoryRecord(
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity_on_hand=0,
            low_stock_threshold=DEFAULT_LOW_STOCK_THRESHOLD,
        )
        session.add(record)
        session.flush()
    return record


def _apply_movement_inner(
    session: Session,
    *,
    product_id: int,
    warehouse_id: int,
    movement_type: str,
    quantity: int,
    actor_user_id: int | None,
    notes: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    clamp: bool = False,
) -> StockChange:
    """
    Core record-update + ledger-append, without retry or commit.

    Must run inside the caller's write transaction. `quantity` is the
    magnitude that gets logged; with clamp=True a decrease floors at zero
    instead of failing.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Unknown movement type '{movement_type}'")
    if quantity < 0:
        raise ValidationError("Movement quantity must be a positive magnitude")

    record = _get_or_create_record(session, product_id, warehouse_id)
    previous = record.quantity_on_hand

    if movement_type in INCREASING_MOVEMENTS:
        new_quantity = previous + quantity
    else:
        new_quantity = previous - quantity
        if new_quantity < 0:
            if not clamp:
                raise InsufficientStockError(
                    "Insufficient stock",
                    details={
                        "product_id": product_id,
                        "warehouse_id": warehouse_id,
                        "requested_quantity": quantity,
                        "on_hand": previous,
                    },
                )
            new_quantity = 0

    record.quantity_on_hand = new_quantity

    movement = InventoryMovement(
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=movement_type,
        quantity=quantity,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        created_by=actor_user_id,
    )
    session.add(movement)
    session.flush()

    return StockChange(record=record, movement=movement, previous_quantity=previous)


def add_stock(
    session: Session,
    ctx: AuthContext,
    *,
    product_id: int,
    warehouse_id: int,
    quantity: int,
    notes: str | None = None,
) -> StockChange:
    """
    Receive stock into a warehouse (RECEIVED movement).

    Creates the inventory record on first receipt.
    """
    ctx.require("RECEIVE_INVENTORY")
    quantity = _require_int("quantity", quantity)
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    def _op():
        begin_write(session)
        _ensure_product(session, product_id)
        _ensure_warehouse(session, warehouse_id)

        change = _apply_movement_inner(
            session,
            product_id=product_id,
            warehouse_id=warehouse_id,
            movement_type=MOVEMENT_RECEIVED,
            quantity=quantity,
            actor_user_id=ctx.user_id,
            notes=notes,
        )
        session.commit()
        return change

    return run_with_retry(session, _op, retry_on=WRITE_RETRY_ERRORS)


def adjust_stock(
    session: Session,
    ctx: AuthContext,
    *,
    product_id: int,
    warehouse_id: int,
    delta: int,
    notes: str | None = None,
) -> StockChange:
    """
    Apply a signed manual adjustment.

    The result is clamped at zero. The movement logs abs(delta) regardless
    of whether the clamp fired (see module notes).
    """
    ctx.require("ADJUST_INVENTORY")
    delta = _require_int("quantity", delta)
    if delta == 0:
        raise ValidationError("quantity must be non-zero for an adjustment")

    movement_type = MOVEMENT_ADJUSTMENT_ADD if delta > 0 else MOVEMENT_ADJUSTMENT_SUBTRACT

    def _op():
        begin_write(session)
        _ensure_product(session, product_id)
        _ensure_warehouse(session, warehouse_id)

        change = _apply_movement_inner(
            session,
            product_id=product_id,
            warehouse_id=warehouse_id,
            movement_type=movement_type,
            quantity=abs(delta),
            actor_user_id=ctx.user_id,
            notes=notes,
            clamp=True,
        )
        session.commit()
        return change

    return run_with_retry(session, _op, retry_on=WRITE_RETRY_ERRORS)


def set_threshold(
    session: Session,
    ctx: AuthContext,
    *,
    product_id: int,
    warehouse_id: int,
    threshold: int,
) -> InventoryRecord:
    """Set the low-stock threshold. Metadata only: no ledger entry."""
    ctx.require("ADJUST_INVENTORY")
    threshold = _require_int("threshold", threshold)
    if threshold < 0:
        raise ValidationError("threshold must be >= 0")

    def _op():
        begin_write(session)
        _ensure_product(session, product_id)
        _ensure_warehouse(session, warehouse_id)

        record = _get_or_create_record(session, product_id, warehouse_id)
        record.low_stock_threshold = threshold
        session.commit()
        return record

    return run_with_retry(session, _op, retry_on=WRITE_RETRY_ERRORS)


def debit_order_stock(session: Session, *, order, lines, actor_user_id: int | None) -> list[StockChange]:
    """
    Debit each order line from its warehouse (ORDER_DEBIT).

    Runs inside the caller's transaction and never commits. Lines are
    processed in (product, warehouse) order so concurrent checkouts lock
    rows in the same sequence.
    """
    changes = []
    for line in sorted(lines, key=lambda l: (l.product_id, l.warehouse_id)):
        changes.append(_apply_movement_inner(
            session,
            product_id=line.product_id,
            warehouse_id=line.warehouse_id,
            movement_type=MOVEMENT_ORDER_DEBIT,
            quantity=line.quantity,
            actor_user_id=actor_user_id,
            notes=f"Order {order.order_number}",
            reference_type=REFERENCE_ORDER,
            reference_id=order.id,
        ))
    return changes


def restore_order_stock(session: Session, *, order, lines, actor_user_id: int | None) -> list[StockChange]:
    """
    Return each order line's quantity to its warehouse (ORDER_RESTORE).

    Runs inside the caller's transaction and never commits.
    """
    changes = []
    for line in sorted(lines, key=lambda l: (l.product_id, l.warehouse_id)):
        changes.append(_apply_movement_inner(
            session,
            product_id=line.product_id,
            warehouse_id=line.warehouse_id,
            movement_type=MOVEMENT_ORDER_RESTORE,
            quantity=line.quantity,
            actor_user_id=actor_user_id,
            notes=f"Cancel order {order.order_number}",
            reference_type=REFERENCE_ORDER,
            reference_id=order.id,
        ))
    return changes


# -- Reads --

def get_by_product(session: Session, product_id: int) -> list[InventoryRecord]:
    _ensure_product(session, product_id)
    return (
        session.query(InventoryRecord)
        .filter_by(product_id=product_id)
        .order_by(InventoryRecord.warehouse_id.asc())
        .all()
    )


def get_by_warehouse(
    session: Session,
    warehouse_id: int,
    *,
    low_stock_only: bool = False,
) -> list[InventoryRecord]:
    _ensure_warehouse(session, warehouse_id)
    q = session.query(InventoryRecord).filter_by(warehouse_id=warehouse_id)
    if low_stock_only:
        q = q.filter(InventoryRecord.quantity_on_hand <= InventoryRecord.low_stock_threshold)
    return q.order_by(InventoryRecord.product_id.asc()).all()


def get_low_stock(session: Session, warehouse_id: int) -> list[InventoryRecord]:
    return get_by_warehouse(session, warehouse_id, low_stock_only=True)


def get_movements(
    session: Session,
    product_id: int,
    *,
    page: int = 1,
    per_page: int = 50,
    warehouse_id: int | None = None,
) -> dict:
    """Ledger entries for a product, newest first, paginated."""
    _ensure_product(session, product_id)
    if page < 1:
        raise ValidationError("page must be >= 1")
    if per_page < 1:
        raise ValidationError("per_page must be >= 1")
    per_page = min(per_page, MAX_PER_PAGE)

    q = session.query(InventoryMovement).filter_by(product_id=product_id)
    if warehouse_id is not None:
        q = q.filter_by(warehouse_id=warehouse_id)

    total = q.count()
    rows = (
        q.order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        "items": rows,
        "page": page,
        "per_page": per_page,
        "total": total,
    }


def get_stats(session: Session) -> dict:
    low = case(
        (InventoryRecord.quantity_on_hand <= InventoryRecord.low_stock_threshold, 1),
        else_=0,
    )
    out = case((InventoryRecord.quantity_on_hand == 0, 1), else_=0)

    row = session.query(
        func.count(func.distinct(InventoryRecord.product_id)).label("products"),
        func.coalesce(func.sum(InventoryRecord.quantity_on_hand), 0).label("quantity"),
        func.coalesce(func.sum(low), 0).label("low"),
        func.coalesce(func.sum(out), 0).label("out"),
    ).one()

    return {
        "total_products": int(row.products or 0),
        "total_quantity": int(row.quantity or 0),
        "low_stock_count": int(row.low or 0),
        "out_of_stock_count": int(row.out or 0),
    }
