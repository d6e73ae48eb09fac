from __future__ import annotations

from ..extensions import db
from storefront.time_utils import to_utc_z


class InventoryRecord(db.Model):
    """
    Current on-hand quantity for one (product, warehouse).

    Only inventory_service mutates this row, and every quantity change is
    paired with exactly one InventoryMovement in the same transaction.
    `version_id` gives optimistic locking on top of the row lock so a
    read-modify-write that raced another writer fails instead of
    overwriting it.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_inventory_product_warehouse"),
        db.Index("ix_inventory_warehouse", "warehouse_id"),
        db.CheckConstraint("quantity_on_hand >= 0", name="ck_inventory_quantity_non_negative"),
        db.CheckConstraint("low_stock_threshold >= 0", name="ck_inventory_threshold_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)

    quantity_on_hand = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=10)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product")
    warehouse = db.relationship("Warehouse")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.quantity_on_hand <= self.low_stock_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "quantity_on_hand": self.quantity_on_hand,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    Append-only stock ledger.

    `quantity` is always a positive magnitude; the sign lives in
    `movement_type`. No updates or deletes.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_invmov_product_created", "product_id", "created_at"),
        db.Index("ix_invmov_product_warehouse", "product_id", "warehouse_id"),
        db.Index("ix_invmov_reference", "reference_type", "reference_id"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_movements_quantity_magnitude"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)

    movement_type = db.Column(db.String(32), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    # What caused the movement, e.g. ("ORDER", 42); null for manual stock work
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "warehouse_id": self.warehouse_id,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
