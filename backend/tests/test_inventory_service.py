"""
Inventory ledger tests.

Verifies:
- Every quantity change writes exactly one movement
- Adjustments clamp at zero and log the requested magnitude
- Thresholds are metadata only
- Reads, pagination and stats
"""

import pytest

from storefront.errors import ForbiddenError, NotFoundError, ValidationError
from storefront.models import InventoryMovement, InventoryRecord
from storefront.services import inventory_service


def _record(db_session, product, warehouse):
    db_session.expire_all()
    return db_session.query(InventoryRecord).filter_by(
        product_id=product.id, warehouse_id=warehouse.id,
    ).one()


def _movements(db_session, product):
    return (
        db_session.query(InventoryMovement)
        .filter_by(product_id=product.id)
        .order_by(InventoryMovement.id.asc())
        .all()
    )


class TestAddStock:
    def test_first_receipt_creates_record(self, db_session, admin_ctx, warehouse, product_a):
        change = inventory_service.add_stock(
            db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=20, notes="PO-1",
        )

        assert change.previous_quantity == 0
        record = _record(db_session, product_a, warehouse)
        assert record.quantity_on_hand == 20
        assert record.low_stock_threshold == inventory_service.DEFAULT_LOW_STOCK_THRESHOLD

        [movement] = _movements(db_session, product_a)
        assert movement.movement_type == "RECEIVED"
        assert movement.quantity == 20
        assert movement.notes == "PO-1"
        assert movement.created_by == admin_ctx.user_id

    def test_receipt_increments(self, db_session, admin_ctx, warehouse, product_a):
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=3)
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=4)

        assert _record(db_session, product_a, warehouse).quantity_on_hand == 7
        assert len(_movements(db_session, product_a)) == 2

    @pytest.mark.parametrize("qty", [0, -5])
    def test_non_positive_rejected(self, db_session, admin_ctx, warehouse, product_a, qty):
        with pytest.raises(ValidationError):
            inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=qty)
        assert db_session.query(InventoryMovement).count() == 0

    def test_unknown_product_or_warehouse(self, db_session, admin_ctx, warehouse, product_a):
        with pytest.raises(NotFoundError):
            inventory_service.add_stock(db_session, admin_ctx, product_id=987654, warehouse_id=warehouse.id, quantity=1)
        with pytest.raises(NotFoundError):
            inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=987654, quantity=1)

    def test_shopper_cannot_receive(self, db_session, shopper_ctx, warehouse, product_a):
        with pytest.raises(ForbiddenError):
            inventory_service.add_stock(db_session, shopper_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=1)

    def test_warehouses_are_independent(self, db_session, admin_ctx, warehouse, second_warehouse, product_a):
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=5)
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=second_warehouse.id, quantity=9)

        assert _record(db_session, product_a, warehouse).quantity_on_hand == 5
        assert _record(db_session, product_a, second_warehouse).quantity_on_hand == 9


class TestAdjustStock:
    def test_clamp_then_receive_scenario(self, db_session, admin_ctx, warehouse, product_a):
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=5)

        change = inventory_service.adjust_stock(
            db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, delta=-8,
        )
        assert change.previous_quantity == 5
        assert _record(db_session, product_a, warehouse).quantity_on_hand == 0

        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=20)
        assert _record(db_session, product_a, warehouse).quantity_on_hand == 20

        movements = [(m.movement_type, m.quantity) for m in _movements(db_session, product_a)]
        assert movements == [
            ("RECEIVED", 5),
            ("ADJUSTMENT_SUBTRACT", 8),
            ("RECEIVED", 20),
        ]

    def test_positive_adjustment(self, db_session, admin_ctx, warehouse, product_a):
        inventory_service.adjust_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, delta=6)

        assert _record(db_session, product_a, warehouse).quantity_on_hand == 6
        [movement] = _movements(db_session, product_a)
        assert (movement.movement_type, movement.quantity) == ("ADJUSTMENT_ADD", 6)

    def test_negative_adjustment_within_stock(self, db_session, admin_ctx, warehouse, product_a):
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=10)
        inventory_service.adjust_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, delta=-3)

        assert _record(db_session, product_a, warehouse).quantity_on_hand == 7

    def test_zero_delta_rejected(self, db_session, admin_ctx, warehouse, product_a):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, delta=0)

    def test_version_bumps_on_each_write(self, db_session, admin_ctx, warehouse, product_a):
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=1)
        v1 = _record(db_session, product_a, warehouse).version_id
        inventory_service.adjust_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, delta=1)
        assert _record(db_session, product_a, warehouse).version_id == v1 + 1


class TestThreshold:
    def test_set_threshold_writes_no_movement(self, db_session, admin_ctx, warehouse, product_a):
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=5)

        inventory_service.set_threshold(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, threshold=2)

        record = _record(db_session, product_a, warehouse)
        assert record.low_stock_threshold == 2
        assert record.quantity_on_hand == 5
        assert len(_movements(db_session, product_a)) == 1

    def test_set_threshold_creates_empty_record(self, db_session, admin_ctx, warehouse, product_a):
        inventory_service.set_threshold(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, threshold=3)

        record = _record(db_session, product_a, warehouse)
        assert (record.quantity_on_hand, record.low_stock_threshold) == (0, 3)
        assert _movements(db_session, product_a) == []

    def test_negative_threshold_rejected(self, db_session, admin_ctx, warehouse, product_a):
        with pytest.raises(ValidationError):
            inventory_service.set_threshold(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, threshold=-1)


class TestReads:
    def test_get_by_product_is_stable(self, db_session, admin_ctx, warehouse, second_warehouse, product_a):
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=2)
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=second_warehouse.id, quantity=4)

        first = [r.to_dict() for r in inventory_service.get_by_product(db_session, product_a.id)]
        second = [r.to_dict() for r in inventory_service.get_by_product(db_session, product_a.id)]

        assert first == second
        assert [r["warehouse_id"] for r in first] == [warehouse.id, second_warehouse.id]

    def test_get_by_warehouse_low_stock_filter(self, db_session, admin_ctx, warehouse, product_a, product_b):
        # threshold defaults to 10; 10 on hand counts as low, 11 does not
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=10)
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_b.id, warehouse_id=warehouse.id, quantity=11)

        all_rows = inventory_service.get_by_warehouse(db_session, warehouse.id)
        low_rows = inventory_service.get_by_warehouse(db_session, warehouse.id, low_stock_only=True)

        assert {r.product_id for r in all_rows} == {product_a.id, product_b.id}
        assert [r.product_id for r in low_rows] == [product_a.id]
        assert [r.product_id for r in inventory_service.get_low_stock(db_session, warehouse.id)] == [product_a.id]

    def test_movements_paginated_newest_first(self, db_session, admin_ctx, warehouse, product_a):
        for qty in (1, 2, 3, 4, 5):
            inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=qty)

        page1 = inventory_service.get_movements(db_session, product_a.id, page=1, per_page=2)
        page3 = inventory_service.get_movements(db_session, product_a.id, page=3, per_page=2)

        assert page1["total"] == 5
        assert [m.quantity for m in page1["items"]] == [5, 4]
        assert [m.quantity for m in page3["items"]] == [1]

    def test_movements_bad_page(self, db_session, product_a):
        with pytest.raises(ValidationError):
            inventory_service.get_movements(db_session, product_a.id, page=0)

    def test_stats(self, db_session, admin_ctx, warehouse, second_warehouse, product_a, product_b):
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=warehouse.id, quantity=50)
        inventory_service.add_stock(db_session, admin_ctx, product_id=product_a.id, warehouse_id=second_warehouse.id, quantity=5)
        inventory_service.set_threshold(db_session, admin_ctx, product_id=product_b.id, warehouse_id=warehouse.id, threshold=0)

        stats = inventory_service.get_stats(db_session)

        assert stats == {
            "total_products": 2,
            "total_quantity": 55,
            "low_stock_count": 2,
            "out_of_stock_count": 1,
        }

    def test_empty_stats(self, db_session):
        assert inventory_service.get_stats(db_session) == {
            "total_products": 0,
            "total_quantity": 0,
            "low_stock_count": 0,
            "out_of_stock_count": 0,
        }
