"""
HTTP API tests for cart, orders and inventory.

Verifies the JSON contracts and the error-kind -> status mapping.
"""


class TestCartApi:
    def test_add_and_get_cart(self, client, shopper_headers, product_a, product_b):
        r1 = client.post("/api/cart/add", json={"product_id": product_a.id, "quantity": 2}, headers=shopper_headers)
        r2 = client.post("/api/cart/add", json={"product_id": product_b.id}, headers=shopper_headers)
        assert r1.status_code == 201
        assert r2.status_code == 201
        assert r2.get_json()["item"]["quantity"] == 1

        resp = client.get("/api/cart", headers=shopper_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["subtotal_cents"] == 2500
        assert body["tax_amount_cents"] == 2500
        assert body["total_cents"] == 5000

    def test_add_merges(self, client, shopper_headers, product_a):
        client.post("/api/cart/add", json={"product_id": product_a.id, "quantity": 1}, headers=shopper_headers)
        resp = client.post("/api/cart/add", json={"product_id": product_a.id, "quantity": "4"}, headers=shopper_headers)

        assert resp.get_json()["item"]["quantity"] == 5

    def test_add_inactive_product(self, client, shopper_headers, inactive_product):
        resp = client.post("/api/cart/add", json={"product_id": inactive_product.id}, headers=shopper_headers)

        assert resp.status_code == 404
        assert resp.get_json()["error"] == "NotFound"

    def test_add_rejects_unknown_field(self, client, shopper_headers, product_a):
        resp = client.post(
            "/api/cart/add",
            json={"product_id": product_a.id, "user_id": 999},
            headers=shopper_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "ValidationFailed"

    def test_add_rejects_decimal_quantity(self, client, shopper_headers, product_a):
        resp = client.post("/api/cart/add", json={"product_id": product_a.id, "quantity": 1.5}, headers=shopper_headers)
        assert resp.status_code == 400

    def test_update_foreign_line_403(self, client, shopper_headers, other_headers, product_a):
        line = client.post("/api/cart/add", json={"product_id": product_a.id}, headers=shopper_headers).get_json()["item"]

        resp = client.put(f"/api/cart/{line['id']}", json={"quantity": 9}, headers=other_headers)

        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Forbidden"

    def test_update_remove_save_move(self, client, shopper_headers, product_a):
        line = client.post("/api/cart/add", json={"product_id": product_a.id}, headers=shopper_headers).get_json()["item"]

        assert client.put(f"/api/cart/{line['id']}", json={"quantity": 3}, headers=shopper_headers).get_json()["item"]["quantity"] == 3
        assert client.post(f"/api/cart/{line['id']}/save", headers=shopper_headers).get_json()["item"]["saved_for_later"] is True
        saved = client.get("/api/cart/saved", headers=shopper_headers).get_json()["items"]
        assert [s["id"] for s in saved] == [line["id"]]
        assert client.post(f"/api/cart/{line['id']}/move", headers=shopper_headers).get_json()["item"]["saved_for_later"] is False
        assert client.delete(f"/api/cart/{line['id']}", headers=shopper_headers).status_code == 200
        assert client.get("/api/cart", headers=shopper_headers).get_json()["items"] == []

    def test_clear(self, client, shopper_headers, product_a):
        client.post("/api/cart/add", json={"product_id": product_a.id}, headers=shopper_headers)
        resp = client.post("/api/cart/clear", headers=shopper_headers)
        assert resp.get_json()["removed"] == 1


class TestOrdersApi:
    def _checkout(self, client, headers):
        return client.post(
            "/api/orders",
            json={"delivery_address": "1 Main St", "delivery_phone": "555-0100", "notes": "Leave at door"},
            headers=headers,
        )

    def test_checkout(self, client, shopper_headers, warehouse, product_a, product_b):
        client.post("/api/cart/add", json={"product_id": product_a.id, "quantity": 2}, headers=shopper_headers)
        client.post("/api/cart/add", json={"product_id": product_b.id, "quantity": 1}, headers=shopper_headers)

        resp = self._checkout(client, shopper_headers)

        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["status"] == "PENDING"
        assert order["total_amount_cents"] == 5000
        assert order["shipping_address"] == "1 Main St"
        assert len(order["items"]) == 2
        assert client.get("/api/cart", headers=shopper_headers).get_json()["items"] == []

    def test_checkout_empty_cart_400(self, client, shopper_headers, warehouse):
        resp = self._checkout(client, shopper_headers)

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "InvalidState"

    def test_checkout_missing_address(self, client, shopper_headers, warehouse):
        resp = client.post("/api/orders", json={"delivery_phone": "555"}, headers=shopper_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "ValidationFailed"

    def test_checkout_oversell_409_when_debiting(self, app, client, shopper_headers, warehouse, product_a):
        app.config["DEBIT_STOCK_ON_ORDER"] = True
        client.post("/api/cart/add", json={"product_id": product_a.id, "quantity": 1}, headers=shopper_headers)

        resp = self._checkout(client, shopper_headers)

        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Conflict"

    def test_status_and_cancel_flow(self, client, shopper_headers, admin_headers, warehouse, product_a):
        client.post("/api/cart/add", json={"product_id": product_a.id}, headers=shopper_headers)
        order_id = self._checkout(client, shopper_headers).get_json()["order"]["id"]

        bad = client.post(f"/api/orders/{order_id}/status", json={"status": "TELEPORTED"}, headers=admin_headers)
        assert bad.status_code == 400
        assert bad.get_json()["error"] == "ValidationFailed"

        ok = client.post(f"/api/orders/{order_id}/status", json={"status": "delivered"}, headers=admin_headers)
        assert ok.status_code == 200
        assert ok.get_json()["order"]["status"] == "DELIVERED"

        cancel = client.post(f"/api/orders/{order_id}/cancel", headers=shopper_headers)
        assert cancel.status_code == 400
        assert cancel.get_json()["error"] == "InvalidState"

    def test_cancel_by_stranger_403(self, client, shopper_headers, other_headers, warehouse, product_a):
        client.post("/api/cart/add", json={"product_id": product_a.id}, headers=shopper_headers)
        order_id = self._checkout(client, shopper_headers).get_json()["order"]["id"]

        resp = client.post(f"/api/orders/{order_id}/cancel", headers=other_headers)
        assert resp.status_code == 403

        resp = client.post(f"/api/orders/{order_id}/cancel", headers=shopper_headers)
        assert resp.status_code == 200
        assert resp.get_json()["order"]["status"] == "CANCELLED"

    def test_foreign_order_404(self, client, shopper_headers, other_headers, warehouse, product_a):
        client.post("/api/cart/add", json={"product_id": product_a.id}, headers=shopper_headers)
        order_id = self._checkout(client, shopper_headers).get_json()["order"]["id"]

        foreign = client.get(f"/api/orders/{order_id}", headers=other_headers)
        missing = client.get(f"/api/orders/{order_id + 500}", headers=other_headers)

        assert foreign.status_code == missing.status_code == 404
        assert foreign.get_json() == missing.get_json()
        assert client.get(f"/api/orders/{order_id}", headers=shopper_headers).status_code == 200

    def test_my_orders_and_admin_listing(self, client, shopper_headers, admin_headers, warehouse, product_a):
        client.post("/api/cart/add", json={"product_id": product_a.id}, headers=shopper_headers)
        self._checkout(client, shopper_headers)

        mine = client.get("/api/my-orders", headers=shopper_headers).get_json()
        assert mine["total"] == 1

        listing = client.get("/api/orders?status=PENDING&limit=10", headers=admin_headers)
        assert listing.status_code == 200
        assert listing.get_json()["total"] == 1

        stats = client.get("/api/orders/stats", headers=admin_headers).get_json()["stats"]
        assert stats["total_orders"] == 1
        assert stats["total_revenue_cents"] == 2000

    def test_listing_bad_date(self, client, admin_headers):
        resp = client.get("/api/orders?created_from=yesterday", headers=admin_headers)
        assert resp.status_code == 400

    def test_malformed_paging_args_are_400(self, client, shopper_headers):
        for raw in ("--1", "\u00b2", "1_0", "2.5"):
            resp = client.get("/api/my-orders", query_string={"limit": raw}, headers=shopper_headers)
            assert resp.status_code == 400, raw
            assert resp.get_json()["error"] == "ValidationFailed"


class TestInventoryApi:
    def test_add_adjust_threshold_and_read(self, client, admin_headers, warehouse, product_a):
        base = f"/api/inventory/product/{product_a.id}"

        added = client.post(f"{base}/add-stock", json={"warehouse_id": warehouse.id, "quantity": 5}, headers=admin_headers)
        assert added.status_code == 201
        assert added.get_json()["inventory"]["quantity_on_hand"] == 5
        assert added.get_json()["movement"]["movement_type"] == "RECEIVED"

        adjusted = client.post(
            f"{base}/adjust-stock",
            json={"warehouse_id": warehouse.id, "quantity": -8, "notes": "Shrink"},
            headers=admin_headers,
        )
        assert adjusted.status_code == 200
        body = adjusted.get_json()
        assert body["inventory"]["quantity_on_hand"] == 0
        assert body["movement"]["movement_type"] == "ADJUSTMENT_SUBTRACT"
        assert body["movement"]["quantity"] == 8

        threshold = client.post(
            f"{base}/set-threshold",
            json={"warehouse_id": warehouse.id, "threshold": 3},
            headers=admin_headers,
        )
        assert threshold.get_json()["inventory"]["low_stock_threshold"] == 3

        records = client.get(base, headers=admin_headers).get_json()["inventory"]
        assert [(r["warehouse_id"], r["quantity_on_hand"]) for r in records] == [(warehouse.id, 0)]

        low = client.get(f"/api/inventory/warehouse/{warehouse.id}/low-stock", headers=admin_headers).get_json()
        assert [r["product_id"] for r in low["inventory"]] == [product_a.id]

        filtered = client.get(f"/api/inventory/warehouse/{warehouse.id}?low_stock_only=true", headers=admin_headers)
        assert len(filtered.get_json()["inventory"]) == 1

        movements = client.get(f"{base}/movements?page=1&per_page=1", headers=admin_headers).get_json()
        assert movements["total"] == 2
        assert [m["movement_type"] for m in movements["movements"]] == ["ADJUSTMENT_SUBTRACT"]

        stats = client.get("/api/inventory/stats", headers=admin_headers).get_json()["stats"]
        assert stats["out_of_stock_count"] == 1

    def test_add_stock_validation(self, client, admin_headers, warehouse, product_a):
        base = f"/api/inventory/product/{product_a.id}"

        assert client.post(f"{base}/add-stock", json={"warehouse_id": warehouse.id, "quantity": 0}, headers=admin_headers).status_code == 400
        assert client.post(f"{base}/add-stock", json={"quantity": 3}, headers=admin_headers).status_code == 400
        assert client.post(f"{base}/adjust-stock", json={"warehouse_id": warehouse.id, "quantity": 0}, headers=admin_headers).status_code == 400
        assert client.post(f"{base}/set-threshold", json={"warehouse_id": warehouse.id, "threshold": -2}, headers=admin_headers).status_code == 400

    def test_unknown_product_404(self, client, admin_headers, warehouse):
        resp = client.post(
            "/api/inventory/product/999999/add-stock",
            json={"warehouse_id": warehouse.id, "quantity": 1},
            headers=admin_headers,
        )
        assert resp.status_code == 404


class TestSystemApi:
    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "ok"
