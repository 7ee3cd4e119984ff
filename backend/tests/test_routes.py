# Overview: Pytest coverage for the HTTP API surface.

"""
Route tests: status codes, identity headers, and JSON error bodies.
"""

import pytest

from conftest import identity_headers, stock_of, movements_of


def _order_body(*items, **customer):
    body = {
        "customer_name": customer.get("name", "Jane Doe"),
        "customer_email": customer.get("email", "jane@example.com"),
        "items": [{"product_id": pid, "quantity": qty} for pid, qty in items],
    }
    return body


class TestIdentity:

    @pytest.mark.parametrize("headers", [{}, {"X-Tenant-Id": ""}, {"X-Tenant-Id": "abc"}])
    def test_tenant_header_required(self, client, db_session, product_a, headers):
        resp = client.get(f"/api/inventory/{product_a.id}/summary", headers=headers)
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Tenant context required"


class TestInventoryRoutes:

    def test_create_movement(self, client, db_session, tenant_a, product_a):
        resp = client.post(
            "/api/inventory/movements",
            json={"product_id": product_a.id, "type": "in", "quantity": 5, "comment": "Restock"},
            headers=identity_headers(tenant_a.id, user_id=9),
        )

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["movement"]["type"] == "IN"
        assert data["movement"]["user_id"] == 9
        assert data["summary"]["stock"] == 15
        assert data["summary"]["consistent"] is True

    def test_insufficient_stock_is_409(self, client, db_session, tenant_a, product_a):
        resp = client.post(
            "/api/inventory/movements",
            json={"product_id": product_a.id, "type": "OUT", "quantity": 11},
            headers=identity_headers(tenant_a.id),
        )

        assert resp.status_code == 409
        data = resp.get_json()
        assert data["details"]["requested"] == 11
        assert data["details"]["available"] == 10
        assert data["retryable"] is False
        assert stock_of(product_a.id) == 10

    @pytest.mark.parametrize("body", [
        {"type": "IN", "quantity": 1},
        {"product_id": 1, "type": "SIDEWAYS", "quantity": 1},
        {"product_id": 1, "type": "IN", "quantity": 0},
        {"product_id": 1, "type": "IN", "quantity": "1.5"},
        {"product_id": 1, "type": "IN", "quantity": 1, "stock": 50},
    ])
    def test_invalid_movement_is_400(self, client, db_session, tenant_a, body):
        resp = client.post("/api/inventory/movements", json=body, headers=identity_headers(tenant_a.id))
        assert resp.status_code == 400

    def test_foreign_product_is_404(self, client, db_session, tenant_a, product_b):
        resp = client.post(
            "/api/inventory/movements",
            json={"product_id": product_b.id, "type": "OUT", "quantity": 1},
            headers=identity_headers(tenant_a.id),
        )
        assert resp.status_code == 404
        assert stock_of(product_b.id) == 5

    def test_reconcile(self, client, db_session, tenant_a, product_a):
        resp = client.post(
            f"/api/inventory/{product_a.id}/reconcile",
            json={"counted_quantity": 7},
            headers=identity_headers(tenant_a.id, user_id=2),
        )

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["movement"]["type"] == "OUT"
        assert data["movement"]["quantity"] == 3
        assert data["summary"]["stock"] == 7

    def test_reconcile_no_change(self, client, db_session, tenant_a, product_a):
        resp = client.post(
            f"/api/inventory/{product_a.id}/reconcile",
            json={"counted_quantity": 10},
            headers=identity_headers(tenant_a.id),
        )
        assert resp.status_code == 200
        assert resp.get_json()["movement"] is None

    def test_list_movements(self, client, db_session, tenant_a, product_a):
        resp = client.get(
            f"/api/inventory/{product_a.id}/movements?limit=5",
            headers=identity_headers(tenant_a.id),
        )
        assert resp.status_code == 200
        movements = resp.get_json()["movements"]
        assert len(movements) == 1
        assert movements[0]["comment"] == "Initial stock"

    def test_out_of_stock(self, client, db_session, tenant_a, make_product):
        empty = make_product(tenant_a, stock=0)
        make_product(tenant_a, stock=1)

        resp = client.get("/api/inventory/out-of-stock", headers=identity_headers(tenant_a.id))
        assert [p["id"] for p in resp.get_json()["products"]] == [empty.id]


class TestStorefrontRoutes:

    def test_place_order(self, client, db_session, tenant_a, product_a):
        resp = client.post("/api/storefront/acme/orders", json=_order_body((product_a.id, 2)))

        assert resp.status_code == 201
        order = resp.get_json()["order"]
        assert order["status"] == "COMPLETED"
        assert order["total_cents"] == 1998
        assert order["items"][0]["line_total_cents"] == 1998
        assert stock_of(product_a.id) == 8

    def test_unknown_store_is_404(self, client, db_session, product_a):
        resp = client.post("/api/storefront/nowhere/orders", json=_order_body((product_a.id, 1)))
        assert resp.status_code == 404

    def test_inactive_store_is_404(self, client, db_session, inactive_tenant):
        resp = client.post("/api/storefront/closed/orders", json=_order_body((1, 1)))
        assert resp.status_code == 404

    def test_oversell_is_409_and_atomic(self, client, db_session, tenant_a, make_product):
        p1 = make_product(tenant_a, stock=3)
        p2 = make_product(tenant_a, stock=10)

        resp = client.post("/api/storefront/acme/orders", json=_order_body((p2.id, 1), (p1.id, 5)))

        assert resp.status_code == 409
        assert stock_of(p1.id) == 3
        assert stock_of(p2.id) == 10
        assert len(movements_of(p2.id)) == 1

    def test_missing_items_is_400(self, client, db_session, tenant_a):
        resp = client.post("/api/storefront/acme/orders", json={"customer_name": "A", "customer_email": "a@b.c"})
        assert resp.status_code == 400

    def test_store_info(self, client, db_session, tenant_a):
        resp = client.get("/api/storefront/acme")
        assert resp.status_code == 200
        assert resp.get_json()["store"] == {"name": "Acme Shop", "slug": "acme"}

    @pytest.mark.parametrize("path", ["/api/storefront/closed", "/api/storefront/closed/products"])
    def test_inactive_store_catalog_is_404(self, client, db_session, inactive_tenant, make_product, path):
        make_product(inactive_tenant, stock=5)
        resp = client.get(path)
        assert resp.status_code == 404

    def test_catalog_hides_inactive_products(self, client, db_session, tenant_a, make_product):
        visible = make_product(tenant_a, stock=2)
        hidden = make_product(tenant_a, stock=2, is_active=False)

        resp = client.get("/api/storefront/acme/products")
        assert resp.status_code == 200
        products = resp.get_json()["products"]
        assert [p["id"] for p in products] == [visible.id]
        assert "cost_price_cents" not in products[0]

        resp = client.get(f"/api/storefront/acme/products/{hidden.id}")
        assert resp.status_code == 404
        resp = client.get(f"/api/storefront/acme/products/{visible.id}")
        assert resp.status_code == 200
        assert resp.get_json()["product"]["stock"] == 2

    def test_catalog_in_stock_filter(self, client, db_session, tenant_a, make_product):
        make_product(tenant_a, stock=0)
        stocked = make_product(tenant_a, stock=1)

        resp = client.get("/api/storefront/acme/products?in_stock=true")
        assert [p["id"] for p in resp.get_json()["products"]] == [stocked.id]

    def test_catalog_excludes_other_tenants(self, client, db_session, tenant_a, product_b):
        resp = client.get("/api/storefront/acme/products")
        assert resp.get_json()["products"] == []
        resp = client.get(f"/api/storefront/acme/products/{product_b.id}")
        assert resp.status_code == 404


class TestOrderRoutes:

    def _place(self, client, product_id, qty=1):
        resp = client.post("/api/storefront/acme/orders", json=_order_body((product_id, qty)))
        return resp.get_json()["order"]["id"]

    def test_get_and_list(self, client, db_session, tenant_a, product_a):
        order_id = self._place(client, product_a.id)

        resp = client.get(f"/api/orders/{order_id}", headers=identity_headers(tenant_a.id))
        assert resp.status_code == 200
        assert resp.get_json()["order"]["id"] == order_id

        resp = client.get("/api/orders/", headers=identity_headers(tenant_a.id))
        orders = resp.get_json()["orders"]
        assert [o["id"] for o in orders] == [order_id]
        assert "items" not in orders[0]

    def test_list_bad_status_is_400(self, client, db_session, tenant_a):
        resp = client.get("/api/orders/?status=LOST", headers=identity_headers(tenant_a.id))
        assert resp.status_code == 400

    def test_cancel_then_cancel_again(self, client, db_session, tenant_a, product_a):
        order_id = self._place(client, product_a.id, qty=4)
        headers = identity_headers(tenant_a.id, user_id=3)

        resp = client.post(f"/api/orders/{order_id}/cancel", headers=headers)
        assert resp.status_code == 200
        assert resp.get_json()["restored"] is True
        assert stock_of(product_a.id) == 10

        resp = client.post(f"/api/orders/{order_id}/cancel", headers=headers)
        assert resp.status_code == 409
        assert stock_of(product_a.id) == 10

    def test_foreign_order_is_404(self, client, db_session, tenant_a, tenant_b, product_a):
        order_id = self._place(client, product_a.id)

        resp = client.get(f"/api/orders/{order_id}", headers=identity_headers(tenant_b.id))
        assert resp.status_code == 404
        resp = client.post(f"/api/orders/{order_id}/cancel", headers=identity_headers(tenant_b.id))
        assert resp.status_code == 404


class TestAuditRoutes:

    def test_lists_own_entries_only(self, client, db_session, tenant_a, tenant_b, product_a):
        client.post(
            "/api/inventory/movements",
            json={"product_id": product_a.id, "type": "OUT", "quantity": 1},
            headers=identity_headers(tenant_a.id, user_id=4),
        )

        resp = client.get("/api/audit/?action=INVENTORY_MOVE&limit=1", headers=identity_headers(tenant_a.id))
        assert resp.status_code == 200
        entries = resp.get_json()["entries"]
        assert len(entries) == 1
        assert entries[0]["user_id"] == 4

        resp = client.get("/api/audit/", headers=identity_headers(tenant_b.id))
        assert resp.get_json()["entries"] == []

    def test_requires_tenant(self, client, db_session):
        assert client.get("/api/audit/").status_code == 401


class TestHealth:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "healthy"
        assert data["audit_sink"] == "database"
        assert data["checks"]["database"]["details"]["tenants"] == 0
