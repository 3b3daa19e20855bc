"""
HTTP-level tests for the sale endpoint, inventory, catalog, logs and health.
"""

from sqlalchemy.exc import SQLAlchemyError

from retailpos.extensions import db
from retailpos.models import Product


class TestCreateSaleEndpoint:
    def test_returns_folio_and_hydrated_sale(self, client, employee_headers, product):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product.id, "quantity": 2}]},
            headers=employee_headers,
        )

        assert resp.status_code == 201
        body = resp.json
        assert body["folio"] == body["sale"]["id"]
        assert body["sale"]["subtotal_cents"] == 2000
        assert body["sale"]["tax_cents"] == 380
        assert body["sale"]["total_cents"] == 2380
        assert body["sale"]["items"][0]["product"]["sku"] == "TEE-001"

        db.session.expire_all()
        assert db.session.get(Product, product.id).stock_cached == 8

    def test_insufficient_stock_is_409(self, client, employee_headers, product):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product.id, "quantity": 11}]},
            headers=employee_headers,
        )

        assert resp.status_code == 409
        assert resp.json["details"]["product_id"] == product.id
        assert resp.json["details"]["available"] == 10
        assert resp.json["details"]["requested"] == 11

    def test_unknown_product_is_404(self, client, employee_headers):
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": 999, "quantity": 1}]},
            headers=employee_headers,
        )
        assert resp.status_code == 404

    def test_empty_items_is_400(self, client, employee_headers):
        resp = client.post("/api/sales", json={"items": []}, headers=employee_headers)
        assert resp.status_code == 400

    def test_summary(self, client, employee_headers, product):
        client.post("/api/sales", json={"items": [{"product_id": product.id, "quantity": 3}]}, headers=employee_headers)

        resp = client.get("/api/sales/summary", headers=employee_headers)
        assert resp.status_code == 200
        day = resp.json["summary"][0]
        assert day["sales_count"] == 1
        assert day["total_amount_cents"] == 3570
        assert day["top_categories"] == [{"name": "SHIRTS", "quantity": 3}]

    def test_bad_date_filter_is_400(self, client, employee_headers):
        resp = client.get("/api/sales?start_date=not-a-date", headers=employee_headers)
        assert resp.status_code == 400


class TestInventoryEndpoints:
    def test_receive_and_movements(self, client, manager_headers, product):
        resp = client.post(
            f"/api/inventory/{product.id}/receive",
            json={"quantity": 4, "note": "Delivery"},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        assert resp.json["product"]["stock_cached"] == 14

        movements = client.get(f"/api/inventory/{product.id}/movements", headers=manager_headers)
        assert movements.status_code == 200
        assert movements.json["ledger_quantity"] == 14
        assert len(movements.json["movements"]) == 2

    def test_adjust_below_zero_is_409(self, client, manager_headers, product):
        resp = client.post(
            f"/api/inventory/{product.id}/adjust",
            json={"quantity_delta": -50},
            headers=manager_headers,
        )
        assert resp.status_code == 409

    def test_non_integer_quantity_is_400(self, client, manager_headers, product):
        resp = client.post(
            f"/api/inventory/{product.id}/receive",
            json={"quantity": "2.5"},
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_ledger_check(self, client, manager_headers, product):
        resp = client.get("/api/inventory/ledger-check", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json == {"ok": True, "drift": []}


class TestProductAndCatalogEndpoints:
    def test_create_single_and_batch(self, client, manager_headers):
        single = client.post("/api/products", json={"name": "Scarf", "stock_cached": 3}, headers=manager_headers)
        assert single.status_code == 201
        assert single.json["product"]["stock_cached"] == 3

        batch = client.post("/api/products", json=[{"name": "Hat"}, {"name": "Belt"}], headers=manager_headers)
        assert batch.status_code == 201
        assert batch.json["count"] == 2

    def test_update_cannot_touch_stock(self, client, manager_headers, product):
        resp = client.put(f"/api/products/{product.id}", json={"stock_cached": 99}, headers=manager_headers)
        assert resp.status_code == 400
        assert "stock_cached" in resp.json["error"]

    def test_catalog_kinds(self, client, manager_headers):
        created = client.post("/api/catalog/brands", json={"name": "nike"}, headers=manager_headers)
        assert created.status_code == 201
        assert created.json["item"]["name"] == "NIKE"

        dup = client.post("/api/catalog/brands", json={"name": "Nike"}, headers=manager_headers)
        assert dup.status_code == 409

        assert client.get("/api/catalog/colors", headers=manager_headers).status_code == 404


class TestLogsEndpoint:
    def test_admin_sees_sale_in_activity_log(self, client, admin_headers, employee_headers, product):
        client.post("/api/sales", json={"items": [{"product_id": product.id, "quantity": 1}]}, headers=employee_headers)

        resp = client.get("/api/logs?action=CREATE_SALE", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["total"] == 1
        assert resp.json["logs"][0]["user"]["email"] == "employee@test.local"


class TestHealthAndCors:
    def test_health(self, client, db_session, product):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert set(resp.json["checks"]) == {"database", "session_service", "ledger"}

    def test_health_degraded_on_drift(self, client, db_session, product):
        product.stock_cached = 3
        db_session.commit()

        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "degraded"

    def test_cors_for_allowed_origin(self, client, db_session):
        resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        other = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in other.headers


class TestSaleEndpointFailures:
    def test_persistence_failure_is_generic_500(self, client, employee_headers, product, monkeypatch):
        real_flush = db.session.flush
        calls = {"n": 0}

        def flush(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise SQLAlchemyError("disk I/O error")
            return real_flush(*args, **kwargs)

        monkeypatch.setattr(db.session, "flush", flush)
        resp = client.post(
            "/api/sales",
            json={"items": [{"product_id": product.id, "quantity": 1}]},
            headers=employee_headers,
        )
        monkeypatch.undo()

        assert resp.status_code == 500
        assert resp.json == {"error": "Failed to create sale"}
        db.session.expire_all()
        assert db.session.get(Product, product.id).stock_cached == 10


class TestCatalogDeleteEndpoint:
    def test_delete_unused_and_refuse_used(self, client, manager_headers, brand, category, product):
        assert client.delete(f"/api/catalog/brands/{brand.id}", headers=manager_headers).status_code == 204
        assert client.delete(f"/api/catalog/categories/{category.id}", headers=manager_headers).status_code == 409
        assert client.delete("/api/catalog/brands/999", headers=manager_headers).status_code == 404

    def test_employee_cannot_delete(self, client, employee_headers, brand):
        assert client.delete(f"/api/catalog/brands/{brand.id}", headers=employee_headers).status_code == 403
