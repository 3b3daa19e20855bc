"""
Concurrent sale tests against a file-backed SQLite database.

Two registers selling the same product at once must never oversell:
exactly one sale wins, the other gets InsufficientStockError, and the
cached stock still matches the ledger.
"""

import threading

import pytest

from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import Product, Sale, StockMovement, User
from retailpos.models.auth import ROLE_EMPLOYEE
from retailpos.models.inventory import MOVEMENT_OUT
from retailpos.services import inventory_service, sales_service
from retailpos.services.sales_service import InsufficientStockError

from conftest import PASSWORD_HASH, TEST_CONFIG


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        **TEST_CONFIG,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'concurrency.sqlite3'}",
    })

    with app.app_context():
        db.create_all()

        user = User(name="Till One", email="till@test.local", password_hash=PASSWORD_HASH, role=ROLE_EMPLOYEE)
        product = Product(sku="CONCUR-1", name="Concurrent Product", sale_price_cents=1000, stock_cached=0)
        db.session.add_all([user, product])
        db.session.commit()

        inventory_service.receive_stock(product_id=product.id, quantity=10, user_id=user.id, note="Seed")

        app.config["SEED"] = {"user_id": user.id, "product_id": product.id}

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _sell_concurrently(app, quantity: int, workers: int = 2) -> list:
    seed = app.config["SEED"]
    barrier = threading.Barrier(workers)
    outcomes = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            barrier.wait()
            try:
                sale = sales_service.create_sale(
                    items=[{"product_id": seed["product_id"], "quantity": quantity}],
                    acting_user_id=seed["user_id"],
                )
                result = ("ok", sale["id"])
            except InsufficientStockError as e:
                result = ("insufficient", e.available)
            except Exception as e:
                result = ("error", repr(e))
            finally:
                db.session.remove()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    return outcomes


class TestConcurrentSales:
    def test_two_oversells_yield_one_success(self, file_app):
        outcomes = _sell_concurrently(file_app, quantity=6)

        kinds = sorted(kind for kind, _ in outcomes)
        assert kinds == ["insufficient", "ok"], outcomes
        assert [value for kind, value in outcomes if kind == "insufficient"] == [4]

        with file_app.app_context():
            product = db.session.get(Product, file_app.config["SEED"]["product_id"])
            assert product.stock_cached == 4
            assert db.session.query(Sale).count() == 1
            assert db.session.query(StockMovement).filter_by(type=MOVEMENT_OUT).count() == 1
            assert inventory_service.find_ledger_drift() == []

    def test_sales_that_fit_all_succeed(self, file_app):
        outcomes = _sell_concurrently(file_app, quantity=2, workers=4)

        assert [kind for kind, _ in outcomes] == ["ok"] * 4, outcomes

        with file_app.app_context():
            product = db.session.get(Product, file_app.config["SEED"]["product_id"])
            assert product.stock_cached == 2
            assert inventory_service.ledger_quantity(product.id) == 2
