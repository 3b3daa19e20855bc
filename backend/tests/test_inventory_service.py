"""
Stock ledger tests: receipts, adjustments, movement history and drift reports.
"""

import pytest

from retailpos.extensions import db
from retailpos.models import ActivityLog, Product, StockMovement
from retailpos.models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from retailpos.services import audit_service, inventory_service
from retailpos.validation import ConflictError, NotFoundError, ValidationError

from conftest import make_product


class TestReceiveStock:
    def test_increments_cache_and_appends_in_movement(self, db_session, product, manager_user):
        result = inventory_service.receive_stock(
            product_id=product.id, quantity=5, user_id=manager_user.id, note="Supplier delivery"
        )

        assert result["product"]["stock_cached"] == 15
        assert result["movement"]["type"] == MOVEMENT_IN
        assert result["movement"]["quantity"] == 5
        assert inventory_service.ledger_quantity(product.id) == 15

    def test_logs_receipt(self, db_session, product, manager_user):
        inventory_service.receive_stock(product_id=product.id, quantity=2, user_id=manager_user.id)
        entry = db_session.query(ActivityLog).filter_by(action=audit_service.RECEIVE_STOCK).one()
        assert entry.product_sku == "TEE-001"
        assert entry.user_id == manager_user.id

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_requires_positive_quantity(self, db_session, product, manager_user, quantity):
        with pytest.raises(ValidationError):
            inventory_service.receive_stock(product_id=product.id, quantity=quantity, user_id=manager_user.id)

    def test_unknown_product(self, db_session, manager_user):
        with pytest.raises(NotFoundError):
            inventory_service.receive_stock(product_id=999, quantity=1, user_id=manager_user.id)

    def test_untracked_product_is_refused(self, db_session, manager_user):
        service = make_product(db_session, sku="SVC-2", name="Alterations", stock=None)
        with pytest.raises(ValidationError):
            inventory_service.receive_stock(product_id=service.id, quantity=1, user_id=manager_user.id)


class TestAdjustStock:
    def test_negative_delta_is_out_movement(self, db_session, product, manager_user):
        result = inventory_service.adjust_stock(
            product_id=product.id, quantity_delta=-4, user_id=manager_user.id, note="Damaged"
        )
        assert result["product"]["stock_cached"] == 6
        assert result["movement"]["type"] == MOVEMENT_OUT
        assert result["movement"]["quantity"] == 4

    def test_positive_delta_is_in_movement(self, db_session, product, manager_user):
        result = inventory_service.adjust_stock(product_id=product.id, quantity_delta=2, user_id=manager_user.id)
        assert result["movement"]["type"] == MOVEMENT_IN
        assert result["product"]["stock_cached"] == 12

    def test_cannot_go_negative(self, db_session, product, manager_user):
        with pytest.raises(ConflictError):
            inventory_service.adjust_stock(product_id=product.id, quantity_delta=-11, user_id=manager_user.id)

        db.session.expire_all()
        assert db.session.get(Product, product.id).stock_cached == 10
        assert db_session.query(StockMovement).filter_by(product_id=product.id).count() == 1

    def test_zero_delta_rejected(self, db_session, product, manager_user):
        with pytest.raises(ValidationError):
            inventory_service.adjust_stock(product_id=product.id, quantity_delta=0, user_id=manager_user.id)


class TestLedger:
    def test_movements_newest_first(self, db_session, product, manager_user):
        inventory_service.receive_stock(product_id=product.id, quantity=1, user_id=manager_user.id, note="a")
        inventory_service.adjust_stock(product_id=product.id, quantity_delta=-2, user_id=manager_user.id, note="b")

        movements = inventory_service.list_movements(product_id=product.id)
        assert [m["note"] for m in movements] == ["b", "a", "Opening stock"]

    def test_movement_limit_validated(self, db_session, product):
        with pytest.raises(ValidationError):
            inventory_service.list_movements(product_id=product.id, limit=0)

    def test_drift_is_reported_not_repaired(self, db_session, product, other_product):
        row = db.session.get(Product, product.id)
        row.stock_cached = 42
        db.session.commit()

        drift = inventory_service.find_ledger_drift()

        assert drift == [{
            "product_id": product.id,
            "sku": "TEE-001",
            "stock_cached": 42,
            "ledger_quantity": 10,
            "difference": 32,
        }]
        db.session.expire_all()
        assert db.session.get(Product, product.id).stock_cached == 42

    def test_clean_ledger_has_no_drift(self, db_session, product, other_product):
        assert inventory_service.find_ledger_drift() == []


class TestUntrackedProducts:
    def test_null_stock_is_persisted_as_null(self, db_session):
        row = Product(sku="GIFT-1", name="Gift wrap", stock_cached=None)
        db_session.add(row)
        db_session.commit()

        db.session.expire_all()
        assert db.session.get(Product, row.id).stock_cached is None
        assert inventory_service.find_ledger_drift() == []
