"""
Product and catalog service tests.
"""

from datetime import datetime, timezone

import pytest

from retailpos.extensions import db
from retailpos.models import ActivityLog, Product, StockMovement
from retailpos.models.inventory import MOVEMENT_IN
from retailpos.services import audit_service, catalog_service, products_service, sales_service
from retailpos.validation import ConflictError, NotFoundError, ValidationError

from conftest import make_product


class TestSkuGeneration:
    def test_sequence_starts_at_one(self, db_session):
        skus = products_service.generate_skus(2, now=datetime(2024, 5, 20, tzinfo=timezone.utc))
        assert skus == ["FEM-2024-05-000001", "FEM-2024-05-000002"]

    def test_continues_after_last_sku_of_the_month(self, db_session):
        make_product(db_session, sku="FEM-2024-05-000041", name="Existing")
        make_product(db_session, sku="FEM-2024-04-000099", name="Last month")

        skus = products_service.generate_skus(1, now=datetime(2024, 5, 20, tzinfo=timezone.utc))
        assert skus == ["FEM-2024-05-000042"]


class TestCreateProducts:
    def test_single_product_with_initial_stock(self, db_session, manager_user, brand, category):
        created = products_service.create_products(
            {
                "name": "Linen Shirt",
                "sku": "LIN-01",
                "sale_price_cents": 4990,
                "stock_cached": 12,
                "stock_min": 3,
                "brand_id": brand.id,
                "category_id": category.id,
            },
            user_id=manager_user.id,
        )

        assert len(created) == 1
        product = created[0]
        assert product["stock_cached"] == 12
        assert product["brand"]["name"] == "ACME"

        movements = db_session.query(StockMovement).filter_by(product_id=product["id"]).all()
        assert [(m.type, m.quantity) for m in movements] == [(MOVEMENT_IN, 12)]
        assert db_session.query(ActivityLog).filter_by(action=audit_service.CREATE_PRODUCT).count() == 1

    def test_batch_generates_skus(self, db_session, manager_user):
        created = products_service.create_products(
            [{"name": "A"}, {"name": "B", "sku": "CUSTOM-B"}, {"name": "C"}],
            user_id=manager_user.id,
        )
        skus = [p["sku"] for p in created]
        assert skus[1] == "CUSTOM-B"
        assert skus[0].endswith("-000001")
        assert skus[2].endswith("-000002")

    def test_null_stock_means_untracked(self, db_session, manager_user):
        product = products_service.create_products(
            {"name": "Gift Card", "stock_cached": None}, user_id=manager_user.id
        )[0]
        assert product["stock_cached"] is None
        assert product["is_low_stock"] is False

    def test_batch_is_all_or_nothing(self, db_session, manager_user):
        with pytest.raises(ValidationError):
            products_service.create_products(
                [{"name": "Good"}, {"name": "Bad", "sale_price_cents": -1}],
                user_id=manager_user.id,
            )
        assert db_session.query(Product).count() == 0

    def test_duplicate_sku_conflicts(self, db_session, manager_user, product):
        with pytest.raises(ConflictError):
            products_service.create_products({"name": "Dup", "sku": "TEE-001"}, user_id=manager_user.id)

    def test_unknown_fields_and_references_rejected(self, db_session, manager_user):
        with pytest.raises(ValidationError):
            products_service.create_products({"name": "X", "version_id": 5}, user_id=manager_user.id)
        with pytest.raises(ValidationError):
            products_service.create_products({"name": "X", "brand_id": 999}, user_id=manager_user.id)


class TestUpdateProduct:
    def test_updates_fields(self, db_session, manager_user, product):
        updated = products_service.update_product(
            product.id, {"name": "Premium Tee", "sale_price_cents": 1500}, user_id=manager_user.id
        )
        assert updated["name"] == "Premium Tee"
        assert updated["sale_price_cents"] == 1500

    def test_stock_is_not_writable(self, db_session, manager_user, product):
        with pytest.raises(ValidationError):
            products_service.update_product(product.id, {"stock_cached": 500}, user_id=manager_user.id)

    def test_sku_clash(self, db_session, manager_user, product, other_product):
        with pytest.raises(ConflictError):
            products_service.update_product(product.id, {"sku": "CAP-001"}, user_id=manager_user.id)

    def test_missing_product(self, db_session, manager_user):
        with pytest.raises(NotFoundError):
            products_service.update_product(999, {"name": "Nope"}, user_id=manager_user.id)


class TestDeleteProduct:
    def test_product_without_history_is_hard_deleted(self, db_session, manager_user):
        fresh = make_product(db_session, sku="NEW-1", name="Never stocked", stock=0)

        assert products_service.get_deletability(fresh.id)["can_be_deleted"] is True
        result = products_service.delete_product(fresh.id, user_id=manager_user.id)

        assert result == {"deleted": True, "deactivated": False}
        assert db.session.get(Product, fresh.id) is None

    def test_product_with_history_is_deactivated(self, db_session, manager_user, employee_user, product):
        sales_service.create_sale(items=[{"product_id": product.id, "quantity": 1}], acting_user_id=employee_user.id)

        check = products_service.get_deletability(product.id)
        assert check["has_history"] is True
        assert check["details"] == {"movements": 2, "sales": 1}

        result = products_service.delete_product(product.id, user_id=manager_user.id)
        assert result == {"deleted": False, "deactivated": True}
        assert db.session.get(Product, product.id).is_active is False

    def test_reactivate(self, db_session, manager_user, product):
        products_service.delete_product(product.id, user_id=manager_user.id)
        restored = products_service.reactivate_product(product.id, user_id=manager_user.id)
        assert restored["is_active"] is True

        with pytest.raises(ConflictError):
            products_service.reactivate_product(product.id, user_id=manager_user.id)


class TestLookups:
    def test_get_records_a_view(self, db_session, employee_user, product):
        products_service.get_product(product.id, user_id=employee_user.id)
        entry = db_session.query(ActivityLog).filter_by(action=audit_service.VIEW_PRODUCT).one()
        assert entry.product_id == product.id

    def test_get_by_sku(self, db_session, product):
        assert products_service.get_product_by_sku(" TEE-001 ")["id"] == product.id
        with pytest.raises(NotFoundError):
            products_service.get_product_by_sku("MISSING")

    def test_low_stock(self, db_session):
        low = make_product(db_session, sku="LOW-1", name="Low", stock=2, stock_min=2)
        make_product(db_session, sku="OK-1", name="Fine", stock=9, stock_min=2)
        make_product(db_session, sku="UNT-1", name="Untracked", stock=None, stock_min=5)
        make_product(db_session, sku="OFF-1", name="Inactive", stock=0, stock_min=1, is_active=False)

        assert [p["id"] for p in products_service.list_low_stock()] == [low.id]

    def test_list_hides_inactive_by_default(self, db_session, product):
        make_product(db_session, sku="OFF-2", name="Hidden", is_active=False)
        assert [p["sku"] for p in products_service.list_products()] == ["TEE-001"]
        assert len(products_service.list_products(include_inactive=True)) == 2


class TestCatalog:
    def test_brand_names_are_trimmed_and_upper_cased(self, db_session):
        brand = catalog_service.create_entry("brands", {"name": "  levi's "})
        assert brand["name"] == "LEVI'S"

    def test_duplicate_category_conflicts(self, db_session, category):
        with pytest.raises(ConflictError):
            catalog_service.create_entry("categories", {"name": "shirts"})

    def test_supplier_keeps_case_and_contact(self, db_session):
        supplier = catalog_service.create_entry("suppliers", {"name": " Textiles Andinos ", "contact": " ventas@ta.co "})
        assert supplier["name"] == "Textiles Andinos"
        assert supplier["contact"] == "ventas@ta.co"

    def test_list_ordered_by_name(self, db_session):
        for name in ("zeta", "alpha", "mid"):
            catalog_service.create_entry("categories", {"name": name})
        assert [c["name"] for c in catalog_service.list_entries("categories")] == ["ALPHA", "MID", "ZETA"]

    def test_update(self, db_session, brand):
        updated = catalog_service.update_entry("brands", brand.id, {"name": "acme plus"})
        assert updated["name"] == "ACME PLUS"
        with pytest.raises(NotFoundError):
            catalog_service.update_entry("brands", 999, {"name": "x"})

    def test_blank_name_rejected(self, db_session):
        with pytest.raises(ValidationError):
            catalog_service.create_entry("brands", {"name": "   "})


class TestCatalogDelete:
    def test_unused_entry_is_deleted(self, db_session, brand):
        catalog_service.delete_entry("brands", brand.id)
        assert catalog_service.list_entries("brands") == []

    def test_entry_in_use_conflicts(self, db_session, category, product):
        with pytest.raises(ConflictError):
            catalog_service.delete_entry("categories", category.id)
        assert len(catalog_service.list_entries("categories")) == 1

    def test_supplier_in_use_conflicts(self, db_session, manager_user):
        supplier = catalog_service.create_entry("suppliers", {"name": "Textiles Andinos"})
        products_service.create_products(
            {"name": "Wool Socks", "supplier_id": supplier["id"]}, user_id=manager_user.id
        )
        with pytest.raises(ConflictError):
            catalog_service.delete_entry("suppliers", supplier["id"])

    def test_missing_entry(self, db_session):
        with pytest.raises(NotFoundError):
            catalog_service.delete_entry("suppliers", 999)
