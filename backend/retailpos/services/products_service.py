# backend/retailpos/services/products_service.py
"""
Products Service

Stock fields are not writable through update: on-hand quantity only moves
through the inventory ledger (inventory_service / sales_service). Initial
stock given on create is written as an IN movement.
"""
from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Brand, Category, Product, SaleItem, StockMovement, Supplier
from ..models.inventory import MOVEMENT_IN
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_product,
    validate_payload,
)
from . import audit_service
from .inventory_service import append_movement

SKU_SEQUENCE_DIGITS = 6
MAX_BATCH_SIZE = 500

_EDITABLE = {
    "sku",
    "barcode",
    "name",
    "description",
    "brand_id",
    "category_id",
    "supplier_id",
    "size",
    "color",
    "base_code",
    "sale_price_cents",
    "cost_price_cents",
    "stock_min",
}

CREATE_POLICY = ModelValidationPolicy(
    writable_fields=_EDITABLE | {"stock_cached"},
    required_on_create={"name"},
)

UPDATE_POLICY = ModelValidationPolicy(writable_fields=set(_EDITABLE))

_REFERENCES = (
    ("brand_id", Brand),
    ("category_id", Category),
    ("supplier_id", Supplier),
)


def _sku_stem(now: datetime | None = None) -> str:
    zone = ZoneInfo(current_app.config["STORE_TIMEZONE"])
    local = (now or datetime.now(timezone.utc)).astimezone(zone)
    return f"{current_app.config['SKU_PREFIX']}-{local.year}-{local.month:02d}-"


def _next_sku_number(stem: str) -> int:
    last = (
        db.session.query(Product.sku)
        .filter(Product.sku.like(f"{stem}%"))
        .order_by(Product.sku.desc())
        .first()
    )
    if not last:
        return 1
    tail = last.sku[len(stem):]
    return int(tail) + 1 if tail.isdigit() else 1


def generate_skus(count: int = 1, now: datetime | None = None) -> list[str]:
    """Sequential SKUs like FEM-2024-05-000001, numbered per month."""
    stem = _sku_stem(now)
    start = _next_sku_number(stem)
    return [f"{stem}{n:0{SKU_SEQUENCE_DIGITS}d}" for n in range(start, start + count)]


def _check_references(patch: dict) -> None:
    for field, model in _REFERENCES:
        ref_id = patch.get(field)
        if ref_id is not None and db.session.get(model, ref_id) is None:
            raise ValidationError(f"{field} {ref_id} does not exist")


def _check_sku_free(sku: str, product_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.sku == sku)
    if product_id is not None:
        q = q.filter(Product.id != product_id)
    if q.first():
        raise ConflictError(f"SKU already exists: {sku}")


def _get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def list_products(*, include_inactive: bool = False, search: str | None = None) -> list[dict]:
    q = db.session.query(Product)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    if search:
        term = f"%{search.strip()}%"
        q = q.filter(db.or_(
            Product.name.ilike(term),
            Product.sku.ilike(term),
            Product.barcode.ilike(term),
        ))
    products = q.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return [p.to_dict() for p in products]


def create_products(payloads, *, user_id: int | None) -> list[dict]:
    """
    Create one or many products in one transaction.

    Each payload may omit `sku` (generated) and `stock_cached` (starts at 0;
    null means stock is not tracked). Positive initial stock is recorded as
    an IN movement.
    """
    if isinstance(payloads, dict):
        payloads = [payloads]
    if not isinstance(payloads, list) or not payloads:
        raise ValidationError("Expected a product object or a non-empty list of products")
    if len(payloads) > MAX_BATCH_SIZE:
        raise ValidationError(f"At most {MAX_BATCH_SIZE} products per request")

    patches = []
    for index, payload in enumerate(payloads):
        try:
            patch = validate_payload(model=Product, payload=payload, policy=CREATE_POLICY, partial=False)
            enforce_rules_product(patch)
        except ValidationError as e:
            raise ValidationError(f"Product {index}: {e}")
        patches.append(patch)

    generated = iter(generate_skus(sum(1 for p in patches if not p.get("sku"))))
    seen = set()
    for patch in patches:
        if not patch.get("sku"):
            patch["sku"] = next(generated)
        if patch["sku"] in seen:
            raise ConflictError(f"Duplicate SKU in request: {patch['sku']}")
        seen.add(patch["sku"])
        _check_sku_free(patch["sku"])
        _check_references(patch)

    created = []
    try:
        for patch in patches:
            tracked = "stock_cached" not in patch or patch["stock_cached"] is not None
            initial = patch.pop("stock_cached", 0) or 0
            product = Product(**patch, stock_cached=0 if tracked else None)
            db.session.add(product)
            db.session.flush()
            if initial > 0:
                append_movement(
                    product,
                    movement_type=MOVEMENT_IN,
                    quantity=initial,
                    user_id=user_id,
                    note="Initial stock",
                )
            created.append(product)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Product conflicts with an existing product")
    except Exception:
        db.session.rollback()
        raise

    for product in created:
        audit_service.record(
            user_id, audit_service.CREATE_PRODUCT, product.name,
            product_id=product.id, product_sku=product.sku,
        )
    return [p.to_dict() for p in created]


def get_product(product_id: int, *, user_id: int | None = None) -> dict:
    product = _get_product(product_id)
    audit_service.record(
        user_id, audit_service.VIEW_PRODUCT, product.name,
        product_id=product.id, product_sku=product.sku,
    )
    return product.to_dict()


def get_product_by_sku(sku: str) -> dict:
    product = db.session.query(Product).filter(Product.sku == sku.strip()).first()
    if not product:
        raise NotFoundError("Product not found")
    return product.to_dict()


def update_product(product_id: int, payload: dict, *, user_id: int | None) -> dict:
    product = _get_product(product_id)
    patch = validate_payload(model=Product, payload=payload, policy=UPDATE_POLICY, partial=True)
    enforce_rules_product(patch)

    if "sku" in patch and patch["sku"] != product.sku:
        _check_sku_free(patch["sku"], product.id)
    _check_references(patch)

    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()

    audit_service.record(
        user_id, audit_service.UPDATE_PRODUCT,
        f"Updated fields: {', '.join(sorted(patch.keys()))}",
        product_id=product.id, product_sku=product.sku,
    )
    return product.to_dict()


def get_deletability(product_id: int) -> dict:
    """A product with ledger or sales history can only be deactivated."""
    product = _get_product(product_id)
    movements = db.session.query(StockMovement).filter(StockMovement.product_id == product.id).count()
    sales = db.session.query(SaleItem).filter(SaleItem.product_id == product.id).count()
    has_history = bool(movements or sales)
    return {
        "can_be_deleted": not has_history,
        "has_history": has_history,
        "details": {"movements": movements, "sales": sales},
    }


def delete_product(product_id: int, *, user_id: int | None) -> dict:
    """
    Hard delete when the product has no history; soft deactivate otherwise
    so historical sales and movements keep their references.
    """
    product = _get_product(product_id)
    check = get_deletability(product.id)
    sku, name = product.sku, product.name

    if check["can_be_deleted"]:
        db.session.delete(product)
        result = {"deleted": True, "deactivated": False}
    else:
        product.is_active = False
        result = {"deleted": False, "deactivated": True}
    db.session.commit()

    audit_service.record(
        user_id, audit_service.DELETE_PRODUCT,
        f"{name} ({'deleted' if result['deleted'] else 'deactivated'})",
        product_id=product_id, product_sku=sku,
    )
    return result


def reactivate_product(product_id: int, *, user_id: int | None) -> dict:
    product = _get_product(product_id)
    if product.is_active:
        raise ConflictError("Product is already active")
    product.is_active = True
    db.session.commit()

    audit_service.record(
        user_id, audit_service.UPDATE_PRODUCT, "Reactivated",
        product_id=product.id, product_sku=product.sku,
    )
    return product.to_dict()


def list_low_stock() -> list[dict]:
    products = (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.stock_cached.isnot(None),
            Product.stock_cached <= Product.stock_min,
        )
        .order_by(Product.stock_cached.asc(), Product.name.asc())
        .all()
    )
    return [p.to_dict() for p in products]
