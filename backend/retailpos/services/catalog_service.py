# Overview: Brands, categories and suppliers.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Brand, Category, Product, Supplier
from ..validation import ConflictError, NotFoundError, ValidationError

_PRODUCT_FK = {
    "brands": Product.brand_id,
    "categories": Product.category_id,
    "suppliers": Product.supplier_id,
}

_MODELS = {
    "brands": Brand,
    "categories": Category,
    "suppliers": Supplier,
}

KINDS = tuple(_MODELS)


def _model_for(kind: str):
    model = _MODELS.get(kind)
    if model is None:
        raise NotFoundError(f"Unknown catalog: {kind}")
    return model


def _clean_name(model, value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("name is required")
    name = value.strip()
    # brand and category names are case-insensitive labels
    if model is not Supplier:
        name = name.upper()
    limit = model.__table__.c.name.type.length
    if len(name) > limit:
        raise ValidationError(f"name exceeds max length {limit}")
    return name


def _check_name_free(model, name: str, exclude_id: int | None = None) -> None:
    if model is Supplier:
        return
    q = db.session.query(model.id).filter(func.upper(model.name) == name)
    if exclude_id is not None:
        q = q.filter(model.id != exclude_id)
    if q.first():
        raise ConflictError(f"{name} already exists")


def _clean_contact(value) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("contact must be a string")
    return value.strip() or None


def list_entries(kind: str) -> list[dict]:
    model = _model_for(kind)
    rows = db.session.query(model).order_by(model.name.asc(), model.id.asc()).all()
    return [row.to_dict() for row in rows]


def create_entry(kind: str, payload: dict) -> dict:
    model = _model_for(kind)
    payload = payload or {}
    name = _clean_name(model, payload.get("name"))
    _check_name_free(model, name)

    entry = model(name=name)
    if model is Supplier:
        entry.contact = _clean_contact(payload.get("contact"))

    db.session.add(entry)
    db.session.commit()
    return entry.to_dict()


def update_entry(kind: str, entry_id: int, payload: dict) -> dict:
    model = _model_for(kind)
    entry = db.session.get(model, entry_id)
    if not entry:
        raise NotFoundError(f"{model.__name__} not found")

    payload = payload or {}
    if "name" in payload:
        name = _clean_name(model, payload["name"])
        _check_name_free(model, name, exclude_id=entry.id)
        entry.name = name
    if model is Supplier and "contact" in payload:
        entry.contact = _clean_contact(payload["contact"])

    db.session.commit()
    return entry.to_dict()


def delete_entry(kind: str, entry_id: int) -> None:
    """Delete an entry no product points at; referenced entries are a 409."""
    model = _model_for(kind)
    entry = db.session.get(model, entry_id)
    if not entry:
        raise NotFoundError(f"{model.__name__} not found")

    in_use = db.session.query(Product.id).filter(_PRODUCT_FK[kind] == entry.id).count()
    if in_use:
        raise ConflictError(f"{entry.name} is used by {in_use} product(s)")

    db.session.delete(entry)
    db.session.commit()
