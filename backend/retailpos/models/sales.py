from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow


def bps_to_str(bps: int | None) -> str | None:
    """Render basis points as a plain decimal string (1900 -> "0.19")."""
    if bps is None:
        return None
    return format((Decimal(bps) / Decimal(10000)).normalize(), "f")


class Sale(db.Model):
    """
    Sale aggregate root.

    Created once, together with all of its items and their stock movements,
    inside a single DB transaction. Never updated afterwards.

    All amounts in minor units; tax_rate_bps is the sale-level rate in basis
    points (1900 = 19%).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_created_at", "created_at"),
        db.Index("ix_sales_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    tax_rate_bps = db.Column(db.Integer, nullable=False)
    tax_included = db.Column(db.Boolean, nullable=False, default=False)
    total_cents = db.Column(db.Integer, nullable=False)

    user = db.relationship("User", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleItem.id",
        lazy=True,
    )

    @property
    def items_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "tax_rate": bps_to_str(self.tax_rate_bps),
            "tax_included": self.tax_included,
            "total_cents": self.total_cents,
        }
        if include_items:
            data["user"] = self.user.to_summary() if self.user else None
            data["items"] = [item.to_dict() for item in self.items]
            data["items_count"] = self.items_count
        return data


class SaleItem(db.Model):
    """
    Line item on a sale.

    unit_price_cents is captured at sale time and never recomputed.
    discount_bps is a percentage in basis points (0..10000 = 0..100%).
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint(
            "discount_bps >= 0 AND discount_bps <= 10000",
            name="ck_sale_items_discount_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_bps = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product", backref=db.backref("sale_items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_percent": bps_to_str(self.discount_bps * 100),
            "line_total_cents": self.line_total_cents,
        }
