from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow


class ActivityLog(db.Model):
    """
    Activity audit trail (who did what, when).

    Written best-effort after the audited operation has committed, so a
    missing row never implies the operation itself failed.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_user_occurred", "user_id", "occurred_at"),
        db.Index("ix_activity_logs_action_occurred", "action", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    action = db.Column(db.String(32), nullable=False, index=True)

    product_id = db.Column(db.Integer, nullable=True)
    product_sku = db.Column(db.String(64), nullable=True)
    details = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    user = db.relationship("User", backref=db.backref("activity_logs", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user": (
                {"id": self.user.id, "name": self.user.name, "email": self.user.email, "role": self.user.role}
                if self.user else None
            ),
            "action": self.action,
            "product_id": self.product_id,
            "product_sku": self.product_sku,
            "details": self.details,
            "occurred_at": to_utc_z(self.occurred_at),
        }
