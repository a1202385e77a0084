from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PLAN_STANDARD = "STANDARD"
PLAN_PREMIUM = "PREMIUM"


class Store(db.Model):
    """
    Tenant boundary: every ledger row belongs to exactly one store.

    The store record itself is provisioned elsewhere; the ledger only reads
    is_active, plan and subscription_ends_at to decide whether a request may
    proceed.
    """
    __tablename__ = "stores"
    __table_args__ = (
        db.UniqueConstraint("slug", name="uq_stores_slug"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    slug = db.Column(db.String(64), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    plan = db.Column(db.String(16), nullable=False, default=PLAN_STANDARD)  # STANDARD, PREMIUM
    subscription_ends_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<Store id={self.id} slug={self.slug!r}>"

    def subscription_expired(self, now=None) -> bool:
        if self.subscription_ends_at is None:
            return False
        return (now or utcnow()) > self.subscription_ends_at

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "phone": self.phone,
            "is_active": self.is_active,
            "plan": self.plan,
            "subscription_ends_at": to_utc_z(self.subscription_ends_at),
            "created_at": to_utc_z(self.created_at),
        }


class DocumentSequence(db.Model):
    """Per-store counter used to hand out sale numbers without gaps or repeats."""
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("store_id", "document_type", name="uq_docseq_store_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
