from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


DISCOUNT_PERCENT = "percent"
DISCOUNT_FIXED = "fixed"
DISCOUNT_TYPES = (DISCOUNT_PERCENT, DISCOUNT_FIXED)


class Promotion(db.Model):
    """
    Store promotion applied to the products linked through PromotionProduct.

    discount_value is a whole percent (0..100) for percent promotions and an
    amount in the smallest currency unit for fixed ones. start_at / end_at are
    each optional; a missing bound leaves that side of the window open.
    """
    __tablename__ = "promotions"
    __table_args__ = (
        db.Index("ix_promotions_store_active", "store_id", "active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    discount_type = db.Column(db.String(16), nullable=False)  # percent, fixed
    discount_value = db.Column(db.Integer, nullable=False, default=0)

    active = db.Column(db.Boolean, nullable=False, default=True)
    start_at = db.Column(db.DateTime, nullable=True)
    end_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    products = db.relationship(
        "PromotionProduct",
        backref="promotion",
        lazy=True,
        cascade="all, delete-orphan",
    )

    def is_live(self, now) -> bool:
        if not self.active:
            return False
        if self.start_at is not None and self.start_at > now:
            return False
        if self.end_at is not None and self.end_at < now:
            return False
        return True

    def to_dict(self, include_products: bool = True) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "active": self.active,
            "start_at": to_utc_z(self.start_at),
            "end_at": to_utc_z(self.end_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_products:
            data["products"] = [link.to_dict() for link in self.products]
        return data


class PromotionProduct(db.Model):
    """Links a product to a promotion, optionally overriding type and value for that product."""
    __tablename__ = "promotion_products"
    __table_args__ = (
        db.UniqueConstraint("promotion_id", "product_id", name="uq_promotion_products_pair"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    promotion_id = db.Column(db.Integer, db.ForeignKey("promotions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    override_discount_type = db.Column(db.String(16), nullable=True)
    override_discount_value = db.Column(db.Integer, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "promotion_id": self.promotion_id,
            "product_id": self.product_id,
            "override_discount_type": self.override_discount_type,
            "override_discount_value": self.override_discount_value,
        }


class Bundle(db.Model):
    """Fixed-price set of products sold together."""
    __tablename__ = "bundles"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    items = db.relationship(
        "BundleItem",
        backref="bundle",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="BundleItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "price": self.price,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class BundleItem(db.Model):
    __tablename__ = "bundle_items"
    __table_args__ = (
        db.UniqueConstraint("bundle_id", "product_id", name="uq_bundle_items_pair"),
        db.CheckConstraint("quantity > 0", name="ck_bundle_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bundle_id = db.Column(db.Integer, db.ForeignKey("bundles.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bundle_id": self.bundle_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
        }
