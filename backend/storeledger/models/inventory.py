from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


REASON_IMPORT = "import"
REASON_SALE = "sale"
REASON_EDIT = "edit"
REASON_ORDER_FULFILLMENT = "order_fulfillment"

STOCK_REASONS = (REASON_IMPORT, REASON_SALE, REASON_EDIT, REASON_ORDER_FULFILLMENT)


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to stores via store_id.

    stock_quantity is the on-hand count. It is only ever changed through
    stock_service.adjust_stock, which applies a conditional UPDATE and writes
    a StockMutation in the same transaction. The CHECK constraint is the last
    line of defence against a negative count.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("store_id", "barcode", name="uq_products_store_barcode"),
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_nonnegative"),
        db.CheckConstraint(
            "discount_percent >= 0 AND discount_percent <= 100",
            name="ck_products_discount_percent_range",
        ),
        db.Index("ix_products_store_active", "store_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)
    unit = db.Column(db.String(16), nullable=False, default="dona")

    # Smallest currency unit
    selling_price = db.Column(db.Integer, nullable=False, default=0)
    discount_percent = db.Column(db.Integer, nullable=False, default=0)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock_alert = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    store = db.relationship("Store", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} store_id={self.store_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "barcode": self.barcode,
            "unit": self.unit,
            "selling_price": self.selling_price,
            "discount_percent": self.discount_percent,
            "stock_quantity": self.stock_quantity,
            "min_stock_alert": self.min_stock_alert,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMutation(db.Model):
    """
    Append-only audit row for one stock change.

    IMMUTABLE: Rows are never updated or deleted. stock_after is the quantity
    the conditional UPDATE produced, read back inside the same transaction.
    """
    __tablename__ = "stock_mutations"
    __table_args__ = (
        db.Index("ix_stock_mutations_store_product_created", "store_id", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    delta = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(32), nullable=False, index=True)  # import, sale, edit, order_fulfillment

    actor = db.Column(db.String(128), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "delta": self.delta,
            "stock_after": self.stock_after,
            "reason": self.reason,
            "actor": self.actor,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
        }
