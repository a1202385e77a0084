from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_DEBT = "debt"
PAYMENT_TYPES = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_DEBT)


class Sale(db.Model):
    """
    Completed sale.

    Sales are written once by sales_service.post_sale (or by order delivery)
    and never edited afterwards. total_amount is the sum of the line totals
    supplied at posting time. order_id is set for sales produced by delivering
    an online order and is unique, so an order can never produce two sales.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("store_id", "sale_number", name="uq_sales_store_number"),
        db.UniqueConstraint("order_id", name="uq_sales_order"),
        db.Index("ix_sales_store_created", "store_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    sale_number = db.Column(db.String(64), nullable=False)
    total_amount = db.Column(db.Integer, nullable=False)
    payment_type = db.Column(db.String(16), nullable=False)  # cash, card, debt
    cashier_name = db.Column(db.String(128), nullable=True)

    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    items = db.relationship("SaleItem", backref="sale", lazy=True, order_by="SaleItem.id")

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "sale_number": self.sale_number,
            "total_amount": self.total_amount,
            "payment_type": self.payment_type,
            "cashier_name": self.cashier_name,
            "order_id": self.order_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Individual line on a sale."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Integer, nullable=False)
    total = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "price": self.price,
            "total": self.total,
        }
