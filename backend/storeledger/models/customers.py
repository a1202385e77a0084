from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


DEBT_ACTIVE = "active"
DEBT_PAID = "paid"


class Customer(db.Model):
    """
    Store customer, identified by phone number within the store.

    MULTI-TENANT: (store_id, phone) is unique; the same phone may exist in
    other stores as an unrelated customer.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("store_id", "phone", name="uq_customers_store_phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "phone": self.phone,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Debt(db.Model):
    """
    Running balance a customer owes the store.

    INVARIANTS:
    - total_amount = paid_amount + remaining_amount
    - remaining_amount >= 0
    - status == 'paid' exactly when remaining_amount <= 0; paid is never reopened
    - at most one 'active' debt per customer (partial unique index)

    customer_name / customer_phone are denormalized copies of the owning
    customer, rewritten when customers are merged.
    """
    __tablename__ = "debts"
    __table_args__ = (
        db.CheckConstraint(
            "total_amount = paid_amount + remaining_amount",
            name="ck_debts_balance",
        ),
        db.CheckConstraint("remaining_amount >= 0", name="ck_debts_remaining_nonnegative"),
        db.CheckConstraint("paid_amount >= 0", name="ck_debts_paid_nonnegative"),
        db.Index(
            "uq_debts_one_active_per_customer",
            "customer_id",
            unique=True,
            sqlite_where=db.text("status = 'active'"),
            postgresql_where=db.text("status = 'active'"),
        ),
        db.Index("ix_debts_store_status", "store_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    customer_name = db.Column(db.String(128), nullable=False)
    customer_phone = db.Column(db.String(32), nullable=False)

    total_amount = db.Column(db.Integer, nullable=False, default=0)
    paid_amount = db.Column(db.Integer, nullable=False, default=0)
    remaining_amount = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=DEBT_ACTIVE)  # active, paid

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer")
    payments = db.relationship(
        "DebtPayment",
        backref="debt",
        lazy=True,
        order_by="DebtPayment.paid_at.desc()",
    )
    sale_links = db.relationship("DebtSale", backref="debt", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "total_amount": self.total_amount,
            "paid_amount": self.paid_amount,
            "remaining_amount": self.remaining_amount,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class DebtPayment(db.Model):
    """
    Append-only record of money received against a debt.

    IMMUTABLE: amount and paid_at never change once written.
    """
    __tablename__ = "debt_payments"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_debt_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    debt_id = db.Column(db.Integer, db.ForeignKey("debts.id"), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "debt_id": self.debt_id,
            "amount": self.amount,
            "paid_at": to_utc_z(self.paid_at),
        }


class DebtSale(db.Model):
    """Join between a debt-financed sale and the debt it accrued to."""
    __tablename__ = "debt_sales"
    __table_args__ = (
        db.UniqueConstraint("sale_id", name="uq_debt_sales_sale"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    debt_id = db.Column(db.Integer, db.ForeignKey("debts.id"), nullable=False, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False)

    sale = db.relationship("Sale")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "debt_id": self.debt_id,
            "sale_id": self.sale_id,
        }
