# Overview: Service-layer operations for customer debts; accrual, payments and read models.

from __future__ import annotations

from flask import current_app

from ..errors import InvalidAmountError, NotFoundError
from ..extensions import db
from ..models import Customer, Debt, DebtPayment, DebtSale
from ..models.customers import DEBT_ACTIVE, DEBT_PAID
from .concurrency import lock_for_update, run_with_retry
"""
Debt Ledger Invariants (authoritative)

- total_amount = paid_amount + remaining_amount, remaining_amount >= 0.
- status flips active -> paid when remaining_amount reaches 0 and never back.
- A customer has at most one active debt. New debt sales accrue onto it; once
  it is paid, the next debt sale opens a new one.
- DebtPayment rows are append-only.
"""


def _get_debt(store_id: int, debt_id: int, *, lock: bool = False) -> Debt:
    query = db.session.query(Debt).filter_by(id=debt_id, store_id=store_id)
    if lock:
        query = lock_for_update(query)
    debt = query.first()
    if debt is None:
        raise NotFoundError("Debt not found", details={"debt_id": debt_id})
    return debt


def find_active_debt(store_id: int, customer_id: int, *, lock: bool = False) -> Debt | None:
    query = db.session.query(Debt).filter_by(
        store_id=store_id,
        customer_id=customer_id,
        status=DEBT_ACTIVE,
    )
    if lock:
        query = lock_for_update(query)
    return query.first()


def accrue_debt(*, store_id: int, customer: Customer, amount: int) -> Debt:
    """
    Add amount to the customer's active debt, opening one if none exists.

    Runs inside the caller's transaction (does not commit).
    """
    if amount < 0:
        raise InvalidAmountError("Debt amount must be >= 0", details={"amount": amount})

    debt = find_active_debt(store_id, customer.id, lock=True)
    if debt is not None:
        debt.total_amount += amount
        debt.remaining_amount += amount
    else:
        debt = Debt(
            store_id=store_id,
            customer_id=customer.id,
            customer_name=customer.name,
            customer_phone=customer.phone,
            total_amount=amount,
            paid_amount=0,
            remaining_amount=amount,
            status=DEBT_ACTIVE,
        )
        db.session.add(debt)

    if debt.remaining_amount <= 0:
        debt.status = DEBT_PAID

    db.session.flush()
    return debt


def link_sale(debt: Debt, sale_id: int) -> DebtSale:
    link = DebtSale(debt_id=debt.id, sale_id=sale_id)
    db.session.add(link)
    db.session.flush()
    return link


def apply_payment(store_id: int, debt_id: int, amount: int) -> Debt:
    """
    Record a payment against a debt.

    InvalidAmountError when amount <= 0 or exceeds the remaining balance
    (which includes any payment on an already paid debt).
    """
    def _op():
        debt = _get_debt(store_id, debt_id, lock=True)

        if amount <= 0:
            raise InvalidAmountError("Payment amount must be > 0", details={"amount": amount})
        if amount > debt.remaining_amount:
            raise InvalidAmountError(
                "Payment exceeds remaining amount",
                details={"amount": amount, "remaining_amount": debt.remaining_amount},
            )

        db.session.add(DebtPayment(debt_id=debt.id, amount=amount))
        debt.paid_amount += amount
        debt.remaining_amount -= amount
        if debt.remaining_amount <= 0:
            debt.status = DEBT_PAID

        db.session.commit()
        current_app.logger.info(
            "Debt payment recorded: store=%s debt=%s amount=%s remaining=%s status=%s",
            store_id, debt.id, amount, debt.remaining_amount, debt.status,
        )
        return debt

    return run_with_retry(_op)


def list_debts(store_id: int, status: str | None = None) -> list[Debt]:
    q = db.session.query(Debt).filter(Debt.store_id == store_id)
    if status and status != "all":
        q = q.filter(Debt.status == status)
    return q.order_by(Debt.created_at.desc(), Debt.id.desc()).all()


def list_payments(store_id: int, debt_id: int) -> list[DebtPayment]:
    _get_debt(store_id, debt_id)
    return (
        db.session.query(DebtPayment)
        .filter_by(debt_id=debt_id)
        .order_by(DebtPayment.paid_at.desc(), DebtPayment.id.desc())
        .all()
    )


def get_debt_details(store_id: int, debt_id: int) -> dict:
    """Debt with its payments and the sales (with items) it financed."""
    debt = _get_debt(store_id, debt_id)
    data = debt.to_dict()
    data["payments"] = [p.to_dict() for p in list_payments(store_id, debt_id)]
    data["sales"] = [link.sale.to_dict() for link in debt.sale_links if link.sale is not None]
    return data
