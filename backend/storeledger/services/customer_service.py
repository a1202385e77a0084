# Overview: Service-layer operations for customers, including the customer merge.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Customer, Debt, DebtPayment, DebtSale, Order
from ..models.customers import DEBT_ACTIVE
from .concurrency import lock_for_update, run_with_retry
from .debt_service import find_active_debt


def get_customer(store_id: int, customer_id: int, *, lock: bool = False) -> Customer:
    query = db.session.query(Customer).filter_by(id=customer_id, store_id=store_id)
    if lock:
        query = lock_for_update(query)
    customer = query.first()
    if customer is None:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def list_customers(store_id: int, search: str | None = None) -> list[Customer]:
    q = db.session.query(Customer).filter(Customer.store_id == store_id)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(Customer.name.ilike(pattern) | Customer.phone.ilike(pattern))
    return q.order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def resolve_customer(store_id: int, name: str, phone: str) -> Customer:
    """
    Find the store's customer by phone, creating it if missing.

    An existing customer's name is refreshed to the one supplied. Runs inside
    the caller's transaction.
    """
    customer = lock_for_update(
        db.session.query(Customer).filter_by(store_id=store_id, phone=phone)
    ).first()
    if customer is None:
        customer = Customer(store_id=store_id, name=name, phone=phone)
        db.session.add(customer)
    elif customer.name != name:
        customer.name = name
    db.session.flush()
    return customer


def _ensure_phone_free(store_id: int, phone: str, exclude_id: int | None = None) -> None:
    q = db.session.query(Customer.id).filter_by(store_id=store_id, phone=phone)
    if exclude_id is not None:
        q = q.filter(Customer.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Phone number already belongs to another customer", details={"phone": phone})


def create_customer(store_id: int, name: str, phone: str) -> Customer:
    def _op():
        _ensure_phone_free(store_id, phone)
        customer = Customer(store_id=store_id, name=name, phone=phone)
        db.session.add(customer)
        db.session.commit()
        return customer

    return run_with_retry(_op)


def update_customer(store_id: int, customer_id: int, data: dict) -> Customer:
    def _op():
        customer = get_customer(store_id, customer_id, lock=True)
        if "phone" in data and data["phone"] is not None and data["phone"] != customer.phone:
            _ensure_phone_free(store_id, data["phone"], exclude_id=customer.id)
            customer.phone = data["phone"]
        if data.get("name") is not None:
            customer.name = data["name"]
        db.session.commit()
        return customer

    return run_with_retry(_op)


def _fold_debt(absorbed: Debt, survivor: Debt) -> None:
    """Move an active debt's balance, payments and sale links onto another active debt."""
    survivor.total_amount += absorbed.total_amount
    survivor.paid_amount += absorbed.paid_amount
    survivor.remaining_amount += absorbed.remaining_amount

    db.session.execute(
        update(DebtPayment)
        .where(DebtPayment.debt_id == absorbed.id)
        .values(debt_id=survivor.id)
        .execution_options(synchronize_session=False)
    )
    db.session.execute(
        update(DebtSale)
        .where(DebtSale.debt_id == absorbed.id)
        .values(debt_id=survivor.id)
        .execution_options(synchronize_session=False)
    )
    db.session.delete(absorbed)
    db.session.flush()


def merge_customers(store_id: int, source_id: int, target_id: int) -> Customer:
    """
    Fold the source customer into the target and delete the source.

    Every debt and order of the source is reassigned to the target, with the
    denormalized name/phone rewritten to the target's. If both hold an active
    debt the source's is folded into the target's so the target still has at
    most one. All of it commits or none of it does.
    """
    if source_id == target_id:
        raise ValidationError("Cannot merge a customer into itself")

    def _op():
        source = get_customer(store_id, source_id, lock=True)
        target = get_customer(store_id, target_id, lock=True)

        source_active = find_active_debt(store_id, source.id, lock=True)
        target_active = find_active_debt(store_id, target.id, lock=True)
        if source_active is not None and target_active is not None:
            _fold_debt(source_active, target_active)

        db.session.execute(
            update(Debt)
            .where(Debt.store_id == store_id, Debt.customer_id == source.id)
            .values(
                customer_id=target.id,
                customer_name=target.name,
                customer_phone=target.phone,
            )
            .execution_options(synchronize_session=False)
        )
        db.session.execute(
            update(Order)
            .where(Order.store_id == store_id, Order.customer_id == source.id)
            .values(
                customer_id=target.id,
                customer_name=target.name,
                customer_phone=target.phone,
            )
            .execution_options(synchronize_session=False)
        )
        db.session.delete(source)
        db.session.commit()

        current_app.logger.info(
            "Customers merged: store=%s source=%s target=%s",
            store_id, source_id, target_id,
        )
        return target

    return run_with_retry(_op)


def customer_active_debt(store_id: int, customer_id: int) -> Debt | None:
    get_customer(store_id, customer_id)
    return (
        db.session.query(Debt)
        .filter_by(store_id=store_id, customer_id=customer_id, status=DEBT_ACTIVE)
        .first()
    )
