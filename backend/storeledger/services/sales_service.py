"""
Sales Service - posting completed sales.

A sale is written once, together with its stock decrements and, for debt
sales, the debt accrual. Everything happens in one transaction: if any line
fails (unknown product, another store's product, not enough stock) nothing is
persisted, including stock already taken for earlier lines.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Sale, SaleItem
from ..models.inventory import REASON_SALE
from ..models.sales import PAYMENT_DEBT, PAYMENT_TYPES
from .concurrency import run_with_retry
from .customer_service import resolve_customer
from .debt_service import accrue_debt, link_sale
from .document_service import next_document_number
from .stock_service import adjust_stock


@dataclass(frozen=True)
class SaleLineInput:
    product_id: int
    quantity: int
    unit_price: int
    line_total: int


@dataclass(frozen=True)
class DebtCustomerInput:
    customer_name: str
    customer_phone: str


def _validate_sale_input(lines, payment_type, debt_customer) -> None:
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(f"Unknown payment type: {payment_type}")
    if not lines:
        raise ValidationError("Cannot post a sale with no lines")
    for line in lines:
        if line.quantity <= 0:
            raise ValidationError("quantity must be > 0", details={"product_id": line.product_id})
        if line.unit_price < 0 or line.line_total < 0:
            raise ValidationError("prices must be >= 0", details={"product_id": line.product_id})
    if payment_type == PAYMENT_DEBT and debt_customer is None:
        raise ValidationError("Debt sales require customer name and phone")


def post_sale(
    *,
    store_id: int,
    lines: list[SaleLineInput],
    payment_type: str,
    debt_customer: DebtCustomerInput | None = None,
    cashier_name: str | None = None,
    sale_number: str | None = None,
    actor: str | None = None,
) -> Sale:
    """
    Post a completed sale.

    total_amount is the sum of the supplied line totals; callers are expected
    to have priced the lines with pricing_service.
    """
    _validate_sale_input(lines, payment_type, debt_customer)

    def _op():
        number = sale_number or next_document_number(
            store_id=store_id,
            document_type="SALE",
            prefix="S",
        )
        sale = Sale(
            store_id=store_id,
            sale_number=number,
            total_amount=sum(line.line_total for line in lines),
            payment_type=payment_type,
            cashier_name=cashier_name,
        )
        db.session.add(sale)
        db.session.flush()

        for line in lines:
            adjust_stock(
                store_id=store_id,
                product_id=line.product_id,
                delta=-line.quantity,
                reason=REASON_SALE,
                actor=actor or cashier_name,
                note=f"Sale #{sale.sale_number}",
            )
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=line.product_id,
                quantity=line.quantity,
                price=line.unit_price,
                total=line.line_total,
            ))

        if payment_type == PAYMENT_DEBT:
            customer = resolve_customer(
                store_id,
                debt_customer.customer_name,
                debt_customer.customer_phone,
            )
            debt = accrue_debt(store_id=store_id, customer=customer, amount=sale.total_amount)
            link_sale(debt, sale.id)

        db.session.commit()
        current_app.logger.info(
            "Sale posted: store=%s sale=%s number=%s total=%s payment=%s lines=%s",
            store_id, sale.id, sale.sale_number, sale.total_amount, payment_type, len(lines),
        )
        return sale

    return run_with_retry(_op)


def get_sale(store_id: int, sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id, store_id=store_id).first()
    if sale is None:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(store_id: int, limit: int = 100) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter(Sale.store_id == store_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit)
        .all()
    )
