# Overview: Service-layer operations for product stock; the only writer of Product.stock_quantity.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.orm.util import identity_key

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Product, StockMutation
from ..models.inventory import STOCK_REASONS, REASON_EDIT, REASON_IMPORT
from .concurrency import run_with_retry
"""
Stock Ledger Invariants (authoritative)

- Product.stock_quantity is never negative, under any interleaving of callers.
- Every change goes through adjust_stock(), which issues ONE conditional
  UPDATE ... SET stock_quantity = stock_quantity + delta
         WHERE id = ? AND store_id = ? AND stock_quantity + delta >= 0
  There is no application-level read-then-write: the storage engine's row
  lock serialises competing decrements, and the loser sees zero rows.
- Each successful change appends exactly one StockMutation carrying the
  resulting quantity, inside the caller's transaction.
- adjust_stock() never commits. Sale posting and order delivery call it for
  several lines and commit once; a failure on any line rolls back all of them.
"""


def get_product_in_store(store_id: int, product_id: int, *, require_active: bool = False) -> Product:
    product = db.session.query(Product).filter_by(id=product_id, store_id=store_id).first()
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    if require_active and not product.is_active:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def adjust_stock(
    *,
    store_id: int,
    product_id: int,
    delta: int,
    reason: str,
    actor: str | None = None,
    note: str | None = None,
) -> int:
    """
    Atomically apply delta to a product's on-hand quantity and return the new quantity.

    Raises InsufficientStockError when the result would go below zero and
    NotFoundError when the product is missing or belongs to another store.
    Nothing is written on failure.
    """
    if reason not in STOCK_REASONS:
        raise ValidationError(f"Unknown stock mutation reason: {reason}")
    if delta == 0:
        raise ValidationError("Stock delta must be non-zero")

    stmt = (
        update(Product)
        .where(
            Product.id == product_id,
            Product.store_id == store_id,
            Product.stock_quantity + delta >= 0,
        )
        .values(stock_quantity=Product.stock_quantity + delta)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)

    if not result.rowcount:
        current = (
            db.session.query(Product.stock_quantity)
            .filter_by(id=product_id, store_id=store_id)
            .scalar()
        )
        if current is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        raise InsufficientStockError(
            "Insufficient stock",
            details={
                "product_id": product_id,
                "available": current,
                "requested": -delta,
            },
        )

    stock_after = (
        db.session.query(Product.stock_quantity)
        .filter_by(id=product_id, store_id=store_id)
        .scalar()
    )

    db.session.add(StockMutation(
        store_id=store_id,
        product_id=product_id,
        delta=delta,
        stock_after=stock_after,
        reason=reason,
        actor=actor,
        note=note,
    ))
    db.session.flush()

    # ORM copies of the product loaded earlier in this session are now stale
    product = db.session.identity_map.get(identity_key(Product, product_id))
    if product is not None:
        db.session.expire(product, ["stock_quantity"])

    return stock_after


def receive_stock(
    *,
    store_id: int,
    product_id: int,
    quantity: int,
    actor: str | None = None,
    note: str | None = None,
) -> int:
    """Replenish stock (reason=import) and commit."""
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")

    def _op():
        new_qty = adjust_stock(
            store_id=store_id,
            product_id=product_id,
            delta=quantity,
            reason=REASON_IMPORT,
            actor=actor,
            note=note or "Stock received",
        )
        db.session.commit()
        return new_qty

    return run_with_retry(_op)


def set_stock_quantity(
    *,
    store_id: int,
    product_id: int,
    quantity: int,
    actor: str | None = None,
    note: str | None = None,
) -> int | None:
    """
    Move stock to an absolute count (catalog edit), recorded as an 'edit' mutation.

    The delta is computed from the current count and applied through
    adjust_stock, so a sale racing with the edit can make it fail rather than
    drive the count negative. Returns None when nothing changed. Does not commit.
    """
    if quantity < 0:
        raise ValidationError("stock_quantity must be >= 0")

    current = (
        db.session.query(Product.stock_quantity)
        .filter_by(id=product_id, store_id=store_id)
        .scalar()
    )
    if current is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    if current == quantity:
        return None

    return adjust_stock(
        store_id=store_id,
        product_id=product_id,
        delta=quantity - current,
        reason=REASON_EDIT,
        actor=actor,
        note=note or "Changed by edit",
    )


def list_stock_mutations(
    *,
    store_id: int,
    product_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    limit: int | None = None,
) -> list[StockMutation]:
    """Newest first; date bounds are inclusive."""
    if limit is None:
        limit = current_app.config.get("STOCK_LOG_DEFAULT_LIMIT", 50)

    q = db.session.query(StockMutation).filter(StockMutation.store_id == store_id)
    if product_id is not None:
        q = q.filter(StockMutation.product_id == product_id)
    if date_from is not None:
        q = q.filter(StockMutation.created_at >= date_from)
    if date_to is not None:
        q = q.filter(StockMutation.created_at <= date_to)

    return (
        q.order_by(StockMutation.created_at.desc(), StockMutation.id.desc())
        .limit(limit)
        .all()
    )


def list_low_stock_products(store_id: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(
            Product.store_id == store_id,
            Product.is_active.is_(True),
            Product.stock_quantity <= Product.min_stock_alert,
        )
        .order_by(Product.stock_quantity.asc(), Product.id.asc())
        .all()
    )
