# Overview: Service-layer operations for online orders and their fulfillment lifecycle.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy import update

from ..errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Bundle, Order, OrderItem, Product, Sale, SaleItem
from ..models.inventory import REASON_ORDER_FULFILLMENT
from ..models.orders import (
    ORDER_CANCELLED,
    ORDER_CONFIRMED,
    ORDER_DELIVERED,
    ORDER_PENDING,
    ORDER_STATUSES,
    TERMINAL_ORDER_STATUSES,
)
from ..models.sales import PAYMENT_CASH
from .concurrency import lock_for_update, run_with_retry
from .customer_service import resolve_customer
from .pricing_service import decompose_store_bundle, resolve_prices
from .stock_service import adjust_stock
"""
Order lifecycle (authoritative)

    pending --> confirmed --> delivered
       |            |
       +------------+-----> cancelled     (confirmed -> cancelled only when
                                           ALLOW_CANCEL_CONFIRMED_ORDERS)
    pending --> delivered is allowed directly.

- delivered and cancelled are terminal. delivered -> delivered returns the
  order unchanged; any other move out of a terminal state is a conflict.
- Moving to the current status is a no-op.
- Entering delivered posts a cash Sale numbered ONL-<order id> with one item
  per order line and takes stock for every line, in one transaction. The
  status change is a conditional UPDATE on the prior status and Sale.order_id
  is unique, so two concurrent deliveries produce exactly one sale.
"""


@dataclass(frozen=True)
class OrderLineInput:
    product_id: int
    quantity: int
    price: int
    total: int


def order_sale_number(order_id: int) -> str:
    return f"ONL-{order_id:08d}"


def get_order(store_id: int, order_id: int, *, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id, store_id=store_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFoundError("Order not found", details={"order_id": order_id})
    return order


def list_orders(store_id: int, status: str | None = None) -> list[Order]:
    q = db.session.query(Order).filter(Order.store_id == store_id)
    if status and status != "all":
        q = q.filter(Order.status == status)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).all()


def _check_products_in_store(store_id: int, product_ids: set[int]) -> dict[int, Product]:
    products = (
        db.session.query(Product)
        .filter(Product.store_id == store_id, Product.id.in_(product_ids))
        .all()
    )
    found = {p.id: p for p in products}
    missing = sorted(product_ids - set(found))
    if missing:
        raise NotFoundError("Product not found", details={"product_ids": missing})
    return found


def create_order(
    *,
    store_id: int,
    customer_name: str,
    customer_phone: str,
    lines: list[OrderLineInput],
    customer_address: str | None = None,
    notes: str | None = None,
) -> Order:
    """Create a pending order with caller-priced lines; the customer is upserted by phone."""
    if not lines:
        raise ValidationError("Order must have at least one line")

    def _op():
        _check_products_in_store(store_id, {line.product_id for line in lines})
        order = _insert_order(
            store_id, customer_name, customer_phone, customer_address, notes, lines,
        )
        db.session.commit()
        return order

    return run_with_retry(_op)


def create_shop_order(
    *,
    store_id: int,
    customer_name: str,
    customer_phone: str,
    product_lines: list[tuple[int, int]],
    bundle_lines: list[tuple[int, int]] | None = None,
    customer_address: str | None = None,
    notes: str | None = None,
) -> Order:
    """
    Place an order from the public storefront.

    Prices are resolved server side (promotions and bundle decomposition
    included); the caller only chooses what and how many.
    """
    bundle_lines = bundle_lines or []
    if not product_lines and not bundle_lines:
        raise ValidationError("Order must have at least one product or bundle")

    def _op():
        lines = price_shop_order(store_id, product_lines, bundle_lines)
        shop_notes = f"[Shop] {notes}" if notes else "[Shop]"
        order = _insert_order(
            store_id, customer_name, customer_phone, customer_address, shop_notes, lines,
        )
        db.session.commit()
        current_app.logger.info(
            "Shop order placed: store=%s order=%s total=%s lines=%s",
            store_id, order.id, order.total_amount, len(lines),
        )
        return order

    return run_with_retry(_op)


def _insert_order(store_id, customer_name, customer_phone, customer_address, notes, lines) -> Order:
    customer = resolve_customer(store_id, customer_name, customer_phone)
    order = Order(
        store_id=store_id,
        customer_id=customer.id,
        customer_name=customer_name,
        customer_phone=customer_phone,
        customer_address=customer_address,
        total_amount=sum(line.total for line in lines),
        status=ORDER_PENDING,
        notes=notes,
    )
    order.items = [
        OrderItem(
            product_id=line.product_id,
            quantity=line.quantity,
            price=line.price,
            total=line.total,
        )
        for line in lines
    ]
    db.session.add(order)
    db.session.flush()
    return order


def price_shop_order(
    store_id: int,
    product_lines: list[tuple[int, int]],
    bundle_lines: list[tuple[int, int]],
) -> list[OrderLineInput]:
    """
    Price a storefront cart: products at their effective price, bundles
    decomposed into per-product lines. Active products only; stock must cover
    the combined quantity per product at the time of ordering.
    """
    lines: list[OrderLineInput] = []

    product_ids = {product_id for product_id, _ in product_lines}
    products = _check_products_in_store(store_id, product_ids) if product_ids else {}
    inactive = sorted(pid for pid, p in products.items() if not p.is_active)
    if inactive:
        raise NotFoundError("Product not found", details={"product_ids": inactive})

    prices = resolve_prices(store_id, list(products.values()))
    for product_id, quantity in product_lines:
        unit_price = prices[product_id].price
        lines.append(OrderLineInput(
            product_id=product_id,
            quantity=quantity,
            price=unit_price,
            total=unit_price * quantity,
        ))

    for bundle_id, quantity in bundle_lines:
        bundle = db.session.query(Bundle).filter_by(id=bundle_id, store_id=store_id).first()
        if bundle is None or not bundle.active:
            raise NotFoundError("Bundle not found", details={"bundle_id": bundle_id})
        if not bundle.items:
            raise ValidationError("Bundle has no items", details={"bundle_id": bundle_id})
        for share in decompose_store_bundle(store_id, bundle_id, quantity):
            lines.append(OrderLineInput(
                product_id=share.product_id,
                quantity=share.quantity,
                price=share.unit_price,
                total=share.line_total,
            ))

    requested: dict[int, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity
    stock = _check_products_in_store(store_id, set(requested))
    short = [
        {"product_id": pid, "requested": qty, "available": stock[pid].stock_quantity}
        for pid, qty in requested.items()
        if stock[pid].stock_quantity < qty
    ]
    if short:
        raise InsufficientStockError("Insufficient stock", details={"items": short})

    return lines


def _allowed(current: str, new: str) -> bool:
    if current == ORDER_PENDING:
        return new in (ORDER_CONFIRMED, ORDER_DELIVERED, ORDER_CANCELLED)
    if current == ORDER_CONFIRMED:
        if new == ORDER_CANCELLED:
            return bool(current_app.config.get("ALLOW_CANCEL_CONFIRMED_ORDERS", False))
        return new == ORDER_DELIVERED
    return False


def _deliver(order: Order, actor: str | None) -> None:
    sale = Sale(
        store_id=order.store_id,
        sale_number=order_sale_number(order.id),
        total_amount=order.total_amount,
        payment_type=PAYMENT_CASH,
        cashier_name=f"Online: {order.customer_name}",
        order_id=order.id,
    )
    db.session.add(sale)
    db.session.flush()

    for item in order.items:
        adjust_stock(
            store_id=order.store_id,
            product_id=item.product_id,
            delta=-item.quantity,
            reason=REASON_ORDER_FULFILLMENT,
            actor=actor,
            note=f"Order #{order.id} delivered",
        )
        db.session.add(SaleItem(
            sale_id=sale.id,
            product_id=item.product_id,
            quantity=item.quantity,
            price=item.price,
            total=item.total,
        ))


def transition_order_status(
    store_id: int,
    order_id: int,
    new_status: str,
    *,
    actor: str | None = None,
) -> Order:
    if new_status not in ORDER_STATUSES:
        raise ValidationError(f"Unknown order status: {new_status}")

    def _op():
        order = get_order(store_id, order_id, lock=True)
        prior = order.status

        if prior == new_status:
            return order
        if prior in TERMINAL_ORDER_STATUSES or not _allowed(prior, new_status):
            raise ConflictError(
                f"Cannot change order status from {prior} to {new_status}",
                details={"order_id": order_id, "status": prior, "requested": new_status},
            )

        if new_status == ORDER_DELIVERED:
            _deliver(order, actor)

        claimed = db.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == prior)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not claimed:
            # Someone else moved the order first; undo and report what it is now
            db.session.rollback()
            order = get_order(store_id, order_id)
            if order.status == new_status == ORDER_DELIVERED:
                return order
            raise ConflictError(
                "Order status changed concurrently",
                details={"order_id": order_id, "status": order.status},
            )

        db.session.commit()
        if new_status == ORDER_DELIVERED:
            current_app.logger.info(
                "Order delivered: store=%s order=%s sale_number=%s total=%s",
                store_id, order.id, order_sale_number(order.id), order.total_amount,
            )
        return order

    try:
        return run_with_retry(_op)
    except ConflictError:
        # A concurrent delivery that won the race surfaces here as a duplicate sale
        if new_status != ORDER_DELIVERED:
            raise
        order = get_order(store_id, order_id)
        if order.status == ORDER_DELIVERED:
            return order
        raise
