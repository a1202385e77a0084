# backend/storeledger/services/products_service.py
"""
Products Service

All product operations are store-scoped. Stock is never written directly
here: initial stock and edits go through stock_service so each change leaves
a StockMutation behind.
"""
from __future__ import annotations

from ..errors import ConflictError
from ..extensions import db
from ..models import Product
from ..models.inventory import REASON_IMPORT
from .concurrency import run_with_retry
from .pricing_service import resolve_prices
from .stock_service import adjust_stock, get_product_in_store, set_stock_quantity

PRODUCT_MUTABLE_FIELDS = {"name", "barcode", "unit", "selling_price", "discount_percent", "min_stock_alert", "is_active"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_barcode_free(store_id: int, barcode: str | None, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    q = db.session.query(Product.id).filter_by(store_id=store_id, barcode=barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Barcode already used by another product", details={"barcode": barcode})


def list_products(
    store_id: int,
    *,
    search: str | None = None,
    in_stock: bool = False,
    active_only: bool = True,
) -> list[Product]:
    q = db.session.query(Product).filter(Product.store_id == store_id)
    if active_only:
        q = q.filter(Product.is_active.is_(True))
    if in_stock:
        q = q.filter(Product.stock_quantity > 0)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(Product.name.ilike(pattern) | Product.barcode.ilike(pattern))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def list_products_with_prices(store_id: int, **filters) -> list[dict]:
    """Product dicts extended with the currently effective price."""
    products = list_products(store_id, **filters)
    prices = resolve_prices(store_id, products)
    items = []
    for p in products:
        data = p.to_dict()
        resolution = prices[p.id]
        data["effective_price"] = resolution.price
        data["applied_promotion_id"] = resolution.applied_promotion_id
        items.append(data)
    return items


def get_product(store_id: int, product_id: int) -> Product:
    return get_product_in_store(store_id, product_id)


def create_product(store_id: int, patch: dict, actor: str | None = None) -> Product:
    """Create a product; a non-zero initial stock is recorded as an import."""
    def _op():
        _ensure_barcode_free(store_id, patch.get("barcode"))
        p = Product(store_id=store_id, stock_quantity=0)
        apply_product_patch(p, patch)
        db.session.add(p)
        db.session.flush()

        initial = patch.get("stock_quantity") or 0
        if initial > 0:
            adjust_stock(
                store_id=store_id,
                product_id=p.id,
                delta=initial,
                reason=REASON_IMPORT,
                actor=actor,
                note="Initial stock",
            )

        db.session.commit()
        return p

    return run_with_retry(_op)


def update_product(store_id: int, product_id: int, patch: dict, actor: str | None = None) -> Product:
    def _op():
        p = get_product_in_store(store_id, product_id)
        if "barcode" in patch and patch["barcode"] != p.barcode:
            _ensure_barcode_free(store_id, patch["barcode"], exclude_id=p.id)
        apply_product_patch(p, {k: v for k, v in patch.items() if v is not None or k == "barcode"})

        if patch.get("stock_quantity") is not None:
            set_stock_quantity(
                store_id=store_id,
                product_id=p.id,
                quantity=patch["stock_quantity"],
                actor=actor,
            )

        db.session.commit()
        return p

    return run_with_retry(_op)


def deactivate_product(store_id: int, product_id: int) -> Product:
    """Soft delete: sales and mutations keep referring to the row."""
    def _op():
        p = get_product_in_store(store_id, product_id)
        p.is_active = False
        db.session.commit()
        return p

    return run_with_retry(_op)
