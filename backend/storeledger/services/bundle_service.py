from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Bundle, BundleItem
from .concurrency import run_with_retry
from .stock_service import get_product_in_store

BUNDLE_MUTABLE_FIELDS = ("name", "price", "active")


def get_bundle(store_id: int, bundle_id: int) -> Bundle:
    bundle = db.session.query(Bundle).filter_by(id=bundle_id, store_id=store_id).first()
    if bundle is None:
        raise NotFoundError("Bundle not found", details={"bundle_id": bundle_id})
    return bundle


def list_bundles(store_id: int, active_only: bool = False) -> list[Bundle]:
    q = db.session.query(Bundle).filter_by(store_id=store_id)
    if active_only:
        q = q.filter_by(active=True)
    return q.order_by(Bundle.created_at.desc(), Bundle.id.desc()).all()


def create_bundle(store_id: int, data: dict) -> Bundle:
    def _op():
        bundle = Bundle(
            store_id=store_id,
            name=data["name"],
            price=data["price"],
            active=data.get("active", True),
        )
        db.session.add(bundle)
        db.session.commit()
        return bundle

    return run_with_retry(_op)


def update_bundle(store_id: int, bundle_id: int, data: dict) -> Bundle:
    def _op():
        bundle = get_bundle(store_id, bundle_id)
        for key in BUNDLE_MUTABLE_FIELDS:
            if data.get(key) is not None:
                setattr(bundle, key, data[key])
        db.session.commit()
        return bundle

    return run_with_retry(_op)


def delete_bundle(store_id: int, bundle_id: int) -> None:
    def _op():
        db.session.delete(get_bundle(store_id, bundle_id))
        db.session.commit()

    run_with_retry(_op)


def _require_positive(quantity: int) -> None:
    if quantity <= 0:
        raise ValidationError("quantity must be > 0", details={"quantity": quantity})


def _get_item(bundle: Bundle, item_id: int) -> BundleItem:
    item = db.session.query(BundleItem).filter_by(id=item_id, bundle_id=bundle.id).first()
    if item is None:
        raise NotFoundError("Bundle item not found", details={"bundle_id": bundle.id, "item_id": item_id})
    return item


def add_item(store_id: int, bundle_id: int, product_id: int, quantity: int) -> BundleItem:
    """Add a product to a bundle; the product must belong to the bundle's store."""
    _require_positive(quantity)

    def _op():
        bundle = get_bundle(store_id, bundle_id)
        get_product_in_store(store_id, product_id)
        exists = (
            db.session.query(BundleItem.id)
            .filter_by(bundle_id=bundle.id, product_id=product_id)
            .first()
        )
        if exists is not None:
            raise ConflictError(
                "Product already in bundle",
                details={"bundle_id": bundle.id, "product_id": product_id},
            )
        item = BundleItem(bundle_id=bundle.id, product_id=product_id, quantity=quantity)
        db.session.add(item)
        db.session.commit()
        return item

    return run_with_retry(_op)


def update_item(store_id: int, bundle_id: int, item_id: int, quantity: int) -> BundleItem:
    _require_positive(quantity)

    def _op():
        item = _get_item(get_bundle(store_id, bundle_id), item_id)
        item.quantity = quantity
        db.session.commit()
        return item

    return run_with_retry(_op)


def remove_item(store_id: int, bundle_id: int, item_id: int) -> None:
    def _op():
        item = _get_item(get_bundle(store_id, bundle_id), item_id)
        db.session.delete(item)
        db.session.commit()

    run_with_retry(_op)
