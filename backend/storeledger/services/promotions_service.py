from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Promotion, PromotionProduct
from ..time_utils import normalize_datetime
from ..validation import require_percent_range
from .concurrency import run_with_retry
from .stock_service import get_product_in_store

PROMOTION_MUTABLE_FIELDS = ("name", "description", "discount_type", "discount_value", "start_at", "end_at", "active")


def _check_window(start_at, end_at) -> None:
    if start_at is not None and end_at is not None and end_at < start_at:
        raise ValidationError("end_at must not be before start_at")


def get_promotion(store_id: int, promo_id: int) -> Promotion:
    promo = db.session.query(Promotion).filter_by(id=promo_id, store_id=store_id).first()
    if promo is None:
        raise NotFoundError("Promotion not found", details={"promotion_id": promo_id})
    return promo


def list_promotions(store_id: int, active_only: bool = False) -> list[Promotion]:
    q = db.session.query(Promotion).filter_by(store_id=store_id)
    if active_only:
        q = q.filter_by(active=True)
    return q.order_by(Promotion.created_at.desc(), Promotion.id.desc()).all()


def create_promotion(store_id: int, data: dict) -> Promotion:
    require_percent_range(data["discount_type"], data["discount_value"])
    start_at = normalize_datetime(data.get("start_at"))
    end_at = normalize_datetime(data.get("end_at"))
    _check_window(start_at, end_at)

    def _op():
        promo = Promotion(
            store_id=store_id,
            name=data["name"],
            description=data.get("description"),
            discount_type=data["discount_type"],
            discount_value=data["discount_value"],
            active=data.get("active", True),
            start_at=start_at,
            end_at=end_at,
        )
        db.session.add(promo)
        db.session.commit()
        return promo

    return run_with_retry(_op)


def update_promotion(store_id: int, promo_id: int, data: dict) -> Promotion:
    """Partial update; the percent range is re-checked against the merged values."""
    def _op():
        promo = get_promotion(store_id, promo_id)
        merged = {key: getattr(promo, key) for key in PROMOTION_MUTABLE_FIELDS}
        for key in PROMOTION_MUTABLE_FIELDS:
            if key in data:
                merged[key] = data[key]
        merged["start_at"] = normalize_datetime(merged["start_at"])
        merged["end_at"] = normalize_datetime(merged["end_at"])

        require_percent_range(merged["discount_type"], merged["discount_value"])
        _check_window(merged["start_at"], merged["end_at"])
        if merged["discount_type"] is None or merged["discount_value"] is None:
            raise ValidationError("discount_type and discount_value cannot be cleared")

        # Links without their own type are priced with the promotion type
        inheriting = (
            db.session.query(PromotionProduct)
            .filter(
                PromotionProduct.promotion_id == promo.id,
                PromotionProduct.override_discount_type.is_(None),
                PromotionProduct.override_discount_value.isnot(None),
            )
            .all()
        )
        for link in inheriting:
            require_percent_range(
                merged["discount_type"],
                link.override_discount_value,
                field="override_discount_value",
            )

        for key, value in merged.items():
            setattr(promo, key, value)
        db.session.commit()
        return promo

    return run_with_retry(_op)


def set_promotion_active(store_id: int, promo_id: int, active: bool) -> Promotion:
    def _op():
        promo = get_promotion(store_id, promo_id)
        promo.active = active
        db.session.commit()
        return promo

    return run_with_retry(_op)


def delete_promotion(store_id: int, promo_id: int) -> None:
    def _op():
        promo = get_promotion(store_id, promo_id)
        db.session.delete(promo)
        db.session.commit()

    run_with_retry(_op)


def attach_product(
    store_id: int,
    promo_id: int,
    product_id: int,
    override_discount_type: str | None = None,
    override_discount_value: int | None = None,
) -> PromotionProduct:
    """
    Target a product with a promotion, optionally overriding its discount.

    The override is checked with the type it will actually be applied with,
    so a percent promotion cannot be given an out-of-range override value.
    """
    def _op():
        promo = get_promotion(store_id, promo_id)
        get_product_in_store(store_id, product_id)

        effective_type = override_discount_type or promo.discount_type
        require_percent_range(effective_type, override_discount_value, field="override_discount_value")
        if override_discount_value is None:
            require_percent_range(effective_type, promo.discount_value, field="override_discount_type")

        exists = (
            db.session.query(PromotionProduct.id)
            .filter_by(promotion_id=promo.id, product_id=product_id)
            .first()
        )
        if exists is not None:
            raise ConflictError(
                "Product already attached to promotion",
                details={"promotion_id": promo.id, "product_id": product_id},
            )

        link = PromotionProduct(
            promotion_id=promo.id,
            product_id=product_id,
            override_discount_type=override_discount_type,
            override_discount_value=override_discount_value,
        )
        db.session.add(link)
        db.session.commit()
        return link

    return run_with_retry(_op)


def detach_product(store_id: int, promo_id: int, product_id: int) -> None:
    def _op():
        promo = get_promotion(store_id, promo_id)
        link = (
            db.session.query(PromotionProduct)
            .filter_by(promotion_id=promo.id, product_id=product_id)
            .first()
        )
        if link is None:
            raise NotFoundError(
                "Product is not attached to promotion",
                details={"promotion_id": promo.id, "product_id": product_id},
            )
        db.session.delete(link)
        db.session.commit()

    run_with_retry(_op)
