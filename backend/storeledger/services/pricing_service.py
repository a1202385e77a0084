# Overview: Effective price resolution and bundle price decomposition.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Bundle, Product, Promotion, PromotionProduct
from ..models.promotions import DISCOUNT_FIXED, DISCOUNT_PERCENT
from ..time_utils import normalize_datetime, utcnow
"""
Pricing rules (authoritative)

- All prices are integers in the smallest currency unit; percent results are
  rounded half-up.
- base price = selling_price less the product's own discount_percent.
- A promotion is live when active and now lies inside [start_at, end_at],
  either bound being optional.
- Each live promotion linked to the product yields a candidate computed from
  selling_price, using the link's override type/value when present.
- effective price = max(0, min(base price, every candidate)).
- A stored percent outside 0..100 is clamped and logged as a warning.
- Tie-break: candidates are considered in promotion creation order (created_at,
  then id); the first one reaching the lowest price is the applied promotion.
  A promotion only counts as applied when it beats the base price.
- Bundle decomposition floors every share except the last, which takes the
  remainder, so the shares always sum to bundle price * bundle quantity.
"""


@dataclass(frozen=True)
class DiscountCandidate:
    promotion_id: int
    discount_type: str
    discount_value: int


@dataclass(frozen=True)
class PriceResolution:
    price: int
    base_price: int
    applied_promotion_id: int | None = None

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "base_price": self.base_price,
            "applied_promotion_id": self.applied_promotion_id,
        }


@dataclass(frozen=True)
class BundleComponent:
    product_id: int
    quantity: int
    selling_price: int


@dataclass(frozen=True)
class BundleLineShare:
    product_id: int
    quantity: int
    unit_price: int
    line_total: int

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
        }


def _div_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounding half away from zero (inputs here are non-negative)."""
    return (2 * numerator + denominator) // (2 * denominator)


def apply_discount(price: int, discount_type: str, discount_value: int) -> int:
    if discount_type == DISCOUNT_PERCENT:
        value = min(max(discount_value, 0), 100)
        return _div_half_up(price * (100 - value), 100)
    if discount_type == DISCOUNT_FIXED:
        return max(0, price - discount_value)
    raise ValidationError(f"Unknown discount type: {discount_type}")


def base_price(selling_price: int, discount_percent: int | None) -> int:
    if not discount_percent:
        return selling_price
    return apply_discount(selling_price, DISCOUNT_PERCENT, discount_percent)


def select_effective_price(
    selling_price: int,
    discount_percent: int | None,
    candidates: Sequence[DiscountCandidate],
) -> PriceResolution:
    """
    Pure price selection over candidates already in promotion creation order.

    Lowest price wins; on equal prices the earlier candidate keeps the win.
    """
    base = base_price(selling_price, discount_percent)
    best_price = base
    applied = None

    for candidate in candidates:
        price = apply_discount(selling_price, candidate.discount_type, candidate.discount_value)
        if price < best_price:
            best_price = price
            applied = candidate.promotion_id

    return PriceResolution(price=max(0, best_price), base_price=base, applied_promotion_id=applied)


def decompose_bundle(
    bundle_price: int,
    components: Sequence[BundleComponent],
    bundle_quantity: int = 1,
) -> list[BundleLineShare]:
    """
    Split bundle_price * bundle_quantity across the components in proportion
    to their reference value (selling_price * quantity), equally when every
    reference value is zero.
    """
    if not components:
        return []
    if bundle_quantity <= 0:
        raise ValidationError("bundle quantity must be > 0")

    target = bundle_price * bundle_quantity
    weights = [c.selling_price * c.quantity for c in components]
    total_weight = sum(weights)
    if total_weight <= 0:
        weights = [1] * len(components)
        total_weight = len(components)

    shares = []
    allocated = 0
    last = len(components) - 1
    for i, component in enumerate(components):
        if i == last:
            line_total = target - allocated
        else:
            line_total = (target * weights[i]) // total_weight
            allocated += line_total

        line_quantity = component.quantity * bundle_quantity
        shares.append(BundleLineShare(
            product_id=component.product_id,
            quantity=line_quantity,
            unit_price=_div_half_up(line_total, line_quantity),
            line_total=line_total,
        ))

    return shares


def _candidates_for(links: Iterable[tuple[PromotionProduct, Promotion]], now: datetime):
    candidates = []
    for link, promo in links:
        if not promo.is_live(now):
            continue
        discount_type = link.override_discount_type or promo.discount_type
        discount_value = (
            link.override_discount_value
            if link.override_discount_value is not None
            else promo.discount_value
        )
        if discount_type == DISCOUNT_PERCENT and not 0 <= discount_value <= 100:
            current_app.logger.warning(
                "Out-of-range percent discount clamped: promotion=%s product=%s value=%s",
                promo.id, link.product_id, discount_value,
            )
        candidates.append(DiscountCandidate(
            promotion_id=promo.id,
            discount_type=discount_type,
            discount_value=discount_value,
        ))
    return candidates


def _promotion_links(store_id: int, product_ids: list[int]):
    if not product_ids:
        return []
    return (
        db.session.query(PromotionProduct, Promotion)
        .join(Promotion, Promotion.id == PromotionProduct.promotion_id)
        .filter(
            Promotion.store_id == store_id,
            Promotion.active.is_(True),
            PromotionProduct.product_id.in_(product_ids),
        )
        .order_by(Promotion.created_at.asc(), Promotion.id.asc())
        .all()
    )


def resolve_product_price(product: Product, at: datetime | None = None) -> PriceResolution:
    """Resolve the price of an already-loaded (store-checked) product."""
    now = normalize_datetime(at) or utcnow()
    links = _promotion_links(product.store_id, [product.id])
    return select_effective_price(
        product.selling_price,
        product.discount_percent,
        _candidates_for(links, now),
    )


def resolve_effective_price(store_id: int, product_id: int, at: datetime | None = None) -> PriceResolution:
    product = db.session.query(Product).filter_by(id=product_id, store_id=store_id).first()
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return resolve_product_price(product, at)


def resolve_prices(store_id: int, products: Sequence[Product], at: datetime | None = None) -> dict[int, PriceResolution]:
    """Batch variant for catalog listings: one promotion query for many products."""
    now = normalize_datetime(at) or utcnow()
    links = _promotion_links(store_id, [p.id for p in products])
    by_product: dict[int, list] = {}
    for link, promo in links:
        by_product.setdefault(link.product_id, []).append((link, promo))

    return {
        p.id: select_effective_price(
            p.selling_price,
            p.discount_percent,
            _candidates_for(by_product.get(p.id, []), now),
        )
        for p in products
    }


def list_live_promotions(store_id: int, at: datetime | None = None) -> list[Promotion]:
    now = normalize_datetime(at) or utcnow()
    promos = (
        db.session.query(Promotion)
        .filter(Promotion.store_id == store_id, Promotion.active.is_(True))
        .order_by(Promotion.created_at.asc(), Promotion.id.asc())
        .all()
    )
    return [p for p in promos if p.is_live(now)]


def decompose_store_bundle(store_id: int, bundle_id: int, bundle_quantity: int = 1) -> list[BundleLineShare]:
    bundle = db.session.query(Bundle).filter_by(id=bundle_id, store_id=store_id).first()
    if bundle is None:
        raise NotFoundError("Bundle not found", details={"bundle_id": bundle_id})

    components = []
    for item in bundle.items:
        product = item.product
        if product is None or product.store_id != store_id:
            raise NotFoundError("Product not found", details={"product_id": item.product_id})
        components.append(BundleComponent(
            product_id=item.product_id,
            quantity=item.quantity,
            selling_price=product.selling_price,
        ))

    return decompose_bundle(bundle.price, components, bundle_quantity)
