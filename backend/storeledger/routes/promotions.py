# Overview: Flask API routes for promotions and the products they target.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_store, require_premium
from ..errors import LedgerError
from ..schemas import ActiveFlagIn, PromotionIn, PromotionProductIn, PromotionUpdateIn
from ..services import promotions_service
from ..validation import parse_payload

promotions_bp = Blueprint("promotions", __name__, url_prefix="/api/promotions")


@promotions_bp.get("")
@require_store
@require_premium
def list_promotions():
    active_only = request.args.get("active_only", "false").lower() == "true"
    promos = promotions_service.list_promotions(g.store_id, active_only)
    return jsonify({"promotions": [p.to_dict() for p in promos]})


@promotions_bp.post("")
@require_store
@require_premium
def create_promotion():
    try:
        payload = parse_payload(PromotionIn, request.get_json(silent=True))
        promo = promotions_service.create_promotion(g.store_id, payload.model_dump())
        return jsonify({"promotion": promo.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@promotions_bp.get("/<int:promo_id>")
@require_store
@require_premium
def get_promotion(promo_id: int):
    try:
        return jsonify({"promotion": promotions_service.get_promotion(g.store_id, promo_id).to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@promotions_bp.patch("/<int:promo_id>")
@require_store
@require_premium
def update_promotion(promo_id: int):
    try:
        payload = parse_payload(PromotionUpdateIn, request.get_json(silent=True))
        promo = promotions_service.update_promotion(
            g.store_id, promo_id, payload.model_dump(exclude_unset=True),
        )
        return jsonify({"promotion": promo.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@promotions_bp.post("/<int:promo_id>/active")
@require_store
@require_premium
def set_promotion_active(promo_id: int):
    try:
        payload = parse_payload(ActiveFlagIn, request.get_json(silent=True))
        promo = promotions_service.set_promotion_active(g.store_id, promo_id, payload.active)
        return jsonify({"promotion": promo.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@promotions_bp.delete("/<int:promo_id>")
@require_store
@require_premium
def delete_promotion(promo_id: int):
    try:
        promotions_service.delete_promotion(g.store_id, promo_id)
        return jsonify({"deleted": True})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@promotions_bp.post("/<int:promo_id>/products")
@require_store
@require_premium
def attach_product(promo_id: int):
    try:
        payload = parse_payload(PromotionProductIn, request.get_json(silent=True))
        link = promotions_service.attach_product(
            g.store_id,
            promo_id,
            payload.product_id,
            payload.override_discount_type,
            payload.override_discount_value,
        )
        return jsonify({"link": link.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@promotions_bp.delete("/<int:promo_id>/products/<int:product_id>")
@require_store
@require_premium
def detach_product(promo_id: int, product_id: int):
    try:
        promotions_service.detach_product(g.store_id, promo_id, product_id)
        return jsonify({"deleted": True})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
