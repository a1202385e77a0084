# Overview: Flask API routes for product bundles.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_store, require_premium
from ..errors import LedgerError
from ..schemas import BundleIn, BundleItemIn, BundleItemQuantityIn, BundleUpdateIn
from ..services import bundle_service
from ..services.pricing_service import decompose_store_bundle
from ..validation import parse_payload

bundles_bp = Blueprint("bundles", __name__, url_prefix="/api/bundles")


@bundles_bp.get("")
@require_store
@require_premium
def list_bundles():
    bundles = bundle_service.list_bundles(g.store_id)
    return jsonify({"bundles": [b.to_dict() for b in bundles]})


@bundles_bp.post("")
@require_store
@require_premium
def create_bundle():
    try:
        payload = parse_payload(BundleIn, request.get_json(silent=True))
        bundle = bundle_service.create_bundle(g.store_id, payload.model_dump())
        return jsonify({"bundle": bundle.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@bundles_bp.get("/<int:bundle_id>")
@require_store
@require_premium
def get_bundle(bundle_id: int):
    try:
        return jsonify({"bundle": bundle_service.get_bundle(g.store_id, bundle_id).to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@bundles_bp.patch("/<int:bundle_id>")
@require_store
@require_premium
def update_bundle(bundle_id: int):
    try:
        payload = parse_payload(BundleUpdateIn, request.get_json(silent=True))
        bundle = bundle_service.update_bundle(g.store_id, bundle_id, payload.model_dump(exclude_unset=True))
        return jsonify({"bundle": bundle.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@bundles_bp.delete("/<int:bundle_id>")
@require_store
@require_premium
def delete_bundle(bundle_id: int):
    try:
        bundle_service.delete_bundle(g.store_id, bundle_id)
        return jsonify({"deleted": True})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@bundles_bp.get("/<int:bundle_id>/breakdown")
@require_store
@require_premium
def bundle_breakdown(bundle_id: int):
    """Per-product split of the bundle price. Query param: quantity (default 1)."""
    quantity = request.args.get("quantity", 1, type=int)
    if quantity is None or quantity <= 0:
        return jsonify({"error": "validation_error", "message": "quantity must be > 0", "details": {}}), 400
    try:
        shares = decompose_store_bundle(g.store_id, bundle_id, quantity)
        return jsonify({"lines": [s.to_dict() for s in shares]})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@bundles_bp.post("/<int:bundle_id>/items")
@require_store
@require_premium
def add_bundle_item(bundle_id: int):
    try:
        payload = parse_payload(BundleItemIn, request.get_json(silent=True))
        item = bundle_service.add_item(g.store_id, bundle_id, payload.product_id, payload.quantity)
        return jsonify({"item": item.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@bundles_bp.patch("/<int:bundle_id>/items/<int:item_id>")
@require_store
@require_premium
def update_bundle_item(bundle_id: int, item_id: int):
    try:
        payload = parse_payload(BundleItemQuantityIn, request.get_json(silent=True))
        item = bundle_service.update_item(g.store_id, bundle_id, item_id, payload.quantity)
        return jsonify({"item": item.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@bundles_bp.delete("/<int:bundle_id>/items/<int:item_id>")
@require_store
@require_premium
def remove_bundle_item(bundle_id: int, item_id: int):
    try:
        bundle_service.remove_item(g.store_id, bundle_id, item_id)
        return jsonify({"deleted": True})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
