# Overview: Flask API routes for products, stock receipts and effective prices.

# backend/storeledger/routes/products.py
"""
Product management routes.

All product operations are scoped to the caller's store (g.store_id, set by
@require_store). Stock changes made here are recorded in the stock log.
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_store
from ..errors import LedgerError, ValidationError
from ..schemas import ProductIn, ProductUpdateIn, StockReceiveIn
from ..services import products_service
from ..services.pricing_service import resolve_effective_price
from ..services.stock_service import receive_stock
from ..time_utils import parse_iso_datetime
from ..validation import parse_payload

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_store
def list_products():
    """
    Query params:
    - search: matches name or barcode
    - in_stock: "true" to hide products with no stock
    - include_inactive: "true" to include soft-deleted products
    """
    items = products_service.list_products_with_prices(
        g.store_id,
        search=request.args.get("search"),
        in_stock=request.args.get("in_stock", "false").lower() == "true",
        active_only=request.args.get("include_inactive", "false").lower() != "true",
    )
    return jsonify({"products": items, "count": len(items)})


@products_bp.post("")
@require_store
def create_product():
    try:
        payload = parse_payload(ProductIn, request.get_json(silent=True))
        product = products_service.create_product(g.store_id, payload.model_dump(), actor=g.actor)
        return jsonify({"product": product.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_store
def get_product(product_id: int):
    try:
        return jsonify({"product": products_service.get_product(g.store_id, product_id).to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.put("/<int:product_id>")
@require_store
def update_product(product_id: int):
    try:
        payload = parse_payload(ProductUpdateIn, request.get_json(silent=True))
        product = products_service.update_product(
            g.store_id, product_id, payload.model_dump(exclude_unset=True), actor=g.actor,
        )
        return jsonify({"product": product.to_dict()})

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_store
def delete_product(product_id: int):
    try:
        product = products_service.deactivate_product(g.store_id, product_id)
        return jsonify({"product": product.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.post("/<int:product_id>/receive")
@require_store
def receive_product_stock(product_id: int):
    try:
        payload = parse_payload(StockReceiveIn, request.get_json(silent=True))
        new_quantity = receive_stock(
            store_id=g.store_id,
            product_id=product_id,
            quantity=payload.quantity,
            actor=g.actor,
            note=payload.note,
        )
        return jsonify({"product_id": product_id, "stock_quantity": new_quantity}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.get("/<int:product_id>/price")
@require_store
def effective_price(product_id: int):
    """Query params: at (ISO-8601, default now)."""
    try:
        try:
            at = parse_iso_datetime(request.args.get("at"))
        except ValueError:
            raise ValidationError("at must be an ISO-8601 datetime")
        resolution = resolve_effective_price(g.store_id, product_id, at)
        return jsonify({"product_id": product_id, **resolution.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
