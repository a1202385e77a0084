# Overview: Public storefront routes; the store is resolved from the URL slug.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import resolve_shop_store
from ..errors import LedgerError
from ..schemas import ShopOrderIn
from ..services import bundle_service, order_service, products_service
from ..services.pricing_service import list_live_promotions
from ..validation import parse_payload

shop_bp = Blueprint("shop", __name__, url_prefix="/api/shop")


@shop_bp.get("/<slug>")
@resolve_shop_store
def store_info():
    store = g.store
    return jsonify({"store": {"name": store.name, "slug": store.slug, "phone": store.phone}})


@shop_bp.get("/<slug>/products")
@resolve_shop_store
def shop_products():
    """Active, in-stock products at their effective price."""
    items = products_service.list_products_with_prices(
        g.store_id,
        search=request.args.get("search"),
        in_stock=True,
    )
    return jsonify({"products": items})


@shop_bp.get("/<slug>/promotions")
@resolve_shop_store
def shop_promotions():
    promos = list_live_promotions(g.store_id)
    return jsonify({"promotions": [p.to_dict() for p in promos]})


@shop_bp.get("/<slug>/bundles")
@resolve_shop_store
def shop_bundles():
    bundles = bundle_service.list_bundles(g.store_id, active_only=True)
    return jsonify({"bundles": [b.to_dict() for b in bundles if b.items]})


@shop_bp.post("/<slug>/orders")
@resolve_shop_store
def place_order():
    """
    Place a storefront order.

    Prices come from the store's catalog, never from the request body.
    """
    try:
        payload = parse_payload(ShopOrderIn, request.get_json(silent=True))
        order = order_service.create_shop_order(
            store_id=g.store_id,
            customer_name=payload.customer.name,
            customer_phone=payload.customer.phone,
            customer_address=payload.customer.address,
            notes=payload.notes,
            product_lines=[(item.product_id, item.quantity) for item in payload.items],
            bundle_lines=[(line.bundle_id, line.quantity) for line in payload.bundles],
        )
        return jsonify({"order": order.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to place shop order")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500
