# Overview: Flask API routes for the stock log and low-stock alerts.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_store
from ..services.stock_service import list_low_stock_products, list_stock_mutations
from ..time_utils import parse_iso_datetime

logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")


@logs_bp.get("/stock")
@require_store
def stock_log():
    """
    Query params:
    - product_id: int (optional)
    - from / to: ISO-8601 bounds, inclusive (optional)
    - limit: int (optional, capped at 500)
    """
    try:
        date_from = parse_iso_datetime(request.args.get("from"))
        date_to = parse_iso_datetime(request.args.get("to"))
    except ValueError:
        return jsonify({"error": "validation_error", "message": "from/to must be ISO-8601 datetimes", "details": {}}), 400

    limit = request.args.get("limit", type=int)
    if limit is not None:
        limit = max(1, min(limit, 500))

    mutations = list_stock_mutations(
        store_id=g.store_id,
        product_id=request.args.get("product_id", type=int),
        date_from=date_from,
        date_to=date_to,
        limit=limit,
    )
    return jsonify({"mutations": [m.to_dict() for m in mutations]})


@logs_bp.get("/low-stock")
@require_store
def low_stock():
    products = list_low_stock_products(g.store_id)
    return jsonify({"products": [p.to_dict() for p in products]})
