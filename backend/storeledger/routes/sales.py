# Overview: Flask API routes for sales; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_store
from ..errors import LedgerError
from ..schemas import SaleIn
from ..services import sales_service
from ..services.sales_service import DebtCustomerInput, SaleLineInput
from ..validation import parse_payload


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_store
def post_sale_route():
    """
    Post a completed sale.

    Stock is taken for every line and, for debt sales, the amount is added to
    the customer's active debt. All or nothing.
    """
    try:
        payload = parse_payload(SaleIn, request.get_json(silent=True))
        sale = sales_service.post_sale(
            store_id=g.store_id,
            lines=[
                SaleLineInput(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                )
                for item in payload.items
            ],
            payment_type=payload.payment_type,
            debt_customer=(
                DebtCustomerInput(payload.debt.customer_name, payload.debt.customer_phone)
                if payload.debt else None
            ),
            cashier_name=payload.cashier_name,
            sale_number=payload.sale_number,
            actor=g.actor,
        )
        return jsonify({"sale": sale.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to post sale")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@sales_bp.get("")
@require_store
def list_sales_route():
    limit = min(request.args.get("limit", 100, type=int), 500)
    sales = sales_service.list_sales(g.store_id, limit=limit)
    return jsonify({"sales": [s.to_dict(include_items=False) for s in sales]})


@sales_bp.get("/<int:sale_id>")
@require_store
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.store_id, sale_id)
        return jsonify({"sale": sale.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
