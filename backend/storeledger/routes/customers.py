# Overview: Flask API routes for customers, including the customer merge.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_store
from ..errors import LedgerError
from ..schemas import CustomerIn, CustomerMergeIn, CustomerUpdateIn
from ..services import customer_service
from ..validation import parse_payload


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_store
def list_customers_route():
    customers = customer_service.list_customers(g.store_id, request.args.get("search"))
    return jsonify({"customers": [c.to_dict() for c in customers]})


@customers_bp.post("")
@require_store
def create_customer_route():
    try:
        payload = parse_payload(CustomerIn, request.get_json(silent=True))
        customer = customer_service.create_customer(g.store_id, payload.name, payload.phone)
        return jsonify({"customer": customer.to_dict()}), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.get("/<int:customer_id>")
@require_store
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(g.store_id, customer_id)
        debt = customer_service.customer_active_debt(g.store_id, customer_id)
        data = customer.to_dict()
        data["active_debt"] = debt.to_dict() if debt else None
        return jsonify({"customer": data})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.put("/<int:customer_id>")
@require_store
def update_customer_route(customer_id: int):
    try:
        payload = parse_payload(CustomerUpdateIn, request.get_json(silent=True))
        customer = customer_service.update_customer(
            g.store_id, customer_id, payload.model_dump(exclude_unset=True),
        )
        return jsonify({"customer": customer.to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.post("/merge")
@require_store
def merge_customers_route():
    """
    Merge source_id into target_id.

    The source's debts and orders move to the target and the source is deleted.
    """
    try:
        payload = parse_payload(CustomerMergeIn, request.get_json(silent=True))
        customer = customer_service.merge_customers(g.store_id, payload.source_id, payload.target_id)
        return jsonify({"customer": customer.to_dict()})

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to merge customers")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500
