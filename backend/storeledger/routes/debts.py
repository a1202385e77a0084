# Overview: Flask API routes for customer debts and debt payments.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_store
from ..errors import LedgerError
from ..schemas import DebtPaymentIn
from ..services import debt_service
from ..validation import parse_payload


debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


@debts_bp.get("")
@require_store
def list_debts_route():
    """Query params: status = active | paid | all (default all)."""
    status = request.args.get("status")
    debts = debt_service.list_debts(g.store_id, status)
    return jsonify({"debts": [d.to_dict() for d in debts]})


@debts_bp.get("/<int:debt_id>")
@require_store
def get_debt_route(debt_id: int):
    try:
        return jsonify({"debt": debt_service.get_debt_details(g.store_id, debt_id)})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@debts_bp.get("/<int:debt_id>/payments")
@require_store
def list_payments_route(debt_id: int):
    try:
        payments = debt_service.list_payments(g.store_id, debt_id)
        return jsonify({"payments": [p.to_dict() for p in payments]})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@debts_bp.post("/<int:debt_id>/payments")
@require_store
def apply_payment_route(debt_id: int):
    try:
        payload = parse_payload(DebtPaymentIn, request.get_json(silent=True))
        debt = debt_service.apply_payment(g.store_id, debt_id, payload.amount)
        return jsonify({"debt": debt.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to apply debt payment")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500
