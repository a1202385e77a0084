# Overview: Flask API routes for online orders and their status lifecycle.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_store, require_premium
from ..errors import LedgerError
from ..schemas import OrderIn, OrderStatusIn
from ..services import order_service
from ..services.order_service import OrderLineInput
from ..validation import parse_payload


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_store
@require_premium
def list_orders_route():
    """Query params: status = pending | confirmed | delivered | cancelled | all."""
    orders = order_service.list_orders(g.store_id, request.args.get("status"))
    return jsonify({"orders": [o.to_dict() for o in orders]})


@orders_bp.get("/<int:order_id>")
@require_store
@require_premium
def get_order_route(order_id: int):
    try:
        return jsonify({"order": order_service.get_order(g.store_id, order_id).to_dict()})
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@orders_bp.post("")
@require_store
@require_premium
def create_order_route():
    try:
        payload = parse_payload(OrderIn, request.get_json(silent=True))
        order = order_service.create_order(
            store_id=g.store_id,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            customer_address=payload.customer_address,
            notes=payload.notes,
            lines=[
                OrderLineInput(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    price=item.price,
                    total=item.total,
                )
                for item in payload.items
            ],
        )
        return jsonify({"order": order.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500


@orders_bp.patch("/<int:order_id>/status")
@require_store
@require_premium
def update_order_status_route(order_id: int):
    """
    Move an order through its lifecycle.

    Delivering posts the sale and takes stock; delivering an already
    delivered order returns it unchanged.
    """
    try:
        payload = parse_payload(OrderStatusIn, request.get_json(silent=True))
        order = order_service.transition_order_status(
            g.store_id, order_id, payload.status, actor=g.actor,
        )
        return jsonify({"order": order.to_dict()})

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500
