# backend/shopledger/routes/orders.py
"""Tenant-side order routes: read and cancel."""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import LedgerError
from ..services import order_service
from ..decorators import require_identity


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("/")
@require_identity
def list_orders_route():
    """List tenant orders, newest first. Optional ?status=COMPLETED|CANCELLED|PENDING."""
    status = request.args.get("status")
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    try:
        orders = order_service.list_orders(g.tenant_id, status=status, limit=limit)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"orders": [o.to_dict(include_items=False) for o in orders]}), 200


@orders_bp.get("/<int:order_id>")
@require_identity
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id, g.tenant_id)
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"order": order.to_dict()}), 200


@orders_bp.post("/<int:order_id>/cancel")
@require_identity
def cancel_order_route(order_id: int):
    """
    Cancel a completed order and restore its stock.

    Returns 409 when the order is already cancelled.
    """
    try:
        result = order_service.cancel_order(order_id, g.tenant_id, g.user_id)
        return jsonify(result), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500
