# backend/shopledger/routes/inventory.py
"""
Inventory management routes.

All routes require tenant context (@require_identity); every read and write is
scoped to g.tenant_id.

- POST movements: record an IN/OUT through the stock ledger
- POST reconcile: set stock to a counted quantity via a reconciliation movement
- GET movements / summary / out-of-stock: read-only views of the ledger
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..models import InventoryMovement
from ..errors import LedgerError
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_movement,
    parse_counted_quantity,
)
from ..decorators import require_identity
from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

MOVEMENT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "type", "quantity", "comment"},
    required_on_create={"product_id", "type", "quantity"},
)


@inventory_bp.post("/movements")
@require_identity
def create_movement_route():
    """
    Record a stock movement.

    Body: {"product_id": int, "type": "IN"|"OUT", "quantity": int > 0, "comment": str?}
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=InventoryMovement,
            payload=payload,
            policy=MOVEMENT_POLICY,
        )
        enforce_rules_movement(patch)

        movement = inventory_service.create_movement(
            tenant_id=g.tenant_id,
            product_id=patch["product_id"],
            movement_type=patch["type"],
            quantity=patch["quantity"],
            comment=patch.get("comment"),
            user_id=g.user_id,
        )
        summary = inventory_service.verify_stock(tenant_id=g.tenant_id, product_id=patch["product_id"])

        return jsonify({"movement": movement.to_dict(), "summary": summary}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record inventory movement")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.post("/<int:product_id>/reconcile")
@require_identity
def reconcile_stock_route(product_id: int):
    """
    Set stock to a physically counted quantity.

    Body: {"counted_quantity": int >= 0, "comment": str?}
    Writes one IN/OUT for the difference; no movement when already equal.
    """
    payload = request.get_json(silent=True) or {}

    try:
        counted = parse_counted_quantity(payload)
        comment = payload.get("comment")

        movement = inventory_service.reconcile_stock(
            tenant_id=g.tenant_id,
            product_id=product_id,
            counted_quantity=counted,
            user_id=g.user_id,
            comment=str(comment).strip() if comment else None,
        )
        summary = inventory_service.verify_stock(tenant_id=g.tenant_id, product_id=product_id)

        return jsonify({
            "movement": movement.to_dict() if movement else None,
            "summary": summary,
        }), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reconcile stock")
        return jsonify({"error": "Internal server error"}), 500


@inventory_bp.get("/<int:product_id>/movements")
@require_identity
def list_movements_route(product_id: int):
    """List ledger entries for a product, newest first."""
    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, 1000))

    try:
        movements = inventory_service.list_movements(
            tenant_id=g.tenant_id, product_id=product_id, limit=limit
        )
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code

    return jsonify({"movements": [m.to_dict() for m in movements]}), 200


@inventory_bp.get("/<int:product_id>/summary")
@require_identity
def stock_summary_route(product_id: int):
    """Cached stock next to the ledger balance it must equal."""
    try:
        return jsonify(inventory_service.verify_stock(tenant_id=g.tenant_id, product_id=product_id)), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@inventory_bp.get("/out-of-stock")
@require_identity
def out_of_stock_route():
    products = inventory_service.find_out_of_stock(g.tenant_id)
    return jsonify({"products": [p.to_dict() for p in products]}), 200
