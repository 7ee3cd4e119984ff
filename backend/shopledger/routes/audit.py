# backend/shopledger/routes/audit.py
"""Tenant audit trail (read-only)."""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_identity
from ..services import audit_service


audit_bp = Blueprint("audit", __name__, url_prefix="/api/audit")


@audit_bp.get("/")
@require_identity
def list_audit_route():
    """Newest-first audit entries. Optional ?action=ORDER_CANCELLED&limit=50."""
    action = request.args.get("action") or None
    limit = request.args.get("limit", default=100, type=int)
    limit = max(1, min(limit, 500))

    entries = audit_service.list_entries(tenant_id=g.tenant_id, action=action, limit=limit)
    return jsonify({"entries": [e.to_dict() for e in entries]}), 200
