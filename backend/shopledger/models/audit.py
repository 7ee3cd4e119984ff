from __future__ import annotations

import json

from ..extensions import db
from shopledger.time_utils import to_utc_z

class AuditLog(db.Model):
    """
    Business audit trail (INVENTORY_MOVE, ORDER_CREATED, ORDER_CANCELLED, ...).

    Written by audit_service after the business transaction commits, through
    its own session. A failed write here never affects stock or orders.

    IMMUTABLE: Never update or delete. Append-only.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    level = db.Column(db.String(16), nullable=False, default="INFO", index=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)

    tenant_id = db.Column(db.Integer, nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=True)

    # JSON-encoded payload (product_id, order_id, stock before/after, ...)
    metadata_json = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "level": self.level,
            "action": self.action,
            "message": self.message,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "metadata": json.loads(self.metadata_json) if self.metadata_json else {},
            "created_at": to_utc_z(self.created_at),
        }
