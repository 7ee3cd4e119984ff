"""
Audit sink: best-effort business audit trail.

WHY: Stock and order transactions must never fail, roll back or retry because
the audit trail could not be written. record() is therefore called only after
the business transaction has committed, and it swallows (and logs) every
failure.

DELIVERY (config AUDIT_ASYNC):
- True: the entry is handed to a background thread with its own app context
  and the caller returns at once; a slow or locked audit store never delays a
  response. The thread is not a daemon, so a CLI process waits for it on exit.
- False: the sink runs inline after commit.

SINKS (config AUDIT_SINK):
- "database": AuditLog row written through a dedicated short-lived session,
  never the request's db.session.
- "log": one line on app.logger.
- "none": dropped.
"""

from __future__ import annotations

import json
import threading

from flask import current_app
from sqlalchemy.orm import Session

from ..extensions import db
from ..models import AuditLog

LEVEL_INFO = "INFO"
LEVEL_WARN = "WARN"


def _write_database(entry: dict) -> None:
    with Session(db.engine) as session:
        session.add(AuditLog(**entry))
        session.commit()


def _write_log(entry: dict) -> None:
    current_app.logger.info(
        "AUDIT %s tenant=%s user=%s %s %s",
        entry["action"],
        entry["tenant_id"],
        entry["user_id"],
        entry["message"],
        entry["metadata_json"] or "",
    )


SINKS = {
    "database": _write_database,
    "log": _write_log,
}


def _deliver(app, sink, action: str, entry: dict) -> None:
    with app.app_context():
        try:
            sink(entry)
        except Exception:
            app.logger.warning("Failed to write audit record %s", action, exc_info=True)


def record(
    action: str,
    message: str,
    metadata: dict | None = None,
    *,
    level: str = LEVEL_INFO,
    tenant_id: int | None = None,
    user_id: int | None = None,
) -> None:
    """Fire-and-forget audit entry. Never raises and never waits on the sink when AUDIT_ASYNC is set."""
    try:
        sink = SINKS.get(current_app.config.get("AUDIT_SINK", "database"))
        if sink is None:
            return
        entry = {
            "level": level,
            "action": action,
            "message": message,
            "tenant_id": tenant_id,
            "user_id": user_id,
            "metadata_json": json.dumps(metadata, default=str) if metadata else None,
        }
        if current_app.config.get("AUDIT_ASYNC", False):
            app = current_app._get_current_object()
            threading.Thread(
                target=_deliver,
                args=(app, sink, action, entry),
                name=f"audit-{action.lower()}",
            ).start()
        else:
            sink(entry)
    except Exception:
        current_app.logger.warning("Failed to write audit record %s", action, exc_info=True)


def list_entries(*, tenant_id: int, action: str | None = None, limit: int = 100) -> list[AuditLog]:
    """Newest-first audit entries of one tenant (GET /api/audit)."""
    q = db.session.query(AuditLog).filter(AuditLog.tenant_id == tenant_id)
    if action:
        q = q.filter(AuditLog.action == action)
    return q.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
