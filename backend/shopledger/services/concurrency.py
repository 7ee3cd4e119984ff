# Overview: Service-layer operations for concurrency; transactional unit-of-work boundary and retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import ConflictError, InfrastructureError
"""
Transaction invariants (authoritative)

- Every multi-row write runs inside run_atomic(): one begin, one commit.
- A unit of work never commits on its own. It may flush to get ids.
- Any exception leaving the unit of work (business, storage, or an interrupt
  such as KeyboardInterrupt) rolls back everything written in the scope and is
  re-raised unchanged. Constraint violations surface as ConflictError; other
  storage errors that survive the bounded retry surface as InfrastructureError.
- Rows that are read-modify-written are read with SELECT ... FOR UPDATE. On
  SQLite, which ignores FOR UPDATE, the scope opens with BEGIN IMMEDIATE so
  writers are serialized at the database level.
- Conflicts (lock timeouts, deadlocks, stale version_id) retry the whole unit
  of work from scratch; a retried unit always starts from a clean rollback.
"""


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Transaction conflict (attempt %s/%s): %s", attempt + 1, attempts, exc
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def _begin_write_scope(session) -> None:
    """Take the SQLite write lock up front; other dialects rely on row locks."""
    if session.get_bind().dialect.name != "sqlite":
        return
    dbapi_conn = session.connection().connection.dbapi_connection
    if not dbapi_conn.in_transaction:
        session.execute(text("BEGIN IMMEDIATE"))


def run_atomic(unit_of_work, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run unit_of_work(session) as one transaction and return its result.

    The session handed to the unit of work is the transaction-bound handle;
    ledger and order helpers take it explicitly so every write lands in the
    same scope.
    """
    if attempts is None:
        attempts = current_app.config.get("TX_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("TX_RETRY_BACKOFF", 0.1)

    def _op():
        session = db.session
        try:
            _begin_write_scope(session)
            result = unit_of_work(session)
            session.commit()
            return result
        except BaseException:
            session.rollback()
            raise

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except IntegrityError as exc:
        # Constraint violations fail identically on every attempt
        raise ConflictError(
            "Write rejected by a database constraint",
            details={"cause": exc.__class__.__name__},
        ) from exc
    except SQLAlchemyError as exc:
        raise InfrastructureError(
            "Storage failure, transaction rolled back",
            details={"cause": exc.__class__.__name__},
        ) from exc

