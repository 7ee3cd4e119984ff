# Overview: Pytest coverage for the run_atomic unit-of-work boundary.

"""
Transaction boundary tests.

run_atomic() must commit once on success, roll back every write on any
failure (business, storage, or interrupt), re-raise business errors
unchanged, and retry storage conflicts a bounded number of times before
surfacing InfrastructureError.
"""

import pytest
from sqlalchemy.exc import OperationalError, IntegrityError

from shopledger.extensions import db
from shopledger.models import Tenant
from shopledger.errors import ConflictError, InfrastructureError, InsufficientStockError
from shopledger.services.concurrency import run_atomic


def _tenant_count() -> int:
    return db.session.query(Tenant).count()


class TestCommitAndRollback:

    def test_success_commits_and_returns_result(self, db_session):
        def _op(session):
            tenant = Tenant(name="Gamma", slug="gamma")
            session.add(tenant)
            session.flush()
            return tenant.id

        tenant_id = run_atomic(_op)

        assert tenant_id is not None
        db_session.expire_all()
        assert db_session.query(Tenant).filter_by(id=tenant_id).count() == 1

    def test_business_error_rolls_back_and_propagates_unchanged(self, db_session):
        error = InsufficientStockError(tenant_id=1, product_id=2, requested=5, available=3)

        def _op(session):
            session.add(Tenant(name="Gamma", slug="gamma"))
            session.flush()
            raise error

        with pytest.raises(InsufficientStockError) as exc_info:
            run_atomic(_op)

        assert exc_info.value is error
        assert _tenant_count() == 0

    def test_unexpected_error_rolls_back(self, db_session):
        def _op(session):
            session.add(Tenant(name="Gamma", slug="gamma"))
            session.flush()
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            run_atomic(_op)

        assert _tenant_count() == 0

    def test_interrupt_rolls_back(self, db_session):
        """A request torn down mid-transaction leaves nothing behind."""
        def _op(session):
            session.add(Tenant(name="Gamma", slug="gamma"))
            session.flush()
            raise KeyboardInterrupt()

        with pytest.raises(KeyboardInterrupt):
            run_atomic(_op)

        assert _tenant_count() == 0

    def test_session_usable_after_rollback(self, db_session):
        def _fail(session):
            session.add(Tenant(name="Lost", slug="lost"))
            raise RuntimeError("first")

        with pytest.raises(RuntimeError):
            run_atomic(_fail)

        run_atomic(lambda session: session.add(Tenant(name="After", slug="after")))
        assert _tenant_count() == 1


class TestRetryAndInfrastructureErrors:

    def test_operational_error_retried_then_wrapped(self, db_session):
        calls = []

        def _op(session):
            calls.append(1)
            session.add(Tenant(name=f"Try {len(calls)}", slug=f"try-{len(calls)}"))
            session.flush()
            raise OperationalError("UPDATE products", {}, Exception("database is locked"))

        with pytest.raises(InfrastructureError) as exc_info:
            run_atomic(_op, attempts=3, backoff_base=0)

        assert len(calls) == 3
        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert _tenant_count() == 0

    def test_transient_conflict_succeeds_on_retry(self, db_session):
        calls = []

        def _op(session):
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("SELECT", {}, Exception("deadlock detected"))
            session.add(Tenant(name="Gamma", slug="gamma"))
            return "ok"

        assert run_atomic(_op, attempts=3, backoff_base=0) == "ok"
        assert len(calls) == 2
        assert _tenant_count() == 1

    def test_integrity_error_not_retried_and_not_retryable(self, db_session, tenant_a):
        calls = []

        def _op(session):
            calls.append(1)
            session.add(Tenant(name="Dup", slug=tenant_a.slug))
            session.flush()

        with pytest.raises(ConflictError) as exc_info:
            run_atomic(_op, attempts=3, backoff_base=0)

        assert len(calls) == 1
        assert exc_info.value.retryable is False
        assert exc_info.value.status_code == 409
        assert not isinstance(exc_info.value, InfrastructureError)
        assert isinstance(exc_info.value.__cause__, IntegrityError)
        assert _tenant_count() == 1
