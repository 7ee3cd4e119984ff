# Overview: Error taxonomy shared by the ledger, order and transaction services.

"""
Error taxonomy.

Business errors (validation, not found, insufficient stock, conflict) are final:
retrying the same call gives the same answer. InfrastructureError is the only
retryable kind; it wraps storage failures that outlived the bounded retry in
run_atomic().

Every error carries a details dict with the identifiers a caller needs to log
the failure externally (tenant_id, product_id / order_id, quantities).
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every error surfaced by the core."""

    status_code = 400
    retryable = False

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details, "retryable": self.retryable}


class ValidationError(LedgerError, ValueError):
    """400-level input problem (quantity <= 0, unknown movement type, ...)."""


class NotFoundError(LedgerError):
    """Tenant, product or order absent, or outside the caller's tenant."""

    status_code = 404


class TenantUnavailableError(NotFoundError):
    """Storefront slug does not resolve to an active tenant."""


class ProductUnavailableError(NotFoundError):
    """Ordered product is missing or inactive for this tenant."""


class InsufficientStockError(LedgerError):
    """An OUT movement would take stock below zero."""

    status_code = 409

    def __init__(self, *, tenant_id: int, product_id: int, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: requested {requested}, available {available}",
            details={
                "tenant_id": tenant_id,
                "product_id": product_id,
                "requested": requested,
                "available": available,
            },
        )
        self.requested = requested
        self.available = available


class ConflictError(LedgerError):
    """409-level business rule conflict."""

    status_code = 409


class AlreadyCancelledError(ConflictError):
    """Cancel requested on an order that is already CANCELLED."""


class InfrastructureError(LedgerError):
    """Storage or connection failure. Safe to retry."""

    status_code = 503
    retryable = True
