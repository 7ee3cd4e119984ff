"""
Tenant lookup.

Tenants are created and edited elsewhere; this service only resolves them.
Every lookup that fails raises the same error whether the tenant is missing,
inactive or simply unknown, so callers cannot discover other tenants.
"""

from ..extensions import db
from ..models import Tenant
from ..errors import NotFoundError, TenantUnavailableError


def find_active_by_slug(slug: str, session=None) -> Tenant:
    """Resolve a storefront slug to an active tenant."""
    session = session or db.session
    tenant = session.query(Tenant).filter_by(slug=slug).first()
    if tenant is None or not tenant.is_active:
        raise TenantUnavailableError(
            "Store not available", details={"tenant_slug": slug}
        )
    return tenant


def find_by_id(tenant_id: int, session=None) -> Tenant:
    session = session or db.session
    tenant = session.query(Tenant).filter_by(id=tenant_id).first()
    if tenant is None:
        raise NotFoundError("Tenant not found", details={"tenant_id": tenant_id})
    return tenant


def scoped_query(model, tenant_id: int, session=None):
    """
    Base query for a tenant-owned model.

    SECURITY: every read of products, movements and orders starts here so the
    tenant_id predicate cannot be forgotten.
    """
    session = session or db.session
    return session.query(model).filter(model.tenant_id == tenant_id)
