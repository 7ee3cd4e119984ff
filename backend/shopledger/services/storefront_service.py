"""
Storefront catalog reads.

WHY: The public storefront needs to show what can be ordered before it places
an order. Everything here resolves the tenant by slug first, so an inactive or
unknown shop is reported the same way as in order_service.create_order().

Only active products are ever returned; an inactive product looks exactly
like a missing one.
"""

from __future__ import annotations

from ..models import Tenant, Product
from ..errors import ProductUnavailableError
from .tenant_service import find_active_by_slug, scoped_query


def get_store_info(slug: str) -> Tenant:
    return find_active_by_slug(slug)


def _active_products(tenant_id: int):
    return scoped_query(Product, tenant_id).filter(Product.is_active.is_(True))


def list_products(slug: str, *, in_stock_only: bool = False) -> list[Product]:
    """Active products of an active tenant, newest first."""
    tenant = find_active_by_slug(slug)
    q = _active_products(tenant.id)
    if in_stock_only:
        q = q.filter(Product.stock > 0)
    return q.order_by(Product.created_at.desc(), Product.id.desc()).all()


def get_product(slug: str, product_id: int) -> Product:
    tenant = find_active_by_slug(slug)
    product = _active_products(tenant.id).filter(Product.id == product_id).first()
    if product is None:
        raise ProductUnavailableError(
            f"Product {product_id} is not available",
            details={"tenant_id": tenant.id, "product_id": product_id},
        )
    return product
