from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z

class Tenant(db.Model):
    """
    Multi-tenant root: every shop is a Tenant.

    All products, movements, orders and audit rows carry tenant_id and every
    query filters on it. No row may cross tenant boundaries.

    Tenant CRUD lives outside this service; the core only reads tenants to
    resolve a storefront slug or validate a tenant id.
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    # Public storefront handle: /api/storefront/<slug>/orders
    slug = db.Column(db.String(64), nullable=False, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} slug={self.slug!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
