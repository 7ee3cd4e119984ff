from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z

MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT)


class Product(db.Model):
    """
    Product master data.

    MULTI-TENANT: Products are scoped to tenants via tenant_id.
    SKUs are unique within a tenant: UniqueConstraint("tenant_id", "sku").

    STOCK IS A CACHE:
    Product.stock is a materialized projection of the inventory_movements
    ledger: stock == SUM(IN.quantity) - SUM(OUT.quantity). It is written only by
    inventory_service.apply_movement(), in the same transaction as the movement
    row. Product admin flows never set it directly; a manual correction goes
    through inventory_service.reconcile_stock(), which writes a movement.

    version_id gives optimistic locking on top of SELECT ... FOR UPDATE, so a
    backend without row locks still rejects a stale read-modify-write.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonneg"),
        db.Index("ix_products_tenant_active", "tenant_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    sku = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(150), nullable=False)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=True)

    stock = db.Column(db.Integer, nullable=False, default=0)

    # Inactive products are hidden from the storefront and cannot be ordered
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    tenant = db.relationship("Tenant", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} tenant_id={self.tenant_id} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "name": self.name,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "stock": self.stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryMovement(db.Model):
    """
    One immutable stock change. The movements table is the ledger.

    APPEND-ONLY: rows are inserted by movement_service.record_movement() and
    never updated or deleted. quantity is always positive; type says which way.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_movements_quantity_pos"),
        db.CheckConstraint("type IN ('IN', 'OUT')", name="ck_movements_type"),
        db.Index("ix_movements_tenant_product_created", "tenant_id", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # Acting user from the identity context; None for storefront orders
    user_id = db.Column(db.Integer, nullable=True)

    type = db.Column(db.String(8), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    comment = db.Column(db.Text, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<InventoryMovement id={self.id} product_id={self.product_id} {self.type} {self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "type": self.type,
            "quantity": self.quantity,
            "comment": self.comment,
            "created_at": to_utc_z(self.created_at),
        }
