# Overview: Service-layer operations for inventory; encapsulates stock ledger logic and database work.

# backend/shopledger/services/inventory_service.py

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import and_, case, func

from ..extensions import db
from ..models import Product, InventoryMovement
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from ..errors import NotFoundError, InsufficientStockError, ValidationError
from .concurrency import lock_for_update, run_atomic
from .movement_service import record_movement, validate_movement
from .tenant_service import scoped_query
from . import audit_service
"""
Stock Ledger Invariants (authoritative)

Inventory model:
- The inventory_movements table is the source of truth. Each row is an IN or
  OUT with a positive quantity and is never updated or deleted.
- Product.stock is a cached projection: stock == SUM(IN) - SUM(OUT).
- Stock changes only through apply_movement(), which writes the new stock and
  the movement row in the same transaction. No movement, no stock change.

Business invariants:
- stock may never go negative. An OUT that would do so raises
  InsufficientStockError (requested vs available) and writes nothing.
- The product row is read with SELECT ... FOR UPDATE inside the caller's
  transaction, so two concurrent OUTs on one product are serialized.

Tenancy:
- Every lookup filters on tenant_id. A product of another tenant is reported
  as not found.

Audit:
- INVENTORY_MOVE / STOCK_RECONCILE audit records are emitted after commit and
  are best-effort (see audit_service).
"""


@dataclass
class StockChange:
    """Outcome of one apply_movement() call."""
    product: Product
    movement: InventoryMovement
    previous_stock: int
    new_stock: int


def get_product_for_update(session, tenant_id: int, product_id: int) -> Product:
    """Load a tenant's product with a row lock held for the rest of the transaction."""
    product = lock_for_update(
        scoped_query(Product, tenant_id, session).filter(Product.id == product_id)
    ).first()
    if product is None:
        raise NotFoundError(
            "Product not found",
            details={"tenant_id": tenant_id, "product_id": product_id},
        )
    return product


def apply_movement(
    session,
    *,
    tenant_id: int,
    product_id: int,
    movement_type: str,
    quantity: int,
    comment: str | None = None,
    user_id: int | None = None,
) -> StockChange:
    """
    Core stock change without retry or commit.

    Must be called inside run_atomic(); the session is the transaction handle.
    Called by create_movement(), reconcile_stock() and the order services.
    """
    validate_movement(movement_type, quantity)

    product = get_product_for_update(session, tenant_id, product_id)

    previous = product.stock
    if movement_type == MOVEMENT_IN:
        new_stock = previous + quantity
    else:
        new_stock = previous - quantity
        if new_stock < 0:
            raise InsufficientStockError(
                tenant_id=tenant_id,
                product_id=product_id,
                requested=quantity,
                available=previous,
            )

    product.stock = new_stock
    movement = record_movement(
        session,
        tenant_id=tenant_id,
        product_id=product_id,
        movement_type=movement_type,
        quantity=quantity,
        comment=comment,
        user_id=user_id,
    )
    return StockChange(product=product, movement=movement, previous_stock=previous, new_stock=new_stock)


def create_movement(
    *,
    tenant_id: int,
    product_id: int,
    movement_type: str,
    quantity: int,
    comment: str | None = None,
    user_id: int | None = None,
) -> InventoryMovement:
    """
    Record a manual stock movement (purchase, shrink, internal use, ...).

    Public entry point for tenant admins. Validation happens before any
    transaction is opened.
    """
    validate_movement(movement_type, quantity)

    def _op(session):
        return apply_movement(
            session,
            tenant_id=tenant_id,
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            comment=comment,
            user_id=user_id,
        )

    change = run_atomic(_op)

    direction = "Inbound" if movement_type == MOVEMENT_IN else "Outbound"
    audit_service.record(
        "INVENTORY_MOVE",
        f"{direction} {quantity} units of product {product_id} "
        f"(stock: {change.previous_stock} -> {change.new_stock})",
        metadata={
            "product_id": product_id,
            "movement_id": change.movement.id,
            "comment": comment,
        },
        tenant_id=tenant_id,
        user_id=user_id,
    )
    return change.movement


def reconcile_stock(
    *,
    tenant_id: int,
    product_id: int,
    counted_quantity: int,
    user_id: int | None = None,
    comment: str | None = None,
) -> InventoryMovement | None:
    """
    Bring stock to a physically counted quantity.

    WHY: This is the only way to "set" stock. Instead of overwriting
    Product.stock it writes one IN or OUT for the difference, so the ledger
    still explains every unit. Returns None when the count already matches.
    """
    if isinstance(counted_quantity, bool) or not isinstance(counted_quantity, int):
        raise ValidationError("counted_quantity must be an integer")
    if counted_quantity < 0:
        raise ValidationError("counted_quantity must be >= 0")

    def _op(session):
        product = get_product_for_update(session, tenant_id, product_id)
        delta = counted_quantity - product.stock
        if delta == 0:
            return None
        return apply_movement(
            session,
            tenant_id=tenant_id,
            product_id=product_id,
            movement_type=MOVEMENT_IN if delta > 0 else MOVEMENT_OUT,
            quantity=abs(delta),
            comment=comment or f"Stock reconciliation: counted {counted_quantity}",
            user_id=user_id,
        )

    change = run_atomic(_op)
    if change is None:
        return None

    audit_service.record(
        "STOCK_RECONCILE",
        f"Product {product_id} reconciled to {counted_quantity} "
        f"(stock: {change.previous_stock} -> {change.new_stock})",
        metadata={"product_id": product_id, "movement_id": change.movement.id},
        tenant_id=tenant_id,
        user_id=user_id,
    )
    return change.movement


def _signed_quantity():
    return case(
        (InventoryMovement.type == MOVEMENT_IN, InventoryMovement.quantity),
        else_=-InventoryMovement.quantity,
    )


def get_ledger_balance(tenant_id: int, product_id: int) -> int:
    """SUM(IN) - SUM(OUT) straight from the ledger rows."""
    q = db.session.query(
        func.coalesce(func.sum(_signed_quantity()), 0)
    ).filter(
        InventoryMovement.tenant_id == tenant_id,
        InventoryMovement.product_id == product_id,
    )
    return int(q.scalar() or 0)


def verify_stock(*, tenant_id: int, product_id: int) -> dict:
    product = scoped_query(Product, tenant_id).filter(Product.id == product_id).first()
    if product is None:
        raise NotFoundError(
            "Product not found",
            details={"tenant_id": tenant_id, "product_id": product_id},
        )

    balance = get_ledger_balance(tenant_id, product_id)
    return {
        "tenant_id": tenant_id,
        "product_id": product_id,
        "stock": product.stock,
        "ledger_balance": balance,
        "consistent": product.stock == balance,
    }


def find_inconsistent_products(tenant_id: int | None = None) -> list[dict]:
    """Products whose cached stock drifted from their ledger balance."""
    balance = func.coalesce(func.sum(_signed_quantity()), 0).label("ledger_balance")
    q = db.session.query(Product.id, Product.tenant_id, Product.sku, Product.stock, balance).outerjoin(
        InventoryMovement,
        and_(
            InventoryMovement.product_id == Product.id,
            InventoryMovement.tenant_id == Product.tenant_id,
        ),
    )
    if tenant_id is not None:
        q = q.filter(Product.tenant_id == tenant_id)
    rows = q.group_by(Product.id, Product.tenant_id, Product.sku, Product.stock).order_by(Product.id).all()

    return [
        {
            "tenant_id": row.tenant_id,
            "product_id": row.id,
            "sku": row.sku,
            "stock": row.stock,
            "ledger_balance": int(row.ledger_balance),
        }
        for row in rows
        if row.stock != int(row.ledger_balance)
    ]


def find_out_of_stock(tenant_id: int) -> list[Product]:
    return (
        scoped_query(Product, tenant_id)
        .filter(Product.stock == 0)
        .order_by(Product.sku.asc())
        .all()
    )


def list_movements(*, tenant_id: int, product_id: int, limit: int = 200) -> list[InventoryMovement]:
    product = scoped_query(Product, tenant_id).filter(Product.id == product_id).first()
    if product is None:
        raise NotFoundError(
            "Product not found",
            details={"tenant_id": tenant_id, "product_id": product_id},
        )

    q = scoped_query(InventoryMovement, tenant_id).filter(
        InventoryMovement.product_id == product_id,
    ).order_by(
        InventoryMovement.created_at.desc(),
        InventoryMovement.id.desc(),
    )

    return q.limit(limit).all()
