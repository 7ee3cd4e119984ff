"""
Order Service - storefront fulfillment and cancellation

WHY: An order is the only place where several stock changes must succeed or
fail together. Fulfillment and cancellation are two different
mechanisms:

- create_order(): one transaction. Any failure (unknown product, inactive
  product, insufficient stock on any line) rolls back every decrement,
  movement and the order row itself. Nothing is persisted for a failed call.
- cancel_order(): a compensating transaction. The original OUT movements stay
  in the ledger untouched; new IN movements restore the stock and the order
  flips COMPLETED -> CANCELLED.

LOCK ORDER: create_order() locks every product of the order in ascending id
order before touching any line, then applies the lines in the order the
customer gave them. Two orders over overlapping products therefore always
acquire row locks in the same sequence.
"""

from __future__ import annotations

from ..models import Product, Order, OrderItem
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from ..models.orders import ORDER_PENDING, ORDER_COMPLETED, ORDER_CANCELLED, ORDER_STATUSES
from ..errors import (
    AlreadyCancelledError,
    ConflictError,
    NotFoundError,
    ProductUnavailableError,
    ValidationError,
)
from shopledger.time_utils import utcnow
from . import audit_service, tenant_service
from .concurrency import lock_for_update, run_atomic
from .inventory_service import apply_movement
from .tenant_service import scoped_query


def _validate_customer(customer: dict) -> dict:
    if not isinstance(customer, dict):
        raise ValidationError("customer must be an object")

    name = str(customer.get("name") or "").strip()
    email = str(customer.get("email") or "").strip()
    phone = customer.get("phone")
    phone = str(phone).strip() if phone is not None else None

    if not name:
        raise ValidationError("customer name is required")
    if len(name) > 150:
        raise ValidationError("customer name exceeds max length 150")
    if not email or "@" not in email:
        raise ValidationError("customer email must be a valid address")
    if len(email) > 150:
        raise ValidationError("customer email exceeds max length 150")
    if phone is not None and len(phone) > 20:
        raise ValidationError("customer phone exceeds max length 20")

    return {"name": name, "email": email, "phone": phone or None}


def _validate_items(items) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    cleaned = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = item.get("product_id")
        quantity = item.get("quantity")
        if isinstance(product_id, bool) or not isinstance(product_id, int):
            raise ValidationError(f"items[{index}].product_id must be an integer")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be a positive integer")
        cleaned.append({"product_id": product_id, "quantity": quantity})
    return cleaned


def _lock_order_products(session, tenant_id: int, product_ids: set[int]) -> dict[int, Product]:
    """Lock all products of the order in canonical (ascending id) order."""
    products = lock_for_update(
        scoped_query(Product, tenant_id, session)
        .filter(Product.id.in_(sorted(product_ids)))
        .order_by(Product.id.asc())
    ).all()
    return {p.id: p for p in products}


def create_order(tenant_slug: str, customer: dict, items: list[dict]) -> Order:
    """
    Fulfill a storefront order atomically.

    Steps (one transaction):
    1. Resolve the tenant by slug; inactive or missing -> TenantUnavailableError.
    2. For each line, in caller order: product must exist and be active, then
       an OUT movement through the stock ledger. The first failing line aborts
       the whole order.
    3. Persist the COMPLETED order with item price snapshots and the total.
    """
    customer = _validate_customer(customer)
    items = _validate_items(items)

    def _op(session):
        tenant = tenant_service.find_active_by_slug(tenant_slug, session)

        products = _lock_order_products(session, tenant.id, {i["product_id"] for i in items})

        # PENDING until every line is fulfilled; never visible outside this transaction
        order = Order(
            tenant_id=tenant.id,
            customer_name=customer["name"],
            customer_email=customer["email"],
            customer_phone=customer["phone"],
            total_cents=0,
            status=ORDER_PENDING,
        )
        session.add(order)
        session.flush()

        total_cents = 0
        for item in items:
            product = products.get(item["product_id"])
            if product is None or not product.is_active:
                raise ProductUnavailableError(
                    f"Product {item['product_id']} is not available",
                    details={"tenant_id": tenant.id, "product_id": item["product_id"]},
                )

            apply_movement(
                session,
                tenant_id=tenant.id,
                product_id=product.id,
                movement_type=MOVEMENT_OUT,
                quantity=item["quantity"],
                comment=f"Order {order.id}",
            )

            total_cents += product.price_cents * item["quantity"]
            order.items.append(
                OrderItem(
                    product_id=product.id,
                    quantity=item["quantity"],
                    price_cents=product.price_cents,
                )
            )

        order.total_cents = total_cents
        order.status = ORDER_COMPLETED
        session.flush()
        return order

    order = run_atomic(_op)

    audit_service.record(
        "ORDER_CREATED",
        f"Order {order.id} created for {order.customer_email} (total_cents={order.total_cents})",
        metadata={
            "order_id": order.id,
            "total_cents": order.total_cents,
            "items": [{"product_id": i["product_id"], "quantity": i["quantity"]} for i in items],
        },
        tenant_id=order.tenant_id,
    )
    return order


def cancel_order(order_id: int, tenant_id: int, acting_user_id: int | None) -> dict:
    """
    Cancel a COMPLETED order and restore its stock.

    Compensating transaction: one IN movement per item, referencing the order
    and attributed to the acting user. A second cancel raises
    AlreadyCancelledError and writes nothing.
    """
    def _op(session):
        order = lock_for_update(
            scoped_query(Order, tenant_id, session).filter(Order.id == order_id)
        ).first()
        if order is None:
            raise NotFoundError(
                "Order not found",
                details={"tenant_id": tenant_id, "order_id": order_id},
            )

        if order.status == ORDER_CANCELLED:
            raise AlreadyCancelledError(
                "Order already cancelled",
                details={"tenant_id": tenant_id, "order_id": order_id},
            )
        if order.status != ORDER_COMPLETED:
            raise ConflictError(
                f"Cannot cancel order with status {order.status}",
                details={"tenant_id": tenant_id, "order_id": order_id, "status": order.status},
            )

        restored = []
        for item in sorted(order.items, key=lambda i: i.product_id):
            apply_movement(
                session,
                tenant_id=tenant_id,
                product_id=item.product_id,
                movement_type=MOVEMENT_IN,
                quantity=item.quantity,
                comment=f"Cancellation of order {order.id}",
                user_id=acting_user_id,
            )
            restored.append({"product_id": item.product_id, "quantity": item.quantity})

        order.status = ORDER_CANCELLED
        order.cancelled_by_user_id = acting_user_id
        order.cancelled_at = utcnow()
        session.flush()
        return restored

    restored = run_atomic(_op)

    audit_service.record(
        "ORDER_CANCELLED",
        f"Order {order_id} cancelled, stock restored for {len(restored)} items",
        metadata={"order_id": order_id, "items": restored},
        level=audit_service.LEVEL_WARN,
        tenant_id=tenant_id,
        user_id=acting_user_id,
    )
    return {"restored": True, "order_id": order_id, "items": restored}


def get_order(order_id: int, tenant_id: int) -> Order:
    order = scoped_query(Order, tenant_id).filter(Order.id == order_id).first()
    if order is None:
        raise NotFoundError(
            "Order not found",
            details={"tenant_id": tenant_id, "order_id": order_id},
        )
    return order


def list_orders(tenant_id: int, status: str | None = None, limit: int = 100) -> list[Order]:
    q = scoped_query(Order, tenant_id)
    if status is not None:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(ORDER_STATUSES)}")
        q = q.filter(Order.status == status)
    return q.order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()
