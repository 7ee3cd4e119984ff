# Overview: Service-layer operations for stock movements; append-only ledger writes.

from __future__ import annotations

from ..models import InventoryMovement
from ..models.inventory import MOVEMENT_TYPES
from ..errors import ValidationError


def validate_movement(movement_type: str, quantity) -> None:
    """Reject anything that is not a positive integer quantity of IN or OUT."""
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(
            "type must be IN or OUT", details={"type": movement_type}
        )
    # bool is an int subclass; True is not a quantity
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer", details={"quantity": quantity})
    if quantity <= 0:
        raise ValidationError("quantity must be > 0", details={"quantity": quantity})


def record_movement(
    session,
    *,
    tenant_id: int,
    product_id: int,
    movement_type: str,
    quantity: int,
    comment: str | None = None,
    user_id: int | None = None,
) -> InventoryMovement:
    """
    Append one movement row in the caller's transaction.

    No locking, no commit: the caller (inventory_service.apply_movement) owns
    the product row lock and the transaction. There is no update
    or delete counterpart.
    """
    validate_movement(movement_type, quantity)

    movement = InventoryMovement(
        tenant_id=tenant_id,
        product_id=product_id,
        user_id=user_id,
        type=movement_type,
        quantity=quantity,
        comment=comment,
    )
    session.add(movement)
    session.flush()
    return movement
