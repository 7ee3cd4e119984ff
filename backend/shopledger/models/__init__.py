from .tenancy import Tenant
from .inventory import Product, InventoryMovement
from .orders import Order, OrderItem
from .audit import AuditLog

__all__ = [
    'Tenant',
    'Product', 'InventoryMovement',
    'Order', 'OrderItem',
    'AuditLog',
]
