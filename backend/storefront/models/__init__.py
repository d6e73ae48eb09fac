from .catalog import Product, Warehouse
from .auth import User, SessionToken
from .cart import CartLine
from .orders import Order, OrderLine, OrderNumberSequence
from .inventory import InventoryRecord, InventoryMovement
from .audit import AuditLog

__all__ = [
    'Product', 'Warehouse',
    'User', 'SessionToken',
    'CartLine',
    'Order', 'OrderLine', 'OrderNumberSequence',
    'InventoryRecord', 'InventoryMovement',
    'AuditLog',
]
