from .auth import User, ROLE_ADMIN, ROLE_CUSTOMER, VALID_ROLES
from .catalog import Product, Favorite, MAX_STOCK, MAX_AMOUNT
from .cart import CartItem
from .orders import Order, OrderItem
from .audit import AuditLog

__all__ = [
    'User', 'ROLE_ADMIN', 'ROLE_CUSTOMER', 'VALID_ROLES',
    'Product', 'Favorite', 'MAX_STOCK', 'MAX_AMOUNT',
    'CartItem',
    'Order', 'OrderItem',
    'AuditLog',
]
