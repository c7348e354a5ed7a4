from .activity_log import ActivityLog
from .product import Product
from .cart import CartLine
from .order import Order, OrderItem
from .delivery_agent import DeliveryAgent
from .notification import Notification

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'ActivityLog',
    'Product',
    'CartLine',
    'Order',
    'OrderItem',
    'DeliveryAgent',
    'Notification',
]
