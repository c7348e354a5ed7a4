"""
Schema exports for the application.
"""

# Base schemas
from .base import BaseSchema, Money, TimestampedSchema

# Product schemas
from .product import ProductBase, ProductCreate, ProductUpdate, ProductRead, ProductDeleteResult

# Cart schemas
from .cart import CartItemAdd, CartItemUpdate, CartLineRead, CartRead

# Order schemas
from .order import (
    CheckoutRequest,
    StatusUpdate,
    OrderItemRead,
    OrderRead,
    StatusUpdateResult,
    SellerOrderRead,
    TrackingStepRead,
    TrackingRead,
)

# Delivery schemas
from .delivery import (
    AgentCreate,
    AgentRead,
    AgentEarningRead,
    DeliveryOrderRead,
    OrderPoolsRead,
    AgentStatsRead,
    DeliveryFeeRead,
)

# Notification schemas
from .notification import NotificationRead, NotificationList, MarkReadRequest, MarkReadResult

# Analytics schemas
from .analytics import SellerOrderSummaryRead, ProductSalesRead, MonthlyRevenueRead, SellerAnalyticsRead
