"""Seller analytics schemas."""

from datetime import datetime
from typing import Dict, List, Optional

from marketplace.core.enums import OrderStatus, TimeRange

from .base import BaseSchema, Money


class SellerOrderSummaryRead(BaseSchema):
    order_id: int
    status: OrderStatus
    created_at: datetime
    delivered_at: Optional[datetime] = None
    item_count: int
    seller_total: Money


class ProductSalesRead(BaseSchema):
    product_id: int
    name: str
    quantity: int
    revenue: Money


class MonthlyRevenueRead(BaseSchema):
    month: str
    revenue: Money
    orders: int


class SellerAnalyticsRead(BaseSchema):
    seller_id: int
    time_range: TimeRange
    since: datetime
    total_orders: int
    status_counts: Dict[str, int]
    total_revenue: Money
    potential_revenue: Money
    completion_rate: float
    average_order_value: Money
    top_products: List[ProductSalesRead] = []
    monthly_revenue: List[MonthlyRevenueRead] = []
    orders: List[SellerOrderSummaryRead] = []
