"""Delivery agent schemas."""

from datetime import datetime
from typing import List, Optional

from marketplace.core.enums import OrderStatus

from .base import BaseSchema, TimestampedSchema, Money


class AgentCreate(BaseSchema):
    name: str
    service_state: Optional[str] = None
    max_deliveries: Optional[int] = None


class AgentRead(TimestampedSchema):
    id: int
    name: str
    service_state: Optional[str] = None
    is_available: bool
    is_active: bool
    max_deliveries: int


class AgentEarningRead(BaseSchema):
    amount: Money
    fee_type: str
    description: str


class DeliveryOrderRead(BaseSchema):
    id: int
    status: OrderStatus
    shipping_address: str
    shipping_state: Optional[str] = None
    total: Money
    delivery_fee: Money
    created_at: datetime
    assigned_agent_id: Optional[int] = None
    assigned_at: Optional[datetime] = None
    item_count: int
    earning: AgentEarningRead


class OrderPoolsRead(BaseSchema):
    agent_id: int
    is_available: bool
    assigned: List[DeliveryOrderRead] = []
    available: List[DeliveryOrderRead] = []


class AgentStatsRead(BaseSchema):
    total_deliveries: int
    pending_deliveries: int
    completed_today: int
    earnings_today: Money
    weekly_earnings: Money
    monthly_earnings: Money
    completion_rate: int
    total_orders: int
    active_days: int


class DeliveryFeeRead(BaseSchema):
    order_id: int
    order_total: Money
    buyer_delivery_fee: Money
    agent_earning: AgentEarningRead
