"""
Schemas for checkout, order reads and status changes.
"""

from datetime import date, datetime
from typing import List, Optional

from marketplace.core.enums import OrderStatus, StepState

from .base import BaseSchema, TimestampedSchema, Money


class CheckoutRequest(BaseSchema):
    shipping_address: str
    shipping_state: Optional[str] = None


class StatusUpdate(BaseSchema):
    status: OrderStatus


class OrderItemRead(BaseSchema):
    id: int
    product_id: int
    product_name: str
    seller_id: int
    price: Money
    quantity: int
    line_total: Money


class OrderRead(TimestampedSchema):
    id: int
    buyer_id: int
    status: OrderStatus
    shipping_address: str
    shipping_state: Optional[str] = None
    total: Money
    delivery_fee: Money
    amount_payable: Money
    processing_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    assigned_agent_id: Optional[int] = None
    assigned_at: Optional[datetime] = None
    items: List[OrderItemRead] = []


class StatusUpdateResult(BaseSchema):
    order: OrderRead
    previous_status: OrderStatus
    changed: bool


class SellerOrderRead(BaseSchema):
    """An order as seen by one seller: only that seller's lines."""
    id: int
    buyer_id: int
    status: OrderStatus
    shipping_address: str
    created_at: datetime
    items: List[OrderItemRead] = []
    seller_total: Money


class TrackingStepRead(BaseSchema):
    key: str
    label: str
    state: StepState
    timestamp: Optional[datetime] = None


class TrackingRead(BaseSchema):
    order_id: int
    tracking_number: str
    status: OrderStatus
    created_at: datetime
    shipping_address: str
    total: Money
    delivery_fee: Money
    steps: List[TrackingStepRead]
    estimated_delivery: Optional[date] = None
    cancelled_at: Optional[datetime] = None
    assigned_agent_id: Optional[int] = None
    items: List[OrderItemRead] = []
