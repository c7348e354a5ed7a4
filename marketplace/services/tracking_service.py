"""
Buyer-facing order tracking.

The timeline is computed from the stored per-status timestamps, so it
reflects what actually happened rather than what the current status implies.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.core.enums import OrderStatus, StepState
from marketplace.core.exceptions import OrderNotFoundError
from marketplace.core.utils import utcnow
from marketplace.models.order import Order, OrderItem
from marketplace.services.order_state_machine import PROGRESSION

logger = logging.getLogger(__name__)

# (status, key, label, timestamp attribute)
TRACKING_STEPS = [
    (OrderStatus.PENDING, "ordered", "Order Placed", "created_at"),
    (OrderStatus.PROCESSING, "processing", "Processing", "processing_at"),
    (OrderStatus.SHIPPED, "shipped", "Shipped", "shipped_at"),
    (OrderStatus.DELIVERED, "delivered", "Delivered", "delivered_at"),
]

# Days from order placement to expected delivery
DELIVERY_ESTIMATE_DAYS = {
    OrderStatus.PENDING: 7,
    OrderStatus.PROCESSING: 5,
    OrderStatus.SHIPPED: 2,
}


@dataclass
class TrackingStep:
    key: str
    label: str
    state: StepState
    timestamp: Optional[datetime] = None


@dataclass
class TrackingView:
    order_id: int
    tracking_number: str
    status: OrderStatus
    created_at: datetime
    shipping_address: str
    total: Decimal
    delivery_fee: Decimal
    steps: List[TrackingStep] = field(default_factory=list)
    estimated_delivery: Optional[date] = None
    cancelled_at: Optional[datetime] = None
    assigned_agent_id: Optional[int] = None
    items: List[OrderItem] = field(default_factory=list)


def tracking_number(order_id: int) -> str:
    return f"TRK{order_id:08d}"


def build_steps(order: Order) -> List[TrackingStep]:
    steps = []
    if order.status == OrderStatus.CANCELLED:
        for _, key, label, attr in TRACKING_STEPS:
            stamp = getattr(order, attr)
            state = StepState.COMPLETED if stamp is not None else StepState.PENDING
            steps.append(TrackingStep(key=key, label=label, state=state, timestamp=stamp))
        return steps

    current = PROGRESSION.index(order.status)
    for index, (_, key, label, attr) in enumerate(TRACKING_STEPS):
        if index <= current:
            state = StepState.COMPLETED
        elif index == current + 1:
            state = StepState.CURRENT
        else:
            state = StepState.PENDING
        steps.append(TrackingStep(key=key, label=label, state=state, timestamp=getattr(order, attr)))
    return steps


def estimate_delivery(status: OrderStatus, created_at: datetime, today: Optional[date] = None) -> Optional[date]:
    """Display-only estimate; None once the order is finished."""
    days = DELIVERY_ESTIMATE_DAYS.get(status)
    if days is None:
        return None
    today = today or utcnow().date()
    elapsed = (today - created_at.date()).days
    return today + timedelta(days=max(1, days - elapsed))


class TrackingService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def track(self, order_id: int, buyer_id: int, today: Optional[date] = None) -> TrackingView:
        """
        Raises:
            OrderNotFoundError: missing order, or an order placed by someone else
        """
        order = await self.db.scalar(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id, Order.buyer_id == buyer_id)
            .execution_options(populate_existing=True)
        )
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")

        return TrackingView(
            order_id=order.id,
            tracking_number=tracking_number(order.id),
            status=order.status,
            created_at=order.created_at,
            shipping_address=order.shipping_address,
            total=order.total,
            delivery_fee=order.delivery_fee,
            steps=build_steps(order),
            estimated_delivery=estimate_delivery(order.status, order.created_at, today),
            cancelled_at=order.cancelled_at,
            assigned_agent_id=order.assigned_agent_id,
            items=list(order.items),
        )
