"""
Purpose: First-claim matching of PROCESSING orders to delivery agents.

Role: The only writer of ``Order.assigned_agent_id`` and of agent availability.

Two pools per agent:
- assigned: orders this agent holds that are still PROCESSING or SHIPPED
- available: unassigned PROCESSING orders in the agent's service region

A claim is one conditional UPDATE (``assigned_agent_id IS NULL``), so when
two agents race for the same order exactly one row update succeeds.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update, func, not_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.core.config import get_settings
from marketplace.core.enums import ActorRole, OrderStatus
from marketplace.core.exceptions import (
    AgentNotFoundError,
    AlreadyClaimedError,
    BaseServiceError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from marketplace.core.utils import to_money, utcnow
from marketplace.models.delivery_agent import DeliveryAgent
from marketplace.models.order import Order
from marketplace.services.activity_logger import ActivityLogger
from marketplace.services.delivery_fees import agent_earning_for
from marketplace.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

ACTIVE_DELIVERY_STATUSES = (OrderStatus.PROCESSING, OrderStatus.SHIPPED)


@dataclass
class OrderPools:
    agent: DeliveryAgent
    assigned: List[Order] = field(default_factory=list)
    available: List[Order] = field(default_factory=list)


@dataclass
class AgentStats:
    total_deliveries: int
    pending_deliveries: int
    completed_today: int
    earnings_today: Decimal
    weekly_earnings: Decimal
    monthly_earnings: Decimal
    completion_rate: int
    total_orders: int
    active_days: int


def _same_region(agent_state: Optional[str], order_state: Optional[str]) -> bool:
    if not agent_state or not order_state:
        return True
    return agent_state.strip().lower() == order_state.strip().lower()


class DeliveryService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLogger(db)
        self.notifications = NotificationService(db)

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------
    async def register_agent(
        self,
        name: str,
        service_state: Optional[str] = None,
        max_deliveries: Optional[int] = None,
    ) -> DeliveryAgent:
        if not name or not name.strip():
            raise InvalidInputError("Agent name is required")
        if max_deliveries is not None and max_deliveries < 1:
            raise InvalidInputError("max_deliveries must be at least 1")

        agent = DeliveryAgent(
            name=name.strip(),
            service_state=service_state.strip() if service_state else None,
            max_deliveries=max_deliveries or get_settings().DEFAULT_MAX_DELIVERIES,
            is_available=True,
            is_active=True,
        )
        try:
            self.db.add(agent)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

        logger.info(f"Registered delivery agent {agent.id} ({agent.name})")
        return agent

    async def get_agent(self, agent_id: int) -> DeliveryAgent:
        agent = await self.db.scalar(
            select(DeliveryAgent)
            .where(DeliveryAgent.id == agent_id)
            .execution_options(populate_existing=True)
        )
        if agent is None:
            raise AgentNotFoundError(f"Delivery agent {agent_id} not found")
        return agent

    async def toggle_availability(self, agent_id: int) -> DeliveryAgent:
        """Flip the agent's availability. Orders already assigned are untouched."""
        result = await self.db.execute(
            update(DeliveryAgent)
            .where(DeliveryAgent.id == agent_id)
            .values(is_available=not_(DeliveryAgent.is_available), updated_at=utcnow())
            .returning(DeliveryAgent.is_available)
            .execution_options(synchronize_session=False)
        )
        is_available = result.scalar_one_or_none()
        if is_available is None:
            await self.db.rollback()
            raise AgentNotFoundError(f"Delivery agent {agent_id} not found")
        await self.db.commit()

        logger.info(f"Delivery agent {agent_id} availability {'enabled' if is_available else 'disabled'}")
        await self.activity.log_activity(
            action="availability",
            entity_type="delivery_agent",
            entity_id=agent_id,
            actor_role=ActorRole.DELIVERY_AGENT.value,
            actor_id=agent_id,
            details={"is_available": bool(is_available)},
        )
        return await self.get_agent(agent_id)

    # ------------------------------------------------------------------
    # Claims
    # ------------------------------------------------------------------
    async def claim(self, agent_id: int, order_id: int, commit: bool = True) -> Optional[Order]:
        """
        Take an unassigned PROCESSING order.

        With ``commit=False`` the assignment joins the caller's transaction
        (used when an agent ships an order it has not claimed yet).
        Returns the reloaded order, or None with ``commit=False`` since the
        caller reloads after its own commit.

        Raises:
            AgentNotFoundError / OrderNotFoundError: missing entities
            ForbiddenError: agent inactive, unavailable, at capacity or out of region
            InvalidTransitionError: order is not PROCESSING
            AlreadyClaimedError: another agent holds the order
        """
        try:
            agent = await self.get_agent(agent_id)
            if not agent.is_active:
                raise ForbiddenError(f"Delivery agent {agent_id} is not active")
            if not agent.is_available:
                raise ForbiddenError(f"Delivery agent {agent_id} is not available for new deliveries")

            row = (await self.db.execute(
                select(Order.status, Order.assigned_agent_id, Order.shipping_state).where(Order.id == order_id)
            )).first()
            if row is None:
                raise OrderNotFoundError(f"Order {order_id} not found")

            status, assigned_agent_id, shipping_state = row
            if assigned_agent_id == agent_id:
                logger.debug(f"Order {order_id} already held by agent {agent_id}")
                return await self._reload(order_id, commit)
            if assigned_agent_id is not None:
                raise AlreadyClaimedError(f"Order {order_id} already claimed by another agent")
            if status != OrderStatus.PROCESSING:
                raise InvalidTransitionError(
                    f"Order {order_id} is {status.value}; only PROCESSING orders can be claimed",
                    current_status=status,
                )
            if not _same_region(agent.service_state, shipping_state):
                raise ForbiddenError(f"Order {order_id} is not in your service area")

            active = await self._active_assignment_count(agent_id)
            if active >= agent.max_deliveries:
                raise ForbiddenError("You have reached your maximum delivery capacity")

            now = utcnow()
            result = await self.db.execute(
                update(Order)
                .where(
                    Order.id == order_id,
                    Order.status == OrderStatus.PROCESSING,
                    Order.assigned_agent_id.is_(None),
                )
                .values(assigned_agent_id=agent_id, assigned_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise AlreadyClaimedError(f"Order {order_id} already claimed by another agent")

            if commit:
                await self.db.commit()

        except (BaseServiceError, SQLAlchemyError):
            if commit:
                await self.db.rollback()
            raise

        logger.info(f"Order {order_id} claimed by agent {agent_id}")
        if commit:
            await self.activity.log_activity(
                action="claim",
                entity_type="order",
                entity_id=order_id,
                actor_role=ActorRole.DELIVERY_AGENT.value,
                actor_id=agent_id,
            )
            await self.notifications.notify_assignment(order_id, agent_id)
        return await self._reload(order_id, commit)

    async def order_pools(self, agent_id: int) -> OrderPools:
        agent = await self.get_agent(agent_id)

        assigned_query = (
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.assigned_agent_id == agent_id, Order.status.in_(ACTIVE_DELIVERY_STATUSES))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        assigned = list((await self.db.execute(assigned_query)).scalars().all())

        available: List[Order] = []
        if agent.is_active and agent.is_available:
            available_query = (
                select(Order)
                .options(selectinload(Order.items))
                .where(Order.status == OrderStatus.PROCESSING, Order.assigned_agent_id.is_(None))
                .order_by(Order.created_at.desc(), Order.id.desc())
            )
            if agent.service_state:
                available_query = available_query.where(or_(
                    Order.shipping_state.is_(None),
                    func.lower(Order.shipping_state) == agent.service_state.strip().lower(),
                ))
            available = list((await self.db.execute(available_query)).scalars().all())

        return OrderPools(agent=agent, assigned=assigned, available=available)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------
    async def agent_stats(self, agent_id: int, now: Optional[datetime] = None) -> AgentStats:
        await self.get_agent(agent_id)
        now = now or utcnow()

        orders = (await self.db.execute(
            select(Order)
            .where(Order.assigned_agent_id == agent_id)
            .execution_options(populate_existing=True)
        )).scalars().all()

        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = today + timedelta(days=1)
        week_ago = today - timedelta(days=7)
        month_ago = today - timedelta(days=30)

        delivered = [o for o in orders if o.status == OrderStatus.DELIVERED and o.delivered_at]
        delivered_today = [o for o in delivered if today <= o.delivered_at < tomorrow]

        def earnings(batch) -> Decimal:
            return to_money(sum((agent_earning_for(o.total).amount for o in batch), Decimal("0")))

        total_orders = len(orders)
        total_deliveries = len([o for o in orders if o.status == OrderStatus.DELIVERED])

        return AgentStats(
            total_deliveries=total_deliveries,
            pending_deliveries=len([o for o in orders if o.status in ACTIVE_DELIVERY_STATUSES]),
            completed_today=len(delivered_today),
            earnings_today=earnings(delivered_today),
            weekly_earnings=earnings([o for o in delivered if o.delivered_at >= week_ago]),
            monthly_earnings=earnings([o for o in delivered if o.delivered_at >= month_ago]),
            completion_rate=round(total_deliveries / total_orders * 100) if total_orders else 0,
            total_orders=total_orders,
            active_days=len({o.delivered_at.date() for o in delivered}),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _active_assignment_count(self, agent_id: int) -> int:
        return await self.db.scalar(
            select(func.count(Order.id)).where(
                Order.assigned_agent_id == agent_id,
                Order.status.in_(ACTIVE_DELIVERY_STATUSES),
            )
        ) or 0

    async def _reload(self, order_id: int, commit: bool) -> Optional[Order]:
        if not commit:
            # Caller holds the transaction and reloads after its own commit
            return None
        return await self.db.scalar(
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
