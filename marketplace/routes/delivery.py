"""Delivery agent endpoints: order pools, claims, availability and earnings."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.enums import ActorRole
from marketplace.core.security import Actor, require_roles
from marketplace.dependencies import get_db
from marketplace.models.order import Order
from marketplace.schemas.delivery import (
    AgentCreate,
    AgentEarningRead,
    AgentRead,
    AgentStatsRead,
    DeliveryFeeRead,
    DeliveryOrderRead,
    OrderPoolsRead,
)
from marketplace.services.delivery_fees import agent_earning_for, delivery_fee_for
from marketplace.services.delivery_service import DeliveryService
from marketplace.services.order_service import OrderService

router = APIRouter(prefix="/delivery", tags=["delivery"])

agent_only = require_roles(ActorRole.DELIVERY_AGENT)
admin_only = require_roles(ActorRole.ADMIN)


def _delivery_order(order: Order) -> DeliveryOrderRead:
    return DeliveryOrderRead(
        id=order.id,
        status=order.status,
        shipping_address=order.shipping_address,
        shipping_state=order.shipping_state,
        total=order.total,
        delivery_fee=order.delivery_fee,
        created_at=order.created_at,
        assigned_agent_id=order.assigned_agent_id,
        assigned_at=order.assigned_at,
        item_count=sum(item.quantity for item in order.items),
        earning=AgentEarningRead.model_validate(agent_earning_for(order.total)),
    )


@router.get("/orders", response_model=OrderPoolsRead)
async def delivery_orders(actor: Actor = Depends(agent_only), db: AsyncSession = Depends(get_db)):
    pools = await DeliveryService(db).order_pools(actor.id)
    return OrderPoolsRead(
        agent_id=pools.agent.id,
        is_available=pools.agent.is_available,
        assigned=[_delivery_order(order) for order in pools.assigned],
        available=[_delivery_order(order) for order in pools.available],
    )


@router.post("/orders/{order_id}/claim", response_model=DeliveryOrderRead)
async def claim_order(
    order_id: int,
    actor: Actor = Depends(agent_only),
    db: AsyncSession = Depends(get_db),
):
    return _delivery_order(await DeliveryService(db).claim(actor.id, order_id))


@router.post("/availability/toggle", response_model=AgentRead)
async def toggle_availability(actor: Actor = Depends(agent_only), db: AsyncSession = Depends(get_db)):
    return await DeliveryService(db).toggle_availability(actor.id)


@router.get("/stats", response_model=AgentStatsRead)
async def delivery_stats(actor: Actor = Depends(agent_only), db: AsyncSession = Depends(get_db)):
    return AgentStatsRead.model_validate(await DeliveryService(db).agent_stats(actor.id))


@router.post("/agents", response_model=AgentRead, status_code=status.HTTP_201_CREATED)
async def register_agent(
    agent: AgentCreate,
    actor: Actor = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    return await DeliveryService(db).register_agent(agent.name, agent.service_state, agent.max_deliveries)


@router.get("/fees/{order_id}", response_model=DeliveryFeeRead)
async def delivery_fee(
    order_id: int,
    actor: Actor = Depends(require_roles(ActorRole.DELIVERY_AGENT, ActorRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    order = await OrderService(db).get_order(order_id, actor.role, actor.id)
    return DeliveryFeeRead(
        order_id=order.id,
        order_total=order.total,
        buyer_delivery_fee=delivery_fee_for(order.total),
        agent_earning=AgentEarningRead.model_validate(agent_earning_for(order.total)),
    )
