# tests/integration/services/test_delivery_service.py
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select, update

from marketplace.core.enums import ActorRole, OrderStatus
from marketplace.core.exceptions import (
    AgentNotFoundError,
    AlreadyClaimedError,
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from marketplace.models import Notification, Order
from marketplace.services.delivery_service import DeliveryService
from marketplace.services.order_service import OrderService

SELLER = 11


@pytest.fixture
def processing_order(db_session, make_product, fill_cart):
    """A PROCESSING order for buyer ``buyer_id`` in ``state``."""
    async def _make(buyer_id=1, state=None, price="100.00"):
        product = await make_product(seller_id=SELLER, price=price, stock=50)
        await fill_cart(buyer_id, (product, 1))
        service = OrderService(db_session)
        order = await service.checkout(buyer_id, "12 Market Road", state)
        await service.transition(order.id, ActorRole.SELLER, SELLER, OrderStatus.PROCESSING)
        return order.id
    return _make


@pytest.mark.asyncio
async def test_claim_assigns_order(db_session, processing_order, make_agent):
    order_id = await processing_order()
    agent = await make_agent()

    order = await DeliveryService(db_session).claim(agent.id, order_id)

    assert order.assigned_agent_id == agent.id
    assert order.assigned_at is not None
    assert order.status == OrderStatus.PROCESSING

    notes = (await db_session.execute(
        select(Notification).where(Notification.recipient_role == ActorRole.DELIVERY_AGENT)
    )).scalars().all()
    assert [(n.recipient_id, n.order_id, n.title) for n in notes] == [(agent.id, order_id, "New Order Assigned")]


@pytest.mark.asyncio
async def test_reclaim_by_same_agent_is_noop(db_session, processing_order, make_agent):
    order_id = await processing_order()
    agent = await make_agent()
    service = DeliveryService(db_session)
    first = await service.claim(agent.id, order_id)
    assigned_at = first.assigned_at

    again = await service.claim(agent.id, order_id)
    assert again.assigned_agent_id == agent.id
    assert again.assigned_at == assigned_at

    assigned = (await db_session.execute(
        select(Notification).where(Notification.title == "New Order Assigned")
    )).scalars().all()
    assert len(assigned) == 1


@pytest.mark.asyncio
async def test_second_agent_gets_already_claimed(db_session, processing_order, make_agent):
    order_id = await processing_order()
    first = await make_agent(name="First")
    second = await make_agent(name="Second")
    service = DeliveryService(db_session)
    await service.claim(first.id, order_id)

    with pytest.raises(AlreadyClaimedError):
        await service.claim(second.id, order_id)


@pytest.mark.asyncio
async def test_claim_requires_processing(db_session, make_product, fill_cart, make_agent):
    product = await make_product(seller_id=SELLER)
    await fill_cart(1, (product, 1))
    order = await OrderService(db_session).checkout(1, "12 Market Road")
    agent = await make_agent()

    with pytest.raises(InvalidTransitionError):
        await DeliveryService(db_session).claim(agent.id, order.id)


@pytest.mark.asyncio
async def test_claim_preconditions(db_session, processing_order, make_agent):
    order_id = await processing_order(state="Kerala")
    busy = await make_agent(name="Busy", is_available=False)
    retired = await make_agent(name="Retired", is_active=False)
    elsewhere = await make_agent(name="Elsewhere", service_state="Goa")
    busy_id, retired_id, elsewhere_id = busy.id, retired.id, elsewhere.id
    service = DeliveryService(db_session)

    with pytest.raises(ForbiddenError):
        await service.claim(busy_id, order_id)
    with pytest.raises(ForbiddenError):
        await service.claim(retired_id, order_id)
    with pytest.raises(ForbiddenError):
        await service.claim(elsewhere_id, order_id)
    with pytest.raises(AgentNotFoundError):
        await service.claim(9999, order_id)
    with pytest.raises(OrderNotFoundError):
        await service.claim(elsewhere_id, 9999)


@pytest.mark.asyncio
async def test_region_match_is_case_insensitive(db_session, processing_order, make_agent):
    order_id = await processing_order(state="Kerala")
    agent = await make_agent(service_state="kerala ")

    order = await DeliveryService(db_session).claim(agent.id, order_id)
    assert order.assigned_agent_id == agent.id


@pytest.mark.asyncio
async def test_claim_respects_capacity(db_session, processing_order, make_agent):
    first_id = await processing_order(buyer_id=1)
    second_id = await processing_order(buyer_id=2)
    agent = await make_agent(max_deliveries=1)
    agent_id = agent.id
    service = DeliveryService(db_session)
    await service.claim(agent_id, first_id)

    with pytest.raises(ForbiddenError):
        await service.claim(agent_id, second_id)


@pytest.mark.asyncio
async def test_toggle_availability_keeps_assignments(db_session, processing_order, make_agent):
    order_id = await processing_order()
    agent = await make_agent()
    service = DeliveryService(db_session)
    await service.claim(agent.id, order_id)

    toggled = await service.toggle_availability(agent.id)
    assert toggled.is_available is False

    pools = await service.order_pools(agent.id)
    assert [o.id for o in pools.assigned] == [order_id]
    assert pools.available == []

    assert (await service.toggle_availability(agent.id)).is_available is True


@pytest.mark.asyncio
async def test_toggle_unknown_agent(db_session):
    with pytest.raises(AgentNotFoundError):
        await DeliveryService(db_session).toggle_availability(9999)


@pytest.mark.asyncio
async def test_order_pools_filter_by_region(db_session, processing_order, make_agent):
    kerala = await processing_order(buyer_id=1, state="Kerala")
    goa = await processing_order(buyer_id=2, state="Goa")
    anywhere = await processing_order(buyer_id=3)
    agent = await make_agent(service_state="Kerala")
    roaming = await make_agent(name="Roaming")
    service = DeliveryService(db_session)

    pools = await service.order_pools(agent.id)
    assert sorted(o.id for o in pools.available) == sorted([kerala, anywhere])
    assert pools.assigned == []

    roaming_pools = await service.order_pools(roaming.id)
    assert sorted(o.id for o in roaming_pools.available) == sorted([kerala, goa, anywhere])


@pytest.mark.asyncio
async def test_register_agent(db_session):
    service = DeliveryService(db_session)
    agent = await service.register_agent("  Ravi ", "Kerala")

    assert agent.id is not None
    assert agent.name == "Ravi"
    assert agent.max_deliveries == 5
    assert agent.is_available and agent.is_active

    with pytest.raises(InvalidInputError):
        await service.register_agent("")
    with pytest.raises(InvalidInputError):
        await service.register_agent("Zero", max_deliveries=0)


@pytest.mark.asyncio
async def test_agent_stats(db_session, processing_order, make_agent):
    now = datetime(2026, 5, 20, 15, 0)
    agent = await make_agent()
    agent_id = agent.id
    service = OrderService(db_session)

    small = await processing_order(buyer_id=1, price="100.00")    # earns 65
    large = await processing_order(buyer_id=2, price="1500.00")   # earns 50
    open_order = await processing_order(buyer_id=3)
    for order_id in (small, large, open_order):
        await service.transition(order_id, ActorRole.DELIVERY_AGENT, agent_id, OrderStatus.SHIPPED)
    for order_id in (small, large):
        await service.transition(order_id, ActorRole.DELIVERY_AGENT, agent_id, OrderStatus.DELIVERED)

    # pin delivery times relative to ``now``
    await db_session.execute(update(Order).where(Order.id == small).values(delivered_at=now - timedelta(hours=2)))
    await db_session.execute(update(Order).where(Order.id == large).values(delivered_at=now - timedelta(days=3)))
    await db_session.commit()

    stats = await DeliveryService(db_session).agent_stats(agent_id, now=now)

    assert stats.total_orders == 3
    assert stats.total_deliveries == 2
    assert stats.pending_deliveries == 1
    assert stats.completed_today == 1
    assert stats.earnings_today == Decimal("65.00")
    assert stats.weekly_earnings == Decimal("115.00")
    assert stats.monthly_earnings == Decimal("115.00")
    assert stats.completion_rate == 67
    assert stats.active_days == 2


@pytest.mark.asyncio
async def test_claim_inside_caller_transaction(db_session, session_factory, processing_order, make_agent):
    order_id = await processing_order()
    agent_id = (await make_agent()).id
    service = DeliveryService(db_session)

    assert await service.claim(agent_id, order_id, commit=False) is None
    await db_session.commit()

    async with session_factory() as session:
        order = await OrderService(session).get_order(order_id, ActorRole.ADMIN, 0)
        assert order.assigned_agent_id == agent_id
