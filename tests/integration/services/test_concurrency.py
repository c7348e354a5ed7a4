# tests/integration/services/test_concurrency.py
"""Two sessions racing on the same row: exactly one side wins."""
import asyncio

import pytest
from sqlalchemy import select

from marketplace.core.enums import ActorRole, OrderStatus
from marketplace.core.exceptions import AlreadyClaimedError, InsufficientStockError, InvalidTransitionError
from marketplace.models import ActivityLog
from marketplace.services.delivery_service import DeliveryService
from marketplace.services.inventory_ledger import InventoryLedger
from marketplace.services.notification_service import NotificationService
from marketplace.services.order_service import OrderService


@pytest.mark.asyncio
async def test_concurrent_reserve_of_last_unit(session_factory, make_product):
    product_id = (await make_product(stock=1)).id

    async def reserve():
        async with session_factory() as session:
            try:
                await InventoryLedger(session).reserve(product_id, 1)
                await session.commit()
                return "ok"
            except InsufficientStockError:
                await session.rollback()
                return "short"

    outcomes = await asyncio.gather(reserve(), reserve())

    assert sorted(outcomes) == ["ok", "short"]
    async with session_factory() as session:
        assert await InventoryLedger(session).available(product_id) == 0


@pytest.mark.asyncio
async def test_concurrent_claims(session_factory, db_session, make_product, fill_cart, make_agent):
    product = await make_product(seller_id=11, stock=5)
    await fill_cart(1, (product, 1))
    service = OrderService(db_session)
    order_id = (await service.checkout(1, "12 Market Road")).id
    await service.transition(order_id, ActorRole.SELLER, 11, OrderStatus.PROCESSING)
    first_id = (await make_agent(name="First")).id
    second_id = (await make_agent(name="Second")).id

    async def claim(agent_id):
        async with session_factory() as session:
            try:
                await DeliveryService(session).claim(agent_id, order_id)
                return agent_id
            except AlreadyClaimedError:
                return None

    winners = [w for w in await asyncio.gather(claim(first_id), claim(second_id)) if w is not None]

    assert len(winners) == 1
    async with session_factory() as session:
        order = await OrderService(session).get_order(order_id, ActorRole.ADMIN, 0)
        assert order.assigned_agent_id == winners[0]


@pytest.fixture
def pending_order(session_factory, db_session, make_product, fill_cart):
    async def _place():
        product = await make_product(seller_id=11, stock=5)
        await fill_cart(1, (product, 2))
        order_id = (await OrderService(db_session).checkout(1, "12 Market Road")).id
        return order_id, product.id
    return _place


def _interleave(mocker, service, competitor):
    """Run ``competitor`` after ``service`` has read the order but before it writes."""
    real_load = service._load
    raced = []

    async def load_then_compete(order_id, for_update=False):
        order = await real_load(order_id, for_update=for_update)
        if for_update and not raced:
            raced.append(True)
            await competitor()
        return order

    mocker.patch.object(service, "_load", side_effect=load_then_compete)


async def _notification_titles(session_factory, role, recipient_id):
    async with session_factory() as session:
        notes = await NotificationService(session).list_for(role, recipient_id)
        return sorted(n.title for n in notes)


@pytest.mark.asyncio
async def test_cancel_loses_to_concurrent_confirmation(session_factory, pending_order, mocker):
    order_id, product_id = await pending_order()

    async def seller_confirms():
        async with session_factory() as session:
            await OrderService(session).transition(order_id, ActorRole.SELLER, 11, OrderStatus.PROCESSING)

    async with session_factory() as session:
        service = OrderService(session)
        _interleave(mocker, service, seller_confirms)
        with pytest.raises(InvalidTransitionError):
            await service.transition(order_id, ActorRole.BUYER, 1, OrderStatus.CANCELLED)

    async with session_factory() as session:
        order = await OrderService(session).get_order(order_id, ActorRole.ADMIN, 0)
        assert order.status == OrderStatus.PROCESSING
        assert order.cancelled_at is None
        assert await InventoryLedger(session).available(product_id) == 3

    assert await _notification_titles(session_factory, ActorRole.BUYER, 1) == [
        "Order Confirmation", "Order Confirmed", "Order Placed Successfully",
    ]
    assert await _notification_titles(session_factory, ActorRole.SELLER, 11) == ["New Order Received"]


@pytest.mark.asyncio
async def test_same_target_race_is_a_noop(session_factory, pending_order, mocker):
    order_id, product_id = await pending_order()

    async def admin_confirms():
        async with session_factory() as session:
            await OrderService(session).transition(order_id, ActorRole.ADMIN, 0, OrderStatus.PROCESSING)

    async with session_factory() as session:
        service = OrderService(session)
        _interleave(mocker, service, admin_confirms)
        result = await service.transition(order_id, ActorRole.SELLER, 11, OrderStatus.PROCESSING)
        assert result.changed is False
        assert result.previous_status == OrderStatus.PROCESSING
        assert result.order.status == OrderStatus.PROCESSING

    async with session_factory() as session:
        transitions = (await session.execute(
            select(ActivityLog).where(ActivityLog.action == "transition", ActivityLog.entity_id == str(order_id))
        )).scalars().all()
        assert [entry.actor_role for entry in transitions] == ["ADMIN"]
        assert await InventoryLedger(session).available(product_id) == 3

    buyer_titles = await _notification_titles(session_factory, ActorRole.BUYER, 1)
    assert buyer_titles.count("Order Confirmed") == 1
