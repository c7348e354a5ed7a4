# tests/integration/services/test_notification_service.py
from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from marketplace.core.enums import ActorRole, OrderStatus
from marketplace.core.utils import utcnow
from marketplace.services.notification_service import NotificationService, TransitionEvent
from marketplace.services.order_service import OrderService

BUYER = 1
SELLER = 11


@pytest.fixture
def placed_order(db_session, make_product, fill_cart):
    async def _place():
        product = await make_product(seller_id=SELLER)
        await fill_cart(BUYER, (product, 1))
        return (await OrderService(db_session).checkout(BUYER, "12 Market Road")).id
    return _place


@pytest.mark.asyncio
async def test_list_and_unread_count(db_session, placed_order):
    order_id = await placed_order()
    service = NotificationService(db_session)

    buyer_notes = await service.list_for(ActorRole.BUYER, BUYER)
    assert len(buyer_notes) == 2
    assert all(n.order_id == order_id for n in buyer_notes)
    assert await service.unread_count(ActorRole.BUYER, BUYER) == 2
    assert await service.unread_count(ActorRole.SELLER, SELLER) == 1

    # same numeric id under another role sees nothing
    assert await service.list_for(ActorRole.SELLER, BUYER) == []


@pytest.mark.asyncio
async def test_mark_read_selected_and_all(db_session, placed_order):
    await placed_order()
    service = NotificationService(db_session)
    newest, oldest = await service.list_for(ActorRole.BUYER, BUYER)

    assert await service.mark_read(ActorRole.BUYER, BUYER, [oldest.id]) == 1
    assert await service.unread_count(ActorRole.BUYER, BUYER) == 1
    unread = await service.list_for(ActorRole.BUYER, BUYER, unread_only=True)
    assert [n.id for n in unread] == [newest.id]

    assert await service.mark_read(ActorRole.BUYER, BUYER) == 1
    assert await service.unread_count(ActorRole.BUYER, BUYER) == 0
    assert await service.mark_read(ActorRole.BUYER, BUYER, []) == 0


@pytest.mark.asyncio
async def test_mark_read_ignores_other_recipients(db_session, placed_order):
    await placed_order()
    service = NotificationService(db_session)
    seller_note = (await service.list_for(ActorRole.SELLER, SELLER))[0]

    assert await service.mark_read(ActorRole.BUYER, BUYER, [seller_note.id]) == 0
    assert await service.unread_count(ActorRole.SELLER, SELLER) == 1


@pytest.mark.asyncio
async def test_list_since_and_limit(db_session, placed_order):
    await placed_order()
    service = NotificationService(db_session)

    assert len(await service.list_for(ActorRole.BUYER, BUYER, limit=1)) == 1
    assert await service.list_for(ActorRole.BUYER, BUYER, since=utcnow() + timedelta(minutes=1)) == []
    assert len(await service.list_for(ActorRole.BUYER, BUYER, since=utcnow() - timedelta(minutes=1))) == 2


@pytest.mark.asyncio
async def test_failed_recipient_does_not_stop_fan_out(db_session, placed_order, mocker, caplog):
    order_id = await placed_order()
    service = NotificationService(db_session)
    real_commit = db_session.commit
    calls = {"n": 0}

    async def flaky_commit():
        calls["n"] += 1
        if calls["n"] == 1:
            raise SQLAlchemyError("disk full")
        await real_commit()

    mocker.patch.object(db_session, "commit", side_effect=flaky_commit)

    created = await service.fan_out(TransitionEvent(
        order_id=order_id,
        from_status=OrderStatus.PENDING,
        to_status=OrderStatus.CANCELLED,
        buyer_id=BUYER,
        seller_ids=[SELLER],
    ))

    assert [n.recipient_role for n in created] == [ActorRole.SELLER]
    assert "Failed to write" in caplog.text


@pytest.mark.asyncio
async def test_rejected_insert_keeps_loaded_order_usable(db_session, test_engine, placed_order, caplog):
    order_id = await placed_order()
    order = await OrderService(db_session).get_order(order_id, ActorRole.BUYER, BUYER)
    async with test_engine.begin() as conn:
        await conn.exec_driver_sql(
            "CREATE TRIGGER reject_seller_notes BEFORE INSERT ON notifications "
            "WHEN NEW.recipient_role = 'SELLER' BEGIN SELECT RAISE(ABORT, 'seller inbox unavailable'); END"
        )

    created = await NotificationService(db_session).fan_out(TransitionEvent(
        order_id=order_id,
        from_status=OrderStatus.PENDING,
        to_status=OrderStatus.CANCELLED,
        buyer_id=BUYER,
        seller_ids=[SELLER],
    ))

    assert [n.recipient_role for n in created] == [ActorRole.BUYER]
    assert "seller inbox unavailable" in caplog.text
    # no session-wide rollback, so attributes are still loaded
    assert order.status == OrderStatus.PENDING
    assert [item.seller_id for item in order.items] == [SELLER]
