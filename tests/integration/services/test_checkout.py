# tests/integration/services/test_checkout.py
from decimal import Decimal

import pytest
from sqlalchemy import select

from marketplace.core.enums import ActorRole, NotificationType, OrderStatus
from marketplace.core.exceptions import InsufficientStockError, InvalidInputError
from marketplace.models import ActivityLog, Notification, Order
from marketplace.services.cart_service import CartService
from marketplace.services.inventory_ledger import InventoryLedger
from marketplace.services.order_service import OrderService

BUYER = 1


@pytest.mark.asyncio
async def test_two_item_checkout(db_session, make_product, fill_cart):
    """2 x 100 from seller 1 and 1 x 50 from seller 2 -> total 250, one confirmation."""
    first = await make_product(seller_id=1, price="100.00", stock=5)
    second = await make_product(seller_id=2, price="50.00", stock=1)
    await fill_cart(BUYER, (first, 2), (second, 1))

    order = await OrderService(db_session).checkout(BUYER, "12 Market Road", "Kerala")

    assert order.status == OrderStatus.PENDING
    assert order.total == Decimal("250.00")
    assert order.delivery_fee == Decimal("65.00")
    assert order.amount_payable == Decimal("315.00")
    assert order.shipping_state == "Kerala"
    assert sorted((i.product_id, i.quantity, i.price) for i in order.items) == [
        (first.id, 2, Decimal("100.00")),
        (second.id, 1, Decimal("50.00")),
    ]
    assert order.seller_ids == [1, 2]

    ledger = InventoryLedger(db_session)
    assert await ledger.available(first.id) == 3
    assert await ledger.available(second.id) == 0
    assert (await CartService(db_session).snapshot(BUYER)).lines == []

    notifications = (await db_session.execute(select(Notification).order_by(Notification.id))).scalars().all()
    confirmations = [n for n in notifications if n.type == NotificationType.ORDER_CONFIRMATION]
    assert len(confirmations) == 1
    assert confirmations[0].recipient_id == BUYER
    new_orders = sorted(n.recipient_id for n in notifications if n.type == NotificationType.NEW_ORDER)
    assert new_orders == [1, 2]

    audit = (await db_session.execute(select(ActivityLog))).scalars().all()
    assert [(a.action, a.entity_id) for a in audit] == [("checkout", str(order.id))]


@pytest.mark.asyncio
async def test_free_delivery_above_threshold(db_session, make_product, fill_cart):
    product = await make_product(price="250.00", stock=5)
    await fill_cart(BUYER, (product, 2))

    order = await OrderService(db_session).checkout(BUYER, "12 Market Road")

    assert order.total == Decimal("500.00")
    assert order.delivery_fee == Decimal("0.00")


@pytest.mark.asyncio
async def test_items_freeze_price_and_name(db_session, make_product, fill_cart):
    product = await make_product(price="80.00", name="Brass lamp")
    await fill_cart(BUYER, (product, 1))
    order = await OrderService(db_session).checkout(BUYER, "12 Market Road")

    product.price = Decimal("95.00")
    product.name = "Brass lamp (new)"
    await db_session.commit()

    reloaded = await OrderService(db_session).get_order(order.id, ActorRole.BUYER, BUYER)
    assert reloaded.items[0].price == Decimal("80.00")
    assert reloaded.items[0].product_name == "Brass lamp"
    assert reloaded.total == Decimal("80.00")


@pytest.mark.asyncio
async def test_failed_line_rolls_back_everything(db_session, make_product, fill_cart):
    plenty = await make_product(seller_id=1, stock=10)
    scarce = await make_product(seller_id=2, stock=3)
    await fill_cart(BUYER, (plenty, 4), (scarce, 2))
    plenty_id, scarce_id = plenty.id, scarce.id

    # another buyer takes the scarce stock after our cart was filled
    await InventoryLedger(db_session).reserve(scarce.id, 2)
    await db_session.commit()

    with pytest.raises(InsufficientStockError):
        await OrderService(db_session).checkout(BUYER, "12 Market Road")

    ledger = InventoryLedger(db_session)
    assert await ledger.available(plenty_id) == 10
    assert await ledger.available(scarce_id) == 1
    assert len((await CartService(db_session).snapshot(BUYER)).lines) == 2
    assert (await db_session.execute(select(Order))).scalars().all() == []
    assert (await db_session.execute(select(Notification))).scalars().all() == []


@pytest.mark.asyncio
async def test_checkout_requires_items_and_address(db_session, make_product, fill_cart):
    service = OrderService(db_session)
    with pytest.raises(InvalidInputError):
        await service.checkout(BUYER, "12 Market Road")

    product = await make_product()
    await fill_cart(BUYER, (product, 1))
    with pytest.raises(InvalidInputError):
        await service.checkout(BUYER, "   ")


@pytest.mark.asyncio
async def test_checkout_only_clears_purchased_buyer(db_session, make_product, fill_cart):
    product = await make_product(stock=10)
    await fill_cart(BUYER, (product, 1))
    await fill_cart(2, (product, 3))

    await OrderService(db_session).checkout(BUYER, "12 Market Road")

    assert len((await CartService(db_session).snapshot(2)).lines) == 1
