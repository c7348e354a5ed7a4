# tests/integration/services/test_product_service.py
from decimal import Decimal

import pytest

from marketplace.core.exceptions import ForbiddenError, InvalidInputError, ProductNotFoundError
from marketplace.schemas.product import ProductCreate, ProductUpdate
from marketplace.services.cart_service import CartService
from marketplace.services.order_service import OrderService
from marketplace.services.product_service import ProductService

SELLER = 11


@pytest.mark.asyncio
async def test_create_and_list(db_session):
    service = ProductService(db_session)
    created = await service.create_product(SELLER, ProductCreate(name=" Teak stool ", price=Decimal("120"), stock=4))

    assert created.id is not None
    assert created.name == "Teak stool"
    assert created.seller_id == SELLER
    assert created.in_stock is True
    assert [p.id for p in await service.list_seller_products(SELLER)] == [created.id]
    assert await service.list_seller_products(SELLER + 1) == []


@pytest.mark.asyncio
async def test_create_rejects_bad_values(db_session):
    service = ProductService(db_session)
    with pytest.raises(InvalidInputError):
        await service.create_product(SELLER, ProductCreate(name="Free", price=Decimal("0")))
    with pytest.raises(InvalidInputError):
        await service.create_product(SELLER, ProductCreate(name="Neg", price=Decimal("5"), stock=-1))
    with pytest.raises(InvalidInputError):
        await service.create_product(SELLER, ProductCreate(name="  ", price=Decimal("5")))


@pytest.mark.asyncio
async def test_update_routes_stock_through_ledger(db_session, make_product):
    product = await make_product(seller_id=SELLER, stock=3)
    service = ProductService(db_session)

    updated = await service.update_product(SELLER, product.id, ProductUpdate(stock=9, price=Decimal("75.50")))

    assert updated.stock == 9
    assert updated.price == Decimal("75.50")


@pytest.mark.asyncio
async def test_update_is_owner_only(db_session, make_product):
    product = await make_product(seller_id=SELLER)

    with pytest.raises(ForbiddenError):
        await ProductService(db_session).update_product(SELLER + 1, product.id, ProductUpdate(stock=1))
    with pytest.raises(ProductNotFoundError):
        await ProductService(db_session).get_product(9999)


@pytest.mark.asyncio
async def test_delete_without_history_removes_row_and_cart_lines(db_session, make_product):
    product = await make_product(seller_id=SELLER)
    product_id = product.id
    await CartService(db_session).add_or_update(1, product_id, 2)
    service = ProductService(db_session)

    deleted, snapshot = await service.delete_product(SELLER, product_id)

    assert deleted is True
    assert snapshot.id == product_id
    assert (await CartService(db_session).snapshot(1)).lines == []
    with pytest.raises(ProductNotFoundError):
        await service.get_product(product_id)


@pytest.mark.asyncio
async def test_delete_with_history_disables(db_session, make_product, fill_cart):
    product = await make_product(seller_id=SELLER)
    await fill_cart(1, (product, 1))
    await OrderService(db_session).checkout(1, "12 Market Road")
    service = ProductService(db_session)

    deleted, snapshot = await service.delete_product(SELLER, product.id)

    assert deleted is False
    assert snapshot.in_stock is False
    assert (await service.get_product(product.id)).in_stock is False
