# tests/conftest.py
import os

# Point settings at SQLite before the application modules build their engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from marketplace.database import Base
from marketplace.dependencies import get_db
from marketplace.main import app
from marketplace.models import DeliveryAgent, Product
from marketplace.services.cart_service import CartService


@pytest.fixture(scope="function")
async def test_engine(tmp_path):
    """A fresh SQLite database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Provide a database session for tests"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(session_factory):
    """HTTP client wired to the test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def as_actor():
    """Gateway identity headers for a role and id."""
    def _headers(role: str, actor_id: int) -> dict:
        return {"X-Actor-Id": str(actor_id), "X-Actor-Role": role}
    return _headers


@pytest.fixture
def make_product(db_session):
    async def _make(seller_id=1, price="100.00", stock=10, name=None, in_stock=True):
        product = Product(
            seller_id=seller_id,
            name=name or f"Product of seller {seller_id}",
            price=Decimal(str(price)),
            stock=stock,
            in_stock=in_stock,
        )
        db_session.add(product)
        await db_session.commit()
        return product
    return _make


@pytest.fixture
def make_agent(db_session):
    async def _make(name="Agent", service_state=None, max_deliveries=5, is_available=True, is_active=True):
        agent = DeliveryAgent(
            name=name,
            service_state=service_state,
            max_deliveries=max_deliveries,
            is_available=is_available,
            is_active=is_active,
        )
        db_session.add(agent)
        await db_session.commit()
        return agent
    return _make


@pytest.fixture
def fill_cart(db_session):
    async def _fill(buyer_id, *lines):
        cart = CartService(db_session)
        for product, quantity in lines:
            await cart.add_or_update(buyer_id, product.id, quantity)
    return _fill
