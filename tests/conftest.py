"""
Test Suite Configuration
"""
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dashboard_analytics.config import Settings
from dashboard_analytics.database.models import Base, Order, Product, ProductCategory, User


class FakeClock:
    """Controllable clock; call it to read the current time."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def clock() -> FakeClock:
    """Clock fixed two days after the last example order"""
    return FakeClock(datetime(2024, 2, 12, 12, 0, 0))


@pytest.fixture
def database_url(tmp_path) -> str:
    """File-backed SQLite so concurrent sessions see the same data"""
    return f"sqlite+aiosqlite:///{tmp_path / 'analytics.db'}"


@pytest.fixture
async def test_engine(database_url):
    """Create test database engine"""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> Callable:
    """Session context manager with the same commit/rollback contract as get_db"""
    factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    @asynccontextmanager
    async def session_scope() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    return session_scope


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def example_store(session_factory) -> dict:
    """
    Two users, three products (stock 0, 5, 50) and two orders:
    alice 100.00 on 2024-01-15, bob 200.00 on 2024-02-10.
    """
    alice = User(user_id=uuid.UUID(int=1), email="alice@example.com", full_name="Alice Doe")
    bob = User(user_id=uuid.UUID(int=2), email="bob@example.com", full_name="Bob Smith")
    products = [
        Product(name="Wireless Mouse", category=ProductCategory.ELECTRONICS, stock=0, unit_price=Decimal("29.99")),
        Product(name="USB Keyboard", category=ProductCategory.ELECTRONICS, stock=5, unit_price=Decimal("49.99")),
        Product(name="Monitor Stand", category=ProductCategory.HOME_GARDEN, stock=50, unit_price=Decimal("39.99")),
    ]
    orders = [
        Order(customer_id=alice.user_id, total_amount=Decimal("100.00"), order_date=datetime(2024, 1, 15, 10, 0)),
        Order(customer_id=bob.user_id, total_amount=Decimal("200.00"), order_date=datetime(2024, 2, 10, 9, 30)),
    ]

    async with session_factory() as session:
        session.add_all([alice, bob])
        session.add_all(products)
        await session.flush()
        session.add_all(orders)

    return {"alice": alice.user_id, "bob": bob.user_id}
