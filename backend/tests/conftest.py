"""
Pytest configuration and shared test fixtures.

This module provides the test database (a SQLite file per test, schema
created from the models), seeded garments, a rental service with a fixed
business day, and an async HTTP client for the FastAPI application with
its database dependencies pointed at the test database.
"""

import os

# Settings are cached on first import, so the test environment is set first.
os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_DATABASE_URL", "sqlite:///./tailorshop-test.db")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_RENTAL_MONITOR_INTERVAL_SECONDS", "0")

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from tailorshop.core.config import Settings
from tailorshop.database.base import Base
from tailorshop.database.connection import create_session_factory, get_db
from tailorshop.database.models import InventoryItem
from tailorshop.services.rentals.service import RentalService

TODAY = date(2024, 3, 10)


@pytest.fixture
def test_settings() -> Settings:
    """Business settings used by every test: 50% downpayment, 100 per day."""
    return Settings(
        environment="test",
        database_url="sqlite:///./tailorshop-test.db",
        rental_downpayment_ratio=Decimal("0.5"),
        rental_penalty_daily_rate=Decimal("100"),
        rental_due_soon_days=3,
    )


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    Create an async engine on a fresh SQLite file with the full schema.

    Yields:
        AsyncEngine: Engine bound to the per-test database
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'rentals.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine):
    return create_session_factory(engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def garments(session_factory) -> dict[str, InventoryItem]:
    """
    Seed the inventory with rentable garments.

    Returns:
        Garments keyed by a short name
    """
    items = {
        "gown": InventoryItem(name="Evening Gown", rental_price=Decimal("1000.00")),
        "barong": InventoryItem(name="Barong", rental_price=Decimal("300.00")),
        "vest": InventoryItem(name="Vest", rental_price=Decimal("200.00")),
        "slacks": InventoryItem(name="Slacks", rental_price=Decimal("100.00")),
    }
    async with session_factory() as session:
        session.add_all(items.values())
        await session.commit()
    return items


@pytest.fixture
def rental_service(db_session: AsyncSession, test_settings: Settings) -> RentalService:
    """Rental service whose business day is TODAY."""
    return RentalService(db_session, settings=test_settings, today=lambda: TODAY)


@pytest.fixture
async def make_service(session_factory, test_settings: Settings):
    """
    Factory for rental services on fresh sessions.

    Lets a test simulate separate requests, or move the business day.
    """
    sessions: list[AsyncSession] = []

    def _make(today: date = TODAY) -> RentalService:
        session = session_factory()
        sessions.append(session)
        return RentalService(session, settings=test_settings, today=lambda: today)

    yield _make

    for session in sessions:
        await session.close()


@pytest.fixture
async def api_client(
    session_factory, test_settings: Settings
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for the application.

    The database and rental service dependencies are overridden so that
    requests hit the per-test database and see TODAY as the business day.
    """
    from tailorshop.api.deps import get_billing_service, get_rental_service
    from tailorshop.main import app
    from tailorshop.services.billing.service import BillingService

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def override_rental_service() -> AsyncGenerator[RentalService, None]:
        async with session_factory() as session:
            yield RentalService(session, settings=test_settings, today=lambda: TODAY)

    async def override_billing_service() -> AsyncGenerator[BillingService, None]:
        async with session_factory() as session:
            yield BillingService(session, today=lambda: TODAY)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rental_service] = override_rental_service
    app.dependency_overrides[get_billing_service] = override_billing_service

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def checkout():
    """
    Check out one line renting the given garments.

    Returns:
        Coroutine function returning the created order item
    """

    async def _checkout(
        service: RentalService,
        *inventory: InventoryItem,
        order_type: str = "online",
        start: date = date(2024, 3, 1),
        end: date = date(2024, 3, 12),
        customer_name: str = "Maria Santos",
    ) -> dict:
        order = await service.create_rental_order(
            customer_name=customer_name,
            order_type=order_type,
            lines=[
                {
                    "inventory_item_ids": [g.id for g in inventory],
                    "rental_start_date": start,
                    "rental_end_date": end,
                }
            ],
        )
        return order["items"][0]

    return _checkout
