"""Test configuration and fixtures."""

import os

# Must be set before the application settings are first imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SWEEPER_ENABLED", "false")
os.environ.setdefault("BEARER_TOKEN_SECRET", "test-secret-key-with-at-least-32-bytes")

from datetime import datetime  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ticket_inventory.core.clock import FrozenClock  # noqa: E402
from ticket_inventory.core.config import settings  # noqa: E402
from ticket_inventory.core.database import Base, InventorySession, get_db, get_session_factory  # noqa: E402
from ticket_inventory.core.dependencies import get_clock  # noqa: E402
from ticket_inventory.core.units import seat_unit_id  # noqa: E402
from ticket_inventory.models import (  # noqa: E402
    Event,
    Order,
    OrderItem,
    Seat,
    SeatingType,
    TicketTier,
)

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

GA_EVENT_ID = "evt-ga"
SEATED_EVENT_ID = "evt-seated"
START_TIME = datetime(2026, 6, 1, 12, 0, 0)


def make_engine():
    return create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


async def create_ga_event(
    session: AsyncSession,
    event_id: str = GA_EVENT_ID,
    tiers: dict[str, int] | None = None,
    total_capacity: int | None = None,
) -> Event:
    """Create a GA event with ``{tier_id: capacity}`` tiers."""
    tiers = tiers if tiers is not None else {"general": 10, "vip": 5}
    event = Event(
        id=event_id,
        name=f"Event {event_id}",
        seating_type=SeatingType.GENERAL.value,
        total_capacity=total_capacity,
    )
    session.add(event)
    session.add_all([
        TicketTier(event_id=event_id, id=tier_id, name=tier_id.title(), capacity=capacity)
        for tier_id, capacity in tiers.items()
    ])
    await session.commit()
    return event


async def create_seated_event(
    session: AsyncSession,
    event_id: str = SEATED_EVENT_ID,
    section_id: str = "A",
    rows: str = "12",
    seats_per_row: int = 5,
) -> Event:
    """Create a reserved-seating event; seat ids look like ``A-1-5``."""
    event = Event(id=event_id, name=f"Event {event_id}", seating_type=SeatingType.RESERVED.value)
    session.add(event)
    for row in rows:
        for number in range(1, seats_per_row + 1):
            session.add(Seat(
                event_id=event_id,
                seat_id=seat_unit_id(section_id, row, number),
                section_id=section_id,
                section_name=f"Section {section_id}",
                row=row,
                number=str(number),
            ))
    await session.commit()
    return event


async def add_order(
    session: AsyncSession,
    order_id: str,
    event_id: str,
    items: list[dict],
    status: str = "completed",
) -> Order:
    """Insert an order the way the order subsystem would."""
    order = Order(id=order_id, event_id=event_id, status=status)
    order.items = [OrderItem(**item) for item in items]
    session.add(order)
    await session.commit()
    return order


def make_token(roles: list[str] | None = None, subject: str = "admin-1", username: str | None = "ops") -> str:
    payload = {"sub": subject, "roles": roles if roles is not None else ["admin"]}
    if username:
        payload["username"] = username
    return jwt.encode(payload, settings.bearer_token_secret, algorithm="HS256")


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = make_engine()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=InventorySession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def clock():
    """Clock frozen at a fixed instant; advance it to expire holds."""
    return FrozenClock(START_TIME)


@pytest_asyncio.fixture
async def ga_event(test_session):
    """GA event with tiers general (10) and vip (5)."""
    return await create_ga_event(test_session)


@pytest_asyncio.fixture
async def seated_event(test_session):
    """Reserved event with seats A-1-1..A-1-5 and A-2-1..A-2-5."""
    return await create_seated_event(test_session)


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session, test_session_factory, clock):
    """Create the application with database and clock overridden."""
    from ticket_inventory.main import create_app

    app = create_app()

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_session_factory] = lambda: test_session_factory

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token()}"}
