"""Test configuration and fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BEARER_TOKEN_SECRET", "test-secret")
os.environ.setdefault("WEBHOOK_SECRET", "test-webhook-secret")

from datetime import date, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from tourbook.core.database import Base, engine_options, get_db  # noqa: E402
from tourbook.core.dependencies import encode_principal  # noqa: E402
from tourbook.core.principal import Principal, UserRole  # noqa: E402
from tourbook.models import *  # noqa: E402,F403 - Import all models
from tourbook.models import Tour, TourAvailability, TourStatus  # noqa: E402

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def one_day_itinerary(days: int = 1) -> list[dict]:
    return [{"day": n, "title": f"Day {n}", "description": ""} for n in range(1, days + 1)]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        **engine_options(TEST_DATABASE_URL),
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory configured like the application's."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """The real application with its database dependency pointed at the test session."""
    from tourbook.main import create_app

    app = create_app()

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def customer():
    return Principal(user_id="customer-1", role=UserRole.CUSTOMER)


@pytest.fixture
def other_customer():
    return Principal(user_id="customer-2", role=UserRole.CUSTOMER)


@pytest.fixture
def staff():
    return Principal(user_id="staff-1", role=UserRole.STAFF)


@pytest.fixture
def admin():
    return Principal(user_id="admin-1", role=UserRole.ADMIN)


@pytest.fixture
def auth_headers():
    """Build an Authorization header for a principal."""
    def _headers(principal: Principal) -> dict:
        return {"Authorization": f"Bearer {encode_principal(principal)}"}
    return _headers


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def tour_factory(test_session):
    """Insert a tour directly, bypassing the admin-only service."""
    async def _create(
        price_per_person: Decimal = Decimal("100.00"),
        max_group_size: int = 10,
        status: TourStatus = TourStatus.ACTIVE,
        duration_days: int = 1,
        title: str = "Northern Lights Adventure",
    ) -> Tour:
        tour = Tour(
            title=title,
            description="Aurora hunting in Iceland",
            duration_days=duration_days,
            price_per_person=price_per_person,
            max_group_size=max_group_size,
            status=status.value,
            itinerary=one_day_itinerary(duration_days),
        )
        test_session.add(tour)
        await test_session.commit()
        await test_session.refresh(tour)
        return tour
    return _create


@pytest.fixture
def availability_factory(test_session):
    """Insert an availability with every slot free unless told otherwise."""
    async def _create(
        tour: Tour,
        total_slots: int = 5,
        available_slots: int | None = None,
        start_in_days: int = 30,
    ) -> TourAvailability:
        start = date.today() + timedelta(days=start_in_days)
        availability = TourAvailability(
            tour_id=tour.id,
            start_date=start,
            end_date=start + timedelta(days=max(tour.duration_days - 1, 0)),
            total_slots=total_slots,
            available_slots=total_slots if available_slots is None else available_slots,
        )
        test_session.add(availability)
        await test_session.commit()
        await test_session.refresh(availability)
        return availability
    return _create


@pytest.fixture
def sample_tour_data():
    """Sample tour creation payload."""
    return {
        "title": "Northern Lights Adventure",
        "description": "Experience the magical Aurora Borealis in Iceland",
        "duration_days": 3,
        "price_per_person": "299.99",
        "max_group_size": 12,
        "itinerary": [
            {"day": 1, "title": "Arrival", "description": "Evening briefing"},
            {"day": 2, "title": "Golden Circle", "description": "Night hunt"},
            {"day": 3, "title": "Blue Lagoon", "description": "Departure"},
        ],
    }
