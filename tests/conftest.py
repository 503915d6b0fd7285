import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from parkshare.application.services import (
    AvailabilityWindowTracker, BookingPolicy, BookingService, SlotRegistry,
)
from parkshare.config.settings_env import Settings
from parkshare.domain.common import SlotType, UserRole
from parkshare.domain.entities import Actor, SlotAttributes, User
from parkshare.infrastructure.persistence.models.models import Base
from parkshare.infrastructure.persistence.unit_of_work import unit_of_work_factory

COMMUNITY = "LMR"
NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Settable stand-in for ``utc_now``."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def at(hours: float = 0, days: int = 0) -> datetime:
    """A time relative to the frozen NOW."""
    return NOW + timedelta(days=days, hours=hours)


@pytest.fixture(scope="function")
async def test_db():
    """Create a test database for each test function."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp_file:
        test_db_path = tmp_file.name

    # NullPool gives every session its own connection, like separate requests
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{test_db_path}",
        poolclass=NullPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    yield async_session_maker

    await engine.dispose()
    os.unlink(test_db_path)


@pytest.fixture
async def db_session(test_db):
    """Create a database session for a test."""
    async with test_db() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uow_factory(test_db):
    return unit_of_work_factory(test_db)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def policy():
    return BookingPolicy()


@pytest.fixture
def test_settings():
    """Provide test settings."""
    return Settings(
        DATABASE_URL="sqlite:///:memory:",
        ASYNC_DATABASE_URL="sqlite+aiosqlite:///:memory:",
        MIN_DURATION_HOURS=1,
        MAX_DURATION_HOURS=48,
        MAX_ADVANCE_DAYS=14,
        CANCELLATION_GRACE_HOURS=2,
        PLATFORM_FEE_RATE=0.15,
    )


@pytest.fixture
def slot_registry(uow_factory, clock):
    return SlotRegistry(uow_factory, clock=clock)


@pytest.fixture
def booking_service(uow_factory, clock, policy):
    return BookingService(uow_factory, policy=policy, clock=clock)


@pytest.fixture
def availability_tracker(uow_factory, clock):
    return AvailabilityWindowTracker(uow_factory, clock=clock)


async def _add_user(uow_factory, name, community=COMMUNITY, role=UserRole.RESIDENT) -> Actor:
    async with uow_factory() as uow:
        user = await uow.users.add(User(name=name, community_code=community, role=role))
        await uow.commit()
    return Actor(user_id=user.id, community_code=community, role=role)


@pytest.fixture
async def owner(uow_factory):
    return await _add_user(uow_factory, "Olivia Owner")


@pytest.fixture
async def renter(uow_factory):
    return await _add_user(uow_factory, "Ravi Renter")


@pytest.fixture
async def other_renter(uow_factory):
    return await _add_user(uow_factory, "Rosa Resident")


@pytest.fixture
async def admin(uow_factory):
    return await _add_user(uow_factory, "Ada Admin", role=UserRole.ADMIN)


@pytest.fixture
async def outsider(uow_factory):
    return await _add_user(uow_factory, "Otto Outsider", community="KTH")


@pytest.fixture
async def shared_slot(slot_registry, admin):
    """Ownerless slot any resident may book: 10/h, 150/day."""
    return await slot_registry.create_slot(
        admin,
        SlotAttributes(slot_number="S-01", slot_type=SlotType.COVERED, hourly_rate=10, daily_rate=150, shared=True),
    )


@pytest.fixture
async def owned_slot(slot_registry, owner):
    """Owner's private slot, not listed for rent."""
    return await slot_registry.create_slot(
        owner,
        SlotAttributes(slot_number="P1-07", slot_type=SlotType.UNCOVERED, hourly_rate=8),
    )


@pytest.fixture
async def listed_slot(slot_registry, owner):
    """Owner's slot listed on the marketplace."""
    return await slot_registry.create_slot(
        owner,
        SlotAttributes(
            slot_number="P2-11", slot_type=SlotType.COVERED, hourly_rate=12, daily_rate=200,
            is_listed_for_rent=True,
        ),
    )


@pytest.fixture
async def windowed_slot(slot_registry, owner):
    """Listing open for the next three days."""
    return await slot_registry.create_slot(
        owner,
        SlotAttributes(
            slot_number="P3-02", slot_type=SlotType.TANDEM, hourly_rate=5, is_listed_for_rent=True,
            available_from=at(hours=-1), available_until=at(days=3),
        ),
    )
