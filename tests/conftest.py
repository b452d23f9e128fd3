"""
Shared test fixtures.

Each test gets its own file-backed SQLite database (via aiosqlite) so tests
run without Docker / PostgreSQL / Redis, and so two sessions can genuinely
race against the same rows.  The production models are used unchanged.

Time is driven by a settable clock; SQLite hands datetimes back naive, and
those are read as India time exactly like client input without an offset.
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ridebook.domain.clock import UTC
from ridebook.domain.entities import Actor
from ridebook.domain.enums import BookingStatus, UserRole
from ridebook.infrastructure.database import Base
from ridebook.infrastructure.models import RideModel, UserModel
from ridebook.services.orchestrator import LifecycleOrchestrator
from ridebook.services.users import to_actor

# 12:00 IST
START = datetime(2026, 10, 19, 6, 30, tzinfo=UTC)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a fresh database file, then dispose of the engine."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ridebook.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def orchestrator(session_factory, clock) -> LifecycleOrchestrator:
    return LifecycleOrchestrator(
        session_factory, clock=clock, max_attempts=8, backoff_base=0.01
    )


@pytest.fixture
def make_user(session_factory):
    """Insert a user and return its ``Actor``."""
    counter = itertools.count(1)

    async def _make(
        role: UserRole = UserRole.CUSTOMER,
        *,
        verified: bool = True,
        suspended: bool = False,
    ) -> Actor:
        n = next(counter)
        async with session_factory() as session:
            user = UserModel(
                full_name=f"{role.value.title()} {n}",
                mobile=f"98{n:08d}",
                role=role,
                is_kyc_verified=verified,
                is_suspended=suspended,
            )
            session.add(user)
            await session.commit()
            return to_actor(user)

    return _make


@pytest_asyncio.fixture
async def driver(make_user) -> Actor:
    return await make_user(UserRole.DRIVER)


@pytest_asyncio.fixture
async def customer(make_user) -> Actor:
    return await make_user(UserRole.CUSTOMER)


@pytest_asyncio.fixture
async def admin(make_user) -> Actor:
    return await make_user(UserRole.ADMIN)


@pytest.fixture
def make_ride(orchestrator, clock):
    """Publish a ride departing *hours* from the current clock."""

    async def _make(
        driver: Actor,
        *,
        seats: int = 3,
        price: int = 500,
        hours: float = 24,
        from_location: str = "Mumbai Airport",
        to_location: str = "Pune Station",
    ) -> RideModel:
        return await orchestrator.rides.publish(
            driver,
            from_location=from_location,
            to_location=to_location,
            departure_at=clock() + timedelta(hours=hours),
            price=price,
            total_seats=seats,
            vehicle_type="Sedan",
            vehicle_number="MH01AB1234",
        )

    return _make


@pytest.fixture
def confirmed_booking(orchestrator):
    """Create a booking and have the ride's driver confirm it."""

    async def _make(customer: Actor, driver: Actor, ride_id: int, seats: int = 1):
        booking = await orchestrator.bookings.create(customer, ride_id, seats)
        await orchestrator.bookings.confirm(booking.id, driver)
        booking, _ = await orchestrator.bookings.get(booking.id, customer)
        assert booking.status == BookingStatus.CONFIRMED
        return booking

    return _make

