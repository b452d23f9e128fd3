"""
Lifecycle orchestrator.

Single entry point the HTTP layer and the maintenance worker talk to.  It
owns one ``UnitOfWork`` and hands it to each service, so every call runs
in its own retried transaction against the same session factory.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ridebook.domain.clock import utc_now
from ridebook.infrastructure.database import async_session_factory

from .bookings import BookingService
from .kyc import KycService
from .ratings import RatingService
from .ride_requests import RideRequestService
from .rides import RideService
from .settings_store import SettingsService
from .unit_of_work import UnitOfWork
from .users import UserService


class LifecycleOrchestrator:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session_factory,
        *,
        clock: Callable[[], datetime] = utc_now,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
    ):
        self.uow = UnitOfWork(
            session_factory, max_attempts=max_attempts, backoff_base=backoff_base
        )
        self.rides = RideService(self.uow, clock=clock)
        self.bookings = BookingService(self.uow)
        self.ratings = RatingService(self.uow)
        self.ride_requests = RideRequestService(self.uow, clock=clock)
        self.kyc = KycService(self.uow)
        self.users = UserService(self.uow)
        self.settings = SettingsService(self.uow)


_default: Optional[LifecycleOrchestrator] = None


def get_default_orchestrator() -> LifecycleOrchestrator:
    global _default
    if _default is None:
        _default = LifecycleOrchestrator()
    return _default
