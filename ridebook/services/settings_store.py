"""Platform settings backed by the ``app_settings`` table."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.config import settings
from ridebook.domain.entities import Actor
from ridebook.domain.errors import Forbidden
from ridebook.domain.fees import BOOKING_FEE_KEY, BookingFeeSetting
from ridebook.infrastructure.repositories import SettingsRepository

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def default_booking_fee() -> BookingFeeSetting:
    return BookingFeeSetting(
        enabled=settings.default_booking_fee_enabled,
        amount=settings.default_booking_fee_amount,
    )


async def load_booking_fee(session: AsyncSession) -> BookingFeeSetting:
    """Read the current fee setting inside the caller's transaction."""
    value = await SettingsRepository(session).get(BOOKING_FEE_KEY)
    if not value:
        return default_booking_fee()
    return BookingFeeSetting.from_value(value)


class SettingsService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def get_booking_fee(self) -> BookingFeeSetting:
        return await self.uow.read(load_booking_fee)

    async def update_booking_fee(
        self, actor: Actor, *, enabled: bool, amount: int
    ) -> BookingFeeSetting:
        if not actor.is_admin:
            raise Forbidden("Only admins can change the booking fee")
        fee = BookingFeeSetting(enabled=enabled, amount=amount)

        async def _op(session: AsyncSession) -> BookingFeeSetting:
            await SettingsRepository(session).upsert(BOOKING_FEE_KEY, fee.to_value())
            return fee

        result = await self.uow.run(_op, name="update_booking_fee")
        logger.info(
            "Booking fee set to enabled=%s amount=%d by admin %d",
            fee.enabled,
            fee.amount,
            actor.id,
        )
        return result
