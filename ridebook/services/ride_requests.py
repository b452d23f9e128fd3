"""
Ride requests.

A customer whose search came back empty can leave the route they want;
admins work through the list and mark each request responded or closed.
Requests never create rides or bookings by themselves.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.domain.clock import IST, utc_now
from ridebook.domain.entities import Actor, ensure_transition
from ridebook.domain.enums import RIDE_REQUEST_TRANSITIONS, RideRequestStatus
from ridebook.domain.errors import Forbidden, NotFound, ValidationError
from ridebook.infrastructure.models import RideRequestModel
from ridebook.infrastructure.repositories import RideRequestRepository

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

MAX_PASSENGERS = 8
MIN_CONTACT_DIGITS = 10


class RideRequestService:
    def __init__(
        self,
        uow: UnitOfWork,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.uow = uow
        self.clock = clock

    async def create(
        self,
        actor: Actor,
        *,
        from_location: str,
        to_location: str,
        preferred_date: date,
        contact_number: str,
        number_of_passengers: int = 1,
        preferred_time: Optional[str] = None,
        max_budget: Optional[int] = None,
        additional_notes: Optional[str] = None,
    ) -> RideRequestModel:
        if not actor.is_customer:
            raise Forbidden("Only customers can request rides")
        for value, label in (
            (from_location, "From location"),
            (to_location, "To location"),
        ):
            if not value or not value.strip():
                raise ValidationError(f"{label} is required")
        if preferred_date < self.clock().astimezone(IST).date():
            raise ValidationError("Preferred date cannot be in the past (India time)")
        if not 1 <= number_of_passengers <= MAX_PASSENGERS:
            raise ValidationError(
                f"Number of passengers must be between 1 and {MAX_PASSENGERS}"
            )
        if max_budget is not None and max_budget < 0:
            raise ValidationError("Budget cannot be negative")
        if sum(ch.isdigit() for ch in contact_number or "") < MIN_CONTACT_DIGITS:
            raise ValidationError("A valid contact number is required")

        async def _op(session: AsyncSession) -> RideRequestModel:
            return await RideRequestRepository(session).create(
                RideRequestModel(
                    user_id=actor.id,
                    from_location=from_location.strip(),
                    to_location=to_location.strip(),
                    preferred_date=preferred_date,
                    preferred_time=preferred_time,
                    number_of_passengers=number_of_passengers,
                    max_budget=max_budget,
                    contact_number=contact_number.strip(),
                    additional_notes=additional_notes,
                    status=RideRequestStatus.PENDING,
                )
            )

        created = await self.uow.run(_op, name="create_ride_request")
        logger.info(
            "Ride request %d by user %d: %s -> %s on %s",
            created.id,
            actor.id,
            created.from_location,
            created.to_location,
            preferred_date.isoformat(),
        )
        return created

    async def update_status(
        self, request_id: int, actor: Actor, status: RideRequestStatus
    ) -> RideRequestModel:
        if not actor.is_admin:
            raise Forbidden("Only admins can update ride requests")

        async def _op(session: AsyncSession) -> RideRequestModel:
            request = await RideRequestRepository(session).get_by_id(request_id)
            if not request:
                raise NotFound(f"Ride request {request_id} not found")
            ensure_transition(
                RIDE_REQUEST_TRANSITIONS,
                RideRequestStatus(request.status),
                status,
                "ride request",
            )
            request.status = status
            await session.flush()
            return request

        updated = await self.uow.run(_op, name="update_ride_request")
        logger.info(
            "Ride request %d marked %s by admin %d", request_id, status.value, actor.id
        )
        return updated

    async def list_mine(self, actor: Actor) -> list[RideRequestModel]:
        async def _op(session: AsyncSession) -> list[RideRequestModel]:
            return await RideRequestRepository(session).list_by_user(actor.id)

        return await self.uow.read(_op)

    async def list_all(
        self, actor: Actor, status: Optional[RideRequestStatus] = None
    ) -> list[RideRequestModel]:
        if not actor.is_admin:
            raise Forbidden("Only admins can list all ride requests")

        async def _op(session: AsyncSession) -> list[RideRequestModel]:
            return await RideRequestRepository(session).list_all(status)

        return await self.uow.read(_op)
