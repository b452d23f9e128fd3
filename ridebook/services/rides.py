"""
Ride lifecycle
==============

    ACTIVE --cancel--> CANCELLED   (terminal)
    ACTIVE --complete--> COMPLETED (terminal)

Cascades
--------
* **cancel**: every PENDING / CONFIRMED booking of the ride becomes
  CANCELLED.  A booking keeps its own cancellation reason if it already has
  one, otherwise it inherits the ride's.  Released seats go back to the
  ride's available capacity.
* **complete**: every CONFIRMED booking becomes COMPLETED.  PENDING bookings
  are left untouched -- a booking that was never confirmed cannot complete.

Editing an active ride goes through the same row lock; seats that bookings
already hold are never given away by a smaller ``total_seats``.

The ride row is locked (``FOR UPDATE``) and written with a revision CAS, and
the ride plus all of its bookings change inside one transaction: either the
whole cascade is visible or none of it is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.config import settings
from ridebook.domain.clock import IST, has_departed, to_ist, utc_now
from ridebook.domain.entities import Actor, ensure_transition
from ridebook.domain.enums import (
    BOOKING_TRANSITIONS,
    RIDE_TRANSITIONS,
    SEAT_HOLDING_STATUSES,
    BookingStatus,
    RideStatus,
)
from ridebook.domain.errors import (
    DomainError,
    Forbidden,
    InvalidTransition,
    KycRequired,
    NotFound,
    ValidationError,
)
from ridebook.domain.kyc import can_publish
from ridebook.infrastructure.models import BookingModel, RideModel
from ridebook.infrastructure.repositories import (
    BookingRepository,
    KycRepository,
    RideRepository,
)

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

EXPIRED_RIDE_REASON = "Automatically cancelled due to expired departure date"
POPULAR_RIDES_LIMIT = 6


@dataclass
class RideOutcome:
    """A ride after a transition, with the bookings the cascade changed."""

    ride: RideModel
    bookings: list[BookingModel] = field(default_factory=list)


@dataclass
class ExpiryReport:
    processed: int = 0
    cancelled: int = 0
    completed: int = 0
    skipped: int = 0


# ── Helpers shared with the booking service ───────────────────────────


async def load_ride_for_update(session: AsyncSession, ride_id: int) -> RideModel:
    ride = await RideRepository(session).get_for_update(ride_id)
    if not ride:
        raise NotFound(f"Ride {ride_id} not found")
    return ride


def ensure_owner_or_admin(actor: Actor, ride: RideModel, action: str) -> None:
    if actor.is_admin:
        return
    if not (actor.is_driver and ride.driver_id == actor.id):
        raise Forbidden(f"You can only {action} your own rides")


def release_seats(ride: RideModel, seats: int) -> None:
    ride.available_seats = min(ride.total_seats, ride.available_seats + seats)


def touch(ride: RideModel) -> None:
    """Force a ride UPDATE so the revision CAS covers a booking-only change."""
    ride.updated_at = utc_now()


def _reason(reason: Optional[str]) -> str:
    if reason is None or not reason.strip():
        raise ValidationError("A cancellation reason is required")
    return reason.strip()


async def cancel_cascade(
    session: AsyncSession, ride: RideModel, reason: str
) -> list[BookingModel]:
    """Cancel *ride* and its seat-holding bookings.  Caller holds the ride lock."""
    ensure_transition(RIDE_TRANSITIONS, RideStatus(ride.status), RideStatus.CANCELLED, "ride")
    bookings = await BookingRepository(session).list_by_ride(
        ride.id, SEAT_HOLDING_STATUSES
    )
    released = 0
    for booking in bookings:
        ensure_transition(
            BOOKING_TRANSITIONS,
            BookingStatus(booking.status),
            BookingStatus.CANCELLED,
            "booking",
        )
        booking.status = BookingStatus.CANCELLED
        if not booking.cancellation_reason:
            booking.cancellation_reason = reason
        released += booking.number_of_seats

    ride.status = RideStatus.CANCELLED
    ride.cancellation_reason = reason
    release_seats(ride, released)
    await session.flush()
    return bookings


async def complete_cascade(
    session: AsyncSession, ride: RideModel
) -> list[BookingModel]:
    """Complete *ride* and its confirmed bookings.  Caller holds the ride lock."""
    ensure_transition(RIDE_TRANSITIONS, RideStatus(ride.status), RideStatus.COMPLETED, "ride")
    bookings = await BookingRepository(session).list_by_ride(
        ride.id, [BookingStatus.CONFIRMED]
    )
    for booking in bookings:
        ensure_transition(
            BOOKING_TRANSITIONS,
            BookingStatus(booking.status),
            BookingStatus.COMPLETED,
            "booking",
        )
        booking.status = BookingStatus.COMPLETED

    ride.status = RideStatus.COMPLETED
    await session.flush()
    return bookings


# ── Service ───────────────────────────────────────────────────────────


class RideService:
    def __init__(
        self,
        uow: UnitOfWork,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.uow = uow
        self.clock = clock

    async def publish(
        self,
        actor: Actor,
        *,
        from_location: str,
        to_location: str,
        departure_at: datetime,
        price: int,
        total_seats: int,
        vehicle_type: str,
        vehicle_number: str,
        description: Optional[str] = None,
    ) -> RideModel:
        """Publish a new ride.  Only KYC-verified drivers may publish."""
        for value, label in (
            (from_location, "From location"),
            (to_location, "To location"),
            (vehicle_type, "Vehicle type"),
            (vehicle_number, "Vehicle number"),
        ):
            if not value or not value.strip():
                raise ValidationError(f"{label} is required")
        if total_seats < 1:
            raise ValidationError("At least one seat must be available")
        if price < 1:
            raise ValidationError("Price must be greater than 0")
        departure = to_ist(departure_at)
        if has_departed(departure, self.clock()):
            raise ValidationError("Departure must be in the future (India time)")

        async def _op(session: AsyncSession) -> RideModel:
            if not actor.is_kyc_verified:
                latest = await KycRepository(session).latest_status(actor.id)
            else:
                latest = None
            decision = can_publish(actor, latest)
            if decision.wrong_role:
                raise Forbidden("Only drivers can publish rides")
            if not decision:
                raise KycRequired(
                    "KYC verification required to publish rides",
                    reason=decision.reason.value,
                )
            return await RideRepository(session).create(
                RideModel(
                    driver_id=actor.id,
                    from_location=from_location.strip(),
                    to_location=to_location.strip(),
                    departure_at=departure,
                    price=price,
                    total_seats=total_seats,
                    available_seats=total_seats,
                    vehicle_type=vehicle_type.strip(),
                    vehicle_number=vehicle_number.strip(),
                    description=description,
                    status=RideStatus.ACTIVE,
                )
            )

        ride = await self.uow.run(_op, name="publish_ride")
        logger.info(
            "Ride %d published by driver %d (%s -> %s, %d seats)",
            ride.id,
            actor.id,
            ride.from_location,
            ride.to_location,
            ride.total_seats,
        )
        return ride

    async def update(
        self,
        ride_id: int,
        actor: Actor,
        *,
        from_location: Optional[str] = None,
        to_location: Optional[str] = None,
        departure_at: Optional[datetime] = None,
        price: Optional[int] = None,
        total_seats: Optional[int] = None,
        vehicle_type: Optional[str] = None,
        vehicle_number: Optional[str] = None,
        description: Optional[str] = None,
    ) -> RideModel:
        """
        Edit an active ride.  Fields left as ``None`` keep their value.

        Seats already held by pending or confirmed bookings stay held:
        ``total_seats`` cannot drop below them, and ``available_seats`` is
        recomputed as the new total minus the held seats.  The price is
        fixed once anyone holds a seat because booking totals are derived
        from it.
        """
        texts = {
            "from_location": (from_location, "From location"),
            "to_location": (to_location, "To location"),
            "vehicle_type": (vehicle_type, "Vehicle type"),
            "vehicle_number": (vehicle_number, "Vehicle number"),
        }
        for value, label in texts.values():
            if value is not None and not value.strip():
                raise ValidationError(f"{label} cannot be empty")
        if total_seats is not None and total_seats < 1:
            raise ValidationError("At least one seat must be available")
        if price is not None and price < 1:
            raise ValidationError("Price must be greater than 0")
        departure = None
        if departure_at is not None:
            departure = to_ist(departure_at)
            if has_departed(departure, self.clock()):
                raise ValidationError("Departure must be in the future (India time)")

        async def _op(session: AsyncSession) -> RideModel:
            ride = await load_ride_for_update(session, ride_id)
            ensure_owner_or_admin(actor, ride, "edit")
            if RideStatus(ride.status) != RideStatus.ACTIVE:
                raise InvalidTransition(
                    f"Ride {ride_id} is {RideStatus(ride.status).value} and cannot be edited"
                )
            held = await BookingRepository(session).seats_held(ride.id)

            if price is not None and price != ride.price:
                if held:
                    raise ValidationError(
                        "Price cannot change while seats on the ride are booked"
                    )
                ride.price = price
            if total_seats is not None:
                if total_seats < held:
                    raise ValidationError(
                        f"{held} seat(s) are already booked; total seats cannot go below that"
                    )
                ride.total_seats = total_seats
                ride.available_seats = total_seats - held
            for attr, (value, _) in texts.items():
                if value is not None:
                    setattr(ride, attr, value.strip())
            if departure is not None:
                ride.departure_at = departure
            if description is not None:
                ride.description = description
            touch(ride)
            await session.flush()
            return ride

        ride = await self.uow.run(_op, name="update_ride")
        logger.info("Ride %d edited by user %d", ride_id, actor.id)
        return ride

    async def cancel(
        self, ride_id: int, actor: Actor, reason: Optional[str]
    ) -> RideOutcome:
        """Cancel an active ride; allowed even after departure."""
        reason = _reason(reason)

        async def _op(session: AsyncSession) -> RideOutcome:
            ride = await load_ride_for_update(session, ride_id)
            ensure_owner_or_admin(actor, ride, "cancel")
            bookings = await cancel_cascade(session, ride, reason)
            return RideOutcome(ride=ride, bookings=bookings)

        outcome = await self.uow.run(_op, name="cancel_ride")
        logger.info(
            "Ride %d cancelled by user %d; %d booking(s) cancelled",
            ride_id,
            actor.id,
            len(outcome.bookings),
        )
        return outcome

    async def complete(self, ride_id: int, actor: Actor) -> RideOutcome:
        """Complete an active ride once its departure time has passed."""

        async def _op(session: AsyncSession) -> RideOutcome:
            ride = await load_ride_for_update(session, ride_id)
            ensure_owner_or_admin(actor, ride, "complete")
            ensure_transition(
                RIDE_TRANSITIONS, RideStatus(ride.status), RideStatus.COMPLETED, "ride"
            )
            if not has_departed(ride.departure_at, self.clock()):
                raise InvalidTransition(
                    "A ride cannot be completed before its departure time"
                )
            bookings = await complete_cascade(session, ride)
            return RideOutcome(ride=ride, bookings=bookings)

        outcome = await self.uow.run(_op, name="complete_ride")
        logger.info(
            "Ride %d completed by user %d; %d booking(s) completed",
            ride_id,
            actor.id,
            len(outcome.bookings),
        )
        return outcome

    async def expire_past_rides(
        self, grace_minutes: Optional[int] = None
    ) -> ExpiryReport:
        """
        Close out active rides whose departure has passed.

        Rides with at least one confirmed booking are completed; the rest are
        cancelled.  Each ride is its own transaction so one conflict does not
        hold back the others.
        """
        grace = settings.ride_expiry_grace_minutes if grace_minutes is None else grace_minutes
        cutoff = self.clock().astimezone(IST) - timedelta(minutes=grace)

        async def _candidates(session: AsyncSession) -> list[int]:
            return await RideRepository(session).list_active_departed_before(cutoff)

        report = ExpiryReport()
        for ride_id in await self.uow.read(_candidates):

            async def _op(session: AsyncSession, ride_id: int = ride_id) -> Optional[RideStatus]:
                ride = await load_ride_for_update(session, ride_id)
                if RideStatus(ride.status) != RideStatus.ACTIVE:
                    return None
                confirmed = await BookingRepository(session).list_by_ride(
                    ride.id, [BookingStatus.CONFIRMED]
                )
                if confirmed:
                    await complete_cascade(session, ride)
                    return RideStatus.COMPLETED
                await cancel_cascade(session, ride, EXPIRED_RIDE_REASON)
                return RideStatus.CANCELLED

            try:
                outcome = await self.uow.run(_op, name="expire_ride")
            except DomainError as exc:
                report.skipped += 1
                logger.warning(
                    "Skipping past ride %d this cycle: %s (%s)", ride_id, exc.message, exc.kind
                )
                continue
            report.processed += 1
            if outcome == RideStatus.COMPLETED:
                report.completed += 1
                logger.info("Auto-completed past ride %d", ride_id)
            elif outcome == RideStatus.CANCELLED:
                report.cancelled += 1
                logger.info("Auto-cancelled past ride %d", ride_id)
        return report

    # ── Reads ─────────────────────────────────────────────────────────

    async def get(self, ride_id: int) -> RideModel:
        async def _op(session: AsyncSession) -> RideModel:
            ride = await RideRepository(session).get_by_id(ride_id)
            if not ride:
                raise NotFound(f"Ride {ride_id} not found")
            return ride

        return await self.uow.read(_op)

    async def search(
        self, from_location: str, to_location: str, date: Optional[datetime] = None
    ) -> list[RideModel]:
        """Active rides with free seats that have not departed yet."""
        now = self.clock().astimezone(IST)
        before = None
        if date is not None:
            day = to_ist(date).replace(hour=0, minute=0, second=0, microsecond=0)
            now = max(now, day)
            before = day + timedelta(days=1)

        async def _op(session: AsyncSession) -> list[RideModel]:
            return await RideRepository(session).search(
                from_location.strip(),
                to_location.strip(),
                departing_after=now,
                departing_before=before,
            )

        return await self.uow.read(_op)

    async def popular(self, limit: int = POPULAR_RIDES_LIMIT) -> list[RideModel]:
        """The next few bookable rides, soonest first, for the home page."""
        now = self.clock().astimezone(IST)

        async def _op(session: AsyncSession) -> list[RideModel]:
            return await RideRepository(session).upcoming(now, limit)

        return await self.uow.read(_op)

    async def list_mine(self, actor: Actor) -> list[RideModel]:
        if not actor.is_driver:
            raise Forbidden("Only drivers have published rides")

        async def _op(session: AsyncSession) -> list[RideModel]:
            return await RideRepository(session).list_by_driver(actor.id)

        return await self.uow.read(_op)

    async def list_bookings(self, ride_id: int, actor: Actor) -> RideOutcome:
        async def _op(session: AsyncSession) -> RideOutcome:
            ride = await RideRepository(session).get_by_id(ride_id)
            if not ride:
                raise NotFound(f"Ride {ride_id} not found")
            ensure_owner_or_admin(actor, ride, "view bookings of")
            bookings = await BookingRepository(session).list_by_ride(ride_id)
            return RideOutcome(ride=ride, bookings=bookings)

        return await self.uow.read(_op)

