"""
Booking lifecycle
=================

    PENDING --confirm--> CONFIRMED --(ride complete)--> COMPLETED
    PENDING   --cancel--> CANCELLED
    CONFIRMED --cancel--> CANCELLED

Seat capacity
-------------
Seats are reserved when a booking is *created*: the ride row is locked,
remaining capacity is re-read inside the same transaction, and the booking
insert plus the ``available_seats`` decrement commit together.  Confirming
only commits the hold; cancelling gives the seats back.

Completion has one authoritative path, the ride-completion cascade.  The
only per-booking completion is the admin reconciliation override
``force_complete``, which is a no-op on an already-completed booking.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.domain.entities import Actor, ensure_transition
from ridebook.domain.enums import (
    BOOKING_TRANSITIONS,
    BookingStatus,
    RideStatus,
)
from ridebook.domain.errors import (
    DuplicateBooking,
    Forbidden,
    InvalidTransition,
    KycRequired,
    NoCapacity,
    NotFound,
    ValidationError,
)
from ridebook.domain.fees import resolve_booking_fee
from ridebook.domain.kyc import can_book
from ridebook.infrastructure.models import BookingModel, RideModel
from ridebook.infrastructure.repositories import (
    BookingRepository,
    KycRepository,
    RideRepository,
)

from .rides import load_ride_for_update, release_seats, touch
from .settings_store import load_booking_fee
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def _ensure_participant(actor: Actor, booking: BookingModel, ride: RideModel) -> None:
    if actor.is_admin or booking.customer_id == actor.id or ride.driver_id == actor.id:
        return
    raise Forbidden("Not authorized to access this booking")


async def _load_booking(session: AsyncSession, booking_id: int) -> BookingModel:
    booking = await BookingRepository(session).get_by_id(booking_id)
    if not booking:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


async def _lock_booking(
    session: AsyncSession, booking_id: int
) -> tuple[BookingModel, RideModel]:
    """Lock the booking's ride, then re-read the booking under that lock."""
    booking = await _load_booking(session, booking_id)
    ride = await load_ride_for_update(session, booking.ride_id)
    await session.refresh(booking)
    return booking, ride


class BookingService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def create(
        self, actor: Actor, ride_id: int, number_of_seats: int
    ) -> BookingModel:
        if not actor.is_customer:
            raise Forbidden("Only customers can book rides")
        if number_of_seats < 1:
            raise ValidationError("At least one seat is required")

        async def _op(session: AsyncSession) -> BookingModel:
            bookings = BookingRepository(session)
            ride = await load_ride_for_update(session, ride_id)

            if RideStatus(ride.status) != RideStatus.ACTIVE:
                raise InvalidTransition(
                    f"Ride {ride_id} is {RideStatus(ride.status).value} and cannot be booked"
                )
            if ride.driver_id == actor.id:
                raise Forbidden("You cannot book a ride you published")
            if await bookings.find_non_cancelled(actor.id, ride_id):
                raise DuplicateBooking(
                    "You have already booked this ride. Check your bookings."
                )

            held = await bookings.count_non_cancelled_by_customer(actor.id)
            latest = None
            if not actor.is_kyc_verified and held:
                latest = await KycRepository(session).latest_status(actor.id)
            decision = can_book(actor, held, latest)
            if not decision:
                raise KycRequired(
                    "KYC verification required after your first booking",
                    reason=decision.reason.value,
                )

            if number_of_seats > ride.available_seats:
                raise NoCapacity(
                    f"Only {ride.available_seats} seat(s) left on ride {ride_id}"
                )

            fee = resolve_booking_fee(await load_booking_fee(session))
            ride.available_seats -= number_of_seats
            try:
                return await bookings.create(
                    BookingModel(
                        ride_id=ride.id,
                        customer_id=actor.id,
                        number_of_seats=number_of_seats,
                        status=BookingStatus.PENDING,
                        booking_fee=fee,
                        is_paid=False,
                    )
                )
            except IntegrityError as exc:
                raise DuplicateBooking(
                    "You have already booked this ride. Check your bookings."
                ) from exc

        booking = await self.uow.run(_op, name="create_booking")
        logger.info(
            "Booking %d created: customer %d, ride %d, %d seat(s), fee %d",
            booking.id,
            actor.id,
            ride_id,
            number_of_seats,
            booking.booking_fee,
        )
        return booking

    async def confirm(self, booking_id: int, actor: Actor) -> BookingModel:
        """Only the ride's driver confirms, and only while the ride is active.

        Capacity was reserved at creation.
        """

        async def _op(session: AsyncSession) -> BookingModel:
            booking, ride = await _lock_booking(session, booking_id)
            if not (actor.is_driver and ride.driver_id == actor.id):
                raise Forbidden("Only the ride's driver can confirm a booking")
            if RideStatus(ride.status) != RideStatus.ACTIVE:
                raise InvalidTransition(
                    f"Ride {ride.id} is {RideStatus(ride.status).value}; "
                    "its bookings can no longer be confirmed"
                )
            ensure_transition(
                BOOKING_TRANSITIONS,
                BookingStatus(booking.status),
                BookingStatus.CONFIRMED,
                "booking",
            )
            booking.status = BookingStatus.CONFIRMED
            touch(ride)
            await session.flush()
            return booking

        booking = await self.uow.run(_op, name="confirm_booking")
        logger.info("Booking %d confirmed by driver %d", booking_id, actor.id)
        return booking

    async def cancel(
        self, booking_id: int, actor: Actor, reason: Optional[str]
    ) -> BookingModel:
        if reason is None or not reason.strip():
            raise ValidationError("Cancellation reason is required")
        reason = reason.strip()

        async def _op(session: AsyncSession) -> BookingModel:
            booking, ride = await _lock_booking(session, booking_id)
            _ensure_participant(actor, booking, ride)
            ensure_transition(
                BOOKING_TRANSITIONS,
                BookingStatus(booking.status),
                BookingStatus.CANCELLED,
                "booking",
            )
            booking.status = BookingStatus.CANCELLED
            booking.cancellation_reason = reason
            release_seats(ride, booking.number_of_seats)
            touch(ride)
            await session.flush()
            return booking

        booking = await self.uow.run(_op, name="cancel_booking")
        logger.info("Booking %d cancelled by user %d", booking_id, actor.id)
        return booking

    async def force_complete(self, booking_id: int, actor: Actor) -> BookingModel:
        """Admin reconciliation: complete a single confirmed booking."""
        if not actor.is_admin:
            raise InvalidTransition(
                "Bookings are completed when their ride is completed"
            )

        async def _op(session: AsyncSession) -> BookingModel:
            booking, ride = await _lock_booking(session, booking_id)
            if BookingStatus(booking.status) == BookingStatus.COMPLETED:
                return booking
            ensure_transition(
                BOOKING_TRANSITIONS,
                BookingStatus(booking.status),
                BookingStatus.COMPLETED,
                "booking",
            )
            booking.status = BookingStatus.COMPLETED
            touch(ride)
            await session.flush()
            return booking

        booking = await self.uow.run(_op, name="force_complete_booking")
        logger.info("Booking %d force-completed by admin %d", booking_id, actor.id)
        return booking

    async def mark_paid(self, booking_id: int, actor: Actor) -> BookingModel:
        """Acknowledge payment.  One-way and independent of status."""

        async def _op(session: AsyncSession) -> BookingModel:
            booking = await _load_booking(session, booking_id)
            if not (actor.is_admin or booking.customer_id == actor.id):
                raise Forbidden("Only the booking's customer can mark it paid")
            if not booking.is_paid:
                booking.is_paid = True
                await session.flush()
            return booking

        booking = await self.uow.run(_op, name="mark_paid")
        logger.info("Booking %d marked paid by user %d", booking_id, actor.id)
        return booking

    async def update_status(
        self,
        booking_id: int,
        actor: Actor,
        status: BookingStatus,
        reason: Optional[str] = None,
    ) -> BookingModel:
        """Dispatch a requested status change to the matching transition."""
        if status == BookingStatus.CONFIRMED:
            return await self.confirm(booking_id, actor)
        if status == BookingStatus.CANCELLED:
            return await self.cancel(booking_id, actor, reason)
        if status == BookingStatus.COMPLETED:
            return await self.force_complete(booking_id, actor)
        raise InvalidTransition(f"Bookings cannot be moved to {status.value}")

    # ── Reads ─────────────────────────────────────────────────────────

    async def get(self, booking_id: int, actor: Actor) -> tuple[BookingModel, RideModel]:
        async def _op(session: AsyncSession) -> tuple[BookingModel, RideModel]:
            booking = await _load_booking(session, booking_id)
            ride = await RideRepository(session).get_by_id(booking.ride_id)
            if not ride:
                raise NotFound(f"Ride {booking.ride_id} not found")
            _ensure_participant(actor, booking, ride)
            return booking, ride

        return await self.uow.read(_op)

    async def list_mine(
        self, actor: Actor
    ) -> list[tuple[BookingModel, RideModel]]:
        """The actor's bookings, newest first, each with its ride."""

        async def _op(session: AsyncSession) -> list[tuple[BookingModel, RideModel]]:
            rides = RideRepository(session)
            bookings = await BookingRepository(session).list_by_customer(actor.id)
            return [(b, await rides.get_by_id(b.ride_id)) for b in bookings]

        return await self.uow.read(_op)

    async def seats_held(self, ride_id: int) -> int:
        """Seats held by pending and confirmed bookings of *ride_id*."""

        async def _op(session: AsyncSession) -> int:
            return await BookingRepository(session).seats_held(ride_id)

        return await self.uow.read(_op)

