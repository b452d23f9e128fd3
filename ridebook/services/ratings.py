"""
Rating Service

Handles rating submission and on-read average computation.

A rating belongs to a completed booking and goes one way between the two
people on it: customer -> driver or driver -> customer.  Each of them rates
a booking at most once.  The average is recomputed from the ledger on every
read rather than kept as a running total on the user row.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.domain.entities import Actor
from ridebook.domain.enums import BookingStatus
from ridebook.domain.errors import (
    DuplicateRating,
    Forbidden,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from ridebook.infrastructure.models import RatingModel
from ridebook.infrastructure.repositories import (
    BookingRepository,
    RatingRepository,
    RideRepository,
)

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5
MAX_REVIEW_LENGTH = 150


def validate_rating(rating: int, review: Optional[str]) -> None:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be a whole number")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}"
        )
    if review is not None and len(review) > MAX_REVIEW_LENGTH:
        raise ValidationError(
            f"Review must be at most {MAX_REVIEW_LENGTH} characters"
        )


class RatingService:
    """Service for managing ratings between customers and drivers."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def submit(
        self,
        actor: Actor,
        booking_id: int,
        to_user_id: int,
        rating: int,
        review: Optional[str] = None,
    ) -> RatingModel:
        """
        Submit a rating as *actor* for the other party of a booking.

        Validates:
        - The booking is completed
        - Rater and ratee are exactly the booking's customer and driver
        - The rater has not already rated this booking
        """
        validate_rating(rating, review)
        from_user_id = actor.id
        if from_user_id == to_user_id:
            raise ValidationError("Cannot rate yourself")

        async def _op(session: AsyncSession) -> RatingModel:
            booking = await BookingRepository(session).get_by_id(booking_id)
            if not booking:
                raise NotFound(f"Booking {booking_id} not found")
            ride = await RideRepository(session).get_by_id(booking.ride_id)
            if not ride:
                raise NotFound(f"Ride {booking.ride_id} not found")

            parties = {booking.customer_id, ride.driver_id}
            if from_user_id not in parties:
                raise Forbidden("You can only rate your own bookings")
            if to_user_id not in parties:
                raise ValidationError("Rated user was not part of this booking")
            if BookingStatus(booking.status) != BookingStatus.COMPLETED:
                raise InvalidTransition("Can only rate completed bookings")

            ratings = RatingRepository(session)
            if await ratings.get_by_booking_and_rater(booking_id, from_user_id):
                raise DuplicateRating("You have already rated this booking")
            try:
                return await ratings.create(
                    RatingModel(
                        booking_id=booking_id,
                        from_user_id=from_user_id,
                        to_user_id=to_user_id,
                        rating=rating,
                        review=review,
                    )
                )
            except IntegrityError as exc:
                raise DuplicateRating("You have already rated this booking") from exc

        created = await self.uow.run(_op, name="submit_rating")
        logger.info(
            "Rating %d: user %d rated user %d %d/5 for booking %d",
            created.id,
            from_user_id,
            to_user_id,
            rating,
            booking_id,
        )
        return created

    async def average_rating(self, user_id: int) -> float:
        """Unweighted mean of every rating received by *user_id* (0.0 if none)."""

        async def _op(session: AsyncSession) -> float:
            return await RatingRepository(session).average_for_user(user_id)

        return await self.uow.read(_op)

    async def list_for_user(self, user_id: int) -> list[RatingModel]:
        async def _op(session: AsyncSession) -> list[RatingModel]:
            return await RatingRepository(session).list_for_user(user_id)

        return await self.uow.read(_op)

    async def list_for_booking(self, booking_id: int, actor: Actor) -> list[RatingModel]:
        """Ratings left on a booking; visible to its customer, its driver and admins."""

        async def _op(session: AsyncSession) -> list[RatingModel]:
            booking = await BookingRepository(session).get_by_id(booking_id)
            if not booking:
                raise NotFound(f"Booking {booking_id} not found")
            ride = await RideRepository(session).get_by_id(booking.ride_id)
            if not actor.is_admin and actor.id not in (booking.customer_id, ride.driver_id):
                raise Forbidden("You can only view ratings of your own bookings")
            return await RatingRepository(session).list_for_booking(booking_id)

        return await self.uow.read(_op)
