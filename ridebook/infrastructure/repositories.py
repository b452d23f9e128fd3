"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Repositories flush but never commit; the
service layer owns transaction boundaries.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    AppSettingModel,
    BookingModel,
    KycVerificationModel,
    RatingModel,
    RideModel,
    RideRequestModel,
    UserModel,
)
from ridebook.domain.enums import BookingStatus, KycStatus, RideRequestStatus, RideStatus


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)


class KycRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, kyc: KycVerificationModel) -> KycVerificationModel:
        self.session.add(kyc)
        await self.session.flush()
        return kyc

    async def get_by_id(self, kyc_id: int) -> Optional[KycVerificationModel]:
        return await self.session.get(KycVerificationModel, kyc_id)

    async def get_for_update(self, kyc_id: int) -> Optional[KycVerificationModel]:
        result = await self.session.execute(
            select(KycVerificationModel)
            .where(KycVerificationModel.id == kyc_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int) -> list[KycVerificationModel]:
        result = await self.session.execute(
            select(KycVerificationModel)
            .where(KycVerificationModel.user_id == user_id)
            .order_by(KycVerificationModel.id.desc())
        )
        return list(result.scalars().all())

    async def latest_status(self, user_id: int) -> Optional[KycStatus]:
        result = await self.session.execute(
            select(KycVerificationModel.status)
            .where(KycVerificationModel.user_id == user_id)
            .order_by(KycVerificationModel.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_pending(self) -> list[KycVerificationModel]:
        result = await self.session.execute(
            select(KycVerificationModel)
            .where(KycVerificationModel.status == KycStatus.PENDING)
            .order_by(KycVerificationModel.created_at)
        )
        return list(result.scalars().all())


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, ride: RideModel) -> RideModel:
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: int) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def get_for_update(self, ride_id: int) -> Optional[RideModel]:
        """SELECT ... FOR UPDATE; always re-reads the row, revision included."""
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.id == ride_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        from_location: str,
        to_location: str,
        *,
        departing_after: datetime,
        departing_before: Optional[datetime] = None,
    ) -> list[RideModel]:
        query = (
            select(RideModel)
            .where(RideModel.status == RideStatus.ACTIVE)
            .where(RideModel.available_seats > 0)
            .where(RideModel.departure_at > departing_after)
            .where(RideModel.from_location.ilike(f"%{from_location}%"))
            .where(RideModel.to_location.ilike(f"%{to_location}%"))
            .order_by(RideModel.departure_at)
        )
        if departing_before is not None:
            query = query.where(RideModel.departure_at < departing_before)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def upcoming(self, departing_after: datetime, limit: int) -> list[RideModel]:
        """Soonest active rides that still have seats."""
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.status == RideStatus.ACTIVE)
            .where(RideModel.available_seats > 0)
            .where(RideModel.departure_at > departing_after)
            .order_by(RideModel.departure_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_by_driver(self, driver_id: int) -> list[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(RideModel.driver_id == driver_id)
            .order_by(RideModel.departure_at.desc())
        )
        return list(result.scalars().all())

    async def list_active_departed_before(self, cutoff: datetime) -> list[int]:
        result = await self.session.execute(
            select(RideModel.id)
            .where(RideModel.status == RideStatus.ACTIVE)
            .where(RideModel.departure_at < cutoff)
            .order_by(RideModel.departure_at)
        )
        return list(result.scalars().all())


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: int) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def list_by_ride(
        self,
        ride_id: int,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> list[BookingModel]:
        query = (
            select(BookingModel)
            .where(BookingModel.ride_id == ride_id)
            .order_by(BookingModel.id)
            .execution_options(populate_existing=True)
        )
        if statuses is not None:
            query = query.where(BookingModel.status.in_(list(statuses)))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_by_customer(self, customer_id: int) -> list[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.customer_id == customer_id)
            .order_by(BookingModel.id.desc())
        )
        return list(result.scalars().all())

    async def count_non_cancelled_by_customer(self, customer_id: int) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(BookingModel)
            .where(BookingModel.customer_id == customer_id)
            .where(BookingModel.status != BookingStatus.CANCELLED)
        )
        return result.scalar() or 0

    async def find_non_cancelled(
        self, customer_id: int, ride_id: int
    ) -> Optional[BookingModel]:
        result = await self.session.execute(
            select(BookingModel)
            .where(BookingModel.customer_id == customer_id)
            .where(BookingModel.ride_id == ride_id)
            .where(BookingModel.status != BookingStatus.CANCELLED)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def seats_held(self, ride_id: int) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.sum(BookingModel.number_of_seats), 0))
            .where(BookingModel.ride_id == ride_id)
            .where(
                BookingModel.status.in_(
                    [BookingStatus.PENDING, BookingStatus.CONFIRMED]
                )
            )
        )
        return int(result.scalar() or 0)


class RatingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, rating: RatingModel) -> RatingModel:
        self.session.add(rating)
        await self.session.flush()
        return rating

    async def get_by_booking_and_rater(
        self, booking_id: int, from_user_id: int
    ) -> Optional[RatingModel]:
        result = await self.session.execute(
            select(RatingModel)
            .where(RatingModel.booking_id == booking_id)
            .where(RatingModel.from_user_id == from_user_id)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, to_user_id: int) -> list[RatingModel]:
        result = await self.session.execute(
            select(RatingModel)
            .where(RatingModel.to_user_id == to_user_id)
            .order_by(RatingModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_for_booking(self, booking_id: int) -> list[RatingModel]:
        result = await self.session.execute(
            select(RatingModel)
            .where(RatingModel.booking_id == booking_id)
            .order_by(RatingModel.id)
        )
        return list(result.scalars().all())

    async def average_for_user(self, to_user_id: int) -> float:
        result = await self.session.execute(
            select(func.avg(RatingModel.rating)).where(
                RatingModel.to_user_id == to_user_id
            )
        )
        value = result.scalar()
        return round(float(value), 2) if value is not None else 0.0


class SettingsRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, key: str) -> Optional[Any]:
        result = await self.session.execute(
            select(AppSettingModel.value).where(AppSettingModel.key == key)
        )
        return result.scalar_one_or_none()

    async def upsert(self, key: str, value: Any) -> AppSettingModel:
        result = await self.session.execute(
            select(AppSettingModel).where(AppSettingModel.key == key)
        )
        setting = result.scalar_one_or_none()
        if setting is None:
            setting = AppSettingModel(key=key, value=value)
            self.session.add(setting)
        else:
            setting.value = value
        await self.session.flush()
        return setting


class RideRequestRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, request: RideRequestModel) -> RideRequestModel:
        self.session.add(request)
        await self.session.flush()
        return request

    async def get_by_id(self, request_id: int) -> Optional[RideRequestModel]:
        return await self.session.get(RideRequestModel, request_id)

    async def list_by_user(self, user_id: int) -> list[RideRequestModel]:
        result = await self.session.execute(
            select(RideRequestModel)
            .where(RideRequestModel.user_id == user_id)
            .order_by(RideRequestModel.id.desc())
        )
        return list(result.scalars().all())

    async def list_all(
        self, status: Optional[RideRequestStatus] = None
    ) -> list[RideRequestModel]:
        query = select(RideRequestModel).order_by(RideRequestModel.id.desc())
        if status is not None:
            query = query.where(RideRequestModel.status == status)
        result = await self.session.execute(query)
        return list(result.scalars().all())
