"""Pydantic request / response schemas for the REST API (camelCase on the wire)."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ridebook.domain.clock import to_ist
from ridebook.domain.enums import (
    BookingStatus,
    KycStatus,
    RideRequestStatus,
    RideStatus,
    UserRole,
)
from ridebook.domain.fees import total_amount
from ridebook.infrastructure.models import BookingModel, RideModel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Requests ──────────────────────────────────────────────────────────


class RidePublishRequest(CamelModel):
    from_location: str = Field(..., max_length=200)
    to_location: str = Field(..., max_length=200)
    departure_at: datetime = Field(
        ..., description="Departure instant; values without an offset are India time."
    )
    price: int
    total_seats: int
    vehicle_type: str = Field(..., max_length=50)
    vehicle_number: str = Field(..., max_length=30)
    description: Optional[str] = None


class RideUpdateRequest(CamelModel):
    """Partial edit; omitted fields keep their current value."""

    from_location: Optional[str] = Field(None, max_length=200)
    to_location: Optional[str] = Field(None, max_length=200)
    departure_at: Optional[datetime] = None
    price: Optional[int] = None
    total_seats: Optional[int] = None
    vehicle_type: Optional[str] = Field(None, max_length=50)
    vehicle_number: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = None


class RideCancelRequest(CamelModel):
    cancellation_reason: Optional[str] = None


class BookingCreateRequest(CamelModel):
    ride_id: int
    number_of_seats: int = 1


class BookingStatusRequest(CamelModel):
    status: BookingStatus
    reason: Optional[str] = None


class RatingCreateRequest(CamelModel):
    booking_id: int
    to_user_id: int
    rating: int
    review: Optional[str] = None


class RideRequestCreateRequest(CamelModel):
    from_location: str = Field(..., max_length=200)
    to_location: str = Field(..., max_length=200)
    preferred_date: date = Field(..., description="India-local date")
    preferred_time: Optional[str] = Field(None, max_length=20)
    number_of_passengers: int = 1
    max_budget: Optional[int] = None
    contact_number: str = Field(..., max_length=20)
    additional_notes: Optional[str] = None


class RideRequestStatusRequest(CamelModel):
    status: RideRequestStatus


class KycSubmitRequest(CamelModel):
    document_type: str
    document_id: str
    document_url: str = Field(..., description="URL returned by the upload service")
    vehicle_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    driving_license_url: Optional[str] = None
    selfie_url: Optional[str] = None


class KycReviewRequest(CamelModel):
    status: KycStatus
    remarks: Optional[str] = None


class BookingFeeUpdateRequest(CamelModel):
    enabled: bool
    amount: int


class UserSuspendRequest(CamelModel):
    is_suspended: bool


# ── Responses ─────────────────────────────────────────────────────────


class RideResponse(CamelModel):
    id: int
    driver_id: int
    from_location: str
    to_location: str
    departure_at: datetime
    price: int
    total_seats: int
    available_seats: int
    vehicle_type: str
    vehicle_number: str
    description: Optional[str] = None
    status: RideStatus
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("departure_at")
    @classmethod
    def _as_india_time(cls, value: datetime) -> datetime:
        return to_ist(value)


class BookingResponse(CamelModel):
    id: int
    ride_id: int
    customer_id: int
    number_of_seats: int
    status: BookingStatus
    booking_fee: int
    is_paid: bool
    cancellation_reason: Optional[str] = None
    total_amount: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def build(cls, booking: BookingModel, ride: Optional[RideModel]) -> "BookingResponse":
        dto = cls.model_validate(booking)
        if ride is not None:
            dto.total_amount = total_amount(ride.price, booking.booking_fee)
        return dto


class RideWithBookingsResponse(RideResponse):
    bookings: list[BookingResponse] = []

    @classmethod
    def build(
        cls, ride: RideModel, bookings: list[BookingModel]
    ) -> "RideWithBookingsResponse":
        dto = cls.model_validate(ride)
        dto.bookings = [BookingResponse.build(b, ride) for b in bookings]
        return dto


class RatingResponse(CamelModel):
    id: int
    booking_id: int
    from_user_id: int
    to_user_id: int
    rating: int
    review: Optional[str] = None
    created_at: Optional[datetime] = None


class UserRatingsResponse(CamelModel):
    user_id: int
    average_rating: float
    ratings: list[RatingResponse] = []


class KycResponse(CamelModel):
    id: int
    user_id: int
    document_type: str
    document_id: str
    document_url: str
    vehicle_type: Optional[str] = None
    vehicle_number: Optional[str] = None
    driving_license_url: Optional[str] = None
    selfie_url: Optional[str] = None
    status: KycStatus
    remarks: Optional[str] = None
    created_at: Optional[datetime] = None


class RideRequestResponse(CamelModel):
    id: int
    user_id: int
    from_location: str
    to_location: str
    preferred_date: date
    preferred_time: Optional[str] = None
    number_of_passengers: int
    max_budget: Optional[int] = None
    contact_number: str
    additional_notes: Optional[str] = None
    status: RideRequestStatus
    created_at: Optional[datetime] = None


class BookingFeeResponse(CamelModel):
    enabled: bool
    amount: int


class UserResponse(CamelModel):
    id: int
    full_name: str
    mobile: str
    role: UserRole
    is_kyc_verified: bool
    is_suspended: bool


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    kind: str
    message: str
    reason: Optional[str] = None
