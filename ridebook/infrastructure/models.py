"""
SQLAlchemy ORM models  (maps to PostgreSQL).

Tables
------
* ``users``              -- customers, drivers and admins
* ``kyc_verifications``  -- identity / vehicle document submissions
* ``rides``              -- one-way, full-vehicle trips published by drivers
* ``bookings``           -- a customer's reservation of a ride
* ``ratings``            -- one-directional ratings, one per (booking, rater)
* ``app_settings``       -- JSON key/value platform settings (booking fee)
* ``ride_requests``      -- routes customers asked for when no ride matched

Concurrency
-----------
``rides.revision`` is the mapper's version counter: every UPDATE of a ride
row is issued as ``... WHERE id = :id AND revision = :old`` and bumps it, so
two transactions that read the same revision cannot both write the row.

Indexes
-------
* Partial unique index on ``bookings (customer_id, ride_id)`` for
  non-cancelled rows backs the one-active-booking-per-ride rule.
* Unique ``ratings (booking_id, from_user_id)`` backs one rating per rater.
* **B-Tree** on status / foreign-key columns used by the services.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)

from .database import Base
from ridebook.domain.clock import utc_now
from ridebook.domain.enums import (
    BookingStatus,
    KycStatus,
    RideRequestStatus,
    RideStatus,
    UserRole,
)


def _enum(enum_cls, name: str) -> Enum:
    """Persist enum *values* (``"active"``), not member names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    full_name = Column(String(120), nullable=False)
    mobile = Column(String(20), unique=True, nullable=False)
    role = Column(_enum(UserRole, "userrole"), default=UserRole.CUSTOMER, nullable=False)
    is_kyc_verified = Column(Boolean, default=False, nullable=False)
    is_suspended = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class KycVerificationModel(Base):
    __tablename__ = "kyc_verifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    document_type = Column(String(50), nullable=False)
    document_id = Column(String(100), nullable=False)
    document_url = Column(String(500), nullable=False)
    vehicle_type = Column(String(50), nullable=True)
    vehicle_number = Column(String(30), nullable=True)
    driving_license_url = Column(String(500), nullable=True)
    selfie_url = Column(String(500), nullable=True)
    status = Column(_enum(KycStatus, "kycstatus"), default=KycStatus.PENDING, nullable=False)
    remarks = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("idx_kyc_user", "user_id"),
        Index("idx_kyc_status", "status"),
    )


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    from_location = Column(String(200), nullable=False)
    to_location = Column(String(200), nullable=False)
    departure_at = Column(DateTime(timezone=True), nullable=False)
    price = Column(Integer, nullable=False)
    vehicle_type = Column(String(50), nullable=False)
    vehicle_number = Column(String(30), nullable=False)
    description = Column(Text, nullable=True)
    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)
    status = Column(_enum(RideStatus, "ridestatus"), default=RideStatus.ACTIVE, nullable=False)
    cancellation_reason = Column(Text, nullable=True)
    revision = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __mapper_args__ = {"version_id_col": revision}

    __table_args__ = (
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_status_departure", "status", "departure_at"),
        CheckConstraint(
            "available_seats >= 0 AND available_seats <= total_seats",
            name="ck_rides_available_seats",
        ),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(Integer, ForeignKey("rides.id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    number_of_seats = Column(Integer, default=1, nullable=False)
    status = Column(
        _enum(BookingStatus, "bookingstatus"),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    booking_fee = Column(Integer, default=0, nullable=False)
    is_paid = Column(Boolean, default=False, nullable=False)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("idx_bookings_ride", "ride_id"),
        Index("idx_bookings_customer", "customer_id"),
        Index(
            "uq_bookings_active_customer_ride",
            "customer_id",
            "ride_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
    )


class RatingModel(Base):
    __tablename__ = "ratings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=False)
    from_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    to_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    review = Column(String(150), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        UniqueConstraint("booking_id", "from_user_id", name="uq_ratings_booking_rater"),
        Index("idx_ratings_to_user", "to_user_id"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
    )


class AppSettingModel(Base):
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )


class RideRequestModel(Base):
    __tablename__ = "ride_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    from_location = Column(String(200), nullable=False)
    to_location = Column(String(200), nullable=False)
    preferred_date = Column(Date, nullable=False)
    preferred_time = Column(String(20), nullable=True)
    number_of_passengers = Column(Integer, default=1, nullable=False)
    max_budget = Column(Integer, nullable=True)
    contact_number = Column(String(20), nullable=False)
    additional_notes = Column(Text, nullable=True)
    status = Column(
        _enum(RideRequestStatus, "riderequeststatus"),
        default=RideRequestStatus.PENDING,
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("idx_ride_requests_user", "user_id"),
        Index("idx_ride_requests_status", "status"),
    )
