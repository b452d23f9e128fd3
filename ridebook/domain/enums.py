"""Domain enumerations and state-transition rules."""

import enum


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    DRIVER = "driver"
    ADMIN = "admin"


class RideStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class KycStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RideRequestStatus(str, enum.Enum):
    PENDING = "pending"
    RESPONDED = "responded"
    CLOSED = "closed"


class KycGateReason(str, enum.Enum):
    NOT_SUBMITTED = "not-submitted"
    PENDING = "pending"
    REJECTED = "rejected"


# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.ACTIVE: {RideStatus.CANCELLED, RideStatus.COMPLETED},
    RideStatus.CANCELLED: set(),
    RideStatus.COMPLETED: set(),
}

BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

KYC_TRANSITIONS: dict[KycStatus, set[KycStatus]] = {
    KycStatus.PENDING: {KycStatus.APPROVED, KycStatus.REJECTED},
    KycStatus.APPROVED: set(),
    KycStatus.REJECTED: set(),
}

RIDE_REQUEST_TRANSITIONS: dict[RideRequestStatus, set[RideRequestStatus]] = {
    RideRequestStatus.PENDING: {RideRequestStatus.RESPONDED, RideRequestStatus.CLOSED},
    RideRequestStatus.RESPONDED: {RideRequestStatus.PENDING, RideRequestStatus.CLOSED},
    RideRequestStatus.CLOSED: set(),
}

# Bookings in these states hold seats on their ride
SEAT_HOLDING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
