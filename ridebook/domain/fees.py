"""
Booking fee resolution.

The platform fee is a separate charge on top of the ride fare.  It is read
from the settings store exactly once, when a booking is created, and the
resolved amount is frozen on the booking row.  Changing the global setting
later never touches existing bookings.

    total_amount = ride.price + booking.booking_fee
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .errors import ValidationError

BOOKING_FEE_KEY = "booking_fee"


@dataclass(frozen=True)
class BookingFeeSetting:
    enabled: bool
    amount: int

    def __post_init__(self):
        if self.amount < 0:
            raise ValidationError("Booking fee amount must not be negative")

    @classmethod
    def from_value(cls, value: Mapping[str, Any]) -> "BookingFeeSetting":
        """Build from the JSON value stored under ``booking_fee``."""
        return cls(
            enabled=bool(value.get("enabled", False)),
            amount=int(value.get("amount") or 0),
        )

    def to_value(self) -> dict:
        return {"enabled": self.enabled, "amount": self.amount}


def resolve_booking_fee(setting: BookingFeeSetting) -> int:
    """Fee to freeze on a new booking: the amount if enabled, else 0."""
    return setting.amount if setting.enabled else 0


def total_amount(ride_price: int, booking_fee: int) -> int:
    return ride_price + booking_fee
