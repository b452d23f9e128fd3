"""
KYC gate -- pure predicates, no I/O.

* Drivers must be KYC-verified to publish a ride.
* Customers may make exactly one booking while unverified; after that every
  new booking needs an approved KYC.

A refusal always says *why*: the user never submitted documents, the
submission is still under review, or it was rejected.  Callers turn a
refusal into ``KycRequired`` (or ``Forbidden`` for the wrong role).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .entities import Actor
from .enums import KycGateReason, KycStatus, UserRole


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: Optional[KycGateReason] = None
    wrong_role: bool = False

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = GateDecision(allowed=True)


def kyc_reason(latest_status: Optional[KycStatus]) -> KycGateReason:
    """Map the user's latest KYC submission status to a refusal reason."""
    if latest_status is None:
        return KycGateReason.NOT_SUBMITTED
    if latest_status == KycStatus.REJECTED:
        return KycGateReason.REJECTED
    # Pending, or approved but the user flag not yet applied
    return KycGateReason.PENDING


def can_publish(
    actor: Actor, latest_kyc_status: Optional[KycStatus] = None
) -> GateDecision:
    if actor.role != UserRole.DRIVER:
        return GateDecision(allowed=False, wrong_role=True)
    if actor.is_kyc_verified:
        return ALLOW
    return GateDecision(allowed=False, reason=kyc_reason(latest_kyc_status))


def can_book(
    actor: Actor,
    customer_booking_count: int,
    latest_kyc_status: Optional[KycStatus] = None,
) -> GateDecision:
    """*customer_booking_count* counts the customer's non-cancelled bookings."""
    if actor.role != UserRole.CUSTOMER:
        return GateDecision(allowed=False, wrong_role=True)
    if actor.is_kyc_verified or customer_booking_count == 0:
        return ALLOW
    return GateDecision(allowed=False, reason=kyc_reason(latest_kyc_status))
