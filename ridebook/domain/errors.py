"""
Domain error taxonomy.

Every error carries a stable machine-readable ``kind`` and the HTTP status
the API layer maps it to.  Services raise these; ``ridebook.api.app``
translates them into JSON responses in one place.
"""

from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    kind = "domain_error"
    status_code = 400

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason

    def to_dict(self) -> dict:
        body = {"kind": self.kind, "message": self.message}
        if self.reason is not None:
            body["reason"] = self.reason
        return body


class ValidationError(DomainError):
    kind = "validation_error"
    status_code = 400


class AuthRequired(DomainError):
    kind = "auth_required"
    status_code = 401


class Forbidden(DomainError):
    """Role or ownership mismatch."""

    kind = "forbidden"
    status_code = 403


class KycRequired(DomainError):
    """``reason`` is one of not-submitted, pending, rejected."""

    kind = "kyc_required"
    status_code = 403


class NotFound(DomainError):
    kind = "not_found"
    status_code = 404


class InvalidTransition(DomainError):
    kind = "invalid_transition"
    status_code = 409


class NoCapacity(DomainError):
    kind = "no_capacity"
    status_code = 409


class DuplicateBooking(DomainError):
    kind = "duplicate_booking"
    status_code = 409


class DuplicateRating(DomainError):
    kind = "duplicate_rating"
    status_code = 409


class Conflict(DomainError):
    """Retries exhausted on a contended transaction."""

    kind = "conflict"
    status_code = 409
