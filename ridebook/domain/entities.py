"""
Domain values shared by the services.

Patterns used
-------------
- ``Actor`` is the explicit identity value passed into every orchestrator
  call; core logic never reads the current user from request state.
- ``ensure_transition`` applies a centralised transition table
  (see ``enums``) and rejects anything the table does not list.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, TypeVar

from .enums import UserRole
from .errors import InvalidTransition

S = TypeVar("S", bound=Enum)


@dataclass(frozen=True)
class Actor:
    id: int
    role: UserRole
    is_kyc_verified: bool = False
    is_suspended: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_driver(self) -> bool:
        return self.role == UserRole.DRIVER

    @property
    def is_customer(self) -> bool:
        return self.role == UserRole.CUSTOMER


def ensure_transition(
    transitions: Mapping[S, set[S]], current: S, target: S, entity: str
) -> None:
    """Raise ``InvalidTransition`` unless *current* -> *target* is in the table."""
    if target not in transitions.get(current, set()):
        raise InvalidTransition(
            f"Cannot move {entity} from {current.value} to {target.value}"
        )
