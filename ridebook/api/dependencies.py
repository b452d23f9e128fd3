"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends, Header

from ridebook.domain.entities import Actor
from ridebook.domain.errors import AuthRequired, Forbidden
from ridebook.services.orchestrator import (
    LifecycleOrchestrator,
    get_default_orchestrator,
)


def get_orchestrator() -> LifecycleOrchestrator:
    """Return the process-wide orchestrator; overridden in tests."""
    return get_default_orchestrator()


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> Actor:
    """Resolve the ``X-User-Id`` header into the acting user."""
    if not x_user_id or not x_user_id.strip().isdigit():
        raise AuthRequired("Authentication required")
    actor = await orchestrator.users.load_actor(int(x_user_id))
    if actor is None:
        raise AuthRequired("Authentication required")
    if actor.is_suspended:
        raise Forbidden("Your account has been suspended")
    return actor
