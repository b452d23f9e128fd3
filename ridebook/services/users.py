"""User lookup for the identity collaborator, plus admin account controls."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.domain.entities import Actor
from ridebook.domain.enums import UserRole
from ridebook.domain.errors import Forbidden, NotFound
from ridebook.infrastructure.models import UserModel
from ridebook.infrastructure.repositories import UserRepository

from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def to_actor(user: UserModel) -> Actor:
    return Actor(
        id=user.id,
        role=UserRole(user.role),
        is_kyc_verified=bool(user.is_kyc_verified),
        is_suspended=bool(user.is_suspended),
    )


class UserService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def load_actor(self, user_id: int) -> Optional[Actor]:
        async def _op(session: AsyncSession) -> Optional[Actor]:
            user = await UserRepository(session).get_by_id(user_id)
            return to_actor(user) if user else None

        return await self.uow.read(_op)

    async def set_suspended(
        self, actor: Actor, user_id: int, suspended: bool
    ) -> UserModel:
        if not actor.is_admin:
            raise Forbidden("Only admins can suspend accounts")
        if user_id == actor.id:
            raise Forbidden("Admins cannot suspend themselves")

        async def _op(session: AsyncSession) -> UserModel:
            user = await UserRepository(session).get_by_id(user_id)
            if not user:
                raise NotFound(f"User {user_id} not found")
            user.is_suspended = suspended
            await session.flush()
            return user

        user = await self.uow.run(_op, name="set_suspended")
        logger.info("User %d suspended=%s by admin %d", user_id, suspended, actor.id)
        return user
