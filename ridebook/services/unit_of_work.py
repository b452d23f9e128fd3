"""
Transactional unit of work with bounded retry.

Every mutating service call runs its whole read-check-write sequence inside
one ``AsyncSession`` transaction.  The ride row is the lock domain: it is
read with ``SELECT ... FOR UPDATE`` and written with a revision
compare-and-swap, so a concurrent writer either waits for the lock
(PostgreSQL) or loses the CAS and gets ``StaleDataError``.

Conflicts are retried a small fixed number of times with exponential
backoff, then surfaced as ``Conflict``.  Domain errors propagate untouched
and roll the transaction back, so no call ever leaves a partial write.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from ridebook.config import settings
from ridebook.domain.errors import Conflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, OperationalError):
        return True
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
        return code in _RETRYABLE_SQLSTATES
    return False


class UnitOfWork:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        max_attempts: Optional[int] = None,
        backoff_base: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.tx_max_attempts
        self.backoff_base = (
            backoff_base
            if backoff_base is not None
            else settings.tx_backoff_base_seconds
        )

    async def run(
        self,
        operation: Callable[[AsyncSession], Awaitable[T]],
        *,
        name: str = "operation",
    ) -> T:
        """Run *operation* in a fresh transaction, retrying on conflicts."""
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        return await operation(session)
            except (StaleDataError, DBAPIError) as exc:
                if not is_retryable(exc):
                    raise
                if attempt == self.max_attempts:
                    logger.warning(
                        "%s: giving up after %d conflicting attempts", name, attempt
                    )
                    raise Conflict(
                        "The resource is being modified concurrently, please retry"
                    ) from exc
                delay = self.backoff_base * (2 ** (attempt - 1))
                logger.info(
                    "%s: transaction conflict (attempt %d/%d), retrying in %.3fs",
                    name,
                    attempt,
                    self.max_attempts,
                    delay,
                )
                await asyncio.sleep(delay)
        raise Conflict("The resource is being modified concurrently, please retry")

    async def read(
        self,
        operation: Callable[[AsyncSession], Awaitable[T]],
    ) -> T:
        """Run a read-only *operation*; no retry, nothing to commit."""
        async with self.session_factory() as session:
            return await operation(session)
