"""
Background Maintenance Worker
=============================

Runs every ``MAINTENANCE_INTERVAL_SECONDS`` (default 1 h).

Each cycle closes out active rides whose departure time has passed:
rides with a confirmed booking are completed, the rest are cancelled with
the standard expiry reason.  The work itself goes through the lifecycle
orchestrator, so it uses the same row locks, revision CAS and cascades as
a driver-initiated cancel or complete.

Concurrency safety
------------------
* **Redis distributed lock** keeps two API processes from sweeping at the
  same time.
* Each expired ride is its own transaction; a ride that changed state
  since the candidate scan is skipped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from redis.exceptions import RedisError

from ridebook.config import settings
from ridebook.infrastructure.locks import DistributedLock
from ridebook.infrastructure.redis_client import get_redis
from ridebook.services.orchestrator import (
    LifecycleOrchestrator,
    get_default_orchestrator,
)
from ridebook.services.rides import ExpiryReport

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_maintenance_loop(
    orchestrator: Optional[LifecycleOrchestrator] = None,
) -> None:
    global _task, _stop_event
    if not settings.maintenance_enabled:
        logger.info("Maintenance worker disabled")
        return
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop(orchestrator or get_default_orchestrator()))
    logger.info(
        "Maintenance worker started (interval=%ds)",
        settings.maintenance_interval_seconds,
    )


async def stop_maintenance_loop() -> None:
    global _task, _stop_event
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
        logger.info("Maintenance worker stopped")
    _task = None
    _stop_event = None


# ── Internals ─────────────────────────────────────────────────────────


async def _loop(orchestrator: LifecycleOrchestrator) -> None:
    """Periodic loop: run a maintenance cycle then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_maintenance_cycle(orchestrator)
        except Exception:
            logger.exception("Unhandled error in maintenance cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.maintenance_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass


async def run_maintenance_cycle(
    orchestrator: LifecycleOrchestrator,
    lock: Optional[DistributedLock] = None,
) -> Optional[ExpiryReport]:
    """Execute one cycle.  Returns ``None`` when another worker holds the lock."""
    if lock is None:
        lock = DistributedLock(await get_redis(), "ride_expiry", ttl_seconds=300)

    try:
        acquired = await lock.acquire()
    except RedisError:
        logger.warning("Redis unavailable, skipping maintenance cycle")
        return None
    if not acquired:
        logger.debug("Lock held by another worker, skipping cycle")
        return None

    try:
        report = await orchestrator.rides.expire_past_rides()
        if report.processed or report.skipped:
            logger.info(
                "Maintenance cycle: %d past ride(s), %d completed, %d cancelled, %d skipped",
                report.processed,
                report.completed,
                report.cancelled,
                report.skipped,
            )
        return report
    finally:
        await lock.release()
