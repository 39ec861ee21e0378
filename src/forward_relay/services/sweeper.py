"""Periodic housekeeping for the relay's in-memory state.

The `CleanupSweeper` runs as a background task next to the web app. Each
cycle it purges expired idempotency records, drops idle rate windows, and
gives the `PendingReconciler` a chance to resolve timed-out transactions.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Final

from forward_relay.services.chain import ChainError
from forward_relay.services.rate_limit import RateLimiter
from forward_relay.services.reconcile import PendingReconciler
from forward_relay.services.replay import IdempotencyGuard

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS: Final[float] = 60.0


class CleanupSweeper:
    """Background task that sweeps caches on a fixed interval."""

    def __init__(
        self,
        guard: IdempotencyGuard,
        limiter: RateLimiter,
        reconciler: PendingReconciler | None = None,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self.guard = guard
        self.limiter = limiter
        self.reconciler = reconciler
        self.interval = max(0.1, float(interval_seconds))
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the sweep loop if it is not already running."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Signal the loop to exit and wait for it."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def sweep_once(self) -> None:
        records = await asyncio.to_thread(self.guard.sweep)
        windows = self.limiter.sweep()
        resolved = expired = 0
        if self.reconciler is not None:
            resolved = await self.reconciler.reconcile()
            expired = self.reconciler.purge_expired()
        logger.debug(
            "Sweep removed %d records, %d rate windows; reconciled %d, forgot %d",
            records,
            windows,
            resolved,
            expired,
        )

    async def _run(self) -> None:
        while not self._stopping.is_set():
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
            if self._stopping.is_set():
                return
            try:
                await self.sweep_once()
            except ChainError as e:
                logger.warning("CleanupSweeper encountered chain error: %s", e)
            except (OSError, ValueError, KeyError) as e:
                logger.error("CleanupSweeper failed: %s", e, exc_info=True)
