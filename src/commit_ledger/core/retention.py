"""Retention sweeper.

Commits older than the configured window are pruned on a fixed interval.
The sweeper is a cancellable asyncio job owned by the application lifespan:
``start()`` schedules it, ``stop()`` cancels it and waits for it to finish.
Tests call ``sweep()`` or ``run_once()`` directly instead of waiting on the
wall clock.

A failed sweep is logged and the loop carries on; the next interval retries.
The delete runs in a worker thread so request handling never waits on it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from commit_ledger.db import commits_repo
from commit_ledger.db.errors import DatabaseError

logger = logging.getLogger(__name__)


class RetentionSweeper:
    """
    Periodically deletes commits older than ``window``.

    Attributes:
        window: Maximum age kept in the store.
        interval: Delay between two sweeps.
        column: ``"createdAt"`` or ``"updatedAt"``; the timestamp compared
            against the cutoff.
    """

    def __init__(
        self,
        window: timedelta,
        interval: timedelta = timedelta(hours=24),
        *,
        column: str = "createdAt",
    ) -> None:
        if window <= timedelta(0):
            raise ValueError("retention window must be positive")
        if interval <= timedelta(0):
            raise ValueError("sweep interval must be positive")
        if column not in commits_repo.RETENTION_COLUMNS:
            raise ValueError(f"unknown retention column {column!r}")
        self.window = window
        self.interval = interval
        self.column = column
        self._task: asyncio.Task[None] | None = None

    def cutoff(self, now: datetime | None = None) -> datetime:
        """Instant before which commits are pruned."""
        return (now or datetime.now(UTC)) - self.window

    def sweep(self, now: datetime | None = None) -> int:
        """Delete expired commits and return how many were removed.

        Raises:
            DatabaseWriteError: On storage failure.
        """
        cutoff = self.cutoff(now)
        deleted = commits_repo.delete_older_than(cutoff, on=self.column)
        logger.info(
            f"Retention sweep removed {deleted} commit(s) with {self.column} < {cutoff.isoformat()}"
        )
        return deleted

    def run_once(self, now: datetime | None = None) -> int:
        """Sweep, logging storage failures instead of raising them.

        Returns:
            Rows deleted, or 0 when the sweep failed.
        """
        try:
            return self.sweep(now)
        except DatabaseError:
            logger.exception("Retention sweep failed; retrying at next interval")
            return 0

    @property
    def running(self) -> bool:
        """True while the background job is scheduled."""
        return self._task is not None and not self._task.done()

    async def _loop(self) -> None:
        delay = self.interval.total_seconds()
        while True:
            await asyncio.sleep(delay)
            await asyncio.to_thread(self.run_once)

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._loop(), name="commit-retention-sweeper"
        )
        logger.info(
            f"Retention sweeper started (window={self.window}, interval={self.interval}, "
            f"column={self.column})"
        )

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to unwind."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Retention sweeper stopped")
