"""Background sweep of expired shares and sessions."""

from __future__ import annotations

import asyncio
import contextlib
import sqlite3
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from shared.auth.session_store import AuthSessionStore
    from shared.clock import Clock
    from shared.dal.share_repository import ShareRepository
    from vault.shares.lifecycle import LifecycleCoordinator

DEFAULT_REAPER_INTERVAL_SECONDS = 300  # 5 minutes

logger = structlog.get_logger()


@dataclass(frozen=True)
class SweepReport:
    shares_removed: int = 0
    shares_failed: int = 0
    sessions_removed: int = 0


class Reaper:
    """Delete shares past expires_at and expired sessions on a fixed interval.

    View limits and one-shot teardown are not its concern; the access gate
    enforces those on every access. Ticks never overlap: the loop awaits each
    tick, and tick() itself holds a lock so a manual call cannot race the loop.
    Call start() on app startup and stop() on shutdown.
    """

    def __init__(
        self,
        shares: ShareRepository,
        coordinator: LifecycleCoordinator,
        sessions: AuthSessionStore,
        clock: Clock,
        interval_seconds: float = DEFAULT_REAPER_INTERVAL_SECONDS,
    ) -> None:
        self._shares = shares
        self._coordinator = coordinator
        self._sessions = sessions
        self._clock = clock
        self._interval = interval_seconds
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> SweepReport:
        """Run one sweep. Per-item failures are logged and the sweep continues."""
        async with self._lock:
            now = self._clock.now()
            removed = 0
            failed = 0
            for share in await self._shares.list_expired(now):
                try:
                    if await self._coordinator.remove(share):
                        removed += 1
                except (sqlite3.Error, OSError):
                    failed += 1
                    logger.exception("failed to reap share", share_id=share.share_id)

            sessions_removed = 0
            try:
                sessions_removed = await self._sessions.sweep()
            except sqlite3.Error:
                logger.exception("failed to sweep expired sessions")

        if removed:
            logger.info("cleaned up expired shares", count=removed)
        return SweepReport(shares_removed=removed, shares_failed=failed, sessions_removed=sessions_removed)

    def start(self) -> None:
        """Start the periodic sweep task."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the periodic sweep task."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("reaper tick failed")
