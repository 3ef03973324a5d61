"""Background sweeper removing expired sessions from the store."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime
from functools import lru_cache

import structlog

from sessionguard.config import get_settings
from sessionguard.core.expiry import ExpiryPolicy
from sessionguard.core.sessions import SessionStore
from sessionguard.services.session_service import get_expiry_policy, get_session_store

logger = structlog.get_logger(__name__)


class SessionReaper:
    """Periodically evict sessions that breached either expiry check.

    Eviction only bounds memory; validation enforces expiry on every call.
    """

    def __init__(
        self,
        store: SessionStore,
        policy: ExpiryPolicy,
        interval_seconds: float,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._policy = policy
        self._interval_seconds = interval_seconds
        self._now = now or (lambda: datetime.now(UTC))
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Return True while the background loop is scheduled."""
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """Run one sweep and return the number of sessions removed."""
        now = self._now()
        removed = 0
        for record in self._store.snapshot():
            try:
                if not self._policy.is_expired(record, now):
                    continue
                if self._store.remove(record.session_id):
                    removed += 1
            except Exception:
                logger.exception("reaper_entry_failed", session_id=record.session_id)
        logger.info("reaper_pass_completed", removed=removed)
        return removed

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        """Sleep, sweep, repeat; a failed pass never ends the loop."""
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                self.run_once()
            except Exception:
                logger.exception("reaper_pass_failed")


@lru_cache
def get_session_reaper() -> SessionReaper:
    """Create and cache the reaper bound to the process-wide store."""
    settings = get_settings()
    return SessionReaper(
        store=get_session_store(),
        policy=get_expiry_policy(),
        interval_seconds=settings.sessions.reaper_interval_seconds,
    )
