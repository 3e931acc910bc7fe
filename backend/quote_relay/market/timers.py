"""Cancellable asyncio timers.

Each timer owns at most one pending firing. Re-arming cancels the pending
firing first, and cancelling an idle timer is a no-op, so callers never
need to check state before calling either.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class Timer:
    """One-shot timer that runs an async callback after ``delay`` seconds."""

    def __init__(self, name: str, delay: float, callback: Callback) -> None:
        self.name = name
        self.delay = delay
        self._callback = callback
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        """True while a firing is scheduled and has not started yet."""
        return self._task is not None and not self._task.done()

    def schedule(self, delay: float | None = None) -> None:
        """(Re)arm the timer, replacing any pending firing."""
        self.cancel()
        wait = self.delay if delay is None else delay
        self._task = asyncio.create_task(self._run(wait), name=f"timer-{self.name}")

    def schedule_if_idle(self, delay: float | None = None) -> bool:
        """Arm the timer unless a firing is already pending. Returns True if armed."""
        if self.pending:
            return False
        self.schedule(delay)
        return True

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, wait: float) -> None:
        await asyncio.sleep(wait)
        # Detach before firing so the callback may re-arm this timer.
        self._task = None
        try:
            await self._callback()
        except Exception:
            logger.exception("Timer %s callback failed", self.name)


class PeriodicTask:
    """Runs an async callback every ``interval`` seconds until stopped.

    The first run happens one interval after start(). Failures are logged
    and the schedule continues.
    """

    def __init__(self, name: str, interval: float, callback: Callback) -> None:
        self.name = name
        self.interval = interval
        self._callback = callback
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> bool:
        """Start the schedule. No-op (returns False) if already running."""
        if self.running:
            return False
        self._task = asyncio.create_task(self._run_loop(), name=f"periodic-{self.name}")
        return True

    def stop(self) -> bool:
        """Stop the schedule. No-op (returns False) if not running."""
        if not self.running:
            self._task = None
            return False
        self._task.cancel()
        self._task = None
        return True

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self._callback()
            except Exception:
                logger.exception("Periodic task %s failed", self.name)
