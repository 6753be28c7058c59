"""Overdue scheduler.

A small polling loop that, on every tick:
- takes one authoritative "now",
- runs the overdue sweep with it,
- logs the tasks it moved back to Pending.

The loop never reaches into presentation code; whatever renders tasks simply
reads the store again.
"""

import asyncio
import threading
from datetime import datetime
from typing import Callable

import structlog

from workflow_manager.lifecycle import TaskLifecycle
from workflow_manager.models import utc, utc_now

logger = structlog.get_logger()

DEFAULT_INTERVAL_SECONDS = 5.0


def sweep_once(lifecycle: TaskLifecycle, clock: Callable[[], datetime] = utc_now) -> list[int]:
    """Run one sweep, logging instead of raising so a ticker survives bad ticks."""
    now = utc(clock())
    try:
        changed = lifecycle.overdue_sweep(now)
    except Exception:
        logger.exception("Overdue sweep failed", now=now.isoformat())
        return []
    if changed:
        logger.info("Overdue tasks reset to Pending", task_ids=changed, now=now.isoformat())
    return changed


async def run_overdue_scheduler(
    lifecycle: TaskLifecycle,
    *,
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    clock: Callable[[], datetime] = utc_now,
) -> None:
    """Sweep for overdue tasks every ``interval_seconds`` until cancelled.

    The sweep itself is synchronous and short; it runs in a worker thread so a
    large store does not stall the event loop. To stop the scheduler, cancel
    the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    logger.info("Overdue scheduler started", interval=sleep_s)
    try:
        while True:
            await asyncio.to_thread(sweep_once, lifecycle, clock)
            await asyncio.sleep(sleep_s)
    finally:
        logger.info("Overdue scheduler stopped")


class OverdueTicker:
    """Thread-backed variant of the scheduler for synchronous hosts."""

    def __init__(
        self,
        lifecycle: TaskLifecycle,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.lifecycle = lifecycle
        self.interval_seconds = max(0.01, float(interval_seconds))
        self.clock = clock
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="overdue-ticker", daemon=True)
        self._thread.start()
        logger.info("Overdue ticker started", interval=self.interval_seconds)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Overdue ticker stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            sweep_once(self.lifecycle, self.clock)
            self._stop.wait(self.interval_seconds)
