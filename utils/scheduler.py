#!/usr/bin/env python3
"""Cron-driven scheduling with single-flight semantics.

A trigger that fires while the previous run is still active is dropped, not
queued. The job runs in a worker thread so the timer keeps ticking (and
dropping) while a long run sleeps through its review wait.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from croniter import croniter

from utils.errors import ConfigurationError
from utils.metrics import incr

logger = logging.getLogger(__name__)


class CronScheduler:
    """Invoke ``job`` on every fire time of a cron expression, one at a time."""

    def __init__(
        self,
        expression: str,
        job: Callable[[], Any],
        *,
        name: str = "activity-run",
        now: Optional[Callable[[], datetime]] = None,
    ):
        if not croniter.is_valid(expression):
            raise ConfigurationError(f"Invalid cron schedule: {expression!r}", code="CRON")
        self.expression = expression
        self.job = job
        self.name = name
        self.now = now or (lambda: datetime.now(timezone.utc))
        self.dropped = 0
        self._running = threading.Lock()
        self._worker: Optional[threading.Thread] = None

    @property
    def active(self) -> bool:
        return self._running.locked()

    def next_fire_time(self, after: Optional[datetime] = None) -> datetime:
        return croniter(self.expression, after or self.now()).get_next(datetime)

    def trigger(self) -> bool:
        """Start one run unless one is active.

        Returns:
            True if a run was started, False if the trigger was dropped
        """
        if not self._running.acquire(blocking=False):
            self.dropped += 1
            incr("scheduler.dropped", job=self.name)
            logger.warning(f"Skipping scheduled {self.name}: previous run still in progress")
            return False
        self._worker = threading.Thread(target=self._execute, name=self.name, daemon=True)
        self._worker.start()
        return True

    def _execute(self) -> None:
        try:
            result = self.job()
            summary = result.describe() if hasattr(result, "describe") else result
            logger.info(f"Scheduled {self.name} finished: {summary}")
        except Exception:  # noqa: BLE001
            logger.exception(f"Scheduled {self.name} raised")
        finally:
            self._running.release()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the active run, if any, to finish."""
        worker = self._worker
        if worker is not None:
            worker.join(timeout)

    def run_forever(self, stop_event: Optional[threading.Event] = None) -> None:
        """Fire on schedule until ``stop_event`` is set."""
        stop = stop_event or threading.Event()
        logger.info(f"Scheduler started with cron schedule: {self.expression}")
        fire_at = self.next_fire_time()
        logger.debug(f"Next {self.name} at {fire_at.isoformat()}")
        while not stop.is_set():
            delay = (fire_at - self.now()).total_seconds()
            if delay > 0:
                if stop.wait(delay):
                    break
                # waits can wake early; re-check the clock
                continue
            self.trigger()
            # strictly after the last fire time, even if the clock stepped back
            fire_at = self.next_fire_time(after=max(fire_at, self.now()))
            logger.debug(f"Next {self.name} at {fire_at.isoformat()}")
        logger.info("Scheduler stopped")
