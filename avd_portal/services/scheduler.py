from __future__ import annotations

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a recurring call. cancel() is idempotent."""

    def cancel(self) -> None:
        raise NotImplementedError

    @property
    def cancelled(self) -> bool:
        raise NotImplementedError


class Scheduler:
    """Strategy interface: lets the poller run under threads, or under a manual clock in tests."""

    def call_every(self, interval_seconds: float, fn: Callable[[], None]) -> ScheduledTask:
        raise NotImplementedError


class _RepeatingTimer(ScheduledTask):
    def __init__(self, interval_seconds: float, fn: Callable[[], None], name: str):
        self._interval = interval_seconds
        self._fn = fn
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _loop(self) -> None:
        # Fixed rate: deadlines advance by the interval regardless of how long a tick takes
        next_at = time.monotonic() + self._interval
        while not self._stop.wait(max(0.0, next_at - time.monotonic())):
            threading.Thread(target=self._run_tick, name=f"{self._thread.name}-tick", daemon=True).start()
            next_at += self._interval

    def _run_tick(self) -> None:
        if self._stop.is_set():
            return
        try:
            self._fn()
        except Exception:
            logger.exception("Scheduled tick raised; timer keeps running")

    def cancel(self) -> None:
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()


class ThreadingScheduler(Scheduler):
    def __init__(self, thread_name: str = "avd-poll"):
        self.thread_name = thread_name

    def call_every(self, interval_seconds: float, fn: Callable[[], None]) -> ScheduledTask:
        timer = _RepeatingTimer(interval_seconds, fn, self.thread_name)
        timer.start()
        return timer
