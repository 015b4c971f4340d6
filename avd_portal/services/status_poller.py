from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from avd_portal.domain.errors import NotFoundError, PortalError, TransportError
from avd_portal.domain.models import ResultManifest, RunState, RunStatus
from avd_portal.services.manifest_loader import ResultManifestLoader
from avd_portal.services.scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 3.0


class PollState(str, Enum):
    IDLE = "idle"
    STARTED = "started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PollerSnapshot:
    state: PollState
    run_id: Optional[str] = None
    status: Optional[RunStatus] = None
    manifest: Optional[ResultManifest] = None

    @property
    def is_pending(self) -> bool:
        return self.state in (PollState.STARTED, PollState.RUNNING)


class StatusPoller:
    """
    Timed state machine for one active run:

        idle -> started -> running <-> running -> completed | failed

    Holds the single active-run slot together with the cached status and manifest.
    Every armed run gets a new generation number; ticks and in-flight answers
    from an older generation are dropped, so a reset/superseded run is never updated.
    """

    def __init__(
        self,
        api,
        manifest_loader: ResultManifestLoader,
        scheduler: Scheduler,
        interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        on_terminal: Optional[Callable[[str, RunStatus], None]] = None,
    ):
        self._api = api
        self._loader = manifest_loader
        self._scheduler = scheduler
        self._interval = interval_seconds
        self.on_terminal = on_terminal

        self._lock = threading.Lock()
        self._generation = 0
        self._task: Optional[ScheduledTask] = None

        self._state = PollState.IDLE
        self._run_id: Optional[str] = None
        self._status: Optional[RunStatus] = None
        self._manifest: Optional[ResultManifest] = None

    # ---- queries -------------------------------------------------------

    def snapshot(self) -> PollerSnapshot:
        with self._lock:
            return PollerSnapshot(self._state, self._run_id, self._status, self._manifest)

    @property
    def run_id(self) -> Optional[str]:
        with self._lock:
            return self._run_id

    @property
    def state(self) -> PollState:
        with self._lock:
            return self._state

    @property
    def is_pending(self) -> bool:
        return self.snapshot().is_pending

    # ---- transitions ---------------------------------------------------

    def start(self, run_id: str) -> None:
        """Enter `started` for a fresh run and arm the recurring status query."""
        with self._lock:
            self._cancel_task_locked()
            self._generation += 1
            self._run_id = run_id
            self._status = RunStatus(RunState.STARTED, elapsed_seconds=0)
            self._manifest = None
            self._state = PollState.STARTED
            self._arm_locked(self._generation)
        logger.info("Polling run %s every %.1fs", run_id, self._interval)

    def open_completed(self, run_id: str, manifest: ResultManifest) -> None:
        """Show a historical run as completed. Never polls."""
        with self._lock:
            self._cancel_task_locked()
            self._generation += 1
            self._run_id = run_id
            self._status = RunStatus(RunState.COMPLETED, elapsed_seconds=0)
            self._manifest = manifest
            self._state = PollState.COMPLETED
        logger.info("Opened historical run %s (%d file(s))", run_id, len(manifest.files))

    def reset(self) -> None:
        """Back to idle: clears the active run, its status and its manifest."""
        with self._lock:
            self._cancel_task_locked()
            self._generation += 1
            previous = self._run_id
            self._run_id = None
            self._status = None
            self._manifest = None
            self._state = PollState.IDLE
        if previous:
            logger.info("Cleared active run %s", previous)

    def stop(self) -> None:
        """Cancel polling but keep whatever was last observed."""
        with self._lock:
            self._cancel_task_locked()
            self._generation += 1

    # ---- timer plumbing ------------------------------------------------

    def _arm_locked(self, generation: int) -> None:
        self._task = self._scheduler.call_every(self._interval, lambda: self._tick(generation))

    def _cancel_task_locked(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _is_current_locked(self, generation: int) -> bool:
        return generation == self._generation and self._task is not None

    def _tick(self, generation: int) -> None:
        with self._lock:
            if not self._is_current_locked(generation):
                return
            run_id = self._run_id

        try:
            status = self._api.get_status(run_id)
        except PortalError as e:
            # Transient: never a state transition, the next tick retries
            logger.warning("Status poll for run %s failed, retrying in %.1fs: %s", run_id, self._interval, e)
            return

        with self._lock:
            if not self._is_current_locked(generation):
                logger.debug("Discarding stale status %s for run %s", status.state.value, run_id)
                return

            if status.state is RunState.COMPLETED:
                # Manifest must be in hand before anyone can observe `completed`
                self._cancel_task_locked()
            elif status.state is RunState.FAILED:
                self._cancel_task_locked()
                self._status = status
                self._state = PollState.FAILED
            else:
                self._status = status
                self._state = PollState(status.state.value)
                return

        if status.state is RunState.FAILED:
            logger.info("Run %s failed after %ss: %s", run_id, status.elapsed_seconds, status.error)
            self._notify_terminal(run_id, status)
            return

        self._complete(generation, run_id, status)

    def _complete(self, generation: int, run_id: str, status: RunStatus) -> None:
        try:
            manifest = self._loader.load(run_id)
        except TransportError as e:
            with self._lock:
                if generation == self._generation and self._task is None:
                    logger.warning("Run %s completed but manifest fetch failed, retrying: %s", run_id, e)
                    self._arm_locked(generation)
            return
        except NotFoundError:
            logger.warning("Run %s completed but the remote has no manifest for it", run_id)
            manifest = ResultManifest(run_id=run_id)

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding manifest for superseded run %s", run_id)
                return
            self._status = status
            self._manifest = manifest
            self._state = PollState.COMPLETED

        logger.info("Run %s completed after %ss", run_id, status.elapsed_seconds)
        self._notify_terminal(run_id, status)

    def _notify_terminal(self, run_id: str, status: RunStatus) -> None:
        if self.on_terminal is not None:
            self.on_terminal(run_id, status)
