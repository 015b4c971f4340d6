from __future__ import annotations

from typing import Any, Callable, Optional

from avd_portal.config.ini_config import AppSettings
from avd_portal.domain.errors import NotFoundError
from avd_portal.domain.models import (
    HealthContext,
    OutputFile,
    ResultManifest,
    RunState,
    RunStatus,
    RunSummary,
    Subscription,
)
from avd_portal.services.scheduler import ScheduledTask, Scheduler


# -----------------------------
# Test doubles
# -----------------------------
class ManualTask(ScheduledTask):
    def __init__(self, interval_seconds: float, fn: Callable[[], None]):
        self.interval_seconds = interval_seconds
        self.fn = fn
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """Timer that only fires when the test says so."""

    def __init__(self):
        self.tasks: list[ManualTask] = []

    def call_every(self, interval_seconds, fn):
        task = ManualTask(interval_seconds, fn)
        self.tasks.append(task)
        return task

    @property
    def active(self) -> list[ManualTask]:
        return [t for t in self.tasks if not t.cancelled]

    def tick(self, times: int = 1) -> None:
        for _ in range(times):
            for task in list(self.active):
                task.fn()


class FakeAssessmentApi:
    """In-memory backend. Scripted answers are consumed in order; exceptions are raised."""

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []
        self.health_result: Any = HealthContext(status="healthy", tenant_id="tenant-from-health")
        self.subscriptions: Any = [Subscription("sub-a", "Prod"), Subscription("sub-b", "Dev")]
        self.run_ids = ["run-1", "run-2", "run-3"]
        self.start_response: Optional[dict] = None
        self.submitted: list = []
        self.statuses: list = []
        self.manifests: dict[str, Any] = {}
        self.runs: list[RunSummary] = []
        self.list_runs_error: Optional[Exception] = None
        self.on_get_status: Optional[Callable[[str], None]] = None

    def count(self, op: str) -> int:
        return sum(1 for name, _ in self.calls if name == op)

    def health(self):
        self.calls.append(("health", None))
        if isinstance(self.health_result, Exception):
            raise self.health_result
        return self.health_result

    def list_subscriptions(self):
        self.calls.append(("list_subscriptions", None))
        if isinstance(self.subscriptions, Exception):
            raise self.subscriptions
        return list(self.subscriptions)

    def start_assessment(self, config):
        self.calls.append(("start_assessment", config))
        if isinstance(self.start_response, Exception):
            raise self.start_response
        self.submitted.append(config)
        if self.start_response is not None:
            return self.start_response
        run_id = self.run_ids.pop(0)
        self.runs.append(RunSummary(run_id, 0, 0))
        return {"runId": run_id}

    def get_status(self, run_id):
        self.calls.append(("get_status", run_id))
        if self.on_get_status is not None:
            self.on_get_status(run_id)
        item = self.statuses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def get_results(self, run_id):
        self.calls.append(("get_results", run_id))
        item = self.manifests.get(run_id)
        if isinstance(item, list):
            item = item.pop(0)
        if item is None:
            raise NotFoundError(run_id)
        if isinstance(item, Exception):
            raise item
        return item

    def list_runs(self):
        self.calls.append(("list_runs", None))
        if self.list_runs_error is not None:
            raise self.list_runs_error
        return list(self.runs)

    def delete_run(self, run_id):
        self.calls.append(("delete_run", run_id))
        if not any(r.run_id == run_id for r in self.runs):
            raise NotFoundError(run_id)
        self.runs = [r for r in self.runs if r.run_id != run_id]


# -----------------------------
# Helpers
# -----------------------------
def status(state: str, elapsed: int = 0, error: Optional[str] = None) -> RunStatus:
    return RunStatus(RunState(state), elapsed_seconds=elapsed, error=error)


def manifest_for(run_id: str, *names: str) -> ResultManifest:
    names = names or ("AVD-Assessment.html", "AVD-Assessment.xlsx")
    return ResultManifest(
        run_id=run_id,
        files=tuple(OutputFile(n, 1024 * (i + 1), f"https://store.example/{run_id}/{n}") for i, n in enumerate(names)),
    )


def make_settings(**overrides) -> AppSettings:
    values = dict(
        api_base_url="http://backend.test",
        request_timeout_seconds=5.0,
        poll_interval_seconds=3.0,
        default_lookback_days=7,
        log_level="DEBUG",
        flask_host="127.0.0.1",
        flask_port=5000,
        flask_debug=False,
    )
    values.update(overrides)
    return AppSettings(**values)

