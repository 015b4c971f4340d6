######## models.py
########

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from avd_portal.domain.errors import RemoteJobError

REPORT_EXTENSION = ".html"


def _as_int(raw: Any) -> int:
    if isinstance(raw, bool):
        return 0
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return 0
    return max(value, 0)


class RunState(str, Enum):
    STARTED = "started"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED)


@dataclass(frozen=True)
class AssessmentConfig:
    tenant_id: str
    subscription_ids: frozenset[str]
    log_analytics_workspace_ids: tuple[str, ...] = ()
    metrics_lookback_days: int = 7

    include_advisor: bool = True
    include_reservations: bool = False
    skip_costs: bool = False
    scrub_pii: bool = False
    quick_summary: bool = False

    company_name: str = ""
    analyst_name: str = ""

    def to_payload(self) -> dict[str, Any]:
        # subscriptionIds is an unordered collection on the wire; sorted only for stable logs/tests
        return {
            "tenantId": self.tenant_id,
            "subscriptionIds": sorted(self.subscription_ids),
            "logAnalyticsWorkspaceIds": list(self.log_analytics_workspace_ids),
            "metricsLookbackDays": self.metrics_lookback_days,
            "includeAdvisor": self.include_advisor,
            "includeReservations": self.include_reservations,
            "skipCosts": self.skip_costs,
            "scrubPII": self.scrub_pii,
            "quickSummary": self.quick_summary,
            "companyName": self.company_name,
            "analystName": self.analyst_name,
        }


@dataclass(frozen=True)
class RunStatus:
    state: RunState
    elapsed_seconds: int = 0
    error: Optional[str] = None     # only kept when state is FAILED

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunStatus":
        raw_state = str(data.get("status") or "").strip().lower()
        try:
            state = RunState(raw_state)
        except ValueError:
            # unknown intermediate states from the executor still mean "not done yet"
            state = RunState.RUNNING
        error = data.get("error") if state is RunState.FAILED else None
        return cls(
            state=state,
            elapsed_seconds=_as_int(data.get("elapsedSeconds")),
            error=str(error) if error is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.state.value, "elapsedSeconds": self.elapsed_seconds}
        if self.error is not None:
            out["error"] = self.error
        return out

    def raise_for_failure(self, run_id: str) -> None:
        if self.state is RunState.FAILED:
            raise RemoteJobError(run_id, self.error)


@dataclass(frozen=True)
class OutputFile:
    name: str
    size: int
    url: str

    @property
    def is_report(self) -> bool:
        return self.name.endswith(REPORT_EXTENSION)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OutputFile":
        return cls(
            name=str(data.get("name") or ""),
            size=_as_int(data.get("size")),
            url=str(data.get("url") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "size": self.size, "url": self.url}


@dataclass(frozen=True)
class ResultManifest:
    """
    Output artifacts of one run, in the order the remote returned them.
    Viewing and downloading are separate queries over the same file list.
    """
    run_id: str
    files: tuple[OutputFile, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, run_id: str, data: dict[str, Any]) -> "ResultManifest":
        raw_files = data.get("files") or []
        return cls(run_id=run_id, files=tuple(OutputFile.from_dict(f) for f in raw_files if isinstance(f, dict)))

    def reports(self) -> list[OutputFile]:
        return [f for f in self.files if f.is_report]

    def has_viewable_report(self) -> bool:
        return any(f.is_report for f in self.files)

    def first_report(self) -> Optional[OutputFile]:
        return next((f for f in self.files if f.is_report), None)

    def downloads(self) -> list[OutputFile]:
        return list(self.files)

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files)


@dataclass(frozen=True)
class RunSummary:
    run_id: str
    files: int
    total_size: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunSummary":
        return cls(
            run_id=str(data.get("runId") or ""),
            files=_as_int(data.get("files")),
            total_size=_as_int(data.get("totalSize")),
        )


@dataclass(frozen=True)
class Subscription:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Subscription":
        sub_id = str(data.get("id") or "")
        return cls(id=sub_id, name=str(data.get("name") or sub_id))


@dataclass(frozen=True)
class HealthContext:
    status: str
    tenant_id: Optional[str] = None
    script_exists: bool = False
    storage_configured: bool = False
    identity_configured: bool = False

    @property
    def is_healthy(self) -> bool:
        return self.status == "healthy"

    @classmethod
    def unreachable(cls) -> "HealthContext":
        return cls(status="error")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HealthContext":
        tenant = (str(data.get("tenantId") or "")).strip()
        return cls(
            status=str(data.get("status") or "unknown"),
            tenant_id=tenant or None,
            script_exists=bool(data.get("scriptExists")),
            storage_configured=bool(data.get("storageConfigured")),
            identity_configured=bool(data.get("identityConfigured")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "tenantId": self.tenant_id,
            "scriptExists": self.script_exists,
            "storageConfigured": self.storage_configured,
            "identityConfigured": self.identity_configured,
        }
