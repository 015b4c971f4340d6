"""adapters/assessment_api.py

All HTTP calls to the assessment backend live here.

Design goals:
  - Keep network I/O separated from lifecycle/state logic.
  - Translate HTTP outcomes into the domain error taxonomy; callers never see requests exceptions.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from avd_portal.domain.errors import NotFoundError, TransportError
from avd_portal.domain.models import (
    AssessmentConfig,
    HealthContext,
    ResultManifest,
    RunStatus,
    RunSummary,
    Subscription,
)

T = TypeVar("T")


class AssessmentApiClient:
    def __init__(self, base_url: str, timeout_seconds: float = 30.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._http = session or requests.Session()

    def _request(self, method: str, path: str, *, run_id: Optional[str] = None, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self._http.request(method, url, timeout=self.timeout_seconds, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if resp.status_code == 404 and run_id is not None:
            raise NotFoundError(run_id)
        if not resp.ok:
            raise TransportError(f"{method} {path}: HTTP {resp.status_code} {resp.text[:200]!r}", resp.status_code)

        try:
            return resp.json()
        except ValueError as e:
            raise TransportError(f"{method} {path}: could not decode JSON") from e

    def _get_dict(self, path: str, *, run_id: Optional[str] = None) -> Dict[str, Any]:
        data = self._request("GET", path, run_id=run_id)
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _parse(path: str, parse: Callable[[], T]) -> T:
        # A body of the wrong shape is a bad answer, same as undecodable JSON
        try:
            return parse()
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            raise TransportError(f"{path}: unexpected response shape: {e}") from e

    def health(self) -> HealthContext:
        data = self._get_dict("/api/health")
        return self._parse("/api/health", lambda: HealthContext.from_dict(data))

    def list_subscriptions(self) -> List[Subscription]:
        data = self._get_dict("/api/subscriptions")
        return self._parse(
            "/api/subscriptions",
            lambda: [Subscription.from_dict(s) for s in (data.get("subscriptions") or []) if isinstance(s, dict)],
        )

    def start_assessment(self, config: AssessmentConfig) -> Dict[str, Any]:
        data = self._request("POST", "/api/assess", json=config.to_payload())
        return data if isinstance(data, dict) else {}

    def get_status(self, run_id: str) -> RunStatus:
        path = f"/api/assess/{run_id}"
        data = self._get_dict(path, run_id=run_id)
        return self._parse(path, lambda: RunStatus.from_dict(data))

    def get_results(self, run_id: str) -> ResultManifest:
        path = f"/api/results/{run_id}"
        data = self._get_dict(path, run_id=run_id)
        return self._parse(path, lambda: ResultManifest.from_dict(run_id, data))

    def list_runs(self) -> List[RunSummary]:
        data = self._get_dict("/api/runs")
        return self._parse(
            "/api/runs",
            lambda: [RunSummary.from_dict(r) for r in (data.get("runs") or []) if isinstance(r, dict)],
        )

    def delete_run(self, run_id: str) -> None:
        data = self._request("DELETE", f"/api/runs/{run_id}", run_id=run_id)
        # Some backends acknowledge with 200 + {"success": false}
        if isinstance(data, dict) and data.get("success") is False:
            raise TransportError(f"Delete of run {run_id} was refused: {data.get('error') or 'no reason given'}")
