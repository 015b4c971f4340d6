from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from avd_portal.domain.errors import ActiveRunError, PortalError, ValidationError
from avd_portal.domain.models import HealthContext, ResultManifest, RunStatus, Subscription
from avd_portal.repositories.run_registry import ConfirmFn, RunRegistry
from avd_portal.services import config_assembler
from avd_portal.services.formatting import format_bytes, format_duration
from avd_portal.services.manifest_loader import ResultManifestLoader
from avd_portal.services.run_submitter import RunSubmitter
from avd_portal.services.status_poller import PollState, StatusPoller
from avd_portal.services.subscription_selector import SubscriptionSelector

logger = logging.getLogger(__name__)

# Form fields a user may edit; subscriptionIds is owned by the selector
INPUT_FIELDS = (
    "tenantId",
    "logAnalyticsWorkspaceIds",
    "metricsLookbackDays",
    "includeAdvisor",
    "includeReservations",
    "skipCosts",
    "scrubPII",
    "quickSummary",
    "companyName",
    "analystName",
)


class RunSession:
    """
    Run lifecycle manager for one operator session.

    Owns the single active-run slot (through the StatusPoller), the form inputs,
    the subscription selection and the reference data fetched at startup.
    Mutating actions (submit, open, delete) are serialized by `_actions`.
    """

    def __init__(
        self,
        api,
        poller: StatusPoller,
        registry: RunRegistry,
        submitter: RunSubmitter,
        manifest_loader: ResultManifestLoader,
        default_lookback_days: int = config_assembler.DEFAULT_LOOKBACK_DAYS,
    ):
        self._api = api
        self.poller = poller
        self.registry = registry
        self.submitter = submitter
        self.manifest_loader = manifest_loader
        self.default_lookback_days = default_lookback_days

        self.selector = SubscriptionSelector()
        self.health: Optional[HealthContext] = None
        self.subscriptions: List[Subscription] = []

        self._actions = threading.RLock()
        self._tenant_edited = False
        self._inputs: Dict[str, Any] = {
            "tenantId": "",
            "logAnalyticsWorkspaceIds": "",
            "metricsLookbackDays": default_lookback_days,
            "includeAdvisor": True,
            "includeReservations": False,
            "skipCosts": False,
            "scrubPII": False,
            "quickSummary": False,
            "companyName": "",
            "analystName": "",
        }

        # Terminal runs show up in history: refresh from the remote
        self.poller.on_terminal = lambda run_id, status: self.registry.refresh()

    # ---- startup reference data ----------------------------------------

    def initialize(self) -> None:
        self.refresh_health()
        self.refresh_subscriptions()
        self.registry.refresh()

    def refresh_health(self) -> HealthContext:
        try:
            health = self._api.health()
        except PortalError as e:
            logger.warning("Health check failed: %s", e)
            health = HealthContext.unreachable()
        with self._actions:
            self.health = health
            # First write wins: never overwrite a tenant the user typed
            if health.tenant_id and not self._tenant_edited and not self._inputs["tenantId"]:
                self._inputs["tenantId"] = health.tenant_id
                logger.info("Tenant pre-filled from health check")
        return health

    def refresh_subscriptions(self) -> List[Subscription]:
        try:
            subs = self._api.list_subscriptions()
        except PortalError as e:
            logger.warning("Could not load subscriptions: %s", e)
            subs = []
        self.subscriptions = list(subs)
        return self.subscriptions

    # ---- form ----------------------------------------------------------

    @property
    def inputs(self) -> Dict[str, Any]:
        with self._actions:
            return {**self._inputs, "subscriptionIds": sorted(self.selector.selected)}

    def update_inputs(self, **fields: Any) -> None:
        unknown = sorted(set(fields) - set(INPUT_FIELDS))
        if unknown:
            raise ValidationError(f"Unknown input field(s): {', '.join(unknown)}", fields=tuple(unknown))
        with self._actions:
            if "tenantId" in fields:
                self._tenant_edited = True
            self._inputs.update(fields)

    def toggle_subscription(self, sub_id: str) -> bool:
        with self._actions:
            return self.selector.toggle(sub_id)

    # ---- submit-gate ---------------------------------------------------

    def check_submittable(self) -> None:
        """Raises ValidationError (or ActiveRunError) when the submit-gate is closed."""
        with self._actions:
            missing = config_assembler.missing_required_fields(self.inputs)
            if missing:
                raise ValidationError(f"Missing required field(s): {', '.join(missing)}", fields=tuple(missing))
            snap = self.poller.snapshot()
            if snap.is_pending:
                raise ActiveRunError(snap.run_id or "")

    def can_submit(self) -> bool:
        try:
            self.check_submittable()
        except ValidationError:
            return False
        return True

    # ---- actions -------------------------------------------------------

    def submit(self) -> str:
        with self._actions:
            self.check_submittable()
            config = config_assembler.assemble(self.inputs, self.default_lookback_days)
            run_id = self.submitter.submit(config)
            # Fresh logical session: previous status/manifest are dropped here
            self.poller.start(run_id)
        self.registry.refresh()
        return run_id

    def open_run(self, run_id: str) -> ResultManifest:
        with self._actions:
            # Fetch first so a failed load leaves the current session untouched
            manifest = self.manifest_loader.load(run_id)
            snap = self.poller.snapshot()
            if snap.is_pending and snap.run_id != run_id:
                logger.warning("Stopped polling run %s to open run %s", snap.run_id, run_id)
            self.poller.open_completed(run_id, manifest)
        return manifest

    def delete_run(self, run_id: str, confirm: ConfirmFn) -> bool:
        with self._actions:
            deleted = self.registry.delete(run_id, confirm)
            if not deleted:
                return False
            if self.poller.run_id == run_id:
                self.poller.reset()
        self.registry.refresh()
        return True

    def results(self) -> ResultManifest:
        snap = self.poller.snapshot()
        if snap.state is PollState.FAILED and snap.status is not None:
            snap.status.raise_for_failure(snap.run_id or "")
        if snap.state is not PollState.COMPLETED or snap.manifest is None:
            raise ValidationError("No completed run is active.", fields=("activeRun",))
        return snap.manifest

    def shutdown(self) -> None:
        self.poller.stop()

    # ---- read model ----------------------------------------------------

    @staticmethod
    def _status_dict(status: Optional[RunStatus]) -> Optional[Dict[str, Any]]:
        if status is None:
            return None
        return {**status.to_dict(), "elapsed": format_duration(status.elapsed_seconds)}

    @staticmethod
    def _manifest_dict(manifest: Optional[ResultManifest]) -> Optional[Dict[str, Any]]:
        if manifest is None:
            return None
        report = manifest.first_report()
        return {
            "runId": manifest.run_id,
            "hasViewableReport": manifest.has_viewable_report(),
            "report": report.to_dict() if report else None,
            "files": [
                {**f.to_dict(), "sizeLabel": format_bytes(f.size), "viewable": f.is_report}
                for f in manifest.downloads()
            ],
            "totalSize": format_bytes(manifest.total_size),
        }

    def snapshot(self) -> Dict[str, Any]:
        snap = self.poller.snapshot()
        selected = self.selector.selected
        return {
            "health": self.health.to_dict() if self.health else None,
            "subscriptions": [
                {"id": s.id, "name": s.name, "selected": s.id in selected} for s in self.subscriptions
            ],
            "inputs": self.inputs,
            "lookbackBounds": list(config_assembler.LOOKBACK_BOUNDS),
            "canSubmit": self.can_submit(),
            "activeRun": snap.run_id,
            "state": snap.state.value,
            "status": self._status_dict(snap.status),
            "results": self._manifest_dict(snap.manifest),
            "runs": [
                {
                    "runId": r.run_id,
                    "files": r.files,
                    "totalSize": r.total_size,
                    "sizeLabel": format_bytes(r.total_size),
                }
                for r in self.registry.runs
            ],
        }
