from __future__ import annotations

import logging
from dataclasses import dataclass

from avd_portal.domain.errors import SubmissionError
from avd_portal.domain.models import AssessmentConfig

logger = logging.getLogger(__name__)


@dataclass
class RunSubmitter:
    """
    Sends one assembled config to the launch endpoint.
    One-shot: transport failures propagate to the caller and are never retried here.
    """
    api: object     # AssessmentApiClient or a test double with start_assessment()

    def submit(self, config: AssessmentConfig) -> str:
        logger.info(
            "Submitting assessment: tenant=%s subscriptions=%d workspaces=%d lookback=%d",
            config.tenant_id,
            len(config.subscription_ids),
            len(config.log_analytics_workspace_ids),
            config.metrics_lookback_days,
        )
        response = self.api.start_assessment(config)
        run_id = (str(response.get("runId") or "")).strip()
        if not run_id:
            detail = response.get("error") or "no runId in response"
            raise SubmissionError(f"Assessment was not started: {detail}")
        logger.info("Assessment accepted as run %s", run_id)
        return run_id
