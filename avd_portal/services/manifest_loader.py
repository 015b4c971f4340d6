from __future__ import annotations

import logging
from dataclasses import dataclass

from avd_portal.domain.models import ResultManifest

logger = logging.getLogger(__name__)


@dataclass
class ResultManifestLoader:
    """Fetches the artifact list of a finished run. NotFoundError propagates for unknown runs."""
    api: object     # AssessmentApiClient or a test double with get_results()

    def load(self, run_id: str) -> ResultManifest:
        manifest = self.api.get_results(run_id)
        logger.info(
            "Loaded manifest for run %s: %d file(s), viewable report=%s",
            run_id,
            len(manifest.files),
            manifest.has_viewable_report(),
        )
        return manifest
