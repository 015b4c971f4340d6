from __future__ import annotations

import logging
import threading
from typing import Callable, List

from avd_portal.domain.errors import TransportError
from avd_portal.domain.models import RunSummary

logger = logging.getLogger(__name__)

ConfirmFn = Callable[[str], bool]


def delete_prompt(run_id: str) -> str:
    return f"Delete run {run_id} and all its files?"


class RunRegistry:
    """
    Repository pattern: history of runs as the remote reports it.
    The remote is the source of truth; `runs` is only the last listing seen.
    """

    def __init__(self, api):
        self._api = api
        self._lock = threading.Lock()
        self._runs: List[RunSummary] = []

    @property
    def runs(self) -> List[RunSummary]:
        with self._lock:
            return list(self._runs)

    def list(self) -> List[RunSummary]:
        runs = self._api.list_runs()
        with self._lock:
            self._runs = list(runs)
        return list(runs)

    def refresh(self) -> List[RunSummary]:
        """list(), but a transport failure keeps the previous listing."""
        try:
            return self.list()
        except TransportError as e:
            logger.warning("Could not refresh run history: %s", e)
            return self.runs

    def delete(self, run_id: str, confirm: ConfirmFn) -> bool:
        """
        Irreversible. Returns False (and does nothing) when confirmation is declined.
        NotFoundError / TransportError propagate.
        """
        if not confirm(delete_prompt(run_id)):
            logger.info("Deletion of run %s cancelled by user", run_id)
            return False
        self._api.delete_run(run_id)
        logger.info("Deleted run %s", run_id)
        return True
