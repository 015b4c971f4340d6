from .manifest_loader import ResultManifestLoader
from .run_session import RunSession
from .run_submitter import RunSubmitter
from .scheduler import Scheduler, ThreadingScheduler
from .status_poller import PollState, StatusPoller
from .subscription_selector import SubscriptionSelector

__all__ = [
    "PollState",
    "ResultManifestLoader",
    "RunSession",
    "RunSubmitter",
    "Scheduler",
    "StatusPoller",
    "SubscriptionSelector",
    "ThreadingScheduler",
]
