######## errors.py
########

from __future__ import annotations


class PortalError(Exception):
    """Base class for every failure the run lifecycle manager reports."""


class ValidationError(PortalError):
    """Local input problem. Blocks the action; nothing is sent to the remote."""

    def __init__(self, message: str, fields: tuple[str, ...] = ()):
        super().__init__(message)
        self.fields = fields


class ActiveRunError(ValidationError):
    """Submit-gate rejection: another run is still pending."""

    def __init__(self, run_id: str):
        super().__init__(f"Run {run_id} is still in progress.", fields=("activeRun",))
        self.run_id = run_id


class TransportError(PortalError):
    """The request never produced a usable answer (network, timeout, 5xx, bad body)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SubmissionError(PortalError):
    """The remote accepted the submit request but did not allocate a run."""


class RemoteJobError(PortalError):
    """The remote executor reported the run as failed."""

    def __init__(self, run_id: str, error: str | None):
        super().__init__(f"Run {run_id} failed: {error or 'unknown error'}")
        self.run_id = run_id
        self.error = error


class NotFoundError(PortalError):
    """The run identifier is unknown to the remote."""

    def __init__(self, run_id: str):
        super().__init__(f"Run {run_id} not found.")
        self.run_id = run_id
