"""Error taxonomy for the estimate workflow."""

from __future__ import annotations

from typing import Optional


class EstimatorError(RuntimeError):
    """Base class for every error the workflow surfaces."""


class TransportError(EstimatorError):
    """Raised when the estimation service could not be reached."""


class ServiceError(EstimatorError):
    """The estimation service answered with a failure outcome."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ValidationError(EstimatorError):
    """A local precondition was violated; no request was issued."""


class ActionInProgressError(ValidationError):
    """The same action is already in flight and reentry is rejected."""

    def __init__(self, action: str) -> None:
        super().__init__(f"{action} is already in progress")
        self.action = action


class DownloadError(EstimatorError):
    """The exported payload could not be saved locally."""
