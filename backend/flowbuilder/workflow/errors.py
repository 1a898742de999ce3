"""
Workflow Errors.

Only persistence, run-guard and transport problems are raised as
exceptions. Node-level failures are turned into error-shaped outputs
by the node executor and never escape a run.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class WorkflowError(Exception):
    """Base class for workflow-layer exceptions."""

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class WorkflowNotFoundError(WorkflowError):
    """No stored workflow under the requested name."""


class WorkflowNameError(WorkflowError):
    """A project name is empty, unchanged, or already taken."""


class WorkflowAlreadyRunningError(WorkflowError):
    """``run()`` was called while another run is in progress."""


class ConnectionNotFoundError(WorkflowError):
    """No stored AI connection under the requested ID."""


class ConditionSyntaxError(WorkflowError):
    """A condition expression could not be parsed."""


class ComputeServiceError(WorkflowError):
    """A compute endpoint could not be reached or answered with an error."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            detail={"url": url, "status_code": status_code},
        )
        self.url = url
        self.status_code = status_code
        self.response_body = response_body
