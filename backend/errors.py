"""Error taxonomy for request analysis.

Adapter failures (BackendError) are recoverable through the fallback hop.
Only OrchestrationError subclasses and ValidationError reach the caller.
"""

from __future__ import annotations

from typing import List, Optional

from models import BackendKind


class AnalysisError(Exception):
    """Base class for every error the analysis pipeline produces."""

    http_status = 500


class ValidationError(AnalysisError):
    """Request rejected before it reaches the orchestrator."""

    http_status = 400


class BackendError(AnalysisError):
    """A single backend adapter failed (transport, status or response shape)."""

    def __init__(
        self,
        backend: BackendKind,
        message: str,
        *,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.backend = backend
        self.model = model
        self.status_code = status_code

    def __str__(self) -> str:
        label = self.backend.value
        if self.model:
            label = f"{label} ({self.model})"
        return f"{label}: {self.args[0]}"


class OrchestrationError(AnalysisError):
    """Terminal orchestrator state."""


class NoBackendAvailable(OrchestrationError):
    """No backend satisfies its availability precondition."""


class OfflineImageUnavailable(NoBackendAvailable):
    """Image analysis requested while offline and the local service is down."""

    http_status = 400


class AllBackendsFailed(OrchestrationError):
    """Primary attempt failed and the fallback (if any) failed too."""

    def __init__(self, errors: List[BackendError]):
        detail = "; ".join(str(e) for e in errors) or "no attempt succeeded"
        super().__init__(f"All backends failed: {detail}")
        self.errors = list(errors)
