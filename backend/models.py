"""Value types shared by the normalizer, the adapters and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from errors import BackendError, OrchestrationError


class BackendKind(Enum):
    LOCAL = "local"
    REMOTE = "remote"


class AttemptRole(Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


class BackendUsed(Enum):
    """Which backend produced the answer, and in which role."""

    LOCAL_PRIMARY = "local_primary"
    LOCAL_FALLBACK = "local_fallback"
    REMOTE_PRIMARY = "remote_primary"
    REMOTE_FALLBACK = "remote_fallback"

    @classmethod
    def of(cls, kind: BackendKind, role: AttemptRole) -> "BackendUsed":
        return cls(f"{kind.value}_{role.value}")


@dataclass(frozen=True)
class AnalysisRequest:
    """Canonical request, built once and never mutated.

    ``prompt_text`` is the effective prompt: search synthesis and prior
    description wrapping have already been applied.
    """

    prompt_text: Optional[str] = None
    image: Optional[bytes] = None
    audio: Optional[bytes] = None
    prior_description: Optional[str] = None
    search_context: Optional[str] = None
    is_initial_analysis: bool = False
    image_mime: str = "image/jpeg"
    audio_mime: str = "audio/webm"

    @property
    def has_image(self) -> bool:
        return self.image is not None

    @property
    def has_audio(self) -> bool:
        return self.audio is not None


@dataclass(frozen=True)
class Reachability:
    local: bool
    network: bool


@dataclass(frozen=True)
class BackendCapability:
    kind: BackendKind
    available: bool
    model: str


@dataclass(frozen=True)
class CanonicalResult:
    text: str
    backend_used: BackendUsed
    model: str


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of one adapter call: text on success, error on failure."""

    capability: BackendCapability
    role: AttemptRole
    text: Optional[str] = None
    error: Optional["BackendError"] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class OrchestrationOutcome:
    """Either a result or a terminal failure, never both."""

    result: Optional[CanonicalResult] = None
    failure: Optional["OrchestrationError"] = None

    def __post_init__(self):
        if (self.result is None) == (self.failure is None):
            raise ValueError("Outcome needs exactly one of result or failure")

    @classmethod
    def succeeded(cls, result: CanonicalResult) -> "OrchestrationOutcome":
        return cls(result=result)

    @classmethod
    def failed(cls, failure: "OrchestrationError") -> "OrchestrationOutcome":
        return cls(failure=failure)

    @property
    def ok(self) -> bool:
        return self.result is not None
