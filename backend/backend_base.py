"""Common interface for the local and remote inference adapters."""

from abc import ABC, abstractmethod

from models import AnalysisRequest, BackendCapability, BackendKind, Reachability


class InferenceBackend(ABC):
    """Translates a canonical request into one backend's wire shape.

    The orchestrator depends only on this interface.
    """

    kind: BackendKind

    @abstractmethod
    def select_model(self, request: AnalysisRequest) -> str:
        """Model identifier this backend would use for ``request``."""
        raise NotImplementedError

    @abstractmethod
    def is_available(self, reachability: Reachability) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def complete(self, request: AnalysisRequest, model: str) -> str:
        """Run inference and return the raw reply text.

        Raises:
            BackendError: on any transport, status or response-shape failure.
        """
        raise NotImplementedError

    def capability(self, request: AnalysisRequest, reachability: Reachability) -> BackendCapability:
        return BackendCapability(
            kind=self.kind,
            available=self.is_available(reachability),
            model=self.select_model(request),
        )
