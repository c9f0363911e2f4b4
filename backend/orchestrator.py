"""Fallback orchestrator — picks a backend, tries it, falls back at most once.

Flow per request:

    SelectPrimary -> AttemptPrimary -> Success
                                    -> AttemptFallback -> Success
                                                       -> Exhausted

Adapter exceptions never escape: each attempt becomes an AttemptResult value
and only a terminal state leaves ``run()``, as an OrchestrationOutcome.
"""

import logging
import time
from typing import List

from backend_base import InferenceBackend
from errors import (
    AllBackendsFailed,
    BackendError,
    NoBackendAvailable,
    OfflineImageUnavailable,
)
from models import (
    AnalysisRequest,
    AttemptResult,
    AttemptRole,
    BackendCapability,
    BackendKind,
    BackendUsed,
    CanonicalResult,
    OrchestrationOutcome,
)
from reachability import ReachabilityProbe
from routing import Policy, remote_first
from sanitizer import sanitize

logger = logging.getLogger(__name__)

# Primary plus one fallback hop.
ATTEMPT_ROLES = (AttemptRole.PRIMARY, AttemptRole.FALLBACK)


class FallbackOrchestrator:
    """Routes one AnalysisRequest across the local and remote backends.

    Holds no per-request state; a single instance serves every request.
    """

    def __init__(
        self,
        local: InferenceBackend,
        remote: InferenceBackend,
        probe: ReachabilityProbe,
        policy: Policy = remote_first,
    ):
        self.backends = {BackendKind.LOCAL: local, BackendKind.REMOTE: remote}
        self.probe = probe
        self.policy = policy

    async def plan(self, request: AnalysisRequest) -> List[BackendCapability]:
        """Probe the environment and return the backends to try, in order.

        Raises:
            OfflineImageUnavailable: image request, offline, local service down.
            NoBackendAvailable: no candidate satisfies its precondition.
        """
        reachability = await self.probe.check()
        local = self.backends[BackendKind.LOCAL].capability(request, reachability)
        remote = self.backends[BackendKind.REMOTE].capability(request, reachability)

        if request.has_image and not reachability.network and not local.available:
            raise OfflineImageUnavailable(
                "Image analysis is not available offline. Connect to the internet "
                "or start the local model service."
            )

        candidates = [cap for cap in self.policy(local, remote) if cap.available]
        if not candidates:
            raise NoBackendAvailable(
                "No AI service available. Check the local model service, the "
                "internet connection and the API key."
            )
        return candidates[:len(ATTEMPT_ROLES)]

    async def attempt(
        self, request: AnalysisRequest, capability: BackendCapability, role: AttemptRole
    ) -> AttemptResult:
        backend = self.backends[capability.kind]
        logger.info("Attempting %s backend as %s (model=%s)",
                    capability.kind.value, role.value, capability.model)
        try:
            text = await backend.complete(request, capability.model)
        except BackendError as e:
            logger.warning("%s attempt failed: %s", role.value.capitalize(), e)
            return AttemptResult(capability=capability, role=role, error=e)
        return AttemptResult(capability=capability, role=role, text=text)

    async def run(self, request: AnalysisRequest) -> OrchestrationOutcome:
        t0 = time.time()
        try:
            candidates = await self.plan(request)
        except NoBackendAvailable as e:
            logger.error("No backend selected: %s", e)
            return OrchestrationOutcome.failed(e)

        failures: List[BackendError] = []
        for role, capability in zip(ATTEMPT_ROLES, candidates):
            outcome = await self.attempt(request, capability, role)
            if outcome.ok:
                result = CanonicalResult(
                    text=sanitize(outcome.text),
                    backend_used=BackendUsed.of(capability.kind, role),
                    model=capability.model,
                )
                logger.info("Response generated by %s (%s) in %.2fs",
                            result.backend_used.value, result.model, time.time() - t0)
                return OrchestrationOutcome.succeeded(result)
            failures.append(outcome.error)

        if len(candidates) == 1:
            logger.warning("No fallback backend available after primary failure")
        error = AllBackendsFailed(failures)
        logger.error("%s", error)
        return OrchestrationOutcome.failed(error)
