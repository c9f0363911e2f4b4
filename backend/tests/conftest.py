"""Shared fixtures for backend tests."""

import base64
import os
import sys
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from errors import BackendError
from gemini_service import GeminiBackend
from models import AnalysisRequest, Reachability
from ollama_service import OllamaBackend
from orchestrator import FallbackOrchestrator

# Fake frame bytes with a JPEG header
FAKE_JPEG = b"\xff\xd8\xff\xe0fake_jpeg_data"
FAKE_JPEG_B64 = base64.b64encode(FAKE_JPEG).decode("ascii")
FAKE_AUDIO = b"\x1aE\xdf\xa3fake_webm"
FAKE_AUDIO_B64 = base64.b64encode(FAKE_AUDIO).decode("ascii")


class FakeProbe:
    """Stands in for ReachabilityProbe with fixed answers."""

    def __init__(self, local: bool = True, network: bool = True):
        self.reachability = Reachability(local=local, network=network)
        self.checks = 0

    async def check(self) -> Reachability:
        self.checks += 1
        return self.reachability


class _Scripted:
    """Mixin recording calls and replaying a reply or a BackendError."""

    def _setup(self, reply: Optional[str], fail: Optional[str]):
        self.reply = reply
        self.fail = fail
        self.calls: List[tuple] = []

    async def complete(self, request: AnalysisRequest, model: str) -> str:
        self.calls.append((request, model))
        if self.fail is not None:
            raise BackendError(self.kind, self.fail, model=model)
        return self.reply


class FakeOllama(_Scripted, OllamaBackend):
    def __init__(self, reply: Optional[str] = "local answer", fail: Optional[str] = None):
        OllamaBackend.__init__(self, base_url="http://ollama.test:11434")
        self._setup(reply, fail)


class FakeGemini(_Scripted, GeminiBackend):
    def __init__(
        self,
        reply: Optional[str] = "remote answer",
        fail: Optional[str] = None,
        credentialed: bool = True,
    ):
        GeminiBackend.__init__(self, client=object() if credentialed else None)
        self._setup(reply, fail)


def make_orchestrator(local=None, remote=None, probe=None, policy=None):
    kwargs = {}
    if policy is not None:
        kwargs["policy"] = policy
    return FallbackOrchestrator(
        local or FakeOllama(),
        remote or FakeGemini(),
        probe or FakeProbe(),
        **kwargs,
    )


@pytest.fixture
def fake_jpeg_b64() -> str:
    return FAKE_JPEG_B64


@pytest.fixture
def fake_audio_b64() -> str:
    return FAKE_AUDIO_B64


@pytest.fixture
def test_client():
    """Create a FastAPI TestClient with fake backends.

    Patches build_orchestrator so the startup event wires in the fakes, then
    yields (client, orchestrator) so tests can inspect recorded calls.
    """
    from unittest.mock import patch

    # Import here to avoid import-time side-effects
    import app as app_module

    orch = make_orchestrator()
    with patch.object(app_module, "build_orchestrator", return_value=orch):
        with TestClient(app_module.app) as client:
            yield client, orch

