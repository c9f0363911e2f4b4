"""Ollama chat service — local on-device inference.

Sends a single-turn message to Ollama's /api/chat endpoint. Initial image
analysis goes to a vision model (LLaVA); everything else goes to a small
text model. Ollama has no audio modality, so audio is reduced to a text marker.
"""

import base64
import logging
import os
import time

import httpx

from backend_base import InferenceBackend
from errors import BackendError
from models import AnalysisRequest, BackendKind, Reachability
from prompts import DEFAULT_DESCRIBE_PROMPT, DEFAULT_MEDIA_PROMPT, with_audio_placeholder

logger = logging.getLogger(__name__)

# Configuration via environment variables
OLLAMA_URL = os.environ.get("OLLAMA_URL", "http://localhost:11434")
OLLAMA_VISION_MODEL = os.environ.get("OLLAMA_VISION_MODEL", "llava")
OLLAMA_TEXT_MODEL = os.environ.get("OLLAMA_TEXT_MODEL", "gemma:2b")
OLLAMA_TIMEOUT = float(os.environ.get("OLLAMA_TIMEOUT", "180"))


class OllamaBackend(InferenceBackend):
    kind = BackendKind.LOCAL

    def __init__(
        self,
        base_url: str = OLLAMA_URL,
        vision_model: str = OLLAMA_VISION_MODEL,
        text_model: str = OLLAMA_TEXT_MODEL,
        timeout: float = OLLAMA_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.vision_model = vision_model
        self.text_model = text_model
        self.timeout = timeout

    @property
    def chat_url(self) -> str:
        return f"{self.base_url}/api/chat"

    def select_model(self, request: AnalysisRequest) -> str:
        if request.is_initial_analysis and request.has_image:
            return self.vision_model
        return self.text_model

    def is_available(self, reachability: Reachability) -> bool:
        return reachability.local

    def build_payload(self, request: AnalysisRequest, model: str) -> dict:
        """Build the /api/chat body for a single user turn."""
        if request.is_initial_analysis and request.has_image:
            content = request.prompt_text or DEFAULT_DESCRIBE_PROMPT
        else:
            content = request.prompt_text or DEFAULT_MEDIA_PROMPT
        if request.has_audio:
            content = with_audio_placeholder(content)

        message = {"role": "user", "content": content}
        if request.has_image:
            message["images"] = [base64.b64encode(request.image).decode("ascii")]

        return {
            "model": model,
            "messages": [message],
            "stream": False,
        }

    async def complete(self, request: AnalysisRequest, model: str) -> str:
        """POST to Ollama and return ``message.content``."""
        payload = self.build_payload(request, model)
        logger.info("Sending request to Ollama at %s (model=%s, image=%s)",
                    self.chat_url, model, request.has_image)

        t0 = time.time()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                resp = await client.post(self.chat_url, json=payload)
                resp.raise_for_status()
            except httpx.TimeoutException as e:
                raise BackendError(
                    BackendKind.LOCAL, f"Timed out after {self.timeout:.0f}s", model=model
                ) from e
            except httpx.ConnectError as e:
                raise BackendError(
                    BackendKind.LOCAL,
                    f"Cannot connect to Ollama at {self.base_url}. Is Ollama running?",
                    model=model,
                ) from e
            except httpx.HTTPStatusError as e:
                raise BackendError(
                    BackendKind.LOCAL,
                    f"Ollama returned HTTP {e.response.status_code}",
                    model=model,
                    status_code=e.response.status_code,
                ) from e
            except httpx.HTTPError as e:
                raise BackendError(BackendKind.LOCAL, f"Transport error: {e}", model=model) from e
        logger.info("[TIMING] Ollama inference (%s): %.2fs", model, time.time() - t0)

        try:
            data = resp.json()
            text = data["message"]["content"]
        except (ValueError, KeyError, TypeError) as e:
            raise BackendError(
                BackendKind.LOCAL, "Malformed response: missing message.content", model=model
            ) from e
        if not isinstance(text, str):
            raise BackendError(
                BackendKind.LOCAL, "Malformed response: message.content is not text", model=model
            )
        return text
