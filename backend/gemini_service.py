"""Gemini multimodal service — remote cloud inference.

The text prompt, the camera frame and the audio clip are sent as parts of a
single Content. The SDK call is blocking, so it runs in a worker thread.
"""

import asyncio
import logging
import os
import time

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from backend_base import InferenceBackend
from errors import BackendError
from models import AnalysisRequest, BackendKind, Reachability

logger = logging.getLogger(__name__)

GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")


def create_client(api_key: str | None = None) -> genai.Client | None:
    """Build the process-wide Gemini client, or None when no key is configured."""
    if api_key is None:
        api_key = os.environ.get("GEMINI_API_KEY", "")
    if not api_key:
        logger.warning("GEMINI_API_KEY is not set — remote backend disabled")
        return None
    return genai.Client(api_key=api_key)


class GeminiBackend(InferenceBackend):
    kind = BackendKind.REMOTE

    def __init__(self, client: genai.Client | None, model: str = GEMINI_MODEL):
        self.client = client
        self.model = model

    @property
    def credentialed(self) -> bool:
        return self.client is not None

    def select_model(self, request: AnalysisRequest) -> str:
        return self.model

    def is_available(self, reachability: Reachability) -> bool:
        return reachability.network and self.credentialed

    def build_contents(self, request: AnalysisRequest) -> types.Content:
        parts = []
        if request.prompt_text:
            parts.append(types.Part(text=request.prompt_text))
        if request.has_image:
            parts.append(types.Part(
                inline_data=types.Blob(mime_type=request.image_mime, data=request.image)
            ))
        if request.has_audio:
            parts.append(types.Part(
                inline_data=types.Blob(mime_type=request.audio_mime, data=request.audio)
            ))
        return types.Content(role="user", parts=parts)

    async def complete(self, request: AnalysisRequest, model: str) -> str:
        """Send the multi-part content to Gemini and return the reply text."""
        if self.client is None:
            raise BackendError(BackendKind.REMOTE, "No API key configured", model=model)

        client = self.client
        contents = self.build_contents(request)

        def _call() -> str | None:
            response = client.models.generate_content(model=model, contents=contents)
            return response.text

        t0 = time.time()
        try:
            text = await asyncio.to_thread(_call)
        except genai_errors.APIError as e:
            if e.code in (401, 403):
                reason = "Authentication failed (invalid API key?)"
            elif e.code == 429:
                reason = "Quota or rate limit exceeded"
            else:
                reason = f"API error {e.code}: {e.message}"
            raise BackendError(BackendKind.REMOTE, reason, model=model, status_code=e.code) from e
        except Exception as e:
            raise BackendError(BackendKind.REMOTE, f"Request failed: {e}", model=model) from e
        logger.info("[TIMING] Gemini inference (%s): %.2fs", model, time.time() - t0)

        if not text:
            raise BackendError(BackendKind.REMOTE, "Empty response (blocked or no candidates)", model=model)
        return text
