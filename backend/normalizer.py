"""Builds the canonical AnalysisRequest from raw client fields."""

import base64
import binascii
import logging
import re
from typing import Optional, Tuple

from errors import ValidationError
from models import AnalysisRequest
from prompts import build_followup_prompt, build_search_prompt

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(;[^,]*)?;base64,", re.IGNORECASE)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _decode_media(field: str, value: Optional[str], default_mime: str) -> Tuple[Optional[bytes], str]:
    """Decode a base64 payload, accepting an optional ``data:<mime>;base64,`` prefix."""
    value = _blank_to_none(value)
    if value is None:
        return None, default_mime

    mime = default_mime
    match = _DATA_URL_RE.match(value)
    if match:
        mime = match.group("mime").lower()
        value = value[match.end():]

    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(f"Field '{field}' is not valid base64 data")
    if not data:
        return None, default_mime
    return data, mime


def normalize(
    prompt: Optional[str] = None,
    image: Optional[str] = None,
    audio: Optional[str] = None,
    search_results: Optional[str] = None,
    prior_description: Optional[str] = None,
    is_initial_analysis: bool = False,
) -> AnalysisRequest:
    """Validate raw fields and compute the effective prompt.

    Raises:
        ValidationError: when prompt, image and audio are all absent, or media
            is not decodable.
    """
    prompt = _blank_to_none(prompt)
    search_results = _blank_to_none(search_results)
    prior_description = _blank_to_none(prior_description)

    image_bytes, image_mime = _decode_media("image", image, "image/jpeg")
    audio_bytes, audio_mime = _decode_media("audio", audio, "audio/webm")

    if prompt is None and image_bytes is None and audio_bytes is None:
        raise ValidationError("No media sent: provide a prompt, an image or an audio clip")

    effective = prompt
    if search_results:
        logger.info("Search results received, rewriting prompt for synthesis")
        effective = build_search_prompt(search_results, effective)

    if prior_description and not is_initial_analysis:
        logger.info("Carrying prior image description into follow-up prompt")
        effective = build_followup_prompt(prior_description, effective)

    return AnalysisRequest(
        prompt_text=effective,
        image=image_bytes,
        audio=audio_bytes,
        prior_description=prior_description,
        search_context=search_results,
        is_initial_analysis=bool(is_initial_analysis),
        image_mime=image_mime,
        audio_mime=audio_mime,
    )
