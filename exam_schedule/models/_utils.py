"""
Common utilities for LLM model clients.
LLM 응답 JSON 정리 유틸리티.
"""

import json
import logging
import re

from .base import ExtractionError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    return _FENCE_RE.sub("", text.strip()).strip()


def load_schedules_payload(raw: str | None) -> dict:
    """
    Decode a model response that must look like {"schedules": [...]}.

    Raises:
        ExtractionError: Empty response, invalid JSON, or no schedules list
    """
    if not raw or not raw.strip():
        raise ExtractionError("Model returned an empty response")

    try:
        payload = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Model response is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise ExtractionError(f"Expected a JSON object, got {type(payload).__name__}")
    if not isinstance(payload.get("schedules"), list):
        raise ExtractionError("Model response has no 'schedules' list")
    return payload
