from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class LLMResponseFormatError(ValueError):
    status_code = 502

    def __init__(self, message: str, *, code: str = "llm_bad_response"):
        super().__init__(message)
        self.code = code


def strip_code_fences(text: str) -> str:
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_RE.sub("", cleaned).strip()
    return cleaned


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse model output into a JSON object, tolerating fences and leading prose."""
    cleaned = strip_code_fences(text)
    if not cleaned:
        raise LLMResponseFormatError("Model returned an empty response.")
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _OBJECT_RE.search(cleaned)
        if not match:
            raise LLMResponseFormatError("Model response is not valid JSON.") from None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise LLMResponseFormatError(f"Model response is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise LLMResponseFormatError("Model response is not a JSON object.")
    return parsed
