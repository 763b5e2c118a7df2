from __future__ import annotations

import math
from typing import Any


def clean_string_list(value: Any) -> list[str]:
    """Keep only non-empty strings; anything that is not a list becomes []."""
    if not isinstance(value, (list, tuple)):
        return []
    cleaned: list[str] = []
    for item in value:
        if isinstance(item, str) and item.strip():
            cleaned.append(item.strip())
    return cleaned


def optional_text(value: Any) -> str | None:
    if isinstance(value, str):
        text = value.strip()
        return text or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def text_or_empty(value: Any) -> str:
    return optional_text(value) or ""


def parse_score(value: Any) -> float | None:
    """Numeric score clamped to [0, 100]; None when missing or not a number."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%"))
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        return None
    return clamp_score(number)


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


def ratio_score(strengths: int, weaknesses: int, neutral: float = 50.0) -> float:
    total = strengths + weaknesses
    if total <= 0:
        return float(neutral)
    return float(round(100 * strengths / total))
