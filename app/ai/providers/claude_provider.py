from __future__ import annotations

from typing import Any

from anthropic import Anthropic, NotFoundError

from app.ai.config import ProviderConfig

_MODEL_UNAVAILABLE_MARKERS = ("not_found_error",)


class ClaudeProvider:
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        timeout_s: float = 60.0,
        max_retries: int = 2,
        client: Any = None,
    ):
        key = (api_key or "").strip()
        if not key:
            raise RuntimeError("ANTHROPIC_API_KEY is missing")

        self._client = client or Anthropic(
            api_key=key,
            timeout=timeout_s,
            max_retries=max_retries,
        )

    def complete(
        self,
        *,
        model: str,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
    ) -> str:
        message = self._client.messages.create(
            model=model,
            max_tokens=max_output_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        parts = [
            getattr(block, "text", "")
            for block in (message.content or [])
            if getattr(block, "type", None) == "text"
        ]
        return "".join(part for part in parts if part)

    def is_model_unavailable(self, exc: Exception) -> bool:
        if isinstance(exc, NotFoundError):
            return True
        if getattr(exc, "status_code", None) == 404:
            return True
        message = str(exc).lower()
        return any(marker in message for marker in _MODEL_UNAVAILABLE_MARKERS)


def from_config(config: ProviderConfig, *, timeout_s: float, max_retries: int) -> ClaudeProvider:
    return ClaudeProvider(
        api_key=config.api_key or "",
        timeout_s=timeout_s,
        max_retries=max_retries,
    )
