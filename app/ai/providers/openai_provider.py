from __future__ import annotations

from typing import Any, Optional

from openai import NotFoundError, OpenAI

from app.ai.config import ProviderConfig

_MODEL_UNAVAILABLE_MARKERS = ("model_not_found", "invalid model", "does not exist")


class OpenAIProvider:
    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        timeout_s: float = 60.0,
        max_retries: int = 2,
        client: Any = None,
    ):
        key = (api_key or "").strip()
        if not key:
            raise RuntimeError("OPENAI_API_KEY is missing")

        self._client = client or OpenAI(
            api_key=key,
            base_url=base_url or None,
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
        response = self._client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature,
            max_tokens=max_output_tokens,
        )
        content = response.choices[0].message.content if response.choices else ""
        return str(content or "")

    def is_model_unavailable(self, exc: Exception) -> bool:
        if isinstance(exc, NotFoundError):
            return True
        if getattr(exc, "status_code", None) == 404:
            return True
        message = str(exc).lower()
        return any(marker in message for marker in _MODEL_UNAVAILABLE_MARKERS)


def from_config(config: ProviderConfig, *, timeout_s: float, max_retries: int) -> OpenAIProvider:
    return OpenAIProvider(
        api_key=config.api_key or "",
        base_url=config.base_url,
        timeout_s=timeout_s,
        max_retries=max_retries,
    )
