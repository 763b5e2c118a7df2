from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from app.ai.types import ProviderName

PROVIDER_ORDER: tuple[ProviderName, ...] = ("anthropic", "openai")

ANTHROPIC_FALLBACK_MODELS = (
    "claude-sonnet-4-20250514",
    "claude-3-5-sonnet-20241022",
    "claude-3-5-haiku-20241022",
    "claude-3-opus-20240229",
    "claude-3-haiku-20240307",
)

OPENAI_FALLBACK_MODELS = (
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4-turbo",
    "gpt-4",
    "gpt-3.5-turbo",
)


def _looks_like_placeholder(value: str) -> bool:
    lower = value.strip().lower()
    return lower.startswith("your_") or lower.startswith("replace_") or lower in {"changeme", "todo"}


def model_chain(primary: str | None, fallbacks: Iterable[str]) -> tuple[str, ...]:
    """Primary model first, then fallbacks, without duplicates."""
    chain: list[str] = []
    for model in [primary or "", *fallbacks]:
        name = model.strip()
        if name and name not in chain:
            chain.append(name)
    return tuple(chain)


@dataclass(frozen=True)
class ProviderConfig:
    name: ProviderName
    api_key: str | None
    models: tuple[str, ...]
    base_url: str | None = None

    @property
    def enabled(self) -> bool:
        key = (self.api_key or "").strip()
        return bool(key) and not _looks_like_placeholder(key) and bool(self.models)


@dataclass(frozen=True)
class LLMConfig:
    anthropic: ProviderConfig
    openai: ProviderConfig
    timeout_s: float = 60.0
    max_retries: int = 2

    def provider(self, name: str) -> ProviderConfig:
        if name == "anthropic":
            return self.anthropic
        if name == "openai":
            return self.openai
        raise ValueError(f"Unsupported LLM provider '{name}'")

    def configured_providers(self) -> tuple[ProviderName, ...]:
        return tuple(name for name in PROVIDER_ORDER if self.provider(name).enabled)


def load_llm_config() -> LLMConfig:
    anthropic_key = (os.getenv("ANTHROPIC_API_KEY") or "").strip() or None
    openai_key = (os.getenv("OPENAI_API_KEY") or "").strip() or None
    return LLMConfig(
        anthropic=ProviderConfig(
            name="anthropic",
            api_key=anthropic_key,
            models=model_chain(os.getenv("ANTHROPIC_MODEL"), ANTHROPIC_FALLBACK_MODELS),
        ),
        openai=ProviderConfig(
            name="openai",
            api_key=openai_key,
            models=model_chain(os.getenv("OPENAI_MODEL"), OPENAI_FALLBACK_MODELS),
            base_url=(os.getenv("OPENAI_BASE_URL") or "").strip() or None,
        ),
        timeout_s=float(os.getenv("LLM_TIMEOUT_S", "60")),
        max_retries=int(os.getenv("LLM_MAX_RETRIES", "2")),
    )
