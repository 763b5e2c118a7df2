from __future__ import annotations

import logging

from app.ai.config import LLMConfig, load_llm_config
from app.ai.gateway import LLMGateway
from app.ai.providers import claude_provider, openai_provider
from app.ai.types import CompletionProvider

logger = logging.getLogger(__name__)

_PROVIDER_BUILDERS = {
    "anthropic": claude_provider.from_config,
    "openai": openai_provider.from_config,
}


def build_providers(config: LLMConfig) -> dict[str, CompletionProvider]:
    providers: dict[str, CompletionProvider] = {}
    for name in config.configured_providers():
        builder = _PROVIDER_BUILDERS[name]
        providers[name] = builder(
            config.provider(name),
            timeout_s=config.timeout_s,
            max_retries=config.max_retries,
        )
    if not providers:
        logger.warning("llm_gateway_unconfigured: no provider credentials found")
    return providers


def build_gateway(config: LLMConfig | None = None) -> LLMGateway:
    cfg = config or load_llm_config()
    return LLMGateway(cfg, build_providers(cfg))
