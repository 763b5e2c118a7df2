from __future__ import annotations

import logging
import time
from typing import Callable, Mapping

from app.ai.config import PROVIDER_ORDER, LLMConfig
from app.ai.types import CompletionProvider, LLMAttempt, LLMResponse, PreferredProvider, ProviderName
from app.analytics.db import log_llm_call

logger = logging.getLogger(__name__)

AuditHook = Callable[..., None]


class LLMGatewayError(RuntimeError):
    status_code = 502

    def __init__(self, message: str, *, attempts: list[LLMAttempt] | None = None, code: str = "llm_failed"):
        super().__init__(message)
        self.attempts = list(attempts or [])
        self.code = code


class LLMNotConfiguredError(LLMGatewayError):
    status_code = 503

    def __init__(self, message: str = "No LLM provider is configured. Set ANTHROPIC_API_KEY or OPENAI_API_KEY."):
        super().__init__(message, code="llm_not_configured")


def _format_attempts(attempts: list[LLMAttempt]) -> str:
    return "; ".join(f"{a.provider}:{a.model}: {a.error}" for a in attempts)


class LLMGateway:
    """Multi-provider completion with per-provider model fallback."""

    def __init__(
        self,
        config: LLMConfig,
        providers: Mapping[str, CompletionProvider],
        *,
        audit_hook: AuditHook | None = log_llm_call,
    ):
        self._config = config
        self._providers = dict(providers)
        self._audit_hook = audit_hook

    def available_providers(self) -> tuple[ProviderName, ...]:
        return tuple(
            name
            for name in self._config.configured_providers()
            if name in self._providers
        )

    def is_available(self) -> bool:
        return bool(self.available_providers())

    def _provider_order(self, preferred: PreferredProvider) -> list[ProviderName]:
        available = self.available_providers()
        if preferred == "auto" or preferred not in available:
            return [name for name in PROVIDER_ORDER if name in available]
        return [preferred, *[name for name in PROVIDER_ORDER if name in available and name != preferred]]

    def _audit(self, **fields) -> None:
        if self._audit_hook is None:
            return
        try:
            self._audit_hook(**fields)
        except Exception:  # noqa: BLE001
            logger.debug("llm_call_audit_failed", exc_info=True)

    def call(
        self,
        prompt: str,
        *,
        temperature: float = 0.3,
        max_output_tokens: int = 4096,
        preferred_provider: PreferredProvider = "auto",
        purpose: str = "general",
    ) -> LLMResponse:
        order = self._provider_order(preferred_provider)
        if not order:
            self._audit(
                purpose=purpose,
                provider=None,
                model=None,
                status="not_configured",
                attempts=0,
                latency_ms=0,
            )
            raise LLMNotConfiguredError()

        started = time.perf_counter()
        attempts: list[LLMAttempt] = []
        for provider_name in order:
            provider = self._providers[provider_name]
            for model in self._config.provider(provider_name).models:
                try:
                    text = provider.complete(
                        model=model,
                        prompt=prompt,
                        temperature=temperature,
                        max_output_tokens=max_output_tokens,
                    )
                except Exception as exc:  # noqa: BLE001
                    unavailable = provider.is_model_unavailable(exc)
                    attempts.append(
                        LLMAttempt(
                            provider=provider_name,
                            model=model,
                            error=str(exc) or exc.__class__.__name__,
                            model_unavailable=unavailable,
                        )
                    )
                    logger.warning(
                        "llm_attempt_failed purpose=%s provider=%s model=%s model_unavailable=%s: %s",
                        purpose,
                        provider_name,
                        model,
                        unavailable,
                        exc,
                    )
                    if unavailable:
                        continue
                    break

                latency_ms = int((time.perf_counter() - started) * 1000)
                logger.info(
                    "llm_call_succeeded purpose=%s provider=%s model=%s attempts=%s latency_ms=%s",
                    purpose,
                    provider_name,
                    model,
                    len(attempts) + 1,
                    latency_ms,
                )
                self._audit(
                    purpose=purpose,
                    provider=provider_name,
                    model=model,
                    status="ok",
                    attempts=len(attempts) + 1,
                    latency_ms=latency_ms,
                )
                return LLMResponse(
                    text=(text or "").strip(),
                    model_used=model,
                    provider_used=provider_name,
                )

        message = "LLM call failed: all providers and models failed. Attempts: " + _format_attempts(attempts)
        self._audit(
            purpose=purpose,
            provider=None,
            model=None,
            status="failed",
            attempts=len(attempts),
            error=message,
            latency_ms=int((time.perf_counter() - started) * 1000),
        )
        raise LLMGatewayError(message, attempts=attempts)
