from dataclasses import dataclass
from typing import Literal, Protocol


ProviderName = Literal["anthropic", "openai"]
PreferredProvider = Literal["auto", "anthropic", "openai"]


@dataclass(frozen=True)
class LLMResponse:
    text: str
    model_used: str
    provider_used: ProviderName


@dataclass(frozen=True)
class LLMAttempt:
    provider: str
    model: str
    error: str
    model_unavailable: bool


class CompletionProvider(Protocol):
    name: ProviderName

    def complete(
        self,
        *,
        model: str,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
    ) -> str: ...

    def is_model_unavailable(self, exc: Exception) -> bool: ...
