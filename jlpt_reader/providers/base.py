from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jlpt_reader.config import Settings


@dataclass
class CompletionOptions:
    max_output_tokens: int = 4000
    temperature: float = 0.8
    system_instruction: str | None = None


class CompletionClient(ABC):
    """One-shot text completion.

    Implementations raise ``AuthError``, ``RateLimited`` or ``UpstreamError``
    from ``jlpt_reader.errors``; nothing else may escape ``complete``.
    """

    @abstractmethod
    async def complete(self, prompt: str, options: CompletionOptions) -> str:
        ...

    @abstractmethod
    def name(self) -> str:
        ...


def make_client(settings: Settings) -> CompletionClient:
    """Build the completion client named by ``settings.llm_provider``."""
    if settings.llm_provider == "ollama":
        from jlpt_reader.providers.llm_ollama import OllamaProvider
        return OllamaProvider(base_url=settings.ollama_url, model=settings.llm_model)
    elif settings.llm_provider == "anthropic":
        from jlpt_reader.providers.llm_anthropic import AnthropicProvider
        return AnthropicProvider(model=settings.llm_model)
    elif settings.llm_provider == "openai":
        from jlpt_reader.providers.llm_openai import OpenAIProvider
        return OpenAIProvider(model=settings.llm_model)
    raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")
