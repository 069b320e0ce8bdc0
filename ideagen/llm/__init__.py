"""LLM adapter layer: Anthropic and OpenAI behind a common protocol."""

from ideagen.llm.anthropic_provider import AnthropicProvider
from ideagen.llm.base import Completion, LLMProvider
from ideagen.llm.openai_provider import OpenAIProvider


def get_provider(provider_name: str, **kwargs: object) -> LLMProvider:
    """Return the configured LLM provider. provider_name: 'anthropic' | 'openai'."""
    if provider_name.lower() == "openai":
        return OpenAIProvider(**kwargs)
    return AnthropicProvider(**kwargs)


__all__ = ["Completion", "LLMProvider", "AnthropicProvider", "OpenAIProvider", "get_provider"]
