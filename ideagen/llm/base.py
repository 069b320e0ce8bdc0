"""Abstract LLM provider protocol."""

from typing import Any, Protocol

from pydantic import BaseModel


class Completion(BaseModel):
    """Raw completion text plus the token counts reported by the API."""

    text: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""


class LLMProvider(Protocol):
    """Protocol for LLM backends (Anthropic, OpenAI)."""

    def complete(self, prompt: str, **kwargs: Any) -> Completion:
        """Return the completion for a single user prompt."""
        ...
