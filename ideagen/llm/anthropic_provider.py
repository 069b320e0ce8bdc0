"""Anthropic LLM implementation."""

from typing import Any

from anthropic import Anthropic

from ideagen.llm.base import Completion


class AnthropicProvider:
    """Anthropic messages API, one user turn per call."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-20250514",
    ):
        self._client = Anthropic(api_key=api_key)
        self._model = model

    def complete(self, prompt: str, **kwargs: Any) -> Completion:
        model = kwargs.get("model") or self._model
        response = self._client.messages.create(
            model=model,
            max_tokens=kwargs.get("max_tokens", 4000),
            messages=[{"role": "user", "content": prompt}],
        )
        block = response.content[0] if response.content else None
        if block is not None and block.type != "text":
            raise ValueError("Unexpected response type from Claude API")
        return Completion(
            text=block.text if block is not None else "",
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=model,
        )
