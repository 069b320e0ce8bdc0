"""OpenAI LLM implementation."""

from typing import Any

from openai import OpenAI

from ideagen.llm.base import Completion


class OpenAIProvider:
    """OpenAI chat completion, one user turn per call."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
    ):
        self._client = OpenAI(api_key=api_key)
        self._model = model

    def complete(self, prompt: str, **kwargs: Any) -> Completion:
        # Errors (RateLimitError, APIStatusError, ...) propagate unchanged so the
        # engine can record the SDK message verbatim.
        model = kwargs.get("model") or self._model
        response = self._client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=kwargs.get("max_tokens", 4000),
        )
        msg = response.choices[0].message
        usage = response.usage
        return Completion(
            text=msg.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=model,
        )
