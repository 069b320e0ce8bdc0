"""Model-call collaborators: idea extraction and the three long-form documents.

Each call returns its result together with the token usage and USD cost of
that call, so the pipeline can account for spend per step.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Protocol

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ideagen.billing.costs import DEFAULT_PRICING, Pricing, usage_for
from ideagen.llm.base import Completion, LLMProvider
from ideagen.schemas.models import DocumentResult, ExtractedIdea, ExtractionResult

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

FOUNDER_FIT_TAGS = [
    "technical_founder",
    "design_founder",
    "marketing_founder",
    "quick_shipper",
    "bootstrapper",
    "funded",
    "nights_weekends",
    "hardware_experience",
    "b2b_sales",
]

EXTRACT_MAX_TOKENS = 2000
DOCUMENT_MAX_TOKENS = 4000


class IdeaGenerator(Protocol):
    """The four model-backed capabilities the pipeline drives."""

    def extract_idea(self, email_preview: str, full_content: str) -> ExtractionResult: ...
    def generate_prd(self, idea: ExtractedIdea) -> DocumentResult: ...
    def generate_gtm(self, idea: ExtractedIdea) -> DocumentResult: ...
    def generate_marketing_plan(self, idea: ExtractedIdea) -> DocumentResult: ...


def _strip_code_fence(raw: str) -> str:
    s = raw.strip()
    if s.startswith("```"):
        s = re.sub(r"^```\w*\n?", "", s)
        s = re.sub(r"\n?```\s*$", "", s)
    return s.strip()


def parse_idea_json(raw: str) -> ExtractedIdea:
    """Parse the extraction response into an ExtractedIdea.

    Tolerates a markdown code fence and leading/trailing prose around the
    JSON object.
    """
    text = _strip_code_fence(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise ValueError("Could not parse idea data from model response")
        data = json.loads(text[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("Model response is not a JSON object")
    return ExtractedIdea.model_validate(data)


class LLMIdeaGenerator:
    """IdeaGenerator backed by an LLMProvider and jinja2 prompt templates."""

    def __init__(
        self,
        llm: LLMProvider,
        pricing: Pricing = DEFAULT_PRICING,
        prompts_dir: Path = PROMPTS_DIR,
    ):
        self._llm = llm
        self._pricing = pricing
        self._env = Environment(
            loader=FileSystemLoader(str(prompts_dir)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, template: str, **context) -> str:
        return self._env.get_template(template).render(**context)

    def _usage(self, completion: Completion):
        return usage_for(
            completion.input_tokens,
            completion.output_tokens,
            model=completion.model,
            pricing=self._pricing,
        )

    def extract_idea(self, email_preview: str, full_content: str) -> ExtractionResult:
        prompt = self.render(
            "extract_idea.j2",
            email_preview=email_preview,
            full_content=full_content,
            founder_fit_tags=FOUNDER_FIT_TAGS,
        )
        completion = self._llm.complete(prompt, max_tokens=EXTRACT_MAX_TOKENS)
        return ExtractionResult(idea=parse_idea_json(completion.text), usage=self._usage(completion))

    def _document(self, template: str, idea: ExtractedIdea) -> DocumentResult:
        prompt = self.render(template, idea=idea)
        completion = self._llm.complete(prompt, max_tokens=DOCUMENT_MAX_TOKENS)
        if not completion.text.strip():
            raise ValueError("Model returned an empty document")
        return DocumentResult(content=completion.text, usage=self._usage(completion))

    def generate_prd(self, idea: ExtractedIdea) -> DocumentResult:
        return self._document("generate_prd.j2", idea)

    def generate_gtm(self, idea: ExtractedIdea) -> DocumentResult:
        return self._document("generate_gtm.j2", idea)

    def generate_marketing_plan(self, idea: ExtractedIdea) -> DocumentResult:
        return self._document("generate_marketing.j2", idea)


def resolve_llm(settings, llm_provider: str | None = None, llm_model: str | None = None):
    """Return (provider_instance, provider_name, model_name)."""
    from ideagen.llm import get_provider

    provider_name = (llm_provider or settings.ideagen_llm_provider).lower()
    if provider_name == "openai":
        api_key = settings.openai_api_key
        default_model = settings.ideagen_openai_model
    else:
        api_key = settings.anthropic_api_key
        default_model = settings.ideagen_anthropic_model

    if not api_key:
        raise ValueError(f"API key not configured for provider '{provider_name}'.")
    model = llm_model or default_model
    return get_provider(provider_name, api_key=api_key, model=model), provider_name, model


def generator_from_settings(settings, llm_provider: str | None = None) -> LLMIdeaGenerator:
    llm, _, _ = resolve_llm(settings, llm_provider)
    pricing = Pricing(
        input_per_million=settings.input_cost_per_million,
        output_per_million=settings.output_cost_per_million,
    )
    return LLMIdeaGenerator(llm, pricing=pricing)
