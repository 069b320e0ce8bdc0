"""Extraction and document generation via LLM."""

from ideagen.generate.generator import (
    IdeaGenerator,
    LLMIdeaGenerator,
    generator_from_settings,
    parse_idea_json,
    resolve_llm,
)

__all__ = [
    "IdeaGenerator",
    "LLMIdeaGenerator",
    "generator_from_settings",
    "parse_idea_json",
    "resolve_llm",
]
