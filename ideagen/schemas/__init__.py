"""Pydantic models: single source of truth for all data shapes."""

from ideagen.schemas.models import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    TOTAL_STEPS,
    BalanceSetting,
    ContentSource,
    DocumentResult,
    ExtractedIdea,
    ExtractionResult,
    GenerationSession,
    Idea,
    IdeaStatus,
    SessionStatus,
    Usage,
    UsageLog,
)

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "TOTAL_STEPS",
    "BalanceSetting",
    "ContentSource",
    "DocumentResult",
    "ExtractedIdea",
    "ExtractionResult",
    "GenerationSession",
    "Idea",
    "IdeaStatus",
    "SessionStatus",
    "Usage",
    "UsageLog",
]
