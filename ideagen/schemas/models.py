"""Pydantic models: single source of truth for sessions, ideas and usage."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

TOTAL_STEPS = 6


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    PENDING = "pending"
    FETCHING_URL = "fetching_url"
    EXTRACTING = "extracting"
    GENERATING_PRD = "generating_prd"
    GENERATING_GTM = "generating_gtm"
    GENERATING_MARKETING = "generating_marketing"
    SAVING = "saving"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED)

    def can_transition_to(self, target: SessionStatus) -> bool:
        """Forward-only through the pipeline order; ``failed`` from any live state."""
        if self.is_terminal:
            return False
        if target == SessionStatus.FAILED:
            return True
        return _FORWARD_ORDER.index(target) >= _FORWARD_ORDER.index(self)


_FORWARD_ORDER = [
    SessionStatus.PENDING,
    SessionStatus.FETCHING_URL,
    SessionStatus.EXTRACTING,
    SessionStatus.GENERATING_PRD,
    SessionStatus.GENERATING_GTM,
    SessionStatus.GENERATING_MARKETING,
    SessionStatus.SAVING,
    SessionStatus.COMPLETED,
]

ACTIVE_STATUSES = tuple(s for s in _FORWARD_ORDER if not s.is_terminal)
TERMINAL_STATUSES = (SessionStatus.COMPLETED, SessionStatus.FAILED)


class ContentSource(str, Enum):
    EMAIL_PREVIEW = "email_preview"
    URL = "url"
    BOTH = "both"


class Usage(BaseModel):
    """Token usage and cost of one model call."""

    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    model: str = ""

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


def _split_list(v: Any) -> list[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    if isinstance(v, list):
        return [str(x).strip() for x in v if str(x).strip()]
    return []


class ExtractedIdea(BaseModel):
    """Structured startup idea produced by the extraction step."""

    title: str = ""
    summary: str = ""
    arr_potential: str = ""
    pricing: str = ""
    target_market: str = ""
    market_size: str = ""
    time_to_mvp: str = ""
    capital_needed: str = ""
    competition_level: str = ""
    required_skills: list[str] = Field(default_factory=list)
    market_type: str = ""
    founder_fit_tags: list[str] = Field(default_factory=list)
    growth_channels: str = ""
    key_risks: str = ""
    key_opportunities: str = ""
    competitors_mentioned: str = ""
    original_link: str = ""

    @field_validator("required_skills", "founder_fit_tags", mode="before")
    @classmethod
    def _normalize_list(cls, v: Any) -> list[str]:
        return _split_list(v)

    @field_validator(
        "title", "summary", "arr_potential", "pricing", "target_market", "market_size",
        "time_to_mvp", "capital_needed", "competition_level", "market_type",
        "growth_channels", "key_risks", "key_opportunities", "competitors_mentioned",
        "original_link",
        mode="before",
    )
    @classmethod
    def _normalize_str(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, list):
            return ", ".join(str(x) for x in v)
        return str(v)


class ExtractionResult(BaseModel):
    idea: ExtractedIdea
    usage: Usage = Field(default_factory=Usage)


class DocumentResult(BaseModel):
    content: str
    usage: Usage = Field(default_factory=Usage)


class GenerationSession(BaseModel):
    """One attempt to turn raw input into finished documents."""

    id: str
    owner_id: str
    email_preview: str = ""
    content_url: str = ""
    status: SessionStatus = SessionStatus.PENDING
    current_step: int = 0
    total_steps: int = TOTAL_STEPS
    extracted_idea: ExtractedIdea | None = None
    prd_content: str | None = None
    gtm_content: str | None = None
    marketing_content: str | None = None
    quality_score: int | None = None
    content_source: ContentSource | None = None
    fetched_content: str | None = None
    url_fetched_at: datetime | None = None
    url_fetch_failed: bool = False
    error_message: str | None = None
    idea_id: str | None = None
    step_costs: dict[str, float] = Field(default_factory=dict)
    version: int = 0
    started_at: datetime = Field(default_factory=utcnow)
    last_updated_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None

    @property
    def has_all_documents(self) -> bool:
        return bool(
            self.extracted_idea
            and self.prd_content
            and self.gtm_content
            and self.marketing_content
        )


# Fields callers may pass to ``SessionStore.update``
SESSION_UPDATABLE_FIELDS = frozenset({
    "status", "current_step", "extracted_idea", "prd_content", "gtm_content",
    "marketing_content", "quality_score", "content_source", "fetched_content",
    "url_fetched_at", "url_fetch_failed", "error_message", "idea_id",
    "step_costs", "completed_at",
})


class IdeaStatus(str, Enum):
    NEW = "new"
    RESEARCHING = "researching"
    BUILDING = "building"
    ARCHIVED = "archived"


class Idea(ExtractedIdea):
    """Permanent record created by promoting a completed session."""

    id: str
    owner_id: str
    source: str = "ideabrowser"
    status: IdeaStatus = IdeaStatus.NEW
    quality_score: int | None = None
    personal_notes: str | None = None
    prd_content: str | None = None
    gtm_content: str | None = None
    marketing_content: str | None = None
    documents_generated: bool = False
    content_source: ContentSource = ContentSource.EMAIL_PREVIEW
    url_fetched_at: datetime | None = None
    url_fetch_failed: bool = False
    extraction_cost: float | None = None
    prd_cost: float | None = None
    gtm_cost: float | None = None
    marketing_cost: float | None = None
    total_cost: float | None = None
    date_added: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)


IDEA_UPDATABLE_FIELDS = frozenset({
    "title", "summary", "status", "personal_notes", "quality_score",
    "prd_content", "gtm_content", "marketing_content", "documents_generated",
    "prd_cost", "gtm_cost", "marketing_cost", "total_cost",
})


class UsageLog(BaseModel):
    """One model call, as recorded for the usage dashboard."""

    model_config = ConfigDict(protected_namespaces=())

    id: str
    owner_id: str
    operation_type: str
    model_used: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0
    session_id: str | None = None
    idea_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class BalanceSetting(BaseModel):
    """Manually entered account balance for one owner."""

    owner_id: str
    starting_balance_usd: float | None = None
    balance_synced_at: datetime | None = None
    low_balance_threshold_usd: float = 10.0
