"""Promote completed sessions into permanent Ideas and regenerate saved documents."""

from __future__ import annotations

import logging

from ideagen.billing.usage_store import new_usage_id
from ideagen.errors import GenerationFailedError, SessionNotReadyError
from ideagen.ideas.store import new_idea_id
from ideagen.schemas.models import (
    ContentSource,
    GenerationSession,
    Idea,
    SessionStatus,
    UsageLog,
)
from ideagen.scoring.quality import calculate_quality_score

logger = logging.getLogger(__name__)


def _cost(session: GenerationSession, operation: str) -> float | None:
    return session.step_costs.get(operation)


def build_idea(session: GenerationSession, owner_id: str) -> Idea:
    idea = session.extracted_idea
    quality = session.quality_score
    if quality is None:
        quality = calculate_quality_score(idea)
    total = sum(session.step_costs.values()) if session.step_costs else None
    return Idea(
        **idea.model_dump(),
        id=new_idea_id(),
        owner_id=owner_id,
        quality_score=quality,
        prd_content=session.prd_content,
        gtm_content=session.gtm_content,
        marketing_content=session.marketing_content,
        documents_generated=True,
        content_source=session.content_source or ContentSource.EMAIL_PREVIEW,
        url_fetched_at=session.url_fetched_at,
        url_fetch_failed=session.url_fetch_failed,
        extraction_cost=_cost(session, "extract_idea"),
        prd_cost=_cost(session, "generate_prd"),
        gtm_cost=_cost(session, "generate_gtm"),
        marketing_cost=_cost(session, "generate_marketing"),
        total_cost=total,
    )


def promote_session(session: GenerationSession, idea_store, session_store, owner_id: str) -> Idea:
    """Save a completed session's artifacts as a new Idea and back-link it.

    Idempotent: a session whose ``idea_id`` still resolves returns that Idea.
    """
    if session.status != SessionStatus.COMPLETED or not session.has_all_documents:
        raise SessionNotReadyError(
            f"Session {session.id} is not ready to save (status: {session.status.value})"
        )

    if session.idea_id:
        existing = idea_store.get(session.idea_id, owner_id)
        if existing is not None:
            return existing
        logger.warning("Session %s points at missing idea %s; saving again", session.id, session.idea_id)

    idea = idea_store.create(build_idea(session, owner_id))
    session_store.mark_completed(session.id, owner_id, idea.id)
    logger.info("Session %s saved as idea %s", session.id, idea.id)
    return idea


# operation key, generator method, idea document field, idea cost field
REGENERATED_DOCUMENTS = (
    ("generate_prd", "generate_prd", "prd_content", "prd_cost"),
    ("generate_gtm", "generate_gtm", "gtm_content", "gtm_cost"),
    ("generate_marketing", "generate_marketing_plan", "marketing_content", "marketing_cost"),
)


def regenerate_documents(idea: Idea, generator, idea_store, usage_store=None) -> Idea:
    """Generate a fresh PRD, GTM strategy and marketing plan from the idea's fields.

    The idea is only updated once all three documents are back; a failing or
    empty call raises ``GenerationFailedError`` and leaves it untouched.
    """
    fields: dict = {}
    for operation, method, content_field, cost_field in REGENERATED_DOCUMENTS:
        try:
            result = getattr(generator, method)(idea)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error("Idea %s: %s failed: %s", idea.id, operation, message)
            raise GenerationFailedError(message, step=operation) from e

        _log_usage(usage_store, idea, operation, result.usage)
        if not result.content.strip():
            raise GenerationFailedError(f"Model returned an empty result for {operation}", step=operation)
        fields[content_field] = result.content
        fields[cost_field] = result.usage.cost_usd

    fields["documents_generated"] = True
    fields["total_cost"] = (idea.extraction_cost or 0.0) + sum(
        fields[cost_field] for _, _, _, cost_field in REGENERATED_DOCUMENTS
    )
    updated = idea_store.update(idea.id, idea.owner_id, fields)
    logger.info("Idea %s documents regenerated", idea.id)
    return updated


def _log_usage(usage_store, idea: Idea, operation: str, usage) -> None:
    if usage_store is None:
        return
    try:
        usage_store.record(UsageLog(
            id=new_usage_id(),
            owner_id=idea.owner_id,
            operation_type=operation,
            model_used=usage.model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            total_tokens=usage.total_tokens,
            cost_usd=usage.cost_usd,
            idea_id=idea.id,
        ))
    except Exception as e:
        logger.warning("Failed to log API usage for idea %s: %s", idea.id, e)
