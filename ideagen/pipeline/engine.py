"""Generation engine: URL fetch, extract, PRD, GTM, marketing plan, save.

The session row is the checkpoint. Every step writes its artifact back to the
store before the next step starts, and on re-entry the engine walks an ordered
table of ``(artifact present?, step)`` pairs, skipping everything already
produced. Each model-backed step is therefore invoked at most once per
session no matter how often a resume is triggered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from ideagen.billing.usage_store import new_usage_id
from ideagen.errors import (
    FetchFailedError,
    GenerationFailedError,
    MissingInputError,
    PersistenceError,
    SessionConflictError,
    SessionNotFoundError,
)
from ideagen.generate.generator import IdeaGenerator
from ideagen.ingest.url_fetcher import FetchResult, fetch_url_content
from ideagen.schemas.models import (
    TOTAL_STEPS,
    ContentSource,
    GenerationSession,
    SessionStatus,
    Usage,
    UsageLog,
    utcnow,
)
from ideagen.scoring.quality import calculate_quality_score

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], FetchResult]

STEP_MESSAGES = {
    SessionStatus.PENDING: "Starting...",
    SessionStatus.FETCHING_URL: "Fetching content from URL...",
    SessionStatus.EXTRACTING: "Extracting idea data...",
    SessionStatus.GENERATING_PRD: "Generating Product Requirements Document...",
    SessionStatus.GENERATING_GTM: "Generating Go-to-Market Strategy...",
    SessionStatus.GENERATING_MARKETING: "Generating Marketing Plan...",
    SessionStatus.SAVING: "Saving documents...",
    SessionStatus.COMPLETED: "Complete! Documents ready.",
    SessionStatus.FAILED: "Generation failed.",
}

FETCH_STEP = 1
SAVE_STEP = TOTAL_STEPS


@dataclass(frozen=True)
class ModelStep:
    """One model-backed pipeline step."""

    operation: str                  # usage/cost key, e.g. "generate_prd"
    status: SessionStatus           # status while the step is in flight
    number: int                     # current_step while in flight
    artifact: str                   # session field this step fills
    invoke: Callable[["GenerationEngine", GenerationSession], tuple[dict[str, Any], Usage]]

    def is_done(self, session: GenerationSession) -> bool:
        return bool(getattr(session, self.artifact))


def _extract(engine: GenerationEngine, session: GenerationSession) -> tuple[dict[str, Any], Usage]:
    result = engine.generator.extract_idea(session.email_preview, session.fetched_content or "")
    idea = result.idea
    if session.content_url.strip():
        idea = idea.model_copy(update={"original_link": session.content_url.strip()})
    return {"extracted_idea": idea, "quality_score": calculate_quality_score(idea)}, result.usage


def _prd(engine: GenerationEngine, session: GenerationSession) -> tuple[dict[str, Any], Usage]:
    result = engine.generator.generate_prd(session.extracted_idea)
    return {"prd_content": result.content}, result.usage


def _gtm(engine: GenerationEngine, session: GenerationSession) -> tuple[dict[str, Any], Usage]:
    result = engine.generator.generate_gtm(session.extracted_idea)
    return {"gtm_content": result.content}, result.usage


def _marketing(engine: GenerationEngine, session: GenerationSession) -> tuple[dict[str, Any], Usage]:
    result = engine.generator.generate_marketing_plan(session.extracted_idea)
    return {"marketing_content": result.content}, result.usage


MODEL_STEPS: tuple[ModelStep, ...] = (
    ModelStep("extract_idea", SessionStatus.EXTRACTING, 2, "extracted_idea", _extract),
    ModelStep("generate_prd", SessionStatus.GENERATING_PRD, 3, "prd_content", _prd),
    ModelStep("generate_gtm", SessionStatus.GENERATING_GTM, 4, "gtm_content", _gtm),
    ModelStep("generate_marketing", SessionStatus.GENERATING_MARKETING, 5, "marketing_content", _marketing),
)


def _has_content(value: Any) -> bool:
    if isinstance(value, str):
        return bool(value.strip())
    return value is not None


def fetch_is_done(session: GenerationSession) -> bool:
    return (
        not session.content_url.strip()
        or session.fetched_content is not None
        or session.url_fetch_failed
        or session.extracted_idea is not None
    )


class GenerationEngine:
    """Drives one generation session through the pipeline.

    Collaborators are passed in explicitly; the engine reads no settings,
    credentials or current-user state of its own.
    """

    def __init__(
        self,
        session_store,
        generator: IdeaGenerator,
        fetcher: Fetcher = fetch_url_content,
        usage_store=None,
        enforce_version: bool = True,
    ):
        self.store = session_store
        self.generator = generator
        self.fetcher = fetcher
        self.usage_store = usage_store
        self.enforce_version = enforce_version

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def start(
        self,
        owner_id: str,
        email_preview: str,
        content_url: str = "",
        replace_active: bool = False,
    ) -> GenerationSession:
        """Fresh run: open a new session and drive it to completion."""
        session = self.open_session(owner_id, email_preview, content_url, replace_active=replace_active)
        return self.run(session)

    def resume(self, owner_id: str, session_id: str | None = None) -> GenerationSession:
        """Continue ``session_id`` (or the owner's active session) from its last checkpoint."""
        if session_id:
            session = self.store.get(session_id, owner_id)
        else:
            session = self.store.get_active(owner_id)
        if session is None:
            raise SessionNotFoundError(
                f"Session not found: {session_id}" if session_id else "No active session to resume"
            )
        return self.run(session)

    def open_session(
        self,
        owner_id: str,
        email_preview: str,
        content_url: str = "",
        replace_active: bool = False,
    ) -> GenerationSession:
        """Validate input, create the session and fetch the URL if one was given.

        Raises ``MissingInputError`` before anything is stored when both inputs
        are blank, and ``FetchFailedError`` (after marking the session failed)
        when the URL cannot be fetched and there is no email preview to fall
        back on.
        """
        email_preview = email_preview or ""
        content_url = (content_url or "").strip()
        if not email_preview.strip() and not content_url:
            raise MissingInputError("Please provide at least email preview or content URL")

        active = self.store.get_active(owner_id)
        if active is not None:
            if replace_active:
                logger.info("Discarding active session %s for %s", active.id, owner_id)
                self.store.delete(active.id, owner_id)
            else:
                logger.info("Owner %s already has active session %s", owner_id, active.id)

        try:
            session = self.store.create(owner_id, email_preview, content_url)
        except Exception as e:
            logger.exception("Failed to create generation session for %s", owner_id)
            raise PersistenceError(f"Failed to create generation session: {e}") from e
        logger.info("Generation session %s created for %s", session.id, owner_id)

        if content_url:
            return self._fetch(session)
        return self._save(session, {"content_source": ContentSource.EMAIL_PREVIEW})

    def run(self, session: GenerationSession) -> GenerationSession:
        """Walk the step table, executing only the steps whose artifact is missing."""
        if session.status.is_terminal:
            return session

        if not fetch_is_done(session):
            session = self._fetch(session)

        for step in MODEL_STEPS:
            if step.is_done(session):
                continue
            session = self._run_model_step(session, step)
            if session.status.is_terminal:
                return session

        return self._finish(session)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _fetch(self, session: GenerationSession) -> GenerationSession:
        session = self._claim(session, SessionStatus.FETCHING_URL, FETCH_STEP)
        result = self.fetcher(session.content_url)
        has_fallback = bool(session.email_preview.strip())

        if result.success:
            source = ContentSource.BOTH if has_fallback else ContentSource.URL
            return self._save(session, {
                "fetched_content": result.content,
                "content_source": source,
                "url_fetched_at": utcnow(),
                "url_fetch_failed": False,
                "status": SessionStatus.EXTRACTING,
                "current_step": max(session.current_step, FETCH_STEP + 1),
            })

        if has_fallback:
            logger.warning(
                "URL fetch failed for session %s (%s); continuing with email preview",
                session.id, result.error,
            )
            return self._save(session, {
                "url_fetch_failed": True,
                "content_source": ContentSource.EMAIL_PREVIEW,
                "status": SessionStatus.EXTRACTING,
                "current_step": max(session.current_step, FETCH_STEP + 1),
            })

        reason = (result.error or "unknown error").removeprefix("Failed to fetch URL: ")
        message = f"Failed to fetch URL: {reason}. Please provide email preview as fallback."
        self._fail(session, message)
        raise FetchFailedError(message)

    def _run_model_step(self, session: GenerationSession, step: ModelStep) -> GenerationSession:
        session = self._claim(session, step.status, step.number)
        logger.info("Session %s: %s", session.id, STEP_MESSAGES[step.status])

        try:
            fields, usage = step.invoke(self, session)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error("Session %s: %s failed: %s", session.id, step.operation, message)
            self._fail(session, message)
            raise GenerationFailedError(message, step=step.operation) from e

        self._record_usage(session, step.operation, usage)
        if not _has_content(fields.get(step.artifact)):
            message = f"Model returned an empty result for {step.operation}"
            logger.error("Session %s: %s", session.id, message)
            self._fail(session, message)
            raise GenerationFailedError(message, step=step.operation)

        fields["step_costs"] = {**session.step_costs, step.operation: usage.cost_usd}
        fields["status"] = self._next_status(step)
        fields["current_step"] = max(session.current_step, step.number + 1)
        return self._commit_artifact(session, step, fields)

    def _finish(self, session: GenerationSession) -> GenerationSession:
        if not session.has_all_documents:
            message = "Pipeline finished with missing documents"
            self._fail(session, message)
            raise GenerationFailedError(message, step="save")
        if session.status != SessionStatus.SAVING:
            session = self._save(session, {
                "status": SessionStatus.SAVING,
                "current_step": SAVE_STEP,
            })
        session = self._save(session, {
            "status": SessionStatus.COMPLETED,
            "current_step": SAVE_STEP,
            "completed_at": utcnow(),
        })
        logger.info("Generation session %s completed", session.id)
        return session

    @staticmethod
    def _next_status(step: ModelStep) -> SessionStatus:
        idx = MODEL_STEPS.index(step)
        if idx + 1 < len(MODEL_STEPS):
            return MODEL_STEPS[idx + 1].status
        return SessionStatus.SAVING

    # ------------------------------------------------------------------
    # Store writes
    # ------------------------------------------------------------------

    def _claim(self, session: GenerationSession, status: SessionStatus, number: int) -> GenerationSession:
        """Checkpoint the step about to run. Fails fast on a concurrent writer."""
        fields: dict[str, Any] = {}
        if session.status != status and session.status.can_transition_to(status):
            fields["status"] = status
        if number > session.current_step:
            fields["current_step"] = number
        if not fields and not self.enforce_version:
            return session
        # An empty update still bumps the version, so a second resumer of the
        # same row is rejected here, before any model call.
        return self._save(session, fields)

    def _commit_artifact(
        self,
        session: GenerationSession,
        step: ModelStep,
        fields: dict[str, Any],
    ) -> GenerationSession:
        try:
            return self._save(session, fields)
        except SessionConflictError:
            fresh = self.store.get(session.id, session.owner_id)
            if fresh is None:
                raise SessionNotFoundError(f"Session not found: {session.id}")
            if fresh.status.is_terminal or step.is_done(fresh):
                logger.warning(
                    "Session %s: %s result discarded, row already advanced by another writer",
                    session.id, step.operation,
                )
                return fresh
            # The artifact is still empty: keep the paid-for result, but never
            # move status or step backwards.
            merged = {k: v for k, v in fields.items() if k not in ("status", "current_step")}
            merged["step_costs"] = {**fresh.step_costs, step.operation: fields["step_costs"][step.operation]}
            if fresh.status.can_transition_to(fields["status"]):
                merged["status"] = fields["status"]
            merged["current_step"] = max(fresh.current_step, fields["current_step"])
            return self._save(fresh, merged)

    def _save(self, session: GenerationSession, fields: dict[str, Any]) -> GenerationSession:
        expected = session.version if self.enforce_version else None
        try:
            return self.store.update(session.id, session.owner_id, fields, expected_version=expected)
        except (SessionConflictError, SessionNotFoundError):
            raise
        except Exception as e:
            logger.exception("Failed to persist session %s", session.id)
            raise PersistenceError(
                f"Failed to update generation session: {e}",
                session=session.model_copy(update=fields),
            ) from e

    def _fail(self, session: GenerationSession, message: str) -> None:
        try:
            self.store.mark_failed(session.id, session.owner_id, message)
        except Exception:
            logger.exception("Failed to mark session %s as failed", session.id)

    def _record_usage(self, session: GenerationSession, operation: str, usage: Usage) -> None:
        if self.usage_store is None:
            return
        try:
            self.usage_store.record(UsageLog(
                id=new_usage_id(),
                owner_id=session.owner_id,
                operation_type=operation,
                model_used=usage.model,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                total_tokens=usage.total_tokens,
                cost_usd=usage.cost_usd,
                session_id=session.id,
            ))
        except Exception as e:
            logger.warning("Failed to log API usage for session %s: %s", session.id, e)
