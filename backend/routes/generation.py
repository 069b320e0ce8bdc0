"""Generation session API: start once, poll, resume after a reload.

POST /api/generation-sessions
  Validates input and fetches the URL in the request, returns the session.
  A background task then runs extract, PRD, GTM, marketing and save.

GET /api/generation-sessions/active
  The owner's in-progress session, so a reloaded page can offer "resume".

POST /api/generation-sessions/{id}/resume
  Continues from the last checkpoint. Documents already produced are
  never regenerated.
"""

from __future__ import annotations

import logging
import threading

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from pydantic import BaseModel

from backend.auth import current_owner
from backend.deps import (
    engine_dep,
    http_error,
    idea_store_dep,
    session_store_dep,
)
from ideagen.config import get_settings
from ideagen.errors import IdeaGenError, SessionConflictError
from ideagen.pipeline import STEP_MESSAGES, GenerationEngine, promote_session
from ideagen.schemas.models import GenerationSession, Idea

logger = logging.getLogger(__name__)
router = APIRouter()

_in_flight: set[str] = set()
_in_flight_lock = threading.Lock()


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class StartRequest(BaseModel):
    email_preview: str = ""
    content_url: str = ""
    replace_active: bool = False


class SessionView(GenerationSession):
    """Session plus a human-readable progress line."""

    message: str = ""

    @classmethod
    def of(cls, session: GenerationSession) -> "SessionView":
        return cls(**session.model_dump(), message=STEP_MESSAGES.get(session.status, ""))


class SweepResponse(BaseModel):
    removed: int


# ---------------------------------------------------------------------------
# Background task
# ---------------------------------------------------------------------------

def _claim(session_id: str) -> None:
    with _in_flight_lock:
        if session_id in _in_flight:
            raise http_error(SessionConflictError(f"Session {session_id} is already running"))
        _in_flight.add(session_id)


def _run_session(engine: GenerationEngine, session: GenerationSession) -> None:
    """Drive the session to completion; failures are recorded on the session."""
    try:
        engine.run(session)
    except IdeaGenError as e:
        logger.warning("Session %s stopped: [%s] %s", session.id, e.code, e.message)
    except Exception:
        logger.exception("Session %s crashed", session.id)
    finally:
        with _in_flight_lock:
            _in_flight.discard(session.id)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post(
    "/generation-sessions",
    response_model=SessionView,
    status_code=status.HTTP_201_CREATED,
    summary="Start a generation session",
)
def start_session(
    body: StartRequest,
    background_tasks: BackgroundTasks,
    owner: str = Depends(current_owner),
    engine: GenerationEngine = Depends(engine_dep),
):
    try:
        session = engine.open_session(
            owner, body.email_preview, body.content_url, replace_active=body.replace_active,
        )
    except IdeaGenError as e:
        raise http_error(e)

    _claim(session.id)
    background_tasks.add_task(_run_session, engine, session)
    return SessionView.of(session)


@router.get("/generation-sessions/active", response_model=SessionView | None)
def get_active_session(owner: str = Depends(current_owner), store=Depends(session_store_dep)):
    session = store.get_active(owner)
    return SessionView.of(session) if session else None


@router.get("/generation-sessions", response_model=list[SessionView])
def list_sessions(owner: str = Depends(current_owner), store=Depends(session_store_dep)):
    return [SessionView.of(s) for s in store.list(owner)]


@router.post("/generation-sessions/sweep", response_model=SweepResponse)
def sweep_sessions(
    days: int | None = None,
    owner: str = Depends(current_owner),
    store=Depends(session_store_dep),
):
    """Remove the owner's completed and failed sessions older than the retention window."""
    retention = days if days is not None else get_settings().session_retention_days
    return SweepResponse(removed=store.sweep(owner, retention))


@router.get("/generation-sessions/{session_id}", response_model=SessionView)
def get_session(session_id: str, owner: str = Depends(current_owner), store=Depends(session_store_dep)):
    session = store.get(session_id, owner)
    if not session:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return SessionView.of(session)


@router.post(
    "/generation-sessions/{session_id}/resume",
    response_model=SessionView,
    status_code=status.HTTP_202_ACCEPTED,
)
def resume_session(
    session_id: str,
    background_tasks: BackgroundTasks,
    owner: str = Depends(current_owner),
    store=Depends(session_store_dep),
    engine: GenerationEngine = Depends(engine_dep),
):
    session = store.get(session_id, owner)
    if not session:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    if session.status.is_terminal:
        return SessionView.of(session)

    _claim(session.id)
    background_tasks.add_task(_run_session, engine, session)
    return SessionView.of(session)


@router.delete("/generation-sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str, owner: str = Depends(current_owner), store=Depends(session_store_dep)):
    if not store.delete(session_id, owner):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")


@router.post("/generation-sessions/{session_id}/promote", response_model=Idea)
def promote(
    session_id: str,
    owner: str = Depends(current_owner),
    store=Depends(session_store_dep),
    idea_store=Depends(idea_store_dep),
):
    """Save a completed session as a permanent idea."""
    session = store.get(session_id, owner)
    if not session:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    try:
        return promote_session(session, idea_store, store, owner)
    except IdeaGenError as e:
        raise http_error(e)
