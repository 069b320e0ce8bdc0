"""Failure taxonomy for the generation workflow.

Every error carries a stable ``code`` so the HTTP layer and the CLI can
report it without string matching.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ideagen.schemas.models import GenerationSession


class IdeaGenError(Exception):
    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingInputError(IdeaGenError):
    """Neither an email preview nor a URL was supplied."""

    code = "missing_input"


class FetchFailedError(IdeaGenError):
    """URL fetch failed and there is no free text to fall back on."""

    code = "fetch_failed"


class GenerationFailedError(IdeaGenError):
    """A model-backed step raised; the session has been marked failed."""

    code = "generation_failed"

    def __init__(self, message: str, step: str = ""):
        super().__init__(message)
        self.step = step


class PersistenceError(IdeaGenError):
    """A session store write failed.

    ``session`` holds the in-memory state including any progress made by the
    step that could not be saved.
    """

    code = "persistence_failed"

    def __init__(self, message: str, session: GenerationSession | None = None):
        super().__init__(message)
        self.session = session


class SessionNotFoundError(IdeaGenError):
    code = "session_not_found"


class SessionConflictError(IdeaGenError):
    """The stored session changed since it was read (version mismatch)."""

    code = "session_conflict"


class SessionNotReadyError(IdeaGenError):
    """Promotion requested for a session that has not finished generating."""

    code = "session_not_ready"


class IdeaNotFoundError(IdeaGenError):
    code = "idea_not_found"
