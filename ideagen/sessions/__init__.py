"""Generation session storage and retrieval."""

from ideagen.sessions.store import (
    FileSessionStore,
    PostgresSessionStore,
    SessionStore,
    get_session_store,
)

__all__ = ["FileSessionStore", "PostgresSessionStore", "SessionStore", "get_session_store"]
