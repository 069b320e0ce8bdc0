"""Generation session storage: Postgres (preferred) or file-based fallback."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Protocol

from ideagen.config import get_settings
from ideagen.errors import SessionConflictError, SessionNotFoundError
from ideagen.schemas.models import (
    ACTIVE_STATUSES,
    SESSION_UPDATABLE_FIELDS,
    TERMINAL_STATUSES,
    GenerationSession,
    SessionStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def create(self, owner_id: str, email_preview: str, content_url: str) -> GenerationSession: ...
    def get(self, session_id: str, owner_id: str) -> GenerationSession | None: ...
    def update(
        self,
        session_id: str,
        owner_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> GenerationSession: ...
    def get_active(self, owner_id: str) -> GenerationSession | None: ...
    def list(self, owner_id: str) -> list[GenerationSession]: ...
    def mark_completed(self, session_id: str, owner_id: str, idea_id: str) -> GenerationSession: ...
    def mark_failed(self, session_id: str, owner_id: str, message: str) -> GenerationSession: ...
    def delete(self, session_id: str, owner_id: str) -> bool: ...
    def sweep(
        self,
        owner_id: str,
        older_than_days: int = 3,
        statuses: Iterable[SessionStatus] = TERMINAL_STATUSES,
    ) -> int: ...


def _new_session_id() -> str:
    return f"sess_{uuid.uuid4().hex[:16]}"


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - SESSION_UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update session fields: {sorted(unknown)}")


class _StoreHelpers:
    """Operations expressed in terms of ``update``; shared by both backends."""

    def mark_completed(self, session_id: str, owner_id: str, idea_id: str) -> GenerationSession:
        return self.update(session_id, owner_id, {
            "status": SessionStatus.COMPLETED,
            "completed_at": utcnow(),
            "idea_id": idea_id,
        })

    def mark_failed(self, session_id: str, owner_id: str, message: str) -> GenerationSession:
        return self.update(session_id, owner_id, {
            "status": SessionStatus.FAILED,
            "error_message": message,
            "completed_at": utcnow(),
        })


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

_COLUMNS = (
    "id, owner_id, email_preview, content_url, status, current_step, total_steps, "
    "extracted_idea, prd_content, gtm_content, marketing_content, quality_score, "
    "content_source, fetched_content, url_fetched_at, url_fetch_failed, error_message, "
    "idea_id, step_costs, version, started_at, last_updated_at, completed_at"
)
_JSON_COLUMNS = {"extracted_idea", "step_costs"}


class PostgresSessionStore(_StoreHelpers):
    """Persist sessions in Postgres. Survives restarts."""

    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _connect(self):
        try:
            import psycopg
            from psycopg.rows import dict_row
        except ImportError:
            raise ImportError(
                "psycopg required for Postgres session store. pip install 'psycopg[binary]'"
            )
        conn = psycopg.connect(self._url, autocommit=True, row_factory=dict_row)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS generation_sessions (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                email_preview TEXT NOT NULL DEFAULT '',
                content_url TEXT NOT NULL DEFAULT '',
                status TEXT NOT NULL DEFAULT 'pending',
                current_step INT NOT NULL DEFAULT 0,
                total_steps INT NOT NULL DEFAULT 6,
                extracted_idea JSONB,
                prd_content TEXT,
                gtm_content TEXT,
                marketing_content TEXT,
                quality_score INT,
                content_source TEXT,
                fetched_content TEXT,
                url_fetched_at TIMESTAMPTZ,
                url_fetch_failed BOOLEAN NOT NULL DEFAULT FALSE,
                error_message TEXT,
                idea_id TEXT,
                step_costs JSONB NOT NULL DEFAULT '{}',
                version INT NOT NULL DEFAULT 0,
                started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                last_updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                completed_at TIMESTAMPTZ
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_generation_sessions_owner_status
            ON generation_sessions (owner_id, status, started_at DESC)
        """)
        return conn

    def create(self, owner_id: str, email_preview: str, content_url: str) -> GenerationSession:
        row = self._conn.execute(
            f"""
            INSERT INTO generation_sessions (id, owner_id, email_preview, content_url, status, current_step)
            VALUES (%s, %s, %s, %s, 'pending', 0)
            RETURNING {_COLUMNS}
            """,
            (_new_session_id(), owner_id, email_preview, content_url),
        ).fetchone()
        return GenerationSession.model_validate(row)

    def get(self, session_id: str, owner_id: str) -> GenerationSession | None:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM generation_sessions WHERE id = %s AND owner_id = %s",
            (session_id, owner_id),
        ).fetchone()
        return GenerationSession.model_validate(row) if row else None

    def update(
        self,
        session_id: str,
        owner_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> GenerationSession:
        _check_fields(fields)
        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            if name in _JSON_COLUMNS:
                assignments.append(f"{name} = %s::jsonb")
                params.append(json.dumps(_to_json(value)) if value is not None else None)
            else:
                assignments.append(f"{name} = %s")
                params.append(value.value if hasattr(value, "value") else value)
        assignments.append("version = version + 1")
        assignments.append("last_updated_at = NOW()")

        where = "id = %s AND owner_id = %s"
        params.extend([session_id, owner_id])
        if expected_version is not None:
            where += " AND version = %s"
            params.append(expected_version)

        row = self._conn.execute(
            f"UPDATE generation_sessions SET {', '.join(assignments)} WHERE {where} RETURNING {_COLUMNS}",
            params,
        ).fetchone()
        if row:
            return GenerationSession.model_validate(row)
        if self.get(session_id, owner_id) is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        raise SessionConflictError(
            f"Session {session_id} was modified by another writer (expected version {expected_version})"
        )

    def get_active(self, owner_id: str) -> GenerationSession | None:
        row = self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM generation_sessions
            WHERE owner_id = %s AND status = ANY(%s)
            ORDER BY started_at DESC LIMIT 1
            """,
            (owner_id, [s.value for s in ACTIVE_STATUSES]),
        ).fetchone()
        return GenerationSession.model_validate(row) if row else None

    def list(self, owner_id: str) -> list[GenerationSession]:
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM generation_sessions WHERE owner_id = %s ORDER BY started_at DESC",
            (owner_id,),
        ).fetchall()
        return [GenerationSession.model_validate(r) for r in rows]

    def delete(self, session_id: str, owner_id: str) -> bool:
        cur = self._conn.execute(
            "DELETE FROM generation_sessions WHERE id = %s AND owner_id = %s",
            (session_id, owner_id),
        )
        return cur.rowcount > 0

    def sweep(
        self,
        owner_id: str,
        older_than_days: int = 3,
        statuses: Iterable[SessionStatus] = TERMINAL_STATUSES,
    ) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        cur = self._conn.execute(
            "DELETE FROM generation_sessions"
            " WHERE owner_id = %s AND started_at < %s AND status = ANY(%s)",
            (owner_id, cutoff, [SessionStatus(s).value for s in statuses]),
        )
        return cur.rowcount


def _to_json(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return value


# ---------------------------------------------------------------------------
# File-based implementation (fallback when no Postgres)
# ---------------------------------------------------------------------------

class FileSessionStore(_StoreHelpers):
    """Persist sessions as JSON files, one per session."""

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir) / "sessions"
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        return self._dir / f"{session_id}.json"

    def create(self, owner_id: str, email_preview: str, content_url: str) -> GenerationSession:
        session = GenerationSession(
            id=_new_session_id(),
            owner_id=owner_id,
            email_preview=email_preview,
            content_url=content_url,
        )
        self._write(session)
        return session

    def get(self, session_id: str, owner_id: str) -> GenerationSession | None:
        session = self._read(session_id)
        if session is None or session.owner_id != owner_id:
            return None
        return session

    def update(
        self,
        session_id: str,
        owner_id: str,
        fields: dict[str, Any],
        expected_version: int | None = None,
    ) -> GenerationSession:
        _check_fields(fields)
        session = self.get(session_id, owner_id)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        if expected_version is not None and session.version != expected_version:
            raise SessionConflictError(
                f"Session {session_id} was modified by another writer "
                f"(expected version {expected_version}, found {session.version})"
            )
        data = session.model_dump()
        data.update(fields)
        data["version"] = session.version + 1
        data["last_updated_at"] = utcnow()
        updated = GenerationSession.model_validate(data)
        self._write(updated)
        return updated

    def get_active(self, owner_id: str) -> GenerationSession | None:
        active = [s for s in self.list(owner_id) if s.status in ACTIVE_STATUSES]
        return active[0] if active else None

    def list(self, owner_id: str) -> list[GenerationSession]:
        sessions = [s for s in self._all() if s.owner_id == owner_id]
        return sorted(sessions, key=lambda s: s.started_at, reverse=True)

    def delete(self, session_id: str, owner_id: str) -> bool:
        if self.get(session_id, owner_id) is None:
            return False
        self._path(session_id).unlink(missing_ok=True)
        return True

    def sweep(
        self,
        owner_id: str,
        older_than_days: int = 3,
        statuses: Iterable[SessionStatus] = TERMINAL_STATUSES,
    ) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
        wanted = {SessionStatus(s) for s in statuses}
        removed = 0
        for session in self.list(owner_id):
            if session.started_at < cutoff and session.status in wanted:
                self._path(session.id).unlink(missing_ok=True)
                removed += 1
        return removed

    def _all(self) -> list[GenerationSession]:
        out = []
        for path in self._dir.glob("*.json"):
            session = self._read(path.stem)
            if session is not None:
                out.append(session)
        return out

    def _write(self, session: GenerationSession) -> None:
        with open(self._path(session.id), "w", encoding="utf-8") as f:
            json.dump(session.model_dump(mode="json"), f, indent=2)

    def _read(self, session_id: str) -> GenerationSession | None:
        path = self._path(session_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return GenerationSession.model_validate(json.load(f))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Return singleton session store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.ideagen_database_url:
        try:
            _store = PostgresSessionStore(settings.ideagen_database_url)
            logger.info("Using Postgres session store")
        except Exception as e:
            logger.warning("Postgres session store failed (%s), falling back to file store", e)
            _store = FileSessionStore(settings.data_dir)
    else:
        _store = FileSessionStore(settings.data_dir)
        logger.info("Using file-based session store (IDEAGEN_DATA_DIR/sessions)")
    return _store
