"""Permanent idea storage: Postgres or file-based fallback."""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Protocol

from ideagen.config import get_settings
from ideagen.errors import IdeaNotFoundError
from ideagen.schemas.models import IDEA_UPDATABLE_FIELDS, Idea

logger = logging.getLogger(__name__)


class IdeaStore(Protocol):
    def create(self, idea: Idea) -> Idea: ...
    def get(self, idea_id: str, owner_id: str) -> Idea | None: ...
    def list(self, owner_id: str, search: str | None = None) -> list[Idea]: ...
    def update(self, idea_id: str, owner_id: str, fields: dict[str, Any]) -> Idea: ...
    def delete(self, idea_id: str, owner_id: str) -> bool: ...


def new_idea_id() -> str:
    return f"idea_{uuid.uuid4().hex[:16]}"


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - IDEA_UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update idea fields: {sorted(unknown)}")


def _matches(idea: Idea, search: str | None) -> bool:
    if not search:
        return True
    needle = search.lower()
    return needle in idea.title.lower() or needle in idea.summary.lower()


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

class PostgresIdeaStore:
    """Persist ideas in the ``ideas`` table; the full record lives in ``data``."""

    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _connect(self):
        try:
            import psycopg
        except ImportError:
            raise ImportError(
                "psycopg required for Postgres idea store. pip install 'psycopg[binary]'"
            )
        conn = psycopg.connect(self._url, autocommit=True)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS ideas (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                title TEXT NOT NULL,
                summary TEXT NOT NULL DEFAULT '',
                data JSONB NOT NULL,
                date_added TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_ideas_owner_date
            ON ideas (owner_id, date_added DESC)
        """)
        return conn

    def create(self, idea: Idea) -> Idea:
        self._conn.execute(
            """
            INSERT INTO ideas (id, owner_id, title, summary, data, date_added)
            VALUES (%s, %s, %s, %s, %s::jsonb, %s)
            """,
            (
                idea.id,
                idea.owner_id,
                idea.title,
                idea.summary,
                json.dumps(idea.model_dump(mode="json")),
                idea.date_added,
            ),
        )
        return idea

    def get(self, idea_id: str, owner_id: str) -> Idea | None:
        row = self._conn.execute(
            "SELECT data FROM ideas WHERE id = %s AND owner_id = %s",
            (idea_id, owner_id),
        ).fetchone()
        return self._row_to_idea(row) if row else None

    def list(self, owner_id: str, search: str | None = None) -> list[Idea]:
        if search:
            pattern = f"%{search}%"
            rows = self._conn.execute(
                """
                SELECT data FROM ideas
                WHERE owner_id = %s AND (title ILIKE %s OR summary ILIKE %s)
                ORDER BY date_added DESC
                """,
                (owner_id, pattern, pattern),
            ).fetchall()
        else:
            rows = self._conn.execute(
                "SELECT data FROM ideas WHERE owner_id = %s ORDER BY date_added DESC",
                (owner_id,),
            ).fetchall()
        return [self._row_to_idea(r) for r in rows]

    def update(self, idea_id: str, owner_id: str, fields: dict[str, Any]) -> Idea:
        _check_fields(fields)
        idea = self.get(idea_id, owner_id)
        if idea is None:
            raise IdeaNotFoundError(f"Idea not found: {idea_id}")
        data = idea.model_dump()
        data.update(fields)
        updated = Idea.model_validate(data)
        self._conn.execute(
            "UPDATE ideas SET title = %s, summary = %s, data = %s::jsonb WHERE id = %s AND owner_id = %s",
            (
                updated.title,
                updated.summary,
                json.dumps(updated.model_dump(mode="json")),
                idea_id,
                owner_id,
            ),
        )
        return updated

    def delete(self, idea_id: str, owner_id: str) -> bool:
        cur = self._conn.execute(
            "DELETE FROM ideas WHERE id = %s AND owner_id = %s",
            (idea_id, owner_id),
        )
        return cur.rowcount > 0

    def _row_to_idea(self, row) -> Idea:
        data = row[0] if isinstance(row[0], dict) else json.loads(row[0])
        return Idea.model_validate(data)


# ---------------------------------------------------------------------------
# File-based implementation
# ---------------------------------------------------------------------------

class FileIdeaStore:
    """Persist ideas as JSON files, one per idea."""

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir) / "ideas"
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, idea_id: str) -> Path:
        return self._dir / f"{idea_id}.json"

    def create(self, idea: Idea) -> Idea:
        self._write(idea)
        return idea

    def get(self, idea_id: str, owner_id: str) -> Idea | None:
        path = self._path(idea_id)
        if not path.exists():
            return None
        idea = self._read(path)
        return idea if idea.owner_id == owner_id else None

    def list(self, owner_id: str, search: str | None = None) -> list[Idea]:
        ideas = [self._read(p) for p in self._dir.glob("*.json")]
        ideas = [i for i in ideas if i.owner_id == owner_id and _matches(i, search)]
        return sorted(ideas, key=lambda i: i.date_added, reverse=True)

    def update(self, idea_id: str, owner_id: str, fields: dict[str, Any]) -> Idea:
        _check_fields(fields)
        idea = self.get(idea_id, owner_id)
        if idea is None:
            raise IdeaNotFoundError(f"Idea not found: {idea_id}")
        data = idea.model_dump()
        data.update(fields)
        updated = Idea.model_validate(data)
        self._write(updated)
        return updated

    def delete(self, idea_id: str, owner_id: str) -> bool:
        if self.get(idea_id, owner_id) is None:
            return False
        self._path(idea_id).unlink(missing_ok=True)
        return True

    def _write(self, idea: Idea) -> None:
        with open(self._path(idea.id), "w", encoding="utf-8") as f:
            json.dump(idea.model_dump(mode="json"), f, indent=2)

    def _read(self, path: Path) -> Idea:
        with open(path, "r", encoding="utf-8") as f:
            return Idea.model_validate(json.load(f))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: IdeaStore | None = None


def get_idea_store() -> IdeaStore:
    """Return singleton idea store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.ideagen_database_url:
        try:
            _store = PostgresIdeaStore(settings.ideagen_database_url)
            logger.info("Using Postgres idea store")
        except Exception as e:
            logger.warning("Postgres idea store failed (%s), falling back to file store", e)
            _store = FileIdeaStore(settings.data_dir)
    else:
        _store = FileIdeaStore(settings.data_dir)
        logger.info("Using file-based idea store (IDEAGEN_DATA_DIR/ideas)")
    return _store
