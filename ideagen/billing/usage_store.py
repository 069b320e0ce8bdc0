"""API usage log and manual balance storage: Postgres or file-based fallback."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Protocol

from ideagen.config import get_settings
from ideagen.schemas.models import BalanceSetting, UsageLog

logger = logging.getLogger(__name__)


class UsageStore(Protocol):
    def record(self, log: UsageLog) -> UsageLog: ...
    def list(
        self,
        owner_id: str,
        since: datetime | None = None,
        operation_type: str | None = None,
    ) -> list[UsageLog]: ...
    def get_balance(self, owner_id: str) -> BalanceSetting | None: ...
    def set_balance(self, setting: BalanceSetting) -> BalanceSetting: ...


def new_usage_id() -> str:
    return f"usage_{uuid.uuid4().hex[:16]}"


def _keep(log: UsageLog, since: datetime | None, operation_type: str | None) -> bool:
    if since is not None and log.created_at < since:
        return False
    if operation_type and log.operation_type != operation_type:
        return False
    return True


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

class PostgresUsageStore:
    """Persist usage in ``api_usage_logs`` and balances in ``account_balances``."""

    def __init__(self, database_url: str):
        self._url = database_url
        self._conn = self._connect()

    def _connect(self):
        try:
            import psycopg
            from psycopg.rows import dict_row
        except ImportError:
            raise ImportError(
                "psycopg required for Postgres usage store. pip install 'psycopg[binary]'"
            )
        conn = psycopg.connect(self._url, autocommit=True, row_factory=dict_row)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS api_usage_logs (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                operation_type TEXT NOT NULL,
                model_used TEXT NOT NULL DEFAULT '',
                input_tokens INT NOT NULL DEFAULT 0,
                output_tokens INT NOT NULL DEFAULT 0,
                total_tokens INT NOT NULL DEFAULT 0,
                cost_usd DOUBLE PRECISION NOT NULL DEFAULT 0,
                session_id TEXT,
                idea_id TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_api_usage_logs_owner
            ON api_usage_logs (owner_id, created_at DESC)
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS account_balances (
                owner_id TEXT PRIMARY KEY,
                starting_balance_usd DOUBLE PRECISION,
                balance_synced_at TIMESTAMPTZ,
                low_balance_threshold_usd DOUBLE PRECISION NOT NULL DEFAULT 10
            )
        """)
        return conn

    def record(self, log: UsageLog) -> UsageLog:
        self._conn.execute(
            """
            INSERT INTO api_usage_logs
            (id, owner_id, operation_type, model_used, input_tokens, output_tokens,
             total_tokens, cost_usd, session_id, idea_id, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                log.id, log.owner_id, log.operation_type, log.model_used,
                log.input_tokens, log.output_tokens, log.total_tokens, log.cost_usd,
                log.session_id, log.idea_id, log.created_at,
            ),
        )
        return log

    def list(
        self,
        owner_id: str,
        since: datetime | None = None,
        operation_type: str | None = None,
    ) -> list[UsageLog]:
        query = "SELECT * FROM api_usage_logs WHERE owner_id = %s"
        params: list = [owner_id]
        if since is not None:
            query += " AND created_at >= %s"
            params.append(since)
        if operation_type:
            query += " AND operation_type = %s"
            params.append(operation_type)
        query += " ORDER BY created_at DESC"
        rows = self._conn.execute(query, params).fetchall()
        return [UsageLog.model_validate(r) for r in rows]

    def get_balance(self, owner_id: str) -> BalanceSetting | None:
        row = self._conn.execute(
            "SELECT * FROM account_balances WHERE owner_id = %s", (owner_id,),
        ).fetchone()
        return BalanceSetting.model_validate(row) if row else None

    def set_balance(self, setting: BalanceSetting) -> BalanceSetting:
        self._conn.execute(
            """
            INSERT INTO account_balances
            (owner_id, starting_balance_usd, balance_synced_at, low_balance_threshold_usd)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (owner_id) DO UPDATE SET
                starting_balance_usd = EXCLUDED.starting_balance_usd,
                balance_synced_at = EXCLUDED.balance_synced_at,
                low_balance_threshold_usd = EXCLUDED.low_balance_threshold_usd
            """,
            (
                setting.owner_id,
                setting.starting_balance_usd,
                setting.balance_synced_at,
                setting.low_balance_threshold_usd,
            ),
        )
        return setting


# ---------------------------------------------------------------------------
# File-based implementation
# ---------------------------------------------------------------------------

class FileUsageStore:
    """Append-only JSONL usage log plus a JSON map of balances."""

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir) / "usage"
        self._dir.mkdir(parents=True, exist_ok=True)
        self._log_path = self._dir / "usage_logs.jsonl"
        self._balances_path = self._dir / "balances.json"

    def record(self, log: UsageLog) -> UsageLog:
        with open(self._log_path, "a", encoding="utf-8") as f:
            f.write(log.model_dump_json() + "\n")
        return log

    def list(
        self,
        owner_id: str,
        since: datetime | None = None,
        operation_type: str | None = None,
    ) -> list[UsageLog]:
        if not self._log_path.exists():
            return []
        logs: list[UsageLog] = []
        with open(self._log_path, "r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                log = UsageLog.model_validate_json(line)
                if log.owner_id == owner_id and _keep(log, since, operation_type):
                    logs.append(log)
        return sorted(logs, key=lambda x: x.created_at, reverse=True)

    def get_balance(self, owner_id: str) -> BalanceSetting | None:
        data = self._load_balances().get(owner_id)
        return BalanceSetting.model_validate(data) if data else None

    def set_balance(self, setting: BalanceSetting) -> BalanceSetting:
        balances = self._load_balances()
        balances[setting.owner_id] = setting.model_dump(mode="json")
        with open(self._balances_path, "w", encoding="utf-8") as f:
            json.dump(balances, f, indent=2)
        return setting

    def _load_balances(self) -> dict[str, dict]:
        if not self._balances_path.exists():
            return {}
        with open(self._balances_path, "r", encoding="utf-8") as f:
            return json.load(f)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: UsageStore | None = None


def get_usage_store() -> UsageStore:
    """Return singleton usage store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.ideagen_database_url:
        try:
            _store = PostgresUsageStore(settings.ideagen_database_url)
            logger.info("Using Postgres usage store")
        except Exception as e:
            logger.warning("Postgres usage store failed (%s), falling back to file store", e)
            _store = FileUsageStore(settings.data_dir)
    else:
        _store = FileUsageStore(settings.data_dir)
        logger.info("Using file-based usage store (IDEAGEN_DATA_DIR/usage)")
    return _store
