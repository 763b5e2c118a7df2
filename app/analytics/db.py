from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.core.config import settings


def _utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _get_db_path() -> Path:
    return Path(settings.analytics_db_path)


def init_db() -> None:
    if not settings.analytics_enabled:
        return
    db_path = _get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS llm_calls (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                created_at TEXT NOT NULL,
                purpose TEXT NOT NULL,
                provider TEXT,
                model TEXT,
                status TEXT NOT NULL,
                attempts INTEGER NOT NULL,
                error TEXT,
                latency_ms INTEGER
            )
            """
        )
        conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_llm_calls_created_at
            ON llm_calls (created_at)
            """
        )
        conn.commit()
    purge_old_records()


def log_llm_call(
    *,
    purpose: str,
    provider: str | None,
    model: str | None,
    status: str,
    attempts: int,
    error: str | None = None,
    latency_ms: int | None = None,
) -> None:
    if not settings.analytics_enabled:
        return
    db_path = _get_db_path()
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO llm_calls (
                created_at, purpose, provider, model, status, attempts, error, latency_ms
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                _utc_now(),
                purpose,
                provider,
                model,
                status,
                attempts,
                (error or "")[:2000] or None,
                latency_ms,
            ),
        )
        conn.commit()


def purge_old_records() -> dict[str, int]:
    if not settings.analytics_enabled:
        return {"llm_calls": 0}

    db_path = _get_db_path()
    retention = max(1, int(settings.analytics_retention_days))
    deleted = {"llm_calls": 0}
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM llm_calls WHERE created_at < datetime('now', ?)",
            (f"-{retention} days",),
        )
        deleted["llm_calls"] = int(cur.rowcount or 0)
        conn.commit()
    return deleted


def _row_to_dict(cursor: sqlite3.Cursor, row: tuple) -> dict[str, Any]:
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def get_llm_usage_summary() -> dict[str, Any]:
    if not settings.analytics_enabled:
        return {"enabled": False}
    db_path = _get_db_path()
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute(
            """
            SELECT purpose, provider, model, status, COUNT(*) AS calls, AVG(latency_ms) AS avg_latency_ms
            FROM llm_calls
            WHERE created_at >= datetime('now', '-7 days')
            GROUP BY purpose, provider, model, status
            ORDER BY calls DESC
            """
        )
        rows = [_row_to_dict(cur, row) for row in cur.fetchall()]
    return {"enabled": True, "last_7_days": rows}
