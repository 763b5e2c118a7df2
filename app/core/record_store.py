from __future__ import annotations

import json
import os
import sqlite3
import threading
from datetime import datetime
from functools import lru_cache
from typing import Any, Protocol, Sequence, TypeVar

from pydantic import BaseModel

from app.core.config import settings
from app.schemas.ranking import RankEntry
from app.schemas.records import Candidate, Company, Job

ModelT = TypeVar("ModelT", bound=BaseModel)


class RecordNotFoundError(LookupError):
    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class RecordStore(Protocol):
    def get_company(self, company_id: str) -> Company | None: ...

    def create_company(self, company: Company) -> Company: ...

    def get_job(self, job_id: str) -> Job | None: ...

    def create_job(self, job: Job) -> Job: ...

    def update_job(self, job_id: str, **changes: Any) -> Job: ...

    def get_candidate(self, candidate_id: str) -> Candidate | None: ...

    def create_candidate(self, candidate: Candidate) -> Candidate: ...

    def update_candidate(self, candidate_id: str, **changes: Any) -> Candidate: ...

    def list_candidates_for_job(self, job_id: str) -> list[Candidate]: ...

    def replace_job_ranking(
        self,
        job_id: str,
        entries: Sequence[RankEntry],
        *,
        ranked_at: datetime,
        algorithm: str,
    ) -> None: ...


_TABLES = {
    "companies": "company",
    "jobs": "job",
    "candidates": "candidate",
}


class SQLiteRecordStore:
    """Candidates, jobs and companies as JSON payload rows in one SQLite file."""

    def __init__(self, db_path: str):
        self._lock = threading.RLock()
        if db_path != ":memory:":
            directory = os.path.dirname(db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        self._conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._conn.execute("PRAGMA busy_timeout=5000;")
        for table in _TABLES:
            self._conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    id TEXT PRIMARY KEY,
                    parent_id TEXT,
                    payload_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )
        self._conn.execute(
            """
            CREATE INDEX IF NOT EXISTS idx_candidates_parent
            ON candidates (parent_id);
            """
        )

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _load(self, table: str, record_id: str, model: type[ModelT]) -> ModelT | None:
        with self._lock:
            row = self._conn.execute(
                f"SELECT payload_json FROM {table} WHERE id = ?",
                (record_id,),
            ).fetchone()
        if not row:
            return None
        return model.model_validate(json.loads(row[0]))

    def _write(self, table: str, record: BaseModel, parent_id: str | None) -> None:
        self._conn.execute(
            f"""
            INSERT INTO {table} (id, parent_id, payload_json, updated_at)
            VALUES (?, ?, ?, datetime('now'))
            ON CONFLICT(id) DO UPDATE SET
                parent_id = excluded.parent_id,
                payload_json = excluded.payload_json,
                updated_at = excluded.updated_at
            """,
            (record.id, parent_id, record.model_dump_json()),
        )

    def _save(self, table: str, record: BaseModel, parent_id: str | None) -> None:
        with self._lock:
            self._write(table, record, parent_id)

    def _update(self, table: str, record_id: str, model: type[ModelT], changes: dict[str, Any]) -> ModelT:
        with self._lock:
            current = self._load(table, record_id, model)
            if current is None:
                raise RecordNotFoundError(_TABLES[table], record_id)
            # Re-validate so nested dicts and models are coerced the same way.
            merged = {**current.model_dump(), **changes}
            updated = model.model_validate(merged)
            parent_id = getattr(updated, "job_id", None) or getattr(updated, "company_id", None)
            self._write(table, updated, parent_id)
        return updated

    def get_company(self, company_id: str) -> Company | None:
        return self._load("companies", company_id, Company)

    def create_company(self, company: Company) -> Company:
        self._save("companies", company, None)
        return company

    def get_job(self, job_id: str) -> Job | None:
        return self._load("jobs", job_id, Job)

    def create_job(self, job: Job) -> Job:
        self._save("jobs", job, job.company_id)
        return job

    def update_job(self, job_id: str, **changes: Any) -> Job:
        return self._update("jobs", job_id, Job, changes)

    def get_candidate(self, candidate_id: str) -> Candidate | None:
        return self._load("candidates", candidate_id, Candidate)

    def create_candidate(self, candidate: Candidate) -> Candidate:
        self._save("candidates", candidate, candidate.job_id)
        return candidate

    def update_candidate(self, candidate_id: str, **changes: Any) -> Candidate:
        return self._update("candidates", candidate_id, Candidate, changes)

    def list_candidates_for_job(self, job_id: str) -> list[Candidate]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT payload_json FROM candidates WHERE parent_id = ? ORDER BY rowid",
                (job_id,),
            ).fetchall()
        return [Candidate.model_validate(json.loads(row[0])) for row in rows]

    def replace_job_ranking(
        self,
        job_id: str,
        entries: Sequence[RankEntry],
        *,
        ranked_at: datetime,
        algorithm: str,
    ) -> None:
        by_id = {entry.candidate_id: entry for entry in entries}
        with self._lock:
            job = self.get_job(job_id)
            if job is None:
                raise RecordNotFoundError("job", job_id)
            candidates = self.list_candidates_for_job(job_id)
            self._conn.execute("BEGIN")
            try:
                for candidate in candidates:
                    entry = by_id.get(candidate.id)
                    rank_fields: dict[str, Any] = {
                        "rank_position": entry.rank if entry else None,
                        "ranking_score": entry.ranking_score if entry else None,
                        "ranking_reasoning": entry.reasoning if entry else None,
                        "key_differentiators": list(entry.key_differentiators) if entry else [],
                        "ranking_algorithm": entry.algorithm if entry else None,
                    }
                    self._write("candidates", candidate.model_copy(update=rank_fields), candidate.job_id)
                ranked_job = job.model_copy(update={"last_ranked_at": ranked_at, "ranking_algorithm": algorithm})
                self._write("jobs", ranked_job, ranked_job.company_id)
                self._conn.execute("COMMIT")
            except Exception:
                self._conn.execute("ROLLBACK")
                raise


@lru_cache(maxsize=1)
def get_record_store() -> SQLiteRecordStore:
    return SQLiteRecordStore(settings.record_store_db_path)
