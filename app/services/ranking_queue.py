from __future__ import annotations

import logging
import queue
import threading
from datetime import datetime, timezone
from typing import Callable

from app.schemas.ranking import RankingJobStatus

logger = logging.getLogger(__name__)

RankingFn = Callable[[str], object]

_STOP = object()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RankingQueue:
    """Single-worker handoff for job ranking runs with queryable outcomes."""

    def __init__(self, rank_job: RankingFn, *, name: str = "ranking-worker"):
        self._rank_job = rank_job
        self._name = name
        self._queue: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._statuses: dict[str, RankingJobStatus] = {}
        self._pending: set[str] = set()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
        if thread is None:
            return
        self._queue.put(_STOP)
        thread.join(timeout)

    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def enqueue(self, job_id: str) -> RankingJobStatus:
        with self._lock:
            current = self._statuses.get(job_id)
            if job_id in self._pending and current is not None:
                return current
            attempts = current.attempts if current is not None else 0
            status = RankingJobStatus(job_id=job_id, state="pending", attempts=attempts, enqueued_at=_utc_now())
            self._statuses[job_id] = status
            self._pending.add(job_id)
        self._queue.put(job_id)
        logger.info("ranking_enqueued job_id=%s", job_id)
        return status

    def retry(self, job_id: str) -> RankingJobStatus:
        current = self.status(job_id)
        if current.state != "failed":
            raise ValueError(f"Ranking for job {job_id} is '{current.state}', only failed runs can be retried.")
        return self.enqueue(job_id)

    def status(self, job_id: str) -> RankingJobStatus:
        with self._lock:
            status = self._statuses.get(job_id)
        return status if status is not None else RankingJobStatus(job_id=job_id)

    def drain(self) -> None:
        """Block until every queued job has been processed."""
        self._queue.join()

    def _set(self, job_id: str, **changes) -> None:
        with self._lock:
            current = self._statuses.get(job_id) or RankingJobStatus(job_id=job_id)
            self._statuses[job_id] = current.model_copy(update=changes)

    def _process(self, job_id: str) -> None:
        with self._lock:
            self._pending.discard(job_id)
            current = self._statuses.get(job_id) or RankingJobStatus(job_id=job_id)
            self._statuses[job_id] = current.model_copy(
                update={
                    "state": "running",
                    "attempts": current.attempts + 1,
                    "started_at": _utc_now(),
                    "finished_at": None,
                    "error": None,
                }
            )
        try:
            self._rank_job(job_id)
        except Exception as exc:  # noqa: BLE001
            logger.exception("ranking_failed job_id=%s", job_id)
            self._set(job_id, state="failed", error=str(exc) or exc.__class__.__name__, finished_at=_utc_now())
            return
        self._set(job_id, state="succeeded", finished_at=_utc_now())
        logger.info("ranking_succeeded job_id=%s", job_id)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._process(item)
            finally:
                self._queue.task_done()
