from __future__ import annotations

import logging
from dataclasses import dataclass

from app.ai.factory import build_gateway
from app.ai.gateway import LLMGateway
from app.core.config import settings
from app.core.record_store import RecordStore, get_record_store
from app.parsing.extract import HttpResumeTextExtractor
from app.services.orchestrator import ApplicationOrchestrator
from app.services.ranker import rank_candidates_for_job
from app.services.ranking_queue import RankingQueue

logger = logging.getLogger(__name__)


@dataclass
class ScoringRuntime:
    store: RecordStore
    gateway: LLMGateway
    ranking_queue: RankingQueue
    orchestrator: ApplicationOrchestrator

    def start(self) -> None:
        if settings.ranking_queue_enabled:
            self.ranking_queue.start()

    def stop(self) -> None:
        self.ranking_queue.stop()


def build_runtime(
    *,
    store: RecordStore | None = None,
    gateway: LLMGateway | None = None,
    extract_text=None,
) -> ScoringRuntime:
    record_store = store or get_record_store()
    llm = gateway or build_gateway()
    extractor = extract_text or HttpResumeTextExtractor(
        timeout_s=settings.resume_fetch_timeout_s,
        max_bytes=settings.resume_max_bytes,
    )
    ranking_queue = RankingQueue(
        lambda job_id: rank_candidates_for_job(job_id, store=record_store, gateway=llm)
    )
    orchestrator = ApplicationOrchestrator(
        record_store,
        llm,
        extractor,
        ranking_queue=ranking_queue,
        max_workers=settings.reanalysis_max_workers,
        reanalysis_timeout_s=settings.reanalysis_timeout_s,
    )
    logger.info("scoring_runtime_built providers=%s", ",".join(llm.available_providers()) or "-")
    return ScoringRuntime(
        store=record_store,
        gateway=llm,
        ranking_queue=ranking_queue,
        orchestrator=orchestrator,
    )
