from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from app.ai.gateway import LLMGateway
from app.core.record_store import RecordNotFoundError, RecordStore
from app.parsing.extract import ResumeTextExtractor
from app.schemas.analysis import AnalysisResult, AnalysisSummary, GuardedScores
from app.schemas.ranking import RankingSummary
from app.schemas.records import Candidate, Job
from app.schemas.resume import ResumeProfile
from app.services.analyzer import analyze_application_materials
from app.services.consolidation import consolidate_for_candidate
from app.services.guardrail import apply_guardrail
from app.services.ranker import rank_candidates_for_job
from app.services.ranking_queue import RankingQueue
from app.services.resume_structuring import structure_resume

logger = logging.getLogger(__name__)


class CandidateNotFoundError(RuntimeError):
    status_code = 404

    def __init__(self, candidate_id: str):
        super().__init__(f"Candidate not found: {candidate_id}")
        self.candidate_id = candidate_id
        self.code = "candidate_not_found"


class AnalysisPreconditionError(RuntimeError):
    status_code = 400

    def __init__(self, message: str, *, code: str = "analysis_precondition_failed"):
        super().__init__(message)
        self.code = code


class AnalysisStage(str, Enum):
    PARSED = "parsed"
    CONSOLIDATED = "consolidated"
    ANALYZED = "analyzed"
    GUARDED = "guarded"
    PERSISTED = "persisted"
    RANKING_TRIGGERED = "ranking_triggered"


@dataclass
class ReanalysisReport:
    job_id: str
    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    timed_out: list[str] = field(default_factory=list)
    ranking: RankingSummary | None = None
    ranking_error: str | None = None
    ranking_deferred: bool = False


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationOrchestrator:
    def __init__(
        self,
        store: RecordStore,
        gateway: LLMGateway,
        extract_text: ResumeTextExtractor,
        *,
        ranking_queue: RankingQueue | None = None,
        max_workers: int = 4,
        reanalysis_timeout_s: float = 600.0,
    ):
        self._store = store
        self._gateway = gateway
        self._extract_text = extract_text
        self._ranking_queue = ranking_queue
        self._max_workers = max(1, max_workers)
        self._reanalysis_timeout_s = reanalysis_timeout_s

    def _stage(self, candidate_id: str, stage: AnalysisStage, **fields) -> None:
        extra = " ".join(f"{key}={value}" for key, value in fields.items())
        logger.info("analysis_stage candidate_id=%s stage=%s %s", candidate_id, stage.value, extra)

    def _load_inputs(self, candidate_id: str) -> tuple[Candidate, Job]:
        candidate = self._store.get_candidate(candidate_id)
        if candidate is None:
            raise CandidateNotFoundError(candidate_id)
        job = self._store.get_job(candidate.job_id)
        if job is None:
            raise AnalysisPreconditionError(
                f"Job {candidate.job_id} for candidate {candidate_id} not found.",
                code="job_not_found",
            )
        if not (candidate.resume_url or "").strip():
            raise AnalysisPreconditionError(
                f"Candidate {candidate_id} has no resume on file.",
                code="resume_missing",
            )
        return candidate, job

    def _company_name(self, job: Job) -> str | None:
        if not job.company_id:
            return None
        company = self._store.get_company(job.company_id)
        return company.name if company is not None else None

    def _structure(self, candidate: Candidate, use_llm: bool) -> ResumeProfile:
        text = self._extract_text(candidate.resume_url or "")
        profile = structure_resume(text, use_llm=use_llm, gateway=self._gateway)
        try:
            self._store.update_candidate(candidate.id, resume_profile=profile)
        except Exception:  # noqa: BLE001
            logger.exception("resume_profile_persist_failed candidate_id=%s", candidate.id)
        return profile

    def _persist(
        self,
        candidate_id: str,
        result: AnalysisResult,
        guarded: GuardedScores,
        analyzed_at: datetime,
    ) -> bool:
        try:
            self._store.update_candidate(
                candidate_id,
                analysis=result,
                guarded_scores=guarded,
                analyzed_at=analyzed_at,
            )
        except Exception:  # noqa: BLE001
            logger.exception("analysis_persist_failed candidate_id=%s", candidate_id)
            return False
        return True

    def _trigger_ranking(self, candidate_id: str, job_id: str) -> None:
        if self._ranking_queue is None:
            logger.info("ranking_trigger_skipped candidate_id=%s job_id=%s reason=no_queue", candidate_id, job_id)
            return
        try:
            self._ranking_queue.enqueue(job_id)
        except Exception:  # noqa: BLE001
            logger.exception("ranking_enqueue_failed candidate_id=%s job_id=%s", candidate_id, job_id)
            return
        self._stage(candidate_id, AnalysisStage.RANKING_TRIGGERED, job_id=job_id)

    def analyze_application(
        self,
        candidate_id: str,
        use_llm: bool = True,
        trigger_ranking: bool = True,
        *,
        reuse_profile: bool = False,
    ) -> AnalysisSummary:
        candidate, job = self._load_inputs(candidate_id)

        if reuse_profile and candidate.resume_profile is not None:
            profile = candidate.resume_profile
        else:
            profile = self._structure(candidate, use_llm)
        self._stage(candidate_id, AnalysisStage.PARSED, usable=profile.has_usable_content())

        answers = consolidate_for_candidate(candidate, job)
        self._stage(candidate_id, AnalysisStage.CONSOLIDATED, chars=len(answers))

        result = analyze_application_materials(
            profile,
            answers,
            job,
            gateway=self._gateway,
            company_name=self._company_name(job),
        )
        self._stage(candidate_id, AnalysisStage.ANALYZED, raw_overall=result.overall_match_score)

        guarded = apply_guardrail(result, private_directives=job.directives())
        self._stage(candidate_id, AnalysisStage.GUARDED, overall=guarded.overall_score)

        analyzed_at = _utc_now()
        stored = self._persist(candidate_id, result, guarded, analyzed_at)
        if stored:
            self._stage(candidate_id, AnalysisStage.PERSISTED)
            if trigger_ranking:
                self._trigger_ranking(candidate_id, job.id)

        return AnalysisSummary.from_results(
            candidate_id,
            result,
            guarded,
            stored=stored,
            analyzed_at=analyzed_at if stored else None,
        )

    def get_analysis_results(self, candidate_id: str) -> AnalysisSummary | None:
        candidate = self._store.get_candidate(candidate_id)
        if candidate is None or candidate.analysis is None or candidate.guarded_scores is None:
            return None
        return AnalysisSummary.from_results(
            candidate_id,
            candidate.analysis,
            candidate.guarded_scores,
            stored=True,
            analyzed_at=candidate.analyzed_at,
        )

    def rank_candidates_for_job(self, job_id: str) -> RankingSummary:
        return rank_candidates_for_job(job_id, store=self._store, gateway=self._gateway)

    def _rank_after_stragglers(self, job_id: str, pending: int) -> Callable[[Future], None]:
        """Enqueue one ranking once the last of ``pending`` late futures settles."""
        lock = threading.Lock()
        remaining = [pending]

        def _callback(future: Future) -> None:
            with lock:
                remaining[0] -= 1
                last = remaining[0] == 0
            if not last:
                return
            if self._ranking_queue is None:
                logger.info("late_ranking_skipped job_id=%s reason=no_queue", job_id)
                return
            try:
                self._ranking_queue.enqueue(job_id)
            except Exception:  # noqa: BLE001
                logger.exception("ranking_enqueue_failed job_id=%s", job_id)
                return
            logger.info("late_ranking_enqueued job_id=%s stragglers=%s", job_id, pending)

        return _callback

    def reanalyze_job(self, job_id: str, *, timeout_s: float | None = None) -> ReanalysisReport:
        """Re-score every candidate of a job concurrently, then rank once.

        Candidates still running when the timeout expires keep running. The
        ranking is then deferred to the ranking queue and enqueued once, after
        the last of them finishes.
        """
        job = self._store.get_job(job_id)
        if job is None:
            raise RecordNotFoundError("job", job_id)
        report = ReanalysisReport(job_id=job_id)
        candidate_ids = [c.id for c in self._store.list_candidates_for_job(job_id) if (c.resume_url or "").strip()]
        timeout = self._reanalysis_timeout_s if timeout_s is None else timeout_s

        if candidate_ids:
            executor = ThreadPoolExecutor(
                max_workers=min(self._max_workers, len(candidate_ids)),
                thread_name_prefix="reanalysis",
            )
            futures = {
                executor.submit(
                    self.analyze_application,
                    candidate_id,
                    True,
                    False,
                    reuse_profile=True,
                ): candidate_id
                for candidate_id in candidate_ids
            }
            done, not_done = wait(futures, timeout=timeout)
            for future in done:
                candidate_id = futures[future]
                exc = future.exception()
                if exc is not None:
                    logger.warning("reanalysis_failed job_id=%s candidate_id=%s: %s", job_id, candidate_id, exc)
                    report.failed[candidate_id] = str(exc) or exc.__class__.__name__
                else:
                    report.succeeded.append(candidate_id)
            if not_done:
                report.ranking_deferred = True
                on_settled = self._rank_after_stragglers(job_id, len(not_done))
                for future in not_done:
                    candidate_id = futures[future]
                    report.timed_out.append(candidate_id)
                    logger.warning("reanalysis_timed_out job_id=%s candidate_id=%s", job_id, candidate_id)
                    future.add_done_callback(on_settled)
            executor.shutdown(wait=False)

        if not report.ranking_deferred:
            try:
                report.ranking = self.rank_candidates_for_job(job_id)
            except Exception as exc:  # noqa: BLE001
                logger.exception("reanalysis_ranking_failed job_id=%s", job_id)
                report.ranking_error = str(exc) or exc.__class__.__name__

        logger.info(
            "reanalysis_completed job_id=%s succeeded=%s failed=%s timed_out=%s ranking_deferred=%s",
            job_id,
            len(report.succeeded),
            len(report.failed),
            len(report.timed_out),
            report.ranking_deferred,
        )
        return report

    def update_private_directives(self, job_id: str, directives: str | None) -> ReanalysisReport | None:
        job = self._store.get_job(job_id)
        if job is None:
            raise RecordNotFoundError("job", job_id)
        new_value = (directives or "").strip() or None
        if new_value == job.directives():
            logger.info("private_directives_unchanged job_id=%s", job_id)
            return None
        self._store.update_job(job_id, private_directives=new_value)
        return self.reanalyze_job(job_id)
