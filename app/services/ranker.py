from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Sequence

from app.ai.gateway import LLMGateway
from app.core.record_store import RecordNotFoundError, RecordStore
from app.schemas.coercion import clean_string_list, parse_score, text_or_empty
from app.schemas.ranking import CandidateSummary, RankEntry, RankingInfo, RankingSummary
from app.schemas.records import Candidate, Job
from app.services.llm_json import parse_json_object

logger = logging.getLogger(__name__)

RANKING_ALGORITHM = "LLM Comparative Ranking v1.0"
RANKING_VERSION = "1.0"
RANKING_METHOD = (
    "Comparative analysis considering resume, application answers, job description, and private "
    "directives. Private directives have dominant weight. No hardcoded scoring weights; the model "
    "determines relative importance."
)
RANKING_TEMPERATURE = 0.2
RANKING_MAX_TOKENS = 4096
ONLY_CANDIDATE_REASONING = "Only candidate for this position"
NOT_RANKED_REASONING = "Candidate not ranked by model"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def candidate_summary(candidate: Candidate) -> CandidateSummary:
    analysis = candidate.analysis
    if analysis is None:
        raise ValueError(f"Candidate {candidate.id} has no analysis to rank.")
    return CandidateSummary(
        candidate_id=candidate.id,
        name=candidate.name or candidate.id,
        resume_strengths=analysis.resume_strengths,
        resume_weaknesses=analysis.resume_weaknesses,
        answers_strengths=analysis.answers_strengths,
        answers_weaknesses=analysis.answers_weaknesses,
        overall_strengths=analysis.overall_strengths,
        overall_weaknesses=analysis.overall_weaknesses,
        remarks=analysis.remarks or "No remarks available",
        compliance=analysis.compliance,
    )


def _format_candidate(index: int, summary: CandidateSummary) -> str:
    if summary.compliance is not None:
        compliance = (
            f"Meets requirements: {summary.compliance.meets_requirements}, "
            f"Score: {summary.compliance.compliance_score}, "
            f"Reasoning: {summary.compliance.reasoning}"
        )
    else:
        compliance = "No private directives specified"
    return "\n".join(
        [
            f"[Candidate {index}]:",
            f"- Name: {summary.name}",
            f"- Candidate ID: {summary.candidate_id}",
            f"- Resume strong points: {'; '.join(summary.resume_strengths)}",
            f"- Resume weak points: {'; '.join(summary.resume_weaknesses)}",
            f"- Answers strong points: {'; '.join(summary.answers_strengths)}",
            f"- Answers weak points: {'; '.join(summary.answers_weaknesses)}",
            f"- Overall strong points: {'; '.join(summary.overall_strengths)}",
            f"- Overall weak points: {'; '.join(summary.overall_weaknesses)}",
            f"- Recruiter remarks: {summary.remarks}",
            f"- Private directives compliance: {compliance}",
            "---",
        ]
    )


def build_ranking_prompt(summaries: Sequence[CandidateSummary], job: Job) -> str:
    directives = job.directives()
    sections = [
        "You are an expert recruiter ranking job candidates.",
        "",
        "JOB DESCRIPTION:",
        job.description,
        "",
        "JOB REQUIREMENTS:",
        "\n".join(job.requirements),
        "",
        "JOB RESPONSIBILITIES:",
        "\n".join(job.responsibilities),
        "",
    ]
    if directives:
        sections += [
            "PRIVATE DIRECTIVES (CRITICAL, MUST DOMINATE RANKING):",
            directives,
            "",
            "Private directives take precedence over every other factor. A candidate who does not meet them "
            "ranks below candidates who do, regardless of other qualifications.",
            "",
        ]
    sections += [
        "CANDIDATES TO RANK:",
        "\n\n".join(_format_candidate(idx, s) for idx, s in enumerate(summaries, start=1)),
        "",
        "TASK:",
        "Rank ALL of these candidates from best to worst fit. Every candidate ID must appear exactly once.",
        "Consider resume and answers together without fixed weights, be fair and unbiased, "
        "and explain the reasoning for each position.",
        "",
        "Return a JSON object with this exact structure:",
        "{",
        '  "ranking": [',
        "    {",
        '      "candidate_id": "id from the list above",',
        '      "rank": 1,',
        '      "ranking_score": 0-100,',
        '      "reasoning": "why the candidate holds this position",',
        '      "key_differentiators": ["what sets this candidate apart, positive or negative"]',
        "    }",
        "  ]",
        "}",
        "",
        f"There are {len(summaries)} candidates. Rank 1 is the best fit.",
        "Return ONLY valid JSON, no additional text or markdown formatting.",
    ]
    return "\n".join(sections)


def _entry_rank(item: dict[str, Any]) -> float:
    value = item.get("rank")
    if isinstance(value, bool):
        return float("inf")
    try:
        return float(value)
    except (TypeError, ValueError):
        return float("inf")


def normalize_ranking(payload: dict[str, Any], candidate_ids: Sequence[str]) -> list[RankEntry]:
    """Turn raw model ranking into a strict 1..N ordering over exactly the given ids."""
    known = set(candidate_ids)
    raw = payload.get("ranking")
    items = raw if isinstance(raw, list) else []

    seen: set[str] = set()
    kept: list[tuple[float, int, dict[str, Any]]] = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        candidate_id = text_or_empty(item.get("candidate_id", item.get("candidateId")))
        if candidate_id not in known or candidate_id in seen:
            continue
        seen.add(candidate_id)
        kept.append((_entry_rank(item), position, item))
    kept.sort(key=lambda row: (row[0], row[1]))

    ordered: list[tuple[str, float, str, list[str]]] = []
    for _, _, item in kept:
        score = parse_score(item.get("ranking_score", item.get("rankingScore")))
        ordered.append(
            (
                text_or_empty(item.get("candidate_id", item.get("candidateId"))),
                score if score is not None else 0.0,
                text_or_empty(item.get("reasoning")),
                clean_string_list(item.get("key_differentiators", item.get("keyDifferentiators"))),
            )
        )

    missing = [candidate_id for candidate_id in candidate_ids if candidate_id not in seen]
    if missing:
        logger.warning("ranking_incomplete missing=%s", ",".join(missing))
    for candidate_id in missing:
        ordered.append((candidate_id, 0.0, NOT_RANKED_REASONING, []))

    return [
        RankEntry(
            candidate_id=candidate_id,
            rank=rank,
            ranking_score=score,
            reasoning=reasoning,
            key_differentiators=differentiators,
            algorithm=RANKING_ALGORITHM,
        )
        for rank, (candidate_id, score, reasoning, differentiators) in enumerate(ordered, start=1)
    ]


def rank_candidates(
    summaries: Sequence[CandidateSummary],
    job: Job,
    *,
    gateway: LLMGateway,
) -> list[RankEntry]:
    if not summaries:
        return []
    if len(summaries) == 1:
        return [
            RankEntry(
                candidate_id=summaries[0].candidate_id,
                rank=1,
                ranking_score=100,
                reasoning=ONLY_CANDIDATE_REASONING,
                key_differentiators=[],
                algorithm=RANKING_ALGORITHM,
            )
        ]

    response = gateway.call(
        build_ranking_prompt(summaries, job),
        temperature=RANKING_TEMPERATURE,
        max_output_tokens=RANKING_MAX_TOKENS,
        purpose="comparative_ranking",
    )
    payload = parse_json_object(response.text)
    entries = normalize_ranking(payload, [summary.candidate_id for summary in summaries])
    logger.info(
        "candidates_ranked job_id=%s count=%s provider=%s model=%s",
        job.id,
        len(entries),
        response.provider_used,
        response.model_used,
    )
    return entries


def rank_candidates_for_job(job_id: str, *, store: RecordStore, gateway: LLMGateway) -> RankingSummary:
    job = store.get_job(job_id)
    if job is None:
        raise RecordNotFoundError("job", job_id)

    candidates = [c for c in store.list_candidates_for_job(job_id) if c.is_rankable()]
    summaries = [candidate_summary(candidate) for candidate in candidates]
    entries = rank_candidates(summaries, job, gateway=gateway)
    ranked_at = _utc_now()
    store.replace_job_ranking(job_id, entries, ranked_at=ranked_at, algorithm=RANKING_ALGORITHM)
    return RankingSummary(
        job_id=job_id,
        ranking=entries,
        algorithm=RANKING_ALGORITHM,
        ranking_method=RANKING_METHOD,
        total_candidates=len(summaries),
        ranked_at=ranked_at,
    )


def get_ranking_info(job_id: str, *, store: RecordStore) -> RankingInfo:
    job = store.get_job(job_id)
    if job is None:
        raise RecordNotFoundError("job", job_id)
    analyzed = sum(1 for candidate in store.list_candidates_for_job(job_id) if candidate.is_rankable())
    return RankingInfo(
        job_id=job_id,
        algorithm=job.ranking_algorithm or RANKING_ALGORITHM,
        ranking_method=RANKING_METHOD,
        version=RANKING_VERSION,
        last_ranked_at=job.last_ranked_at,
        analyzed_candidates=analyzed,
        has_private_directives=job.directives() is not None,
    )
