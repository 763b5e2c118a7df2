from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

from app.core.config.scoring import get_scoring_value
from app.schemas.analysis import AnalysisResult, GuardedScores
from app.services.signatures import Signature, detect_signatures, signature_names

logger = logging.getLogger(__name__)

CRITICAL_TRIAD = frozenset(
    {Signature.CORRUPTED_RESUME, Signature.EXPERIENCE_GAP, Signature.WRONG_ORGANIZATION}
)


@dataclass(frozen=True)
class GuardrailPolicy:
    critical_triad: float = 25.0
    four_or_more_signatures: float = 25.0
    three_signatures: float = 30.0
    two_signatures: float = 35.0
    corrupted_resume_only: float = 40.0
    experience_gap_only: float = 50.0
    weaknesses_dominate: float = 30.0
    any_signature: float = 50.0
    four_or_more_floor: float = 20.0
    wrong_organization_multiplier: float = 0.75
    citizenship_conflict_penalty: float = 15.0
    resume_corrupted_cap: float = 40.0
    resume_experience_gap_cap: float = 50.0
    answers_wrong_organization_multiplier: float = 0.75
    compliance_max_gap: float = 20.0
    compliance_pull_weight: float = 0.5
    compliance_floor_ratio: float = 0.7


def _number(path: str, default: float) -> float:
    value = get_scoring_value(path, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("scoring_config_invalid_number path=%s value=%r", path, value)
        return float(default)


@lru_cache(maxsize=1)
def load_guardrail_policy() -> GuardrailPolicy:
    base = GuardrailPolicy()
    ceilings = "guardrail.ceilings."
    caps = "guardrail.section_caps."
    compliance = "guardrail.compliance."
    return GuardrailPolicy(
        critical_triad=_number(ceilings + "critical_triad", base.critical_triad),
        four_or_more_signatures=_number(ceilings + "four_or_more_signatures", base.four_or_more_signatures),
        three_signatures=_number(ceilings + "three_signatures", base.three_signatures),
        two_signatures=_number(ceilings + "two_signatures", base.two_signatures),
        corrupted_resume_only=_number(ceilings + "corrupted_resume_only", base.corrupted_resume_only),
        experience_gap_only=_number(ceilings + "experience_gap_only", base.experience_gap_only),
        weaknesses_dominate=_number(ceilings + "weaknesses_dominate", base.weaknesses_dominate),
        any_signature=_number(ceilings + "any_signature", base.any_signature),
        four_or_more_floor=_number(ceilings + "four_or_more_floor", base.four_or_more_floor),
        wrong_organization_multiplier=_number(
            "guardrail.wrong_organization_multiplier", base.wrong_organization_multiplier
        ),
        citizenship_conflict_penalty=_number(
            "guardrail.citizenship_conflict_penalty", base.citizenship_conflict_penalty
        ),
        resume_corrupted_cap=_number(caps + "resume_corrupted", base.resume_corrupted_cap),
        resume_experience_gap_cap=_number(caps + "resume_experience_gap", base.resume_experience_gap_cap),
        answers_wrong_organization_multiplier=_number(
            caps + "answers_wrong_organization_multiplier", base.answers_wrong_organization_multiplier
        ),
        compliance_max_gap=_number(compliance + "max_gap", base.compliance_max_gap),
        compliance_pull_weight=_number(compliance + "pull_weight", base.compliance_pull_weight),
        compliance_floor_ratio=_number(compliance + "floor_ratio", base.compliance_floor_ratio),
    )


def compute_ceiling(
    signatures: frozenset[Signature],
    *,
    strengths: int,
    weaknesses: int,
    policy: GuardrailPolicy | None = None,
) -> float | None:
    """Score ceiling for a set of fired signatures; None when nothing fired."""
    if not signatures:
        return None
    p = policy or load_guardrail_policy()
    count = len(signatures)

    ceiling = 100.0
    if CRITICAL_TRIAD <= signatures:
        ceiling = p.critical_triad
    elif count >= 4:
        ceiling = p.four_or_more_signatures
    elif count == 3:
        ceiling = p.three_signatures
    elif count == 2:
        ceiling = p.two_signatures
    elif Signature.CORRUPTED_RESUME in signatures:
        ceiling = p.corrupted_resume_only
    elif Signature.EXPERIENCE_GAP in signatures:
        ceiling = p.experience_gap_only
    elif Signature.WRONG_ORGANIZATION in signatures:
        ceiling = ceiling * p.wrong_organization_multiplier

    if Signature.CITIZENSHIP_CONFLICT in signatures:
        ceiling -= p.citizenship_conflict_penalty

    critical = Signature.CORRUPTED_RESUME in signatures or Signature.EXPERIENCE_GAP in signatures
    if weaknesses > strengths and critical:
        ceiling = min(ceiling, p.weaknesses_dominate)

    ceiling = min(ceiling, p.any_signature)
    if count >= 4:
        ceiling = max(ceiling, p.four_or_more_floor)
    return max(0.0, ceiling)


def _final(value: float) -> float:
    return round(max(0.0, min(100.0, value)), 2)


def apply_guardrail(
    result: AnalysisResult,
    *,
    private_directives: str | None,
    policy: GuardrailPolicy | None = None,
) -> GuardedScores:
    p = policy or load_guardrail_policy()
    directives = (private_directives or "").strip() or None
    signatures = detect_signatures(result.weakness_text(), result.remarks_text(), directives)
    ceiling = compute_ceiling(
        signatures,
        strengths=len(result.overall_strengths),
        weaknesses=len(result.overall_weaknesses),
        policy=p,
    )

    overall = result.overall_match_score
    if ceiling is not None:
        overall = min(overall, ceiling)

    resume = result.resume_score
    if Signature.CORRUPTED_RESUME in signatures:
        resume = min(resume, p.resume_corrupted_cap)
    if Signature.EXPERIENCE_GAP in signatures:
        resume = min(resume, p.resume_experience_gap_cap)

    answers = result.answers_score
    if Signature.WRONG_ORGANIZATION in signatures:
        answers = answers * p.answers_wrong_organization_multiplier

    if directives and result.compliance is not None:
        compliance_score = result.compliance.compliance_score
        if overall - compliance_score > p.compliance_max_gap:
            pulled = overall - p.compliance_pull_weight * (overall - compliance_score)
            overall = max(pulled, p.compliance_floor_ratio * overall)

    guarded = GuardedScores(
        overall_score=_final(overall),
        resume_score=_final(resume),
        answers_score=_final(answers),
        signatures=signature_names(signatures),
        ceiling=ceiling,
    )
    if signatures:
        logger.info(
            "guardrail_applied signatures=%s ceiling=%s raw_overall=%s guarded_overall=%s",
            ",".join(guarded.signatures),
            ceiling,
            result.overall_match_score,
            guarded.overall_score,
        )
    return guarded
