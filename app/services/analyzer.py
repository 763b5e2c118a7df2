from __future__ import annotations

import logging
from typing import Any

from app.ai.gateway import LLMGateway
from app.core.config.scoring import get_scoring_value
from app.schemas.analysis import AnalysisResult, ComplianceAssessment
from app.schemas.coercion import clean_string_list, parse_score, ratio_score, text_or_empty
from app.schemas.records import Job
from app.schemas.resume import ResumeProfile
from app.services.guardrail import compute_ceiling
from app.services.llm_json import parse_json_object
from app.services.signatures import detect_signatures

logger = logging.getLogger(__name__)

ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 4096
RESUME_TEXT_PREVIEW_CHARS = 2000
DEFAULT_REMARKS = "Analysis completed"
NO_COMPLIANCE_REASONING = "No compliance assessment available"

_EMPTY_RESUME_NOTE = (
    "\n\nIMPORTANT: The resume could not be parsed or contains no readable content. "
    "This indicates a corrupted resume with ZERO usable information."
)

_BASE_SHAPE = """  "resume_strengths": ["up to 5 resume-specific strong points, only relevant ones"],
  "resume_weaknesses": ["up to 5 resume-specific weak points, may be empty"],
  "answers_strengths": ["up to 5 strong points from the cover letter and answers"],
  "answers_weaknesses": ["up to 5 weak points from the cover letter and answers, may be empty"],
  "overall_strengths": ["up to 7 prioritized overall strong points"],
  "overall_weaknesses": ["up to 7 prioritized overall weak points, may be empty"],
  "remarks": "2-3 sentence recruiter assessment",
  "resume_score": 0-100,
  "answers_score": 0-100,
  "overall_match_score": 0-100"""

_COMPLIANCE_SHAPE = """,
  "compliance": {
    "meets_requirements": true/false,
    "compliance_score": 0-100,
    "reasoning": "how the candidate meets or misses the private directives"
  }"""

_SCORING_RULES = """SCORING RULES (hard limits):
- A resume is corrupted ONLY if it has ZERO usable content (blank, gibberish, unparseable). Sparse or poorly formatted resumes are NOT corrupted.
- Truly corrupted resume: maximum 40.
- Candidate lacks the required experience: maximum 50.
- Application addressed to the wrong company: reduce the score by 25%.
- Two or more critical issues: maximum 35. Three or more: maximum 30.
- Corrupted resume AND lacking experience AND wrong company: maximum 25.
- Weaknesses outnumber strengths with critical issues: maximum 30.
- Any critical issue: the score cannot reach 50.
- Visa sponsorship and relocation are normal; only penalize them when the private directives explicitly require otherwise.
- If the remarks mention problems, the scores must reflect them."""


def _bullet_lines(items: list[str]) -> str:
    return "\n".join(item for item in items if item.strip())


def format_profile(profile: ResumeProfile) -> str:
    parts: list[str] = []
    contact = [
        ("Name", profile.name),
        ("Email", profile.email),
        ("Phone", profile.phone),
        ("Location", profile.location),
    ]
    if any(value for _, value in contact):
        parts.append("PERSONAL INFO:")
        parts.extend(f"{label}: {value}" for label, value in contact if value)
        parts.append("")
    if profile.skills:
        parts.append(f"SKILLS: {', '.join(profile.skills)}")
        parts.append("")
    if profile.experience:
        parts.append("EXPERIENCE:")
        for idx, entry in enumerate(profile.experience, start=1):
            parts.append(f"{idx}. {entry.title or 'N/A'} at {entry.organization or 'N/A'}")
            if entry.duration:
                parts.append(f"   Duration: {entry.duration}")
            if entry.description:
                parts.append(f"   Description: {entry.description}")
        parts.append("")
    if profile.education:
        parts.append("EDUCATION:")
        for idx, entry in enumerate(profile.education, start=1):
            parts.append(f"{idx}. {entry.credential or 'N/A'} from {entry.institution or 'N/A'}")
            if entry.period:
                parts.append(f"   Period: {entry.period}")
        parts.append("")
    if profile.certifications:
        parts.append(f"CERTIFICATIONS: {', '.join(profile.certifications)}")
        parts.append("")
    raw = profile.raw_text.strip()
    if raw:
        if len(raw) > RESUME_TEXT_PREVIEW_CHARS:
            raw = raw[:RESUME_TEXT_PREVIEW_CHARS] + "... (truncated)"
        parts.append("RESUME TEXT:")
        parts.append(raw)
    return "\n".join(parts)


def build_analysis_prompt(
    profile: ResumeProfile,
    consolidated_answers: str,
    job: Job,
    *,
    company_name: str | None = None,
) -> str:
    directives = job.directives()
    sections = ["You are an expert recruiter analyzing a job application.", ""]
    if company_name:
        sections += [f"HIRING ORGANIZATION: {company_name}", ""]
    if job.title:
        sections += [f"JOB TITLE: {job.title}", ""]
    sections += [
        "JOB DESCRIPTION:",
        job.description,
        "",
        "JOB REQUIREMENTS:",
        _bullet_lines(job.requirements),
        "",
        "JOB RESPONSIBILITIES:",
        _bullet_lines(job.responsibilities),
        "",
    ]
    if directives:
        sections += [
            "PRIVATE DIRECTIVES (internal, HIGH PRIORITY, MUST DOMINATE THE ANALYSIS):",
            directives,
            "",
            "If the candidate does not meet the private directives, reflect it in the weak points "
            "and in the compliance assessment.",
            "",
        ]

    resume_text = format_profile(profile) or "(empty)"
    if profile.is_empty():
        resume_text += _EMPTY_RESUME_NOTE
    sections += [
        "CANDIDATE APPLICATION",
        "",
        "RESUME:",
        resume_text,
        "",
        "COVER LETTER, ANSWERS AND OTHER APPLICATION MATERIALS:",
        consolidated_answers or "No cover letter, answers or other materials provided.",
        "",
        "TASK:",
        "Analyze the resume and the application materials against the job and the private directives (if any). "
        "List only genuine, specific strong and weak points at resume, answers and overall granularity, "
        "write recruiter remarks and score each part from 0 to 100.",
        "",
        _SCORING_RULES,
        "",
        "Return a JSON object with this exact structure:",
        "{\n" + _BASE_SHAPE + (_COMPLIANCE_SHAPE if directives else "") + "\n}",
        "",
    ]
    if directives:
        sections.append("The compliance score is separate from the overall match score.")
    else:
        sections.append('No private directives were provided: do NOT include a "compliance" field.')
    sections.append("Return ONLY valid JSON, no additional text or markdown formatting.")
    return "\n".join(sections)


def _neutral_score() -> float:
    return float(get_scoring_value("analysis.fallback_neutral_score", 50))


def _score_or_ratio(value: Any, strengths: list[str], weaknesses: list[str]) -> tuple[float, bool]:
    score = parse_score(value)
    if score is not None:
        return score, False
    return ratio_score(len(strengths), len(weaknesses), _neutral_score()), True


def _compliance(payload: Any) -> ComplianceAssessment:
    default_score = float(get_scoring_value("analysis.compliance_default_score", 50))
    threshold = float(get_scoring_value("analysis.compliance_meets_threshold", 70))
    if not isinstance(payload, dict):
        return ComplianceAssessment(
            meets_requirements=False,
            compliance_score=default_score,
            reasoning=NO_COMPLIANCE_REASONING,
        )
    score = parse_score(payload.get("compliance_score", payload.get("complianceScore")))
    if score is None:
        score = default_score
    meets = payload.get("meets_requirements", payload.get("meetsRequirements"))
    if not isinstance(meets, bool):
        meets = score >= threshold
    reasoning = text_or_empty(payload.get("reasoning")) or "Compliance assessment completed"
    return ComplianceAssessment(meets_requirements=meets, compliance_score=score, reasoning=reasoning)


def result_from_payload(payload: dict[str, Any], job: Job) -> AnalysisResult:
    """Validate model output field by field into an AnalysisResult."""
    lists = {
        key: clean_string_list(payload.get(key))
        for key in (
            "resume_strengths",
            "resume_weaknesses",
            "answers_strengths",
            "answers_weaknesses",
            "overall_strengths",
            "overall_weaknesses",
        )
    }
    remarks = text_or_empty(payload.get("remarks")) or DEFAULT_REMARKS
    directives = job.directives()

    resume_score, _ = _score_or_ratio(
        payload.get("resume_score"), lists["resume_strengths"], lists["resume_weaknesses"]
    )
    answers_score, _ = _score_or_ratio(
        payload.get("answers_score"), lists["answers_strengths"], lists["answers_weaknesses"]
    )
    overall_score, overall_fallback = _score_or_ratio(
        payload.get("overall_match_score"), lists["overall_strengths"], lists["overall_weaknesses"]
    )
    result = AnalysisResult(
        **lists,
        remarks=remarks,
        resume_score=resume_score,
        answers_score=answers_score,
        overall_match_score=overall_score,
        compliance=_compliance(payload.get("compliance")) if directives else None,
    )
    if not overall_fallback:
        return result

    signatures = detect_signatures(result.weakness_text(), result.remarks_text(), directives)
    ceiling = compute_ceiling(
        signatures,
        strengths=len(result.overall_strengths),
        weaknesses=len(result.overall_weaknesses),
    )
    logger.info(
        "analysis_overall_score_fallback score=%s ceiling=%s signatures=%s",
        overall_score,
        ceiling,
        ",".join(sorted(s.value for s in signatures)) or "-",
    )
    if ceiling is None:
        return result
    return result.model_copy(update={"overall_match_score": round(min(overall_score, ceiling), 2)})


def analyze_application_materials(
    profile: ResumeProfile,
    consolidated_answers: str,
    job: Job,
    *,
    gateway: LLMGateway,
    company_name: str | None = None,
) -> AnalysisResult:
    prompt = build_analysis_prompt(profile, consolidated_answers, job, company_name=company_name)
    response = gateway.call(
        prompt,
        temperature=ANALYSIS_TEMPERATURE,
        max_output_tokens=ANALYSIS_MAX_TOKENS,
        purpose="application_analysis",
    )
    payload = parse_json_object(response.text)
    result = result_from_payload(payload, job)
    logger.info(
        "application_analyzed job_id=%s provider=%s model=%s overall=%s",
        job.id,
        response.provider_used,
        response.model_used,
        result.overall_match_score,
    )
    return result.model_copy(update={"model_used": response.model_used, "provider_used": response.provider_used})
