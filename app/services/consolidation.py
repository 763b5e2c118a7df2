from __future__ import annotations

from typing import Iterable, Sequence

from app.schemas.application import EEO_FIELD_LABELS, ApplicationAnswer, QuestionDefinition
from app.schemas.records import Candidate, Job

SECTION_SEPARATOR = "\n---\n\n"
_CUSTOM_POSITIONAL_PREFIX = "custom-"


def _lookup_label(question_id: str, questions: Sequence[QuestionDefinition], *, positional: bool) -> str:
    for question in questions:
        if question.id == question_id and question.label.strip():
            return question.label.strip()
    if positional and question_id.startswith(_CUSTOM_POSITIONAL_PREFIX):
        suffix = question_id[len(_CUSTOM_POSITIONAL_PREFIX):]
        if suffix.isdigit():
            index = int(suffix)
            if index < len(questions) and questions[index].label.strip():
                return questions[index].label.strip()
    return question_id


def _answers_of(answers: Iterable[ApplicationAnswer], kind: str) -> list[ApplicationAnswer]:
    return [answer for answer in answers if answer.kind == kind and answer.value.strip()]


def _qa_block(heading: str, kind: str, rows: list[tuple[str, str, str]]) -> str:
    lines = [heading]
    for question_id, label, value in rows:
        lines.append(f"[{kind}:{question_id}] Q: {label}\nA: {value.strip()}\n")
    return "\n".join(lines)


def consolidate_answers(
    cover_letter: str | None,
    answers: Sequence[ApplicationAnswer],
    *,
    knockout_questions: Sequence[QuestionDefinition] = (),
    custom_questions: Sequence[QuestionDefinition] = (),
    portfolio_url: str | None = None,
    linkedin_url: str | None = None,
    current_location: str | None = None,
) -> str:
    """Render every non-resume application input as one labeled text block."""
    parts: list[str] = []

    if cover_letter and cover_letter.strip():
        parts.append(f"COVER LETTER:\n{cover_letter.strip()}\n")

    knockout = _answers_of(answers, "knockout")
    if knockout:
        rows = [
            (a.question_id, _lookup_label(a.question_id, knockout_questions, positional=False), a.value)
            for a in knockout
        ]
        parts.append(_qa_block("KNOCKOUT QUESTION ANSWERS:", "knockout", rows))

    custom = _answers_of(answers, "custom")
    if custom:
        rows = [
            (a.question_id, _lookup_label(a.question_id, custom_questions, positional=True), a.value)
            for a in custom
        ]
        parts.append(_qa_block("CUSTOM QUESTION ANSWERS:", "custom", rows))

    eeo = _answers_of(answers, "eeo")
    if eeo:
        rows = [(a.question_id, EEO_FIELD_LABELS.get(a.question_id, a.question_id), a.value) for a in eeo]
        parts.append(_qa_block("EEO SELF-IDENTIFICATION:", "eeo", rows))

    if portfolio_url and portfolio_url.strip():
        parts.append(f"PORTFOLIO URL: {portfolio_url.strip()}\n")
    if linkedin_url and linkedin_url.strip():
        parts.append(f"LINKEDIN PROFILE: {linkedin_url.strip()}\n")
    if current_location and current_location.strip():
        parts.append(f"LOCATION: {current_location.strip()}\n")

    if not parts:
        return ""
    return SECTION_SEPARATOR.join(parts)


def consolidate_for_candidate(candidate: Candidate, job: Job) -> str:
    return consolidate_answers(
        candidate.cover_letter,
        candidate.answers,
        knockout_questions=job.knockout_questions,
        custom_questions=job.custom_questions,
        portfolio_url=candidate.portfolio_url,
        linkedin_url=candidate.linkedin_url,
        current_location=candidate.current_location,
    )
