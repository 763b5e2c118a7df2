from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from app.ai.gateway import LLMGateway, LLMGatewayError
from app.schemas.resume import ResumeProfile
from app.services.llm_json import LLMResponseFormatError, parse_json_object

logger = logging.getLogger(__name__)

MAX_RESUME_CHARS = 50000
STRUCTURING_TEMPERATURE = 0.1

_PROFILE_FIELDS = ("name", "email", "phone", "location", "skills", "experience", "education", "certifications")

_STRUCTURING_PROMPT = """You are an expert at parsing resumes and extracting structured information.
Extract the following information from the resume text below and return it as a JSON object.

Resume Text:
{resume_text}

Return a JSON object with this exact structure:
{{
  "name": "string or null",
  "email": "string or null",
  "phone": "string or null",
  "location": "string or null",
  "skills": ["skill strings"],
  "experience": [
    {{
      "title": "string or null",
      "organization": "string or null",
      "duration": "string or null (e.g. 'Jan 2020 - Present')",
      "description": "string or null"
    }}
  ],
  "education": [
    {{
      "credential": "string or null (e.g. 'BSc Computer Science')",
      "institution": "string or null",
      "period": "string or null (e.g. '2016-2020')"
    }}
  ],
  "certifications": ["certification strings"]
}}

Rules:
- Only include information explicitly stated in the resume.
- List experience most recent first, with full descriptions.
- Use null when a field cannot be determined.
- Return ONLY valid JSON, no additional text or markdown formatting."""


def _truncate(text: str) -> str:
    if len(text) <= MAX_RESUME_CHARS:
        return text
    return text[:MAX_RESUME_CHARS] + " ... (truncated)"


def build_structuring_prompt(resume_text: str) -> str:
    return _STRUCTURING_PROMPT.format(resume_text=_truncate(resume_text))


def _flatten(payload: dict[str, Any]) -> dict[str, Any]:
    # Some models still nest contact details under personal_info / personalInfo.
    flat = dict(payload)
    for key in ("personal_info", "personalInfo"):
        nested = payload.get(key)
        if isinstance(nested, dict):
            for field in ("name", "email", "phone", "location"):
                flat.setdefault(field, nested.get(field))
    return flat


def profile_from_payload(payload: dict[str, Any], raw_text: str) -> ResumeProfile:
    """Build a profile field by field; a field that fails validation stays empty."""
    flat = _flatten(payload)
    fields: dict[str, Any] = {}
    for name in _PROFILE_FIELDS:
        if name not in flat:
            continue
        try:
            parsed = ResumeProfile.model_validate({name: flat[name]})
        except ValidationError as exc:
            logger.info("resume_field_discarded field=%s: %s", name, exc.errors()[:1])
            continue
        fields[name] = getattr(parsed, name)
    return ResumeProfile(raw_text=raw_text, **fields)


def structure_resume(resume_text: str, *, use_llm: bool, gateway: LLMGateway | None) -> ResumeProfile:
    text = resume_text or ""
    raw_only = ResumeProfile(raw_text=text)
    if not use_llm or not text.strip() or gateway is None:
        return raw_only

    try:
        response = gateway.call(
            build_structuring_prompt(text),
            temperature=STRUCTURING_TEMPERATURE,
            purpose="resume_structuring",
        )
    except LLMGatewayError as exc:
        logger.warning("resume_structuring_llm_failed: %s", exc)
        return raw_only

    try:
        payload = parse_json_object(response.text)
    except LLMResponseFormatError as exc:
        logger.warning(
            "resume_structuring_bad_response provider=%s model=%s: %s",
            response.provider_used,
            response.model_used,
            exc,
        )
        return raw_only

    return profile_from_payload(payload, text)
