from __future__ import annotations

import json
import threading
from typing import Any

from app.ai.config import LLMConfig, ProviderConfig
from app.ai.gateway import LLMGateway, LLMGatewayError
from app.ai.types import LLMResponse
from app.core.record_store import SQLiteRecordStore
from app.schemas.application import ApplicationAnswer, QuestionDefinition
from app.schemas.records import Candidate, Company, Job


class ModelNotFound(Exception):
    status_code = 404


class FakeProvider:
    """Provider double that replays scripted outcomes per model."""

    def __init__(self, name: str, outcomes: dict[str, Any] | None = None, default: Any = "{}"):
        self.name = name
        self.outcomes = dict(outcomes or {})
        self.default = default
        self.calls: list[dict[str, Any]] = []

    def complete(self, *, model: str, prompt: str, temperature: float, max_output_tokens: int) -> str:
        self.calls.append(
            {"model": model, "prompt": prompt, "temperature": temperature, "max_output_tokens": max_output_tokens}
        )
        outcome = self.outcomes.get(model, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def is_model_unavailable(self, exc: Exception) -> bool:
        return getattr(exc, "status_code", None) == 404


def make_config(
    *,
    anthropic_models: tuple[str, ...] = ("claude-a", "claude-b"),
    openai_models: tuple[str, ...] = ("gpt-a", "gpt-b"),
    anthropic_key: str | None = "sk-ant-test",
    openai_key: str | None = "sk-openai-test",
) -> LLMConfig:
    return LLMConfig(
        anthropic=ProviderConfig(name="anthropic", api_key=anthropic_key, models=anthropic_models),
        openai=ProviderConfig(name="openai", api_key=openai_key, models=openai_models),
    )


class ScriptedGateway(LLMGateway):
    """Gateway double returning queued responses and recording prompts."""

    def __init__(self, responses: list[Any] | None = None):
        super().__init__(make_config(), {}, audit_hook=None)
        self._responses = list(responses or [])
        self._lock = threading.Lock()
        self.calls: list[dict[str, Any]] = []

    def push(self, response: Any) -> None:
        with self._lock:
            self._responses.append(response)

    def available_providers(self):
        return ("anthropic",)

    def call(self, prompt, *, temperature=0.3, max_output_tokens=4096, preferred_provider="auto", purpose="general"):
        with self._lock:
            self.calls.append({"prompt": prompt, "temperature": temperature, "purpose": purpose})
            if not self._responses:
                raise LLMGatewayError("LLM call failed: no scripted response left.")
            response = self._responses.pop(0)
        if callable(response):
            response = response(prompt)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            response = json.dumps(response)
        return LLMResponse(text=response, model_used="claude-test", provider_used="anthropic")

    def calls_for(self, purpose: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call["purpose"] == purpose]


def analysis_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "resume_strengths": ["Six years of Python backend work"],
        "resume_weaknesses": [],
        "answers_strengths": ["Clear, tailored cover letter"],
        "answers_weaknesses": [],
        "overall_strengths": ["Strong backend background", "Good communication", "Relevant domain"],
        "overall_weaknesses": ["Limited Kubernetes exposure"],
        "remarks": "Solid candidate with relevant experience.",
        "resume_score": 82,
        "answers_score": 78,
        "overall_match_score": 80,
    }
    payload.update(overrides)
    return payload


def structuring_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "name": "Ada Example",
        "email": "ada@example.com",
        "skills": ["Python", "PostgreSQL"],
        "experience": [
            {"title": "Backend Engineer", "organization": "Acme", "duration": "2018-2024", "description": "APIs"}
        ],
        "education": [{"credential": "BSc Computer Science", "institution": "State University", "period": "2014-2018"}],
        "certifications": [],
    }
    payload.update(overrides)
    return payload


RESUME_TEXT = (
    "Ada Example - Backend Engineer at Acme 2018-2024. Built payment APIs in Python and PostgreSQL. "
    "BSc Computer Science, State University."
)


def seed_store(
    store: SQLiteRecordStore,
    *,
    job_id: str = "job-1",
    candidate_ids: tuple[str, ...] = ("cand-1",),
    private_directives: str | None = None,
) -> Job:
    store.create_company(Company(id="co-1", name="Globex", slug="globex"))
    job = store.create_job(
        Job(
            id=job_id,
            company_id="co-1",
            title="Backend Engineer",
            description="Build and operate Python services.",
            requirements=["5+ years of Python", "SQL"],
            responsibilities=["Own payment APIs"],
            private_directives=private_directives,
            knockout_questions=[QuestionDefinition(id="ko-1", label="Are you authorized to work in the US?")],
            custom_questions=[QuestionDefinition(id="q-why", label="Why Globex?")],
        )
    )
    for index, candidate_id in enumerate(candidate_ids, start=1):
        store.create_candidate(
            Candidate(
                id=candidate_id,
                job_id=job_id,
                name=f"Candidate {index}",
                resume_url=f"https://files.example.com/{candidate_id}.pdf",
                cover_letter="I would love to join Globex.",
                answers=[
                    ApplicationAnswer(question_id="ko-1", kind="knockout", value="Yes"),
                    ApplicationAnswer(question_id="custom-0", kind="custom", value="Payments at scale."),
                ],
            )
        )
    return job


def static_extractor(text: str = RESUME_TEXT):
    calls: list[str] = []

    def _extract(url: str) -> str:
        calls.append(url)
        return text

    _extract.calls = calls  # type: ignore[attr-defined]
    return _extract
