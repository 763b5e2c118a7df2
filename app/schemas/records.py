from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.analysis import AnalysisResult, GuardedScores
from app.schemas.application import ApplicationAnswer, QuestionDefinition
from app.schemas.resume import ResumeProfile


class Company(BaseModel):
    id: str
    name: str
    slug: str = ""


class Job(BaseModel):
    id: str
    company_id: str | None = None
    title: str = ""
    description: str = ""
    requirements: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)
    private_directives: str | None = None
    knockout_questions: list[QuestionDefinition] = Field(default_factory=list)
    custom_questions: list[QuestionDefinition] = Field(default_factory=list)
    last_ranked_at: datetime | None = None
    ranking_algorithm: str | None = None

    def directives(self) -> str | None:
        text = (self.private_directives or "").strip()
        return text or None


class Candidate(BaseModel):
    id: str
    job_id: str
    name: str = ""
    email: str | None = None
    resume_url: str | None = None
    cover_letter: str | None = None
    answers: list[ApplicationAnswer] = Field(default_factory=list)
    portfolio_url: str | None = None
    linkedin_url: str | None = None
    current_location: str | None = None
    resume_profile: ResumeProfile | None = None
    analysis: AnalysisResult | None = None
    guarded_scores: GuardedScores | None = None
    analyzed_at: datetime | None = None
    rank_position: int | None = None
    ranking_score: float | None = None
    ranking_reasoning: str | None = None
    key_differentiators: list[str] = Field(default_factory=list)
    ranking_algorithm: str | None = None

    def is_rankable(self) -> bool:
        return self.analysis is not None and self.guarded_scores is not None
