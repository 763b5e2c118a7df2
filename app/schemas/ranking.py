from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.analysis import ComplianceAssessment

RankingJobState = Literal["idle", "pending", "running", "succeeded", "failed"]


class CandidateSummary(BaseModel):
    candidate_id: str
    name: str
    resume_strengths: list[str] = Field(default_factory=list)
    resume_weaknesses: list[str] = Field(default_factory=list)
    answers_strengths: list[str] = Field(default_factory=list)
    answers_weaknesses: list[str] = Field(default_factory=list)
    overall_strengths: list[str] = Field(default_factory=list)
    overall_weaknesses: list[str] = Field(default_factory=list)
    remarks: str = "No remarks available"
    compliance: ComplianceAssessment | None = None


class RankEntry(BaseModel):
    candidate_id: str
    rank: int = Field(ge=1)
    ranking_score: float = Field(ge=0, le=100)
    reasoning: str = ""
    key_differentiators: list[str] = Field(default_factory=list)
    algorithm: str


class RankingSummary(BaseModel):
    job_id: str
    ranking: list[RankEntry] = Field(default_factory=list)
    algorithm: str
    ranking_method: str
    total_candidates: int
    ranked_at: datetime


class RankingInfo(BaseModel):
    job_id: str
    algorithm: str
    ranking_method: str
    version: str
    last_ranked_at: datetime | None = None
    analyzed_candidates: int
    has_private_directives: bool


class RankingJobStatus(BaseModel):
    job_id: str
    state: RankingJobState = "idle"
    attempts: int = 0
    error: str | None = None
    enqueued_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
