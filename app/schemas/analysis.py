from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.schemas.coercion import clamp_score, clean_string_list


class ComplianceAssessment(BaseModel):
    meets_requirements: bool
    compliance_score: float = Field(ge=0, le=100)
    reasoning: str = ""


class AnalysisResult(BaseModel):
    resume_strengths: list[str] = Field(default_factory=list)
    resume_weaknesses: list[str] = Field(default_factory=list)
    answers_strengths: list[str] = Field(default_factory=list)
    answers_weaknesses: list[str] = Field(default_factory=list)
    overall_strengths: list[str] = Field(default_factory=list)
    overall_weaknesses: list[str] = Field(default_factory=list)
    remarks: str = "Analysis completed"
    resume_score: float = Field(ge=0, le=100)
    answers_score: float = Field(ge=0, le=100)
    overall_match_score: float = Field(ge=0, le=100)
    compliance: ComplianceAssessment | None = None
    model_used: str | None = None
    provider_used: str | None = None

    @field_validator(
        "resume_strengths",
        "resume_weaknesses",
        "answers_strengths",
        "answers_weaknesses",
        "overall_strengths",
        "overall_weaknesses",
        mode="before",
    )
    @classmethod
    def _points(cls, value: Any) -> list[str]:
        return clean_string_list(value)

    @field_validator("resume_score", "answers_score", "overall_match_score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> float:
        return round(clamp_score(value), 2)

    def weakness_text(self) -> str:
        return ". ".join(self.overall_weaknesses + self.resume_weaknesses + self.answers_weaknesses)

    def remarks_text(self) -> str:
        parts = [self.remarks]
        if self.compliance is not None and self.compliance.reasoning:
            parts.append(self.compliance.reasoning)
        return ". ".join(parts)


class GuardedScores(BaseModel):
    overall_score: float = Field(ge=0, le=100)
    resume_score: float = Field(ge=0, le=100)
    answers_score: float = Field(ge=0, le=100)
    signatures: list[str] = Field(default_factory=list)
    ceiling: float | None = None


class AnalysisSummary(BaseModel):
    candidate_id: str
    stored: bool
    resume_strengths: list[str] = Field(default_factory=list)
    resume_weaknesses: list[str] = Field(default_factory=list)
    answers_strengths: list[str] = Field(default_factory=list)
    answers_weaknesses: list[str] = Field(default_factory=list)
    overall_strengths: list[str] = Field(default_factory=list)
    overall_weaknesses: list[str] = Field(default_factory=list)
    remarks: str = ""
    compliance: ComplianceAssessment | None = None
    final_score: float
    resume_score: float
    answers_score: float
    signatures: list[str] = Field(default_factory=list)
    analyzed_at: datetime | None = None

    @classmethod
    def from_results(
        cls,
        candidate_id: str,
        result: AnalysisResult,
        guarded: GuardedScores,
        *,
        stored: bool,
        analyzed_at: datetime | None,
    ) -> "AnalysisSummary":
        return cls(
            candidate_id=candidate_id,
            stored=stored,
            resume_strengths=result.resume_strengths,
            resume_weaknesses=result.resume_weaknesses,
            answers_strengths=result.answers_strengths,
            answers_weaknesses=result.answers_weaknesses,
            overall_strengths=result.overall_strengths,
            overall_weaknesses=result.overall_weaknesses,
            remarks=result.remarks,
            compliance=result.compliance,
            final_score=guarded.overall_score,
            resume_score=guarded.resume_score,
            answers_score=guarded.answers_score,
            signatures=guarded.signatures,
            analyzed_at=analyzed_at,
        )
