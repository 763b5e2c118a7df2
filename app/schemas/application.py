from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator

from app.schemas.coercion import text_or_empty

AnswerKind = Literal["knockout", "custom", "eeo"]

EEO_FIELD_LABELS = {
    "veteranStatus": "Veteran status",
    "disability": "Disability status",
    "gender": "Gender",
    "race": "Race / ethnicity",
}


class QuestionDefinition(BaseModel):
    id: str
    label: str = Field(default="", validation_alias=AliasChoices("label", "question"))


class ApplicationAnswer(BaseModel):
    question_id: str
    kind: AnswerKind
    value: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _value(cls, value: Any) -> str:
        if isinstance(value, bool):
            return "Yes" if value else "No"
        if isinstance(value, (list, tuple)):
            return ", ".join(text_or_empty(item) for item in value if text_or_empty(item))
        return text_or_empty(value)
