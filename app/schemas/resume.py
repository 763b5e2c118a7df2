from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.schemas.coercion import clean_string_list, optional_text, text_or_empty

USABLE_RAW_TEXT_CHARS = 50


class ExperienceEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = ""
    organization: str = Field(default="", validation_alias=AliasChoices("organization", "company"))
    duration: str = ""
    description: str = ""

    @field_validator("title", "organization", "duration", "description", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return text_or_empty(value)


class EducationEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    credential: str = Field(default="", validation_alias=AliasChoices("credential", "degree"))
    institution: str = ""
    period: str = Field(default="", validation_alias=AliasChoices("period", "year"))

    @field_validator("credential", "institution", "period", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return text_or_empty(value)


def _entries(value: Any, model: type[BaseModel]) -> list[Any]:
    if not isinstance(value, (list, tuple)):
        return []
    entries = []
    for item in value:
        if isinstance(item, model):
            entries.append(item)
        elif isinstance(item, dict):
            entry = model.model_validate(item)
            if any(entry.model_dump().values()):
                entries.append(entry)
    return entries


class ResumeProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    skills: list[str] = Field(default_factory=list)
    experience: list[ExperienceEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    raw_text: str = ""

    @field_validator("name", "email", "phone", "location", mode="before")
    @classmethod
    def _optional(cls, value: Any) -> str | None:
        return optional_text(value)

    @field_validator("skills", "certifications", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> list[str]:
        return clean_string_list(value)

    @field_validator("experience", mode="before")
    @classmethod
    def _experience(cls, value: Any) -> list[Any]:
        return _entries(value, ExperienceEntry)

    @field_validator("education", mode="before")
    @classmethod
    def _education(cls, value: Any) -> list[Any]:
        return _entries(value, EducationEntry)

    @field_validator("raw_text", mode="before")
    @classmethod
    def _raw(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    def has_usable_content(self) -> bool:
        if len(self.raw_text.strip()) > USABLE_RAW_TEXT_CHARS:
            return True
        return bool(self.skills or self.experience or self.education)

    def is_empty(self) -> bool:
        return not self.has_usable_content()
