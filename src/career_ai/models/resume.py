"""Pydantic models for a parsed resume."""

from __future__ import annotations

import logging
import re
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, field_validator, model_validator

from career_ai.models.fields import (
    DateStr,
    Flag,
    Gpa,
    OptStr,
    StrList,
    Text,
    coerce_object,
    coerce_object_list,
    is_present,
)

logger = logging.getLogger(__name__)

SkillLevel = Literal["Beginner", "Intermediate", "Advanced", "Expert"]
_LEVELS = {level.lower(): level for level in ("Beginner", "Intermediate", "Advanced", "Expert")}


class PersonalInfo(BaseModel):
    name: OptStr = None
    email: OptStr = None
    phone: OptStr = None
    location: OptStr = None
    city: OptStr = None
    state: OptStr = None
    country: OptStr = None
    linkedin_url: OptStr = None
    github_url: OptStr = None
    portfolio_url: OptStr = None
    website_url: OptStr = None


class Experience(BaseModel):
    company: Text = ""
    position: Text = ""
    location: OptStr = None
    start_date: DateStr = None
    end_date: DateStr = None
    is_current: Flag = False
    description: OptStr = None
    achievements: StrList = []
    technologies: StrList = []

    @model_validator(mode="before")
    @classmethod
    def _ongoing_end_date(cls, data: Any) -> Any:
        # "Present" as an end date means the role is current
        if isinstance(data, dict) and is_present(data.get("end_date")):
            data = {**data, "end_date": None, "is_current": True}
        return data

    @model_validator(mode="after")
    def _current_has_no_end(self) -> "Experience":
        if self.is_current and self.end_date is not None:
            self.end_date = None
        return self


class Education(BaseModel):
    institution: Text = ""
    degree: Text = ""
    field_of_study: Text = ""
    location: OptStr = None
    start_date: DateStr = None
    end_date: DateStr = None
    is_current: Flag = False
    gpa: Gpa = None
    honors: StrList = []
    coursework: StrList = []


class Skill(BaseModel):
    name: Text = ""
    category: Text = "Other"
    level: SkillLevel | None = None

    @field_validator("category", mode="after")
    @classmethod
    def _default_category(cls, value: str) -> str:
        return value or "Other"

    @field_validator("level", mode="before")
    @classmethod
    def _level(cls, value: Any) -> str | None:
        if value is None:
            return None
        level = _LEVELS.get(str(value).strip().lower())
        if level is None:
            logger.warning("Unknown skill level %r; dropped", value)
        return level


class Certification(BaseModel):
    name: Text = ""
    issuing_organization: Text = ""
    issue_date: DateStr = None
    expiry_date: DateStr = None
    credential_id: OptStr = None


def _named_items(value: Any, info) -> list:
    # Bare strings are common for skills, sometimes as one comma-separated line
    if isinstance(value, str):
        value = re.split(r"[,;\n]", value)
    if isinstance(value, (list, tuple)):
        value = [{"name": item} if isinstance(item, str) else item for item in value]
    return coerce_object_list(value, info)


def _drop_unnamed(items: list) -> list:
    kept = [item for item in items if item.name]
    if len(kept) != len(items):
        logger.warning("Dropped %d entries without a name", len(items) - len(kept))
    return kept


ExperienceList = Annotated[list[Experience], BeforeValidator(coerce_object_list)]
EducationList = Annotated[list[Education], BeforeValidator(coerce_object_list)]
SkillList = Annotated[list[Skill], BeforeValidator(_named_items), AfterValidator(_drop_unnamed)]
CertificationList = Annotated[list[Certification], BeforeValidator(_named_items), AfterValidator(_drop_unnamed)]


class ParsedResumeRecord(BaseModel):
    """Structured resume. Collections are always present, possibly empty."""

    personal_info: Annotated[PersonalInfo, BeforeValidator(coerce_object)] = Field(default_factory=PersonalInfo)
    summary: OptStr = None
    experiences: ExperienceList = []
    educations: EducationList = []
    skills: SkillList = []
    certifications: CertificationList = []

    @model_validator(mode="after")
    def _single_current_role(self) -> "ParsedResumeRecord":
        current = [exp for exp in self.experiences if exp.is_current]
        if len(current) > 1:
            # Entries are most recent first; keep the first as the current role
            logger.warning("%d experiences marked current; keeping only the first", len(current))
            for exp in current[1:]:
                exp.is_current = False
        return self

    def company_names(self) -> set[str]:
        return {e.company.strip().lower() for e in self.experiences if e.company.strip()}

    def institution_names(self) -> set[str]:
        return {e.institution.strip().lower() for e in self.educations if e.institution.strip()}

    def current_experience(self) -> Experience | None:
        return next((e for e in self.experiences if e.is_current), None)
