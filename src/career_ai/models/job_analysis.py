"""Pydantic models for job posting analysis."""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, field_validator

from career_ai.models.analysis import RequiredScore
from career_ai.models.fields import Score, StrList, Text, coerce_object

logger = logging.getLogger(__name__)

RoleLevel = Literal["entry", "mid", "senior", "lead", "executive"]
ROLE_LEVELS = ("entry", "mid", "senior", "lead", "executive")
SALARY_NOT_DISCLOSED = "Salary not disclosed"


class PostingAnalysis(BaseModel):
    role_level: RoleLevel = Field(default="mid", validation_alias=AliasChoices("role_level", "roleLevel"))
    key_responsibilities: StrList = Field(
        default=[], validation_alias=AliasChoices("key_responsibilities", "keyResponsibilities")
    )
    required_skills: StrList = Field(default=[], validation_alias=AliasChoices("required_skills", "requiredSkills"))
    preferred_skills: StrList = Field(
        default=[], validation_alias=AliasChoices("preferred_skills", "preferredSkills")
    )
    red_flags: StrList = Field(default=[], validation_alias=AliasChoices("red_flags", "redFlags"))
    highlights: StrList = []

    @field_validator("role_level", mode="before")
    @classmethod
    def _role_level(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        if text.startswith("junior"):
            return "entry"
        if text.startswith(("principal", "staff")):
            return "lead"
        if text not in ROLE_LEVELS:
            logger.warning("Unknown role level %r; using mid", value)
            return "mid"
        return text


class MatchAnalysis(BaseModel):
    """Candidate fit, only present when a resume was supplied."""

    overall_match: RequiredScore = Field(default=0, validation_alias=AliasChoices("overall_match", "overallMatch"))
    skills_match: Score = Field(default=None, validation_alias=AliasChoices("skills_match", "skillsMatch"))
    experience_match: Score = Field(
        default=None, validation_alias=AliasChoices("experience_match", "experienceMatch")
    )
    match_reasons: StrList = Field(default=[], validation_alias=AliasChoices("match_reasons", "matchReasons"))
    gaps: StrList = []
    recommendations: StrList = []


class SalaryInsights(BaseModel):
    estimated_range: Text = Field(default="", validation_alias=AliasChoices("estimated_range", "estimatedRange"))
    market_comparison: Text = Field(
        default=SALARY_NOT_DISCLOSED, validation_alias=AliasChoices("market_comparison", "marketComparison")
    )
    factors: StrList = []


class JobAnalysisRecord(BaseModel):
    analysis: Annotated[PostingAnalysis, BeforeValidator(coerce_object)] = Field(default_factory=PostingAnalysis)
    match_analysis: MatchAnalysis | None = Field(
        default=None, validation_alias=AliasChoices("match_analysis", "matchAnalysis")
    )
    salary_insights: Annotated[SalaryInsights, BeforeValidator(coerce_object)] = Field(
        default_factory=SalaryInsights, validation_alias=AliasChoices("salary_insights", "salaryInsights")
    )
    application_tips: StrList = Field(
        default=[], validation_alias=AliasChoices("application_tips", "applicationTips")
    )

    def summary(self) -> str:
        """Short plain-text report of the analysis."""
        lines = [
            "Job Analysis Summary:",
            f"- Role Level: {self.analysis.role_level}",
            f"- Required Skills: {len(self.analysis.required_skills)}",
            f"- Preferred Skills: {len(self.analysis.preferred_skills)}",
            f"- Red Flags: {len(self.analysis.red_flags)}",
            f"- Highlights: {len(self.analysis.highlights)}",
        ]
        match = self.match_analysis
        if match is not None:
            lines += [
                "",
                "Match Analysis:",
                f"- Overall Match: {match.overall_match}%",
                f"- Skills Match: {_percent(match.skills_match)}",
                f"- Experience Match: {_percent(match.experience_match)}",
                f"- Gaps Identified: {len(match.gaps)}",
            ]
        salary = self.salary_insights
        lines += ["", f"Salary: {salary.estimated_range or 'unknown'} ({salary.market_comparison})"]
        return "\n".join(lines)


def _percent(value: int | None) -> str:
    return "n/a" if value is None else f"{value}%"
