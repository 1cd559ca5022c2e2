"""Pydantic models for resume/job analysis output."""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, Field, field_validator, model_validator

from career_ai.models.fields import (
    OptStr,
    Score,
    StrList,
    Text,
    coerce_object,
    coerce_object_list,
    score_or_default,
)

logger = logging.getLogger(__name__)

Priority = Literal["high", "medium", "low"]
PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}

RequiredScore = Annotated[int, BeforeValidator(score_or_default(0))]


class SectionScore(BaseModel):
    score: Score = None
    feedback: Text = ""
    issues: StrList = []


Section = Annotated[SectionScore, BeforeValidator(coerce_object)]


class AnalysisSections(BaseModel):
    summary: Section = Field(default_factory=SectionScore)
    experience: Section = Field(default_factory=SectionScore)
    education: Section = Field(default_factory=SectionScore)
    skills: Section = Field(default_factory=SectionScore)


class KeywordAnalysis(BaseModel):
    target_role: OptStr = None
    target_industry: OptStr = None
    matched_keywords: StrList = []
    missing_keywords: StrList = []
    overused_words: StrList = []


class SuggestionExample(BaseModel):
    before: Text = ""
    after: Text = ""


class Suggestion(BaseModel):
    section: Text = ""
    priority: Priority = "medium"
    issue: Text = ""
    suggestion: Text = ""
    example: Annotated[SuggestionExample, BeforeValidator(coerce_object)] = Field(
        default_factory=SuggestionExample
    )
    impact: Text = ""

    @field_validator("priority", mode="before")
    @classmethod
    def _priority(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        if text not in PRIORITY_ORDER:
            logger.warning("Unknown suggestion priority %r; using medium", value)
            return "medium"
        return text


class JobMatch(BaseModel):
    """Fit between the resume and a specific job, present for job-scoped analyses."""

    overall_match: RequiredScore = 0
    skills_match: Score = None
    experience_match: Score = None
    match_reasons: StrList = []
    gaps: StrList = []


class AnalysisRecord(BaseModel):
    overall_score: RequiredScore = 0
    ats_score: RequiredScore = 0
    readability_score: RequiredScore = 0
    sections: Annotated[AnalysisSections, BeforeValidator(coerce_object)] = Field(
        default_factory=AnalysisSections
    )
    strengths: StrList = []
    weaknesses: StrList = []
    keyword_analysis: Annotated[KeywordAnalysis, BeforeValidator(coerce_object)] = Field(
        default_factory=KeywordAnalysis
    )
    ats_issues: StrList = []
    suggestions: Annotated[list[Suggestion], BeforeValidator(coerce_object_list)] = []
    job_match: JobMatch | None = None

    @model_validator(mode="after")
    def _prioritize(self) -> "AnalysisRecord":
        self.suggestions = sorted(self.suggestions, key=lambda s: PRIORITY_ORDER[s.priority])
        return self

    def section_scores(self) -> dict[str, int | None]:
        return {
            "summary": self.sections.summary.score,
            "experience": self.sections.experience.score,
            "education": self.sections.education.score,
            "skills": self.sections.skills.score,
        }
