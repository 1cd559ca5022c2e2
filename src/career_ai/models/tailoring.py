"""Pydantic models for resume tailoring output."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field

from career_ai.models.fields import (
    OptStr,
    Score,
    StrList,
    Text,
    coerce_object,
    coerce_object_list,
    score_or_default,
)
from career_ai.models.resume import ParsedResumeRecord

Impact = Literal["low", "medium", "high"]


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value)
    return str(value)


class ChangeRecord(BaseModel):
    section: Text = ""
    field: Text = ""
    before: Annotated[str, BeforeValidator(_stringify)] = Field(
        default="", validation_alias=AliasChoices("before", "original")
    )
    after: Annotated[str, BeforeValidator(_stringify)] = Field(
        default="", validation_alias=AliasChoices("after", "modified")
    )
    reason: Text = ""


class KeywordAlignment(BaseModel):
    matched: StrList = []
    missing: StrList = []
    suggested: StrList = Field(default=[], validation_alias=AliasChoices("suggested", "suggestions"))


class TailoringResult(BaseModel):
    tailored_resume: ParsedResumeRecord
    match_score: Annotated[int, BeforeValidator(score_or_default(50))] = 50
    ats_score: Score = None
    changes: Annotated[list[ChangeRecord], BeforeValidator(coerce_object_list)] = []
    keyword_alignment: Annotated[KeywordAlignment, BeforeValidator(coerce_object)] = Field(
        default_factory=KeywordAlignment
    )
    recommendations: StrList = []
    summary: OptStr = None
    estimated_impact: Impact = "medium"
