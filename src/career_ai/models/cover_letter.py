"""Pydantic model for a generated cover letter."""

from __future__ import annotations

import logging
import math
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from career_ai.models.fields import StrList, Text

logger = logging.getLogger(__name__)

Tone = Literal["professional", "enthusiastic", "formal"]
TONES = ("professional", "enthusiastic", "formal")
DEFAULT_SUBJECT = "Application for Position"
WORDS_PER_MINUTE = 200


def read_time(word_count: int) -> str:
    minutes = max(1, math.ceil(word_count / WORDS_PER_MINUTE))
    return f"{minutes} minute{'s' if minutes > 1 else ''}"


class CoverLetter(BaseModel):
    """Letter text plus metadata. Counts and defaults are filled in when the reply omits them."""

    cover_letter: Text = Field(default="", validation_alias=AliasChoices("cover_letter", "coverLetter"))
    subject: Text = DEFAULT_SUBJECT
    key_points: StrList = Field(default=[], validation_alias=AliasChoices("key_points", "keyPoints"))
    matched_requirements: StrList = Field(
        default=[], validation_alias=AliasChoices("matched_requirements", "matchedRequirements")
    )
    tone: Tone = "professional"
    word_count: int = Field(default=0, validation_alias=AliasChoices("word_count", "wordCount"))
    estimated_read_time: Text = Field(
        default="", validation_alias=AliasChoices("estimated_read_time", "estimatedReadTime")
    )
    suggestions: StrList = []

    @field_validator("tone", mode="before")
    @classmethod
    def _tone(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        if text not in TONES:
            logger.warning("Unknown cover letter tone %r; using professional", value)
            return "professional"
        return text

    @field_validator("word_count", mode="before")
    @classmethod
    def _word_count(cls, value: Any) -> int:
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return 0

    @model_validator(mode="after")
    def _fill_derived(self) -> "CoverLetter":
        if self.word_count < 1:
            self.word_count = len(self.cover_letter.split())
        if not self.estimated_read_time:
            self.estimated_read_time = read_time(self.word_count)
        if not self.subject:
            self.subject = DEFAULT_SUBJECT
        return self

    def summary(self) -> str:
        lines = [
            "Cover Letter Generated Successfully",
            f"Word Count: {self.word_count}",
            f"Tone: {self.tone}",
            f"Estimated Read Time: {self.estimated_read_time}",
        ]
        if self.key_points:
            lines.append("\nKey Qualifications Highlighted:")
            lines += [f"  {i}. {point}" for i, point in enumerate(self.key_points, 1)]
        if self.matched_requirements:
            lines.append(f"\nJob Requirements Addressed: {len(self.matched_requirements)}")
        if self.suggestions:
            lines.append("\nSuggestions for Enhancement:")
            lines += [f"  {i}. {tip}" for i, tip in enumerate(self.suggestions[:3], 1)]
        return "\n".join(lines)
