"""Pydantic models for mock interview questions, answer feedback and session reports."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from career_ai.models.analysis import RequiredScore
from career_ai.models.fields import OptStr, Score, StrList, Text, coerce_object_list

logger = logging.getLogger(__name__)

QuestionCategory = Literal["behavioral", "technical", "situational", "problem-solving", "cultural-fit"]
QUESTION_CATEGORIES = ("behavioral", "technical", "situational", "problem-solving", "cultural-fit")
Difficulty = Literal["easy", "medium", "hard"]
DIFFICULTIES = ("easy", "medium", "hard")
ReadinessLevel = Literal["highly-ready", "ready", "needs-practice"]
READINESS_LEVELS = ("highly-ready", "ready", "needs-practice")


def readiness_for(score: int) -> str:
    if score >= 85:
        return "highly-ready"
    if score >= 70:
        return "ready"
    return "needs-practice"


def _choice(value: Any, choices: tuple[str, ...], default: str, label: str) -> str:
    text = str(value or "").strip().lower().replace(" ", "-").replace("_", "-")
    if text not in choices:
        logger.warning("Unknown %s %r; using %s", label, value, default)
        return default
    return text


class InterviewQuestion(BaseModel):
    id: Text = ""
    question: Text = ""
    category: QuestionCategory = "behavioral"
    difficulty: Difficulty = "medium"
    key_points_to_include: StrList = Field(
        default=[], validation_alias=AliasChoices("key_points_to_include", "keyPointsToInclude")
    )
    evaluation_criteria: StrList = Field(
        default=[], validation_alias=AliasChoices("evaluation_criteria", "evaluationCriteria")
    )

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value: Any) -> str:
        return _choice(value, QUESTION_CATEGORIES, "behavioral", "question category")

    @field_validator("difficulty", mode="before")
    @classmethod
    def _difficulty(cls, value: Any) -> str:
        return _choice(value, DIFFICULTIES, "medium", "difficulty")


class QuestionSet(BaseModel):
    """Generated questions. Blank questions are dropped and ids are made unique."""

    questions: list[InterviewQuestion] = []
    interview_context: Text = Field(
        default="", validation_alias=AliasChoices("interview_context", "interviewContext")
    )
    tips: StrList = []

    @field_validator("questions", mode="before")
    @classmethod
    def _questions(cls, value: Any, info) -> list:
        return coerce_object_list(value, info)

    @model_validator(mode="after")
    def _tidy(self) -> "QuestionSet":
        kept = [q for q in self.questions if q.question]
        if len(kept) < len(self.questions):
            logger.warning("Dropped %d blank interview questions", len(self.questions) - len(kept))
        seen: set[str] = set()
        for i, question in enumerate(kept, 1):
            if not question.id or question.id in seen:
                question.id = f"q{i}"
            seen.add(question.id)
        self.questions = kept
        return self


class Interviewer(BaseModel):
    name: Text = ""
    title: OptStr = None
    linkedin_url: OptStr = Field(default=None, validation_alias=AliasChoices("linkedin_url", "linkedinUrl"))


class AnswerEvaluation(BaseModel):
    score: RequiredScore = 0
    strengths: StrList = []
    improvements: StrList = []
    key_points_covered: StrList = Field(
        default=[], validation_alias=AliasChoices("key_points_covered", "keyPointsCovered")
    )
    key_points_missed: StrList = Field(
        default=[], validation_alias=AliasChoices("key_points_missed", "keyPointsMissed")
    )
    example_answer: Text = Field(default="", validation_alias=AliasChoices("example_answer", "exampleAnswer"))
    detailed_feedback: Text = Field(
        default="", validation_alias=AliasChoices("detailed_feedback", "detailedFeedback")
    )
    next_steps: StrList = Field(default=[], validation_alias=AliasChoices("next_steps", "nextSteps"))


class AnsweredQuestion(BaseModel):
    question: str
    category: QuestionCategory = "behavioral"
    answer: str
    evaluation: AnswerEvaluation | None = None


class SessionAnalysis(BaseModel):
    overall_score: RequiredScore = Field(default=0, validation_alias=AliasChoices("overall_score", "overallScore"))
    technical_score: Score = Field(default=None, validation_alias=AliasChoices("technical_score", "technicalScore"))
    communication_score: Score = Field(
        default=None, validation_alias=AliasChoices("communication_score", "communicationScore")
    )
    problem_solving_score: Score = Field(
        default=None, validation_alias=AliasChoices("problem_solving_score", "problemSolvingScore")
    )
    strengths: StrList = []
    areas_to_improve: StrList = Field(
        default=[], validation_alias=AliasChoices("areas_to_improve", "areasToImprove")
    )
    detailed_analysis: Text = Field(
        default="", validation_alias=AliasChoices("detailed_analysis", "detailedAnalysis")
    )
    recommendations: StrList = []
    readiness_level: ReadinessLevel | None = Field(
        default=None, validation_alias=AliasChoices("readiness_level", "readinessLevel")
    )

    @field_validator("readiness_level", mode="before")
    @classmethod
    def _readiness(cls, value: Any) -> str | None:
        text = str(value or "").strip().lower().replace(" ", "-").replace("_", "-")
        return text if text in READINESS_LEVELS else None

    @model_validator(mode="after")
    def _derive_readiness(self) -> "SessionAnalysis":
        if self.readiness_level is None:
            self.readiness_level = readiness_for(self.overall_score)
        return self
