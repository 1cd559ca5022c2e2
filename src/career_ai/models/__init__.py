"""Data models for the career document pipeline."""

from career_ai.models.analysis import AnalysisRecord, JobMatch, KeywordAnalysis, Suggestion
from career_ai.models.cover_letter import CoverLetter
from career_ai.models.interview import (
    AnsweredQuestion,
    AnswerEvaluation,
    InterviewQuestion,
    Interviewer,
    QuestionSet,
    SessionAnalysis,
)
from career_ai.models.job import JobDescriptor
from career_ai.models.job_analysis import JobAnalysisRecord, MatchAnalysis, PostingAnalysis, SalaryInsights
from career_ai.models.outcome import AgentErr, AgentOk, AgentOutcome, ErrorCategory, TokenUsage
from career_ai.models.resume import (
    Certification,
    Education,
    Experience,
    ParsedResumeRecord,
    PersonalInfo,
    Skill,
)
from career_ai.models.tailoring import ChangeRecord, KeywordAlignment, TailoringResult

__all__ = [
    "AgentErr",
    "AgentOk",
    "AgentOutcome",
    "AnalysisRecord",
    "AnsweredQuestion",
    "AnswerEvaluation",
    "Certification",
    "ChangeRecord",
    "CoverLetter",
    "Education",
    "ErrorCategory",
    "Experience",
    "InterviewQuestion",
    "Interviewer",
    "JobAnalysisRecord",
    "JobDescriptor",
    "JobMatch",
    "KeywordAlignment",
    "KeywordAnalysis",
    "MatchAnalysis",
    "ParsedResumeRecord",
    "PersonalInfo",
    "PostingAnalysis",
    "QuestionSet",
    "SalaryInsights",
    "SessionAnalysis",
    "Skill",
    "Suggestion",
    "TailoringResult",
    "TokenUsage",
]
