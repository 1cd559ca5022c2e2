"""Shared test fixtures."""

from __future__ import annotations

import json

import pytest

from career_ai.agents.executor import AgentExecutor
from career_ai.clients.llm_client import CompletionError, CompletionRequest, CompletionResult
from career_ai.models.job import JobDescriptor
from career_ai.models.outcome import ErrorCategory, TokenUsage
from career_ai.models.resume import ParsedResumeRecord


class FakeLLM:
    """Scripted completion client.

    Each queued item is either a string (returned as the completion text), a
    dict (returned as its JSON), or an exception (raised). The last item is
    reused once the script runs out.
    """

    def __init__(self, *script, model: str = "claude-sonnet-4-5-20250929"):
        self.script = list(script)
        self.model = model
        self.calls: list[CompletionRequest] = []
        self.kwargs: list[dict] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def push(self, *items) -> None:
        self.script.extend(items)

    async def complete(self, request: CompletionRequest, **kwargs) -> CompletionResult:
        self.calls.append(request)
        self.kwargs.append(kwargs)
        if not self.script:
            raise AssertionError("FakeLLM script exhausted")
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        text = json.dumps(item) if isinstance(item, (dict, list)) else item
        return CompletionResult(text=text, usage=TokenUsage(100, 50), model=self.model)


async def _no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def make_llm():
    """Factory for scripted completion clients: ``make_llm(item, item, ...)``."""
    return FakeLLM


@pytest.fixture
def executor() -> AgentExecutor:
    """Executor that never actually waits between attempts."""
    return AgentExecutor(sleep=_no_sleep)


@pytest.fixture
def no_sleep():
    return _no_sleep


@pytest.fixture
def timeout_error() -> CompletionError:
    return CompletionError(ErrorCategory.TIMEOUT, "Completion request timed out")


@pytest.fixture
def sample_resume_text() -> str:
    return """Jane Doe
jane.doe@example.com | +1 555 0100 | San Francisco, CA
linkedin.com/in/janedoe

SUMMARY
Backend engineer with 6 years of experience building high-traffic APIs.

EXPERIENCE
Acme Corp - Senior Backend Engineer (2021-03 to Present)
- Built a Python/FastAPI service handling 1M requests per day
- Cut p95 latency by 40% with Redis caching

Globex - Software Engineer (2018-06 to 2021-02)
- Developed Django REST APIs
- Managed AWS EC2 and RDS infrastructure

EDUCATION
State University - B.S. Computer Science (2014-09 to 2018-05), GPA 3.7

SKILLS
Python, FastAPI, Django, PostgreSQL, Redis, Docker, AWS

CERTIFICATIONS
AWS Certified Developer - Amazon Web Services (2022-01)
"""


@pytest.fixture
def sample_record_data() -> dict:
    return {
        "personal_info": {
            "name": "Jane Doe",
            "email": "jane.doe@example.com",
            "phone": "+1 555 0100",
            "location": "San Francisco, CA",
            "city": "San Francisco",
            "state": "CA",
            "country": "USA",
            "linkedin_url": "https://linkedin.com/in/janedoe",
        },
        "summary": "Backend engineer with 6 years of experience building high-traffic APIs.",
        "experiences": [
            {
                "company": "Acme Corp",
                "position": "Senior Backend Engineer",
                "start_date": "2021-03",
                "end_date": None,
                "is_current": True,
                "achievements": [
                    "Built a Python/FastAPI service handling 1M requests per day",
                    "Cut p95 latency by 40% with Redis caching",
                ],
                "technologies": ["Python", "FastAPI", "Redis"],
            },
            {
                "company": "Globex",
                "position": "Software Engineer",
                "start_date": "2018-06",
                "end_date": "2021-02",
                "is_current": False,
                "achievements": ["Developed Django REST APIs"],
                "technologies": ["Django", "AWS"],
            },
        ],
        "educations": [
            {
                "institution": "State University",
                "degree": "B.S.",
                "field_of_study": "Computer Science",
                "start_date": "2014-09",
                "end_date": "2018-05",
                "gpa": 3.7,
            }
        ],
        "skills": [
            {"name": "Python", "category": "Programming Languages", "level": "Expert"},
            {"name": "FastAPI", "category": "Frameworks"},
            {"name": "PostgreSQL", "category": "Databases"},
            {"name": "Docker", "category": "Tools"},
        ],
        "certifications": [
            {
                "name": "AWS Certified Developer",
                "issuing_organization": "Amazon Web Services",
                "issue_date": "2022-01",
            }
        ],
    }


@pytest.fixture
def sample_record(sample_record_data) -> ParsedResumeRecord:
    return ParsedResumeRecord.model_validate(sample_record_data)


@pytest.fixture
def sample_job() -> JobDescriptor:
    return JobDescriptor(
        id="job-1",
        title="Staff Backend Engineer",
        company="Initech",
        description=(
            "We are hiring a backend engineer to scale our payments platform.\n\n"
            "Requirements:\n- 5+ years of Python\n- PostgreSQL and Redis\n- REST API design\n\n"
            "Preferred:\n- Kubernetes\n- Kafka"
        ),
    )


@pytest.fixture
def sample_analysis_data() -> dict:
    return {
        "overall_score": 78,
        "ats_score": 82,
        "readability_score": 74,
        "sections": {
            "summary": {"score": 70, "feedback": "Concise", "issues": []},
            "experience": {"score": 85, "feedback": "Quantified", "issues": []},
            "education": {"score": 75, "feedback": "Complete", "issues": []},
            "skills": {"score": 80, "feedback": "Relevant", "issues": []},
        },
        "strengths": ["Quantified achievements", "Clear progression"],
        "weaknesses": ["Generic summary"],
        "keyword_analysis": {
            "target_role": "Backend Engineer",
            "matched_keywords": ["Python", "Redis"],
            "missing_keywords": ["Kubernetes"],
            "overused_words": [],
        },
        "ats_issues": [],
        "suggestions": [
            {"section": "summary", "priority": "low", "issue": "Generic", "suggestion": "Be specific"},
            {"section": "experience", "priority": "high", "issue": "Vague", "suggestion": "Add metrics"},
        ],
    }


@pytest.fixture
def job_analysis_data() -> dict:
    return {
        "analysis": {
            "role_level": "senior",
            "key_responsibilities": ["Scale the payments platform", "Design REST APIs"],
            "required_skills": ["Python", "PostgreSQL", "Redis"],
            "preferred_skills": ["Kubernetes", "Kafka"],
            "red_flags": [],
            "highlights": ["High-impact platform work"],
        },
        "salary_insights": {
            "estimated_range": "$170,000 - $210,000",
            "market_comparison": "Salary not disclosed",
            "factors": ["Senior level", "Payments domain"],
        },
        "application_tips": ["Lead with the FastAPI latency work", "Mention Redis caching"],
    }


@pytest.fixture
def match_analysis_data() -> dict:
    return {
        "overall_match": 81,
        "skills_match": 78,
        "experience_match": 85,
        "match_reasons": ["6 years of Python exceeds the 5-year requirement"],
        "gaps": ["No Kafka experience"],
        "recommendations": ["Highlight event-driven work"],
    }
