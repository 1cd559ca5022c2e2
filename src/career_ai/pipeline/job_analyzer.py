"""Job Analyzer - breaks down a job posting and, given a resume, scores the candidate's fit."""

from __future__ import annotations

import logging
from functools import partial

from pydantic import ValidationError

from career_ai.agents.executor import AgentExecutor, RetryPolicy
from career_ai.agents.extractor import ValidationFailure
from career_ai.clients.llm_client import CompletionRequest, LLMClient
from career_ai.config import AgentConfig, AgentsConfig
from career_ai.models.job import MIN_DESCRIPTION_LENGTH, JobDescriptor
from career_ai.models.job_analysis import JobAnalysisRecord
from career_ai.models.outcome import AgentErr, AgentOutcome
from career_ai.models.resume import ParsedResumeRecord
from career_ai.utils.json_parser import ExtractionError, extract_json

logger = logging.getLogger(__name__)

OPERATION = "job_analysis"
NO_RESUME = "No candidate resume provided - perform job analysis only without match scoring"

SYSTEM_PROMPT = """\
You are an expert career advisor and job market analyst. Analyze job postings honestly so job seekers can decide whether a role is right for them.

Posting analysis:
- role_level: one of "entry", "mid", "senior", "lead", "executive", from title keywords, years required and scope.
- key_responsibilities: 3-8 core duties. required_skills: hard requirements. preferred_skills: nice-to-haves.
- red_flags: unrealistic expectations, "rockstar"/"ninja" language, vague scope, uncompensated on-call, below-market pay. Empty list if none.
- highlights: growth path, modern stack, flexible work, transparent process, impactful work.

Match analysis, ONLY when a candidate resume is provided:
- overall_match 0-100 (skills 40%, experience 35%, domain 15%, role fit 10%); do not inflate. 90+ exceptional, 70-79 good, 50-59 weak.
- skills_match and experience_match 0-100, 3-5 match_reasons, 2-5 gaps, 3-6 actionable recommendations.

Salary insights: a realistic estimated_range ("$120,000 - $160,000"), market_comparison ("Above market average", "At market average", "Below market average" or "Salary not disclosed") and 3-5 factors.

Give 4-7 specific application_tips.

Respond ONLY with JSON in this format:
{
  "analysis": {
    "role_level": "entry | mid | senior | lead | executive",
    "key_responsibilities": ["string"],
    "required_skills": ["string"],
    "preferred_skills": ["string"],
    "red_flags": ["string"],
    "highlights": ["string"]
  },
  "match_analysis": {"overall_match": 0-100, "skills_match": 0-100, "experience_match": 0-100,
                     "match_reasons": ["string"], "gaps": ["string"], "recommendations": ["string"]},
  "salary_insights": {"estimated_range": "string", "market_comparison": "string", "factors": ["string"]},
  "application_tips": ["string"]
}
Omit "match_analysis" entirely when no resume is provided. Keep every string on one line and escape quotes."""

USER_PROMPT = """Analyze this job posting and provide comprehensive insights.

# JOB POSTING DATA
{job_data}

# CANDIDATE RESUME DATA
{resume_data}

Respond with JSON only."""


def format_job(job: JobDescriptor) -> str:
    lines = [f"Job Title: {job.title}", f"Company: {job.company}"]
    for label, value in (
        ("Location", job.location),
        ("Job Type", job.job_type),
        ("Work Mode", job.work_mode),
        ("Salary Range", job.salary_range),
    ):
        if value:
            lines.append(f"{label}: {value}")
    lines += ["", "Job Description:", job.description]
    return "\n".join(lines)


def validate_job(job: JobDescriptor | None) -> str | None:
    """First reason ``job`` cannot be analyzed, or None."""
    if job is None or not job.title.strip() or not job.company.strip() or not job.description.strip():
        return "Job title, company name, and description are required for analysis"
    if not job.has_usable_description():
        return f"Job description must be at least {MIN_DESCRIPTION_LENGTH} characters"
    return None


def extract_job_analysis(raw_text: str, *, with_resume: bool) -> JobAnalysisRecord:
    data = extract_json(raw_text)
    if not isinstance(data, dict) or not isinstance(data.get("analysis"), dict):
        raise ExtractionError("Response is not a job analysis (no analysis object)", raw_text)
    try:
        record = JobAnalysisRecord.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailure(f"Job analysis did not validate: {exc}") from exc

    if not with_resume and record.match_analysis is not None:
        logger.warning("Dropping match analysis returned without a resume")
        record.match_analysis = None
    if with_resume and record.match_analysis is None:
        raise ValidationFailure("Missing match analysis when resume data was provided")
    return record


class JobAnalyzer:
    def __init__(
        self,
        llm: LLMClient,
        config: AgentConfig | None = None,
        executor: AgentExecutor | None = None,
    ):
        self.llm = llm
        self.config = config or AgentsConfig().job_analyzer
        self.executor = executor or AgentExecutor()

    async def analyze(
        self, job: JobDescriptor | None, resume: ParsedResumeRecord | None = None
    ) -> AgentOutcome[JobAnalysisRecord]:
        """Analyze ``job``; match scores are included only when ``resume`` is given."""
        problem = validate_job(job)
        if problem:
            return AgentErr.validation(problem)

        with_resume = resume is not None
        prompt = USER_PROMPT.format(
            job_data=format_job(job),
            resume_data=resume.model_dump_json(indent=2) if with_resume else NO_RESUME,
        )
        logger.info(
            "Starting job analysis: job=%s resume=%s (%d chars)",
            job.id, with_resume, len(job.description),
        )

        outcome = await self.executor.run(
            build_prompt=lambda attempt: CompletionRequest(
                prompt=prompt,
                system=SYSTEM_PROMPT,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                model=self.config.model,
            ),
            call=partial(self.llm.complete, timeout=self.config.timeout, operation=OPERATION),
            extract=partial(extract_job_analysis, with_resume=with_resume),
            policy=RetryPolicy.from_config(self.config),
            operation=OPERATION,
        )
        if outcome.ok:
            record = outcome.data
            logger.info(
                "Job analysis done: level=%s required=%d red_flags=%d match=%s",
                record.analysis.role_level,
                len(record.analysis.required_skills),
                len(record.analysis.red_flags),
                record.match_analysis.overall_match if record.match_analysis else None,
            )
        return outcome
