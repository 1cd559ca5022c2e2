"""Resume Analyzer - scores a resume, optionally against a job or a target role."""

from __future__ import annotations

import logging
from functools import partial

from pydantic import ValidationError

from career_ai.agents.executor import AgentExecutor, RetryPolicy
from career_ai.agents.extractor import ValidationFailure
from career_ai.clients.llm_client import CompletionRequest, LLMClient
from career_ai.config import AgentConfig, AgentsConfig
from career_ai.models.analysis import AnalysisRecord
from career_ai.models.job import MIN_DESCRIPTION_LENGTH, JobDescriptor
from career_ai.models.job_analysis import JobAnalysisRecord
from career_ai.models.outcome import AgentErr, AgentOutcome
from career_ai.models.resume import ParsedResumeRecord
from career_ai.pipeline.job_analyzer import JobAnalyzer
from career_ai.utils.json_parser import ExtractionError, extract_json

logger = logging.getLogger(__name__)

OPERATION = "resume_analysis"
INFER_FROM_RESUME = "Not specified - infer from resume"

SYSTEM_PROMPT = """\
You are an expert resume analyst and career coach. Analyze resumes and give specific, actionable feedback.

Scoring (0-100, use the full scale, do not inflate):
- 85-100 excellent and rare, 70-84 good with minor improvements, 50-69 needs significant work, below 50 major issues.
- overall_score: impact, quantified achievements, clarity, completeness, keyword relevance.
- ats_score: standard section headings, clear contact information, chronological format, keyword optimization. List concrete problems in ats_issues.
- readability_score: sentence length, action verbs, active voice, logical flow, consistency.

For each section (summary, experience, education, skills) give a score (null if the section is absent), short feedback and specific issues.

Keyword analysis: if a target role or industry is given, frame matched and missing keywords for it; otherwise infer the role and industry from the resume. Flag weak or overused phrases ("Responsible for", "Worked on", "Team player").

Give 3-5 specific strengths, 3-5 specific weaknesses, and 5-8 prioritized suggestions, each with a before/after example.

If a job is given, also assess fit in "job_match".

Respond ONLY with JSON in this format:
{
  "overall_score": 0-100,
  "ats_score": 0-100,
  "readability_score": 0-100,
  "strengths": ["string"],
  "weaknesses": ["string"],
  "sections": {
    "summary": {"score": "0-100 | null", "feedback": "string", "issues": ["string"]},
    "experience": {"score": "0-100 | null", "feedback": "string", "issues": ["string"]},
    "education": {"score": "0-100 | null", "feedback": "string", "issues": ["string"]},
    "skills": {"score": "0-100 | null", "feedback": "string", "issues": ["string"]}
  },
  "keyword_analysis": {
    "target_role": "string", "target_industry": "string",
    "matched_keywords": ["string"], "missing_keywords": ["string"], "overused_words": ["string"]
  },
  "ats_issues": ["string"],
  "suggestions": [
    {"section": "string", "priority": "high | medium | low", "issue": "string", "suggestion": "string",
     "example": {"before": "string", "after": "string"}, "impact": "string"}
  ],
  "job_match": {"overall_match": 0-100, "skills_match": 0-100, "experience_match": 0-100,
                "match_reasons": ["string"], "gaps": ["string"]}
}
Omit "job_match" when no job is given. Keep every string on one line and escape quotes."""

USER_PROMPT = """Analyze this resume and provide comprehensive feedback.

# RESUME DATA
{resume_data}

# TARGET ROLE
{target_role}

# TARGET INDUSTRY
{target_industry}
{job_section}
Respond with JSON only."""

JOB_SECTION = """
# TARGET JOB
**Job Title:** {title}
**Company:** {company}

{description}
"""


def extract_analysis(raw_text: str) -> AnalysisRecord:
    data = extract_json(raw_text)
    if not isinstance(data, dict) or "overall_score" not in data:
        raise ExtractionError("Response is not an analysis (no overall_score)", raw_text)
    try:
        return AnalysisRecord.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailure(f"Analysis did not validate: {exc}") from exc


class ResumeAnalyzer:
    """Scores resumes. A job without a resume is handed to ``job_analyzer``."""

    def __init__(
        self,
        llm: LLMClient,
        config: AgentConfig | None = None,
        executor: AgentExecutor | None = None,
        job_analyzer: JobAnalyzer | None = None,
    ):
        self.llm = llm
        self.config = config or AgentsConfig().analyzer
        self.executor = executor or AgentExecutor()
        self.job_analyzer = job_analyzer or JobAnalyzer(llm, executor=self.executor)

    async def analyze(
        self,
        resume: ParsedResumeRecord | None,
        job: JobDescriptor | None = None,
        *,
        target_role: str | None = None,
        target_industry: str | None = None,
    ) -> AgentOutcome[AnalysisRecord] | AgentOutcome[JobAnalysisRecord]:
        """Analyze ``resume``, framed by ``job`` and/or a target role and industry.

        With only a job, the result is a ``JobAnalysisRecord`` without match scores.
        """
        if resume is None:
            if job is None:
                return AgentErr.validation("Resume or job data is required for analysis")
            return await self.job_analyzer.analyze(job)
        if job is not None and not job.has_usable_description():
            return AgentErr.validation(
                f"Job description must be at least {MIN_DESCRIPTION_LENGTH} characters"
            )

        job_section = ""
        if job is not None:
            job_section = JOB_SECTION.format(
                title=job.title, company=job.company, description=job.description
            )
        resume_json = resume.model_dump_json(indent=2)
        prompt = USER_PROMPT.format(
            resume_data=resume_json,
            target_role=target_role or INFER_FROM_RESUME,
            target_industry=target_industry or INFER_FROM_RESUME,
            job_section=job_section,
        )
        logger.info(
            "Starting resume analysis: role=%s industry=%s job=%s (%d chars)",
            bool(target_role), bool(target_industry), job.id if job else None, len(resume_json),
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
            extract=extract_analysis,
            policy=RetryPolicy.from_config(self.config),
            operation=OPERATION,
        )
        if outcome.ok:
            analysis = outcome.data
            logger.info(
                "Resume analysis done: overall=%d ats=%d readability=%d suggestions=%d",
                analysis.overall_score,
                analysis.ats_score,
                analysis.readability_score,
                len(analysis.suggestions),
            )
        return outcome
