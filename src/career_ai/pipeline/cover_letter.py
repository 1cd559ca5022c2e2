"""Cover Letter Writer - drafts a cover letter for a job from a parsed resume."""

from __future__ import annotations

import logging
import re
from functools import partial

from career_ai.agents.executor import AgentExecutor, RetryPolicy
from career_ai.agents.extractor import extract
from career_ai.clients.llm_client import CompletionRequest, LLMClient
from career_ai.config import AgentConfig, AgentsConfig
from career_ai.models.cover_letter import TONES, CoverLetter
from career_ai.models.job import MIN_DESCRIPTION_LENGTH, JobDescriptor
from career_ai.models.outcome import AgentErr, AgentOutcome
from career_ai.models.resume import ParsedResumeRecord
from career_ai.pipeline.resume_tailor import format_resume
from career_ai.utils.json_parser import ExtractionError

logger = logging.getLogger(__name__)

OPERATION = "cover_letter"
REQUIREMENTS_FALLBACK_CHARS = 500

_REQUIREMENTS_RE = re.compile(
    r"(?:requirements?|qualifications?|must[- ]haves?)[:\s]*(.*?)(?=\n\n|responsibilities|about|$)",
    re.IGNORECASE | re.DOTALL,
)

SYSTEM_PROMPT = """\
You are an expert career writer who drafts compelling, personalized cover letters.

Rules:
1. Base ALL content on the candidate's actual resume. Never invent experience, employers, skills or numbers.
2. Open with a hook that shows fit for this specific role, highlight 2-3 of the most relevant experiences with metrics, show genuine interest in the company and close with a clear call to action.
3. Use the requested tone consistently: professional, enthusiastic or formal.
4. Work the job's keywords in naturally and reference its specific requirements.
5. Keep it to 3-4 paragraphs, 250-400 words, in business letter format with the candidate's contact details in the header.

Respond ONLY with JSON in this format:
{
  "cover_letter": "complete letter text, paragraphs separated by \\n\\n",
  "subject": "suggested email subject line",
  "key_points": ["qualification highlighted in the letter"],
  "matched_requirements": ["job requirement the letter addresses"],
  "tone": "professional | enthusiastic | formal",
  "word_count": 0,
  "estimated_read_time": "2 minutes",
  "suggestions": ["how the candidate could personalize the letter further"]
}
Escape quotes and newlines inside strings."""

USER_PROMPT = """Generate a cover letter for the following job application.

# CANDIDATE RESUME

{resume_data}

# TARGET JOB

**Job Title:** {job_title}
**Company:** {company}

**Job Description:**
{description}

**Key Requirements:**
{requirements}

# PREFERENCES

**Tone:** {tone}
**Additional Notes from Candidate:**
{notes}

Use the {tone} tone throughout. Respond with JSON only."""


def validate_request(
    resume: ParsedResumeRecord | None, job: JobDescriptor | None, tone: str
) -> list[str]:
    errors: list[str] = []
    if resume is None:
        errors.append("Resume data is required")
    else:
        if not resume.experiences:
            errors.append("Resume must have at least one work experience")
        if not resume.personal_info.name:
            errors.append("Resume must have personal information with name")
    if job is None:
        errors.append("Job description is required")
    else:
        if len(job.description.strip()) < MIN_DESCRIPTION_LENGTH:
            errors.append(f"Job description must be at least {MIN_DESCRIPTION_LENGTH} characters")
        if not job.title.strip():
            errors.append("Job title is required")
        if not job.company.strip():
            errors.append("Company name is required")
    if tone not in TONES:
        errors.append(f"Tone must be one of: {', '.join(TONES)}")
    return errors


def key_requirements(job: JobDescriptor) -> str:
    """Requirements block for the prompt, falling back to the start of the description."""
    if job.requirements and job.requirements.strip():
        return job.requirements.strip()
    match = _REQUIREMENTS_RE.search(job.description)
    if match and match.group(1).strip():
        return match.group(1).strip()
    head = job.description[:REQUIREMENTS_FALLBACK_CHARS]
    return head + "..." if len(job.description) > REQUIREMENTS_FALLBACK_CHARS else head


def extract_cover_letter(raw_text: str) -> CoverLetter:
    letter = extract(raw_text, CoverLetter)
    if not letter.cover_letter.strip():
        raise ExtractionError("Response missing cover letter content", raw_text)
    return letter


class CoverLetterWriter:
    def __init__(
        self,
        llm: LLMClient,
        config: AgentConfig | None = None,
        executor: AgentExecutor | None = None,
    ):
        self.llm = llm
        self.config = config or AgentsConfig().cover_letter
        self.executor = executor or AgentExecutor()

    async def write(
        self,
        resume: ParsedResumeRecord,
        job: JobDescriptor,
        *,
        tone: str = "professional",
        additional_notes: str | None = None,
    ) -> AgentOutcome[CoverLetter]:
        """Draft a cover letter. Invalid input fails before any completion call."""
        errors = validate_request(resume, job, tone)
        if errors:
            logger.info("Cover letter rejected: %s", "; ".join(errors))
            return AgentErr.validation(f"Validation failed: {', '.join(errors)}", errors=errors)

        prompt = USER_PROMPT.format(
            resume_data=format_resume(resume),
            job_title=job.title,
            company=job.company,
            description=job.description,
            requirements=key_requirements(job),
            tone=tone,
            notes=additional_notes or "None provided",
        )
        logger.info(
            "Starting cover letter: job=%s tone=%s experiences=%d",
            job.id, tone, len(resume.experiences),
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
            extract=extract_cover_letter,
            policy=RetryPolicy.from_config(self.config),
            operation=OPERATION,
        )
        if outcome.ok:
            logger.info(
                "Cover letter done: words=%d tone=%s", outcome.data.word_count, outcome.data.tone
            )
        return outcome
