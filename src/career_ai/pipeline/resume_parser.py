"""Resume Parser - extracts a structured record from plain resume text."""

from __future__ import annotations

import dataclasses
import logging
import re
from functools import partial

from career_ai.agents.executor import AgentExecutor, RetryPolicy
from career_ai.agents.extractor import extract
from career_ai.clients.llm_client import CompletionRequest, LLMClient
from career_ai.config import AgentConfig, AgentsConfig
from career_ai.models.outcome import AgentErr, AgentOutcome
from career_ai.models.resume import ParsedResumeRecord

logger = logging.getLogger(__name__)

MAX_RESUME_CHARS = 20_000
OPERATION = "resume_parse"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

SYSTEM_PROMPT = """\
You are an expert resume parser. Extract structured information from resume text accurately and completely.

Extraction rules:
1. Personal information: name, email, phone, location (plus city/state/country when separable), LinkedIn, GitHub, portfolio and website URLs.
2. Summary: the professional summary, objective or about section. Combine several into one if needed.
3. Experience: every role, most recent first. Company, position, location, start and end date, description, quantified achievements (separately from the description) and technologies used. Mark an ongoing role with "is_current": true and "end_date": null.
4. Education: institution, degree, field of study, dates, GPA, honors, relevant coursework.
5. Skills: every skill mentioned anywhere. Categorize (Programming Languages, Frameworks, Tools, Soft Skills, Domain Knowledge, ...) and infer a level (Beginner, Intermediate, Advanced, Expert) only when the text supports it.
6. Certifications: name, issuing organization, issue date, expiry date, credential ID.

Dates use "YYYY-MM", or "YYYY" when only the year is known.
Never invent information. Missing values are null; missing lists are [].

Respond ONLY with JSON in this format:
{
  "personal_info": {
    "name": "string | null", "email": "string | null", "phone": "string | null",
    "location": "string | null", "city": "string | null", "state": "string | null",
    "country": "string | null", "linkedin_url": "string | null", "github_url": "string | null",
    "portfolio_url": "string | null", "website_url": "string | null"
  },
  "summary": "string | null",
  "experiences": [
    {"company": "string", "position": "string", "location": "string | null",
     "start_date": "YYYY-MM", "end_date": "YYYY-MM | null", "is_current": false,
     "description": "string | null", "achievements": ["string"], "technologies": ["string"]}
  ],
  "educations": [
    {"institution": "string", "degree": "string", "field_of_study": "string",
     "location": "string | null", "start_date": "YYYY-MM | null", "end_date": "YYYY-MM | null",
     "is_current": false, "gpa": "number | null", "honors": ["string"], "coursework": ["string"]}
  ],
  "skills": [{"name": "string", "category": "string", "level": "Beginner | Intermediate | Advanced | Expert | null"}],
  "certifications": [
    {"name": "string", "issuing_organization": "string", "issue_date": "YYYY-MM | null",
     "expiry_date": "YYYY-MM | null", "credential_id": "string | null"}
  ]
}"""

USER_PROMPT = """Parse the following resume and extract all structured information:

{resume_text}

Extract everything, most recent entries first. Respond with JSON only."""


def truncate_text(text: str, max_chars: int = MAX_RESUME_CHARS) -> str:
    """Cut ``text`` to ``max_chars``, preferring a line boundary."""
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    newline = cut.rfind("\n")
    if newline > max_chars * 0.8:
        cut = cut[:newline]
    return cut.rstrip() + "\n..."


def validate_parsed(record: ParsedResumeRecord) -> list[str]:
    """Return warnings for a sparse or suspicious parse. Never fails the parse."""
    warnings: list[str] = []
    info = record.personal_info
    if not info.name:
        warnings.append("Name not found in resume")
    if not info.email and not info.phone:
        warnings.append("No contact information (email or phone) found")
    if not record.experiences:
        warnings.append("No work experience found")
    if not record.educations:
        warnings.append("No education information found")
    if not record.skills:
        warnings.append("No skills found")
    if info.email and not _EMAIL_RE.match(info.email):
        warnings.append(f"Invalid email format: {info.email}")

    for i, exp in enumerate(record.experiences, 1):
        if not exp.company:
            warnings.append(f"Experience {i}: Missing company name")
        if not exp.position:
            warnings.append(f"Experience {i}: Missing position/title")
        if not exp.start_date:
            warnings.append(f"Experience {i}: Missing start date")
    for i, edu in enumerate(record.educations, 1):
        if not edu.institution:
            warnings.append(f"Education {i}: Missing institution name")
        if not edu.degree:
            warnings.append(f"Education {i}: Missing degree")
        if not edu.field_of_study:
            warnings.append(f"Education {i}: Missing field of study")
    return warnings


class ResumeParser:
    def __init__(
        self,
        llm: LLMClient,
        config: AgentConfig | None = None,
        executor: AgentExecutor | None = None,
    ):
        self.llm = llm
        self.config = config or AgentsConfig().parser
        self.executor = executor or AgentExecutor()

    async def parse(
        self, resume_text: str, *, file_name: str | None = None
    ) -> AgentOutcome[ParsedResumeRecord]:
        """Parse free resume text into a ``ParsedResumeRecord``."""
        if not resume_text or not resume_text.strip():
            return AgentErr.validation("Resume text is empty or invalid")

        text = truncate_text(resume_text)
        if len(text) < len(resume_text):
            logger.warning(
                "Resume text truncated from %d to %d chars (%s)",
                len(resume_text), len(text), file_name,
            )

        prompt = USER_PROMPT.format(resume_text=text)
        logger.info("Starting resume parsing: %d chars (%s)", len(text), file_name)

        outcome = await self.executor.run(
            build_prompt=lambda attempt: CompletionRequest(
                prompt=prompt,
                system=SYSTEM_PROMPT,
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                model=self.config.model,
            ),
            call=partial(self.llm.complete, timeout=self.config.timeout, operation=OPERATION),
            extract=lambda raw: extract(raw, ParsedResumeRecord),
            policy=RetryPolicy.from_config(self.config),
            operation=OPERATION,
        )
        if not outcome.ok:
            return outcome

        warnings = validate_parsed(outcome.data)
        if warnings:
            logger.warning("Parsed resume has %d warnings: %s", len(warnings), "; ".join(warnings))
        record = outcome.data
        logger.info(
            "Resume parsed: name=%s experiences=%d educations=%d skills=%d",
            bool(record.personal_info.name),
            len(record.experiences),
            len(record.educations),
            len(record.skills),
        )
        return dataclasses.replace(outcome, warnings=tuple(warnings))
