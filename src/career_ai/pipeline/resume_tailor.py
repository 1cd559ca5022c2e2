"""Resume Tailor - rewrites a parsed resume for a specific job, without fabrication."""

from __future__ import annotations

import dataclasses
import logging
import re
from functools import partial
from typing import Any

from pydantic import ValidationError

from career_ai.agents.executor import AgentExecutor, RetryPolicy
from career_ai.agents.extractor import ValidationFailure
from career_ai.clients.llm_client import CompletionRequest, LLMClient
from career_ai.config import AgentConfig, AgentsConfig
from career_ai.models.job import MIN_DESCRIPTION_LENGTH, JobDescriptor
from career_ai.models.outcome import AgentErr, AgentOutcome
from career_ai.models.resume import ParsedResumeRecord
from career_ai.models.tailoring import TailoringResult
from career_ai.pipeline.impact import estimate_impact
from career_ai.utils.json_parser import ExtractionError, extract_json

logger = logging.getLogger(__name__)

OPERATION = "resume_tailor"
NOT_SPECIFIED = "Not specified"

_REQUIREMENTS_RE = re.compile(
    r"(?:requirements?|qualifications?|must[- ]haves?)[:\s]*(.*?)(?=\n\n|preferred|nice[- ]to[- ]have|$)",
    re.IGNORECASE | re.DOTALL,
)
_PREFERRED_RE = re.compile(
    r"(?:preferred|nice[- ]to[- ]have|bonus)[:\s]*(.*?)(?=\n\n|$)",
    re.IGNORECASE | re.DOTALL,
)

_BACKFILLED_SECTIONS = ("experiences", "educations", "skills", "certifications")

SYSTEM_PROMPT = """\
You are an expert resume optimization specialist with deep knowledge of Applicant Tracking Systems (ATS) and professional resume writing.

Tailor the candidate's resume to the target job while staying 100% truthful.

Principles:
1. Never fabricate experiences, skills, achievements, job titles, dates, companies or schools.
2. Only reframe and emphasize existing content: rewrite bullet points with the job's keywords, quantify achievements only where the original implies it, reorder to put the most relevant content first.
3. Keep every company, institution and date exactly as given. Personal information stays the same.
4. Optimize for ATS: exact keyword matches where truthful, standard skill names, both acronyms and full terms.
5. Include ALL sections of the original resume in the tailored version.

Match score guide: 90-100 has all required and most preferred skills; 75-89 most required skills; 60-74 the core required skills; below 60 significant gaps.

Respond ONLY with JSON in this format:
{
  "tailored_resume": {
    "personal_info": {...same fields as the original...},
    "summary": "tailored professional summary",
    "experiences": [{"company": "", "position": "", "location": "", "start_date": "", "end_date": null, "is_current": false, "description": "", "achievements": [""], "technologies": [""]}],
    "educations": [{"institution": "", "degree": "", "field_of_study": "", "start_date": "", "end_date": null, "gpa": null}],
    "skills": [{"name": "", "category": "", "level": null}],
    "certifications": [{"name": "", "issuing_organization": "", "issue_date": null}]
  },
  "match_score": 0-100,
  "ats_score": 0-100,
  "changes": [{"section": "summary | experience | skills | education | certifications", "field": "", "before": "", "after": "", "reason": ""}],
  "keyword_alignment": {"matched": [""], "missing": [""], "suggested": [""]},
  "recommendations": ["actionable suggestion for further improvement"],
  "summary": "brief explanation of the tailoring strategy"
}"""

USER_PROMPT = """Tailor the following resume for the specified job.

# CURRENT RESUME

{resume_data}

# TARGET JOB

**Job Title:** {job_title}
**Company:** {company}

**Description:**
{description}

**Requirements:**
{requirements}

**Preferred Qualifications:**
{preferred}

Never fabricate. Include all sections of the original resume and document every change. Respond with JSON only."""


def validate_input(resume: ParsedResumeRecord | None, job: JobDescriptor | None) -> list[str]:
    errors: list[str] = []
    if resume is None:
        errors.append("Resume data is required")
    else:
        if not resume.experiences:
            errors.append("Resume must have at least one work experience")
        if not resume.skills:
            errors.append("Resume must have at least one skill")
    if job is None:
        errors.append("Job description is required")
        return errors
    if len((job.description or "").strip()) < MIN_DESCRIPTION_LENGTH:
        errors.append(f"Job description must be at least {MIN_DESCRIPTION_LENGTH} characters")
    if not (job.title or "").strip():
        errors.append("Job title is required")
    if not (job.company or "").strip():
        errors.append("Company name is required")
    return errors


def split_requirements(job: JobDescriptor) -> tuple[str, str]:
    """Return (requirements, preferred qualifications) for the prompt.

    Explicit values win; otherwise both blocks are pulled from the description.
    """
    if job.requirements and job.requirements.strip():
        preferred = job.preferred_qualifications
        return job.requirements, preferred if preferred and preferred.strip() else NOT_SPECIFIED

    req = _REQUIREMENTS_RE.search(job.description)
    pref = _PREFERRED_RE.search(job.description)
    requirements = req.group(1).strip() if req and req.group(1).strip() else job.description
    preferred = pref.group(1).strip() if pref and pref.group(1).strip() else NOT_SPECIFIED
    return requirements, preferred


def format_resume(resume: ParsedResumeRecord) -> str:
    """Render a parsed resume as readable prompt text."""
    lines: list[str] = []
    info = resume.personal_info
    lines.append("# PERSONAL INFORMATION")
    for label, value in (
        ("Name", info.name),
        ("Email", info.email),
        ("Phone", info.phone),
        ("Location", info.location),
        ("LinkedIn", info.linkedin_url),
        ("GitHub", info.github_url),
    ):
        if value:
            lines.append(f"{label}: {value}")
    lines.append("")

    if resume.summary:
        lines += ["# PROFESSIONAL SUMMARY", resume.summary, ""]

    if resume.experiences:
        lines.append("# WORK EXPERIENCE")
        for i, exp in enumerate(resume.experiences, 1):
            lines.append(f"\n## Experience {i}")
            lines.append(f"Company: {exp.company}")
            lines.append(f"Position: {exp.position}")
            if exp.location:
                lines.append(f"Location: {exp.location}")
            lines.append(f"Duration: {exp.start_date or 'N/A'} - {exp.end_date or 'Present'}")
            if exp.is_current:
                lines.append("Current Position: Yes")
            if exp.description:
                lines.append(f"\nDescription: {exp.description}")
            if exp.achievements:
                lines.append("\nAchievements:")
                lines.extend(f"- {a}" for a in exp.achievements)
            if exp.technologies:
                lines.append(f"\nTechnologies: {', '.join(exp.technologies)}")
        lines.append("")

    if resume.educations:
        lines.append("# EDUCATION")
        for i, edu in enumerate(resume.educations, 1):
            lines.append(f"\n## Education {i}")
            lines.append(f"Institution: {edu.institution}")
            lines.append(f"Degree: {edu.degree}")
            lines.append(f"Field of Study: {edu.field_of_study}")
            if edu.start_date or edu.end_date:
                lines.append(f"Duration: {edu.start_date or 'N/A'} - {edu.end_date or 'Present'}")
            if edu.gpa is not None:
                lines.append(f"GPA: {edu.gpa}")
            if edu.honors:
                lines.append(f"Honors: {', '.join(edu.honors)}")
            if edu.coursework:
                lines.append(f"Relevant Coursework: {', '.join(edu.coursework)}")
        lines.append("")

    if resume.skills:
        lines.append("# SKILLS")
        by_category: dict[str, list[str]] = {}
        for skill in resume.skills:
            label = f"{skill.name} ({skill.level})" if skill.level else skill.name
            by_category.setdefault(skill.category or "Other", []).append(label)
        for category, names in by_category.items():
            lines.append(f"\n{category}:")
            lines.append(", ".join(names))
        lines.append("")

    if resume.certifications:
        lines.append("# CERTIFICATIONS")
        for i, cert in enumerate(resume.certifications, 1):
            lines.append(f"\n{i}. {cert.name}")
            lines.append(f"   Organization: {cert.issuing_organization}")
            if cert.issue_date:
                lines.append(f"   Issue Date: {cert.issue_date}")
            if cert.expiry_date:
                lines.append(f"   Expiry Date: {cert.expiry_date}")
            if cert.credential_id:
                lines.append(f"   Credential ID: {cert.credential_id}")
        lines.append("")

    return "\n".join(lines)


def extract_tailoring(raw_text: str, original: ParsedResumeRecord) -> TailoringResult:
    """Locate the tailoring JSON and back-fill anything the model left out."""
    data = extract_json(raw_text)
    if not isinstance(data, dict):
        raise ExtractionError("Expected a JSON object for the tailoring result", raw_text)
    tailored = data.get("tailored_resume")
    if not isinstance(tailored, dict):
        # Retryable: the model most likely truncated or reshaped its answer
        raise ExtractionError("Response missing tailored_resume", raw_text)

    snapshot = original.model_dump()
    tailored = dict(tailored)
    for section in _BACKFILLED_SECTIONS:
        if not isinstance(tailored.get(section), list):
            logger.warning("Tailored resume omitted %s; using the original", section)
            tailored[section] = snapshot[section]
    if not isinstance(tailored.get("personal_info"), dict):
        tailored["personal_info"] = snapshot["personal_info"]
    if tailored.get("summary") in (None, ""):
        tailored["summary"] = snapshot["summary"]

    return TailoringResult.model_validate({**data, "tailored_resume": tailored})


def enforce_no_fabrication(
    result: TailoringResult, original: ParsedResumeRecord
) -> TailoringResult:
    """Drop experiences and educations whose employer or school is not in the original."""
    resume = result.tailored_resume
    companies = original.company_names()
    institutions = original.institution_names()

    experiences = [
        exp for exp in resume.experiences
        if not exp.company.strip() or exp.company.strip().lower() in companies
    ]
    if len(experiences) != len(resume.experiences):
        logger.warning(
            "Removed %d experience(s) with companies not in the original resume",
            len(resume.experiences) - len(experiences),
        )
    if not experiences and original.experiences:
        experiences = [exp.model_copy(deep=True) for exp in original.experiences]

    educations = [
        edu for edu in resume.educations
        if not edu.institution.strip() or edu.institution.strip().lower() in institutions
    ]
    if len(educations) != len(resume.educations):
        logger.warning(
            "Removed %d education(s) with institutions not in the original resume",
            len(resume.educations) - len(educations),
        )
    if not educations and original.educations:
        educations = [edu.model_copy(deep=True) for edu in original.educations]

    cleaned = resume.model_copy(
        update={
            "experiences": experiences,
            "educations": educations,
            "personal_info": original.personal_info.model_copy(deep=True),
        }
    )
    return result.model_copy(update={"tailored_resume": cleaned})


def generate_diff(original: ParsedResumeRecord, tailored: ParsedResumeRecord) -> list[dict[str, Any]]:
    """Compare the summary, per-experience achievements and the skill list."""
    diffs: list[dict[str, Any]] = []
    if original.summary != tailored.summary:
        diffs.append(
            {"section": "summary", "field": "text", "before": original.summary, "after": tailored.summary}
        )
    for orig_exp, new_exp in zip(original.experiences, tailored.experiences):
        if orig_exp.achievements != new_exp.achievements:
            diffs.append(
                {
                    "section": "experience",
                    "field": f"{orig_exp.position} at {orig_exp.company} - achievements",
                    "before": orig_exp.achievements,
                    "after": new_exp.achievements,
                }
            )
    orig_skills = sorted(s.name for s in original.skills)
    new_skills = sorted(s.name for s in tailored.skills)
    if orig_skills != new_skills:
        diffs.append({"section": "skills", "field": "list", "before": orig_skills, "after": new_skills})
    return diffs


def summarize(result: TailoringResult) -> str:
    """Human-readable report of a tailoring result."""
    lines = [f"Match Score: {result.match_score}%"]
    if result.ats_score is not None:
        lines.append(f"ATS Score: {result.ats_score}%")

    lines.append(f"\nChanges Made: {len(result.changes)}")
    by_section: dict[str, int] = {}
    for change in result.changes:
        by_section[change.section] = by_section.get(change.section, 0) + 1
    for section, count in by_section.items():
        lines.append(f"  - {section}: {count} changes")

    alignment = result.keyword_alignment
    lines.append("\nKeyword Alignment:")
    lines.append(f"  - Matched: {len(alignment.matched)} keywords")
    lines.append(f"  - Missing: {len(alignment.missing)} keywords")
    lines.append(f"  - Suggestions: {len(alignment.suggested)} additions")
    lines.append(f"\nEstimated Impact: {result.estimated_impact.upper()}")

    if result.recommendations:
        lines.append("\nTop Recommendations:")
        for i, rec in enumerate(result.recommendations[:3], 1):
            lines.append(f"  {i}. {rec}")
    return "\n".join(lines)


class ResumeTailor:
    def __init__(
        self,
        llm: LLMClient,
        config: AgentConfig | None = None,
        executor: AgentExecutor | None = None,
    ):
        self.llm = llm
        self.config = config or AgentsConfig().tailor
        self.executor = executor or AgentExecutor()

    async def tailor(
        self, resume: ParsedResumeRecord, job: JobDescriptor
    ) -> AgentOutcome[TailoringResult]:
        """Tailor ``resume`` to ``job``. Invalid input fails before any completion call."""
        errors = validate_input(resume, job)
        if errors:
            logger.info("Tailoring rejected: %s", "; ".join(errors))
            return AgentErr.validation(f"Validation failed: {', '.join(errors)}", errors=errors)

        requirements, preferred = split_requirements(job)
        prompt = USER_PROMPT.format(
            resume_data=format_resume(resume),
            job_title=job.title,
            company=job.company,
            description=job.description,
            requirements=requirements,
            preferred=preferred,
        )
        logger.info(
            "Starting resume tailoring: %s at %s (%d experiences, %d skills)",
            job.title, job.company, len(resume.experiences), len(resume.skills),
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
            extract=lambda raw: self._extract(raw, resume),
            policy=RetryPolicy.from_config(self.config),
            operation=OPERATION,
        )
        if not outcome.ok:
            return outcome

        result = enforce_no_fabrication(outcome.data, resume)
        impact = estimate_impact(
            result.match_score,
            len(result.changes),
            len(result.keyword_alignment.matched),
            result.ats_score,
        )
        result = result.model_copy(update={"estimated_impact": impact})
        logger.info(
            "Tailoring done: match=%d ats=%s changes=%d impact=%s",
            result.match_score, result.ats_score, len(result.changes), impact,
        )
        return dataclasses.replace(outcome, data=result)

    @staticmethod
    def _extract(raw_text: str, original: ParsedResumeRecord) -> TailoringResult:
        try:
            return extract_tailoring(raw_text, original)
        except ValidationError as exc:
            raise ValidationFailure(f"Tailoring result did not validate: {exc}") from exc
