"""Additive merge of a parsed resume into the owner's profile."""

from __future__ import annotations

import logging
import re
from datetime import date

from career_ai.models.resume import Experience, ParsedResumeRecord
from career_ai.stores.base import UserProfile

logger = logging.getLogger(__name__)

_PERSONAL_FIELDS = (
    "phone",
    "location",
    "city",
    "state",
    "country",
    "linkedin_url",
    "github_url",
    "portfolio_url",
)


def parse_month(value: str | None) -> tuple[int, int] | None:
    """``YYYY-MM`` -> (year, month); ``YYYY`` -> (year, 1)."""
    if not value:
        return None
    match = re.fullmatch(r"(\d{4})(?:-(\d{2}))?", value.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2) or 1)


def years_of_experience(experiences: list[Experience], today: date | None = None) -> int:
    """Whole years across all roles; ongoing roles run until ``today``. Overlaps are not merged."""
    today = today or date.today()
    total_months = 0
    for exp in experiences:
        start = parse_month(exp.start_date)
        if start is None:
            continue
        end = parse_month(exp.end_date) if exp.end_date else (today.year, today.month)
        if end is None:
            continue
        total_months += max(0, (end[0] - start[0]) * 12 + (end[1] - start[1]))
    return total_months // 12


def _experience_key(exp: Experience) -> tuple[str, str, str | None]:
    return exp.company.strip().lower(), exp.position.strip().lower(), exp.start_date


def merge_profile(
    profile: UserProfile | None,
    user_id: str,
    record: ParsedResumeRecord,
    today: date | None = None,
) -> UserProfile:
    """Return ``profile`` enriched with ``record``. Existing values are never cleared.

    Educations without a start date and certifications without an issue date
    are skipped. Skills are de-duplicated by case-insensitive name.
    """
    merged = profile.model_copy(deep=True) if profile else UserProfile(user_id=user_id)
    updates: dict = {}

    info = record.personal_info
    for name in _PERSONAL_FIELDS:
        value = getattr(info, name)
        if value:
            updates[name] = value
    if record.summary:
        updates["bio"] = record.summary

    if record.experiences:
        years = years_of_experience(record.experiences, today)
        if years > 0:
            updates["years_of_experience"] = years
        current = record.current_experience()
        if current is not None:
            if current.position:
                updates["current_job_title"] = current.position
            if current.company:
                updates["current_company"] = current.company

    known = {_experience_key(e) for e in merged.experiences}
    experiences = list(merged.experiences)
    for exp in record.experiences:
        if _experience_key(exp) not in known:
            experiences.append(exp.model_copy(deep=True))
            known.add(_experience_key(exp))

    educations = list(merged.educations)
    known_edu = {(e.institution.strip().lower(), e.degree.strip().lower(), e.start_date) for e in educations}
    for edu in record.educations:
        if not edu.start_date:
            logger.warning("Skipping education without start date: %s", edu.institution)
            continue
        key = (edu.institution.strip().lower(), edu.degree.strip().lower(), edu.start_date)
        if key not in known_edu:
            educations.append(edu.model_copy(deep=True))
            known_edu.add(key)

    certifications = list(merged.certifications)
    known_certs = {(c.name.strip().lower(), c.issue_date) for c in certifications}
    for cert in record.certifications:
        if not cert.issue_date:
            logger.warning("Skipping certification without issue date: %s", cert.name)
            continue
        key = (cert.name.strip().lower(), cert.issue_date)
        if key not in known_certs:
            certifications.append(cert.model_copy(deep=True))
            known_certs.add(key)

    skill_names = {s.name.strip().lower() for s in merged.skills}
    skills = list(merged.skills)
    for skill in record.skills:
        key = skill.name.strip().lower()
        if key and key not in skill_names:
            skills.append(skill.model_copy(deep=True))
            skill_names.add(key)

    updates.update(
        experiences=experiences,
        educations=educations,
        certifications=certifications,
        skills=skills,
    )
    return merged.model_copy(update=updates)
