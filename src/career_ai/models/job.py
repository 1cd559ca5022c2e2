"""Job context passed into tailoring, analysis, cover letters and interview practice."""

from __future__ import annotations

from pydantic import BaseModel

MIN_DESCRIPTION_LENGTH = 50


class JobDescriptor(BaseModel):
    title: str
    company: str
    description: str
    requirements: str | None = None
    preferred_qualifications: str | None = None
    location: str | None = None
    salary_range: str | None = None
    job_type: str | None = None
    work_mode: str | None = None
    id: str | None = None

    def has_usable_description(self) -> bool:
        return len(self.description.strip()) >= MIN_DESCRIPTION_LENGTH
