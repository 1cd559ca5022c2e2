"""Collaborator contracts and records consumed by the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol
from urllib.parse import urlparse

from pydantic import BaseModel, Field, ValidationError

from career_ai.models.job import JobDescriptor
from career_ai.models.resume import Certification, Education, Experience, ParsedResumeRecord, Skill

ERROR_KEY = "error"


class ResumeEntry(BaseModel):
    """A stored resume. ``parsed_data`` is None (never parsed), a parsed record, or an error marker."""

    id: str
    user_id: str
    file_url: str
    file_name: str | None = None
    mime_type: str | None = None
    raw_text: str | None = None
    parsed_data: dict[str, Any] | None = None
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def parse_state(self) -> str:
        """``never``, ``failed`` or ``parsed``."""
        if self.parsed_data is None:
            return "never"
        if ERROR_KEY in self.parsed_data:
            return "failed"
        return "parsed"

    @property
    def parse_error(self) -> str | None:
        if self.parse_state != "failed":
            return None
        return str(self.parsed_data[ERROR_KEY])

    def parsed_record(self) -> ParsedResumeRecord | None:
        if self.parse_state != "parsed":
            return None
        try:
            return ParsedResumeRecord.model_validate(self.parsed_data)
        except ValidationError:
            return None


class JobEntry(BaseModel):
    id: str
    user_id: str
    title: str
    company: str
    description: str
    requirements: str | None = None
    preferred_qualifications: str | None = None
    location: str | None = None
    salary_range: str | None = None
    job_type: str | None = None
    work_mode: str | None = None

    def descriptor(self) -> JobDescriptor:
        return JobDescriptor(
            id=self.id,
            title=self.title,
            company=self.company,
            description=self.description,
            requirements=self.requirements,
            preferred_qualifications=self.preferred_qualifications,
            location=self.location,
            salary_range=self.salary_range,
            job_type=self.job_type,
            work_mode=self.work_mode,
        )


class UserProfile(BaseModel):
    user_id: str
    phone: str | None = None
    location: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    linkedin_url: str | None = None
    github_url: str | None = None
    portfolio_url: str | None = None
    bio: str | None = None
    years_of_experience: int | None = None
    current_job_title: str | None = None
    current_company: str | None = None
    experiences: list[Experience] = []
    educations: list[Education] = []
    skills: list[Skill] = []
    certifications: list[Certification] = []


@dataclass(frozen=True)
class UploadedFile:
    url: str
    key: str
    size: int
    mime_type: str | None


class StorageService(Protocol):
    async def upload(
        self, data: bytes, folder: str, file_name: str, mime_type: str | None = None
    ) -> UploadedFile: ...

    async def download(self, key: str) -> bytes: ...

    async def delete(self, key: str) -> None: ...


class ResumeRepository(Protocol):
    def get_resume(self, resume_id: str) -> ResumeEntry | None: ...

    def save_raw_text(self, resume_id: str, raw_text: str) -> None: ...

    def save_parsed_data(self, resume_id: str, parsed_data: dict[str, Any]) -> None: ...


class JobRepository(Protocol):
    def get_job(self, job_id: str) -> JobEntry | None: ...


class ProfileRepository(Protocol):
    def get_profile(self, user_id: str) -> UserProfile | None: ...

    def save_profile(self, profile: UserProfile) -> None: ...


class Notifier(Protocol):
    async def resume_parsed(self, user_id: str, file_name: str | None) -> None: ...


def storage_key_from_url(file_url: str) -> str:
    """Storage key for a stored file URL.

    ``https://bucket.host/resumes/a.pdf`` -> ``resumes/a.pdf``;
    ``/uploads/resumes/a.pdf`` -> ``resumes/a.pdf``.
    """
    if file_url.startswith(("http://", "https://")):
        return urlparse(file_url).path.lstrip("/")
    if file_url.startswith("/uploads/"):
        return file_url[len("/uploads/"):]
    return file_url.lstrip("/")
