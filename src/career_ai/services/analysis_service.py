"""On-demand analysis and tailoring with ownership checks and result caching."""

from __future__ import annotations

import logging

from career_ai.cache.result_cache import CacheKey, CachedResult, ResultCache, content_fingerprint
from career_ai.models.analysis import AnalysisRecord
from career_ai.models.job import JobDescriptor
from career_ai.models.job_analysis import JobAnalysisRecord
from career_ai.models.outcome import AgentErr, AgentOutcome, ErrorCategory
from career_ai.models.resume import ParsedResumeRecord
from career_ai.models.tailoring import TailoringResult
from career_ai.pipeline.job_analyzer import JobAnalyzer
from career_ai.pipeline.resume_analyzer import ResumeAnalyzer
from career_ai.pipeline.resume_tailor import ResumeTailor
from career_ai.stores.base import JobRepository, ResumeRepository

logger = logging.getLogger(__name__)

ANALYSIS = "analysis"
TAILORING = "tailoring"
JOB_ANALYSIS = "job_analysis"


def _not_found(what: str, ident: str) -> AgentErr:
    return AgentErr(
        code="NOT_FOUND", message=f"{what} not found: {ident}", category=ErrorCategory.NOT_FOUND
    )


def _forbidden(what: str) -> AgentErr:
    return AgentErr(
        code="FORBIDDEN",
        message=f"{what} does not belong to this user",
        category=ErrorCategory.FORBIDDEN,
    )


def analysis_context(target_role: str | None, target_industry: str | None) -> dict[str, str]:
    """Normalized framing context; empty when none was supplied."""
    context = {}
    if target_role and target_role.strip():
        context["target_role"] = target_role.strip()
    if target_industry and target_industry.strip():
        context["target_industry"] = target_industry.strip()
    return context


class AnalysisService:
    """Serves analyses and tailoring previews, reusing stored results when still valid.

    A stored result is reused when no new framing context was supplied and
    the resume and job content it was computed from are unchanged.
    """

    def __init__(
        self,
        analyzer: ResumeAnalyzer,
        tailor: ResumeTailor,
        resumes: ResumeRepository,
        jobs: JobRepository,
        cache: ResultCache,
        job_analyzer: JobAnalyzer | None = None,
    ):
        self.analyzer = analyzer
        self.job_analyzer = job_analyzer or analyzer.job_analyzer
        self.tailor = tailor
        self.resumes = resumes
        self.jobs = jobs
        self.cache = cache

    def _load_resume(self, user_id: str, resume_id: str) -> ParsedResumeRecord | AgentErr:
        resume = self.resumes.get_resume(resume_id)
        if resume is None:
            return _not_found("Resume", resume_id)
        if resume.user_id != user_id:
            return _forbidden("Resume")
        record = resume.parsed_record()
        if record is None:
            return AgentErr.validation(
                "Resume has not been parsed successfully yet", parse_state=resume.parse_state
            )
        return record

    def _load_job(self, user_id: str, job_id: str) -> JobDescriptor | AgentErr:
        entry = self.jobs.get_job(job_id)
        if entry is None:
            return _not_found("Job", job_id)
        if entry.user_id != user_id:
            return _forbidden("Job")
        return entry.descriptor()

    def _load(
        self, user_id: str, resume_id: str, job_id: str | None
    ) -> tuple[ParsedResumeRecord, JobDescriptor | None] | AgentErr:
        record = self._load_resume(user_id, resume_id)
        if isinstance(record, AgentErr):
            return record
        job = None
        if job_id is not None:
            job = self._load_job(user_id, job_id)
            if isinstance(job, AgentErr):
                return job
        return record, job

    async def analyze_resume(
        self,
        user_id: str,
        resume_id: str,
        job_id: str | None = None,
        *,
        target_role: str | None = None,
        target_industry: str | None = None,
        force_refresh: bool = False,
    ) -> AgentOutcome[AnalysisRecord]:
        loaded = self._load(user_id, resume_id, job_id)
        if isinstance(loaded, AgentErr):
            return loaded
        record, job = loaded

        context = analysis_context(target_role, target_industry)
        fingerprint = content_fingerprint(record, job.description if job else None)

        def is_fresh(entry: CachedResult) -> bool:
            if force_refresh:
                return False
            # Supplied framing that differs from the stored one counts as new context
            if context and context != entry.context:
                return False
            return entry.fingerprint == fingerprint

        lookup = await self.cache.get_or_compute(
            CacheKey(ANALYSIS, resume_id, job_id),
            AnalysisRecord,
            lambda: self.analyzer.analyze(
                record, job, target_role=target_role, target_industry=target_industry
            ),
            is_fresh,
            context=context or None,
            fingerprint=fingerprint,
            owner_id=user_id,
        )
        return lookup.outcome

    async def tailor_preview(
        self,
        user_id: str,
        resume_id: str,
        job_id: str,
        *,
        force_refresh: bool = False,
    ) -> AgentOutcome[TailoringResult]:
        loaded = self._load(user_id, resume_id, job_id)
        if isinstance(loaded, AgentErr):
            return loaded
        record, job = loaded

        fingerprint = content_fingerprint(record, job)
        lookup = await self.cache.get_or_compute(
            CacheKey(TAILORING, resume_id, job_id),
            TailoringResult,
            lambda: self.tailor.tailor(record, job),
            lambda entry: not force_refresh and entry.fingerprint == fingerprint,
            fingerprint=fingerprint,
            owner_id=user_id,
        )
        return lookup.outcome

    async def analyze_job(
        self,
        user_id: str,
        job_id: str,
        resume_id: str | None = None,
        *,
        force_refresh: bool = False,
    ) -> AgentOutcome[JobAnalysisRecord]:
        """Analyze a job posting, with match scores when ``resume_id`` is given."""
        job = self._load_job(user_id, job_id)
        if isinstance(job, AgentErr):
            return job
        record = None
        if resume_id is not None:
            record = self._load_resume(user_id, resume_id)
            if isinstance(record, AgentErr):
                return record

        fingerprint = content_fingerprint(job, record)
        lookup = await self.cache.get_or_compute(
            CacheKey(JOB_ANALYSIS, job_id, resume_id),
            JobAnalysisRecord,
            lambda: self.job_analyzer.analyze(job, record),
            lambda entry: not force_refresh and entry.fingerprint == fingerprint,
            fingerprint=fingerprint,
            owner_id=user_id,
        )
        return lookup.outcome

    def stored_analysis(self, user_id: str, resume_id: str, job_id: str | None = None):
        """The stored analysis for the key without computing, or None."""
        entry = self.cache.get(CacheKey(ANALYSIS, resume_id, job_id))
        if entry is None or (entry.owner_id and entry.owner_id != user_id):
            return None
        return AnalysisRecord.model_validate(entry.payload)
