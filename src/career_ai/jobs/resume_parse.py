"""Background resume-parse job: file -> text -> structured record -> analysis -> profile."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from career_ai.cache.result_cache import CacheKey, ResultCache, content_fingerprint
from career_ai.jobs.profile_merge import merge_profile
from career_ai.jobs.stages import (
    ForbiddenError,
    NotFoundError,
    PipelineError,
    ProgressReporter,
    Stage,
    StageError,
    run_stages,
)
from career_ai.models.resume import ParsedResumeRecord
from career_ai.parsers.document_parser import extract_text
from career_ai.pipeline.resume_analyzer import ResumeAnalyzer
from career_ai.pipeline.resume_parser import ResumeParser
from career_ai.services.analysis_service import ANALYSIS
from career_ai.stores.base import (
    ERROR_KEY,
    Notifier,
    ProfileRepository,
    ResumeEntry,
    ResumeRepository,
    StorageService,
    storage_key_from_url,
)

logger = logging.getLogger(__name__)

JOB_TYPE = "resume_parse"


@dataclass
class ParseJobContext:
    resume_id: str
    user_id: str
    update_profile: bool = False
    resume: ResumeEntry | None = None
    file_bytes: bytes = b""
    text: str = ""
    text_warnings: list[str] = field(default_factory=list)
    record: ParsedResumeRecord | None = None


class ResumeParseProcessor:
    """Runs one resume-parse job through its stages.

    Stages 1-5 are critical: a failure stores an error marker on the resume
    and re-raises so the queue can retry. Analysis and profile merge are
    advisory. Completion notification is fire-and-forget.
    """

    def __init__(
        self,
        resumes: ResumeRepository,
        storage: StorageService,
        parser: ResumeParser,
        analyzer: ResumeAnalyzer | None = None,
        cache: ResultCache | None = None,
        profiles: ProfileRepository | None = None,
        notifier: Notifier | None = None,
    ):
        self.resumes = resumes
        self.storage = storage
        self.parser = parser
        self.analyzer = analyzer
        self.cache = cache
        self.profiles = profiles
        self.notifier = notifier
        self._notifications: set[asyncio.Task] = set()

    def stages(self) -> list[Stage[ParseJobContext]]:
        return [
            Stage("load", self._load, progress=20),
            Stage("download", self._download, progress=30),
            Stage("extract", self._extract, progress=40),
            Stage("save_text", self._save_text, progress=50),
            Stage("parse", self._parse, progress=70),
            Stage("save_parsed", self._save_parsed, progress=80),
            Stage(
                "analyze",
                self._analyze,
                progress=85,
                advisory=True,
                enabled=lambda ctx: self.analyzer is not None and self.cache is not None,
            ),
            Stage(
                "profile",
                self._merge_profile,
                progress=90,
                advisory=True,
                enabled=lambda ctx: ctx.update_profile and self.profiles is not None,
            ),
        ]

    async def __call__(self, payload: dict, progress: ProgressReporter) -> dict:
        return await self.process(payload, progress)

    async def process(self, payload: dict, progress: ProgressReporter) -> dict:
        ctx = ParseJobContext(
            resume_id=payload["resume_id"],
            user_id=payload["user_id"],
            update_profile=bool(payload.get("update_profile", False)),
        )
        logger.info("Processing resume parse job: resume=%s user=%s", ctx.resume_id, ctx.user_id)
        progress(10)

        existing = self.resumes.get_resume(ctx.resume_id)
        if existing is not None and existing.user_id == ctx.user_id and existing.parse_state == "parsed":
            logger.info("Resume %s already parsed; nothing to do", ctx.resume_id)
            progress(100)
            return {"resume_id": ctx.resume_id, "skipped": True}

        try:
            advisory_failures = await run_stages(self.stages(), ctx, progress)
        except PipelineError as exc:
            logger.error(
                "Resume parse job failed at %s: resume=%s %s", exc.stage, ctx.resume_id, exc.message
            )
            if not isinstance(exc, (NotFoundError, ForbiddenError)):
                self._mark_failed(ctx.resume_id, exc)
            raise

        record = ctx.record
        logger.info(
            "Resume parsing completed: resume=%s name=%s experiences=%d educations=%d skills=%d",
            ctx.resume_id,
            bool(record.personal_info.name),
            len(record.experiences),
            len(record.educations),
            len(record.skills),
        )
        progress(100)
        self._notify(ctx)
        return {
            "resume_id": ctx.resume_id,
            "skipped": False,
            "warnings": ctx.text_warnings,
            "advisory_failures": advisory_failures,
        }

    async def _load(self, ctx: ParseJobContext) -> None:
        resume = self.resumes.get_resume(ctx.resume_id)
        if resume is None:
            raise NotFoundError(f"Resume not found: {ctx.resume_id}")
        if resume.user_id != ctx.user_id:
            raise ForbiddenError("Resume does not belong to user")
        ctx.resume = resume

    async def _download(self, ctx: ParseJobContext) -> None:
        key = storage_key_from_url(ctx.resume.file_url)
        logger.info("Downloading resume file: %s", key)
        ctx.file_bytes = await self.storage.download(key)

    async def _extract(self, ctx: ParseJobContext) -> None:
        document = await asyncio.to_thread(
            extract_text, ctx.file_bytes, ctx.resume.mime_type, ctx.resume.file_name
        )
        ctx.text = document.text
        ctx.text_warnings = document.warnings
        if not ctx.text:
            raise StageError("extract", "No text could be extracted from the document")

    async def _save_text(self, ctx: ParseJobContext) -> None:
        self.resumes.save_raw_text(ctx.resume_id, ctx.text)

    async def _parse(self, ctx: ParseJobContext) -> None:
        outcome = await self.parser.parse(ctx.text, file_name=ctx.resume.file_name)
        if not outcome.ok:
            raise StageError(
                "parse", f"Resume parsing failed: {outcome.message}", outcome.category.value
            )
        ctx.record = outcome.data

    async def _save_parsed(self, ctx: ParseJobContext) -> None:
        self.resumes.save_parsed_data(ctx.resume_id, ctx.record.model_dump(mode="json"))

    async def _analyze(self, ctx: ParseJobContext) -> None:
        outcome = await self.analyzer.analyze(ctx.record)
        if not outcome.ok:
            raise StageError("analyze", outcome.message, outcome.category.value)
        self.cache.put(
            CacheKey(ANALYSIS, ctx.resume_id),
            outcome.data.model_dump(mode="json"),
            fingerprint=content_fingerprint(ctx.record, None),
            model=outcome.model,
            usage=outcome.usage,
            owner_id=ctx.user_id,
        )
        logger.info(
            "Automatic analysis saved: resume=%s overall=%d", ctx.resume_id, outcome.data.overall_score
        )

    async def _merge_profile(self, ctx: ParseJobContext) -> None:
        profile = merge_profile(self.profiles.get_profile(ctx.user_id), ctx.user_id, ctx.record)
        self.profiles.save_profile(profile)
        logger.info("Profile updated from resume: user=%s", ctx.user_id)

    def _mark_failed(self, resume_id: str, exc: PipelineError) -> None:
        marker = {
            ERROR_KEY: exc.message,
            "stage": exc.stage,
            "failed_at": datetime.now().isoformat(),
        }
        try:
            self.resumes.save_parsed_data(resume_id, marker)
        except Exception:
            logger.error("Could not record parse failure on resume %s", resume_id, exc_info=True)

    def _notify(self, ctx: ParseJobContext) -> None:
        if self.notifier is None:
            return
        task = asyncio.create_task(self.notifier.resume_parsed(ctx.user_id, ctx.resume.file_name))
        self._notifications.add(task)
        task.add_done_callback(self._notification_done)

    def _notification_done(self, task: asyncio.Task) -> None:
        self._notifications.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Failed to send resume parse notification: %s", exc)

    async def drain_notifications(self) -> None:
        """Wait for in-flight notifications (used at shutdown)."""
        if self._notifications:
            await asyncio.gather(*list(self._notifications), return_exceptions=True)
