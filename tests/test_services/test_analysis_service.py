"""Tests for AnalysisService: ownership checks and cached analyses."""

from __future__ import annotations

import asyncio
import copy
import json

import pytest

from career_ai.cache.result_cache import CacheKey, ResultCache
from career_ai.clients.llm_client import CompletionResult
from career_ai.models.outcome import ErrorCategory, TokenUsage
from career_ai.pipeline.resume_analyzer import ResumeAnalyzer
from career_ai.pipeline.resume_tailor import ResumeTailor
from career_ai.services.analysis_service import (
    ANALYSIS,
    JOB_ANALYSIS,
    TAILORING,
    AnalysisService,
    analysis_context,
)
from career_ai.stores.base import JobEntry, ResumeEntry
from career_ai.stores.sqlite_store import SQLiteStore


@pytest.fixture
def store(tmp_path, sample_record_data, sample_job) -> SQLiteStore:
    store = SQLiteStore(tmp_path / "store.db")
    store.add_resume(
        ResumeEntry(id="resume-1", user_id="user-1", file_url="/uploads/resumes/a.pdf",
                    parsed_data=sample_record_data)
    )
    store.add_resume(ResumeEntry(id="resume-new", user_id="user-1", file_url="/uploads/resumes/b.pdf"))
    store.add_resume(
        ResumeEntry(id="resume-failed", user_id="user-1", file_url="/uploads/resumes/c.pdf",
                    parsed_data={"error": "boom", "stage": "parse"})
    )
    store.add_job(JobEntry(id="job-1", user_id="user-1", title=sample_job.title,
                           company=sample_job.company, description=sample_job.description))
    store.add_job(JobEntry(id="job-other", user_id="user-2", title="t", company="c",
                           description=sample_job.description))
    return store


@pytest.fixture
def cache(tmp_path) -> ResultCache:
    return ResultCache(tmp_path / "cache.db")


@pytest.fixture
def build_service(store, cache, executor):
    def _build(llm) -> AnalysisService:
        return AnalysisService(
            analyzer=ResumeAnalyzer(llm, executor=executor),
            tailor=ResumeTailor(llm, executor=executor),
            resumes=store,
            jobs=store,
            cache=cache,
        )

    return _build


class TestAnalyzeResume:
    async def test_second_request_served_from_cache(self, build_service, make_llm, sample_analysis_data):
        llm = make_llm(sample_analysis_data)
        service = build_service(llm)

        first = await service.analyze_resume("user-1", "resume-1", "job-1")
        assert first.ok
        assert llm.call_count == 1

        second = await service.analyze_resume("user-1", "resume-1", "job-1")
        assert second.ok
        assert second.data == first.data
        assert second.attempts == 0
        assert llm.call_count == 1

    async def test_new_target_role_recomputes_and_replaces(
        self, build_service, make_llm, cache, sample_analysis_data
    ):
        reframed = copy.deepcopy(sample_analysis_data)
        reframed["overall_score"] = 61
        llm = make_llm(sample_analysis_data, reframed)
        service = build_service(llm)

        await service.analyze_resume("user-1", "resume-1", "job-1")
        outcome = await service.analyze_resume("user-1", "resume-1", "job-1", target_role="Data Engineer")

        assert llm.call_count == 2
        assert outcome.data.overall_score == 61
        key = CacheKey(ANALYSIS, "resume-1", "job-1")
        assert cache.count(key) == 1
        assert cache.get(key).context == {"target_role": "Data Engineer"}

    async def test_same_target_role_is_cache_hit(self, build_service, make_llm, sample_analysis_data):
        llm = make_llm(sample_analysis_data)
        service = build_service(llm)

        await service.analyze_resume("user-1", "resume-1", target_role="SRE")
        await service.analyze_resume("user-1", "resume-1", target_role=" SRE ")
        assert llm.call_count == 1

    async def test_changed_resume_content_recomputes(
        self, build_service, make_llm, store, sample_record_data, sample_analysis_data
    ):
        llm = make_llm(sample_analysis_data)
        service = build_service(llm)
        await service.analyze_resume("user-1", "resume-1")

        edited = {**sample_record_data, "summary": "Platform engineer"}
        store.save_parsed_data("resume-1", edited)
        await service.analyze_resume("user-1", "resume-1")

        assert llm.call_count == 2

    async def test_force_refresh(self, build_service, make_llm, sample_analysis_data):
        llm = make_llm(sample_analysis_data)
        service = build_service(llm)
        await service.analyze_resume("user-1", "resume-1")
        await service.analyze_resume("user-1", "resume-1", force_refresh=True)
        assert llm.call_count == 2

    async def test_general_and_job_analyses_are_separate(self, build_service, make_llm, cache, sample_analysis_data):
        llm = make_llm(sample_analysis_data)
        service = build_service(llm)
        await service.analyze_resume("user-1", "resume-1")
        await service.analyze_resume("user-1", "resume-1", "job-1")

        assert llm.call_count == 2
        assert cache.count(CacheKey(ANALYSIS, "resume-1")) == 1
        assert cache.count(CacheKey(ANALYSIS, "resume-1", "job-1")) == 1

    async def test_failure_not_cached(self, build_service, make_llm, cache):
        llm = make_llm("no json here")
        service = build_service(llm)
        outcome = await service.analyze_resume("user-1", "resume-1")

        assert outcome.category is ErrorCategory.PARSING
        assert cache.get(CacheKey(ANALYSIS, "resume-1")) is None

    @pytest.mark.parametrize(
        "user_id,resume_id,job_id,category",
        [
            ("user-1", "missing", None, ErrorCategory.NOT_FOUND),
            ("user-2", "resume-1", None, ErrorCategory.FORBIDDEN),
            ("user-1", "resume-new", None, ErrorCategory.VALIDATION),
            ("user-1", "resume-failed", None, ErrorCategory.VALIDATION),
            ("user-1", "resume-1", "missing", ErrorCategory.NOT_FOUND),
            ("user-1", "resume-1", "job-other", ErrorCategory.FORBIDDEN),
        ],
    )
    async def test_rejected_requests_make_no_call(
        self, build_service, make_llm, user_id, resume_id, job_id, category
    ):
        llm = make_llm({})
        outcome = await build_service(llm).analyze_resume(user_id, resume_id, job_id)

        assert outcome.category is category
        assert llm.call_count == 0

    async def test_stored_analysis(self, build_service, make_llm, sample_analysis_data):
        service = build_service(make_llm(sample_analysis_data))
        assert service.stored_analysis("user-1", "resume-1") is None

        await service.analyze_resume("user-1", "resume-1")
        assert service.stored_analysis("user-1", "resume-1").overall_score == 78
        assert service.stored_analysis("user-2", "resume-1") is None


class TestTailorPreview:
    async def test_cached_per_job(self, build_service, make_llm, cache, sample_record_data):
        response = {"tailored_resume": sample_record_data, "match_score": 75, "changes": []}
        llm = make_llm(response)
        service = build_service(llm)

        first = await service.tailor_preview("user-1", "resume-1", "job-1")
        second = await service.tailor_preview("user-1", "resume-1", "job-1")

        assert first.ok and second.ok
        assert second.data.match_score == 75
        assert llm.call_count == 1
        assert cache.count(CacheKey(TAILORING, "resume-1", "job-1")) == 1

    async def test_forbidden_job(self, build_service, make_llm):
        llm = make_llm({})
        outcome = await build_service(llm).tailor_preview("user-1", "resume-1", "job-other")
        assert outcome.category is ErrorCategory.FORBIDDEN
        assert llm.call_count == 0


class GatedLLM:
    """Scripted client whose first call returns only once ``ready()`` is true."""

    def __init__(self, ready, *responses):
        self.ready = ready
        self.responses = list(responses)
        self.call_count = 0

    async def complete(self, request, **kwargs):
        self.call_count += 1
        index = self.call_count - 1
        if index == 0:
            while not self.ready():
                await asyncio.sleep(0)
        return CompletionResult(
            text=json.dumps(self.responses[index]), usage=TokenUsage(100, 50), model="claude-sonnet-4-5-20250929"
        )


class TestConcurrentAnalyses:
    async def test_racing_requests_keep_one_record_last_write_wins(self, build_service, cache, sample_analysis_data):
        key = CacheKey(ANALYSIS, "resume-1", "job-1")
        slow = copy.deepcopy(sample_analysis_data)
        fast = copy.deepcopy(sample_analysis_data)
        fast["overall_score"] = 55
        # The first request's completion returns only after the second one has been stored
        llm = GatedLLM(lambda: cache.get(key) is not None, slow, fast)
        service = build_service(llm)

        first, second = await asyncio.gather(
            service.analyze_resume("user-1", "resume-1", "job-1", force_refresh=True),
            service.analyze_resume("user-1", "resume-1", "job-1", force_refresh=True),
        )

        assert first.ok and second.ok
        assert (first.data.overall_score, second.data.overall_score) == (78, 55)
        assert llm.call_count == 2
        assert cache.count(key) == 1
        assert cache.get(key).payload["overall_score"] == 78
        assert service.stored_analysis("user-1", "resume-1", "job-1").overall_score == 78


class TestAnalyzeJob:
    async def test_job_only_analysis_cached(self, build_service, make_llm, cache, job_analysis_data):
        llm = make_llm(job_analysis_data)
        service = build_service(llm)

        first = await service.analyze_job("user-1", "job-1")
        second = await service.analyze_job("user-1", "job-1")

        assert first.ok and second.ok
        assert second.attempts == 0
        assert second.data.analysis.required_skills == ["Python", "PostgreSQL", "Redis"]
        assert second.data.match_analysis is None
        assert llm.call_count == 1
        assert cache.count(CacheKey(JOB_ANALYSIS, "job-1")) == 1
        assert cache.get(CacheKey(ANALYSIS, "job-1")) is None

    async def test_with_resume_keyed_separately(
        self, build_service, make_llm, cache, job_analysis_data, match_analysis_data
    ):
        llm = make_llm(job_analysis_data, {**job_analysis_data, "match_analysis": match_analysis_data})
        service = build_service(llm)

        await service.analyze_job("user-1", "job-1")
        matched = await service.analyze_job("user-1", "job-1", "resume-1")

        assert matched.data.match_analysis.overall_match == 81
        assert llm.call_count == 2
        assert cache.count(CacheKey(JOB_ANALYSIS, "job-1")) == 1
        assert cache.count(CacheKey(JOB_ANALYSIS, "job-1", "resume-1")) == 1

    async def test_changed_job_recomputes(self, build_service, make_llm, store, sample_job, job_analysis_data):
        llm = make_llm(job_analysis_data)
        service = build_service(llm)
        await service.analyze_job("user-1", "job-1")

        store.add_job(JobEntry(id="job-1", user_id="user-1", title="Principal Engineer",
                               company=sample_job.company, description=sample_job.description))
        await service.analyze_job("user-1", "job-1")

        assert llm.call_count == 2

    @pytest.mark.parametrize(
        "job_id,resume_id,category",
        [
            ("missing", None, ErrorCategory.NOT_FOUND),
            ("job-other", None, ErrorCategory.FORBIDDEN),
            ("job-1", "resume-new", ErrorCategory.VALIDATION),
            ("job-1", "missing", ErrorCategory.NOT_FOUND),
        ],
    )
    async def test_rejected_requests_make_no_call(self, build_service, make_llm, job_id, resume_id, category):
        llm = make_llm({})
        outcome = await build_service(llm).analyze_job("user-1", job_id, resume_id)

        assert outcome.category is category
        assert llm.call_count == 0


class TestAnalysisContext:
    def test_blank_values_dropped(self):
        assert analysis_context(" ", None) == {}

    def test_values_stripped(self):
        assert analysis_context(" SRE ", "Fintech") == {"target_role": "SRE", "target_industry": "Fintech"}
