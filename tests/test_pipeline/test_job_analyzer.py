"""Tests for JobAnalyzer."""

from __future__ import annotations

import pytest

from career_ai.agents.extractor import ValidationFailure
from career_ai.models.job import JobDescriptor
from career_ai.models.job_analysis import JobAnalysisRecord
from career_ai.models.outcome import ErrorCategory
from career_ai.pipeline.job_analyzer import NO_RESUME, OPERATION, JobAnalyzer, extract_job_analysis, format_job
from career_ai.utils.json_parser import ExtractionError


class TestJobAnalyzer:
    async def test_job_only(self, make_llm, executor, sample_job, job_analysis_data):
        llm = make_llm(job_analysis_data)
        outcome = await JobAnalyzer(llm, executor=executor).analyze(sample_job)

        assert outcome.ok
        record = outcome.data
        assert record.analysis.role_level == "senior"
        assert record.analysis.required_skills == ["Python", "PostgreSQL", "Redis"]
        assert record.match_analysis is None
        assert record.salary_insights.estimated_range == "$170,000 - $210,000"
        assert llm.kwargs[0] == {"timeout": 180, "operation": OPERATION}
        assert llm.calls[0].temperature == 0.6
        assert llm.calls[0].max_tokens == 6000
        assert NO_RESUME in llm.calls[0].prompt

    async def test_match_analysis_dropped_without_resume(
        self, make_llm, executor, sample_job, job_analysis_data, match_analysis_data
    ):
        job_analysis_data["match_analysis"] = match_analysis_data
        outcome = await JobAnalyzer(make_llm(job_analysis_data), executor=executor).analyze(sample_job)

        assert outcome.ok
        assert outcome.data.match_analysis is None

    async def test_with_resume(
        self, make_llm, executor, sample_job, sample_record, job_analysis_data, match_analysis_data
    ):
        job_analysis_data["match_analysis"] = match_analysis_data
        llm = make_llm(job_analysis_data)
        outcome = await JobAnalyzer(llm, executor=executor).analyze(sample_job, sample_record)

        assert outcome.ok
        assert outcome.data.match_analysis.overall_match == 81
        assert "Jane Doe" in llm.calls[0].prompt
        assert NO_RESUME not in llm.calls[0].prompt

    async def test_missing_match_analysis_with_resume_is_validation(
        self, make_llm, executor, sample_job, sample_record, job_analysis_data
    ):
        llm = make_llm(job_analysis_data)
        outcome = await JobAnalyzer(llm, executor=executor).analyze(sample_job, sample_record)

        assert outcome.category is ErrorCategory.VALIDATION
        assert llm.call_count == 1

    @pytest.mark.parametrize(
        "job",
        [
            None,
            JobDescriptor(title="Engineer", company="Initech", description="Too short"),
            JobDescriptor(title="", company="Initech", description="x" * 80),
        ],
    )
    async def test_unusable_job_rejected(self, make_llm, executor, job):
        llm = make_llm({})
        outcome = await JobAnalyzer(llm, executor=executor).analyze(job)

        assert outcome.category is ErrorCategory.VALIDATION
        assert llm.call_count == 0

    async def test_non_analysis_reply_retried(self, make_llm, executor, sample_job, job_analysis_data):
        llm = make_llm({"overall_score": 80}, job_analysis_data)
        outcome = await JobAnalyzer(llm, executor=executor).analyze(sample_job)

        assert outcome.ok
        assert outcome.attempts == 2


class TestExtractJobAnalysis:
    def test_camel_case_keys_accepted(self):
        record = extract_job_analysis(
            '{"analysis": {"roleLevel": "Lead", "requiredSkills": ["Go"], "redFlags": null},'
            ' "salaryInsights": {"estimatedRange": "$150k"}, "applicationTips": "Apply early"}',
            with_resume=False,
        )
        assert record.analysis.role_level == "lead"
        assert record.analysis.required_skills == ["Go"]
        assert record.analysis.red_flags == []
        assert record.salary_insights.estimated_range == "$150k"
        assert record.application_tips == ["Apply early"]

    @pytest.mark.parametrize("level,expected", [("Junior", "entry"), ("Principal", "lead"), ("wizard", "mid")])
    def test_role_level_normalized(self, level, expected):
        record = extract_job_analysis(f'{{"analysis": {{"role_level": "{level}"}}}}', with_resume=False)
        assert record.analysis.role_level == expected

    def test_missing_analysis_object(self):
        with pytest.raises(ExtractionError):
            extract_job_analysis('{"salary_insights": {}}', with_resume=False)

    def test_invalid_match_analysis(self):
        with pytest.raises(ValidationFailure):
            extract_job_analysis('{"analysis": {}, "match_analysis": "great"}', with_resume=True)


def test_format_job_includes_optional_details(sample_job):
    job = sample_job.model_copy(update={"location": "Remote", "salary_range": "$180k"})
    text = format_job(job)
    assert "Location: Remote" in text
    assert "Salary Range: $180k" in text
    assert "Work Mode" not in text


def test_summary_report(job_analysis_data, match_analysis_data):
    record = JobAnalysisRecord.model_validate({**job_analysis_data, "match_analysis": match_analysis_data})
    report = record.summary()
    assert "- Role Level: senior" in report
    assert "- Overall Match: 81%" in report
    assert "Salary: $170,000 - $210,000 (Salary not disclosed)" in report
