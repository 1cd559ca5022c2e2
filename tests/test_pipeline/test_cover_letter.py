"""Tests for CoverLetterWriter."""

from __future__ import annotations

import pytest

from career_ai.models.cover_letter import DEFAULT_SUBJECT, CoverLetter, read_time
from career_ai.models.job import JobDescriptor
from career_ai.models.outcome import ErrorCategory
from career_ai.pipeline.cover_letter import OPERATION, CoverLetterWriter, key_requirements

LETTER = (
    "Dear Hiring Manager,\n\n"
    "I am excited to apply for the Staff Backend Engineer role at Initech. "
    "At Acme Corp I built a FastAPI service handling 1M requests per day.\n\n"
    "Sincerely,\nJane Doe"
)


@pytest.fixture
def cover_letter_data() -> dict:
    return {
        "cover_letter": LETTER,
        "subject": "Staff Backend Engineer Application - Jane Doe",
        "key_points": ["FastAPI service at 1M requests per day", "Redis caching"],
        "matched_requirements": ["5+ years of Python", "PostgreSQL and Redis"],
        "tone": "professional",
        "word_count": 38,
        "estimated_read_time": "1 minute",
        "suggestions": ["Name a recent Initech product launch"],
    }


class TestCoverLetterWriter:
    async def test_write(self, make_llm, executor, sample_record, sample_job, cover_letter_data):
        llm = make_llm(cover_letter_data)
        outcome = await CoverLetterWriter(llm, executor=executor).write(sample_record, sample_job)

        assert outcome.ok
        letter = outcome.data
        assert letter.cover_letter == LETTER
        assert letter.matched_requirements == ["5+ years of Python", "PostgreSQL and Redis"]
        assert llm.kwargs[0] == {"timeout": 120, "operation": OPERATION}
        assert llm.calls[0].temperature == 0.7
        assert llm.calls[0].max_tokens == 2048
        prompt = llm.calls[0].prompt
        assert "Jane Doe" in prompt
        assert "- 5+ years of Python" in prompt
        assert "None provided" in prompt

    async def test_tone_and_notes_in_prompt(self, make_llm, executor, sample_record, sample_job, cover_letter_data):
        llm = make_llm(cover_letter_data)
        await CoverLetterWriter(llm, executor=executor).write(
            sample_record, sample_job, tone="enthusiastic", additional_notes="Referred by Sam"
        )

        prompt = llm.calls[0].prompt
        assert "**Tone:** enthusiastic" in prompt
        assert "Referred by Sam" in prompt

    async def test_missing_counts_filled_in(self, make_llm, executor, sample_record, sample_job):
        llm = make_llm({"coverLetter": LETTER, "tone": "Warm"})
        outcome = await CoverLetterWriter(llm, executor=executor).write(sample_record, sample_job)

        assert outcome.ok
        letter = outcome.data
        assert letter.word_count == len(LETTER.split())
        assert letter.estimated_read_time == "1 minute"
        assert letter.subject == DEFAULT_SUBJECT
        assert letter.tone == "professional"

    async def test_empty_letter_retried(self, make_llm, executor, sample_record, sample_job, cover_letter_data):
        llm = make_llm({"cover_letter": "", "subject": "Hi"}, cover_letter_data)
        outcome = await CoverLetterWriter(llm, executor=executor).write(sample_record, sample_job)

        assert outcome.ok
        assert outcome.attempts == 2

    async def test_invalid_request_collects_every_error(self, make_llm, executor, sample_record):
        sample_record.experiences = []
        job = JobDescriptor(title="", company="Initech", description="Short")
        llm = make_llm({})

        outcome = await CoverLetterWriter(llm, executor=executor).write(sample_record, job, tone="casual")

        assert outcome.category is ErrorCategory.VALIDATION
        assert outcome.message.startswith("Validation failed: ")
        assert len(outcome.details["errors"]) == 4
        assert llm.call_count == 0


class TestKeyRequirements:
    def test_explicit_requirements_win(self, sample_job):
        sample_job.requirements = "Python, Redis"
        assert key_requirements(sample_job) == "Python, Redis"

    def test_section_pulled_from_description(self, sample_job):
        assert key_requirements(sample_job) == "- 5+ years of Python\n- PostgreSQL and Redis\n- REST API design"

    def test_falls_back_to_description_head(self):
        job = JobDescriptor(title="Engineer", company="Initech", description="Build things. " * 60)

        text = key_requirements(job)

        assert text.endswith("...")
        assert len(text) == 503


class TestCoverLetterModel:
    @pytest.mark.parametrize("words, expected", [(0, "1 minute"), (200, "1 minute"), (201, "2 minutes")])
    def test_read_time(self, words, expected):
        assert read_time(words) == expected

    def test_unreadable_word_count_recounted(self):
        letter = CoverLetter.model_validate({"cover_letter": "one two three", "word_count": "about 300"})
        assert letter.word_count == 3

    def test_summary(self, cover_letter_data):
        text = CoverLetter.model_validate(cover_letter_data).summary()
        assert "Word Count: 38" in text
        assert "Job Requirements Addressed: 2" in text
