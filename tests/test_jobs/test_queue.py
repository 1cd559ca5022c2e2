"""Tests for the in-process job queue."""

import pytest

from career_ai.config import QueueConfig
from career_ai.jobs.queue import JobQueue
from career_ai.jobs.stages import ForbiddenError


class Flaky:
    """Fails ``failures`` times with ``exc``, then returns the payload."""

    def __init__(self, failures: int = 0, exc: Exception | None = None):
        self.failures = failures
        self.exc = exc or RuntimeError("temporary")
        self.calls = 0

    async def __call__(self, payload, progress):
        self.calls += 1
        progress(50)
        if self.calls <= self.failures:
            raise self.exc
        return {"echo": payload}


@pytest.fixture
def delays():
    return []


@pytest.fixture
def make_queue(delays):
    async def record_sleep(seconds):
        delays.append(seconds)

    def _make(**kwargs):
        kwargs.setdefault("backoff_delay", 2.0)
        return JobQueue(sleep=record_sleep, **kwargs)

    return _make


async def test_completes_job(make_queue):
    handler = Flaky()
    async with make_queue() as queue:
        queue.register("echo", handler)
        job = await queue.enqueue("echo", {"n": 1})
        await job.wait()

    assert job.state == "completed"
    assert job.result == {"echo": {"n": 1}}
    assert job.progress == 50
    assert job.attempts_made == 1


async def test_completed_jobs_are_not_retained(make_queue):
    async with make_queue() as queue:
        queue.register("echo", Flaky())
        jobs = [await queue.enqueue("echo", {"n": n}) for n in range(5)]
        assert all(queue.get(job.id) is job for job in jobs)
        await queue.join()

    assert [job.result for job in jobs] == [{"echo": {"n": n}} for n in range(5)]
    assert all(queue.get(job.id) is None for job in jobs)
    assert queue._jobs == {}


async def test_failed_jobs_stay_tracked(make_queue):
    async with make_queue(attempts=1) as queue:
        queue.register("echo", Flaky(failures=1))
        failed = await queue.enqueue("echo", {})
        await queue.join()
        ok = await queue.enqueue("echo", {})
        await queue.join()

    assert queue.get(failed.id) is failed
    assert queue.get(ok.id) is None
    assert queue.failed_jobs() == [failed]


async def test_retries_with_exponential_backoff(make_queue, delays):
    handler = Flaky(failures=2)
    async with make_queue(attempts=3) as queue:
        queue.register("echo", handler)
        job = await queue.enqueue("echo", {})
        await queue.join()

    assert job.state == "completed"
    assert job.error is None
    assert handler.calls == 3
    assert delays == [2.0, 4.0]


async def test_fails_after_attempts_exhausted(make_queue, delays):
    handler = Flaky(failures=5)
    async with make_queue(attempts=2) as queue:
        queue.register("echo", handler)
        job = await queue.enqueue("echo", {})
        await queue.join()

    assert job.state == "failed"
    assert job.error == "temporary"
    assert job.finished_at is not None
    assert handler.calls == 2
    assert delays == [2.0]
    assert queue.failed_jobs() == [job]


async def test_non_retryable_error_fails_immediately(make_queue, delays):
    handler = Flaky(failures=1, exc=ForbiddenError("Resume does not belong to user"))
    async with make_queue(attempts=3) as queue:
        queue.register("echo", handler)
        job = await queue.enqueue("echo", {})
        await job.wait()

    assert job.state == "failed"
    assert handler.calls == 1
    assert delays == []


async def test_per_job_attempts_override(make_queue):
    handler = Flaky(failures=1)
    async with make_queue(attempts=3) as queue:
        queue.register("echo", handler)
        job = await queue.enqueue("echo", {}, attempts=1)
        await queue.join()

    assert job.state == "failed"
    assert handler.calls == 1


async def test_unknown_job_type(make_queue):
    queue = make_queue()
    with pytest.raises(ValueError, match="No handler registered"):
        await queue.enqueue("missing", {})


def test_from_config():
    queue = JobQueue.from_config(QueueConfig(workers=4, attempts=5, backoff_delay=0.5))
    assert (queue.workers, queue.attempts, queue.backoff_delay) == (4, 5, 0.5)
