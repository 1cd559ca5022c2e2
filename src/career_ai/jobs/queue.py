"""In-process async job queue with a worker pool, retries and exponential backoff."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from career_ai.config import QueueConfig
from career_ai.jobs.stages import ProgressReporter

logger = logging.getLogger(__name__)

Handler = Callable[[dict, ProgressReporter], Awaitable[Any]]


@dataclass
class JobHandle:
    job_type: str
    payload: dict
    attempts: int
    backoff_delay: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: str = "waiting"  # waiting | active | delayed | completed | failed
    attempts_made: int = 0
    progress: int = 0
    result: Any = None
    error: str | None = None
    created_at: float = field(default_factory=time.time)
    finished_at: float | None = None
    _done: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def finished(self) -> bool:
        return self.state in ("completed", "failed")

    async def wait(self) -> "JobHandle":
        await self._done.wait()
        return self


class JobQueue:
    """At-least-once delivery to registered handlers.

    A handler that raises is retried until ``attempts`` runs out, waiting
    ``backoff_delay * 2 ** (attempt - 1)`` seconds between attempts. An
    exception with ``retryable = False`` fails the job immediately. Failed
    jobs are kept for inspection; completed jobs are forgotten once done, so
    only the handle returned by ``enqueue`` still sees their result.
    """

    def __init__(
        self,
        workers: int = 2,
        attempts: int = 3,
        backoff_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.workers = workers
        self.attempts = attempts
        self.backoff_delay = backoff_delay
        self._sleep = sleep
        self._handlers: dict[str, Handler] = {}
        self._queue: asyncio.Queue[JobHandle] = asyncio.Queue()
        self._jobs: dict[str, JobHandle] = {}
        self._workers: list[asyncio.Task] = []
        self._delayed: set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, config: QueueConfig, **kwargs) -> "JobQueue":
        return cls(
            workers=config.workers,
            attempts=config.attempts,
            backoff_delay=config.backoff_delay,
            **kwargs,
        )

    def register(self, job_type: str, handler: Handler) -> None:
        self._handlers[job_type] = handler

    async def enqueue(
        self,
        job_type: str,
        payload: dict,
        *,
        attempts: int | None = None,
        backoff_delay: float | None = None,
    ) -> JobHandle:
        if job_type not in self._handlers:
            raise ValueError(f"No handler registered for job type: {job_type}")
        job = JobHandle(
            job_type=job_type,
            payload=payload,
            attempts=attempts or self.attempts,
            backoff_delay=self.backoff_delay if backoff_delay is None else backoff_delay,
        )
        self._jobs[job.id] = job
        await self._queue.put(job)
        logger.info("Job %s queued: %s", job.id, job_type)
        return job

    def get(self, job_id: str) -> JobHandle | None:
        """Return a pending or failed job. Completed jobs are not tracked."""
        return self._jobs.get(job_id)

    def failed_jobs(self) -> list[JobHandle]:
        return [job for job in self._jobs.values() if job.state == "failed"]

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"job-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info("Job queue started with %d workers", self.workers)

    async def join(self) -> None:
        """Wait until every queued job has finished, retries included."""
        while True:
            await self._queue.join()
            if not self._delayed:
                return
            await asyncio.gather(*list(self._delayed))

    async def stop(self) -> None:
        for task in list(self._delayed):
            task.cancel()
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, *self._delayed, return_exceptions=True)
        self._workers = []
        self._delayed.clear()

    async def __aenter__(self) -> "JobQueue":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._process(job)
            finally:
                self._queue.task_done()

    async def _process(self, job: JobHandle) -> None:
        handler = self._handlers[job.job_type]
        job.state = "active"
        job.attempts_made += 1

        def report(percent: int) -> None:
            job.progress = max(0, min(100, int(percent)))
            logger.debug("Job %s progress: %d%%", job.id, job.progress)

        try:
            job.result = await handler(job.payload, report)
        except Exception as exc:
            job.error = str(exc)
            retryable = getattr(exc, "retryable", True)
            if retryable and job.attempts_made < job.attempts:
                delay = job.backoff_delay * 2 ** (job.attempts_made - 1)
                job.state = "delayed"
                logger.warning(
                    "Job %s attempt %d/%d failed: %s; retrying in %.1fs",
                    job.id, job.attempts_made, job.attempts, exc, delay,
                )
                task = asyncio.create_task(self._requeue_after(job, delay))
                self._delayed.add(task)
                task.add_done_callback(self._delayed.discard)
                return
            job.state = "failed"
            job.finished_at = time.time()
            logger.error(
                "Job %s failed after %d attempt(s): %s", job.id, job.attempts_made, exc
            )
            job._done.set()
            return

        job.state = "completed"
        job.error = None
        job.finished_at = time.time()
        self._jobs.pop(job.id, None)
        logger.info("Job %s completed", job.id)
        job._done.set()

    async def _requeue_after(self, job: JobHandle, delay: float) -> None:
        await self._sleep(delay)
        job.state = "waiting"
        await self._queue.put(job)
