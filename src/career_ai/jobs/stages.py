"""Pipeline stages: critical stages fail the job, advisory stages only log."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

C = TypeVar("C")
ProgressReporter = Callable[[int], None]


class PipelineError(Exception):
    """A critical stage failed. ``retryable`` tells the queue whether another attempt can help."""

    retryable = True

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.message = message
        self.stage = stage


class NotFoundError(PipelineError):
    retryable = False


class ForbiddenError(PipelineError):
    retryable = False


class StageError(PipelineError):
    def __init__(self, stage: str, message: str, category: str | None = None):
        super().__init__(message, stage)
        self.category = category


@dataclass(frozen=True)
class Stage(Generic[C]):
    name: str
    run: Callable[[C], Awaitable[None]]
    progress: int | None = None
    advisory: bool = False
    enabled: Callable[[C], bool] | None = None


async def run_stages(stages: list[Stage[C]], ctx: C, progress: ProgressReporter) -> list[str]:
    """Run ``stages`` in order and return the names of failed advisory stages.

    Raises:
        PipelineError: when a critical stage fails. Unexpected exceptions are
            wrapped in ``StageError`` carrying the stage name.
    """
    advisory_failures: list[str] = []
    for stage in stages:
        if stage.enabled is not None and not stage.enabled(ctx):
            logger.debug("Stage %s skipped", stage.name)
        else:
            try:
                await stage.run(ctx)
            except PipelineError as exc:
                if stage.advisory:
                    logger.warning("Advisory stage %s failed: %s", stage.name, exc)
                    advisory_failures.append(stage.name)
                else:
                    if exc.stage is None:
                        exc.stage = stage.name
                    raise
            except Exception as exc:
                if not stage.advisory:
                    raise StageError(stage.name, f"{type(exc).__name__}: {exc}") from exc
                logger.warning("Advisory stage %s failed", stage.name, exc_info=True)
                advisory_failures.append(stage.name)
        if stage.progress is not None:
            progress(stage.progress)
    return advisory_failures
