"""Generic retry/backoff wrapper shared by every completion-backed operation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_fixed,
    wait_incrementing,
)

from career_ai.agents.extractor import ValidationFailure
from career_ai.clients.llm_client import CompletionError, CompletionRequest, CompletionResult
from career_ai.config import AgentConfig
from career_ai.models.outcome import AgentErr, AgentOk, AgentOutcome, ErrorCategory, TokenUsage
from career_ai.utils.json_parser import ExtractionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_BACKOFF_SECONDS = 60.0

PromptBuilder = Callable[[int], CompletionRequest]
CompletionCall = Callable[[CompletionRequest], Awaitable[CompletionResult]]
Extractor = Callable[[str], T]
Validator = Callable[[T], None]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt count and backoff shape for one operation."""

    attempts: int = 2
    backoff: str = "fixed"  # fixed | linear | exponential
    delay: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.backoff not in ("fixed", "linear", "exponential"):
            raise ValueError(f"Unknown backoff: {self.backoff!r}")

    @classmethod
    def from_config(cls, config: AgentConfig) -> "RetryPolicy":
        return cls(attempts=config.attempts, backoff=config.backoff, delay=config.backoff_delay)

    def wait_strategy(self):
        if self.backoff == "linear":
            # delay, 2*delay, 3*delay, ...
            return wait_incrementing(start=self.delay, increment=self.delay, max=MAX_BACKOFF_SECONDS)
        if self.backoff == "exponential":
            return wait_exponential(multiplier=self.delay, min=self.delay, max=MAX_BACKOFF_SECONDS)
        return wait_fixed(self.delay)


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, CompletionError):
        return exc.retryable
    return isinstance(exc, ExtractionError)


@dataclass
class _Attempts:
    count: int = 0
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: str = ""


class AgentExecutor:
    """Runs (prompt builder, call, extractor, validator) as one reliable operation.

    State per run: Pending -> Attempting -> Success | Attempting | Failed.
    Extraction failures and transient completion errors are retried while the
    policy's attempts last; validation failures and everything else end the run.
    Expected failures come back as ``AgentErr``, never as exceptions.
    """

    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._sleep = sleep

    async def run(
        self,
        build_prompt: PromptBuilder,
        call: CompletionCall,
        extract: Extractor,
        validate: Validator | None = None,
        policy: RetryPolicy | None = None,
        operation: str = "agent",
    ) -> AgentOutcome:
        policy = policy or RetryPolicy()
        state: _Attempts = _Attempts()

        async def attempt_once(attempt_number: int):
            state.count = attempt_number
            request = build_prompt(attempt_number)
            result = await call(request)
            state.usage = state.usage + result.usage
            state.model = result.model
            data = extract(result.text)
            if validate is not None:
                validate(data)
            return data

        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.attempts),
            wait=policy.wait_strategy(),
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            before_sleep=lambda rs: _log_retry(operation, policy, rs),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    data = await attempt_once(attempt.retry_state.attempt_number)
        except CompletionError as exc:
            return self._failure(operation, state, exc.category, exc.message, exc.retryable,
                                 {"status": exc.status} if exc.status else {})
        except ExtractionError as exc:
            return self._failure(operation, state, ErrorCategory.PARSING, str(exc), True,
                                 {"snippet": exc.snippet})
        except ValidationFailure as exc:
            return self._failure(operation, state, ErrorCategory.VALIDATION, exc.message, False,
                                 exc.details)
        except Exception as exc:
            logger.exception("%s failed unexpectedly on attempt %d", operation, state.count)
            return self._failure(operation, state, ErrorCategory.INTERNAL,
                                 f"{type(exc).__name__}: {exc}", False, {})

        if state.count > 1:
            logger.info("%s succeeded after %d attempts", operation, state.count)
        return AgentOk(data=data, usage=state.usage, model=state.model, attempts=state.count)

    @staticmethod
    def _failure(
        operation: str,
        state: _Attempts,
        category: ErrorCategory,
        message: str,
        retryable: bool,
        details: dict,
    ) -> AgentErr:
        logger.error(
            "%s failed after %d attempt(s): %s: %s", operation, state.count, category.value, message
        )
        return AgentErr(
            code=category.value.upper(),
            message=message,
            category=category,
            retryable=retryable,
            details=details,
            attempts=state.count,
            usage=state.usage,
        )


def _log_retry(operation: str, policy: RetryPolicy, retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "%s attempt %d/%d failed (%s); retrying in %.1fs",
        operation,
        retry_state.attempt_number,
        policy.attempts,
        exc,
        retry_state.next_action.sleep if retry_state.next_action else 0.0,
    )
