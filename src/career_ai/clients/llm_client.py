"""Claude API wrapper with per-call timeout, error mapping and usage accounting."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import anthropic

from career_ai.config import SONNET_MODEL
from career_ai.logging.cost_calculator import call_cost, estimate_tokens
from career_ai.logging.models import UsageLog
from career_ai.logging.usage_store import UsageRecorder
from career_ai.models.outcome import RETRYABLE_CATEGORIES, ErrorCategory, TokenUsage

logger = logging.getLogger(__name__)

_REFUSAL_STOP_REASONS = frozenset({"refusal"})


@dataclass(frozen=True)
class CompletionRequest:
    """One completion call. Built fresh for every attempt."""

    prompt: str
    system: str = ""
    temperature: float = 0.0
    max_tokens: int = 4096
    stop_sequences: tuple[str, ...] = ()
    model: str | None = None


@dataclass
class CompletionResult:
    """Response from the LLM including usage metadata."""

    text: str
    usage: TokenUsage
    model: str
    stop_reason: str | None = None
    success: bool = True

    @property
    def input_tokens(self) -> int:
        return self.usage.input_tokens

    @property
    def output_tokens(self) -> int:
        return self.usage.output_tokens


class CompletionError(Exception):
    """A completion call failed. ``category`` decides whether it is worth retrying."""

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        status: int | None = None,
        retryable: bool | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.message = message
        self.status = status
        self.retryable = category in RETRYABLE_CATEGORIES if retryable is None else retryable

    def __repr__(self) -> str:
        return f"CompletionError({self.category.value}, {self.message!r}, status={self.status})"


def map_api_error(exc: Exception) -> CompletionError:
    """Translate an anthropic SDK exception into a CompletionError."""
    # APITimeoutError subclasses APIConnectionError, so it goes first
    if isinstance(exc, anthropic.APITimeoutError):
        return CompletionError(ErrorCategory.TIMEOUT, "Completion request timed out")
    if isinstance(exc, anthropic.APIConnectionError):
        return CompletionError(ErrorCategory.NETWORK, f"Connection error: {exc}")
    if isinstance(exc, anthropic.APIStatusError):
        status = exc.status_code
        if status == 429:
            return CompletionError(ErrorCategory.RATE_LIMITED, "Rate limit exceeded", status)
        if status in (401, 403):
            return CompletionError(
                ErrorCategory.INTERNAL, "Completion service rejected the credentials", status
            )
        if status >= 500:
            return CompletionError(
                ErrorCategory.NETWORK, f"Completion service error ({status})", status
            )
        if 400 <= status < 500:
            return CompletionError(ErrorCategory.VALIDATION, f"Invalid request: {exc}", status)
    return CompletionError(ErrorCategory.INTERNAL, f"Unexpected completion failure: {exc}")


class LLMClient:
    """Async Claude API client.

    Retries are the caller's business (see ``AgentExecutor``), so the SDK's own
    retry loop is disabled. Every call, successful or not, is reported to the
    usage recorder.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float | None = None,
        usage_recorder: UsageRecorder | None = None,
        default_model: str = SONNET_MODEL,
    ):
        kwargs: dict = {"max_retries": 0}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if timeout is not None:
            kwargs["timeout"] = timeout
        self.client = anthropic.AsyncAnthropic(**kwargs)
        self.default_model = default_model
        self.usage_recorder = usage_recorder

    async def _call_api(self, request: CompletionRequest, model: str, timeout: float | None):
        kwargs: dict = {
            "model": model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": [{"role": "user", "content": request.prompt}],
        }
        if request.system:
            kwargs["system"] = request.system
        if request.stop_sequences:
            kwargs["stop_sequences"] = list(request.stop_sequences)
        if timeout is not None:
            kwargs["timeout"] = timeout
        return await self.client.messages.create(**kwargs)

    async def complete(
        self,
        request: CompletionRequest,
        timeout: float | None = None,
        operation: str = "completion",
    ) -> CompletionResult:
        """Send one request and return the text with usage.

        Raises:
            CompletionError: on timeout, connection failure, non-2xx status,
                or a content-policy refusal.
        """
        model = request.model or self.default_model
        logger.debug(
            "LLM call: op=%s model=%s ~%d prompt tokens",
            operation,
            model,
            estimate_tokens(request.system + request.prompt),
        )
        started = time.monotonic()
        try:
            message = await self._call_api(request, model, timeout)
        except anthropic.AnthropicError as exc:
            error = map_api_error(exc)
            logger.warning("LLM call failed: op=%s %s", operation, error.message)
            self._emit(operation, model, TokenUsage(), started, error)
            raise error from exc
        except Exception as exc:
            error = CompletionError(
                ErrorCategory.INTERNAL, f"Unexpected completion failure: {type(exc).__name__}: {exc}"
            )
            logger.error("LLM call failed: op=%s %s", operation, error.message, exc_info=True)
            self._emit(operation, model, TokenUsage(), started, error)
            raise error from exc

        usage = TokenUsage(message.usage.input_tokens, message.usage.output_tokens)
        if message.stop_reason in _REFUSAL_STOP_REASONS:
            error = CompletionError(
                ErrorCategory.CONTENT_POLICY, "Completion refused by content policy"
            )
            self._emit(operation, model, usage, started, error)
            raise error

        text = "".join(getattr(block, "text", "") for block in message.content)
        logger.debug(
            "LLM response: %d input, %d output tokens", usage.input_tokens, usage.output_tokens
        )
        self._emit(operation, model, usage, started, None)
        return CompletionResult(
            text=text,
            usage=usage,
            model=model,
            stop_reason=message.stop_reason,
        )

    def _emit(
        self,
        operation: str,
        model: str,
        usage: TokenUsage,
        started: float,
        error: CompletionError | None,
    ) -> None:
        if self.usage_recorder is None:
            return
        log = UsageLog(
            operation=operation,
            model=model,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            estimated_cost_usd=call_cost(model, usage.input_tokens, usage.output_tokens),
            elapsed_seconds=round(time.monotonic() - started, 3),
            success=error is None,
            error_category=error.category.value if error else None,
            error_message=error.message if error else None,
        )
        try:
            self.usage_recorder.record(log)
        except Exception:
            # Metrics sink errors never fail the call
            logger.error("Failed to record usage for %s", operation, exc_info=True)
