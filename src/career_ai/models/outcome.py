"""Uniform success/error result returned by every agent operation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")

GENERIC_FAILURE_MESSAGE = "We couldn't complete this request right now. Please try again later."


class ErrorCategory(str, Enum):
    VALIDATION = "validation_error"
    PARSING = "parsing_error"
    NETWORK = "network_error"
    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    CONTENT_POLICY = "content_policy"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal_error"


RETRYABLE_CATEGORIES = frozenset(
    {ErrorCategory.PARSING, ErrorCategory.NETWORK, ErrorCategory.TIMEOUT, ErrorCategory.RATE_LIMITED}
)

# Categories whose message is safe and useful to show the end user as-is
USER_VISIBLE_CATEGORIES = frozenset(
    {ErrorCategory.VALIDATION, ErrorCategory.NOT_FOUND, ErrorCategory.FORBIDDEN}
)


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            self.input_tokens + other.input_tokens,
            self.output_tokens + other.output_tokens,
        )


@dataclass(frozen=True)
class AgentOk(Generic[T]):
    data: T
    usage: TokenUsage
    model: str
    attempts: int = 1
    warnings: tuple[str, ...] = ()

    ok = True

    @property
    def retries(self) -> int:
        return self.attempts - 1


@dataclass(frozen=True)
class AgentErr:
    code: str
    message: str
    category: ErrorCategory
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)
    attempts: int = 0
    usage: TokenUsage = field(default_factory=TokenUsage)

    ok = False

    @property
    def retries(self) -> int:
        return max(0, self.attempts - 1)

    @property
    def user_message(self) -> str:
        if self.category in USER_VISIBLE_CATEGORIES:
            return self.message
        return GENERIC_FAILURE_MESSAGE

    @classmethod
    def validation(cls, message: str, **details: Any) -> "AgentErr":
        return cls(
            code="INVALID_INPUT",
            message=message,
            category=ErrorCategory.VALIDATION,
            details=details,
        )


AgentOutcome = Union[AgentOk[T], AgentErr]
