"""Cost estimation for completion-service token usage."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

# Pricing per 1M tokens (USD)
MODEL_PRICING: dict[str, dict[str, float]] = {
    "claude-sonnet-4-5-20250929": {"input": 3.00, "output": 15.00},
    "claude-haiku-4-5-20251001": {"input": 0.80, "output": 4.00},
    "claude-opus-4-20250514": {"input": 15.00, "output": 75.00},
    "claude-3-5-haiku-20241022": {"input": 1.00, "output": 5.00},
}

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 characters per token)."""
    return -(-len(text) // CHARS_PER_TOKEN)


def call_cost(model_id: str, input_tokens: int, output_tokens: int) -> float:
    """Estimated USD cost of a single call; unknown models cost 0."""
    pricing = MODEL_PRICING.get(model_id)
    if pricing is None:
        logger.warning("Unknown model for cost calculation: %s", model_id)
        return 0.0
    return (input_tokens / 1_000_000) * pricing["input"] + (
        output_tokens / 1_000_000
    ) * pricing["output"]


def calculate_cost(calls: list[tuple[str, int, int]]) -> float:
    """Calculate total cost for a set of calls.

    Args:
        calls: List of (model_id, input_tokens, output_tokens) tuples.

    Returns:
        Total estimated cost in USD.
    """
    return sum(call_cost(model_id, inp, out) for model_id, inp, out in calls)
