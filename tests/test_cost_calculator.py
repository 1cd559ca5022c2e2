"""Tests for cost estimation."""

from __future__ import annotations

import pytest

from career_ai.logging.cost_calculator import (
    MODEL_PRICING,
    calculate_cost,
    call_cost,
    estimate_tokens,
)


class TestCostCalculator:
    def test_haiku_cost(self):
        # 1M input + 1M output for Haiku: $0.80 + $4.00 = $4.80
        cost = calculate_cost([("claude-haiku-4-5-20251001", 1_000_000, 1_000_000)])
        assert cost == pytest.approx(4.80)

    def test_sonnet_cost(self):
        # 1M input + 1M output for Sonnet: $3.00 + $15.00 = $18.00
        cost = calculate_cost([("claude-sonnet-4-5-20250929", 1_000_000, 1_000_000)])
        assert cost == pytest.approx(18.00)

    def test_small_token_count(self):
        cost = call_cost("claude-haiku-4-5-20251001", 500, 200)
        expected = (500 / 1_000_000) * 0.80 + (200 / 1_000_000) * 4.00
        assert cost == pytest.approx(expected)

    def test_multiple_calls(self):
        calls = [
            ("claude-haiku-4-5-20251001", 1000, 500),
            ("claude-sonnet-4-5-20250929", 2000, 1000),
        ]
        expected = (
            (1000 / 1e6) * 0.80 + (500 / 1e6) * 4.00
            + (2000 / 1e6) * 3.00 + (1000 / 1e6) * 15.00
        )
        assert calculate_cost(calls) == pytest.approx(expected)

    def test_unknown_model_costs_nothing(self):
        assert call_cost("unknown-model", 1000, 1000) == 0.0

    def test_empty_calls(self):
        assert calculate_cost([]) == 0.0

    def test_pricing_constants(self):
        assert "claude-haiku-4-5-20251001" in MODEL_PRICING
        assert "claude-sonnet-4-5-20250929" in MODEL_PRICING


class TestEstimateTokens:
    def test_four_chars_per_token(self):
        assert estimate_tokens("abcdefgh") == 2

    def test_rounds_up(self):
        assert estimate_tokens("abcde") == 2

    def test_empty(self):
        assert estimate_tokens("") == 0
