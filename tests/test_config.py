"""Tests for config loading."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from career_ai.config import (
    AgentConfig,
    AgentsConfig,
    AppConfig,
    CacheConfig,
    LLMConfig,
    QueueConfig,
    load_config,
)
from career_ai.pipeline.cover_letter import CoverLetterWriter
from career_ai.pipeline.job_analyzer import JobAnalyzer
from career_ai.pipeline.mock_interview import MockInterviewer
from career_ai.pipeline.resume_analyzer import ResumeAnalyzer
from career_ai.pipeline.resume_parser import ResumeParser
from career_ai.pipeline.resume_tailor import ResumeTailor


class TestConfig:
    def test_defaults(self):
        config = AppConfig()
        assert config.llm.timeout == 120
        assert config.queue.attempts == 3
        assert config.queue.workers == 2
        assert config.cache.ttl_days == 0

    def test_agent_defaults(self):
        agents = AppConfig().agents
        assert (agents.parser.timeout, agents.parser.attempts, agents.parser.backoff) == (120, 2, "fixed")
        assert agents.parser.temperature == 0.3
        assert (agents.tailor.timeout, agents.tailor.attempts, agents.tailor.backoff) == (300, 3, "linear")
        assert agents.tailor.backoff_delay == 2.0
        assert agents.tailor.max_tokens == 8000
        assert (agents.analyzer.timeout, agents.analyzer.attempts) == (180, 2)
        assert agents.analyzer.temperature == 0.5
        assert (agents.job_analyzer.temperature, agents.job_analyzer.max_tokens) == (0.6, 6000)
        assert (agents.cover_letter.temperature, agents.cover_letter.max_tokens) == (0.7, 2048)
        assert agents.interview_questions.temperature == 0.7
        assert agents.answer_evaluation.temperature == 0.3
        assert agents.session_analysis.temperature == 0.5

    def test_shipped_yaml_matches_defaults(self):
        shipped = Path(__file__).resolve().parent.parent / "config.yaml"
        assert load_config(shipped).agents == AgentsConfig()

    def test_agents_default_to_their_own_settings(self):
        agents = AgentsConfig()
        llm = MagicMock()
        assert ResumeParser(llm).config == agents.parser
        assert ResumeAnalyzer(llm).config == agents.analyzer
        assert ResumeTailor(llm).config == agents.tailor
        assert JobAnalyzer(llm).config == agents.job_analyzer
        assert CoverLetterWriter(llm).config == agents.cover_letter
        assert MockInterviewer(llm).configs == agents

    def test_load_config_defaults(self, tmp_path):
        """Loading from non-existent path returns defaults."""
        config = load_config(tmp_path / "nonexistent.yaml")
        assert config == AppConfig()

    def test_load_config_from_yaml(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text(
            "llm:\n  timeout: 60\nagents:\n  tailor:\n    attempts: 5\nqueue:\n  workers: 4\n"
        )
        config = load_config(yaml_path)
        assert config.llm.timeout == 60
        assert config.queue.workers == 4
        assert config.agents.tailor.attempts == 5
        # Unspecified agent fields keep their per-operation defaults
        assert config.agents.tailor.backoff == "linear"
        assert config.agents.parser.attempts == 2

    def test_cache_resolved_path(self):
        cache = CacheConfig(db_path="~/test.db")
        assert "~" not in str(cache.resolved_db_path)

    def test_frozen_config(self):
        config = LLMConfig()
        with pytest.raises(AttributeError):
            config.timeout = 10


class TestConfigValidation:
    @pytest.mark.parametrize("temperature", [-0.1, 1.5])
    def test_temperature_range(self, temperature):
        with pytest.raises(ValueError, match="temperature"):
            AgentConfig(temperature=temperature)

    @pytest.mark.parametrize("timeout", [0, 601])
    def test_timeout_range(self, timeout):
        with pytest.raises(ValueError, match="timeout"):
            AgentConfig(timeout=timeout)

    def test_attempts_range(self):
        with pytest.raises(ValueError, match="attempts"):
            AgentConfig(attempts=0)

    def test_unknown_backoff(self):
        with pytest.raises(ValueError, match="backoff"):
            AgentConfig(backoff="random")

    def test_queue_workers_range(self):
        with pytest.raises(ValueError, match="workers"):
            QueueConfig(workers=0)

    def test_ttl_range(self):
        with pytest.raises(ValueError, match="ttl_days"):
            CacheConfig(ttl_days=400)

    def test_invalid_yaml_value_rejected(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text("agents:\n  parser:\n    temperature: 2.0\n")
        with pytest.raises(ValueError, match="temperature"):
            load_config(yaml_path)
