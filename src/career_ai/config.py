"""Application configuration loaded from config.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

SONNET_MODEL = "claude-sonnet-4-5-20250929"


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class LLMConfig:
    default_model: str = SONNET_MODEL
    timeout: int = 120

    def __post_init__(self) -> None:
        _check_range("timeout", self.timeout, 1, 600)


@dataclass(frozen=True)
class AgentConfig:
    """Per-operation completion settings and retry policy."""

    model: str = SONNET_MODEL
    temperature: float = 0.3
    max_tokens: int = 4096
    timeout: int = 120
    attempts: int = 2
    backoff: str = "fixed"  # fixed | linear | exponential
    backoff_delay: float = 1.0

    def __post_init__(self) -> None:
        _check_range("temperature", self.temperature, 0.0, 1.0)
        _check_range("timeout", self.timeout, 1, 600)
        _check_range("attempts", self.attempts, 1, 10)
        _check_range("max_tokens", self.max_tokens, 1, 64000)
        if self.backoff not in ("fixed", "linear", "exponential"):
            raise ValueError(f"backoff must be fixed, linear or exponential, got {self.backoff!r}")
        if self.backoff_delay < 0:
            raise ValueError("backoff_delay must not be negative")


@dataclass(frozen=True)
class AgentsConfig:
    parser: AgentConfig = field(default_factory=AgentConfig)
    tailor: AgentConfig = field(
        default_factory=lambda: AgentConfig(
            temperature=0.5,
            max_tokens=8000,
            timeout=300,
            attempts=3,
            backoff="linear",
            backoff_delay=2.0,
        )
    )
    analyzer: AgentConfig = field(
        default_factory=lambda: AgentConfig(temperature=0.5, timeout=180)
    )
    job_analyzer: AgentConfig = field(
        default_factory=lambda: AgentConfig(temperature=0.6, max_tokens=6000, timeout=180)
    )
    cover_letter: AgentConfig = field(
        default_factory=lambda: AgentConfig(temperature=0.7, max_tokens=2048)
    )
    interview_questions: AgentConfig = field(
        default_factory=lambda: AgentConfig(temperature=0.7)
    )
    answer_evaluation: AgentConfig = field(default_factory=AgentConfig)
    session_analysis: AgentConfig = field(
        default_factory=lambda: AgentConfig(temperature=0.5)
    )


AGENT_NAMES = tuple(f.name for f in fields(AgentsConfig))


@dataclass(frozen=True)
class QueueConfig:
    workers: int = 2
    attempts: int = 3
    backoff_delay: float = 1.0

    def __post_init__(self) -> None:
        _check_range("workers", self.workers, 1, 32)
        _check_range("attempts", self.attempts, 1, 10)


@dataclass(frozen=True)
class CacheConfig:
    ttl_days: int = 0  # 0 = cached analyses never expire on age alone
    db_path: str = "~/.career-ai/store.db"

    def __post_init__(self) -> None:
        _check_range("ttl_days", self.ttl_days, 0, 365)

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class UsageConfig:
    db_path: str = "~/.career-ai/usage.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    agents: AgentsConfig = field(default_factory=AgentsConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    usage: UsageConfig = field(default_factory=UsageConfig)


def _load_agents(raw: dict) -> AgentsConfig:
    defaults = AgentsConfig()
    merged = {}
    for name in AGENT_NAMES:
        base = getattr(defaults, name)
        overrides = raw.get(name, {}) or {}
        merged[name] = AgentConfig(**{**base.__dict__, **overrides})
    return AgentsConfig(**merged)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        agents=_load_agents(raw.get("agents", {}) or {}),
        queue=QueueConfig(**raw.get("queue", {})),
        cache=CacheConfig(**raw.get("cache", {})),
        usage=UsageConfig(**raw.get("usage", {})),
    )
