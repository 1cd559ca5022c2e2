"""SQLite cache for AI results keyed by (subject, context).

One live row per key: a new result for an existing key replaces the old one
(last write wins). ``context_id`` None is stored as '' so it takes part in
the unique key.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sqlite3
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Generic, TypeVar

from pydantic import BaseModel

from career_ai.models.outcome import AgentOk, AgentOutcome, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".career-ai" / "store.db"

M = TypeVar("M", bound=BaseModel)


@dataclass(frozen=True)
class CacheKey:
    namespace: str  # "analysis" | "tailoring"
    subject_id: str
    context_id: str | None = None

    @property
    def _context(self) -> str:
        return self.context_id or ""


@dataclass
class CachedResult:
    key: CacheKey
    payload: dict[str, Any]
    context: dict[str, Any] = field(default_factory=dict)
    fingerprint: str = ""
    model: str = ""
    usage: TokenUsage = field(default_factory=TokenUsage)
    owner_id: str | None = None
    cached_at: float = 0.0


@dataclass
class CacheLookup(Generic[M]):
    outcome: AgentOutcome[M]
    cached: bool
    entry: CachedResult | None = None


def content_fingerprint(*parts: Any) -> str:
    """SHA-256 over the canonical JSON of ``parts``."""
    canonical = json.dumps(
        [p.model_dump(mode="json") if isinstance(p, BaseModel) else p for p in parts],
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class ResultCache:
    """SQLite-backed result cache with optional TTL (0 = no expiry)."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH, ttl_days: int = 0):
        self.db_path = Path(db_path)
        self.ttl_seconds = ttl_days * 86400
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS ai_results (
                    namespace TEXT NOT NULL,
                    subject_id TEXT NOT NULL,
                    context_id TEXT NOT NULL DEFAULT '',
                    owner_id TEXT,
                    payload TEXT NOT NULL,
                    context TEXT NOT NULL DEFAULT '{}',
                    fingerprint TEXT NOT NULL DEFAULT '',
                    model TEXT NOT NULL DEFAULT '',
                    input_tokens INTEGER NOT NULL DEFAULT 0,
                    output_tokens INTEGER NOT NULL DEFAULT 0,
                    cached_at REAL NOT NULL,
                    UNIQUE (namespace, subject_id, context_id)
                )
            """)

    def _expired(self, cached_at: float) -> bool:
        return self.ttl_seconds > 0 and time.time() - cached_at > self.ttl_seconds

    def get(self, key: CacheKey) -> CachedResult | None:
        """Get the live record for ``key``; expired records are deleted."""
        with self._connect() as conn:
            row = conn.execute(
                """SELECT owner_id, payload, context, fingerprint, model,
                          input_tokens, output_tokens, cached_at
                   FROM ai_results
                   WHERE namespace = ? AND subject_id = ? AND context_id = ?""",
                (key.namespace, key.subject_id, key._context),
            ).fetchone()
        if row is None:
            return None
        if self._expired(row[7]):
            logger.info("Cached %s for %s expired", key.namespace, key.subject_id)
            self.delete(key)
            return None
        return CachedResult(
            key=key,
            owner_id=row[0],
            payload=json.loads(row[1]),
            context=json.loads(row[2]),
            fingerprint=row[3],
            model=row[4],
            usage=TokenUsage(row[5], row[6]),
            cached_at=row[7],
        )

    def put(
        self,
        key: CacheKey,
        payload: dict[str, Any],
        *,
        context: dict[str, Any] | None = None,
        fingerprint: str = "",
        model: str = "",
        usage: TokenUsage | None = None,
        owner_id: str | None = None,
    ) -> CachedResult:
        """Insert or replace the record for ``key``."""
        usage = usage or TokenUsage()
        entry = CachedResult(
            key=key,
            payload=payload,
            context=context or {},
            fingerprint=fingerprint,
            model=model,
            usage=usage,
            owner_id=owner_id,
            cached_at=time.time(),
        )
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO ai_results
                   (namespace, subject_id, context_id, owner_id, payload, context,
                    fingerprint, model, input_tokens, output_tokens, cached_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT (namespace, subject_id, context_id) DO UPDATE SET
                       owner_id = excluded.owner_id,
                       payload = excluded.payload,
                       context = excluded.context,
                       fingerprint = excluded.fingerprint,
                       model = excluded.model,
                       input_tokens = excluded.input_tokens,
                       output_tokens = excluded.output_tokens,
                       cached_at = excluded.cached_at""",
                (
                    key.namespace,
                    key.subject_id,
                    key._context,
                    owner_id,
                    json.dumps(payload, ensure_ascii=False),
                    json.dumps(entry.context, ensure_ascii=False, sort_keys=True),
                    fingerprint,
                    model,
                    usage.input_tokens,
                    usage.output_tokens,
                    entry.cached_at,
                ),
            )
        return entry

    def delete(self, key: CacheKey) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM ai_results WHERE namespace = ? AND subject_id = ? AND context_id = ?",
                (key.namespace, key.subject_id, key._context),
            )
            return cursor.rowcount > 0

    def count(self, key: CacheKey) -> int:
        """Number of rows stored for ``key`` (0 or 1)."""
        with self._connect() as conn:
            return conn.execute(
                """SELECT COUNT(*) FROM ai_results
                   WHERE namespace = ? AND subject_id = ? AND context_id = ?""",
                (key.namespace, key.subject_id, key._context),
            ).fetchone()[0]

    def clear(self, namespace: str | None = None) -> int:
        """Clear cached entries, optionally one namespace. Returns count of deleted rows."""
        with self._connect() as conn:
            if namespace is None:
                cursor = conn.execute("DELETE FROM ai_results")
            else:
                cursor = conn.execute("DELETE FROM ai_results WHERE namespace = ?", (namespace,))
            return cursor.rowcount

    def stats(self) -> dict[str, dict[str, int]]:
        """Per-namespace totals with expired and active counts."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT namespace, cached_at FROM ai_results"
            ).fetchall()
        result: dict[str, dict[str, int]] = {}
        for namespace, cached_at in rows:
            bucket = result.setdefault(namespace, {"total": 0, "expired": 0, "active": 0})
            bucket["total"] += 1
            bucket["expired" if self._expired(cached_at) else "active"] += 1
        return result

    async def get_or_compute(
        self,
        key: CacheKey,
        model_cls: type[M],
        compute: Callable[[], Awaitable[AgentOutcome[M]]],
        is_fresh: Callable[[CachedResult], bool],
        *,
        context: dict[str, Any] | None = None,
        fingerprint: str = "",
        owner_id: str | None = None,
    ) -> CacheLookup[M]:
        """Serve a fresh cached record, or compute and store a new one.

        Failed computations are returned as-is and leave any existing record
        in place.
        """
        entry = self.get(key)
        if entry is not None and is_fresh(entry):
            logger.info("Cache hit: %s %s/%s", key.namespace, key.subject_id, key.context_id)
            data = model_cls.model_validate(entry.payload)
            return CacheLookup(
                outcome=AgentOk(data=data, usage=TokenUsage(), model=entry.model, attempts=0),
                cached=True,
                entry=entry,
            )

        logger.info(
            "Cache %s: %s %s/%s",
            "stale" if entry is not None else "miss",
            key.namespace,
            key.subject_id,
            key.context_id,
        )
        outcome = await compute()
        if not outcome.ok:
            return CacheLookup(outcome=outcome, cached=False, entry=entry)

        stored = self.put(
            key,
            outcome.data.model_dump(mode="json"),
            context=context,
            fingerprint=fingerprint,
            model=outcome.model,
            usage=outcome.usage,
            owner_id=owner_id,
        )
        return CacheLookup(outcome=outcome, cached=False, entry=stored)
