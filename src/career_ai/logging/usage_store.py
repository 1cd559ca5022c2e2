"""SQLite-backed usage log storage."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Protocol

from career_ai.logging.models import UsageLog

DEFAULT_DB_PATH = Path.home() / ".career-ai" / "usage.db"


class UsageRecorder(Protocol):
    """Sink for per-call usage metrics."""

    def record(self, log: UsageLog) -> None: ...


class UsageStore:
    """SQLite-backed store for completion usage logs with WAL mode."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS usage_logs (
                    id TEXT PRIMARY KEY,
                    timestamp TEXT NOT NULL,
                    operation TEXT NOT NULL,
                    model TEXT NOT NULL,
                    input_tokens INTEGER NOT NULL DEFAULT 0,
                    output_tokens INTEGER NOT NULL DEFAULT 0,
                    estimated_cost_usd REAL NOT NULL DEFAULT 0.0,
                    elapsed_seconds REAL NOT NULL DEFAULT 0.0,
                    success INTEGER NOT NULL DEFAULT 1,
                    error_category TEXT,
                    error_message TEXT
                )
            """)

    def record(self, log: UsageLog) -> None:
        """Persist a usage log entry."""
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO usage_logs
                   (id, timestamp, operation, model, input_tokens, output_tokens,
                    estimated_cost_usd, elapsed_seconds, success, error_category,
                    error_message)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    log.id,
                    log.timestamp.isoformat(),
                    log.operation,
                    log.model,
                    log.input_tokens,
                    log.output_tokens,
                    log.estimated_cost_usd,
                    log.elapsed_seconds,
                    1 if log.success else 0,
                    log.error_category,
                    log.error_message,
                ),
            )

    def get_logs(self, operation: str | None = None, limit: int = 50) -> list[UsageLog]:
        """Retrieve usage logs, newest first, optionally filtered by operation."""
        with self._connect() as conn:
            if operation is not None:
                rows = conn.execute(
                    "SELECT * FROM usage_logs WHERE operation = ? ORDER BY timestamp DESC LIMIT ?",
                    (operation, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM usage_logs ORDER BY timestamp DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        return [self._row_to_log(row) for row in rows]

    def get_operation_stats(self) -> dict[str, dict]:
        """Aggregate calls, tokens, cost and failures per operation."""
        with self._connect() as conn:
            rows = conn.execute(
                """SELECT operation,
                          COUNT(*),
                          SUM(input_tokens),
                          SUM(output_tokens),
                          SUM(estimated_cost_usd),
                          SUM(CASE WHEN success = 0 THEN 1 ELSE 0 END),
                          AVG(elapsed_seconds)
                   FROM usage_logs
                   GROUP BY operation
                   ORDER BY operation"""
            ).fetchall()
        return {
            row[0]: {
                "calls": row[1],
                "input_tokens": row[2] or 0,
                "output_tokens": row[3] or 0,
                "cost_usd": row[4] or 0.0,
                "failures": row[5] or 0,
                "avg_seconds": round(row[6], 2) if row[6] is not None else 0.0,
            }
            for row in rows
        }

    def get_monthly_stats(self) -> dict:
        """Get aggregated stats for the current month."""
        now = datetime.now()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        with self._connect() as conn:
            row = conn.execute(
                """SELECT
                       COUNT(*),
                       SUM(input_tokens),
                       SUM(output_tokens),
                       SUM(estimated_cost_usd),
                       SUM(CASE WHEN success = 1 THEN 1 ELSE 0 END)
                   FROM usage_logs
                   WHERE timestamp >= ?""",
                (month_start.isoformat(),),
            ).fetchone()
        return {
            "total_calls": row[0] or 0,
            "total_input_tokens": row[1] or 0,
            "total_output_tokens": row[2] or 0,
            "total_cost_usd": row[3] or 0.0,
            "success_rate": (row[4] / row[0] * 100) if row[0] else 0.0,
            "month": now.strftime("%Y-%m"),
        }

    def get_total_cost(self) -> float:
        with self._connect() as conn:
            row = conn.execute("SELECT SUM(estimated_cost_usd) FROM usage_logs").fetchone()
        return row[0] or 0.0

    @staticmethod
    def _row_to_log(row: tuple) -> UsageLog:
        return UsageLog(
            id=row[0],
            timestamp=datetime.fromisoformat(row[1]),
            operation=row[2],
            model=row[3],
            input_tokens=row[4],
            output_tokens=row[5],
            estimated_cost_usd=row[6],
            elapsed_seconds=row[7],
            success=bool(row[8]),
            error_category=row[9],
            error_message=row[10],
        )
