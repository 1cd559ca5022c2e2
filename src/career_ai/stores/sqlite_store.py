"""SQLite-backed resume, job and profile repositories."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from career_ai.stores.base import JobEntry, ResumeEntry, UserProfile

DEFAULT_DB_PATH = Path.home() / ".career-ai" / "store.db"


class SQLiteStore:
    """Single-row upserts per entity; each write stands alone."""

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
                CREATE TABLE IF NOT EXISTS resumes (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    file_url TEXT NOT NULL,
                    file_name TEXT,
                    mime_type TEXT,
                    raw_text TEXT,
                    parsed_data TEXT,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    payload TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS profiles (
                    user_id TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    # Resumes

    def add_resume(self, resume: ResumeEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO resumes
                   (id, user_id, file_url, file_name, mime_type, raw_text, parsed_data, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    resume.id,
                    resume.user_id,
                    resume.file_url,
                    resume.file_name,
                    resume.mime_type,
                    resume.raw_text,
                    json.dumps(resume.parsed_data) if resume.parsed_data is not None else None,
                    resume.updated_at.isoformat(),
                ),
            )

    def get_resume(self, resume_id: str) -> ResumeEntry | None:
        with self._connect() as conn:
            row = conn.execute(
                """SELECT id, user_id, file_url, file_name, mime_type, raw_text, parsed_data, updated_at
                   FROM resumes WHERE id = ?""",
                (resume_id,),
            ).fetchone()
        if row is None:
            return None
        return ResumeEntry(
            id=row[0],
            user_id=row[1],
            file_url=row[2],
            file_name=row[3],
            mime_type=row[4],
            raw_text=row[5],
            parsed_data=json.loads(row[6]) if row[6] is not None else None,
            updated_at=datetime.fromisoformat(row[7]),
        )

    def save_raw_text(self, resume_id: str, raw_text: str) -> None:
        self._update_resume(resume_id, "raw_text", raw_text)

    def save_parsed_data(self, resume_id: str, parsed_data: dict[str, Any]) -> None:
        self._update_resume(resume_id, "parsed_data", json.dumps(parsed_data))

    def _update_resume(self, resume_id: str, column: str, value: str) -> None:
        # column is one of our own literals, never user input
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE resumes SET {column} = ?, updated_at = ? WHERE id = ?",
                (value, datetime.now().isoformat(), resume_id),
            )
            if cursor.rowcount == 0:
                raise KeyError(f"Resume not found: {resume_id}")

    # Jobs

    def add_job(self, job: JobEntry) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO jobs (id, user_id, payload) VALUES (?, ?, ?)",
                (job.id, job.user_id, job.model_dump_json()),
            )

    def get_job(self, job_id: str) -> JobEntry | None:
        with self._connect() as conn:
            row = conn.execute("SELECT payload FROM jobs WHERE id = ?", (job_id,)).fetchone()
        return JobEntry.model_validate_json(row[0]) if row else None

    # Profiles

    def get_profile(self, user_id: str) -> UserProfile | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT payload FROM profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
        return UserProfile.model_validate_json(row[0]) if row else None

    def save_profile(self, profile: UserProfile) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT INTO profiles (user_id, payload, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(user_id) DO UPDATE SET
                       payload = excluded.payload, updated_at = excluded.updated_at""",
                (profile.user_id, profile.model_dump_json(), datetime.now().isoformat()),
            )
