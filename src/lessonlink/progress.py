"""SQLite persistence for the last viewed step of each lesson."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

SCHEMA_VERSION = 1


@dataclass(frozen=True)
class StepPosition:
    """Last viewed position in one lesson."""

    lesson_id: str
    chapter_index: int
    step_index: int
    last_access_at: str


class ProgressStore:
    """Database access layer for viewing progress."""

    def __init__(self, db_path: Path | str) -> None:
        """Initialize database and schema."""
        if isinstance(db_path, Path):
            db_path.parent.mkdir(parents=True, exist_ok=True)
            target = str(db_path)
        else:
            target = db_path
        self._conn = sqlite3.connect(target)
        self._conn.row_factory = sqlite3.Row
        self._apply_migrations()

    def _apply_migrations(self) -> None:
        """Apply forward-only schema migrations to latest version."""
        current = int(self._conn.execute("PRAGMA user_version").fetchone()[0])
        if current > SCHEMA_VERSION:
            raise RuntimeError(f"Database schema version {current} is newer than supported {SCHEMA_VERSION}.")

        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version INTEGER PRIMARY KEY,
                    applied_at TEXT NOT NULL
                )
                """)

        for version in range(current + 1, SCHEMA_VERSION + 1):
            if version == 1:
                self._migrate_to_v1()
            with self._conn:
                self._conn.execute(f"PRAGMA user_version = {version}")
                self._conn.execute(
                    "INSERT OR REPLACE INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                    (version, datetime.now(UTC).isoformat()),
                )

    def _migrate_to_v1(self) -> None:
        """Create the step position table."""
        with self._conn:
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS step_progress (
                    lesson_id TEXT PRIMARY KEY,
                    chapter_index INTEGER NOT NULL,
                    step_index INTEGER NOT NULL,
                    last_access_at TEXT NOT NULL
                )
                """)

    def save_position(self, lesson_id: str, chapter_index: int, step_index: int) -> StepPosition:
        """Upsert the last viewed position for a lesson."""
        now = datetime.now(UTC).isoformat()
        with self._conn:
            self._conn.execute(
                """
                INSERT INTO step_progress (lesson_id, chapter_index, step_index, last_access_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(lesson_id) DO UPDATE SET
                    chapter_index = excluded.chapter_index,
                    step_index = excluded.step_index,
                    last_access_at = excluded.last_access_at
                """,
                (lesson_id, chapter_index, step_index, now),
            )
        return StepPosition(lesson_id, chapter_index, step_index, now)

    def get_position(self, lesson_id: str) -> StepPosition | None:
        row = self._conn.execute(
            "SELECT lesson_id, chapter_index, step_index, last_access_at FROM step_progress WHERE lesson_id = ?",
            (lesson_id,),
        ).fetchone()
        if row is None:
            return None
        return _position_from_row(row)

    def list_positions(self) -> list[StepPosition]:
        """Return positions, most recently viewed first."""
        rows = self._conn.execute(
            "SELECT lesson_id, chapter_index, step_index, last_access_at FROM step_progress "
            "ORDER BY last_access_at DESC"
        ).fetchall()
        return [_position_from_row(row) for row in rows]

    def clear_position(self, lesson_id: str) -> bool:
        with self._conn:
            cursor = self._conn.execute("DELETE FROM step_progress WHERE lesson_id = ?", (lesson_id,))
        return cursor.rowcount > 0

    def close(self) -> None:
        """Close database connection."""
        self._conn.close()

    def __del__(self) -> None:  # pragma: no cover
        """Best-effort connection cleanup."""
        try:
            self.close()
        except Exception:
            pass


def _position_from_row(row: sqlite3.Row) -> StepPosition:
    return StepPosition(
        lesson_id=str(row["lesson_id"]),
        chapter_index=int(row["chapter_index"]),
        step_index=int(row["step_index"]),
        last_access_at=str(row["last_access_at"]),
    )
