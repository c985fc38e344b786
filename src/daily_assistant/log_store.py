#!/usr/bin/env python3
# ══════════════════════════════════════════════════════════════════════════════
#  Daily Assistant - Log Store
#  Copyright (c) 2025 SIRIUS Alpha
# ══════════════════════════════════════════════════════════════════════════════
"""
SQLite storage for manual log entries (tasks, notes, problems).

The store is shared by the interactive CLI and the background scheduler.
All access goes through one lock so a reader never overlaps a writer.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional

from .config import ConfigError, get_settings
from .models import LOG_CATEGORIES, LogEntry

logger = logging.getLogger(__name__)

# Seconds a connection waits on another process holding the write lock
BUSY_TIMEOUT = 5.0


class LogStore:
    """CRUD store for LogEntry rows."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path is not None else get_settings().database_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_database()

    @contextmanager
    def _get_connection(self):
        """Serialized connection; commits on success, rolls back on error."""
        with self._lock:
            conn = sqlite3.connect(str(self.db_path), timeout=BUSY_TIMEOUT)
            conn.row_factory = sqlite3.Row
            try:
                yield conn
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                conn.close()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY,
                    content TEXT NOT NULL,
                    log_type TEXT NOT NULL,
                    timestamp DATETIME DEFAULT (datetime('now', 'localtime'))
                )
            """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_logs_timestamp ON logs(timestamp)")

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> LogEntry:
        return LogEntry(
            id=row["id"],
            content=row["content"],
            category=row["log_type"],
            timestamp=row["timestamp"],
        )

    def create(self, content: str, category: str = "note") -> LogEntry:
        """
        Insert a new entry stamped with the current local time.

        Raises:
            ConfigError: If category is not one of task, note, problem
        """
        if category not in LOG_CATEGORIES:
            raise ConfigError(f"Invalid category {category!r}: expected one of {', '.join(LOG_CATEGORIES)}")

        with self._get_connection() as conn:
            cursor = conn.execute(
                "INSERT INTO logs (content, log_type, timestamp) VALUES (?, ?, datetime('now', 'localtime'))",
                (content, category),
            )
            row = conn.execute("SELECT * FROM logs WHERE id = ?", (cursor.lastrowid,)).fetchone()

        entry = self._row_to_entry(row)
        logger.debug(f"Saved log #{entry.id} ({category})")
        return entry

    def get(self, entry_id: int) -> Optional[LogEntry]:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM logs WHERE id = ?", (entry_id,)).fetchone()
        return self._row_to_entry(row) if row else None

    def delete(self, entry_id: int) -> bool:
        """Delete an entry by id. Returns False if no such entry."""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM logs WHERE id = ?", (entry_id,))
            return cursor.rowcount > 0

    def list_today(self) -> List[LogEntry]:
        """Entries created today (local time), most recent first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT id, content, log_type, timestamp FROM logs
                WHERE date(timestamp) = date('now', 'localtime')
                ORDER BY id DESC
            """
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]
