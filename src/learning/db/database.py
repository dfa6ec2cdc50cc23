"""SQLite database connection and schema management.

Provides connection management and schema initialization for the
learning platform.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

import structlog

logger = structlog.get_logger(__name__)

# Default database location
DEFAULT_DB_PATH = Path("db/learning.db")

# Current database path (module-level for simplicity in CLI context)
_db_path: Path | None = None


def init_db(db_path: Path | None = None) -> None:
    """Initialize database with schema.

    Creates the database file and all required tables if they don't exist.

    Args:
        db_path: Path to database file. Defaults to db/learning.db
    """
    global _db_path
    _db_path = db_path or DEFAULT_DB_PATH

    _db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_db() as conn:
        _create_schema(conn)

    logger.info("database.initialized", path=str(_db_path))


def get_db_path() -> Path:
    """Path of the database currently in use."""
    return _db_path or DEFAULT_DB_PATH


@contextmanager
def get_db() -> Generator[sqlite3.Connection, None, None]:
    """Get database connection as context manager.

    Commits on success, rolls back and re-raises on error.

    Yields:
        SQLite connection with row factory set to sqlite3.Row

    Example:
        with get_db() as conn:
            rows = conn.execute("SELECT * FROM learners").fetchall()
    """
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _create_schema(conn: sqlite3.Connection) -> None:
    """Create database schema.

    Uses IF NOT EXISTS for idempotency.
    """
    conn.executescript(
        """
        -- Imported learning modules; sha256 is UNIQUE so one document maps to one module
        CREATE TABLE IF NOT EXISTS learning_modules (
            module_id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            source_file TEXT NOT NULL,
            sha256 TEXT NOT NULL UNIQUE,
            imported_at TEXT NOT NULL DEFAULT (datetime('now')),
            topic_count INTEGER NOT NULL DEFAULT 0,
            chunk_count INTEGER NOT NULL DEFAULT 0,
            embedding_model TEXT NOT NULL DEFAULT ''
        );

        CREATE TABLE IF NOT EXISTS topics (
            topic_id TEXT PRIMARY KEY,
            module_id TEXT NOT NULL REFERENCES learning_modules(module_id) ON DELETE CASCADE,
            title TEXT NOT NULL,
            topic_order INTEGER NOT NULL
        );

        CREATE TABLE IF NOT EXISTS learners (
            learner_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT NOT NULL DEFAULT '',
            level TEXT NOT NULL DEFAULT 'beginner'
                CHECK(level IN ('beginner', 'intermediate', 'advanced')),
            persona_id TEXT NOT NULL DEFAULT 'dra_vega',
            goals TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS topic_progress (
            learner_id TEXT NOT NULL REFERENCES learners(learner_id) ON DELETE CASCADE,
            module_id TEXT NOT NULL REFERENCES learning_modules(module_id) ON DELETE CASCADE,
            topic_id TEXT NOT NULL REFERENCES topics(topic_id) ON DELETE CASCADE,
            status TEXT NOT NULL DEFAULT 'not_started'
                CHECK(status IN ('not_started', 'in_progress', 'completed')),
            interactions INTEGER NOT NULL DEFAULT 0,
            last_activity_at TEXT NOT NULL,
            PRIMARY KEY (learner_id, module_id, topic_id)
        );

        CREATE TABLE IF NOT EXISTS feedback (
            feedback_id INTEGER PRIMARY KEY AUTOINCREMENT,
            learner_id TEXT NOT NULL REFERENCES learners(learner_id) ON DELETE CASCADE,
            module_id TEXT NOT NULL REFERENCES learning_modules(module_id) ON DELETE CASCADE,
            question TEXT NOT NULL DEFAULT '',
            answer_excerpt TEXT NOT NULL DEFAULT '',
            rating INTEGER NOT NULL CHECK(rating BETWEEN 1 AND 5),
            comment TEXT NOT NULL DEFAULT '',
            created_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_topics_module ON topics(module_id);
        CREATE INDEX IF NOT EXISTS idx_progress_learner ON topic_progress(learner_id);
        CREATE INDEX IF NOT EXISTS idx_feedback_module ON feedback(module_id);
        """
    )
