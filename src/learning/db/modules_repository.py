"""Repository functions for learning_modules and topics tables."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from learning.db.database import get_db

logger = structlog.get_logger(__name__)


@dataclass
class ModuleRecord:
    """Learning module record from database."""

    module_id: str
    title: str
    description: str
    source_file: str
    sha256: str
    imported_at: str
    topic_count: int
    chunk_count: int
    embedding_model: str


@dataclass
class TopicRecord:
    """Topic record from database."""

    topic_id: str
    module_id: str
    title: str
    order: int


def upsert_module(
    module_id: str,
    title: str,
    description: str,
    source_file: str,
    sha256: str,
    imported_at: str,
    topic_count: int,
    chunk_count: int,
    embedding_model: str,
) -> None:
    """Insert a module, or update it in place if module_id exists.

    Raises:
        sqlite3.IntegrityError: If sha256 belongs to a different module
    """
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO learning_modules (
                module_id, title, description, source_file, sha256,
                imported_at, topic_count, chunk_count, embedding_model
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(module_id) DO UPDATE SET
                title = excluded.title,
                description = excluded.description,
                source_file = excluded.source_file,
                sha256 = excluded.sha256,
                imported_at = excluded.imported_at,
                topic_count = excluded.topic_count,
                chunk_count = excluded.chunk_count,
                embedding_model = excluded.embedding_model
            """,
            (
                module_id,
                title,
                description,
                source_file,
                sha256,
                imported_at,
                topic_count,
                chunk_count,
                embedding_model,
            ),
        )

    logger.debug("modules.upserted", module_id=module_id)


def replace_topics(module_id: str, topics: list[TopicRecord]) -> None:
    """Make the stored topics of a module match ``topics``.

    Topics whose IDs survive keep their progress rows; topics that
    disappeared are deleted together with their progress.
    """
    keep_ids = [t.topic_id for t in topics]
    with get_db() as conn:
        existing = {
            row["topic_id"]
            for row in conn.execute(
                "SELECT topic_id FROM topics WHERE module_id = ?", (module_id,)
            )
        }
        stale = existing - set(keep_ids)
        conn.executemany(
            "DELETE FROM topics WHERE topic_id = ?", [(tid,) for tid in stale]
        )
        conn.executemany(
            """
            INSERT INTO topics (topic_id, module_id, title, topic_order)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(topic_id) DO UPDATE SET
                title = excluded.title,
                topic_order = excluded.topic_order
            """,
            [(t.topic_id, module_id, t.title, t.order) for t in topics],
        )

    logger.debug("topics.replaced", module_id=module_id, count=len(topics), removed=len(stale))


def get_module_by_id(module_id: str) -> ModuleRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM learning_modules WHERE module_id = ?", (module_id,)
        ).fetchone()

    if row is None:
        return None
    return _row_to_module(row)


def get_module_by_sha256(sha256: str) -> ModuleRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM learning_modules WHERE sha256 = ?", (sha256,)
        ).fetchone()

    if row is None:
        return None
    return _row_to_module(row)


def get_all_modules() -> list[ModuleRecord]:
    """Get all modules, ordered by title."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM learning_modules ORDER BY title, module_id"
        ).fetchall()

    return [_row_to_module(row) for row in rows]


def get_topics(module_id: str) -> list[TopicRecord]:
    """Get the topics of a module in document order."""
    with get_db() as conn:
        rows = conn.execute(
            "SELECT * FROM topics WHERE module_id = ? ORDER BY topic_order",
            (module_id,),
        ).fetchall()

    return [_row_to_topic(row) for row in rows]


def get_topic(module_id: str, topic_id: str) -> TopicRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM topics WHERE module_id = ? AND topic_id = ?",
            (module_id, topic_id),
        ).fetchone()

    if row is None:
        return None
    return _row_to_topic(row)


def _row_to_module(row: sqlite3.Row) -> ModuleRecord:
    return ModuleRecord(
        module_id=row["module_id"],
        title=row["title"],
        description=row["description"],
        source_file=row["source_file"],
        sha256=row["sha256"],
        imported_at=row["imported_at"],
        topic_count=row["topic_count"],
        chunk_count=row["chunk_count"],
        embedding_model=row["embedding_model"],
    )


def _row_to_topic(row: sqlite3.Row) -> TopicRecord:
    return TopicRecord(
        topic_id=row["topic_id"],
        module_id=row["module_id"],
        title=row["title"],
        order=row["topic_order"],
    )
