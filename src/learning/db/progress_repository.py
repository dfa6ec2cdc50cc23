"""Repository functions for the topic_progress table."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from learning.db.database import get_db

logger = structlog.get_logger(__name__)


@dataclass
class TopicProgressRecord:
    """Progress of one learner on one topic."""

    learner_id: str
    module_id: str
    topic_id: str
    status: str
    interactions: int
    last_activity_at: str


def bump_interaction(learner_id: str, module_id: str, topic_id: str, now: str) -> None:
    """Count one interaction; a not_started topic becomes in_progress.

    A completed topic keeps its status.
    """
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO topic_progress (
                learner_id, module_id, topic_id, status, interactions, last_activity_at
            ) VALUES (?, ?, ?, 'in_progress', 1, ?)
            ON CONFLICT(learner_id, module_id, topic_id) DO UPDATE SET
                interactions = interactions + 1,
                status = CASE WHEN status = 'completed' THEN 'completed' ELSE 'in_progress' END,
                last_activity_at = excluded.last_activity_at
            """,
            (learner_id, module_id, topic_id, now),
        )

    logger.debug("progress.interaction", learner_id=learner_id, topic_id=topic_id)


def mark_completed(learner_id: str, module_id: str, topic_id: str, now: str) -> None:
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO topic_progress (
                learner_id, module_id, topic_id, status, interactions, last_activity_at
            ) VALUES (?, ?, ?, 'completed', 0, ?)
            ON CONFLICT(learner_id, module_id, topic_id) DO UPDATE SET
                status = 'completed',
                last_activity_at = excluded.last_activity_at
            """,
            (learner_id, module_id, topic_id, now),
        )

    logger.debug("progress.completed", learner_id=learner_id, topic_id=topic_id)


def get_progress_rows(learner_id: str, module_id: str) -> list[TopicProgressRecord]:
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT * FROM topic_progress
            WHERE learner_id = ? AND module_id = ?
            """,
            (learner_id, module_id),
        ).fetchall()

    return [_row_to_record(row) for row in rows]


def get_touched_module_ids(learner_id: str) -> list[str]:
    """Modules in which the learner has any progress, most recent first."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT module_id, max(last_activity_at) AS last_activity
            FROM topic_progress
            WHERE learner_id = ?
            GROUP BY module_id
            ORDER BY last_activity DESC, module_id
            """,
            (learner_id,),
        ).fetchall()

    return [row["module_id"] for row in rows]


def _row_to_record(row: sqlite3.Row) -> TopicProgressRecord:
    return TopicProgressRecord(
        learner_id=row["learner_id"],
        module_id=row["module_id"],
        topic_id=row["topic_id"],
        status=row["status"],
        interactions=row["interactions"],
        last_activity_at=row["last_activity_at"],
    )
