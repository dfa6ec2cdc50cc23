"""Repository functions for the feedback table."""

from __future__ import annotations

import structlog

from learning.db.database import get_db

logger = structlog.get_logger(__name__)


def insert_feedback(
    learner_id: str,
    module_id: str,
    question: str,
    answer_excerpt: str,
    rating: int,
    comment: str,
    created_at: str,
) -> int:
    """Insert a feedback row and return its feedback_id."""
    with get_db() as conn:
        cursor = conn.execute(
            """
            INSERT INTO feedback (
                learner_id, module_id, question, answer_excerpt,
                rating, comment, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (learner_id, module_id, question, answer_excerpt, rating, comment, created_at),
        )
        feedback_id = int(cursor.lastrowid)

    logger.debug("feedback.inserted", feedback_id=feedback_id, module_id=module_id)
    return feedback_id


def get_rating_counts(module_id: str) -> dict[int, int]:
    """Map rating -> number of feedback rows for a module."""
    with get_db() as conn:
        rows = conn.execute(
            """
            SELECT rating, count(*) AS n FROM feedback
            WHERE module_id = ?
            GROUP BY rating
            """,
            (module_id,),
        ).fetchall()

    return {row["rating"]: row["n"] for row in rows}
