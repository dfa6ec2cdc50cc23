"""Repository functions for the learners table."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

import structlog

from learning.db.database import get_db

logger = structlog.get_logger(__name__)

# Columns that update_learner may change
UPDATABLE_FIELDS = ("name", "email", "level", "persona_id", "goals")


@dataclass
class LearnerRecord:
    """Learner record from database."""

    learner_id: str
    name: str
    email: str
    level: str
    persona_id: str
    goals: str
    created_at: str
    updated_at: str


def insert_learner(record: LearnerRecord) -> None:
    with get_db() as conn:
        conn.execute(
            """
            INSERT INTO learners (
                learner_id, name, email, level, persona_id, goals,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.learner_id,
                record.name,
                record.email,
                record.level,
                record.persona_id,
                record.goals,
                record.created_at,
                record.updated_at,
            ),
        )

    logger.debug("learners.inserted", learner_id=record.learner_id)


def update_learner_fields(learner_id: str, updated_at: str, **fields: str) -> bool:
    """Update the given columns of a learner.

    Returns:
        True if a row was updated, False if the learner does not exist

    Raises:
        ValueError: If a field name is not updatable
    """
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update fields: {sorted(unknown)}")

    assignments = ", ".join(f"{name} = ?" for name in fields)
    params = [*fields.values(), updated_at, learner_id]

    with get_db() as conn:
        cursor = conn.execute(
            f"UPDATE learners SET {assignments}{', ' if assignments else ''}updated_at = ? "
            "WHERE learner_id = ?",
            params,
        )
        updated = cursor.rowcount > 0

    logger.debug("learners.updated", learner_id=learner_id, fields=sorted(fields))
    return updated


def delete_learner_row(learner_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute("DELETE FROM learners WHERE learner_id = ?", (learner_id,))
        return cursor.rowcount > 0


def get_learner_by_id(learner_id: str) -> LearnerRecord | None:
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM learners WHERE learner_id = ?", (learner_id,)
        ).fetchone()

    if row is None:
        return None
    return _row_to_record(row)


def get_learner_by_name(name: str) -> LearnerRecord | None:
    """Get learner by name (case-insensitive)."""
    with get_db() as conn:
        row = conn.execute(
            "SELECT * FROM learners WHERE lower(name) = lower(?)", (name,)
        ).fetchone()

    if row is None:
        return None
    return _row_to_record(row)


def get_all_learners() -> list[LearnerRecord]:
    with get_db() as conn:
        rows = conn.execute("SELECT * FROM learners ORDER BY learner_id").fetchall()

    return [_row_to_record(row) for row in rows]


def get_learner_ids() -> list[str]:
    with get_db() as conn:
        rows = conn.execute("SELECT learner_id FROM learners").fetchall()

    return [row["learner_id"] for row in rows]


def _row_to_record(row: sqlite3.Row) -> LearnerRecord:
    return LearnerRecord(
        learner_id=row["learner_id"],
        name=row["name"],
        email=row["email"],
        level=row["level"],
        persona_id=row["persona_id"],
        goals=row["goals"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
