"""Learner profiles.

Responsibilities:
- Create, read, update and delete learner profiles
- Validate name, email and level (unknown personas fall back to the default at answer time)
- Generate sequential learner IDs ("lrn01", "lrn02", ...)
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

import structlog

from learning.config.app_config import load_app_config
from learning.db.learners_repository import (
    LearnerRecord,
    delete_learner_row,
    get_all_learners,
    get_learner_by_id,
    get_learner_by_name,
    get_learner_ids,
    insert_learner,
    update_learner_fields,
)
from learning.utils.validators import LEARNER_LEVELS, validate_email, validate_level

logger = structlog.get_logger(__name__)

MAX_NAME_LENGTH = 100


class LearnerError(Exception):
    """Base exception for learner operations."""

    pass


class LearnerNotFoundError(LearnerError):
    """Raised when a learner ID is unknown."""

    def __init__(self, learner_id: str):
        self.learner_id = learner_id
        super().__init__(f"Learner '{learner_id}' not found")


class DuplicateLearnerError(LearnerError):
    """Raised when a learner with the same name already exists."""

    def __init__(self, name: str, existing_id: str):
        self.name = name
        self.existing_id = existing_id
        super().__init__(f"Learner with name '{name}' already exists ({existing_id})")


class LearnerValidationError(LearnerError):
    """Raised when learner fields are invalid."""

    pass


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def generate_next_learner_id(existing_ids: list[str]) -> str:
    """Generate the next learner ID after the largest existing number."""
    existing_nums = []
    for learner_id in existing_ids:
        if learner_id.startswith("lrn"):
            try:
                existing_nums.append(int(learner_id[3:]))
            except ValueError:
                pass
    next_num = max(existing_nums, default=0) + 1
    return f"lrn{next_num:02d}"


def _validate_fields(
    name: str | None = None,
    email: str | None = None,
    level: str | None = None,
) -> None:
    if name is not None:
        stripped = name.strip()
        if not stripped or len(stripped) > MAX_NAME_LENGTH:
            raise LearnerValidationError(
                f"Name must be between 1 and {MAX_NAME_LENGTH} characters"
            )
    if email is not None and not validate_email(email):
        raise LearnerValidationError("Invalid email format")
    if level is not None and not validate_level(level):
        raise LearnerValidationError(
            f"Invalid level '{level}'. Expected one of: {', '.join(LEARNER_LEVELS)}"
        )


def create_learner(
    name: str,
    email: str = "",
    level: str = "beginner",
    persona_id: str | None = None,
    goals: str = "",
) -> LearnerRecord:
    """Create a new learner profile.

    Args:
        name: Learner's display name (unique, case-insensitive)
        email: Optional email address
        level: beginner | intermediate | advanced
        persona_id: Tutor persona; defaults to the configured default persona
        goals: Free-text learning goals

    Returns:
        The created LearnerRecord

    Raises:
        LearnerValidationError: If a field is invalid
        DuplicateLearnerError: If the name is already taken
    """
    _validate_fields(name=name, email=email, level=level)
    name = name.strip()

    existing = get_learner_by_name(name)
    if existing is not None:
        raise DuplicateLearnerError(name, existing.learner_id)

    now = _now()
    record = LearnerRecord(
        learner_id=generate_next_learner_id(get_learner_ids()),
        name=name,
        email=email,
        level=level,
        persona_id=persona_id or load_app_config().tutor.default_persona,
        goals=goals,
        created_at=now,
        updated_at=now,
    )

    try:
        insert_learner(record)
    except sqlite3.IntegrityError as e:
        raise LearnerError(f"Could not create learner: {e}") from e

    logger.info("learner.created", learner_id=record.learner_id, level=level)
    return record


def get_learner(learner_id: str) -> LearnerRecord:
    """Get a learner by ID.

    Raises:
        LearnerNotFoundError: If the learner does not exist
    """
    learner = get_learner_by_id(learner_id)
    if learner is None:
        raise LearnerNotFoundError(learner_id)
    return learner


def list_learners() -> list[LearnerRecord]:
    return get_all_learners()


def update_learner(learner_id: str, **changes: str | None) -> LearnerRecord:
    """Apply a partial update; None values are ignored.

    Raises:
        LearnerNotFoundError: If the learner does not exist
        LearnerValidationError: If a field is invalid
        DuplicateLearnerError: If the new name is taken by another learner
    """
    fields = {k: v for k, v in changes.items() if v is not None}
    current = get_learner(learner_id)

    _validate_fields(
        name=fields.get("name"),
        email=fields.get("email"),
        level=fields.get("level"),
    )

    if "name" in fields:
        fields["name"] = fields["name"].strip()
        other = get_learner_by_name(fields["name"])
        if other is not None and other.learner_id != learner_id:
            raise DuplicateLearnerError(fields["name"], other.learner_id)

    if fields:
        update_learner_fields(current.learner_id, _now(), **fields)
        logger.info("learner.updated", learner_id=learner_id, fields=sorted(fields))

    return get_learner(learner_id)


def delete_learner(learner_id: str) -> None:
    """Delete a learner with their progress and feedback.

    Raises:
        LearnerNotFoundError: If the learner does not exist
    """
    if not delete_learner_row(learner_id):
        raise LearnerNotFoundError(learner_id)
    logger.info("learner.deleted", learner_id=learner_id)
