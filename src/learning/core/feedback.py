"""Learner feedback on tutor answers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from learning.core.learners import get_learner
from learning.core.retriever import LearningModuleNotFoundError
from learning.db.feedback_repository import get_rating_counts, insert_feedback
from learning.db.modules_repository import get_module_by_id
from learning.utils.text_utils import truncate

logger = structlog.get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5
ANSWER_EXCERPT_CHARS = 500


class FeedbackValidationError(Exception):
    """Raised when a feedback submission is invalid."""

    pass


@dataclass
class FeedbackSummary:
    module_id: str
    count: int
    average_rating: float | None
    distribution: dict[int, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "module_id": self.module_id,
            "count": self.count,
            "average_rating": self.average_rating,
            "distribution": self.distribution,
        }


def submit_feedback(
    learner_id: str,
    module_id: str,
    rating: int,
    question: str = "",
    answer: str = "",
    comment: str = "",
) -> int:
    """Store a rating (1-5) for an answer and return the feedback ID.

    Raises:
        FeedbackValidationError: If the rating is out of range
        LearnerNotFoundError: If the learner does not exist
        LearningModuleNotFoundError: If the module does not exist
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise FeedbackValidationError(
            f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}"
        )

    get_learner(learner_id)
    if get_module_by_id(module_id) is None:
        raise LearningModuleNotFoundError(module_id)

    feedback_id = insert_feedback(
        learner_id=learner_id,
        module_id=module_id,
        question=question.strip(),
        answer_excerpt=truncate(answer.strip(), ANSWER_EXCERPT_CHARS),
        rating=rating,
        comment=comment.strip(),
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    logger.info("feedback.submitted", feedback_id=feedback_id, module_id=module_id, rating=rating)
    return feedback_id


def summarize_feedback(module_id: str) -> FeedbackSummary:
    """Count, average and per-rating distribution for a module.

    Raises:
        LearningModuleNotFoundError: If the module does not exist
    """
    if get_module_by_id(module_id) is None:
        raise LearningModuleNotFoundError(module_id)

    counts = get_rating_counts(module_id)
    distribution = {r: counts.get(r, 0) for r in range(MIN_RATING, MAX_RATING + 1)}
    total = sum(distribution.values())
    average = round(sum(r * n for r, n in distribution.items()) / total, 2) if total else None

    return FeedbackSummary(
        module_id=module_id,
        count=total,
        average_rating=average,
        distribution=distribution,
    )
