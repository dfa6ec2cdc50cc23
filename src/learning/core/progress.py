"""Progress tracking.

Per learner, per module, per topic status:
    not_started -> in_progress (first interaction) -> completed (explicit)

A completed topic stays completed; further interactions are still counted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from learning.core.learners import get_learner
from learning.core.retriever import LearningModuleNotFoundError
from learning.db.modules_repository import get_module_by_id, get_topic, get_topics
from learning.db.progress_repository import (
    bump_interaction,
    get_progress_rows,
    get_touched_module_ids,
    mark_completed,
)

logger = structlog.get_logger(__name__)

STATUS_NOT_STARTED = "not_started"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"


class ProgressError(Exception):
    """Base exception for progress operations."""

    pass


class TopicNotFoundError(ProgressError):
    """Raised when a topic does not belong to the module."""

    def __init__(self, module_id: str, topic_id: str):
        self.module_id = module_id
        self.topic_id = topic_id
        super().__init__(f"Topic '{topic_id}' not found in module '{module_id}'")


@dataclass
class TopicStatus:
    topic_id: str
    title: str
    status: str = STATUS_NOT_STARTED
    interactions: int = 0
    last_activity_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic_id": self.topic_id,
            "title": self.title,
            "status": self.status,
            "interactions": self.interactions,
            "last_activity_at": self.last_activity_at,
        }


@dataclass
class ProgressSummary:
    total_topics: int
    completed: int
    in_progress: int
    not_started: int
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_topics": self.total_topics,
            "completed": self.completed,
            "in_progress": self.in_progress,
            "not_started": self.not_started,
            "percentage": self.percentage,
        }


@dataclass
class ModuleProgress:
    learner_id: str
    module_id: str
    module_title: str
    summary: ProgressSummary
    topics: list[TopicStatus] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "learner_id": self.learner_id,
            "module_id": self.module_id,
            "module_title": self.module_title,
            "summary": self.summary.to_dict(),
            "topics": [t.to_dict() for t in self.topics],
        }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def summarize(topics: list[TopicStatus]) -> ProgressSummary:
    """Count statuses; percentage is completed / total, one decimal."""
    total = len(topics)
    completed = sum(1 for t in topics if t.status == STATUS_COMPLETED)
    in_progress = sum(1 for t in topics if t.status == STATUS_IN_PROGRESS)
    percentage = round(completed / total * 100, 1) if total else 0.0
    return ProgressSummary(
        total_topics=total,
        completed=completed,
        in_progress=in_progress,
        not_started=total - completed - in_progress,
        percentage=percentage,
    )


def _require_module_topic(module_id: str, topic_id: str) -> None:
    if get_module_by_id(module_id) is None:
        raise LearningModuleNotFoundError(module_id)
    if get_topic(module_id, topic_id) is None:
        raise TopicNotFoundError(module_id, topic_id)


def record_interaction(learner_id: str, module_id: str, topic_id: str) -> None:
    """Count one learner interaction with a topic.

    Raises:
        LearnerNotFoundError: If the learner does not exist
        LearningModuleNotFoundError: If the module does not exist
        TopicNotFoundError: If the topic is not part of the module
    """
    get_learner(learner_id)
    _require_module_topic(module_id, topic_id)
    bump_interaction(learner_id, module_id, topic_id, _now())


def complete_topic(learner_id: str, module_id: str, topic_id: str) -> ModuleProgress:
    """Mark a topic completed and return the updated module progress.

    Raises:
        LearnerNotFoundError: If the learner does not exist
        LearningModuleNotFoundError: If the module does not exist
        TopicNotFoundError: If the topic is not part of the module
    """
    get_learner(learner_id)
    _require_module_topic(module_id, topic_id)
    mark_completed(learner_id, module_id, topic_id, _now())
    logger.info("progress.topic_completed", learner_id=learner_id, topic_id=topic_id)
    return get_module_progress(learner_id, module_id)


def get_module_progress(learner_id: str, module_id: str) -> ModuleProgress:
    """Progress of a learner in one module, including untouched topics.

    Raises:
        LearnerNotFoundError: If the learner does not exist
        LearningModuleNotFoundError: If the module does not exist
    """
    get_learner(learner_id)
    module = get_module_by_id(module_id)
    if module is None:
        raise LearningModuleNotFoundError(module_id)

    rows = {row.topic_id: row for row in get_progress_rows(learner_id, module_id)}
    topics: list[TopicStatus] = []
    for topic in get_topics(module_id):
        row = rows.get(topic.topic_id)
        if row is None:
            topics.append(TopicStatus(topic_id=topic.topic_id, title=topic.title))
        else:
            topics.append(
                TopicStatus(
                    topic_id=topic.topic_id,
                    title=topic.title,
                    status=row.status,
                    interactions=row.interactions,
                    last_activity_at=row.last_activity_at,
                )
            )

    return ModuleProgress(
        learner_id=learner_id,
        module_id=module_id,
        module_title=module.title,
        summary=summarize(topics),
        topics=topics,
    )


def get_learner_progress(learner_id: str) -> list[ModuleProgress]:
    """Progress in every module the learner has touched, most recent first.

    Raises:
        LearnerNotFoundError: If the learner does not exist
    """
    get_learner(learner_id)
    return [get_module_progress(learner_id, mid) for mid in get_touched_module_ids(learner_id)]
