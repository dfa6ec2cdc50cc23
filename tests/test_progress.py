"""Tests for progress tracking."""

import pytest

from learning.core.learners import LearnerNotFoundError, create_learner
from learning.core.progress import (
    TopicNotFoundError,
    TopicStatus,
    complete_topic,
    get_learner_progress,
    get_module_progress,
    record_interaction,
    summarize,
)
from learning.core.retriever import LearningModuleNotFoundError

MODULE = "intro-to-python"
T1 = "intro-to-python-t01"
T2 = "intro-to-python-t02"


class TestSummarize:
    def test_counts_and_percentage(self):
        topics = [
            TopicStatus(topic_id="a", title="A", status="completed"),
            TopicStatus(topic_id="b", title="B", status="in_progress"),
            TopicStatus(topic_id="c", title="C"),
        ]

        summary = summarize(topics)

        assert summary.total_topics == 3
        assert summary.completed == 1
        assert summary.in_progress == 1
        assert summary.not_started == 1
        assert summary.percentage == 33.3

    def test_empty(self):
        assert summarize([]).percentage == 0.0


class TestTopicLifecycle:
    """not_started -> in_progress -> completed."""

    def test_untouched_module(self, learner, sample_module):
        progress = get_module_progress(learner.learner_id, MODULE)

        assert progress.module_title == "Intro to Python"
        assert [t.status for t in progress.topics] == ["not_started"] * 4
        assert progress.summary.percentage == 0.0

    def test_interaction_starts_topic(self, learner, sample_module):
        record_interaction(learner.learner_id, MODULE, T1)

        topic = get_module_progress(learner.learner_id, MODULE).topics[0]

        assert topic.status == "in_progress"
        assert topic.interactions == 1
        assert topic.last_activity_at is not None

    def test_complete_topic(self, learner, sample_module):
        progress = complete_topic(learner.learner_id, MODULE, T2)

        assert progress.topics[1].status == "completed"
        assert progress.summary.completed == 1
        assert progress.summary.percentage == 25.0

    def test_completed_is_sticky(self, learner, sample_module):
        """Interactions after completion are counted but keep the status."""
        record_interaction(learner.learner_id, MODULE, T1)
        complete_topic(learner.learner_id, MODULE, T1)
        record_interaction(learner.learner_id, MODULE, T1)

        topic = get_module_progress(learner.learner_id, MODULE).topics[0]

        assert topic.status == "completed"
        assert topic.interactions == 2

    def test_complete_twice(self, learner, sample_module):
        complete_topic(learner.learner_id, MODULE, T1)
        progress = complete_topic(learner.learner_id, MODULE, T1)

        assert progress.summary.completed == 1

    def test_progress_is_per_learner(self, learner, sample_module):
        other = create_learner(name="Luis")
        complete_topic(learner.learner_id, MODULE, T1)

        assert get_module_progress(other.learner_id, MODULE).summary.completed == 0


class TestErrors:
    def test_unknown_topic(self, learner, sample_module):
        with pytest.raises(TopicNotFoundError):
            complete_topic(learner.learner_id, MODULE, "intro-to-python-t99")

    def test_unknown_module(self, learner):
        with pytest.raises(LearningModuleNotFoundError):
            record_interaction(learner.learner_id, "nope", "nope-t01")

    def test_unknown_learner(self, sample_module):
        with pytest.raises(LearnerNotFoundError):
            get_module_progress("lrn99", MODULE)


class TestLearnerProgress:
    def test_only_touched_modules(self, learner, sample_module, data_dir, fake_client):
        from learning.core.content_importer import import_module_text

        import_module_text("# SQL\n\nA table has rows.", data_dir=data_dir, client=fake_client)

        assert get_learner_progress(learner.learner_id) == []

        record_interaction(learner.learner_id, MODULE, T1)
        modules = get_learner_progress(learner.learner_id)

        assert [m.module_id for m in modules] == [MODULE]
        assert modules[0].to_dict()["summary"]["in_progress"] == 1
