"""Tests for learner feedback."""

import pytest

from learning.core.feedback import FeedbackValidationError, submit_feedback, summarize_feedback
from learning.core.learners import LearnerNotFoundError, create_learner
from learning.core.retriever import LearningModuleNotFoundError

MODULE = "intro-to-python"


class TestSubmitFeedback:
    def test_returns_increasing_ids(self, learner, sample_module):
        first = submit_feedback(learner.learner_id, MODULE, rating=5, question="What is a loop?")
        second = submit_feedback(learner.learner_id, MODULE, rating=3, comment="ok")

        assert second > first

    @pytest.mark.parametrize("rating", [0, 6, -1, True, 4.5])
    def test_invalid_rating(self, learner, sample_module, rating):
        with pytest.raises(FeedbackValidationError):
            submit_feedback(learner.learner_id, MODULE, rating=rating)

    def test_unknown_learner(self, sample_module):
        with pytest.raises(LearnerNotFoundError):
            submit_feedback("lrn99", MODULE, rating=4)

    def test_unknown_module(self, learner):
        with pytest.raises(LearningModuleNotFoundError):
            submit_feedback(learner.learner_id, "nope", rating=4)


class TestSummarizeFeedback:
    def test_no_feedback(self, sample_module):
        summary = summarize_feedback(MODULE)

        assert summary.count == 0
        assert summary.average_rating is None
        assert summary.distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}

    def test_average_and_distribution(self, learner, sample_module):
        other = create_learner(name="Luis")
        submit_feedback(learner.learner_id, MODULE, rating=5)
        submit_feedback(learner.learner_id, MODULE, rating=4)
        submit_feedback(other.learner_id, MODULE, rating=4)

        summary = summarize_feedback(MODULE)

        assert summary.count == 3
        assert summary.average_rating == 4.33
        assert summary.distribution == {1: 0, 2: 0, 3: 0, 4: 2, 5: 1}

    def test_unknown_module(self):
        with pytest.raises(LearningModuleNotFoundError):
            summarize_feedback("nope")
