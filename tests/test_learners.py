"""Tests for learner profiles."""

import pytest

from learning.core.feedback import submit_feedback, summarize_feedback
from learning.core.learners import (
    DuplicateLearnerError,
    LearnerNotFoundError,
    LearnerValidationError,
    create_learner,
    delete_learner,
    generate_next_learner_id,
    get_learner,
    list_learners,
    update_learner,
)
from learning.core.progress import complete_topic, get_learner_progress


class TestGenerateLearnerId:
    def test_first_id(self):
        assert generate_next_learner_id([]) == "lrn01"

    def test_after_highest(self):
        """Gaps are not reused."""
        assert generate_next_learner_id(["lrn01", "lrn07", "lrn03"]) == "lrn08"

    def test_ignores_foreign_ids(self):
        assert generate_next_learner_id(["stu05", "lrnXX"]) == "lrn01"


class TestCreateLearner:
    def test_defaults(self):
        learner = create_learner(name="  Pedro  ")

        assert learner.learner_id == "lrn01"
        assert learner.name == "Pedro"
        assert learner.level == "beginner"
        assert learner.persona_id == "dra_vega"
        assert learner.created_at == learner.updated_at

    def test_sequential_ids(self):
        create_learner(name="Ana")
        second = create_learner(name="Luis", level="advanced", persona_id="profe_nico")

        assert second.learner_id == "lrn02"
        assert second.level == "advanced"
        assert second.persona_id == "profe_nico"

    def test_duplicate_name_case_insensitive(self):
        create_learner(name="Ana")

        with pytest.raises(DuplicateLearnerError) as exc_info:
            create_learner(name="ana")

        assert exc_info.value.existing_id == "lrn01"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"name": ""},
            {"name": "x" * 101},
            {"name": "Ana", "email": "not-an-email"},
            {"name": "Ana", "level": "expert"},
        ],
    )
    def test_invalid_fields(self, kwargs):
        with pytest.raises(LearnerValidationError):
            create_learner(**kwargs)


class TestReadUpdateDelete:
    def test_get_and_list(self, learner):
        assert get_learner(learner.learner_id).name == "Ana"
        assert [l.learner_id for l in list_learners()] == [learner.learner_id]

    def test_get_unknown(self):
        with pytest.raises(LearnerNotFoundError):
            get_learner("lrn99")

    def test_partial_update(self, learner):
        updated = update_learner(learner.learner_id, level="intermediate", email=None)

        assert updated.level == "intermediate"
        assert updated.email == "ana@example.com"
        assert updated.name == "Ana"

    def test_update_rename_conflict(self, learner):
        create_learner(name="Luis")

        with pytest.raises(DuplicateLearnerError):
            update_learner(learner.learner_id, name="LUIS")

    def test_update_same_name_allowed(self, learner):
        assert update_learner(learner.learner_id, name="ana").name == "ana"

    def test_update_invalid_level(self, learner):
        with pytest.raises(LearnerValidationError):
            update_learner(learner.learner_id, level="guru")

    def test_update_unknown(self):
        with pytest.raises(LearnerNotFoundError):
            update_learner("lrn99", level="advanced")

    def test_delete_cascades(self, learner, sample_module):
        """Deleting a learner removes their progress and feedback."""
        complete_topic(learner.learner_id, "intro-to-python", "intro-to-python-t01")
        submit_feedback(learner.learner_id, "intro-to-python", rating=4)

        delete_learner(learner.learner_id)

        with pytest.raises(LearnerNotFoundError):
            get_learner_progress(learner.learner_id)
        assert summarize_feedback("intro-to-python").count == 0

    def test_delete_unknown(self):
        with pytest.raises(LearnerNotFoundError):
            delete_learner("lrn99")
