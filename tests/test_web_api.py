"""Tests for the Web API."""

import pytest
from fastapi.testclient import TestClient

from learning.core.module_store import CHUNKS_FILENAME, module_dir
from learning.core.pipeline import build_pipeline
from learning.llm.client import LLMError
from learning.web.api import create_app
from learning.web.dependencies import get_pipeline, reset_pipeline

from conftest import SAMPLE_MODULE


@pytest.fixture
def pipeline(fake_client):
    return build_pipeline(client=fake_client)


@pytest.fixture
def client(pipeline):
    """Test client with the tutor pipeline backed by the fake LLM client."""
    reset_pipeline()
    app = create_app()
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    with TestClient(app) as test_client:
        yield test_client
    reset_pipeline()


@pytest.fixture
def module_id(client):
    response = client.post("/api/modules", json={"content": SAMPLE_MODULE})
    assert response.status_code == 201
    return response.json()["module_id"]


@pytest.fixture
def learner_id(client):
    response = client.post("/api/learners", json={"name": "Ana", "level": "intermediate"})
    assert response.status_code == 201
    return response.json()["learner_id"]


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"


class TestLearners:
    """Tests for /api/learners."""

    def test_list_empty(self, client):
        data = client.get("/api/learners").json()
        assert data == {"learners": [], "count": 0}

    def test_create_and_get(self, client, learner_id):
        assert learner_id == "lrn01"

        data = client.get(f"/api/learners/{learner_id}").json()
        assert data["name"] == "Ana"
        assert data["level"] == "intermediate"
        assert data["persona_id"] == "dra_vega"

    def test_create_duplicate(self, client, learner_id):
        response = client.post("/api/learners", json={"name": "ANA"})
        assert response.status_code == 409

    def test_create_invalid_email(self, client):
        response = client.post("/api/learners", json={"name": "Luis", "email": "nope"})
        assert response.status_code == 400

    def test_create_invalid_level(self, client):
        response = client.post("/api/learners", json={"name": "Luis", "level": "guru"})
        assert response.status_code == 422

    def test_get_unknown(self, client):
        assert client.get("/api/learners/lrn99").status_code == 404

    def test_patch(self, client, learner_id):
        response = client.patch(f"/api/learners/{learner_id}", json={"goals": "Learn SQL"})

        assert response.status_code == 200
        data = response.json()
        assert data["goals"] == "Learn SQL"
        assert data["level"] == "intermediate"

    def test_patch_unknown(self, client):
        assert client.patch("/api/learners/lrn99", json={"goals": "x"}).status_code == 404

    def test_delete(self, client, learner_id):
        assert client.delete(f"/api/learners/{learner_id}").status_code == 204
        assert client.get(f"/api/learners/{learner_id}").status_code == 404
        assert client.delete(f"/api/learners/{learner_id}").status_code == 404


class TestPersonas:
    def test_list(self, client):
        data = client.get("/api/personas").json()

        assert data["count"] == 1
        assert data["personas"][0]["id"] == "dra_vega"
        assert data["personas"][0]["default"] is True

    def test_get(self, client):
        assert client.get("/api/personas/dra_vega").json()["name"] == "Dr. Elena Vega"

    def test_get_unknown(self, client):
        assert client.get("/api/personas/nobody").status_code == 404


class TestModules:
    """Tests for /api/modules."""

    def test_import(self, client):
        response = client.post(
            "/api/modules",
            json={"content": SAMPLE_MODULE, "description": "Basics"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["module_id"] == "intro-to-python"
        assert data["title"] == "Intro to Python"
        assert data["description"] == "Basics"
        assert data["topic_count"] == 4
        assert [t["title"] for t in data["topics"]] == ["Introduction", "Variables", "Loops", "Functions"]

    def test_import_duplicate(self, client, module_id):
        response = client.post("/api/modules", json={"content": SAMPLE_MODULE})
        assert response.status_code == 409

    def test_import_force(self, client, module_id):
        response = client.post("/api/modules", json={"content": SAMPLE_MODULE, "force": True})

        assert response.status_code == 201
        assert response.json()["module_id"] == module_id

    def test_import_empty_document(self, client):
        response = client.post("/api/modules", json={"content": "# Title only"})
        assert response.status_code == 422

    def test_import_embedding_failure(self, client, fake_client):
        def failing_embed(texts):
            raise LLMError("embeddings unavailable")

        fake_client.embed = failing_embed

        response = client.post("/api/modules", json={"content": SAMPLE_MODULE})
        assert response.status_code == 502

    def test_list_and_get(self, client, module_id):
        data = client.get("/api/modules").json()
        assert data["count"] == 1
        assert data["modules"][0]["module_id"] == module_id

        detail = client.get(f"/api/modules/{module_id}").json()
        assert len(detail["topics"]) == 4

    def test_get_unknown(self, client):
        assert client.get("/api/modules/nope").status_code == 404


class TestTutor:
    """Tests for POST /api/tutor/ask."""

    def test_ask(self, client, learner_id, module_id):
        response = client.post(
            "/api/tutor/ask",
            json={"learner_id": learner_id, "module_id": module_id, "question": "What is a loop?"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["answer"] == "Draft answer"
        assert data["approved"] is True
        assert data["retrievals"] == 1
        assert data["sources"][0]["topic_title"] == "Loops"

    def test_ask_records_progress(self, client, learner_id, module_id):
        client.post(
            "/api/tutor/ask",
            json={"learner_id": learner_id, "module_id": module_id, "question": "What is a loop?"},
        )

        data = client.get(f"/api/progress/{learner_id}/{module_id}").json()
        assert data["summary"]["in_progress"] == 1

    def test_ask_unknown_learner(self, client, module_id):
        response = client.post(
            "/api/tutor/ask",
            json={"learner_id": "lrn99", "module_id": module_id, "question": "loop?"},
        )
        assert response.status_code == 404

    def test_ask_unknown_module(self, client, learner_id):
        response = client.post(
            "/api/tutor/ask",
            json={"learner_id": learner_id, "module_id": "nope", "question": "loop?"},
        )
        assert response.status_code == 404

    @pytest.mark.parametrize("question", ["", "   "])
    def test_ask_blank_question(self, client, learner_id, module_id, question):
        response = client.post(
            "/api/tutor/ask",
            json={"learner_id": learner_id, "module_id": module_id, "question": question},
        )
        assert response.status_code == 400

    def test_ask_corrupt_module_storage(self, client, pipeline, learner_id, module_id):
        chunks_path = module_dir(module_id, pipeline.retriever.data_dir) / CHUNKS_FILENAME
        chunks_path.write_text("{not json", encoding="utf-8")

        response = client.post(
            "/api/tutor/ask",
            json={"learner_id": learner_id, "module_id": module_id, "question": "loop?"},
        )
        assert response.status_code == 500

    def test_ask_llm_failure(self, client, learner_id, module_id, fake_client):
        fake_client.simple_chat.side_effect = LLMError("server down")

        response = client.post(
            "/api/tutor/ask",
            json={"learner_id": learner_id, "module_id": module_id, "question": "loop?"},
        )
        assert response.status_code == 502


class TestProgress:
    """Tests for /api/progress."""

    def test_learner_without_progress(self, client, learner_id):
        data = client.get(f"/api/progress/{learner_id}").json()
        assert data == {"learner_id": learner_id, "modules": []}

    def test_complete_topic(self, client, learner_id, module_id):
        response = client.post(
            f"/api/progress/{learner_id}/{module_id}/topics/{module_id}-t02/complete"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["summary"]["completed"] == 1
        assert data["summary"]["percentage"] == 25.0
        assert data["topics"][1]["status"] == "completed"

        modules = client.get(f"/api/progress/{learner_id}").json()["modules"]
        assert [m["module_id"] for m in modules] == [module_id]

    def test_complete_unknown_topic(self, client, learner_id, module_id):
        response = client.post(f"/api/progress/{learner_id}/{module_id}/topics/nope/complete")
        assert response.status_code == 404

    def test_unknown_learner(self, client):
        assert client.get("/api/progress/lrn99").status_code == 404


class TestFeedback:
    """Tests for /api/feedback."""

    def test_submit_and_summary(self, client, learner_id, module_id):
        for rating in (5, 3):
            response = client.post(
                "/api/feedback",
                json={"learner_id": learner_id, "module_id": module_id, "rating": rating},
            )
            assert response.status_code == 201
            assert response.json()["feedback_id"] > 0

        data = client.get(f"/api/feedback/{module_id}/summary").json()
        assert data["count"] == 2
        assert data["average_rating"] == 4.0
        assert data["distribution"]["5"] == 1

    def test_rating_out_of_range(self, client, learner_id, module_id):
        response = client.post(
            "/api/feedback",
            json={"learner_id": learner_id, "module_id": module_id, "rating": 9},
        )
        assert response.status_code == 400

    @pytest.mark.parametrize("rating", [True, 3.0, "4", 3.5])
    def test_rating_must_be_integer(self, client, learner_id, module_id, rating):
        response = client.post(
            "/api/feedback",
            json={"learner_id": learner_id, "module_id": module_id, "rating": rating},
        )

        assert response.status_code == 400
        assert client.get(f"/api/feedback/{module_id}/summary").json()["count"] == 0

    def test_unknown_learner(self, client, module_id):
        response = client.post(
            "/api/feedback",
            json={"learner_id": "lrn99", "module_id": module_id, "rating": 4},
        )
        assert response.status_code == 404

    def test_summary_unknown_module(self, client):
        assert client.get("/api/feedback/nope/summary").status_code == 404
