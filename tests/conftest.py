"""Shared fixtures.

Every test runs in its own temporary working directory with a fresh
SQLite database, so config, personas and module artifacts resolve to
built-in defaults under tmp_path.
"""

import re
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from learning.config.app_config import clear_config_cache
from learning.config.personas import clear_personas_cache
from learning.db.database import init_db
from learning.llm.client import LLMConfig

# Embedding dimensions of the fake client: one per keyword
VOCABULARY = ["python", "variable", "loop", "function", "list", "dictionary", "class", "error"]

SAMPLE_MODULE = """# Intro to Python

Python is a friendly language.

## Variables

A variable stores a value. Python variable names are case sensitive.

## Loops

A loop repeats code. The for loop iterates over a list.

## Functions

A function groups code. Call the function with arguments.
"""


def keyword_vector(text: str) -> list[float]:
    """Bag-of-keywords embedding: count of each vocabulary word."""
    tokens = re.findall(r"[a-z]+", text.lower())
    return [float(tokens.count(word)) for word in VOCABULARY]


class FakeLLMClient:
    """Deterministic stand-in for LLMClient.

    Embeddings are keyword counts; chat calls are MagicMocks so tests can
    script drafts and reviews with return_value / side_effect.
    """

    def __init__(self):
        self.config = LLMConfig(provider="lmstudio", model="fake-chat", embedding_model="fake-embed")
        self.embed_calls: list[list[str]] = []
        self.simple_chat = MagicMock(return_value="Draft answer")
        self.simple_json = MagicMock(
            return_value={"approved": True, "issues": [], "follow_up_query": None}
        )

    def embed(self, texts: list[str]) -> list[list[float]]:
        self.embed_calls.append(list(texts))
        return [keyword_vector(t) for t in texts]


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Run each test in tmp_path with a fresh database and clean caches."""
    monkeypatch.chdir(tmp_path)
    clear_config_cache()
    clear_personas_cache()
    init_db(tmp_path / "db" / "learning.db")
    yield tmp_path
    clear_config_cache()
    clear_personas_cache()


@pytest.fixture
def data_dir(tmp_path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def fake_client():
    return FakeLLMClient()


@pytest.fixture
def sample_module(data_dir, fake_client):
    """Import SAMPLE_MODULE and return its ImportResult."""
    from learning.core.content_importer import import_module_text

    return import_module_text(
        SAMPLE_MODULE,
        source_file="intro.md",
        data_dir=data_dir,
        client=fake_client,
    )


@pytest.fixture
def learner():
    """A beginner learner with the default persona."""
    from learning.core.learners import create_learner

    return create_learner(name="Ana", email="ana@example.com", goals="Automate spreadsheets")
