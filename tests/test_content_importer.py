"""Tests for the learning module importer."""

import json

import numpy as np
import pytest

from learning.core.content_importer import (
    DuplicateModuleError,
    EmptyContentError,
    SourceDecodeError,
    SourceNotFoundError,
    UnsupportedFormatError,
    build_topics_and_chunks,
    chunk_text,
    embed_chunks,
    extract_title,
    import_module,
    import_module_text,
    split_topics,
)
from learning.core.progress import complete_topic, get_module_progress
from learning.db.modules_repository import get_all_modules, get_module_by_id, get_topics
from learning.llm.client import LLMResponseError

from conftest import SAMPLE_MODULE, FakeLLMClient


class TestParsing:
    """Tests for title, topic and chunk splitting."""

    def test_extract_title(self):
        assert extract_title(SAMPLE_MODULE) == "Intro to Python"
        assert extract_title("## Only a section\ntext") is None

    def test_split_topics_with_introduction(self):
        topics = split_topics(SAMPLE_MODULE, fallback_title="Fallback")

        assert [t.title for t in topics] == ["Introduction", "Variables", "Loops", "Functions"]
        assert topics[0].body == "Python is a friendly language."

    def test_split_topics_without_headings(self):
        """A document without ## headings is a single topic."""
        topics = split_topics("Just some notes.\n\nMore notes.", fallback_title="Notes")

        assert len(topics) == 1
        assert topics[0].title == "Notes"

    def test_split_topics_empty_document(self):
        assert split_topics("# Title only\n", fallback_title="Empty") == []

    def test_chunk_text_packs_paragraphs(self):
        para = "x" * 80
        chunks = chunk_text(f"{para}\n\n{para}\n\n{para}", max_chars=200)

        assert len(chunks) == 2
        assert chunks[0] == f"{para}\n\n{para}"
        assert chunks[1] == para

    def test_chunk_text_splits_long_paragraph(self):
        """Paragraphs over the limit are split on sentences."""
        sentence = "This sentence has some words in it."
        paragraph = " ".join([sentence] * 20)

        chunks = chunk_text(paragraph, max_chars=200)

        assert len(chunks) > 1
        assert all(len(c) <= 200 for c in chunks)
        assert " ".join(chunks).replace("\n\n", " ") == paragraph

    def test_chunk_text_hard_cuts_long_sentence(self):
        chunks = chunk_text("a" * 450, max_chars=200)
        assert [len(c) for c in chunks] == [200, 200, 50]

    def test_build_ids_and_drops_empty_topics(self):
        topics = split_topics("## Empty\n\n## Full\nSome text.", fallback_title="x")

        built_topics, chunks = build_topics_and_chunks("mod", topics, max_chars=200)

        assert [t.topic_id for t in built_topics] == ["mod-t01"]
        assert built_topics[0].title == "Full"
        assert [c.chunk_id for c in chunks] == ["mod-t01-c01"]
        assert chunks[0].topic_title == "Full"


class TestEmbedChunks:
    def test_batches(self, fake_client):
        _, chunks = build_topics_and_chunks(
            "mod", split_topics(SAMPLE_MODULE, "x"), max_chars=200
        )

        matrix = embed_chunks(chunks, fake_client, batch_size=3)

        assert matrix.shape == (4, 8)
        assert matrix.dtype == np.float32
        assert [len(batch) for batch in fake_client.embed_calls] == [3, 1]

    def test_count_mismatch(self, fake_client):
        _, chunks = build_topics_and_chunks(
            "mod", split_topics(SAMPLE_MODULE, "x"), max_chars=200
        )
        fake_client.embed = lambda texts: [[1.0]]

        with pytest.raises(LLMResponseError):
            embed_chunks(chunks, fake_client, batch_size=32)


class TestImportModuleText:
    """Tests for import_module_text."""

    def test_import_writes_artifacts_and_db(self, sample_module, data_dir):
        assert sample_module.success is True
        assert sample_module.module_id == "intro-to-python"
        assert sample_module.topic_count == 4
        assert sample_module.chunk_count == 4
        assert sample_module.reimported is False

        path = data_dir / "modules" / "intro-to-python"
        module_json = json.loads((path / "module.json").read_text())
        assert module_json["$schema"] == "learning_module_v1"
        assert module_json["embedding_model"] == "fake-embed"
        assert [t["topic_id"] for t in module_json["topics"]] == [
            "intro-to-python-t01",
            "intro-to-python-t02",
            "intro-to-python-t03",
            "intro-to-python-t04",
        ]

        chunks_json = json.loads((path / "chunks.json").read_text())
        assert chunks_json["$schema"] == "module_chunks_v1"
        assert chunks_json["chunks"][2]["chunk_id"] == "intro-to-python-t03-c01"

        assert np.load(path / "embeddings.npy").shape == (4, 8)

        record = get_module_by_id("intro-to-python")
        assert record.title == "Intro to Python"
        assert record.source_file == "intro.md"
        assert [t.title for t in get_topics("intro-to-python")] == [
            "Introduction",
            "Variables",
            "Loops",
            "Functions",
        ]

    def test_duplicate_content_rejected(self, sample_module, data_dir, fake_client):
        with pytest.raises(DuplicateModuleError) as exc_info:
            import_module_text(SAMPLE_MODULE, data_dir=data_dir, client=fake_client)

        assert exc_info.value.existing_module_id == "intro-to-python"

    def test_force_reimport_keeps_id(self, sample_module, data_dir, fake_client):
        result = import_module_text(SAMPLE_MODULE, force=True, data_dir=data_dir, client=fake_client)

        assert result.module_id == "intro-to-python"
        assert result.reimported is True
        assert len(get_all_modules()) == 1

    def test_same_title_new_content_gets_suffix(self, sample_module, data_dir, fake_client):
        text = SAMPLE_MODULE + "\n## Classes\n\nA class bundles data and behaviour.\n"

        result = import_module_text(text, data_dir=data_dir, client=fake_client)

        assert result.module_id == "intro-to-python-2"
        assert result.topic_count == 5
        assert len(get_all_modules()) == 2

    def test_force_with_new_content_keeps_existing_module(
        self, sample_module, data_dir, fake_client, learner
    ):
        complete_topic(learner.learner_id, "intro-to-python", "intro-to-python-t03")
        text = "# Intro to Python\n\n## Cooking\n\nBoil water.\n\n## Knitting\n\nCast on stitches.\n"

        result = import_module_text(text, force=True, data_dir=data_dir, client=fake_client)

        assert result.module_id == "intro-to-python-2"
        assert result.reimported is False
        assert [t.title for t in get_topics("intro-to-python")] == [
            "Introduction",
            "Variables",
            "Loops",
            "Functions",
        ]
        progress = get_module_progress(learner.learner_id, "intro-to-python")
        completed = [t for t in progress.topics if t.status == "completed"]
        assert [(t.topic_id, t.title) for t in completed] == [("intro-to-python-t03", "Loops")]

    def test_empty_content(self, data_dir, fake_client):
        with pytest.raises(EmptyContentError):
            import_module_text("# Title only\n", data_dir=data_dir, client=fake_client)

        assert get_all_modules() == []

    def test_explicit_title(self, data_dir, fake_client):
        result = import_module_text(
            "Loose notes about loops.", title="Loop Notes", data_dir=data_dir, client=fake_client
        )

        assert result.module_id == "loop-notes"
        assert get_topics("loop-notes")[0].title == "Loop Notes"


class TestImportModuleFile:
    def test_import_markdown_file(self, tmp_path, data_dir):
        source = tmp_path / "python_basics.md"
        source.write_text(SAMPLE_MODULE, encoding="utf-8")

        result = import_module(source, data_dir=data_dir, client=FakeLLMClient())

        assert result.module_id == "intro-to-python"
        assert get_module_by_id("intro-to-python").source_file == "python_basics.md"

    def test_title_from_file_stem(self, tmp_path, data_dir):
        source = tmp_path / "loops.txt"
        source.write_text("A loop repeats code.", encoding="utf-8")

        result = import_module(source, data_dir=data_dir, client=FakeLLMClient())

        assert result.module_id == "loops"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceNotFoundError):
            import_module(tmp_path / "missing.md", client=FakeLLMClient())

    def test_unsupported_format(self, tmp_path):
        source = tmp_path / "book.pdf"
        source.write_bytes(b"%PDF-1.4")

        with pytest.raises(UnsupportedFormatError):
            import_module(source, client=FakeLLMClient())

    def test_non_utf8_file(self, tmp_path):
        source = tmp_path / "latin1.md"
        source.write_bytes(b"\xff\xfe# Caf\xe9\n")

        with pytest.raises(SourceDecodeError, match="UTF-8"):
            import_module(source, client=FakeLLMClient())
