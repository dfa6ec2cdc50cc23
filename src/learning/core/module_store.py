"""On-disk storage of learning module artifacts.

Layout per module:
    data/modules/{module_id}/module.json     learning_module_v1 metadata + topics
    data/modules/{module_id}/chunks.json     module_chunks_v1 chunk list
    data/modules/{module_id}/embeddings.npy  float32 matrix, row i = chunk i
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import structlog

logger = structlog.get_logger(__name__)

MODULE_SCHEMA = "learning_module_v1"
CHUNKS_SCHEMA = "module_chunks_v1"

MODULE_FILENAME = "module.json"
CHUNKS_FILENAME = "chunks.json"
EMBEDDINGS_FILENAME = "embeddings.npy"


@dataclass
class Topic:
    """A section of a learning module."""

    topic_id: str
    title: str
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {"topic_id": self.topic_id, "title": self.title, "order": self.order}


@dataclass
class Chunk:
    """A retrievable piece of a topic's text."""

    chunk_id: str
    topic_id: str
    topic_title: str
    text: str
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk_id": self.chunk_id,
            "topic_id": self.topic_id,
            "topic_title": self.topic_title,
            "text": self.text,
            "order": self.order,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chunk:
        return cls(
            chunk_id=data["chunk_id"],
            topic_id=data["topic_id"],
            topic_title=data.get("topic_title", ""),
            text=data["text"],
            order=int(data.get("order", 0)),
        )


class ModuleArtifactsError(Exception):
    """Raised when stored module artifacts are missing or inconsistent."""

    pass


def module_dir(module_id: str, data_dir: Path) -> Path:
    return data_dir / "modules" / module_id


def write_module_artifacts(
    module_id: str,
    metadata: dict[str, Any],
    topics: list[Topic],
    chunks: list[Chunk],
    embeddings: np.ndarray,
    data_dir: Path,
) -> Path:
    """Write module.json, chunks.json and embeddings.npy.

    Returns:
        Path to the module directory
    """
    if embeddings.shape[0] != len(chunks):
        raise ModuleArtifactsError(
            f"{len(chunks)} chunks but {embeddings.shape[0]} embedding rows"
        )

    path = module_dir(module_id, data_dir)
    path.mkdir(parents=True, exist_ok=True)

    module_json = {
        "$schema": MODULE_SCHEMA,
        "module_id": module_id,
        **metadata,
        "topics": [t.to_dict() for t in topics],
    }
    with open(path / MODULE_FILENAME, "w", encoding="utf-8") as f:
        json.dump(module_json, f, indent=2, ensure_ascii=False)

    chunks_json = {
        "$schema": CHUNKS_SCHEMA,
        "module_id": module_id,
        "chunks": [c.to_dict() for c in chunks],
    }
    with open(path / CHUNKS_FILENAME, "w", encoding="utf-8") as f:
        json.dump(chunks_json, f, indent=2, ensure_ascii=False)

    np.save(path / EMBEDDINGS_FILENAME, embeddings.astype(np.float32))

    logger.debug("module_store.written", module_id=module_id, chunks=len(chunks))
    return path


def load_module_artifacts(module_id: str, data_dir: Path) -> tuple[list[Chunk], np.ndarray]:
    """Load chunks and their embedding matrix.

    Raises:
        FileNotFoundError: If the module has no stored chunks
        ModuleArtifactsError: If the files are corrupt or disagree in size
    """
    path = module_dir(module_id, data_dir)
    chunks_path = path / CHUNKS_FILENAME
    embeddings_path = path / EMBEDDINGS_FILENAME

    if not chunks_path.exists() or not embeddings_path.exists():
        raise FileNotFoundError(f"No stored chunks for module '{module_id}' in {path}")

    try:
        with open(chunks_path, encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ModuleArtifactsError(f"Cannot read {chunks_path}: {e}") from e

    if data.get("$schema") != CHUNKS_SCHEMA:
        raise ModuleArtifactsError(
            f"Unexpected schema in {chunks_path}: {data.get('$schema')}"
        )

    chunks = [Chunk.from_dict(c) for c in data.get("chunks", [])]
    embeddings = np.load(embeddings_path)

    if embeddings.ndim != 2 or embeddings.shape[0] != len(chunks):
        raise ModuleArtifactsError(
            f"Module '{module_id}': {len(chunks)} chunks but embeddings shape {embeddings.shape}"
        )

    return chunks, embeddings


def embeddings_version(module_id: str, data_dir: Path) -> int | None:
    """Modification time of the embedding file, used to detect re-imports."""
    path = module_dir(module_id, data_dir) / EMBEDDINGS_FILENAME
    if not path.exists():
        return None
    return path.stat().st_mtime_ns
