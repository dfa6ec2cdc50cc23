"""Retriever agent.

Finds the chunks of a learning module most similar to a query using
cosine similarity between embeddings (numpy). Stored modules are cached
in memory and reloaded when their embedding file changes.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import structlog

from learning.core.module_store import (
    Chunk,
    ModuleArtifactsError,
    embeddings_version,
    load_module_artifacts,
)
from learning.llm.client import LLMClient

logger = structlog.get_logger(__name__)


class RetrievalError(Exception):
    """Error during retrieval."""

    pass


class LearningModuleNotFoundError(RetrievalError):
    """Raised when a module has no stored content."""

    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Module '{module_id}' not found")


class ModuleStorageError(Exception):
    """Raised when stored module artifacts are unusable."""

    pass


@dataclass
class RetrievedChunk:
    """A chunk with its similarity score to the query."""

    chunk: Chunk
    score: float

    def to_source(self) -> dict[str, Any]:
        return {
            "chunk_id": self.chunk.chunk_id,
            "topic_id": self.chunk.topic_id,
            "topic_title": self.chunk.topic_title,
            "score": round(self.score, 4),
        }


@dataclass
class _CachedModule:
    chunks: list[Chunk]
    normalized: np.ndarray
    version: int | None


def _normalize_rows(matrix: np.ndarray) -> np.ndarray:
    matrix = np.asarray(matrix, dtype=np.float32)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    safe = np.where(norms == 0, 1.0, norms)
    return np.where(norms == 0, 0.0, matrix / safe)


def _normalize_vector(vector: np.ndarray) -> np.ndarray:
    vector = np.asarray(vector, dtype=np.float32)
    norm = np.linalg.norm(vector)
    if norm == 0:
        return np.zeros_like(vector)
    return vector / norm


def rank_chunks(
    chunks: list[Chunk],
    scores: np.ndarray,
    top_k: int,
    min_score: float,
) -> list[RetrievedChunk]:
    """Keep scores >= min_score, best first, at most top_k.

    Equal scores keep document order (stable sort).
    """
    order = np.argsort(-scores, kind="stable")
    results: list[RetrievedChunk] = []
    for idx in order:
        score = float(scores[idx])
        if score < min_score:
            break
        results.append(RetrievedChunk(chunk=chunks[idx], score=score))
        if len(results) >= top_k:
            break
    return results


class Retriever:
    """Similarity search over stored module chunks."""

    def __init__(
        self,
        data_dir: Path,
        client: LLMClient,
        top_k: int = 4,
        min_score: float = 0.2,
    ):
        self.data_dir = data_dir
        self.client = client
        self.top_k = top_k
        self.min_score = min_score
        self._cache: dict[str, _CachedModule] = {}
        self._lock = threading.Lock()

    def _load(self, module_id: str) -> _CachedModule:
        version = embeddings_version(module_id, self.data_dir)
        with self._lock:
            cached = self._cache.get(module_id)
            if cached is not None and cached.version == version:
                return cached

        try:
            chunks, embeddings = load_module_artifacts(module_id, self.data_dir)
        except FileNotFoundError as e:
            raise LearningModuleNotFoundError(module_id) from e
        except ModuleArtifactsError as e:
            raise ModuleStorageError(str(e)) from e

        entry = _CachedModule(
            chunks=chunks,
            normalized=_normalize_rows(embeddings),
            version=version,
        )
        with self._lock:
            self._cache[module_id] = entry

        logger.debug("retriever.module_loaded", module_id=module_id, chunks=len(chunks))
        return entry

    def invalidate(self, module_id: str) -> None:
        """Drop a module from the cache."""
        with self._lock:
            self._cache.pop(module_id, None)

    def retrieve(self, module_id: str, query: str, top_k: int | None = None) -> list[RetrievedChunk]:
        """Return the chunks of a module most similar to the query.

        Raises:
            RetrievalError: If the query is empty
            ModuleStorageError: If stored artifacts are corrupt or use another embedding size
            LearningModuleNotFoundError: If the module has no stored content
            LLMError: If the query cannot be embedded
        """
        if not query or not query.strip():
            raise RetrievalError("Query must not be empty")

        module = self._load(module_id)
        if not module.chunks:
            return []

        query_vector = np.asarray(self.client.embed([query.strip()])[0], dtype=np.float32)
        if query_vector.shape[0] != module.normalized.shape[1]:
            raise ModuleStorageError(
                f"Query embedding has {query_vector.shape[0]} dimensions, "
                f"module '{module_id}' uses {module.normalized.shape[1]}"
            )

        scores = module.normalized @ _normalize_vector(query_vector)
        results = rank_chunks(module.chunks, scores, top_k or self.top_k, self.min_score)

        logger.info(
            "retriever.retrieved",
            module_id=module_id,
            candidates=len(module.chunks),
            returned=len(results),
            best=round(results[0].score, 4) if results else None,
        )
        return results
