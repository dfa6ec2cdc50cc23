"""Learning module importer.

Responsibilities:
- Read a Markdown or plain-text curriculum document
- Split it into topics (## headings) and size-bounded chunks
- Embed every chunk through the LLM client
- Persist artifacts to data/modules/{module_id}/ and register in SQLite

Deduplication is by SHA256 of the document text: one document maps to
one module_id.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import structlog

from learning.config.app_config import load_app_config
from learning.core.module_store import Chunk, Topic, module_dir, write_module_artifacts
from learning.db.modules_repository import (
    TopicRecord,
    get_module_by_id,
    get_module_by_sha256,
    replace_topics,
    upsert_module,
)
from learning.llm.client import LLMClient, LLMResponseError
from learning.utils.text_utils import slugify, split_sentences

logger = structlog.get_logger(__name__)

SUPPORTED_SUFFIXES = (".md", ".markdown", ".txt")

TITLE_HEADING = re.compile(r"^#\s+(.+?)\s*#*\s*$")
TOPIC_HEADING = re.compile(r"^##\s+(.+?)\s*#*\s*$")
PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

INTRODUCTION_TITLE = "Introduction"


@dataclass
class ParsedTopic:
    """A topic with its raw body text, before chunking."""

    title: str
    body: str


@dataclass
class ImportResult:
    """Result of a module import."""

    success: bool
    module_id: str
    module_path: Path
    message: str
    title: str
    topic_count: int
    chunk_count: int
    reimported: bool = False


class ContentImportError(Exception):
    """Base exception for module import errors."""

    pass


class SourceNotFoundError(ContentImportError):
    """Raised when the source file doesn't exist."""

    pass


class UnsupportedFormatError(ContentImportError):
    """Raised when the file type is not supported."""

    def __init__(self, file_path: Path):
        self.file_path = file_path
        super().__init__(
            f"Unsupported format: '{file_path.suffix}'. "
            f"Supported: {', '.join(SUPPORTED_SUFFIXES)}"
        )


class SourceDecodeError(ContentImportError):
    """Raised when the source file is not valid UTF-8."""

    def __init__(self, file_path: Path):
        self.file_path = file_path
        super().__init__(f"Cannot decode '{file_path.name}' as UTF-8 text")


class DuplicateModuleError(ContentImportError):
    """Raised when the same content was already imported."""

    def __init__(self, sha256: str, existing_module_id: str):
        self.sha256 = sha256
        self.existing_module_id = existing_module_id
        super().__init__(
            f"Content already imported as '{existing_module_id}'. Use force to reimport."
        )


class EmptyContentError(ContentImportError):
    """Raised when a document contains no usable text."""

    pass


# =============================================================================
# PARSING
# =============================================================================


def extract_title(text: str) -> str | None:
    """Return the first level-1 Markdown heading, if any."""
    for line in text.splitlines():
        match = TITLE_HEADING.match(line.strip())
        if match:
            return match.group(1).strip()
    return None


def split_topics(text: str, fallback_title: str) -> list[ParsedTopic]:
    """Split a document into topics on level-2 headings.

    Text before the first heading becomes an "Introduction" topic when
    non-empty. Without any level-2 heading the whole document is a single
    topic named ``fallback_title``. Level-1 headings are dropped.
    """
    topics: list[ParsedTopic] = []
    current_title: str | None = None
    current_lines: list[str] = []
    saw_heading = False

    def flush() -> None:
        body = "\n".join(current_lines).strip()
        if current_title is not None:
            topics.append(ParsedTopic(title=current_title, body=body))
        elif body:
            topics.append(ParsedTopic(title=INTRODUCTION_TITLE, body=body))

    for line in text.splitlines():
        stripped = line.strip()
        topic_match = TOPIC_HEADING.match(stripped)
        if topic_match:
            flush()
            saw_heading = True
            current_title = topic_match.group(1).strip()
            current_lines = []
            continue
        if TITLE_HEADING.match(stripped):
            continue
        current_lines.append(line)

    if not saw_heading:
        body = "\n".join(current_lines).strip()
        return [ParsedTopic(title=fallback_title, body=body)] if body else []

    flush()
    return topics


def _split_long_paragraph(paragraph: str, max_chars: int) -> list[str]:
    """Split on sentences, hard-cutting any sentence longer than max_chars."""
    pieces: list[str] = []
    current = ""
    for sentence in split_sentences(paragraph):
        while len(sentence) > max_chars:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(sentence[:max_chars])
            sentence = sentence[max_chars:].lstrip()
        if not sentence:
            continue
        if current and len(current) + 1 + len(sentence) <= max_chars:
            current = f"{current} {sentence}"
        else:
            if current:
                pieces.append(current)
            current = sentence
    if current:
        pieces.append(current)
    return pieces


def chunk_text(text: str, max_chars: int) -> list[str]:
    """Pack paragraphs greedily into chunks of at most max_chars.

    Example:
        >>> chunk_text("a\\n\\nb", 10)
        ['a\\n\\nb']
    """
    pieces: list[str] = []
    for paragraph in PARAGRAPH_BREAK.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        if len(paragraph) > max_chars:
            pieces.extend(_split_long_paragraph(paragraph, max_chars))
        else:
            pieces.append(paragraph)

    chunks: list[str] = []
    current = ""
    for piece in pieces:
        if current and len(current) + 2 + len(piece) <= max_chars:
            current = f"{current}\n\n{piece}"
        else:
            if current:
                chunks.append(current)
            current = piece
    if current:
        chunks.append(current)
    return chunks


def build_topics_and_chunks(
    module_id: str,
    parsed_topics: list[ParsedTopic],
    max_chars: int,
) -> tuple[list[Topic], list[Chunk]]:
    """Assign IDs to topics and chunks; topics without text are dropped."""
    topics: list[Topic] = []
    chunks: list[Chunk] = []

    for parsed in parsed_topics:
        texts = chunk_text(parsed.body, max_chars)
        if not texts:
            logger.debug("import_module.empty_topic_skipped", title=parsed.title)
            continue

        topic_number = len(topics) + 1
        topic = Topic(
            topic_id=f"{module_id}-t{topic_number:02d}",
            title=parsed.title,
            order=topic_number,
        )
        topics.append(topic)

        for i, text in enumerate(texts, start=1):
            chunks.append(
                Chunk(
                    chunk_id=f"{topic.topic_id}-c{i:02d}",
                    topic_id=topic.topic_id,
                    topic_title=topic.title,
                    text=text,
                    order=len(chunks),
                )
            )

    return topics, chunks


# =============================================================================
# EMBEDDING
# =============================================================================


def embed_chunks(chunks: list[Chunk], client: LLMClient, batch_size: int) -> np.ndarray:
    """Embed chunk texts in batches; row i is the vector of chunk i.

    Raises:
        LLMResponseError: If the provider returns a wrong number of vectors
    """
    vectors: list[list[float]] = []
    for start in range(0, len(chunks), batch_size):
        batch = [c.text for c in chunks[start : start + batch_size]]
        batch_vectors = client.embed(batch)
        if len(batch_vectors) != len(batch):
            raise LLMResponseError(
                f"Expected {len(batch)} embeddings, got {len(batch_vectors)}"
            )
        vectors.extend(batch_vectors)

    return np.asarray(vectors, dtype=np.float32)


# =============================================================================
# IMPORT
# =============================================================================


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _ensure_unique_module_id(module_id: str, data_dir: Path) -> str:
    """Append -2, -3, ... until the ID is free in the DB and on disk."""
    candidate = module_id
    n = 2
    while get_module_by_id(candidate) is not None or module_dir(candidate, data_dir).exists():
        candidate = f"{module_id}-{n}"
        n += 1
    return candidate


def import_module_text(
    text: str,
    title: str | None = None,
    description: str = "",
    source_file: str = "inline.md",
    force: bool = False,
    data_dir: Path | None = None,
    client: LLMClient | None = None,
) -> ImportResult:
    """Import a learning module from document text.

    Args:
        text: Markdown or plain-text document
        title: Module title (first "# " heading or source stem if not provided)
        description: Short description for listings
        source_file: Original file name, recorded for reference
        force: Reimport identical content under its existing module_id
        data_dir: Override default data directory
        client: LLM client used for embeddings

    Returns:
        ImportResult with module_id and counts

    Raises:
        DuplicateModuleError: If content exists and force=False
        EmptyContentError: If the document yields no chunks
        LLMError: If embedding fails
    """
    config = load_app_config()
    base_dir = data_dir or config.data_dir
    retrieval = config.retrieval

    title = (title or extract_title(text) or Path(source_file).stem).strip()
    sha256 = _sha256(text)

    logger.info("import_module.start", title=title, source_file=source_file, force=force)

    reimported = False
    existing_by_sha = get_module_by_sha256(sha256)
    if existing_by_sha is not None:
        if not force:
            raise DuplicateModuleError(sha256, existing_by_sha.module_id)
        module_id = existing_by_sha.module_id
        reimported = True
        logger.info("import_module.reimport", module_id=module_id)
    else:
        module_id = _ensure_unique_module_id(slugify(title), base_dir)

    parsed_topics = split_topics(text, fallback_title=title)
    topics, chunks = build_topics_and_chunks(module_id, parsed_topics, retrieval.max_chunk_chars)
    if not chunks:
        raise EmptyContentError(f"No text content found in '{source_file}'")

    if client is None:
        client = LLMClient()
    embeddings = embed_chunks(chunks, client, retrieval.embedding_batch_size)

    imported_at = datetime.now(timezone.utc).isoformat()
    module_path = write_module_artifacts(
        module_id=module_id,
        metadata={
            "title": title,
            "description": description,
            "source_file": source_file,
            "sha256": sha256,
            "imported_at": imported_at,
            "embedding_model": client.config.embedding_model,
        },
        topics=topics,
        chunks=chunks,
        embeddings=embeddings,
        data_dir=base_dir,
    )

    upsert_module(
        module_id=module_id,
        title=title,
        description=description,
        source_file=source_file,
        sha256=sha256,
        imported_at=imported_at,
        topic_count=len(topics),
        chunk_count=len(chunks),
        embedding_model=client.config.embedding_model,
    )
    replace_topics(
        module_id,
        [TopicRecord(topic_id=t.topic_id, module_id=module_id, title=t.title, order=t.order) for t in topics],
    )

    logger.info(
        "import_module.success",
        module_id=module_id,
        topics=len(topics),
        chunks=len(chunks),
        reimported=reimported,
    )

    return ImportResult(
        success=True,
        module_id=module_id,
        module_path=module_path,
        message=f"Module imported: {module_id}",
        title=title,
        topic_count=len(topics),
        chunk_count=len(chunks),
        reimported=reimported,
    )


def import_module(
    file_path: Path,
    title: str | None = None,
    description: str = "",
    force: bool = False,
    data_dir: Path | None = None,
    client: LLMClient | None = None,
) -> ImportResult:
    """Import a learning module from a .md, .markdown or .txt file.

    Raises:
        SourceNotFoundError: If the file doesn't exist
        UnsupportedFormatError: If the suffix is not supported
        SourceDecodeError: If the file is not valid UTF-8
        DuplicateModuleError: If content exists and force=False
        EmptyContentError: If the document yields no chunks
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise SourceNotFoundError(f"File not found: {file_path}")
    if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
        raise UnsupportedFormatError(file_path)

    try:
        text = file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SourceDecodeError(file_path) from e
    return import_module_text(
        text,
        title=title or extract_title(text) or file_path.stem,
        description=description,
        source_file=file_path.name,
        force=force,
        data_dir=data_dir,
        client=client,
    )
