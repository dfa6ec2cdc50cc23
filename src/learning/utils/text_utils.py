"""Text processing utilities.

Common text manipulation functions used across modules.
"""

import re
import unicodedata

# Patterns for removing thinking/reasoning blocks from LLM output
THINK_PATTERNS = [
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<thinking>.*?</thinking>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<analysis>.*?</analysis>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
]

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

MAX_SLUG_LENGTH = 60


def strip_think(text: str) -> str:
    """Remove thinking/reasoning tags from LLM output.

    Removes <think>, <thinking>, <analysis> and <reasoning> blocks and
    a leading "Thinking..." line if present.

    Args:
        text: Raw LLM output text

    Returns:
        Cleaned text without thinking artifacts
    """
    result = text
    for pattern in THINK_PATTERNS:
        result = pattern.sub("", result)

    lines = result.strip().split("\n")
    if lines and lines[0].strip().lower().startswith("thinking"):
        lines = lines[1:]

    return "\n".join(lines).strip()


def slugify(text: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """Convert text to a lowercase ASCII slug joined by hyphens.

    Example:
        >>> slugify("Introducción a Python: Básicos!")
        'introduccion-a-python-basicos'
    """
    normalized = unicodedata.normalize("NFKD", text)
    ascii_text = normalized.encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_text.lower()).strip("-")
    if len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")
    return slug or "module"


def split_sentences(text: str) -> list[str]:
    """Split a paragraph on sentence-ending punctuation."""
    return [s.strip() for s in SENTENCE_BOUNDARY.split(text) if s.strip()]


def truncate(text: str, limit: int) -> str:
    """Cut text to at most ``limit`` characters, marking the cut with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: max(0, limit - 1)].rstrip() + "…"
