"""Data validation helpers.

ID conventions:
- module_id: slug of the module title ("intro-to-python")
- topic_id: "{module_id}-t{NN}"
- chunk_id: "{topic_id}-c{NN}"
- learner_id: "lrn{NN}"

Functions:
- validate_email(email) -> bool
- resolve_module_id(prefix, candidates) -> str: Resolve prefix to unique module_id
"""

import re

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")

LEARNER_LEVELS = ("beginner", "intermediate", "advanced")


class AmbiguousModuleIdError(Exception):
    """Raised when a module_id prefix matches multiple modules."""

    def __init__(self, prefix: str, candidates: list[str]):
        self.prefix = prefix
        self.candidates = candidates
        super().__init__(
            f"Prefix '{prefix}' is ambiguous. Candidates:\n"
            + "\n".join(f"  - {c}" for c in candidates)
        )


class ModuleIdNotFoundError(Exception):
    """Raised when no module matches the given prefix."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        super().__init__(f"No module found with prefix '{prefix}'")


def validate_email(email: str) -> bool:
    """Validate email format. Empty string is valid (optional field)."""
    if not email:
        return True
    return bool(EMAIL_PATTERN.match(email))


def validate_level(level: str) -> bool:
    return level in LEARNER_LEVELS


def resolve_module_id(prefix: str, candidates: list[str]) -> str:
    """Resolve a module_id prefix to a unique full module_id.

    Raises:
        ModuleIdNotFoundError: If no candidates match the prefix
        AmbiguousModuleIdError: If multiple candidates match the prefix
    """
    if prefix in candidates:
        return prefix

    matches = [c for c in candidates if c.startswith(prefix)]

    if len(matches) == 0:
        raise ModuleIdNotFoundError(prefix)
    elif len(matches) == 1:
        return matches[0]
    else:
        raise AmbiguousModuleIdError(prefix, matches)

