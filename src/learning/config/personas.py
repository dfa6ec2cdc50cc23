"""Persona configuration loader.

Loads tutor personas from data/config/personas_v1.yaml. A persona shapes
the voice of the reasoner agent's answers; it carries no grading or
hinting rules.

Usage:
    from learning.config.personas import get_persona, list_personas

    persona = get_persona("dra_vega")
    all_personas = list_personas()
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
PERSONAS_FILE = Path("data/config/personas_v1.yaml")


@dataclass
class Persona:
    """A tutor persona with personality traits and style."""

    id: str
    name: str
    short_title: str
    background: str
    style_rules: str
    default: bool = False


# Module-level cache
_cached_personas: dict[str, Persona] | None = None


def _get_default_personas() -> dict[str, Persona]:
    """Get default personas when config file is missing."""
    return {
        "dra_vega": Persona(
            id="dra_vega",
            name="Dr. Elena Vega",
            short_title="University lecturer",
            background="Professor with twenty years of teaching experience.",
            style_rules="- Address the learner directly\n- Use real-life examples",
            default=True,
        ),
    }


def load_personas(force_reload: bool = False, personas_file: Path | None = None) -> dict[str, Persona]:
    """Load all personas from config file.

    Args:
        force_reload: If True, ignore cache and reload from file.
        personas_file: Override the default personas path.

    Returns:
        Dictionary mapping persona ID to Persona object.
    """
    global _cached_personas

    if _cached_personas is not None and not force_reload:
        return _cached_personas

    path = personas_file or PERSONAS_FILE

    if not path.exists():
        logger.warning("personas_file_not_found", path=str(path))
        _cached_personas = _get_default_personas()
        return _cached_personas

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        personas_data = data.get("personas", {})

        _cached_personas = {}
        for pid, pdata in personas_data.items():
            _cached_personas[pid] = Persona(
                id=pdata.get("id", pid),
                name=pdata.get("name", pid),
                short_title=pdata.get("short_title", ""),
                background=pdata.get("background", ""),
                style_rules=pdata.get("style_rules", ""),
                default=pdata.get("default", False),
            )

        logger.debug("loaded_personas", count=len(_cached_personas))
        return _cached_personas

    except (yaml.YAMLError, OSError, AttributeError) as e:
        logger.error("failed_to_load_personas", error=str(e))
        _cached_personas = _get_default_personas()
        return _cached_personas


def get_persona(persona_id: str) -> Persona | None:
    """Get a specific persona by ID.

    Args:
        persona_id: The persona identifier (e.g., "dra_vega")

    Returns:
        Persona object or None if not found.
    """
    personas = load_personas()
    return personas.get(persona_id)


def get_default_persona() -> Persona:
    """Get the default persona.

    Returns:
        The persona marked as default, or the first available persona.
    """
    personas = load_personas()

    for persona in personas.values():
        if persona.default:
            return persona

    if personas:
        return list(personas.values())[0]

    return _get_default_personas()["dra_vega"]


def resolve_persona(persona_id: str | None) -> Persona:
    """Get persona by ID, or the default persona if unknown."""
    if persona_id:
        persona = get_persona(persona_id)
        if persona is not None:
            return persona
        logger.warning("persona_not_found_using_default", persona_id=persona_id)
    return get_default_persona()


def list_personas() -> list[Persona]:
    """List all available personas."""
    return list(load_personas().values())


def clear_personas_cache() -> None:
    """Clear the personas cache."""
    global _cached_personas
    _cached_personas = None
