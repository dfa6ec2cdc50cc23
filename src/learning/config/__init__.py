"""Configuration package for the learning platform."""

from learning.config.app_config import (
    AppConfig,
    PipelineConfig,
    ProviderConfig,
    RetrievalConfig,
    TutorConfig,
    get_provider_config,
    load_app_config,
)
from learning.config.personas import (
    Persona,
    get_default_persona,
    get_persona,
    list_personas,
    load_personas,
    resolve_persona,
)

__all__ = [
    "AppConfig",
    "PipelineConfig",
    "ProviderConfig",
    "RetrievalConfig",
    "TutorConfig",
    "get_provider_config",
    "load_app_config",
    "Persona",
    "get_default_persona",
    "get_persona",
    "list_personas",
    "load_personas",
    "resolve_persona",
]
