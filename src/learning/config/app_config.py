"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml,
falling back to built-in defaults when the file is missing.

Usage:
    from learning.config.app_config import load_app_config, get_provider_config

    config = load_app_config()
    provider = get_provider_config("lmstudio")
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")


@dataclass
class ProviderConfig:
    """Configuration for a single LLM provider."""

    base_url: str | None
    default_model: str
    embedding_model: str = "text-embedding-3-small"
    api_key_env: str | None = None

    def get_api_key(self) -> str | None:
        """Get API key from environment variable."""
        if self.api_key_env:
            return os.environ.get(self.api_key_env)
        return None


@dataclass
class TutorConfig:
    """Defaults for tutoring sessions."""

    default_provider: str = "lmstudio"
    default_persona: str = "dra_vega"
    max_retries: int = 1


@dataclass
class PipelineConfig:
    """Bounds for the retrieve / draft / review / refine loop."""

    max_refinement_rounds: int = 2
    max_retrievals: int = 2


@dataclass
class RetrievalConfig:
    """Chunking and similarity search settings."""

    top_k: int = 4
    min_score: float = 0.2
    max_chunk_chars: int = 1200
    embedding_batch_size: int = 32


@dataclass
class AppConfig:
    """Application-wide configuration."""

    providers: dict[str, ProviderConfig] = field(default_factory=dict)
    tutor: TutorConfig = field(default_factory=TutorConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    paths: dict[str, str] = field(default_factory=dict)

    @property
    def data_dir(self) -> Path:
        return Path(self.paths.get("data_dir", "data"))

    @property
    def db_path(self) -> Path:
        return Path(self.paths.get("db_path", "db/learning.db"))


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "providers": {
            "lmstudio": {
                "base_url": "http://localhost:1234/v1",
                "default_model": "llama-3.2-3b-instruct",
                "embedding_model": "text-embedding-nomic-embed-text-v1.5",
                "api_key_env": None,
            },
            "openai": {
                "base_url": "https://api.openai.com/v1",
                "default_model": "gpt-4o-mini",
                "embedding_model": "text-embedding-3-small",
                "api_key_env": "OPENAI_API_KEY",
            },
            "anthropic": {
                "base_url": "https://api.anthropic.com/v1",
                "default_model": "claude-sonnet-4-20250514",
                "embedding_model": "text-embedding-3-small",
                "api_key_env": "ANTHROPIC_API_KEY",
            },
        },
        "tutor": {
            "default_provider": "lmstudio",
            "default_persona": "dra_vega",
            "max_retries": 1,
        },
        "pipeline": {
            "max_refinement_rounds": 2,
            "max_retrievals": 2,
        },
        "retrieval": {
            "top_k": 4,
            "min_score": 0.2,
            "max_chunk_chars": 1200,
            "embedding_batch_size": 32,
        },
        "paths": {
            "data_dir": "data",
            "db_path": "db/learning.db",
            "config_dir": "data/config",
            "prompts_dir": "prompts",
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    providers = {}
    for name, pconfig in data.get("providers", {}).items():
        providers[name] = ProviderConfig(
            base_url=pconfig.get("base_url"),
            default_model=pconfig.get("default_model", "default"),
            embedding_model=pconfig.get("embedding_model", "text-embedding-3-small"),
            api_key_env=pconfig.get("api_key_env"),
        )

    tutor_data = data.get("tutor", {})
    tutor = TutorConfig(
        default_provider=tutor_data.get("default_provider", "lmstudio"),
        default_persona=tutor_data.get("default_persona", "dra_vega"),
        max_retries=tutor_data.get("max_retries", 1),
    )

    pipeline_data = data.get("pipeline", {})
    pipeline = PipelineConfig(
        max_refinement_rounds=max(0, int(pipeline_data.get("max_refinement_rounds", 2))),
        max_retrievals=max(1, int(pipeline_data.get("max_retrievals", 2))),
    )

    retrieval_data = data.get("retrieval", {})
    retrieval = RetrievalConfig(
        top_k=max(1, int(retrieval_data.get("top_k", 4))),
        min_score=float(retrieval_data.get("min_score", 0.2)),
        max_chunk_chars=max(200, int(retrieval_data.get("max_chunk_chars", 1200))),
        embedding_batch_size=max(1, int(retrieval_data.get("embedding_batch_size", 32))),
    )

    paths = data.get("paths", {})

    return AppConfig(
        providers=providers,
        tutor=tutor,
        pipeline=pipeline,
        retrieval=retrieval,
        paths=paths,
    )


def load_app_config(force_reload: bool = False, config_file: Path | None = None) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.
        config_file: Override the default config path.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    path = config_file or CONFIG_FILE
    data: dict[str, Any]

    if path.exists():
        logger.debug("loading_app_config", source=str(path))
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    else:
        logger.warning("using_default_config", path=str(path))
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def get_provider_config(provider: str) -> ProviderConfig | None:
    """Get configuration for a specific provider.

    Args:
        provider: Provider name (e.g., "lmstudio", "openai")

    Returns:
        ProviderConfig or None if provider not found.
    """
    config = load_app_config()
    return config.providers.get(provider)


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
