"""Shared dependencies for Web API routes."""

from __future__ import annotations

from learning.core.pipeline import TutorPipeline, build_pipeline

# Global pipeline instance
_pipeline: TutorPipeline | None = None


def get_pipeline() -> TutorPipeline:
    """Get the global tutor pipeline, building it on first use."""
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline()
    return _pipeline


def reset_pipeline() -> None:
    """Reset the pipeline (for testing)."""
    global _pipeline
    _pipeline = None
