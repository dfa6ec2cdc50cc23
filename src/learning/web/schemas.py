"""Pydantic schemas for the Web API.

Serialization models for learners, personas, modules, tutor answers,
progress and feedback.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

LearnerLevel = Literal["beginner", "intermediate", "advanced"]


# =============================================================================
# LEARNER SCHEMAS
# =============================================================================


class LearnerCreate(BaseModel):
    """Request body for creating a learner."""

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(default="", max_length=200)
    level: LearnerLevel = "beginner"
    persona_id: str | None = None
    goals: str = Field(default="", max_length=1000)


class LearnerUpdate(BaseModel):
    """Request body for a partial learner update."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: str | None = Field(default=None, max_length=200)
    level: LearnerLevel | None = None
    persona_id: str | None = None
    goals: str | None = Field(default=None, max_length=1000)


class LearnerResponse(BaseModel):
    learner_id: str
    name: str
    email: str
    level: str
    persona_id: str
    goals: str
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}


class LearnerListResponse(BaseModel):
    learners: list[LearnerResponse]
    count: int


# =============================================================================
# PERSONA SCHEMAS
# =============================================================================


class PersonaResponse(BaseModel):
    id: str
    name: str
    short_title: str
    background: str
    default: bool = False

    model_config = {"from_attributes": True}


class PersonaListResponse(BaseModel):
    personas: list[PersonaResponse]
    count: int


# =============================================================================
# MODULE SCHEMAS
# =============================================================================


class ModuleImportRequest(BaseModel):
    """Request body for importing a module from Markdown text."""

    title: str | None = Field(default=None, max_length=200)
    content: str = Field(..., min_length=1)
    description: str = Field(default="", max_length=1000)
    force: bool = False


class TopicResponse(BaseModel):
    topic_id: str
    title: str
    order: int

    model_config = {"from_attributes": True}


class ModuleResponse(BaseModel):
    module_id: str
    title: str
    description: str
    source_file: str
    imported_at: str
    topic_count: int
    chunk_count: int
    embedding_model: str

    model_config = {"from_attributes": True}


class ModuleDetailResponse(ModuleResponse):
    topics: list[TopicResponse] = Field(default_factory=list)


class ModuleListResponse(BaseModel):
    modules: list[ModuleResponse]
    count: int


# =============================================================================
# TUTOR SCHEMAS
# =============================================================================


class AskRequest(BaseModel):
    learner_id: str
    module_id: str
    question: str = Field(..., max_length=2000)


class SourceResponse(BaseModel):
    chunk_id: str
    topic_id: str
    topic_title: str
    score: float


class TutorAnswerResponse(BaseModel):
    answer: str
    approved: bool
    rounds: int
    retrievals: int
    sources: list[SourceResponse]
    issues: list[str]
    latency_ms: int


# =============================================================================
# PROGRESS SCHEMAS
# =============================================================================


class TopicProgressResponse(BaseModel):
    topic_id: str
    title: str
    status: str
    interactions: int
    last_activity_at: str | None = None


class ProgressSummaryResponse(BaseModel):
    total_topics: int
    completed: int
    in_progress: int
    not_started: int
    percentage: float


class ModuleProgressResponse(BaseModel):
    learner_id: str
    module_id: str
    module_title: str
    summary: ProgressSummaryResponse
    topics: list[TopicProgressResponse]


class LearnerProgressResponse(BaseModel):
    learner_id: str
    modules: list[ModuleProgressResponse]


# =============================================================================
# FEEDBACK SCHEMAS
# =============================================================================


class FeedbackCreate(BaseModel):
    learner_id: str
    module_id: str
    # Left uncoerced; submit_feedback checks the type
    rating: Any
    question: str = Field(default="", max_length=2000)
    answer: str = Field(default="", max_length=20000)
    comment: str = Field(default="", max_length=2000)


class FeedbackCreatedResponse(BaseModel):
    feedback_id: int


class FeedbackSummaryResponse(BaseModel):
    module_id: str
    count: int
    average_rating: float | None
    distribution: dict[int, int]


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
