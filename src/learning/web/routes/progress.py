"""Progress endpoints."""

from fastapi import APIRouter, HTTPException, status

from learning.core.learners import LearnerNotFoundError
from learning.core.progress import (
    ModuleProgress,
    TopicNotFoundError,
    complete_topic,
    get_learner_progress,
    get_module_progress,
)
from learning.core.retriever import LearningModuleNotFoundError
from learning.web.schemas import LearnerProgressResponse, ModuleProgressResponse

router = APIRouter(prefix="/api/progress", tags=["progress"])


def _to_response(progress: ModuleProgress) -> ModuleProgressResponse:
    return ModuleProgressResponse.model_validate(progress.to_dict())


@router.get("/{learner_id}", response_model=LearnerProgressResponse)
async def learner_progress(learner_id: str) -> LearnerProgressResponse:
    """Progress in every module the learner has touched."""
    try:
        modules = get_learner_progress(learner_id)
    except LearnerNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return LearnerProgressResponse(
        learner_id=learner_id,
        modules=[_to_response(m) for m in modules],
    )


@router.get("/{learner_id}/{module_id}", response_model=ModuleProgressResponse)
async def module_progress(learner_id: str, module_id: str) -> ModuleProgressResponse:
    """Progress of a learner in one module."""
    try:
        progress = get_module_progress(learner_id, module_id)
    except (LearnerNotFoundError, LearningModuleNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return _to_response(progress)


@router.post(
    "/{learner_id}/{module_id}/topics/{topic_id}/complete",
    response_model=ModuleProgressResponse,
)
async def mark_topic_complete(learner_id: str, module_id: str, topic_id: str) -> ModuleProgressResponse:
    """Mark a topic as completed."""
    try:
        progress = complete_topic(learner_id, module_id, topic_id)
    except (LearnerNotFoundError, LearningModuleNotFoundError, TopicNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return _to_response(progress)
