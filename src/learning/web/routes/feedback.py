"""Feedback endpoints."""

from fastapi import APIRouter, HTTPException, status

from learning.core.feedback import (
    FeedbackValidationError,
    submit_feedback,
    summarize_feedback,
)
from learning.core.learners import LearnerNotFoundError
from learning.core.retriever import LearningModuleNotFoundError
from learning.web.schemas import (
    FeedbackCreate,
    FeedbackCreatedResponse,
    FeedbackSummaryResponse,
)

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


@router.post("", response_model=FeedbackCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_feedback(data: FeedbackCreate) -> FeedbackCreatedResponse:
    """Rate a tutor answer."""
    try:
        feedback_id = submit_feedback(
            learner_id=data.learner_id,
            module_id=data.module_id,
            rating=data.rating,
            question=data.question,
            answer=data.answer,
            comment=data.comment,
        )
    except FeedbackValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except (LearnerNotFoundError, LearningModuleNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return FeedbackCreatedResponse(feedback_id=feedback_id)


@router.get("/{module_id}/summary", response_model=FeedbackSummaryResponse)
async def feedback_summary(module_id: str) -> FeedbackSummaryResponse:
    """Rating summary for a module."""
    try:
        summary = summarize_feedback(module_id)
    except LearningModuleNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return FeedbackSummaryResponse.model_validate(summary.to_dict())
