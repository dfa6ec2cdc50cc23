"""Learner endpoints."""

from fastapi import APIRouter, HTTPException, status

from learning.core.learners import (
    DuplicateLearnerError,
    LearnerNotFoundError,
    LearnerValidationError,
    create_learner,
    delete_learner,
    get_learner,
    list_learners,
    update_learner,
)
from learning.web.schemas import (
    LearnerCreate,
    LearnerListResponse,
    LearnerResponse,
    LearnerUpdate,
)

router = APIRouter(prefix="/api/learners", tags=["learners"])


@router.get("", response_model=LearnerListResponse)
async def list_all_learners() -> LearnerListResponse:
    """List all learners."""
    learners = [LearnerResponse.model_validate(l) for l in list_learners()]
    return LearnerListResponse(learners=learners, count=len(learners))


@router.post("", response_model=LearnerResponse, status_code=status.HTTP_201_CREATED)
async def create_new_learner(data: LearnerCreate) -> LearnerResponse:
    """Create a new learner."""
    try:
        learner = create_learner(
            name=data.name,
            email=data.email,
            level=data.level,
            persona_id=data.persona_id,
            goals=data.goals,
        )
    except LearnerValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DuplicateLearnerError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return LearnerResponse.model_validate(learner)


@router.get("/{learner_id}", response_model=LearnerResponse)
async def get_learner_by_id(learner_id: str) -> LearnerResponse:
    """Get a specific learner by ID."""
    try:
        learner = get_learner(learner_id)
    except LearnerNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    return LearnerResponse.model_validate(learner)


@router.patch("/{learner_id}", response_model=LearnerResponse)
async def patch_learner(learner_id: str, data: LearnerUpdate) -> LearnerResponse:
    """Update some fields of a learner."""
    try:
        learner = update_learner(learner_id, **data.model_dump(exclude_unset=True))
    except LearnerNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except LearnerValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DuplicateLearnerError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return LearnerResponse.model_validate(learner)


@router.delete("/{learner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_learner(learner_id: str) -> None:
    """Delete a learner with their progress and feedback."""
    try:
        delete_learner(learner_id)
    except LearnerNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
