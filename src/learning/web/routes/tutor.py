"""Tutor endpoint: ask a question about a module."""

from fastapi import APIRouter, Depends, HTTPException, status

from learning.core.learners import LearnerNotFoundError
from learning.core.pipeline import TutorPipeline
from learning.core.retriever import (
    LearningModuleNotFoundError,
    ModuleStorageError,
    RetrievalError,
)
from learning.llm.client import LLMError
from learning.web.dependencies import get_pipeline
from learning.web.schemas import AskRequest, SourceResponse, TutorAnswerResponse

router = APIRouter(prefix="/api/tutor", tags=["tutor"])


@router.post("/ask", response_model=TutorAnswerResponse)
def ask(request: AskRequest, pipeline: TutorPipeline = Depends(get_pipeline)) -> TutorAnswerResponse:
    """Answer a learner question with the agentic RAG pipeline."""
    try:
        result = pipeline.ask(request.learner_id, request.module_id, request.question)
    except (LearnerNotFoundError, LearningModuleNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except RetrievalError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ModuleStorageError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except LLMError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return TutorAnswerResponse(
        answer=result.answer,
        approved=result.approved,
        rounds=result.rounds,
        retrievals=result.retrievals,
        sources=[SourceResponse(**s) for s in result.sources],
        issues=result.issues,
        latency_ms=result.latency_ms,
    )
