"""Learning module endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from learning.core.content_importer import (
    DuplicateModuleError,
    EmptyContentError,
    import_module_text,
)
from learning.core.pipeline import TutorPipeline
from learning.db.modules_repository import get_all_modules, get_module_by_id, get_topics
from learning.llm.client import LLMError
from learning.web.dependencies import get_pipeline
from learning.web.schemas import (
    ModuleDetailResponse,
    ModuleImportRequest,
    ModuleListResponse,
    ModuleResponse,
    TopicResponse,
)

router = APIRouter(prefix="/api/modules", tags=["modules"])


def _module_detail(module_id: str) -> ModuleDetailResponse:
    module = get_module_by_id(module_id)
    if module is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Module '{module_id}' not found",
        )

    return ModuleDetailResponse(
        **ModuleResponse.model_validate(module).model_dump(),
        topics=[TopicResponse.model_validate(t) for t in get_topics(module_id)],
    )


@router.get("", response_model=ModuleListResponse)
async def list_modules() -> ModuleListResponse:
    """List all imported modules."""
    modules = [ModuleResponse.model_validate(m) for m in get_all_modules()]
    return ModuleListResponse(modules=modules, count=len(modules))


@router.get("/{module_id}", response_model=ModuleDetailResponse)
async def get_module(module_id: str) -> ModuleDetailResponse:
    """Get a module with its topics."""
    return _module_detail(module_id)


@router.post("", response_model=ModuleDetailResponse, status_code=status.HTTP_201_CREATED)
def create_module(
    request: ModuleImportRequest,
    pipeline: TutorPipeline = Depends(get_pipeline),
) -> ModuleDetailResponse:
    """Import a module from Markdown text.

    Embeds the content with the pipeline's LLM client.
    """
    retriever = pipeline.retriever
    try:
        result = import_module_text(
            request.content,
            title=request.title,
            description=request.description,
            force=request.force,
            data_dir=retriever.data_dir,
            client=retriever.client,
        )
    except DuplicateModuleError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except EmptyContentError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except LLMError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    retriever.invalidate(result.module_id)
    return _module_detail(result.module_id)
