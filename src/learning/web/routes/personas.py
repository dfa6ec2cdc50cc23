"""Persona endpoints."""

from fastapi import APIRouter, HTTPException, status

from learning.config.personas import get_persona, list_personas
from learning.web.schemas import PersonaListResponse, PersonaResponse

router = APIRouter(prefix="/api/personas", tags=["personas"])


@router.get("", response_model=PersonaListResponse)
async def list_all_personas() -> PersonaListResponse:
    """List all available personas."""
    responses = [PersonaResponse.model_validate(p) for p in list_personas()]
    return PersonaListResponse(personas=responses, count=len(responses))


@router.get("/{persona_id}", response_model=PersonaResponse)
async def get_persona_by_id(persona_id: str) -> PersonaResponse:
    """Get a specific persona by ID."""
    persona = get_persona(persona_id)

    if persona is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Persona '{persona_id}' not found",
        )

    return PersonaResponse.model_validate(persona)
