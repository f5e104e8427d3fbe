"""Endpoint API de la recherche globale."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import STAFF_ROLES, get_current_organisation, require_roles
from app.schemas import build_responses
from app.schemas.search import GlobalSearchResponse
from app.services import search_service

router = APIRouter()


@router.get(
    "/",
    response_model=GlobalSearchResponse,
    summary="Recherche globale",
    description="Patients, actes et implants posés correspondant au terme recherché",
    responses=build_responses(400),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def global_search(
    q: str = Query(..., description="Terme recherché (2 caractères minimum)"),
    limit: int | None = Query(None, ge=1, le=50, description="Résultats par catégorie"),
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> GlobalSearchResponse:
    return await search_service.global_search(db, organisation_id, q, limit)
