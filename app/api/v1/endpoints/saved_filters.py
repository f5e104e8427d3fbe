"""Endpoints API pour les filtres enregistrés."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import STAFF_ROLES, get_current_organisation, require_roles
from app.filters import FilterGroup
from app.models.enums import SavedFilterPageType
from app.schemas import build_responses
from app.schemas.filters import FilterCombineRequest
from app.schemas.saved_filter import SavedFilterCreate, SavedFilterResponse
from app.services import saved_filter_service

router = APIRouter(dependencies=[Depends(require_roles(*STAFF_ROLES))])


@router.get(
    "/{page_type}",
    response_model=list[SavedFilterResponse],
    summary="Filtres enregistrés d'une page",
    description="Du plus récent au plus ancien",
)
async def list_saved_filters(
    page_type: SavedFilterPageType,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[SavedFilterResponse]:
    return await saved_filter_service.list_saved_filters(db, organisation_id, page_type)


@router.post(
    "/",
    response_model=SavedFilterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enregistrer un filtre",
    description="Le filtre est validé contre les champs de sa page avant enregistrement",
    responses=build_responses(422),
)
async def create_saved_filter(
    saved_filter: SavedFilterCreate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> SavedFilterResponse:
    return await saved_filter_service.create_saved_filter(db, organisation_id, saved_filter)


@router.delete(
    "/{filter_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Supprimer un filtre enregistré",
    responses=build_responses(404),
)
async def delete_saved_filter(
    filter_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> None:
    await saved_filter_service.delete_saved_filter(db, organisation_id, filter_id)


@router.post(
    "/{filter_id}/apply",
    response_model=FilterGroup,
    summary="Appliquer un filtre enregistré",
    description=(
        "Sans mode, le filtre enregistré remplace le filtre courant; avec AND/OR, "
        "les règles des deux filtres sont combinées"
    ),
    responses=build_responses(404),
)
async def apply_saved_filter(
    filter_id: int,
    request: FilterCombineRequest,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> FilterGroup:
    return await saved_filter_service.apply_saved_filter(
        db, organisation_id, filter_id, request.current, request.mode
    )
