"""Endpoints API pour le catalogue d'implants et de prothèses."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import CLINICAL_ROLES, STAFF_ROLES, get_current_organisation, require_roles
from app.models.enums import TypeImplant
from app.schemas import build_responses
from app.schemas.implant import (
    ImplantCreate,
    ImplantListItem,
    ImplantResponse,
    ImplantSearchRequest,
    ImplantUpdate,
)
from app.services import implant_service

router = APIRouter()


@router.post(
    "/",
    response_model=ImplantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ajouter un implant au catalogue",
    dependencies=[Depends(require_roles(*CLINICAL_ROLES))],
)
async def create_implant(
    implant: ImplantCreate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> ImplantResponse:
    created = await implant_service.create_implant(db, organisation_id, implant)
    return ImplantResponse.model_validate(created)


@router.get(
    "/",
    response_model=list[ImplantListItem],
    summary="Lister le catalogue",
    description="Entrées du catalogue avec nombre de poses, dernière pose et taux de réussite",
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_implants(
    type_implant: TypeImplant | None = Query(None, description="IMPLANT, MINI_IMPLANT ou PROTHESE"),
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[ImplantListItem]:
    return await implant_service.list_implants(db, organisation_id, type_implant)


@router.get(
    "/brands",
    response_model=list[str],
    summary="Marques du catalogue",
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_brands(
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[str]:
    return await implant_service.list_brands(db, organisation_id)


@router.post(
    "/search",
    response_model=list[ImplantListItem],
    summary="Filtrer le catalogue",
    description="Les prothèses (type_implant=PROTHESE) utilisent les champs de la page prothèses",
    responses=build_responses(422),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def search_implants(
    request: ImplantSearchRequest,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[ImplantListItem]:
    return await implant_service.search_implants(
        db, organisation_id, request.filters, request.type_implant
    )


@router.get(
    "/{implant_id}",
    response_model=ImplantResponse,
    summary="Récupérer un implant du catalogue",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def get_implant(
    implant_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> ImplantResponse:
    implant = await implant_service.get_implant(db, organisation_id, implant_id)
    return ImplantResponse.model_validate(implant)


@router.patch(
    "/{implant_id}",
    response_model=ImplantResponse,
    summary="Mettre à jour un implant du catalogue",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*CLINICAL_ROLES))],
)
async def update_implant(
    implant_id: int,
    implant_update: ImplantUpdate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> ImplantResponse:
    implant = await implant_service.update_implant(db, organisation_id, implant_id, implant_update)
    return ImplantResponse.model_validate(implant)
