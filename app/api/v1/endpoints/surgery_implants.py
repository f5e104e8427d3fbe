"""Endpoints API pour les implants posés, leurs suggestions et changements de statut."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import (
    CLINICAL_ROLES,
    STAFF_ROLES,
    User,
    get_current_organisation,
    require_roles,
)
from app.schemas import build_responses
from app.schemas.implant import (
    SurgeryImplantListItem,
    SurgeryImplantResponse,
    SurgeryImplantSearchRequest,
    SurgeryImplantUpdate,
)
from app.schemas.implant_status import (
    StatusChangeRequest,
    StatusHistoryResponse,
    StatusSuggestionsResponse,
)
from app.services import implant_status_service, surgery_implant_service

router = APIRouter()


@router.get(
    "/",
    response_model=list[SurgeryImplantListItem],
    summary="Lister les implants posés",
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_surgery_implants(
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[SurgeryImplantListItem]:
    return await surgery_implant_service.list_surgery_implants(db, organisation_id)


@router.post(
    "/search",
    response_model=list[SurgeryImplantListItem],
    summary="Filtrer les implants posés",
    responses=build_responses(422),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def search_surgery_implants(
    request: SurgeryImplantSearchRequest,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[SurgeryImplantListItem]:
    return await surgery_implant_service.search_surgery_implants(
        db, organisation_id, request.filters
    )


@router.get(
    "/{surgery_implant_id}",
    response_model=SurgeryImplantResponse,
    summary="Récupérer un implant posé",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def get_surgery_implant(
    surgery_implant_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> SurgeryImplantResponse:
    surgery_implant = await surgery_implant_service.get_surgery_implant(
        db, organisation_id, surgery_implant_id
    )
    return SurgeryImplantResponse.model_validate(surgery_implant)


@router.patch(
    "/{surgery_implant_id}",
    response_model=SurgeryImplantResponse,
    summary="Mettre à jour un implant posé",
    description="Mesures ISQ, score de perte osseuse, notes. Le statut passe par /status.",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*CLINICAL_ROLES))],
)
async def update_surgery_implant(
    surgery_implant_id: int,
    surgery_implant_update: SurgeryImplantUpdate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> SurgeryImplantResponse:
    surgery_implant = await surgery_implant_service.update_surgery_implant(
        db, organisation_id, surgery_implant_id, surgery_implant_update
    )
    return SurgeryImplantResponse.model_validate(surgery_implant)


@router.get(
    "/{surgery_implant_id}/status-suggestions",
    response_model=StatusSuggestionsResponse,
    summary="Suggestions de statut",
    description="Statuts suggérés d'après l'historique ISQ de l'implant",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def get_status_suggestions(
    surgery_implant_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> StatusSuggestionsResponse:
    return await implant_status_service.get_status_suggestions(
        db, organisation_id, surgery_implant_id
    )


@router.post(
    "/{surgery_implant_id}/status",
    response_model=SurgeryImplantResponse,
    summary="Changer le statut d'un implant posé",
    description="Enregistre le changement dans l'historique; 409 si le statut est inchangé",
    responses=build_responses(404, 409),
)
async def change_status(
    surgery_implant_id: int,
    request: StatusChangeRequest,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
) -> SurgeryImplantResponse:
    surgery_implant = await implant_status_service.change_status(
        db, organisation_id, surgery_implant_id, request, changed_by=current_user.sub
    )
    return SurgeryImplantResponse.model_validate(surgery_implant)


@router.get(
    "/{surgery_implant_id}/status-history",
    response_model=list[StatusHistoryResponse],
    summary="Historique des statuts",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def get_status_history(
    surgery_implant_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[StatusHistoryResponse]:
    return await implant_status_service.list_status_history(
        db, organisation_id, surgery_implant_id
    )
