"""Endpoints API pour les actes chirurgicaux."""

from fastapi import APIRouter, Depends, status
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
from app.schemas.implant import SurgeryImplantCreate, SurgeryImplantResponse
from app.schemas.operation import (
    BulkDeleteRequest,
    BulkDeleteResult,
    OperationCreate,
    OperationDetail,
    OperationListItem,
    OperationSearchRequest,
    OperationUpdate,
)
from app.services import operation_service, surgery_implant_service

router = APIRouter()


@router.post(
    "/",
    response_model=OperationDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Créer un acte",
    description="Crée un acte chirurgical, avec les implants posés pendant l'intervention",
    responses=build_responses(404),
)
async def create_operation(
    operation: OperationCreate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
) -> OperationDetail:
    created = await operation_service.create_operation(
        db, organisation_id, operation, current_user_id=current_user.sub
    )
    return OperationDetail.model_validate(created)


@router.get(
    "/",
    response_model=list[OperationListItem],
    summary="Lister les actes",
    description="Actes du cabinet avec nombre d'implants et taux de réussite",
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_operations(
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[OperationListItem]:
    return await operation_service.list_operations(db, organisation_id)


@router.post(
    "/search",
    response_model=list[OperationListItem],
    summary="Filtrer les actes",
    responses=build_responses(422),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def search_operations(
    request: OperationSearchRequest,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[OperationListItem]:
    return await operation_service.search_operations(db, organisation_id, request.filters)


@router.post(
    "/bulk-delete",
    response_model=BulkDeleteResult,
    summary="Supprimer plusieurs actes",
    description="Retourne le résultat de la suppression pour chaque identifiant",
)
async def bulk_delete_operations(
    request: BulkDeleteRequest,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
) -> BulkDeleteResult:
    return await operation_service.bulk_delete_operations(
        db, organisation_id, request.ids, current_user_id=current_user.sub
    )


@router.get(
    "/{operation_id}",
    response_model=OperationDetail,
    summary="Récupérer un acte",
    description="Acte avec ses implants posés",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def get_operation(
    operation_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> OperationDetail:
    operation = await operation_service.get_operation(db, organisation_id, operation_id)
    return OperationDetail.model_validate(operation)


@router.patch(
    "/{operation_id}",
    response_model=OperationDetail,
    summary="Mettre à jour un acte",
    responses=build_responses(404),
)
async def update_operation(
    operation_id: int,
    operation_update: OperationUpdate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
) -> OperationDetail:
    operation = await operation_service.update_operation(
        db, organisation_id, operation_id, operation_update, current_user_id=current_user.sub
    )
    return OperationDetail.model_validate(operation)


@router.delete(
    "/{operation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Supprimer un acte",
    responses=build_responses(404),
)
async def delete_operation(
    operation_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
) -> None:
    await operation_service.delete_operation(
        db, organisation_id, operation_id, current_user_id=current_user.sub
    )


@router.post(
    "/{operation_id}/implants",
    response_model=SurgeryImplantResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Ajouter un implant posé à un acte",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*CLINICAL_ROLES))],
)
async def add_surgery_implant(
    operation_id: int,
    surgery_implant: SurgeryImplantCreate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> SurgeryImplantResponse:
    created = await surgery_implant_service.add_surgery_implant(
        db, organisation_id, operation_id, surgery_implant
    )
    return SurgeryImplantResponse.model_validate(created)
