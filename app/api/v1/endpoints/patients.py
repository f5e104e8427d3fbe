"""Endpoints API pour la gestion des patients.

Ce module définit les endpoints REST CRUD, la recherche avancée et les
vues rattachées à un patient (actes, implants posés, rendez-vous).
"""

from fastapi import APIRouter, Depends, Query, status
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
from app.schemas.appointment import AppointmentResponse
from app.schemas.implant import SurgeryImplantListItem
from app.schemas.operation import OperationListItem
from app.schemas.patient import (
    PatientCreate,
    PatientListItem,
    PatientResponse,
    PatientSearchRequest,
    PatientSearchResponse,
    PatientUpdate,
)
from app.services import (
    appointment_service,
    operation_service,
    patient_service,
    surgery_implant_service,
)

router = APIRouter()


@router.post(
    "/",
    response_model=PatientResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Créer un patient",
    description="Crée un nouveau dossier patient pour le cabinet",
)
async def create_patient(
    patient: PatientCreate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
) -> PatientResponse:
    created = await patient_service.create_patient(
        db, organisation_id, patient, current_user_id=current_user.sub
    )
    return PatientResponse.model_validate(created)


@router.get(
    "/",
    response_model=list[PatientListItem],
    summary="Lister les patients",
    description="Liste paginée des patients du cabinet, par ordre alphabétique",
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_patients(
    skip: int = Query(0, ge=0, description="Nombre d'éléments à sauter"),
    limit: int = Query(100, ge=1, le=500, description="Nombre d'éléments à retourner"),
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[PatientListItem]:
    patients, _ = await patient_service.list_patients(db, organisation_id, skip, limit)
    return [PatientListItem.model_validate(p) for p in patients]


@router.post(
    "/search",
    response_model=PatientSearchResponse,
    summary="Recherche avancée de patients",
    description=(
        "Filtre avancé (groupes AND/OR), tri et pagination. Les règles sans valeur "
        "sont ignorées; une règle invalide pour la page patients retourne 422."
    ),
    responses=build_responses(422),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def search_patients(
    request: PatientSearchRequest,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> PatientSearchResponse:
    return await patient_service.search_patients(db, organisation_id, request)


@router.get(
    "/{patient_id}",
    response_model=PatientResponse,
    summary="Récupérer un patient",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def get_patient(
    patient_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> PatientResponse:
    patient = await patient_service.get_patient(db, organisation_id, patient_id)
    return PatientResponse.model_validate(patient)


@router.patch(
    "/{patient_id}",
    response_model=PatientResponse,
    summary="Mettre à jour un patient",
    description="Mise à jour partielle: seuls les champs envoyés sont modifiés",
    responses=build_responses(404),
)
async def update_patient(
    patient_id: int,
    patient_update: PatientUpdate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
) -> PatientResponse:
    patient = await patient_service.update_patient(
        db, organisation_id, patient_id, patient_update, current_user_id=current_user.sub
    )
    return PatientResponse.model_validate(patient)


@router.delete(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Supprimer un patient",
    description="Supprime le patient avec ses actes, implants posés et rendez-vous",
    responses=build_responses(404),
)
async def delete_patient(
    patient_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
) -> None:
    await patient_service.delete_patient(
        db, organisation_id, patient_id, current_user_id=current_user.sub
    )


@router.get(
    "/{patient_id}/operations",
    response_model=list[OperationListItem],
    summary="Actes d'un patient",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_patient_operations(
    patient_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[OperationListItem]:
    await patient_service.get_patient(db, organisation_id, patient_id)
    return await operation_service.list_operations(db, organisation_id, patient_id=patient_id)


@router.get(
    "/{patient_id}/surgery-implants",
    response_model=list[SurgeryImplantListItem],
    summary="Implants posés d'un patient",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_patient_surgery_implants(
    patient_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[SurgeryImplantListItem]:
    await patient_service.get_patient(db, organisation_id, patient_id)
    return await surgery_implant_service.list_surgery_implants(
        db, organisation_id, patient_id=patient_id
    )


@router.get(
    "/{patient_id}/appointments",
    response_model=list[AppointmentResponse],
    summary="Rendez-vous d'un patient",
    description="Rendez-vous du patient, du plus récent au plus ancien",
    responses=build_responses(404),
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_patient_appointments(
    patient_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[AppointmentResponse]:
    await patient_service.get_patient(db, organisation_id, patient_id)
    appointments = await appointment_service.list_patient_appointments(
        db, organisation_id, patient_id
    )
    return [AppointmentResponse.model_validate(a) for a in appointments]
