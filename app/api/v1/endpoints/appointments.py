"""Endpoints API pour les rendez-vous."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import (
    STAFF_ROLES,
    User,
    get_current_organisation,
    get_current_user,
    require_roles,
)
from app.models.enums import AppointmentStatus
from app.schemas import build_responses
from app.schemas.appointment import (
    AppointmentCancel,
    AppointmentComplete,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
)
from app.services import appointment_service

router = APIRouter(dependencies=[Depends(require_roles(*STAFF_ROLES))])


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Planifier un rendez-vous",
    description="Rendez-vous d'un patient, éventuellement lié à un acte et à un implant posé",
    responses=build_responses(404),
)
async def create_appointment(
    appointment: AppointmentCreate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(get_current_user),
) -> AppointmentResponse:
    created = await appointment_service.create_appointment(
        db, organisation_id, appointment, current_user_id=current_user.sub
    )
    return AppointmentResponse.model_validate(created)


@router.get(
    "/calendar",
    response_model=list[AppointmentResponse],
    summary="Rendez-vous d'une période",
    description="Rendez-vous dont le début est dans [start, end)",
)
async def list_calendar(
    start: datetime = Query(..., description="Début de la période (inclus)"),
    end: datetime = Query(..., description="Fin de la période (exclue)"),
    appointment_status: AppointmentStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[AppointmentResponse]:
    if end <= start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="La fin de la période doit suivre son début",
        )
    appointments = await appointment_service.list_calendar(
        db, organisation_id, start, end, appointment_status
    )
    return [AppointmentResponse.model_validate(a) for a in appointments]


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Récupérer un rendez-vous",
    responses=build_responses(404),
)
async def get_appointment(
    appointment_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> AppointmentResponse:
    appointment = await appointment_service.get_appointment(db, organisation_id, appointment_id)
    return AppointmentResponse.model_validate(appointment)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Mettre à jour un rendez-vous",
    responses=build_responses(404, 409),
)
async def update_appointment(
    appointment_id: int,
    appointment_update: AppointmentUpdate,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(get_current_user),
) -> AppointmentResponse:
    appointment = await appointment_service.update_appointment(
        db, organisation_id, appointment_id, appointment_update, current_user_id=current_user.sub
    )
    return AppointmentResponse.model_validate(appointment)


@router.post(
    "/{appointment_id}/complete",
    response_model=AppointmentResponse,
    summary="Marquer un rendez-vous comme réalisé",
    description="Enregistre la mesure ISQ éventuelle (valeur unique ou trois mesures directionnelles)",
    responses=build_responses(404, 409),
)
async def complete_appointment(
    appointment_id: int,
    request: AppointmentComplete,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(get_current_user),
) -> AppointmentResponse:
    appointment = await appointment_service.complete_appointment(
        db, organisation_id, appointment_id, request, current_user_id=current_user.sub
    )
    return AppointmentResponse.model_validate(appointment)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    summary="Annuler un rendez-vous",
    responses=build_responses(404, 409),
)
async def cancel_appointment(
    appointment_id: int,
    request: AppointmentCancel,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(get_current_user),
) -> AppointmentResponse:
    appointment = await appointment_service.cancel_appointment(
        db, organisation_id, appointment_id, request, current_user_id=current_user.sub
    )
    return AppointmentResponse.model_validate(appointment)
