"""Endpoints API pour les alertes cliniques."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import (
    CLINICAL_ROLES,
    ROLE_ADMIN,
    STAFF_ROLES,
    User,
    get_current_organisation,
    require_roles,
)
from app.models.enums import FlagEntityType, FlagLevel
from app.schemas import build_responses
from app.schemas.flag import FlagDetectionResult, FlagResponse, FlagSummary
from app.services import flag_engine, flag_service

router = APIRouter()


@router.get(
    "/",
    response_model=list[FlagResponse],
    summary="Lister les alertes",
    description="Par défaut les alertes ouvertes; resolved=true pour les résolues",
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_flags(
    level: FlagLevel | None = Query(None),
    entity_type: FlagEntityType | None = Query(None),
    entity_id: int | None = Query(None),
    patient_id: int | None = Query(None),
    resolved: bool = Query(False),
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[FlagResponse]:
    flags = await flag_service.list_flags(
        db,
        organisation_id,
        level=level,
        entity_type=entity_type,
        entity_id=entity_id,
        patient_id=patient_id,
        resolved=resolved,
    )
    return [FlagResponse.model_validate(f) for f in flags]


@router.get(
    "/summary",
    response_model=FlagSummary,
    summary="Nombre d'alertes ouvertes par niveau",
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def get_flag_summary(
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> FlagSummary:
    return await flag_service.get_flag_summary(db, organisation_id)


@router.post(
    "/detect",
    response_model=FlagDetectionResult,
    summary="Lancer la détection des alertes",
    description="Détecte les alertes du cabinet et résout celles qui ne sont plus d'actualité",
    dependencies=[Depends(require_roles(ROLE_ADMIN))],
)
async def run_detection(
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> FlagDetectionResult:
    return await flag_engine.run_flag_detection(db, organisation_id)


@router.post(
    "/{flag_id}/resolve",
    response_model=FlagResponse,
    summary="Résoudre une alerte",
    responses=build_responses(404, 409),
)
async def resolve_flag(
    flag_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*CLINICAL_ROLES)),
) -> FlagResponse:
    flag = await flag_service.resolve_flag(db, organisation_id, flag_id, current_user.sub)
    return FlagResponse.model_validate(flag)
