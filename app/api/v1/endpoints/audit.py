"""Endpoints API pour le journal d'audit."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import CLINICAL_ROLES, get_current_organisation, require_roles
from app.models.enums import AuditEntityType
from app.schemas.audit import AuditLogResponse
from app.services import audit_service

router = APIRouter(dependencies=[Depends(require_roles(*CLINICAL_ROLES))])


@router.get(
    "/recent",
    response_model=list[AuditLogResponse],
    summary="Activité récente du cabinet",
)
async def get_recent_activity(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[AuditLogResponse]:
    entries = await audit_service.get_recent_activity(db, organisation_id, limit=limit)
    return [AuditLogResponse.model_validate(e) for e in entries]


@router.get(
    "/{entity_type}/{entity_id}",
    response_model=list[AuditLogResponse],
    summary="Historique d'un dossier",
)
async def get_entity_history(
    entity_type: AuditEntityType,
    entity_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[AuditLogResponse]:
    entries = await audit_service.get_entity_history(db, organisation_id, entity_type, entity_id)
    return [AuditLogResponse.model_validate(e) for e in entries]
