"""Endpoint API des motifs de changement de statut d'implant."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import STAFF_ROLES, get_current_organisation, require_roles
from app.models.enums import StatutImplant
from app.schemas.implant_status import StatusReasonResponse
from app.services import implant_status_service

router = APIRouter()


@router.get(
    "/",
    response_model=list[StatusReasonResponse],
    summary="Motifs de statut",
    description="Motifs système et motifs propres au cabinet, filtrables par statut",
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def list_status_reasons(
    status: StatutImplant | None = Query(None, description="Statut cible"),
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> list[StatusReasonResponse]:
    reasons = await implant_status_service.list_status_reasons(db, organisation_id, status)
    return [StatusReasonResponse.model_validate(r) for r in reasons]
