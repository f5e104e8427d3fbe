"""Endpoint API des statistiques du tableau de bord."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import STAFF_ROLES, get_current_organisation, require_roles
from app.schemas.statistics import DashboardStatistics
from app.services import statistics_service

router = APIRouter()


@router.get(
    "/dashboard",
    response_model=DashboardStatistics,
    status_code=status.HTTP_200_OK,
    summary="Statistiques du tableau de bord",
    description="Agrégats du cabinet, recalculés au plus tard après CACHE_TTL_STATS secondes",
    dependencies=[Depends(require_roles(*STAFF_ROLES))],
)
async def get_dashboard_statistics(
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
) -> DashboardStatistics:
    """
    Récupère les statistiques du tableau de bord.

    - Totaux patients, actes et implants posés
    - Implants par statut et taux de succès / complication / échec
    - ISQ moyen à la pose
    - Volumes mensuels des 12 derniers mois
    - Alertes ouvertes par niveau
    """
    return await statistics_service.get_dashboard_statistics(db, organisation_id)
