"""Service métier pour les statistiques du tableau de bord.

Les agrégats d'un cabinet sont mis en cache (CACHE_TTL_STATS) et la clé
est supprimée à chaque écriture clinique (patient, acte, implant posé).
"""

import logging
from datetime import UTC, date, datetime

from opentelemetry import trace
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import cache_get, cache_key_stats_dashboard, cache_set
from app.core.config import settings
from app.filters.values import subtract_months
from app.models import Flag, Operation, Patient, SurgeryImplant
from app.models.enums import PatientStatut, StatutImplant
from app.schemas.statistics import DashboardStatistics, MonthlyCount

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

MONTHS_SHOWN = 12


def last_months(today: date, count: int = MONTHS_SHOWN) -> list[str]:
    """Mois YYYY-MM du plus ancien au mois courant."""
    first_of_month = today.replace(day=1)
    return [
        subtract_months(first_of_month, offset).strftime("%Y-%m")
        for offset in range(count - 1, -1, -1)
    ]


def rate(part: int, total: int) -> float | None:
    if not total:
        return None
    return round(part / total * 100, 1)


async def _count(db: AsyncSession, query) -> int:
    return (await db.execute(query)).scalar_one()


async def _monthly_counts(db: AsyncSession, column, organisation_id_column, organisation_id, since):
    month = func.to_char(column, "YYYY-MM")
    result = await db.execute(
        select(month, func.count())
        .where(organisation_id_column == organisation_id, column >= since)
        .group_by(month)
    )
    return dict(result.all())


async def compute_dashboard_statistics(
    db: AsyncSession, organisation_id: str, today: date | None = None
) -> DashboardStatistics:
    """Calcule les statistiques du cabinet sans passer par le cache."""
    today = today or date.today()
    with tracer.start_as_current_span("compute_dashboard_statistics") as span:
        span.set_attribute("organisation.id", organisation_id)

        total_patients = await _count(
            db, select(func.count(Patient.id)).where(Patient.organisation_id == organisation_id)
        )
        active_patients = await _count(
            db,
            select(func.count(Patient.id)).where(
                Patient.organisation_id == organisation_id,
                Patient.statut == PatientStatut.ACTIF.value,
            ),
        )
        total_operations = await _count(
            db, select(func.count(Operation.id)).where(Operation.organisation_id == organisation_id)
        )

        status_rows = await db.execute(
            select(SurgeryImplant.statut, func.count(SurgeryImplant.id))
            .where(SurgeryImplant.organisation_id == organisation_id)
            .group_by(SurgeryImplant.statut)
        )
        implants_by_status = {status.value: 0 for status in StatutImplant}
        implants_by_status.update(dict(status_rows.all()))
        total_implants = sum(implants_by_status.values())

        mean_isq = (
            await db.execute(
                select(func.avg(SurgeryImplant.isq_pose)).where(
                    SurgeryImplant.organisation_id == organisation_id
                )
            )
        ).scalar_one()

        months = last_months(today)
        since = date.fromisoformat(f"{months[0]}-01")
        operations_by_month = await _monthly_counts(
            db, Operation.date_operation, Operation.organisation_id, organisation_id, since
        )
        implants_by_month = await _monthly_counts(
            db, SurgeryImplant.date_pose, SurgeryImplant.organisation_id, organisation_id, since
        )

        flag_rows = await db.execute(
            select(Flag.level, func.count(Flag.id))
            .where(Flag.organisation_id == organisation_id, Flag.resolved_at.is_(None))
            .group_by(Flag.level)
        )

        return DashboardStatistics(
            total_patients=total_patients,
            active_patients=active_patients,
            total_operations=total_operations,
            total_implants=total_implants,
            implants_by_status=implants_by_status,
            success_rate=rate(implants_by_status[StatutImplant.SUCCES.value], total_implants),
            complication_rate=rate(
                implants_by_status[StatutImplant.COMPLICATION.value], total_implants
            ),
            failure_rate=rate(implants_by_status[StatutImplant.ECHEC.value], total_implants),
            mean_isq_pose=round(float(mean_isq), 1) if mean_isq is not None else None,
            monthly=[
                MonthlyCount(
                    month=month,
                    operations=operations_by_month.get(month, 0),
                    implants=implants_by_month.get(month, 0),
                )
                for month in months
            ],
            active_flags=dict(flag_rows.all()),
            last_updated=datetime.now(UTC),
        )


async def get_dashboard_statistics(db: AsyncSession, organisation_id: str) -> DashboardStatistics:
    """
    Statistiques du tableau de bord (avec cache).

    Pattern Cache-Aside:
    1. Vérifier le cache Redis
    2. Si miss: calculer depuis PostgreSQL
    3. Mettre en cache (TTL CACHE_TTL_STATS)
    """
    cache_key = cache_key_stats_dashboard(organisation_id)
    cached = await cache_get(cache_key)
    if cached:
        return DashboardStatistics.model_validate_json(cached)

    stats = await compute_dashboard_statistics(db, organisation_id)
    await cache_set(cache_key, stats.model_dump_json(), ttl=settings.CACHE_TTL_STATS)
    return stats
