"""Service métier pour la consultation et la résolution des alertes."""

import logging
from datetime import UTC, datetime

from opentelemetry import trace
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import cache_delete, cache_get, cache_key_flag_summary, cache_set
from app.core.config import settings
from app.core.events import publish
from app.core.exceptions import FlagAlreadyResolvedError, FlagNotFoundError
from app.models import Flag
from app.models.enums import FlagEntityType, FlagLevel
from app.schemas.flag import FlagSummary

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

_LEVEL_ORDER = {FlagLevel.CRITICAL.value: 0, FlagLevel.WARNING.value: 1, FlagLevel.INFO.value: 2}


async def list_flags(
    db: AsyncSession,
    organisation_id: str,
    level: FlagLevel | None = None,
    entity_type: FlagEntityType | None = None,
    entity_id: int | None = None,
    patient_id: int | None = None,
    resolved: bool | None = False,
) -> list[Flag]:
    """
    Liste les alertes du cabinet, les plus graves puis les plus récentes d'abord.

    `resolved=None` retourne les alertes ouvertes et résolues.
    """
    with tracer.start_as_current_span("list_flags") as span:
        span.set_attribute("organisation.id", organisation_id)
        query = select(Flag).where(Flag.organisation_id == organisation_id)
        if level is not None:
            query = query.where(Flag.level == level.value)
        if entity_type is not None:
            query = query.where(Flag.entity_type == entity_type.value)
        if entity_id is not None:
            query = query.where(Flag.entity_id == entity_id)
        if patient_id is not None:
            query = query.where(Flag.patient_id == patient_id)
        if resolved is True:
            query = query.where(Flag.resolved_at.is_not(None))
        elif resolved is False:
            query = query.where(Flag.resolved_at.is_(None))

        result = await db.execute(query.order_by(Flag.created_at.desc()))
        flags = list(result.scalars().all())
        flags.sort(key=lambda f: _LEVEL_ORDER.get(f.level, 99))
        span.set_attribute("flags.count", len(flags))
        return flags


async def get_flag_summary(db: AsyncSession, organisation_id: str) -> FlagSummary:
    """Compteurs d'alertes ouvertes par niveau (mis en cache)."""
    cache_key = cache_key_flag_summary(organisation_id)
    cached = await cache_get(cache_key)
    if cached:
        return FlagSummary.model_validate_json(cached)

    result = await db.execute(
        select(Flag.level, func.count(Flag.id))
        .where(Flag.organisation_id == organisation_id, Flag.resolved_at.is_(None))
        .group_by(Flag.level)
    )
    counts = dict(result.all())
    summary = FlagSummary(
        critical=counts.get(FlagLevel.CRITICAL.value, 0),
        warning=counts.get(FlagLevel.WARNING.value, 0),
        info=counts.get(FlagLevel.INFO.value, 0),
    )
    summary.total = summary.critical + summary.warning + summary.info

    await cache_set(cache_key, summary.model_dump_json(), ttl=settings.CACHE_TTL_STATS)
    return summary


async def resolve_flag(
    db: AsyncSession,
    organisation_id: str,
    flag_id: int,
    resolved_by: str,
) -> Flag:
    """
    Résout manuellement une alerte.

    Raises:
        FlagNotFoundError: Alerte inconnue pour ce cabinet
        FlagAlreadyResolvedError: Alerte déjà résolue
    """
    with tracer.start_as_current_span("resolve_flag") as span:
        span.set_attribute("flag.id", flag_id)
        result = await db.execute(
            select(Flag).where(Flag.id == flag_id, Flag.organisation_id == organisation_id)
        )
        flag = result.scalar_one_or_none()
        if flag is None:
            raise FlagNotFoundError(detail=f"Alerte {flag_id} introuvable", flag_id=flag_id)
        if flag.resolved_at is not None:
            raise FlagAlreadyResolvedError(
                detail=f"L'alerte {flag_id} est déjà résolue", flag_id=flag_id
            )

        flag.resolved_at = datetime.now(UTC)
        flag.resolved_by = resolved_by
        await db.commit()
        await db.refresh(flag)
        logger.info(f"Alerte {flag.key} résolue par {resolved_by}")

        await cache_delete(cache_key_flag_summary(organisation_id))
        await publish(
            "cassius.flag.resolved",
            {"flag_id": flag.id, "organisation_id": organisation_id, "resolved_by": resolved_by},
        )
        return flag
