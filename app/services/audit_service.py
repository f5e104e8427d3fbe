"""
Journal d'audit des dossiers (patients, actes, rendez-vous).

`record` ajoute l'entrée à la session de l'écriture auditée: elle est
validée par le même commit, ou abandonnée avec lui.
"""

import json
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import AuditLog
from app.models.enums import AuditAction, AuditEntityType

logger = logging.getLogger(__name__)


def record(
    db: AsyncSession,
    organisation_id: str,
    entity_type: AuditEntityType,
    entity_id: int,
    action: AuditAction,
    user_id: str | None = None,
    details: str | None = None,
    changed_fields: list[str] | None = None,
) -> AuditLog:
    entry = AuditLog(
        organisation_id=organisation_id,
        user_id=user_id,
        entity_type=entity_type.value,
        entity_id=entity_id,
        action=action.value,
        details=details,
        changed_fields=json.dumps(changed_fields) if changed_fields else None,
    )
    db.add(entry)
    logger.debug(f"Audit {action.value} {entity_type.value}:{entity_id} par {user_id or 'système'}")
    return entry


async def get_entity_history(
    db: AsyncSession, organisation_id: str, entity_type: AuditEntityType, entity_id: int
) -> list[AuditLog]:
    """Historique d'un dossier, le plus récent d'abord."""
    result = await db.execute(
        select(AuditLog)
        .where(
            AuditLog.organisation_id == organisation_id,
            AuditLog.entity_type == entity_type.value,
            AuditLog.entity_id == entity_id,
        )
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    )
    return list(result.scalars().all())


async def get_recent_activity(
    db: AsyncSession, organisation_id: str, limit: int = 10
) -> list[AuditLog]:
    result = await db.execute(
        select(AuditLog)
        .where(AuditLog.organisation_id == organisation_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
