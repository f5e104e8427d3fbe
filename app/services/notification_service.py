"""
Service métier des notifications in-app.

Une notification est adressée à un utilisateur (`recipient_id`) ou à tout
le cabinet (`recipient_id` NULL); l'état lu/archivé est porté par la ligne.
La détection des alertes notifie les nouvelles alertes cliniques via
`notify_flags`; une même `dedupe_key` n'est pas répétée au même
destinataire pendant NOTIFICATION_DEDUPE_MINUTES.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from opentelemetry import trace
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.events import publish
from app.core.exceptions import NotificationNotFoundError
from app.models import Flag, Notification
from app.models.enums import FlagType, NotificationKind, NotificationSeverity

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class FlagNotification:
    kind: NotificationKind
    severity: NotificationSeverity
    title: str


# Alertes qui méritent une notification; les autres restent dans la liste des alertes
FLAG_NOTIFICATIONS: dict[FlagType, FlagNotification] = {
    FlagType.ISQ_LOW: FlagNotification(
        NotificationKind.ALERT, NotificationSeverity.CRITICAL, "ISQ bas détecté"
    ),
    FlagType.ISQ_DECLINING: FlagNotification(
        NotificationKind.ALERT,
        NotificationSeverity.WARNING,
        "Baisse significative de stabilité implantaire",
    ),
    FlagType.NO_POSTOP_FOLLOWUP: FlagNotification(
        NotificationKind.REMINDER, NotificationSeverity.WARNING, "Suivi post-opératoire manquant"
    ),
    FlagType.NO_RECENT_APPOINTMENT: FlagNotification(
        NotificationKind.REMINDER, NotificationSeverity.INFO, "Patient sans visite récente"
    ),
}


def _visible_to(organisation_id: str, user_id: str):
    return (
        Notification.organisation_id == organisation_id,
        or_(Notification.recipient_id == user_id, Notification.recipient_id.is_(None)),
    )


async def is_duplicate(
    db: AsyncSession,
    organisation_id: str,
    dedupe_key: str,
    recipient_id: str | None,
    now: datetime,
) -> bool:
    cooldown_start = now - timedelta(minutes=settings.NOTIFICATION_DEDUPE_MINUTES)
    recipient = (
        Notification.recipient_id.is_(None)
        if recipient_id is None
        else Notification.recipient_id == recipient_id
    )
    result = await db.execute(
        select(Notification.id)
        .where(
            Notification.organisation_id == organisation_id,
            Notification.dedupe_key == dedupe_key,
            recipient,
            Notification.created_at >= cooldown_start,
        )
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def create_notification(
    db: AsyncSession,
    organisation_id: str,
    *,
    kind: NotificationKind,
    type: str,
    title: str,
    severity: NotificationSeverity = NotificationSeverity.INFO,
    body: str | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    patient_id: int | None = None,
    recipient_id: str | None = None,
    dedupe_key: str | None = None,
    now: datetime | None = None,
) -> Notification | None:
    """
    Ajoute une notification à la session; le commit revient à l'appelant.

    Returns:
        La notification, ou None si `dedupe_key` a déjà été notifiée
        récemment au même destinataire
    """
    now = now or datetime.now(UTC)
    if dedupe_key and await is_duplicate(db, organisation_id, dedupe_key, recipient_id, now):
        logger.debug(f"Notification ignorée (doublon): {dedupe_key}")
        return None

    notification = Notification(
        organisation_id=organisation_id,
        recipient_id=recipient_id,
        kind=kind.value,
        type=type,
        severity=severity.value,
        title=title,
        body=body,
        entity_type=entity_type,
        entity_id=entity_id,
        patient_id=patient_id,
        dedupe_key=dedupe_key,
    )
    db.add(notification)
    return notification


async def notify_flags(
    db: AsyncSession, organisation_id: str, flags: list[Flag], now: datetime | None = None
) -> list[Notification]:
    """Notifie le cabinet des alertes cliniques nouvellement créées."""
    created: list[Notification] = []
    for flag in flags:
        template = FLAG_NOTIFICATIONS.get(FlagType(flag.type))
        if template is None:
            continue
        notification = await create_notification(
            db,
            organisation_id,
            kind=template.kind,
            type=flag.type,
            severity=template.severity,
            title=template.title,
            body=flag.description or flag.label,
            entity_type=flag.entity_type,
            entity_id=flag.entity_id,
            patient_id=flag.patient_id,
            dedupe_key=flag.key,
            now=now,
        )
        if notification is not None:
            created.append(notification)

    if created:
        logger.info(f"{len(created)} notification(s) d'alerte pour le cabinet {organisation_id}")
    return created


async def list_notifications(
    db: AsyncSession,
    organisation_id: str,
    user_id: str,
    kind: NotificationKind | None = None,
    unread_only: bool = False,
    page: int = 1,
    page_size: int | None = None,
) -> tuple[list[Notification], int]:
    """Notifications non archivées de l'utilisateur, les plus récentes d'abord."""
    page_size = page_size or settings.NOTIFICATION_PAGE_SIZE
    with tracer.start_as_current_span("list_notifications") as span:
        span.set_attribute("organisation.id", organisation_id)
        conditions = [*_visible_to(organisation_id, user_id), Notification.archived_at.is_(None)]
        if kind is not None:
            conditions.append(Notification.kind == kind.value)
        if unread_only:
            conditions.append(Notification.read_at.is_(None))

        total = await db.scalar(select(func.count(Notification.id)).where(*conditions))
        result = await db.execute(
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        return list(result.scalars().all()), total or 0


async def get_unread_count(db: AsyncSession, organisation_id: str, user_id: str) -> int:
    count = await db.scalar(
        select(func.count(Notification.id)).where(
            *_visible_to(organisation_id, user_id),
            Notification.read_at.is_(None),
            Notification.archived_at.is_(None),
        )
    )
    return count or 0


async def _get(
    db: AsyncSession, organisation_id: str, user_id: str, notification_id: int
) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id, *_visible_to(organisation_id, user_id)
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotificationNotFoundError(
            detail=f"Notification {notification_id} introuvable", notification_id=notification_id
        )
    return notification


async def mark_as_read(
    db: AsyncSession, organisation_id: str, user_id: str, notification_id: int
) -> Notification:
    notification = await _get(db, organisation_id, user_id, notification_id)
    if notification.read_at is None:
        notification.read_at = datetime.now(UTC)
        await db.commit()
        await db.refresh(notification)
    return notification


async def mark_as_unread(
    db: AsyncSession, organisation_id: str, user_id: str, notification_id: int
) -> Notification:
    notification = await _get(db, organisation_id, user_id, notification_id)
    notification.read_at = None
    await db.commit()
    await db.refresh(notification)
    return notification


async def mark_all_as_read(db: AsyncSession, organisation_id: str, user_id: str) -> int:
    """Retourne le nombre de notifications passées à lues."""
    result = await db.execute(
        update(Notification)
        .where(
            *_visible_to(organisation_id, user_id),
            Notification.read_at.is_(None),
            Notification.archived_at.is_(None),
        )
        .values(read_at=datetime.now(UTC))
    )
    await db.commit()
    logger.info(f"{result.rowcount} notification(s) marquée(s) lue(s) par {user_id}")
    return result.rowcount


async def archive_notification(
    db: AsyncSession, organisation_id: str, user_id: str, notification_id: int
) -> Notification:
    notification = await _get(db, organisation_id, user_id, notification_id)
    notification.archived_at = datetime.now(UTC)
    await db.commit()
    await db.refresh(notification)
    await publish(
        "cassius.notification.archived",
        {
            "notification_id": notification.id,
            "organisation_id": organisation_id,
            "archived_by": user_id,
        },
    )
    return notification
