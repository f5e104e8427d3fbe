"""Endpoints API pour la boîte de réception in-app."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import STAFF_ROLES, User, get_current_organisation, require_roles
from app.models.enums import NotificationKind
from app.schemas import build_responses
from app.schemas.notification import (
    MarkAllReadResult,
    NotificationPage,
    NotificationResponse,
    UnreadCount,
)
from app.services import notification_service

router = APIRouter()


@router.get(
    "/",
    response_model=NotificationPage,
    summary="Lister mes notifications",
    description="Notifications non archivées de l'utilisateur et du cabinet, les plus récentes d'abord",
)
async def list_notifications(
    kind: NotificationKind | None = Query(None),
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
) -> NotificationPage:
    items, total = await notification_service.list_notifications(
        db, organisation_id, current_user.sub, kind=kind, unread_only=unread_only, page=page
    )
    return NotificationPage(
        items=[NotificationResponse.model_validate(n) for n in items], total=total
    )


@router.get("/unread-count", response_model=UnreadCount, summary="Nombre de notifications non lues")
async def get_unread_count(
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
) -> UnreadCount:
    count = await notification_service.get_unread_count(db, organisation_id, current_user.sub)
    return UnreadCount(unread=count)


@router.post("/read-all", response_model=MarkAllReadResult, summary="Tout marquer comme lu")
async def mark_all_as_read(
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
) -> MarkAllReadResult:
    updated = await notification_service.mark_all_as_read(db, organisation_id, current_user.sub)
    return MarkAllReadResult(updated=updated)


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Marquer comme lue",
    responses=build_responses(404),
)
async def mark_as_read(
    notification_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
) -> NotificationResponse:
    notification = await notification_service.mark_as_read(
        db, organisation_id, current_user.sub, notification_id
    )
    return NotificationResponse.model_validate(notification)


@router.post(
    "/{notification_id}/unread",
    response_model=NotificationResponse,
    summary="Marquer comme non lue",
    responses=build_responses(404),
)
async def mark_as_unread(
    notification_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
) -> NotificationResponse:
    notification = await notification_service.mark_as_unread(
        db, organisation_id, current_user.sub, notification_id
    )
    return NotificationResponse.model_validate(notification)


@router.post(
    "/{notification_id}/archive",
    response_model=NotificationResponse,
    summary="Archiver une notification",
    responses=build_responses(404),
)
async def archive_notification(
    notification_id: int,
    db: AsyncSession = Depends(get_session),
    organisation_id: str = Depends(get_current_organisation),
    current_user: User = Depends(require_roles(*STAFF_ROLES)),
) -> NotificationResponse:
    notification = await notification_service.archive_notification(
        db, organisation_id, current_user.sub, notification_id
    )
    return NotificationResponse.model_validate(notification)
