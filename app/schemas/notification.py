"""Schémas Pydantic pour les notifications in-app."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.enums import NotificationKind, NotificationSeverity


class NotificationResponse(BaseModel):
    id: int
    kind: NotificationKind
    type: str
    severity: NotificationSeverity
    title: str
    body: str | None = None
    entity_type: str | None = None
    entity_id: int | None = None
    patient_id: int | None = None
    recipient_id: str | None = Field(None, description="NULL: notification de tout le cabinet")
    created_at: datetime
    read_at: datetime | None = None

    model_config = {"from_attributes": True}


class NotificationPage(BaseModel):
    items: list[NotificationResponse]
    total: int = Field(..., description="Nombre total de notifications correspondant aux critères")


class UnreadCount(BaseModel):
    unread: int


class MarkAllReadResult(BaseModel):
    updated: int = Field(..., description="Notifications passées à lues")
