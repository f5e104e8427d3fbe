"""Schémas Pydantic pour le journal d'audit."""

import json
from datetime import datetime

from pydantic import BaseModel, field_validator

from app.models.enums import AuditAction, AuditEntityType


class AuditLogResponse(BaseModel):
    id: int
    user_id: str | None = None
    entity_type: AuditEntityType
    entity_id: int
    action: AuditAction
    details: str | None = None
    changed_fields: list[str] = []
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("changed_fields", mode="before")
    @classmethod
    def parse_changed_fields(cls, value):
        # Stocké en JSON texte
        if value is None:
            return []
        if isinstance(value, str):
            return json.loads(value)
        return value
