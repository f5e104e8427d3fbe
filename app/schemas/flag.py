"""Schémas Pydantic pour les alertes cliniques."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.enums import FlagEntityType, FlagLevel, FlagType


class FlagResponse(BaseModel):
    id: int
    level: FlagLevel
    type: FlagType
    label: str
    description: str | None = None
    entity_type: FlagEntityType
    entity_id: int
    patient_id: int | None = None
    created_at: datetime
    resolved_at: datetime | None = None
    resolved_by: str | None = None

    model_config = {"from_attributes": True}


class FlagSummary(BaseModel):
    """Nombre d'alertes actives par niveau."""

    critical: int = 0
    warning: int = 0
    info: int = 0
    total: int = 0


class FlagDetectionResult(BaseModel):
    created: int = Field(0, description="Alertes nouvellement détectées")
    existing: int = Field(0, description="Alertes déjà ouvertes et toujours détectées")
    resolved: int = Field(0, description="Alertes résolues automatiquement")
