"""Schémas Pydantic pour les suggestions et l'historique de statut d'implant."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from app.models.enums import StatutImplant
from app.schemas.utils import SurgeryImplantId


class SuggestionConfidence(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class IsqHistory(BaseModel):
    pose: float | None = None
    m2: float | None = None
    m3: float | None = None
    m6: float | None = None


class StatusSuggestion(BaseModel):
    status: StatutImplant
    confidence: SuggestionConfidence
    rule: str = Field(..., description="Règle ayant produit la suggestion, lisible")
    reason_code: str


class StatusSuggestionsResponse(BaseModel):
    implant_id: SurgeryImplantId
    current_status: StatutImplant
    latest_isq: float | None = None
    isq_history: IsqHistory
    suggestions: list[StatusSuggestion] = Field(default_factory=list)


class StatusReasonResponse(BaseModel):
    id: int
    status: StatutImplant
    code: str
    label: str
    is_system: bool

    model_config = {"from_attributes": True}


class StatusChangeRequest(BaseModel):
    status: StatutImplant
    reason_id: int | None = None
    reason_free_text: str | None = Field(None, max_length=2000)
    evidence: dict[str, Any] | None = None


class StatusHistoryResponse(BaseModel):
    id: int
    surgery_implant_id: SurgeryImplantId
    from_status: StatutImplant | None = None
    to_status: StatutImplant
    reason_id: int | None = None
    reason_label: str | None = None
    reason_free_text: str | None = None
    evidence: dict[str, Any] | None = None
    changed_by: str
    changed_at: datetime
