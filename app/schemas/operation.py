"""Schémas Pydantic pour les actes chirurgicaux."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from app.models.enums import (
    TypeChirurgieApproche,
    TypeChirurgieTemps,
    TypeIntervention,
    TypeMiseEnCharge,
)
from app.schemas.filters import FilterGroup
from app.schemas.implant import SurgeryImplantInline, SurgeryImplantResponse
from app.schemas.utils import Notes, OperationId, PatientId, Percentage


class OperationBase(BaseModel):
    date_operation: date = Field(..., examples=["2025-03-14"])
    type_intervention: TypeIntervention
    type_chirurgie_temps: TypeChirurgieTemps | None = None
    type_chirurgie_approche: TypeChirurgieApproche | None = None

    greffe_osseuse: bool = False
    type_greffe: str | None = Field(None, max_length=100)
    greffe_quantite: str | None = Field(None, max_length=100)
    greffe_localisation: str | None = Field(None, max_length=100)
    type_mise_en_charge: TypeMiseEnCharge | None = None

    conditions_medicales_preop: Notes | None = None
    notes_perop: Notes | None = None
    observations_postop: Notes | None = None


class OperationCreate(OperationBase):
    """Création d'un acte, avec éventuellement les implants posés pendant l'intervention."""

    patient_id: PatientId
    implants: list[SurgeryImplantInline] = Field(default_factory=list)

    @field_validator("date_operation")
    @classmethod
    def validate_date_operation(cls, v: date) -> date:
        if v.year < 1990:
            raise ValueError("La date d'opération doit être postérieure à 1990")
        return v


class OperationUpdate(BaseModel):
    date_operation: date | None = None
    type_intervention: TypeIntervention | None = None
    type_chirurgie_temps: TypeChirurgieTemps | None = None
    type_chirurgie_approche: TypeChirurgieApproche | None = None
    greffe_osseuse: bool | None = None
    type_greffe: str | None = Field(None, max_length=100)
    greffe_quantite: str | None = Field(None, max_length=100)
    greffe_localisation: str | None = Field(None, max_length=100)
    type_mise_en_charge: TypeMiseEnCharge | None = None
    conditions_medicales_preop: Notes | None = None
    notes_perop: Notes | None = None
    observations_postop: Notes | None = None


class OperationResponse(OperationBase):
    id: OperationId
    patient_id: PatientId
    created_at: datetime

    model_config = {"from_attributes": True}


class OperationDetail(OperationResponse):
    surgery_implants: list[SurgeryImplantResponse] = Field(default_factory=list)


class OperationListItem(BaseModel):
    """Ligne de la liste des actes, avec les agrégats filtrables."""

    id: OperationId
    patient_id: PatientId
    patient_nom: str
    patient_prenom: str
    date_operation: date
    type_intervention: TypeIntervention
    type_chirurgie_temps: TypeChirurgieTemps | None = None
    type_chirurgie_approche: TypeChirurgieApproche | None = None
    greffe_osseuse: bool = False
    implant_count: int = 0
    success_rate: Percentage | None = Field(
        None, description="Part des implants en succès ou en suivi; absent sans implant"
    )


class OperationSearchRequest(BaseModel):
    filters: FilterGroup | None = None


class BulkDeleteRequest(BaseModel):
    ids: list[OperationId] = Field(..., min_length=1, max_length=200)


class BulkDeleteItem(BaseModel):
    id: int
    success: bool
    error: str | None = None


class BulkDeleteResult(BaseModel):
    results: list[BulkDeleteItem]
    deleted: int
    failed: int
