"""Schémas Pydantic pour les rendez-vous."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from app.models.enums import AppointmentStatus, AppointmentType
from app.schemas.utils import (
    IsqValue,
    NonEmptyStr,
    OperationId,
    PatientId,
    SurgeryImplantId,
    UtcDatetime,
)


class IsqMeasurement(BaseModel):
    """
    Mesure ISQ prise pendant la visite.

    Soit une valeur unique `isq`, soit les trois mesures directionnelles
    (vestibulaire, mésiale, distale) dont la moyenne pondérée est calculée
    par le service.
    """

    isq: IsqValue | None = None
    isq_vestibulaire: IsqValue | None = None
    isq_mesial: IsqValue | None = None
    isq_distal: IsqValue | None = None

    @model_validator(mode="after")
    def check_complete(self):
        directional = (self.isq_vestibulaire, self.isq_mesial, self.isq_distal)
        given = [v for v in directional if v is not None]
        if given and len(given) != 3:
            raise ValueError("Les trois mesures directionnelles sont requises ensemble")
        if self.isq is None and not given:
            raise ValueError("Aucune mesure ISQ fournie")
        return self


def _check_range(date_start: datetime | None, date_end: datetime | None) -> None:
    if date_start and date_end and date_end < date_start:
        raise ValueError("La fin du rendez-vous précède son début")


class AppointmentCreate(BaseModel):
    patient_id: PatientId
    operation_id: OperationId | None = None
    surgery_implant_id: SurgeryImplantId | None = None
    type: AppointmentType
    title: NonEmptyStr = Field(..., max_length=255)
    description: str | None = Field(None, max_length=5000)
    date_start: UtcDatetime
    date_end: UtcDatetime | None = None

    @model_validator(mode="after")
    def check_dates(self):
        _check_range(self.date_start, self.date_end)
        return self


class AppointmentUpdate(BaseModel):
    operation_id: OperationId | None = None
    surgery_implant_id: SurgeryImplantId | None = None
    type: AppointmentType | None = None
    title: NonEmptyStr | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=5000)
    date_start: UtcDatetime | None = None
    date_end: UtcDatetime | None = None

    @model_validator(mode="after")
    def check_dates(self):
        _check_range(self.date_start, self.date_end)
        return self


class AppointmentComplete(BaseModel):
    measurement: IsqMeasurement | None = None


class AppointmentCancel(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class AppointmentResponse(BaseModel):
    id: int
    patient_id: PatientId
    operation_id: OperationId | None = None
    surgery_implant_id: SurgeryImplantId | None = None
    type: AppointmentType
    status: AppointmentStatus
    title: str
    description: str | None = None
    date_start: datetime
    date_end: datetime | None = None
    isq: float | None = None
    isq_vestibulaire: float | None = None
    isq_mesial: float | None = None
    isq_distal: float | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancel_reason: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
