"""Schémas de la recherche globale (barre de recherche)."""

from datetime import date

from pydantic import BaseModel, Field


class PatientHit(BaseModel):
    id: int
    nom: str
    prenom: str
    date_naissance: date | None = None


class OperationHit(BaseModel):
    id: int
    patient_id: int
    patient_nom: str
    patient_prenom: str
    type_intervention: str
    date_operation: date


class SurgeryImplantHit(BaseModel):
    id: int
    patient_id: int
    patient_nom: str
    patient_prenom: str
    marque: str
    reference_fabricant: str | None = None
    site_fdi: str
    date_pose: date


class GlobalSearchResponse(BaseModel):
    query: str
    patients: list[PatientHit] = Field(default_factory=list)
    operations: list[OperationHit] = Field(default_factory=list)
    surgery_implants: list[SurgeryImplantHit] = Field(default_factory=list)
