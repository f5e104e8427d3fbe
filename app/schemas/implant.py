"""Schémas Pydantic pour le catalogue d'implants et les implants posés."""

from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from app.models.enums import (
    PositionImplant,
    StatutImplant,
    TypeImplant,
    TypeMiseEnCharge,
    TypeOs,
    TypeProthese,
)
from app.schemas.filters import FilterGroup
from app.schemas.utils import (
    BoneLossScore,
    FdiSite,
    ImplantId,
    IsqValue,
    Millimetres,
    Notes,
    NonEmptyStr,
    OperationId,
    PatientId,
    Percentage,
    SurgeryImplantId,
)

# --- Catalogue ---------------------------------------------------------------


class ImplantBase(BaseModel):
    type_implant: TypeImplant = TypeImplant.IMPLANT
    marque: NonEmptyStr = Field(..., max_length=100, examples=["Straumann"])
    reference_fabricant: str | None = Field(None, max_length=100, examples=["BLT 4.1x10"])
    diametre: Millimetres | None = None
    longueur: Millimetres | None = None
    lot: str | None = Field(None, max_length=100)
    notes: Notes | None = None
    is_favorite: bool = False
    type_prothese: TypeProthese | None = None
    type_pilier: str | None = Field(None, max_length=50)

    @model_validator(mode="after")
    def check_prothese_fields(self):
        if self.type_implant != TypeImplant.PROTHESE and self.type_prothese is not None:
            raise ValueError("type_prothese n'est valable que pour une prothèse")
        return self


class ImplantCreate(ImplantBase):
    pass


class ImplantUpdate(BaseModel):
    marque: NonEmptyStr | None = Field(None, max_length=100)
    reference_fabricant: str | None = Field(None, max_length=100)
    diametre: Millimetres | None = None
    longueur: Millimetres | None = None
    lot: str | None = Field(None, max_length=100)
    notes: Notes | None = None
    is_favorite: bool | None = None
    type_prothese: TypeProthese | None = None
    type_pilier: str | None = Field(None, max_length=50)


class ImplantResponse(ImplantBase):
    id: ImplantId
    created_at: datetime

    model_config = {"from_attributes": True}


class ImplantListItem(ImplantResponse):
    """Entrée du catalogue avec ses statistiques de pose."""

    pose_count: int = 0
    last_pose_date: date | None = None
    success_rate: Percentage | None = Field(
        None, description="Moyenne des scores de perte osseuse ramenés en pourcentage"
    )


class ImplantSearchRequest(BaseModel):
    type_implant: TypeImplant | None = None
    filters: FilterGroup | None = None


# --- Implants posés ----------------------------------------------------------


class SurgeryImplantInline(BaseModel):
    """Implant posé déclaré avec son acte (la date de pose est celle de l'acte)."""

    implant_id: ImplantId
    site_fdi: FdiSite
    position_implant: PositionImplant | None = None
    type_os: TypeOs | None = None
    mise_en_charge: TypeMiseEnCharge | None = None
    greffe_osseuse: bool = False
    type_greffe: str | None = Field(None, max_length=100)
    isq_pose: IsqValue | None = None
    notes: Notes | None = None


class SurgeryImplantCreate(SurgeryImplantInline):
    date_pose: date | None = Field(None, description="Par défaut la date de l'acte")
    statut: StatutImplant = StatutImplant.EN_SUIVI


class SurgeryImplantUpdate(BaseModel):
    """Mise à jour des mesures de suivi. Le statut passe par le changement de statut."""

    site_fdi: FdiSite | None = None
    position_implant: PositionImplant | None = None
    type_os: TypeOs | None = None
    mise_en_charge: TypeMiseEnCharge | None = None
    isq_pose: IsqValue | None = None
    isq_2m: IsqValue | None = None
    isq_3m: IsqValue | None = None
    isq_6m: IsqValue | None = None
    bone_loss_score: BoneLossScore | None = None
    notes: Notes | None = None


class SurgeryImplantResponse(BaseModel):
    id: SurgeryImplantId
    surgery_id: OperationId
    implant_id: ImplantId
    site_fdi: str
    position_implant: PositionImplant | None = None
    type_os: TypeOs | None = None
    mise_en_charge: TypeMiseEnCharge | None = None
    greffe_osseuse: bool = False
    type_greffe: str | None = None
    isq_pose: float | None = None
    isq_2m: float | None = None
    isq_3m: float | None = None
    isq_6m: float | None = None
    latest_isq: float | None = None
    bone_loss_score: int | None = None
    statut: StatutImplant
    date_pose: date
    notes: str | None = None
    implant: ImplantResponse
    created_at: datetime

    model_config = {"from_attributes": True}


class SurgeryImplantListItem(SurgeryImplantResponse):
    patient_id: PatientId
    patient_nom: str
    patient_prenom: str


class SurgeryImplantSearchRequest(BaseModel):
    filters: FilterGroup | None = None
