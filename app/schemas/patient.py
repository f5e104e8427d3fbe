"""Schémas Pydantic pour Patient."""

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from app.models.enums import PatientStatut, Sexe
from app.schemas.filters import FilterGroup, SearchPagination, SearchSort
from app.schemas.utils import Email, NonEmptyStr, PatientId


def _check_birth_date(v: date | None) -> date | None:
    if v is None:
        return v
    if v > date.today():
        raise ValueError("La date de naissance ne peut pas être dans le futur")
    if v.year < 1900:
        raise ValueError("La date de naissance doit être après 1900")
    return v


class PatientBase(BaseModel):
    """Schéma de base partagé pour Patient."""

    nom: NonEmptyStr = Field(..., max_length=100, examples=["Martin"])
    prenom: NonEmptyStr = Field(..., max_length=100, examples=["Claire"])
    date_naissance: date | None = Field(None, examples=["1968-04-12"])
    sexe: Sexe | None = None

    telephone: str | None = Field(None, max_length=30)
    email: Email | None = None
    adresse: str | None = Field(None, max_length=255)
    code_postal: str | None = Field(None, max_length=20)
    ville: str | None = Field(None, max_length=100)
    pays: str = Field("France", max_length=100)

    allergies: str | None = Field(None, max_length=5000)
    traitement: str | None = Field(None, max_length=5000)
    conditions: str | None = Field(None, max_length=5000)
    contexte_medical: str | None = Field(None, max_length=5000)

    statut: PatientStatut = PatientStatut.ACTIF

    @field_validator("date_naissance")
    @classmethod
    def validate_date_naissance(cls, v: date | None) -> date | None:
        return _check_birth_date(v)


class PatientCreate(PatientBase):
    pass


class PatientUpdate(BaseModel):
    """Mise à jour partielle: seuls les champs envoyés sont modifiés."""

    nom: NonEmptyStr | None = Field(None, max_length=100)
    prenom: NonEmptyStr | None = Field(None, max_length=100)
    date_naissance: date | None = None
    sexe: Sexe | None = None
    telephone: str | None = Field(None, max_length=30)
    email: Email | None = None
    adresse: str | None = Field(None, max_length=255)
    code_postal: str | None = Field(None, max_length=20)
    ville: str | None = Field(None, max_length=100)
    pays: str | None = Field(None, max_length=100)
    allergies: str | None = Field(None, max_length=5000)
    traitement: str | None = Field(None, max_length=5000)
    conditions: str | None = Field(None, max_length=5000)
    contexte_medical: str | None = Field(None, max_length=5000)
    statut: PatientStatut | None = None

    @field_validator("date_naissance")
    @classmethod
    def validate_date_naissance(cls, v: date | None) -> date | None:
        return _check_birth_date(v)


class PatientResponse(PatientBase):
    id: PatientId
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PatientListItem(BaseModel):
    id: PatientId
    nom: str
    prenom: str
    date_naissance: date | None
    sexe: Sexe | None
    telephone: str | None
    statut: PatientStatut
    created_at: datetime

    model_config = {"from_attributes": True}


class PatientSearchRequest(BaseModel):
    """Recherche avancée: filtres, tri et pagination."""

    pagination: SearchPagination = Field(default_factory=SearchPagination)
    sort: SearchSort = Field(default_factory=SearchSort)
    filters: FilterGroup | None = None


class PatientSearchResponse(BaseModel):
    patients: list[PatientListItem]
    implant_counts: dict[int, int] = Field(
        default_factory=dict, description="Nombre d'implants posés par patient de la page"
    )
    last_visits: dict[int, date] = Field(
        default_factory=dict, description="Date du dernier rendez-vous par patient de la page"
    )
    total: int
    page: int
    page_size: int
    total_pages: int
