"""Annotations Pydantic réutilisables pour validation.

Ce module centralise les types annotés pour assurer la cohérence
de la validation à travers tous les schémas du service.
"""

from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, EmailStr, Field, StringConstraints

PositiveInt = Annotated[int, Field(gt=0, description="Entier positif")]
NonNegativeInt = Annotated[int, Field(ge=0, description="Entier non-négatif")]

NonEmptyStr = Annotated[str, StringConstraints(min_length=1, strip_whitespace=True)]

# Identifiants
PatientId = Annotated[int, Field(gt=0, description="ID unique du patient")]
OperationId = Annotated[int, Field(gt=0, description="ID unique de l'acte")]
ImplantId = Annotated[int, Field(gt=0, description="ID de l'implant du catalogue")]
SurgeryImplantId = Annotated[int, Field(gt=0, description="ID de l'implant posé")]

Email = Annotated[EmailStr, Field(description="Adresse email valide")]
Notes = Annotated[str, Field(max_length=5000, description="Notes en texte libre")]

# Site dentaire FDI: quadrant permanent 1-4, dent 1-8
FdiSite = Annotated[
    str,
    StringConstraints(pattern=r"^[1-4][1-8]$", strip_whitespace=True),
    Field(description="Site FDI de la dent (11 à 48)", examples=["36", "21"]),
]

IsqValue = Annotated[float, Field(ge=0, le=100, description="Mesure ISQ (0-100)")]

# Dimensions d'implant en millimètres
Millimetres = Annotated[float, Field(gt=0, le=30, description="Dimension en mm")]

BoneLossScore = Annotated[
    int, Field(ge=0, le=5, description="Perte osseuse radiologique: 0 (aucune) à 5 (sévère)")
]

Percentage = Annotated[float, Field(ge=0, le=100, description="Pourcentage")]


def as_utc(value: datetime) -> datetime:
    """Une date-heure sans fuseau est interprétée en UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


UtcDatetime = Annotated[
    datetime,
    AfterValidator(as_utc),
    Field(description="Date-heure ISO 8601; UTC si aucun fuseau n'est indiqué"),
]
