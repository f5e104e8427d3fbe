"""Schémas communs aux recherches filtrées."""

from typing import Literal

from pydantic import BaseModel, Field

from app.filters import FieldSpec, FilterGroup, FilterOperator, FilterRule, GroupOperator


class SearchPagination(BaseModel):
    page: int = Field(1, ge=1, description="Numéro de page (1-indexé)")
    page_size: int = Field(25, ge=1, le=200, description="Nombre d'éléments par page")


class SearchSort(BaseModel):
    field: str = Field("nom", description="Champ de tri")
    direction: Literal["asc", "desc"] = "asc"


class FilterFieldOption(BaseModel):
    value: str
    label: str


class FilterFieldResponse(BaseModel):
    """Champ filtrable tel que présenté dans le tiroir de filtres."""

    field: str
    label: str
    type: str
    operators: list[FilterOperator]
    options: list[FilterFieldOption] = Field(default_factory=list)
    category: str | None = None

    @classmethod
    def from_spec(cls, spec: FieldSpec) -> "FilterFieldResponse":
        return cls(
            field=spec.name,
            label=spec.label,
            type=spec.type.value,
            operators=list(spec.operators),
            options=[FilterFieldOption(value=v, label=label) for v, label in spec.options],
            category=spec.category,
        )


class FilterCombineRequest(BaseModel):
    current: FilterGroup | None = Field(None, description="Filtre actuellement appliqué")
    mode: GroupOperator | None = Field(
        None, description="AND/OR pour combiner; absent pour remplacer le filtre courant"
    )


class FilterPreview(BaseModel):
    """Filtre nettoyé tel qu'il sera appliqué."""

    filters: FilterGroup | None
    rule_count: int


class FilterRetargetRequest(BaseModel):
    """Changement de champ d'une règle du tiroir."""

    rule: FilterRule
    field: str = Field(..., description="Nouveau champ de la règle")


__all__ = [
    "FilterCombineRequest",
    "FilterFieldResponse",
    "FilterGroup",
    "FilterPreview",
    "FilterRetargetRequest",
    "SearchPagination",
    "SearchSort",
]
