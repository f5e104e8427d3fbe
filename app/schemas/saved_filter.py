"""Schémas Pydantic pour les filtres enregistrés."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.enums import SavedFilterPageType
from app.schemas.filters import FilterGroup
from app.schemas.utils import NonEmptyStr


class SavedFilterCreate(BaseModel):
    name: NonEmptyStr = Field(..., max_length=120, examples=["Implants à surveiller"])
    page_type: SavedFilterPageType
    filter_data: FilterGroup


class SavedFilterResponse(BaseModel):
    id: int
    name: str
    page_type: SavedFilterPageType
    filter_data: FilterGroup
    created_at: datetime
