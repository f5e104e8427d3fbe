"""Modèle SavedFilter: filtres avancés favoris d'un cabinet."""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class SavedFilter(Base):
    __tablename__ = "saved_filters"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    organisation_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    page_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    filter_data: Mapped[str] = mapped_column(Text, nullable=False, comment="FilterGroup JSON")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<SavedFilter(id={self.id}, page='{self.page_type}', name='{self.name}')>"
