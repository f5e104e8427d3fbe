"""Modèle Flag: alerte clinique ou qualité de données."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Flag(Base):
    """
    Alerte générée par le moteur de détection.

    Une alerte est identifiée par (type, entity_type, entity_id); tant
    qu'elle n'est pas résolue, la détection ne la recrée pas.
    """

    __tablename__ = "flags"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    organisation_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    level: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    patient_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True, comment="Patient concerné, pour l'affichage"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[str | None] = mapped_column(
        String(255), nullable=True, comment="Keycloak user ID; NULL si résolue automatiquement"
    )

    @property
    def key(self) -> str:
        return f"{self.type}:{self.entity_type}:{self.entity_id}"

    def __repr__(self) -> str:
        return f"<Flag(id={self.id}, key='{self.key}', resolved={self.resolved_at is not None})>"
