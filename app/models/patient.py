"""Modèle Patient du cabinet."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import PatientStatut


class Patient(Base):
    """
    Patient d'un cabinet d'implantologie.

    Le contexte médical (allergies, traitements, pathologies) est conservé
    en texte libre; il est repris dans le rapport patient.
    """

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    organisation_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True, comment="Cabinet propriétaire"
    )

    nom: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    prenom: Mapped[str] = mapped_column(String(100), nullable=False)
    date_naissance: Mapped[date | None] = mapped_column(Date, nullable=True)
    sexe: Mapped[str | None] = mapped_column(String(10), nullable=True, comment="HOMME/FEMME")

    telephone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    adresse: Mapped[str | None] = mapped_column(String(255), nullable=True)
    code_postal: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ville: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pays: Mapped[str] = mapped_column(String(100), nullable=False, default="France")

    allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    traitement: Mapped[str | None] = mapped_column(Text, nullable=True, comment="Traitements en cours")
    conditions: Mapped[str | None] = mapped_column(Text, nullable=True, comment="Pathologies")
    contexte_medical: Mapped[str | None] = mapped_column(Text, nullable=True)

    statut: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PatientStatut.ACTIF.value, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    operations: Mapped[list["Operation"]] = relationship(  # noqa: F821
        back_populates="patient", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name='{self.prenom} {self.nom}')>"
