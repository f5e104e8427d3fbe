"""Modèles du catalogue d'implants et des implants posés."""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import StatutImplant, TypeImplant


class Implant(Base):
    """
    Entrée du catalogue: marque, référence et dimensions.

    Les prothèses partagent la table (type_implant=PROTHESE) avec leurs
    attributs propres (type de prothèse, pilier).
    """

    __tablename__ = "implants"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    organisation_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type_implant: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TypeImplant.IMPLANT.value, index=True
    )
    marque: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    reference_fabricant: Mapped[str | None] = mapped_column(String(100), nullable=True)
    diametre: Mapped[float | None] = mapped_column(Float, nullable=True, comment="mm")
    longueur: Mapped[float | None] = mapped_column(Float, nullable=True, comment="mm")
    lot: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_favorite: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    type_prothese: Mapped[str | None] = mapped_column(String(20), nullable=True)
    type_pilier: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Implant(id={self.id}, marque='{self.marque}', ref='{self.reference_fabricant}')>"


class SurgeryImplant(Base):
    """Implant posé chez un patient lors d'un acte, avec ses mesures ISQ de suivi."""

    __tablename__ = "surgery_implants"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    organisation_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    surgery_id: Mapped[int] = mapped_column(
        ForeignKey("operations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    implant_id: Mapped[int] = mapped_column(
        ForeignKey("implants.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    site_fdi: Mapped[str] = mapped_column(String(2), nullable=False, comment="Site FDI 11-48")
    position_implant: Mapped[str | None] = mapped_column(String(20), nullable=True)
    type_os: Mapped[str | None] = mapped_column(String(2), nullable=True, comment="D1-D4")
    mise_en_charge: Mapped[str | None] = mapped_column(String(20), nullable=True)
    greffe_osseuse: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    type_greffe: Mapped[str | None] = mapped_column(String(100), nullable=True)

    isq_pose: Mapped[float | None] = mapped_column(Float, nullable=True)
    isq_2m: Mapped[float | None] = mapped_column(Float, nullable=True)
    isq_3m: Mapped[float | None] = mapped_column(Float, nullable=True)
    isq_6m: Mapped[float | None] = mapped_column(Float, nullable=True)
    bone_loss_score: Mapped[int | None] = mapped_column(
        Integer, nullable=True, comment="Perte osseuse radiologique 0 (aucune) à 5"
    )

    statut: Mapped[str] = mapped_column(
        String(20), nullable=False, default=StatutImplant.EN_SUIVI.value, index=True
    )
    date_pose: Mapped[date] = mapped_column(Date, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    operation: Mapped["Operation"] = relationship(back_populates="surgery_implants")  # noqa: F821
    implant: Mapped[Implant] = relationship(lazy="joined")

    @property
    def latest_isq(self) -> float | None:
        """Dernière mesure ISQ disponible: 6 mois, puis 3 mois, 2 mois, pose."""
        for value in (self.isq_6m, self.isq_3m, self.isq_2m, self.isq_pose):
            if value is not None:
                return value
        return None

    def __repr__(self) -> str:
        return f"<SurgeryImplant(id={self.id}, site={self.site_fdi}, statut='{self.statut}')>"
