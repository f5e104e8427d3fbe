"""Modèle Operation (acte chirurgical)."""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class Operation(Base):
    __tablename__ = "operations"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    organisation_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )

    date_operation: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    type_intervention: Mapped[str] = mapped_column(String(40), nullable=False)
    type_chirurgie_temps: Mapped[str | None] = mapped_column(String(20), nullable=True)
    type_chirurgie_approche: Mapped[str | None] = mapped_column(String(20), nullable=True)

    greffe_osseuse: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    type_greffe: Mapped[str | None] = mapped_column(String(100), nullable=True)
    greffe_quantite: Mapped[str | None] = mapped_column(String(100), nullable=True)
    greffe_localisation: Mapped[str | None] = mapped_column(String(100), nullable=True)
    type_mise_en_charge: Mapped[str | None] = mapped_column(
        String(20), nullable=True, comment="IMMEDIATE/PRECOCE/DIFFEREE"
    )

    conditions_medicales_preop: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes_perop: Mapped[str | None] = mapped_column(Text, nullable=True)
    observations_postop: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    patient: Mapped["Patient"] = relationship(back_populates="operations")  # noqa: F821
    surgery_implants: Mapped[list["SurgeryImplant"]] = relationship(  # noqa: F821
        back_populates="operation", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Operation(id={self.id}, type='{self.type_intervention}', date={self.date_operation})>"
