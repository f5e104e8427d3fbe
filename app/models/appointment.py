"""Modèle Appointment (rendez-vous et visites de contrôle)."""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.enums import AppointmentStatus


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    organisation_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    operation_id: Mapped[int | None] = mapped_column(
        ForeignKey("operations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    surgery_implant_id: Mapped[int | None] = mapped_column(
        ForeignKey("surgery_implants.id", ondelete="SET NULL"), nullable=True, index=True
    )

    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AppointmentStatus.UPCOMING.value, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    date_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    isq: Mapped[float | None] = mapped_column(
        Float, nullable=True, comment="Moyenne pondérée (V*2 + M + D) / 4"
    )
    isq_vestibulaire: Mapped[float | None] = mapped_column(Float, nullable=True)
    isq_mesial: Mapped[float | None] = mapped_column(Float, nullable=True)
    isq_distal: Mapped[float | None] = mapped_column(Float, nullable=True)

    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, type='{self.type}', status='{self.status}')>"
