"""Motifs de changement de statut et historique des statuts d'implants posés."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class ImplantStatusReason(Base):
    """Motif proposé pour un statut (organisation_id NULL = motif système)."""

    __tablename__ = "implant_status_reasons"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    organisation_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class ImplantStatusHistory(Base):
    __tablename__ = "implant_status_history"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    organisation_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    surgery_implant_id: Mapped[int] = mapped_column(
        ForeignKey("surgery_implants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    from_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    reason_id: Mapped[int | None] = mapped_column(
        ForeignKey("implant_status_reasons.id", ondelete="SET NULL"), nullable=True
    )
    reason_free_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    evidence: Mapped[dict | None] = mapped_column(
        JSON, nullable=True, comment="Éléments ayant motivé le changement (ISQ, visite, ...)"
    )
    changed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    reason: Mapped[ImplantStatusReason | None] = relationship(lazy="joined")
