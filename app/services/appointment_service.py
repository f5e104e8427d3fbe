"""Service métier pour les rendez-vous et visites de contrôle."""

import logging
from datetime import UTC, datetime

from opentelemetry import trace
from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import async_session_maker
from app.core.events import publish
from app.core.retry import async_retry_with_backoff
from app.core.exceptions import (
    AppointmentNotFoundError,
    AppointmentStateError,
    OperationNotFoundError,
    PatientNotFoundError,
    SurgeryImplantNotFoundError,
)
from app.models import Appointment, Operation, Patient, SurgeryImplant
from app.models.enums import AppointmentStatus, AuditAction, AuditEntityType
from app.schemas.appointment import (
    AppointmentCancel,
    AppointmentComplete,
    AppointmentCreate,
    AppointmentUpdate,
    IsqMeasurement,
)
from app.schemas.utils import as_utc
from app.services import audit_service
from app.services.isq import weighted_isq

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def measurement_values(measurement: IsqMeasurement) -> dict[str, float | None]:
    """Colonnes ISQ à enregistrer; les mesures directionnelles priment sur la valeur unique."""
    if measurement.isq_vestibulaire is not None:
        isq = weighted_isq(
            measurement.isq_vestibulaire, measurement.isq_mesial, measurement.isq_distal
        )
    else:
        isq = measurement.isq
    return {
        "isq": isq,
        "isq_vestibulaire": measurement.isq_vestibulaire,
        "isq_mesial": measurement.isq_mesial,
        "isq_distal": measurement.isq_distal,
    }


async def _check_links(
    db: AsyncSession,
    organisation_id: str,
    patient_id: int,
    operation_id: int | None,
    surgery_implant_id: int | None,
) -> None:
    """L'acte et l'implant liés doivent appartenir au patient du rendez-vous."""
    if operation_id is not None:
        result = await db.execute(
            select(Operation.id).where(
                Operation.id == operation_id,
                Operation.patient_id == patient_id,
                Operation.organisation_id == organisation_id,
            )
        )
        if result.scalar_one_or_none() is None:
            raise OperationNotFoundError(
                detail=f"Acte {operation_id} introuvable pour le patient {patient_id}",
                operation_id=operation_id,
            )
    if surgery_implant_id is not None:
        result = await db.execute(
            select(SurgeryImplant.id)
            .join(Operation, SurgeryImplant.surgery_id == Operation.id)
            .where(
                SurgeryImplant.id == surgery_implant_id,
                Operation.patient_id == patient_id,
                SurgeryImplant.organisation_id == organisation_id,
            )
        )
        if result.scalar_one_or_none() is None:
            raise SurgeryImplantNotFoundError(
                detail=f"Implant posé {surgery_implant_id} introuvable pour le patient {patient_id}",
                surgery_implant_id=surgery_implant_id,
            )


async def get_appointment(
    db: AsyncSession, organisation_id: str, appointment_id: int
) -> Appointment:
    result = await db.execute(
        select(Appointment).where(
            Appointment.id == appointment_id, Appointment.organisation_id == organisation_id
        )
    )
    appointment = result.scalar_one_or_none()
    if appointment is None:
        raise AppointmentNotFoundError(
            detail=f"Rendez-vous {appointment_id} introuvable", appointment_id=appointment_id
        )
    return appointment


async def create_appointment(
    db: AsyncSession,
    organisation_id: str,
    data: AppointmentCreate,
    current_user_id: str | None = None,
) -> Appointment:
    with tracer.start_as_current_span("create_appointment") as span:
        span.set_attribute("patient.id", data.patient_id)
        patient = await db.execute(
            select(Patient.id).where(
                Patient.id == data.patient_id, Patient.organisation_id == organisation_id
            )
        )
        if patient.scalar_one_or_none() is None:
            raise PatientNotFoundError(
                detail=f"Patient {data.patient_id} introuvable", patient_id=data.patient_id
            )
        await _check_links(
            db, organisation_id, data.patient_id, data.operation_id, data.surgery_implant_id
        )

        appointment = Appointment(organisation_id=organisation_id, **data.model_dump(mode="python"))
        appointment.type = data.type.value
        db.add(appointment)
        await db.flush()
        audit_service.record(
            db,
            organisation_id,
            AuditEntityType.APPOINTMENT,
            appointment.id,
            AuditAction.CREATE,
            user_id=current_user_id,
            details=appointment.title,
        )
        await db.commit()
        await db.refresh(appointment)

        span.set_attribute("appointment.id", appointment.id)
        logger.info(f"Rendez-vous {appointment.id} créé pour le patient {data.patient_id}")
        return appointment


async def update_appointment(
    db: AsyncSession,
    organisation_id: str,
    appointment_id: int,
    data: AppointmentUpdate,
    current_user_id: str | None = None,
) -> Appointment:
    appointment = await get_appointment(db, organisation_id, appointment_id)
    changes = data.model_dump(mode="python", exclude_unset=True)
    await _check_links(
        db,
        organisation_id,
        appointment.patient_id,
        changes.get("operation_id"),
        changes.get("surgery_implant_id"),
    )
    for key, value in changes.items():
        setattr(appointment, key, value.value if key == "type" and value is not None else value)

    if appointment.date_end and as_utc(appointment.date_end) < as_utc(appointment.date_start):
        raise AppointmentStateError(
            detail="La fin du rendez-vous précède son début", appointment_id=appointment_id
        )
    audit_service.record(
        db,
        organisation_id,
        AuditEntityType.APPOINTMENT,
        appointment_id,
        AuditAction.UPDATE,
        user_id=current_user_id,
        changed_fields=list(changes),
    )
    await db.commit()
    await db.refresh(appointment)
    return appointment


async def complete_appointment(
    db: AsyncSession,
    organisation_id: str,
    appointment_id: int,
    data: AppointmentComplete,
    current_user_id: str | None = None,
) -> Appointment:
    """
    Marque une visite comme réalisée, avec une mesure ISQ éventuelle.

    Raises:
        AppointmentNotFoundError: Rendez-vous inconnu
        AppointmentStateError: Rendez-vous déjà réalisé ou annulé
    """
    with tracer.start_as_current_span("complete_appointment") as span:
        span.set_attribute("appointment.id", appointment_id)
        appointment = await get_appointment(db, organisation_id, appointment_id)
        if appointment.status != AppointmentStatus.UPCOMING.value:
            raise AppointmentStateError(
                detail=f"Le rendez-vous {appointment_id} est {appointment.status}",
                appointment_id=appointment_id,
                current_status=appointment.status,
            )

        if data.measurement is not None:
            for key, value in measurement_values(data.measurement).items():
                setattr(appointment, key, value)
            span.set_attribute("appointment.isq", appointment.isq)

        appointment.status = AppointmentStatus.COMPLETED.value
        appointment.completed_at = datetime.now(UTC)
        audit_service.record(
            db,
            organisation_id,
            AuditEntityType.APPOINTMENT,
            appointment_id,
            AuditAction.UPDATE,
            user_id=current_user_id,
            details="Visite réalisée",
        )
        await db.commit()
        await db.refresh(appointment)

        await publish(
            "cassius.appointment.completed",
            {
                "appointment_id": appointment.id,
                "organisation_id": organisation_id,
                "patient_id": appointment.patient_id,
                "surgery_implant_id": appointment.surgery_implant_id,
                "isq": appointment.isq,
            },
        )
        return appointment


async def cancel_appointment(
    db: AsyncSession,
    organisation_id: str,
    appointment_id: int,
    data: AppointmentCancel,
    current_user_id: str | None = None,
) -> Appointment:
    appointment = await get_appointment(db, organisation_id, appointment_id)
    if appointment.status != AppointmentStatus.UPCOMING.value:
        raise AppointmentStateError(
            detail=f"Le rendez-vous {appointment_id} est {appointment.status}",
            appointment_id=appointment_id,
            current_status=appointment.status,
        )

    appointment.status = AppointmentStatus.CANCELLED.value
    appointment.cancelled_at = datetime.now(UTC)
    appointment.cancel_reason = data.reason
    audit_service.record(
        db,
        organisation_id,
        AuditEntityType.APPOINTMENT,
        appointment_id,
        AuditAction.UPDATE,
        user_id=current_user_id,
        details=f"Rendez-vous annulé: {data.reason}" if data.reason else "Rendez-vous annulé",
    )
    await db.commit()
    await db.refresh(appointment)

    logger.info(f"Rendez-vous {appointment_id} annulé")
    await publish(
        "cassius.appointment.cancelled",
        {
            "appointment_id": appointment.id,
            "organisation_id": organisation_id,
            "patient_id": appointment.patient_id,
            "reason": data.reason,
        },
    )
    return appointment


async def list_patient_appointments(
    db: AsyncSession, organisation_id: str, patient_id: int
) -> list[Appointment]:
    result = await db.execute(
        select(Appointment)
        .where(Appointment.organisation_id == organisation_id, Appointment.patient_id == patient_id)
        .order_by(Appointment.date_start.desc())
    )
    return list(result.scalars().all())


async def list_calendar(
    db: AsyncSession,
    organisation_id: str,
    start: datetime,
    end: datetime,
    status: AppointmentStatus | None = None,
) -> list[Appointment]:
    """Rendez-vous dont le début tombe dans [start, end)."""
    query = select(Appointment).where(
        Appointment.organisation_id == organisation_id,
        Appointment.date_start >= start,
        Appointment.date_start < end,
    )
    if status is not None:
        query = query.where(Appointment.status == status.value)
    result = await db.execute(query.order_by(Appointment.date_start))
    return list(result.scalars().all())


@async_retry_with_backoff(max_attempts=3, exceptions=(OperationalError, OSError))
async def auto_complete_past_appointments(now: datetime | None = None) -> int:
    """
    Job planifié: passe en COMPLETED les rendez-vous à venir dont la fin est passée.

    Tous cabinets confondus. Les rendez-vous sans date de fin ne sont pas touchés.

    Returns:
        Nombre de rendez-vous complétés
    """
    now = now or datetime.now(UTC)
    with tracer.start_as_current_span("auto_complete_past_appointments") as span:
        async with async_session_maker() as db:
            result = await db.execute(
                update(Appointment)
                .where(
                    Appointment.status == AppointmentStatus.UPCOMING.value,
                    Appointment.date_end.is_not(None),
                    Appointment.date_end < now,
                )
                .values(status=AppointmentStatus.COMPLETED.value, completed_at=now)
                .returning(Appointment.id)
            )
            completed_ids = list(result.scalars().all())
            await db.commit()

        span.set_attribute("appointments.completed", len(completed_ids))
        if completed_ids:
            logger.info(
                f"{len(completed_ids)} rendez-vous passé(s) en COMPLETED: {completed_ids}"
            )
        return len(completed_ids)
