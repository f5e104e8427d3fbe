"""Service métier pour la gestion des patients.

La recherche avancée compile le filtre en SQL. Les champs `surgery_*` et
`implant_*` ajoutent des jointures externes sur les actes, les implants
posés et le catalogue; la sélection des patients passe alors par une
sous-requête d'identifiants pour qu'un patient n'apparaisse qu'une fois.
"""

import logging
import math
from datetime import UTC, date, datetime

from opentelemetry import trace
from sqlalchemy import case, exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import invalidate_organisation_stats
from app.core.events import publish
from app.core.exceptions import PatientNotFoundError
from app.filters import FilterPage, compile_group, prepare_group, uses_fields
from app.models import Appointment, Implant, Operation, Patient, SurgeryImplant
from app.models.enums import AuditAction, AuditEntityType, StatutImplant
from app.schemas.patient import (
    PatientCreate,
    PatientListItem,
    PatientSearchRequest,
    PatientSearchResponse,
    PatientUpdate,
)
from app.services import audit_service

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SORT_COLUMNS = {
    "nom": Patient.nom,
    "prenom": Patient.prenom,
    "dateNaissance": Patient.date_naissance,
    "statut": Patient.statut,
    "createdAt": Patient.created_at,
}

JOIN_PREFIXES = ("surgery_", "implant_")


def filter_columns() -> dict:
    """Expressions SQL des champs filtrables de la page patients."""
    implant_count = (
        select(func.count(SurgeryImplant.id))
        .join(Operation, SurgeryImplant.surgery_id == Operation.id)
        .where(Operation.patient_id == Patient.id)
        .correlate(Patient)
        .scalar_subquery()
    )
    last_visit = (
        select(func.max(Appointment.date_start))
        .where(Appointment.patient_id == Patient.id)
        .correlate(Patient)
        .scalar_subquery()
    )
    has_surgery = exists().where(Operation.patient_id == Patient.id).correlate(Patient)

    return {
        "patient_nom": Patient.nom,
        "patient_prenom": Patient.prenom,
        "patient_dateNaissance": Patient.date_naissance,
        "patient_age": func.date_part("year", func.age(func.current_date(), Patient.date_naissance)),
        "patient_statut": Patient.statut,
        "patient_derniereVisite": last_visit,
        "patient_implantCount": implant_count,
        "surgery_hasSurgery": has_surgery,
        "surgery_dateOperation": Operation.date_operation,
        "surgery_typeIntervention": Operation.type_intervention,
        "surgery_successRate": case(
            (SurgeryImplant.statut == StatutImplant.SUCCES.value, 100),
            (SurgeryImplant.statut == StatutImplant.ECHEC.value, 0),
            (SurgeryImplant.statut == StatutImplant.COMPLICATION.value, 50),
            else_=None,
        ),
        "implant_marque": Implant.marque,
        "implant_reference": Implant.reference_fabricant,
        "implant_siteFdi": SurgeryImplant.site_fdi,
        "implant_statut": SurgeryImplant.statut,
        "implant_datePose": SurgeryImplant.date_pose,
        "implant_successRate": case(
            (SurgeryImplant.bone_loss_score.is_(None), None),
            else_=(5 - SurgeryImplant.bone_loss_score) * 20,
        ),
    }


async def create_patient(
    db: AsyncSession,
    organisation_id: str,
    data: PatientCreate,
    current_user_id: str | None = None,
) -> Patient:
    """
    Crée un patient pour le cabinet.

    Args:
        db: Session de base de données async
        organisation_id: Cabinet propriétaire
        data: Données du patient
        current_user_id: ID Keycloak de l'auteur, pour le journal d'audit

    Returns:
        Patient créé
    """
    with tracer.start_as_current_span("create_patient") as span:
        patient = Patient(organisation_id=organisation_id, **data.model_dump(mode="json"))
        patient.date_naissance = data.date_naissance
        db.add(patient)
        await db.flush()
        audit_service.record(
            db,
            organisation_id,
            AuditEntityType.PATIENT,
            patient.id,
            AuditAction.CREATE,
            user_id=current_user_id,
        )
        await db.commit()
        await db.refresh(patient)

        span.set_attribute("patient.id", patient.id)
        logger.info(f"Patient {patient.id} créé pour le cabinet {organisation_id}")

        await invalidate_organisation_stats(organisation_id)
        await publish(
            "cassius.patient.created",
            {
                "patient_id": patient.id,
                "organisation_id": organisation_id,
                "nom": patient.nom,
                "prenom": patient.prenom,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )
        return patient


async def get_patient(db: AsyncSession, organisation_id: str, patient_id: int) -> Patient:
    result = await db.execute(
        select(Patient).where(Patient.id == patient_id, Patient.organisation_id == organisation_id)
    )
    patient = result.scalar_one_or_none()
    if patient is None:
        raise PatientNotFoundError(detail=f"Patient {patient_id} introuvable", patient_id=patient_id)
    return patient


async def update_patient(
    db: AsyncSession,
    organisation_id: str,
    patient_id: int,
    data: PatientUpdate,
    current_user_id: str | None = None,
) -> Patient:
    """Mise à jour partielle; seuls les champs envoyés sont modifiés."""
    with tracer.start_as_current_span("update_patient") as span:
        span.set_attribute("patient.id", patient_id)
        patient = await get_patient(db, organisation_id, patient_id)

        changes = data.model_dump(mode="json", exclude_unset=True)
        for key, value in changes.items():
            setattr(patient, key, value)
        if "date_naissance" in changes:
            patient.date_naissance = data.date_naissance
        audit_service.record(
            db,
            organisation_id,
            AuditEntityType.PATIENT,
            patient.id,
            AuditAction.UPDATE,
            user_id=current_user_id,
            changed_fields=list(changes),
        )

        await db.commit()
        await db.refresh(patient)
        span.set_attribute("patient.updated_fields", ",".join(changes))

        await invalidate_organisation_stats(organisation_id)
        await publish(
            "cassius.patient.updated",
            {
                "patient_id": patient.id,
                "organisation_id": organisation_id,
                "updated_fields": list(changes),
            },
        )
        return patient


async def delete_patient(
    db: AsyncSession, organisation_id: str, patient_id: int, current_user_id: str | None = None
) -> None:
    """Supprime un patient et, en cascade, ses actes, implants posés et rendez-vous."""
    patient = await get_patient(db, organisation_id, patient_id)
    audit_service.record(
        db,
        organisation_id,
        AuditEntityType.PATIENT,
        patient_id,
        AuditAction.DELETE,
        user_id=current_user_id,
        details=f"{patient.nom} {patient.prenom}",
    )
    await db.delete(patient)
    await db.commit()
    logger.info(f"Patient {patient_id} supprimé")
    await invalidate_organisation_stats(organisation_id)


async def list_patients(
    db: AsyncSession,
    organisation_id: str,
    skip: int = 0,
    limit: int = 100,
) -> tuple[list[Patient], int]:
    base = select(Patient).where(Patient.organisation_id == organisation_id)
    total = (
        await db.execute(select(func.count()).select_from(base.subquery()))
    ).scalar_one()
    result = await db.execute(
        base.order_by(Patient.nom, Patient.prenom, Patient.id).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total


async def get_implant_counts(
    db: AsyncSession, organisation_id: str, patient_ids: list[int]
) -> dict[int, int]:
    if not patient_ids:
        return {}
    result = await db.execute(
        select(Operation.patient_id, func.count(SurgeryImplant.id))
        .join(SurgeryImplant, SurgeryImplant.surgery_id == Operation.id)
        .where(Operation.organisation_id == organisation_id, Operation.patient_id.in_(patient_ids))
        .group_by(Operation.patient_id)
    )
    return dict(result.all())


async def get_last_visits(
    db: AsyncSession, organisation_id: str, patient_ids: list[int]
) -> dict[int, date]:
    """Date du rendez-vous le plus récent de chaque patient."""
    if not patient_ids:
        return {}
    result = await db.execute(
        select(Appointment.patient_id, func.max(Appointment.date_start))
        .where(
            Appointment.organisation_id == organisation_id,
            Appointment.patient_id.in_(patient_ids),
        )
        .group_by(Appointment.patient_id)
    )
    return {patient_id: last.date() for patient_id, last in result.all() if last is not None}


async def search_patients(
    db: AsyncSession,
    organisation_id: str,
    request: PatientSearchRequest,
    today: date | None = None,
) -> PatientSearchResponse:
    """
    Recherche avancée paginée.

    Raises:
        FilterValidationError: Règle de filtre invalide pour la page patients
    """
    with tracer.start_as_current_span("search_patients") as span:
        span.set_attribute("organisation.id", organisation_id)
        group = prepare_group(request.filters, FilterPage.PATIENTS)
        condition = compile_group(group, filter_columns(), FilterPage.PATIENTS, today)

        matching_ids = select(Patient.id).where(Patient.organisation_id == organisation_id, condition)
        if uses_fields(group, JOIN_PREFIXES):
            span.set_attribute("search.joins", True)
            matching_ids = (
                select(Patient.id)
                .outerjoin(Operation, Operation.patient_id == Patient.id)
                .outerjoin(SurgeryImplant, SurgeryImplant.surgery_id == Operation.id)
                .outerjoin(Implant, SurgeryImplant.implant_id == Implant.id)
                .where(Patient.organisation_id == organisation_id, condition)
            )
        matching_ids = matching_ids.distinct().subquery()

        total = (
            await db.execute(select(func.count()).select_from(matching_ids))
        ).scalar_one()

        sort_column = SORT_COLUMNS.get(request.sort.field, Patient.nom)
        ordering = sort_column.desc() if request.sort.direction == "desc" else sort_column.asc()
        page = request.pagination.page
        page_size = request.pagination.page_size

        result = await db.execute(
            select(Patient)
            .where(Patient.id.in_(select(matching_ids.c.id)))
            .order_by(ordering.nulls_last(), Patient.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        patients = list(result.scalars().all())
        patient_ids = [p.id for p in patients]

        span.set_attribute("search.total", total)
        logger.debug(f"Recherche patients {organisation_id}: {total} résultat(s), page {page}")

        return PatientSearchResponse(
            patients=[PatientListItem.model_validate(p) for p in patients],
            implant_counts=await get_implant_counts(db, organisation_id, patient_ids),
            last_visits=await get_last_visits(db, organisation_id, patient_ids),
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
        )
