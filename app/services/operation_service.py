"""Service métier pour les actes chirurgicaux.

La liste des actes porte deux agrégats filtrables calculés sur les implants
posés: leur nombre et le taux de réussite (implants en succès ou en suivi
rapportés au total, en pourcentage arrondi).
"""

import logging

from opentelemetry import trace
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.cache import invalidate_organisation_stats
from app.core.events import publish
from app.core.exceptions import OperationNotFoundError, PatientNotFoundError
from app.filters import FilterGroup, FilterPage, evaluate, prepare_group
from app.models import Operation, Patient, SurgeryImplant
from app.models.enums import AuditAction, AuditEntityType, StatutImplant
from app.schemas.operation import (
    BulkDeleteItem,
    BulkDeleteResult,
    OperationCreate,
    OperationListItem,
    OperationUpdate,
)
from app.services import audit_service
from app.services.surgery_implant_service import build_surgery_implant

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SUCCESSFUL_STATUSES = (StatutImplant.SUCCES.value, StatutImplant.EN_SUIVI.value)


def success_rate(implant_count: int, successful: int) -> int | None:
    if not implant_count:
        return None
    return round(successful / implant_count * 100)


def filter_record(item: OperationListItem) -> dict:
    return {
        "dateOperation": item.date_operation,
        "typeIntervention": item.type_intervention.value,
        "typeChirurgieTemps": item.type_chirurgie_temps.value if item.type_chirurgie_temps else None,
        "typeChirurgieApproche": (
            item.type_chirurgie_approche.value if item.type_chirurgie_approche else None
        ),
        "greffeOsseuse": item.greffe_osseuse,
        "implantCount": item.implant_count,
        "successRate": item.success_rate,
    }


async def create_operation(
    db: AsyncSession,
    organisation_id: str,
    data: OperationCreate,
    current_user_id: str | None = None,
) -> Operation:
    """
    Crée un acte et, le cas échéant, les implants posés pendant l'intervention.

    Raises:
        PatientNotFoundError: Patient inconnu pour ce cabinet
        ImplantNotFoundError: Un implant référencé n'est pas au catalogue
    """
    with tracer.start_as_current_span("create_operation") as span:
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

        operation = Operation(
            organisation_id=organisation_id,
            **data.model_dump(mode="json", exclude={"implants", "date_operation"}),
            date_operation=data.date_operation,
        )
        db.add(operation)
        await db.flush()

        for implant_data in data.implants:
            db.add(await build_surgery_implant(db, organisation_id, operation, implant_data))
        audit_service.record(
            db,
            organisation_id,
            AuditEntityType.OPERATION,
            operation.id,
            AuditAction.CREATE,
            user_id=current_user_id,
            details=f"{operation.type_intervention}, {len(data.implants)} implant(s)",
        )
        await db.commit()

        span.set_attribute("operation.id", operation.id)
        span.set_attribute("operation.implants", len(data.implants))
        logger.info(
            f"Acte {operation.id} ({operation.type_intervention}) créé avec "
            f"{len(data.implants)} implant(s)"
        )

        await invalidate_organisation_stats(organisation_id)
        await publish(
            "cassius.operation.created",
            {
                "operation_id": operation.id,
                "organisation_id": organisation_id,
                "patient_id": operation.patient_id,
                "type_intervention": operation.type_intervention,
                "implant_count": len(data.implants),
            },
        )
        return await get_operation(db, organisation_id, operation.id)


async def get_operation(db: AsyncSession, organisation_id: str, operation_id: int) -> Operation:
    """Acte avec ses implants posés chargés."""
    result = await db.execute(
        select(Operation)
        .options(selectinload(Operation.surgery_implants))
        .where(Operation.id == operation_id, Operation.organisation_id == organisation_id)
        .execution_options(populate_existing=True)
    )
    operation = result.scalar_one_or_none()
    if operation is None:
        raise OperationNotFoundError(
            detail=f"Acte {operation_id} introuvable", operation_id=operation_id
        )
    return operation


async def update_operation(
    db: AsyncSession,
    organisation_id: str,
    operation_id: int,
    data: OperationUpdate,
    current_user_id: str | None = None,
) -> Operation:
    operation = await get_operation(db, organisation_id, operation_id)
    changes = data.model_dump(mode="json", exclude_unset=True, exclude={"date_operation"})
    for key, value in changes.items():
        setattr(operation, key, value)
    if "date_operation" in data.model_fields_set and data.date_operation is not None:
        operation.date_operation = data.date_operation
    audit_service.record(
        db,
        organisation_id,
        AuditEntityType.OPERATION,
        operation_id,
        AuditAction.UPDATE,
        user_id=current_user_id,
        changed_fields=sorted(data.model_fields_set),
    )
    await db.commit()
    await invalidate_organisation_stats(organisation_id)
    return await get_operation(db, organisation_id, operation_id)


async def delete_operation(
    db: AsyncSession, organisation_id: str, operation_id: int, current_user_id: str | None = None
) -> None:
    """Supprime un acte; ses implants posés sont supprimés en cascade."""
    with tracer.start_as_current_span("delete_operation") as span:
        span.set_attribute("operation.id", operation_id)
        operation = await get_operation(db, organisation_id, operation_id)
        patient_id = operation.patient_id
        audit_service.record(
            db,
            organisation_id,
            AuditEntityType.OPERATION,
            operation_id,
            AuditAction.DELETE,
            user_id=current_user_id,
            details=f"Acte du {operation.date_operation} (patient {patient_id})",
        )
        await db.delete(operation)
        await db.commit()

        logger.info(f"Acte {operation_id} supprimé")
        await invalidate_organisation_stats(organisation_id)
        await publish(
            "cassius.operation.deleted",
            {"operation_id": operation_id, "organisation_id": organisation_id, "patient_id": patient_id},
        )


async def bulk_delete_operations(
    db: AsyncSession,
    organisation_id: str,
    operation_ids: list[int],
    current_user_id: str | None = None,
) -> BulkDeleteResult:
    """Supprime plusieurs actes; un échec n'interrompt pas les suivants."""
    results: list[BulkDeleteItem] = []
    for operation_id in dict.fromkeys(operation_ids):
        try:
            await delete_operation(db, organisation_id, operation_id, current_user_id)
            results.append(BulkDeleteItem(id=operation_id, success=True))
        except OperationNotFoundError as e:
            results.append(BulkDeleteItem(id=operation_id, success=False, error=e.detail))

    deleted = sum(1 for r in results if r.success)
    return BulkDeleteResult(results=results, deleted=deleted, failed=len(results) - deleted)


async def list_operations(
    db: AsyncSession,
    organisation_id: str,
    patient_id: int | None = None,
) -> list[OperationListItem]:
    """Actes du cabinet, les plus récents d'abord, avec leurs agrégats d'implants."""
    with tracer.start_as_current_span("list_operations") as span:
        successful = func.sum(
            case((SurgeryImplant.statut.in_(SUCCESSFUL_STATUSES), 1), else_=0)
        )
        query = (
            select(
                Operation,
                Patient.nom,
                Patient.prenom,
                func.count(SurgeryImplant.id),
                successful,
            )
            .join(Patient, Operation.patient_id == Patient.id)
            .outerjoin(SurgeryImplant, SurgeryImplant.surgery_id == Operation.id)
            .where(Operation.organisation_id == organisation_id)
            .group_by(Operation.id, Patient.id)
            .order_by(Operation.date_operation.desc(), Operation.id.desc())
        )
        if patient_id is not None:
            query = query.where(Operation.patient_id == patient_id)

        result = await db.execute(query)
        items = [
            OperationListItem(
                id=operation.id,
                patient_id=operation.patient_id,
                patient_nom=nom,
                patient_prenom=prenom,
                date_operation=operation.date_operation,
                type_intervention=operation.type_intervention,
                type_chirurgie_temps=operation.type_chirurgie_temps,
                type_chirurgie_approche=operation.type_chirurgie_approche,
                greffe_osseuse=operation.greffe_osseuse,
                implant_count=count,
                success_rate=success_rate(count, ok or 0),
            )
            for operation, nom, prenom, count, ok in result.all()
        ]
        span.set_attribute("operations.count", len(items))
        return items


async def search_operations(
    db: AsyncSession, organisation_id: str, filters: FilterGroup | None
) -> list[OperationListItem]:
    page = FilterPage.ACTES
    group = prepare_group(filters, page)
    items = await list_operations(db, organisation_id)
    if group is None:
        return items
    return [item for item in items if evaluate(group, filter_record(item), page)]
