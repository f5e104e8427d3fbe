"""Service métier pour les implants posés lors des actes."""

import logging
from datetime import date

from opentelemetry import trace
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import invalidate_organisation_stats
from app.core.exceptions import OperationNotFoundError, SurgeryImplantNotFoundError
from app.filters import FilterGroup, FilterPage, evaluate, prepare_group
from app.models import Operation, Patient, SurgeryImplant
from app.schemas.implant import (
    SurgeryImplantCreate,
    SurgeryImplantInline,
    SurgeryImplantListItem,
    SurgeryImplantResponse,
    SurgeryImplantUpdate,
)
from app.services import implant_service

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def filter_record(item: SurgeryImplantListItem) -> dict:
    return {
        "datePose": item.date_pose,
        "statut": item.statut.value,
        "marque": item.implant.marque,
        "siteFdi": item.site_fdi,
        "isqPose": item.isq_pose,
        "isq2m": item.isq_2m,
        "isq3m": item.isq_3m,
        "isq6m": item.isq_6m,
        "diametre": item.implant.diametre,
        "longueur": item.implant.longueur,
    }


async def build_surgery_implant(
    db: AsyncSession,
    organisation_id: str,
    operation: Operation,
    data: SurgeryImplantInline,
) -> SurgeryImplant:
    """Prépare un implant posé pour l'acte; l'implant du catalogue doit exister."""
    implant = await implant_service.get_implant(db, organisation_id, data.implant_id)
    values = data.model_dump(mode="json")
    date_pose = values.pop("date_pose", None)
    surgery_implant = SurgeryImplant(
        organisation_id=organisation_id,
        surgery_id=operation.id,
        date_pose=date.fromisoformat(date_pose) if date_pose else operation.date_operation,
        **values,
    )
    surgery_implant.implant = implant
    return surgery_implant


async def get_surgery_implant(
    db: AsyncSession, organisation_id: str, surgery_implant_id: int
) -> SurgeryImplant:
    result = await db.execute(
        select(SurgeryImplant).where(
            SurgeryImplant.id == surgery_implant_id,
            SurgeryImplant.organisation_id == organisation_id,
        )
    )
    surgery_implant = result.scalar_one_or_none()
    if surgery_implant is None:
        raise SurgeryImplantNotFoundError(
            detail=f"Implant posé {surgery_implant_id} introuvable",
            surgery_implant_id=surgery_implant_id,
        )
    return surgery_implant


async def add_surgery_implant(
    db: AsyncSession,
    organisation_id: str,
    operation_id: int,
    data: SurgeryImplantCreate,
) -> SurgeryImplant:
    """
    Ajoute un implant posé à un acte existant.

    Raises:
        OperationNotFoundError: Acte inconnu pour ce cabinet
        ImplantNotFoundError: Implant absent du catalogue
    """
    with tracer.start_as_current_span("add_surgery_implant") as span:
        span.set_attribute("operation.id", operation_id)
        result = await db.execute(
            select(Operation).where(
                Operation.id == operation_id, Operation.organisation_id == organisation_id
            )
        )
        operation = result.scalar_one_or_none()
        if operation is None:
            raise OperationNotFoundError(
                detail=f"Acte {operation_id} introuvable", operation_id=operation_id
            )

        surgery_implant = await build_surgery_implant(db, organisation_id, operation, data)
        db.add(surgery_implant)
        await db.commit()
        await db.refresh(surgery_implant)

        span.set_attribute("surgery_implant.id", surgery_implant.id)
        logger.info(f"Implant posé site {surgery_implant.site_fdi} ajouté à l'acte {operation_id}")
        await invalidate_organisation_stats(organisation_id)
        return surgery_implant


async def update_surgery_implant(
    db: AsyncSession,
    organisation_id: str,
    surgery_implant_id: int,
    data: SurgeryImplantUpdate,
) -> SurgeryImplant:
    surgery_implant = await get_surgery_implant(db, organisation_id, surgery_implant_id)
    for key, value in data.model_dump(mode="json", exclude_unset=True).items():
        setattr(surgery_implant, key, value)
    await db.commit()
    await db.refresh(surgery_implant)
    await invalidate_organisation_stats(organisation_id)
    return surgery_implant


def _list_query(organisation_id: str):
    return (
        select(SurgeryImplant, Patient.id, Patient.nom, Patient.prenom)
        .join(Operation, SurgeryImplant.surgery_id == Operation.id)
        .join(Patient, Operation.patient_id == Patient.id)
        .where(SurgeryImplant.organisation_id == organisation_id)
        .order_by(SurgeryImplant.date_pose.desc(), SurgeryImplant.id.desc())
    )


def _to_list_item(surgery_implant: SurgeryImplant, patient_id, nom, prenom) -> SurgeryImplantListItem:
    base = SurgeryImplantResponse.model_validate(surgery_implant)
    return SurgeryImplantListItem(
        **base.model_dump(), patient_id=patient_id, patient_nom=nom, patient_prenom=prenom
    )


async def list_surgery_implants(
    db: AsyncSession,
    organisation_id: str,
    patient_id: int | None = None,
) -> list[SurgeryImplantListItem]:
    """Implants posés du cabinet, les plus récents d'abord."""
    query = _list_query(organisation_id)
    if patient_id is not None:
        query = query.where(Patient.id == patient_id)
    result = await db.execute(query)
    return [_to_list_item(*row) for row in result.unique().all()]


async def search_surgery_implants(
    db: AsyncSession,
    organisation_id: str,
    filters: FilterGroup | None,
) -> list[SurgeryImplantListItem]:
    page = FilterPage.SURGERY_IMPLANTS
    group = prepare_group(filters, page)
    items = await list_surgery_implants(db, organisation_id)
    if group is None:
        return items
    with tracer.start_as_current_span("filter_surgery_implants") as span:
        matched = [item for item in items if evaluate(group, filter_record(item), page)]
        span.set_attribute("surgery_implants.total", len(items))
        span.set_attribute("surgery_implants.matched", len(matched))
        return matched
