"""Recherche globale: patients, actes et implants posés d'un cabinet."""

import logging

from opentelemetry import trace
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import SearchQueryTooShortError
from app.models import Implant, Operation, Patient, SurgeryImplant
from app.schemas.search import GlobalSearchResponse, OperationHit, PatientHit, SurgeryImplantHit

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def _name_matches(term: str):
    """Nom, prénom, ou nom complet dans les deux ordres."""
    return or_(
        Patient.nom.icontains(term, autoescape=True),
        Patient.prenom.icontains(term, autoescape=True),
        func.concat(Patient.prenom, " ", Patient.nom).icontains(term, autoescape=True),
        func.concat(Patient.nom, " ", Patient.prenom).icontains(term, autoescape=True),
    )


async def global_search(
    db: AsyncSession,
    organisation_id: str,
    query: str,
    limit: int | None = None,
) -> GlobalSearchResponse:
    """
    Recherche un terme dans les trois catégories, `limit` résultats par catégorie.

    Raises:
        SearchQueryTooShortError: Terme de moins de SEARCH_MIN_QUERY_LENGTH caractères
    """
    term = (query or "").strip()
    if len(term) < settings.SEARCH_MIN_QUERY_LENGTH:
        raise SearchQueryTooShortError(
            detail=f"La recherche demande au moins {settings.SEARCH_MIN_QUERY_LENGTH} caractères",
            min_length=settings.SEARCH_MIN_QUERY_LENGTH,
        )
    limit = limit or settings.SEARCH_DEFAULT_LIMIT

    with tracer.start_as_current_span("global_search") as span:
        span.set_attribute("search.length", len(term))

        patient_rows = await db.execute(
            select(Patient.id, Patient.nom, Patient.prenom, Patient.date_naissance)
            .where(Patient.organisation_id == organisation_id, _name_matches(term))
            .order_by(Patient.nom, Patient.prenom)
            .limit(limit)
        )

        operation_rows = await db.execute(
            select(
                Operation.id,
                Operation.patient_id,
                Patient.nom,
                Patient.prenom,
                Operation.type_intervention,
                Operation.date_operation,
            )
            .join(Patient, Operation.patient_id == Patient.id)
            .where(
                Operation.organisation_id == organisation_id,
                or_(Operation.type_intervention.icontains(term, autoescape=True), _name_matches(term)),
            )
            .order_by(Operation.date_operation.desc())
            .limit(limit)
        )

        implant_rows = await db.execute(
            select(
                SurgeryImplant.id,
                Patient.id,
                Patient.nom,
                Patient.prenom,
                Implant.marque,
                Implant.reference_fabricant,
                SurgeryImplant.site_fdi,
                SurgeryImplant.date_pose,
            )
            .join(Implant, SurgeryImplant.implant_id == Implant.id)
            .join(Operation, SurgeryImplant.surgery_id == Operation.id)
            .join(Patient, Operation.patient_id == Patient.id)
            .where(
                SurgeryImplant.organisation_id == organisation_id,
                or_(
                    Implant.marque.icontains(term, autoescape=True),
                    Implant.reference_fabricant.icontains(term, autoescape=True),
                    SurgeryImplant.site_fdi.icontains(term, autoescape=True),
                    _name_matches(term),
                ),
            )
            .order_by(SurgeryImplant.date_pose.desc())
            .limit(limit)
        )

        response = GlobalSearchResponse(
            query=term,
            patients=[
                PatientHit(id=pid, nom=nom, prenom=prenom, date_naissance=birth)
                for pid, nom, prenom, birth in patient_rows.all()
            ],
            operations=[
                OperationHit(
                    id=oid,
                    patient_id=pid,
                    patient_nom=nom,
                    patient_prenom=prenom,
                    type_intervention=type_intervention,
                    date_operation=date_operation,
                )
                for oid, pid, nom, prenom, type_intervention, date_operation in operation_rows.all()
            ],
            surgery_implants=[
                SurgeryImplantHit(
                    id=sid,
                    patient_id=pid,
                    patient_nom=nom,
                    patient_prenom=prenom,
                    marque=marque,
                    reference_fabricant=reference,
                    site_fdi=site,
                    date_pose=date_pose,
                )
                for sid, pid, nom, prenom, marque, reference, site, date_pose in implant_rows.all()
            ],
        )
        span.set_attribute(
            "search.hits",
            len(response.patients) + len(response.operations) + len(response.surgery_implants),
        )
        return response
