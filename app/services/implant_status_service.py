"""
Suggestions de statut, motifs et historique des statuts d'implant posé.

Les suggestions sont déduites des mesures ISQ de l'implant:
- ISQ < 45: échec probable
- ISQ < 60: complication (confiance élevée sous 56)
- baisse d'au moins 10 entre les deux dernières mesures: complication
- implant en suivi mesuré à 3 ou 6 mois: succès si ISQ >= 70 (ou >= 60,
  confiance moyenne)
Une suggestion identique au statut courant n'est pas retournée.
"""

import logging

from opentelemetry import trace
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import invalidate_organisation_stats
from app.core.events import publish
from app.core.exceptions import ImplantStatusConflictError, StatusReasonNotFoundError
from app.models import ImplantStatusHistory, ImplantStatusReason, SurgeryImplant
from app.models.enums import StatutImplant
from app.schemas.implant_status import (
    IsqHistory,
    StatusChangeRequest,
    StatusHistoryResponse,
    StatusSuggestion,
    StatusSuggestionsResponse,
    SuggestionConfidence,
)
from app.services.isq import isq_decline, latest_isq
from app.services.surgery_implant_service import get_surgery_implant

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ISQ_FAILURE_BELOW = 45
ISQ_COMPLICATION_BELOW = 60
ISQ_COMPLICATION_HIGH_BELOW = 56
ISQ_DECLINE_MIN = 10
ISQ_STABLE_FROM = 70
ISQ_ACCEPTABLE_FROM = 60

# Motifs système (organisation_id NULL), créés par la migration initiale
SYSTEM_STATUS_REASONS: dict[StatutImplant, list[tuple[str, str]]] = {
    StatutImplant.SUCCES: [
        ("SUCCESS_OSSEOINTEGRATION", "Ostéo-intégration confirmée"),
        ("SUCCESS_PROSTHESIS", "Prothèse posée avec succès"),
        ("SUCCESS_STABLE_ISQ", "ISQ stable et satisfaisant"),
    ],
    StatutImplant.COMPLICATION: [
        ("ISQ_LOW", "ISQ faible"),
        ("ISQ_DECLINING", "ISQ en diminution"),
        ("INFECTION", "Infection"),
        ("PAIN", "Douleur persistante"),
        ("MOBILITY", "Mobilité de l'implant"),
        ("RADIO_ANOMALY", "Anomalie radiologique"),
    ],
    StatutImplant.ECHEC: [
        ("FAILURE_NO_OSSEOINTEGRATION", "Absence d'ostéo-intégration"),
        ("FAILURE_IMPLANT_LOST", "Implant perdu / déposé"),
        ("FAILURE_MOBILITY", "Mobilité irréversible"),
    ],
}


def compute_suggestions(
    current_status: StatutImplant | str,
    isq_pose: float | None,
    isq_2m: float | None,
    isq_3m: float | None,
    isq_6m: float | None,
) -> list[StatusSuggestion]:
    current = StatutImplant(current_status)
    latest = latest_isq(isq_pose, isq_2m, isq_3m, isq_6m)
    suggestions: list[StatusSuggestion] = []

    if latest is not None:
        if latest < ISQ_FAILURE_BELOW:
            suggestions.append(
                StatusSuggestion(
                    status=StatutImplant.ECHEC,
                    confidence=SuggestionConfidence.HIGH,
                    rule=f"ISQ {latest:g} < {ISQ_FAILURE_BELOW}: stabilité critique",
                    reason_code="ISQ_CRITICAL",
                )
            )
        elif latest < ISQ_COMPLICATION_BELOW:
            confidence = (
                SuggestionConfidence.HIGH
                if latest < ISQ_COMPLICATION_HIGH_BELOW
                else SuggestionConfidence.MEDIUM
            )
            suggestions.append(
                StatusSuggestion(
                    status=StatutImplant.COMPLICATION,
                    confidence=confidence,
                    rule=f"ISQ {latest:g} < {ISQ_COMPLICATION_BELOW}: stabilité faible",
                    reason_code="ISQ_LOW",
                )
            )

    decline = isq_decline((isq_pose, isq_2m, isq_3m, isq_6m))
    if decline is not None and decline >= ISQ_DECLINE_MIN:
        suggestions.append(
            StatusSuggestion(
                status=StatutImplant.COMPLICATION,
                confidence=SuggestionConfidence.MEDIUM,
                rule=f"Baisse de l'ISQ de {decline:g} points entre les deux dernières mesures",
                reason_code="ISQ_DECLINING",
            )
        )

    measured_late = isq_6m is not None or isq_3m is not None
    if current == StatutImplant.EN_SUIVI and measured_late and latest is not None:
        if latest >= ISQ_STABLE_FROM:
            suggestions.append(
                StatusSuggestion(
                    status=StatutImplant.SUCCES,
                    confidence=SuggestionConfidence.HIGH,
                    rule=f"ISQ {latest:g} >= {ISQ_STABLE_FROM} après 3 mois: ostéo-intégration stable",
                    reason_code="ISQ_STABLE",
                )
            )
        elif latest >= ISQ_ACCEPTABLE_FROM:
            suggestions.append(
                StatusSuggestion(
                    status=StatutImplant.SUCCES,
                    confidence=SuggestionConfidence.MEDIUM,
                    rule=f"ISQ {latest:g} >= {ISQ_ACCEPTABLE_FROM} après 3 mois: stabilité acceptable",
                    reason_code="ISQ_ACCEPTABLE",
                )
            )

    return [s for s in suggestions if s.status != current]


async def get_status_suggestions(
    db: AsyncSession, organisation_id: str, surgery_implant_id: int
) -> StatusSuggestionsResponse:
    surgery_implant = await get_surgery_implant(db, organisation_id, surgery_implant_id)
    return StatusSuggestionsResponse(
        implant_id=surgery_implant.id,
        current_status=surgery_implant.statut,
        latest_isq=surgery_implant.latest_isq,
        isq_history=IsqHistory(
            pose=surgery_implant.isq_pose,
            m2=surgery_implant.isq_2m,
            m3=surgery_implant.isq_3m,
            m6=surgery_implant.isq_6m,
        ),
        suggestions=compute_suggestions(
            surgery_implant.statut,
            surgery_implant.isq_pose,
            surgery_implant.isq_2m,
            surgery_implant.isq_3m,
            surgery_implant.isq_6m,
        ),
    )


async def list_status_reasons(
    db: AsyncSession,
    organisation_id: str,
    status: StatutImplant | None = None,
) -> list[ImplantStatusReason]:
    """Motifs système et motifs propres au cabinet, actifs uniquement."""
    query = select(ImplantStatusReason).where(
        or_(
            ImplantStatusReason.organisation_id.is_(None),
            ImplantStatusReason.organisation_id == organisation_id,
        ),
        ImplantStatusReason.is_active.is_(True),
    )
    if status is not None:
        query = query.where(ImplantStatusReason.status == status.value)
    result = await db.execute(
        query.order_by(ImplantStatusReason.is_system.desc(), ImplantStatusReason.label)
    )
    return list(result.scalars().all())


async def ensure_system_status_reasons(db: AsyncSession) -> int:
    """Crée les motifs système manquants; retourne le nombre de motifs ajoutés."""
    result = await db.execute(
        select(ImplantStatusReason.status, ImplantStatusReason.code).where(
            ImplantStatusReason.organisation_id.is_(None)
        )
    )
    existing = {(status, code) for status, code in result.all()}
    added = 0
    for status, reasons in SYSTEM_STATUS_REASONS.items():
        for code, label in reasons:
            if (status.value, code) in existing:
                continue
            db.add(
                ImplantStatusReason(
                    organisation_id=None,
                    status=status.value,
                    code=code,
                    label=label,
                    is_system=True,
                    is_active=True,
                )
            )
            added += 1
    if added:
        await db.commit()
        logger.info(f"{added} motif(s) de statut système créé(s)")
    return added


async def _get_reason(
    db: AsyncSession, organisation_id: str, reason_id: int, status: StatutImplant
) -> ImplantStatusReason:
    result = await db.execute(
        select(ImplantStatusReason).where(
            ImplantStatusReason.id == reason_id,
            ImplantStatusReason.status == status.value,
            or_(
                ImplantStatusReason.organisation_id.is_(None),
                ImplantStatusReason.organisation_id == organisation_id,
            ),
        )
    )
    reason = result.scalar_one_or_none()
    if reason is None:
        raise StatusReasonNotFoundError(
            detail=f"Motif {reason_id} introuvable pour le statut {status.value}",
            reason_id=reason_id,
        )
    return reason


async def change_status(
    db: AsyncSession,
    organisation_id: str,
    surgery_implant_id: int,
    request: StatusChangeRequest,
    changed_by: str,
) -> SurgeryImplant:
    """
    Change le statut d'un implant posé et trace le changement.

    Raises:
        SurgeryImplantNotFoundError: Implant posé inconnu
        ImplantStatusConflictError: Le statut demandé est le statut courant
        StatusReasonNotFoundError: Motif inconnu ou d'un autre statut
    """
    with tracer.start_as_current_span("change_implant_status") as span:
        span.set_attribute("surgery_implant.id", surgery_implant_id)
        surgery_implant = await get_surgery_implant(db, organisation_id, surgery_implant_id)

        previous = surgery_implant.statut
        if previous == request.status.value:
            raise ImplantStatusConflictError(
                detail=f"L'implant {surgery_implant_id} est déjà au statut {previous}",
                surgery_implant_id=surgery_implant_id,
            )
        if request.reason_id is not None:
            await _get_reason(db, organisation_id, request.reason_id, request.status)

        db.add(
            ImplantStatusHistory(
                organisation_id=organisation_id,
                surgery_implant_id=surgery_implant.id,
                from_status=previous,
                to_status=request.status.value,
                reason_id=request.reason_id,
                reason_free_text=request.reason_free_text,
                evidence=request.evidence,
                changed_by=changed_by,
            )
        )
        surgery_implant.statut = request.status.value
        await db.commit()
        await db.refresh(surgery_implant)

        span.set_attribute("status.from", previous)
        span.set_attribute("status.to", request.status.value)
        logger.info(
            f"Statut de l'implant posé {surgery_implant_id}: {previous} -> {request.status.value}"
        )

        await invalidate_organisation_stats(organisation_id)
        await publish(
            "cassius.surgery_implant.status_changed",
            {
                "surgery_implant_id": surgery_implant.id,
                "organisation_id": organisation_id,
                "from_status": previous,
                "to_status": request.status.value,
                "changed_by": changed_by,
            },
        )
        return surgery_implant


async def list_status_history(
    db: AsyncSession, organisation_id: str, surgery_implant_id: int
) -> list[StatusHistoryResponse]:
    await get_surgery_implant(db, organisation_id, surgery_implant_id)
    result = await db.execute(
        select(ImplantStatusHistory)
        .where(
            ImplantStatusHistory.surgery_implant_id == surgery_implant_id,
            ImplantStatusHistory.organisation_id == organisation_id,
        )
        .order_by(ImplantStatusHistory.changed_at.desc())
    )
    return [
        StatusHistoryResponse(
            id=entry.id,
            surgery_implant_id=entry.surgery_implant_id,
            from_status=entry.from_status,
            to_status=entry.to_status,
            reason_id=entry.reason_id,
            reason_label=entry.reason.label if entry.reason else None,
            reason_free_text=entry.reason_free_text,
            evidence=entry.evidence,
            changed_by=entry.changed_by,
            changed_at=entry.changed_at,
        )
        for entry in result.unique().scalars().all()
    ]
