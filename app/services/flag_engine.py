"""
Moteur de détection des alertes cliniques.

Les détecteurs sont des fonctions pures qui travaillent sur des instantanés
chargés en une poignée de requêtes (`load_snapshot`). La réconciliation
compare les alertes détectées aux alertes ouvertes par leur clé
`type:entity_type:entity_id`:
- clé détectée et absente: l'alerte est créée
- clé détectée et déjà ouverte: l'alerte est conservée
- alerte ouverte dont la clé n'est plus détectée: résolue automatiquement
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from opentelemetry import trace
from sqlalchemy import distinct, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import cache_delete, cache_key_flag_summary
from app.core.config import settings
from app.core.database import async_session_maker
from app.core.events import publish
from app.core.retry import retry_async_operation
from app.models import Appointment, Flag, Operation, Patient, SurgeryImplant
from app.models.enums import (
    AppointmentStatus,
    FlagEntityType,
    FlagLevel,
    FlagType,
    PatientStatut,
    StatutImplant,
)
from app.schemas.flag import FlagDetectionResult
from app.services import notification_service
from app.services.isq import latest_isq

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class IsqPoint:
    measured_at: datetime
    isq: float
    completed: bool


@dataclass
class ImplantSnapshot:
    id: int
    patient_id: int
    site_fdi: str
    marque: str
    statut: str
    date_pose: date
    isq_pose: float | None = None
    isq_2m: float | None = None
    isq_3m: float | None = None
    isq_6m: float | None = None
    isq_points: list[IsqPoint] = field(default_factory=list)


@dataclass
class OperationSnapshot:
    id: int
    patient_id: int
    date_operation: date
    has_completed_followup: bool


@dataclass
class PatientSnapshot:
    id: int
    nom: str
    prenom: str
    statut: str
    has_implant: bool
    last_completed_visit: datetime | None


@dataclass
class DetectionSnapshot:
    implants: list[ImplantSnapshot] = field(default_factory=list)
    operations: list[OperationSnapshot] = field(default_factory=list)
    patients: list[PatientSnapshot] = field(default_factory=list)


@dataclass(frozen=True)
class FlagCandidate:
    level: FlagLevel
    type: FlagType
    label: str
    entity_type: FlagEntityType
    entity_id: int
    description: str | None = None
    patient_id: int | None = None

    @property
    def key(self) -> str:
        return f"{self.type.value}:{self.entity_type.value}:{self.entity_id}"


def _isq_timepoint(implant: ImplantSnapshot) -> str:
    if implant.isq_6m is not None:
        return "6m"
    if implant.isq_3m is not None:
        return "3m"
    if implant.isq_2m is not None:
        return "2m"
    return "pose"


def detect_low_isq(implants: list[ImplantSnapshot]) -> list[FlagCandidate]:
    threshold = settings.ISQ_LOW_THRESHOLD
    candidates = []
    for implant in implants:
        value = latest_isq(implant.isq_pose, implant.isq_2m, implant.isq_3m, implant.isq_6m)
        if value is None or value >= threshold:
            continue
        candidates.append(
            FlagCandidate(
                level=FlagLevel.CRITICAL,
                type=FlagType.ISQ_LOW,
                label="ISQ faible",
                description=(
                    f"Implant {implant.marque} site {implant.site_fdi}: "
                    f"ISQ {_isq_timepoint(implant)} = {value:g} (seuil: {threshold - 1})"
                ),
                entity_type=FlagEntityType.IMPLANT,
                entity_id=implant.id,
                patient_id=implant.patient_id,
            )
        )
    return candidates


def detect_declining_isq(implants: list[ImplantSnapshot]) -> list[FlagCandidate]:
    """Compare les deux dernières visites complétées avec mesure ISQ."""
    threshold = settings.ISQ_DECLINE_THRESHOLD
    candidates = []
    for implant in implants:
        completed = sorted(
            (p for p in implant.isq_points if p.completed), key=lambda p: p.measured_at
        )
        if len(completed) < 2:
            continue
        previous, latest = completed[-2].isq, completed[-1].isq
        decline = previous - latest
        if decline < threshold:
            continue
        candidates.append(
            FlagCandidate(
                level=FlagLevel.CRITICAL,
                type=FlagType.ISQ_DECLINING,
                label="ISQ en déclin",
                description=(
                    f"Implant {implant.marque} site {implant.site_fdi}: "
                    f"ISQ {previous:g} → {latest:g} (déclin de {decline:g})"
                ),
                entity_type=FlagEntityType.IMPLANT,
                entity_id=implant.id,
                patient_id=implant.patient_id,
            )
        )
    return candidates


def detect_no_recent_isq(implants: list[ImplantSnapshot], now: datetime) -> list[FlagCandidate]:
    days = settings.DAYS_NO_RECENT_ISQ
    cutoff = now - timedelta(days=days)
    candidates = []
    for implant in implants:
        if implant.statut != StatutImplant.EN_SUIVI.value:
            continue
        if implant.date_pose >= cutoff.date():
            continue
        if any(p.measured_at > cutoff for p in implant.isq_points):
            continue
        candidates.append(
            FlagCandidate(
                level=FlagLevel.WARNING,
                type=FlagType.NO_RECENT_ISQ,
                label="Pas d'ISQ récent",
                description=(
                    f"Implant {implant.marque} site {implant.site_fdi}: "
                    f"aucune mesure ISQ depuis {days} jours"
                ),
                entity_type=FlagEntityType.IMPLANT,
                entity_id=implant.id,
                patient_id=implant.patient_id,
            )
        )
    return candidates


def detect_no_postop_followup(
    operations: list[OperationSnapshot], today: date
) -> list[FlagCandidate]:
    """Actes datant de 30 à 90 jours sans rendez-vous de suivi complété."""
    newest = today - timedelta(days=settings.DAYS_NO_POSTOP_FOLLOWUP)
    oldest = today - timedelta(days=settings.DAYS_POSTOP_WINDOW)
    candidates = []
    for operation in operations:
        if not oldest < operation.date_operation < newest:
            continue
        if operation.has_completed_followup:
            continue
        candidates.append(
            FlagCandidate(
                level=FlagLevel.WARNING,
                type=FlagType.NO_POSTOP_FOLLOWUP,
                label="Pas de suivi post-op",
                description=(
                    f"Chirurgie du {operation.date_operation.isoformat()}: "
                    "aucun rendez-vous de suivi complété"
                ),
                entity_type=FlagEntityType.OPERATION,
                entity_id=operation.id,
                patient_id=operation.patient_id,
            )
        )
    return candidates


def detect_no_recent_appointment(
    patients: list[PatientSnapshot], now: datetime
) -> list[FlagCandidate]:
    days = settings.DAYS_NO_RECENT_APPOINTMENT
    cutoff = now - timedelta(days=days)
    candidates = []
    for patient in patients:
        if patient.statut != PatientStatut.ACTIF.value or not patient.has_implant:
            continue
        if patient.last_completed_visit and patient.last_completed_visit > cutoff:
            continue
        candidates.append(
            FlagCandidate(
                level=FlagLevel.WARNING,
                type=FlagType.NO_RECENT_APPOINTMENT,
                label="Patient sans visite récente",
                description=f"{patient.prenom} {patient.nom}: aucune visite depuis {days} jours",
                entity_type=FlagEntityType.PATIENT,
                entity_id=patient.id,
                patient_id=patient.id,
            )
        )
    return candidates


def detect_flags(snapshot: DetectionSnapshot, now: datetime) -> list[FlagCandidate]:
    """Exécute tous les détecteurs; une clé n'apparaît qu'une fois."""
    found = [
        *detect_low_isq(snapshot.implants),
        *detect_declining_isq(snapshot.implants),
        *detect_no_recent_isq(snapshot.implants, now),
        *detect_no_postop_followup(snapshot.operations, now.date()),
        *detect_no_recent_appointment(snapshot.patients, now),
    ]
    unique: dict[str, FlagCandidate] = {}
    for candidate in found:
        unique.setdefault(candidate.key, candidate)
    return list(unique.values())


@dataclass
class ReconciliationPlan:
    to_create: list[FlagCandidate]
    to_resolve: list[Flag]
    existing: int


def plan_reconciliation(open_flags: list[Flag], candidates: list[FlagCandidate]) -> ReconciliationPlan:
    detected = {candidate.key for candidate in candidates}
    open_keys = {flag.key for flag in open_flags}
    return ReconciliationPlan(
        to_create=[c for c in candidates if c.key not in open_keys],
        to_resolve=[f for f in open_flags if f.key not in detected],
        existing=sum(1 for c in candidates if c.key in open_keys),
    )


async def load_snapshot(db: AsyncSession, organisation_id: str) -> DetectionSnapshot:
    """Charge les données nécessaires aux détecteurs pour un cabinet."""
    implant_rows = await db.execute(
        select(SurgeryImplant, Operation.patient_id)
        .join(Operation, SurgeryImplant.surgery_id == Operation.id)
        .where(SurgeryImplant.organisation_id == organisation_id)
    )

    points: dict[int, list[IsqPoint]] = defaultdict(list)
    isq_rows = await db.execute(
        select(Appointment.surgery_implant_id, Appointment.date_start, Appointment.isq, Appointment.status)
        .where(
            Appointment.organisation_id == organisation_id,
            Appointment.surgery_implant_id.is_not(None),
            Appointment.isq.is_not(None),
        )
    )
    for surgery_implant_id, date_start, isq, status in isq_rows.all():
        points[surgery_implant_id].append(
            IsqPoint(date_start, isq, status == AppointmentStatus.COMPLETED.value)
        )

    implants = [
        ImplantSnapshot(
            id=si.id,
            patient_id=patient_id,
            site_fdi=si.site_fdi,
            marque=si.implant.marque,
            statut=si.statut,
            date_pose=si.date_pose,
            isq_pose=si.isq_pose,
            isq_2m=si.isq_2m,
            isq_3m=si.isq_3m,
            isq_6m=si.isq_6m,
            isq_points=points.get(si.id, []),
        )
        for si, patient_id in implant_rows.unique().all()
    ]

    followed_up = set(
        (
            await db.execute(
                select(distinct(Appointment.operation_id)).where(
                    Appointment.organisation_id == organisation_id,
                    Appointment.operation_id.is_not(None),
                    Appointment.status == AppointmentStatus.COMPLETED.value,
                )
            )
        ).scalars()
    )
    operation_rows = await db.execute(
        select(Operation.id, Operation.patient_id, Operation.date_operation).where(
            Operation.organisation_id == organisation_id
        )
    )
    operations = [
        OperationSnapshot(op_id, patient_id, date_operation, op_id in followed_up)
        for op_id, patient_id, date_operation in operation_rows.all()
    ]

    last_visits = dict(
        (
            await db.execute(
                select(Appointment.patient_id, func.max(Appointment.date_start))
                .where(
                    Appointment.organisation_id == organisation_id,
                    Appointment.status == AppointmentStatus.COMPLETED.value,
                )
                .group_by(Appointment.patient_id)
            )
        ).all()
    )
    with_implants = {implant.patient_id for implant in implants}
    patient_rows = await db.execute(
        select(Patient.id, Patient.nom, Patient.prenom, Patient.statut).where(
            Patient.organisation_id == organisation_id
        )
    )
    patients = [
        PatientSnapshot(
            id=pid,
            nom=nom,
            prenom=prenom,
            statut=statut,
            has_implant=pid in with_implants,
            last_completed_visit=last_visits.get(pid),
        )
        for pid, nom, prenom, statut in patient_rows.all()
    ]

    return DetectionSnapshot(implants=implants, operations=operations, patients=patients)


async def run_flag_detection(
    db: AsyncSession,
    organisation_id: str,
    now: datetime | None = None,
) -> FlagDetectionResult:
    """
    Détecte les alertes d'un cabinet et réconcilie avec les alertes ouvertes.

    Args:
        db: Session de base de données async
        organisation_id: Cabinet concerné
        now: Instant de référence (UTC); maintenant par défaut

    Returns:
        Compteurs created / existing / resolved
    """
    now = now or datetime.now(UTC)
    with tracer.start_as_current_span("run_flag_detection") as span:
        span.set_attribute("organisation.id", organisation_id)

        snapshot = await load_snapshot(db, organisation_id)
        candidates = detect_flags(snapshot, now)

        open_result = await db.execute(
            select(Flag).where(Flag.organisation_id == organisation_id, Flag.resolved_at.is_(None))
        )
        plan = plan_reconciliation(list(open_result.scalars().all()), candidates)

        for flag in plan.to_resolve:
            flag.resolved_at = now
            flag.resolved_by = None

        created_flags = [
            Flag(
                organisation_id=organisation_id,
                level=c.level.value,
                type=c.type.value,
                label=c.label,
                description=c.description,
                entity_type=c.entity_type.value,
                entity_id=c.entity_id,
                patient_id=c.patient_id,
            )
            for c in plan.to_create
        ]
        db.add_all(created_flags)
        notifications = await notification_service.notify_flags(
            db, organisation_id, created_flags, now
        )
        await db.commit()

        result = FlagDetectionResult(
            created=len(created_flags), existing=plan.existing, resolved=len(plan.to_resolve)
        )
        span.set_attribute("flags.created", result.created)
        span.set_attribute("flags.existing", result.existing)
        span.set_attribute("flags.resolved", result.resolved)
        span.set_attribute("notifications.created", len(notifications))
        logger.info(
            f"Détection d'alertes {organisation_id}: {result.created} créée(s), "
            f"{result.existing} existante(s), {result.resolved} résolue(s)"
        )

        if result.created or result.resolved:
            await cache_delete(cache_key_flag_summary(organisation_id))
        for flag in created_flags:
            await publish(
                "cassius.flag.created",
                {
                    "flag_id": flag.id,
                    "organisation_id": organisation_id,
                    "type": flag.type,
                    "level": flag.level,
                    "entity_type": flag.entity_type,
                    "entity_id": flag.entity_id,
                },
            )

        return result


async def list_organisations(db: AsyncSession) -> list[str]:
    result = await db.execute(select(distinct(Patient.organisation_id)))
    return list(result.scalars().all())


async def run_flag_detection_all(now: datetime | None = None) -> dict[str, FlagDetectionResult]:
    """Job planifié: détection pour chaque cabinet, une session par cabinet."""
    async with async_session_maker() as db:
        organisations = await list_organisations(db)

    async def detect(organisation_id: str) -> FlagDetectionResult:
        async with async_session_maker() as db:
            return await run_flag_detection(db, organisation_id, now)

    results: dict[str, FlagDetectionResult] = {}
    for organisation_id in organisations:
        try:
            results[organisation_id] = await retry_async_operation(
                detect, organisation_id, exceptions=(OperationalError, OSError)
            )
        except Exception as e:
            logger.error(f"Échec de la détection d'alertes pour {organisation_id}: {e}", exc_info=True)
    logger.info(f"Détection d'alertes terminée pour {len(results)}/{len(organisations)} cabinet(s)")
    return results
