"""Calculs ISQ (Implant Stability Quotient) partagés par les services."""

from collections.abc import Iterable
from datetime import date
from enum import Enum


class IsqStability(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


LOW_STABILITY_BELOW = 60
HIGH_STABILITY_FROM = 70
CRITICAL_BELOW = 50

# (jours depuis la pose, libellé), du plus tardif au plus précoce
TIMING_LABELS: tuple[tuple[int, str], ...] = (
    (1460, "+48M"),
    (1095, "+36M"),
    (730, "+24M"),
    (540, "+18M"),
    (365, "+12M"),
    (180, "+6M"),
    (120, "+4M"),
    (90, "+3M"),
    (60, "+2M"),
)


def classify_stability(isq: float) -> IsqStability:
    if isq < LOW_STABILITY_BELOW:
        return IsqStability.LOW
    if isq < HIGH_STABILITY_FROM:
        return IsqStability.MODERATE
    return IsqStability.HIGH


def clinical_label(isq: float) -> str:
    """Libellé affiché au praticien: `critical` sous 50, sinon la classe de stabilité."""
    if isq < CRITICAL_BELOW:
        return "critical"
    return classify_stability(isq).value


def timing_label(date_pose: date, measured_on: date) -> str:
    days = (measured_on - date_pose).days
    for threshold, label in TIMING_LABELS:
        if days >= threshold:
            return label
    return "+0"


def weighted_isq(vestibulaire: float, mesial: float, distal: float) -> float:
    """Moyenne pondérée (V*2 + M + D) / 4, la mesure vestibulaire compte double."""
    return round((vestibulaire * 2 + mesial + distal) / 4, 1)


def latest_isq(
    isq_pose: float | None,
    isq_2m: float | None,
    isq_3m: float | None,
    isq_6m: float | None,
) -> float | None:
    for value in (isq_6m, isq_3m, isq_2m, isq_pose):
        if value is not None:
            return value
    return None


def last_two(values: Iterable[float | None]) -> tuple[float, float] | None:
    """Les deux dernières mesures non nulles (avant-dernière, dernière), dans l'ordre donné."""
    present = [v for v in values if v is not None]
    if len(present) < 2:
        return None
    return present[-2], present[-1]


def isq_decline(values: Iterable[float | None]) -> float | None:
    """Baisse entre les deux dernières mesures (positive si l'ISQ diminue)."""
    pair = last_two(values)
    if pair is None:
        return None
    previous, latest = pair
    return previous - latest
