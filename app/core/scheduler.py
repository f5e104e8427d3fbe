"""
Tâches planifiées du service (APScheduler).

- Détection quotidienne des alertes pour tous les cabinets (cron, FLAG_DETECTION_HOUR)
- Passage en COMPLETED des rendez-vous passés (intervalle)
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.config import settings
from app.services.appointment_service import auto_complete_past_appointments
from app.services.flag_engine import run_flag_detection_all

logger = logging.getLogger(__name__)

FLAG_DETECTION_JOB_ID = "flag_detection"
APPOINTMENT_AUTOCOMPLETE_JOB_ID = "appointment_autocomplete"

scheduler = AsyncIOScheduler(timezone="UTC")


def register_jobs(target: AsyncIOScheduler) -> None:
    target.add_job(
        run_flag_detection_all,
        "cron",
        hour=settings.FLAG_DETECTION_HOUR,
        minute=0,
        id=FLAG_DETECTION_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    target.add_job(
        auto_complete_past_appointments,
        "interval",
        seconds=settings.APPOINTMENT_AUTOCOMPLETE_INTERVAL_SECONDS,
        id=APPOINTMENT_AUTOCOMPLETE_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )


def start_scheduler() -> bool:
    """Démarre le scheduler si SCHEDULER_ENABLED; retourne True s'il tourne."""
    if not settings.SCHEDULER_ENABLED:
        logger.info("Scheduler désactivé (SCHEDULER_ENABLED=false)")
        return False
    if scheduler.running:
        return True

    register_jobs(scheduler)
    scheduler.start()
    logger.info(
        f"Scheduler démarré: détection des alertes à {settings.FLAG_DETECTION_HOUR}h UTC, "
        f"auto-complétion toutes les {settings.APPOINTMENT_AUTOCOMPLETE_INTERVAL_SECONDS}s"
    )
    return True


def stop_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler arrêté")
