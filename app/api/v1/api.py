from fastapi import APIRouter

from app.api.v1 import health
from app.api.v1.endpoints import (
    appointments,
    audit,
    filters,
    flags,
    implants,
    notifications,
    operations,
    patients,
    saved_filters,
    search,
    statistics,
    status_reasons,
    surgery_implants,
)
from app.schemas import COMMON_RESPONSES

# Router principal avec réponses RFC 9457 par défaut
router = APIRouter(responses=COMMON_RESPONSES)

router.include_router(health.router, tags=["health"])
router.include_router(patients.router, prefix="/patients", tags=["patients"])
router.include_router(operations.router, prefix="/operations", tags=["operations"])
router.include_router(implants.router, prefix="/implants", tags=["implants"])
router.include_router(
    surgery_implants.router, prefix="/surgery-implants", tags=["surgery-implants"]
)
router.include_router(status_reasons.router, prefix="/status-reasons", tags=["status-reasons"])
router.include_router(appointments.router, prefix="/appointments", tags=["appointments"])
router.include_router(flags.router, prefix="/flags", tags=["flags"])
router.include_router(saved_filters.router, prefix="/saved-filters", tags=["saved-filters"])
router.include_router(filters.router, prefix="/filters", tags=["filters"])
router.include_router(statistics.router, prefix="/statistics", tags=["statistics"])
router.include_router(search.router, prefix="/search", tags=["search"])
router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
