from opentelemetry.instrumentation import auto_instrumentation

auto_instrumentation.initialize()

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi_problem.handler import add_exception_handler, new_exception_handler

from app.api.v1 import api as api_v1
from app.core.config import settings
from app.core.database import async_session_maker, create_db_and_tables
from app.core.events import lifespan as events_lifespan
from app.core.scheduler import start_scheduler, stop_scheduler
from app.services.implant_status_service import ensure_system_status_reasons

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gère le cycle de vie de l'application:
    - Crée les tables en développement (Alembic ailleurs).
    - Initialise le messaging et le cache Redis.
    - Démarre les tâches planifiées (alertes, auto-complétion des rendez-vous).
    """
    logger.info("=== Démarrage de l'application ===")

    if settings.ENVIRONMENT == "development":
        await create_db_and_tables()
        async with async_session_maker() as db:
            await ensure_system_status_reasons(db)

    async with events_lifespan(app):
        try:
            start_scheduler()
            logger.info("=== Application démarrée ===")
            yield
        finally:
            logger.info("=== Arrêt de l'application ===")
            stop_scheduler()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.DESCRIPTION,
    lifespan=lifespan,
    openapi_url=f"{settings.get_api_prefix()}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Erreurs au format RFC 9457 Problem Details
exception_handler = new_exception_handler(
    logger=logger,
    documentation_uri_template="",
)
add_exception_handler(app, exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin) for origin in settings.ALLOWED_ORIGINS],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.ENVIRONMENT not in ("development", "test"):
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.TRUSTED_HOSTS,
    )

app.include_router(api_v1.router, prefix=settings.get_api_prefix("v1"))
