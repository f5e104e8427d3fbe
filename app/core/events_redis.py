"""
Messaging Redis Pub/Sub pour Cassius.

Les services publient des événements de domaine (`cassius.patient.created`,
`cassius.flag.created`, ...) à destination des autres composants du cabinet
(notifications, synchronisation agenda). Pas de persistance garantie: un
événement publié sans abonné est perdu.

Le même client sert au cache (`app.core.cache`). Si Redis est injoignable au
démarrage, le service fonctionne sans événements ni cache.

Usage:
    from app.core.events import publish

    await publish("cassius.flag.created", {"flag_id": 12})
"""

import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import redis.asyncio as redis
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import BaseModel
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import settings
from app.core.retry import _log_retry_attempt

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

redis_client: redis.Redis | None = None


async def init_redis():
    """Initialise le client Redis au démarrage."""
    global redis_client
    redis_client = redis.from_url(
        settings.REDIS_URL,
        db=settings.REDIS_DB,
        decode_responses=True,
        socket_timeout=5.0,
        socket_connect_timeout=5.0,
    )
    await redis_client.ping()
    logger.info(f"Client Redis initialisé: {settings.REDIS_URL}")


async def close_redis():
    """Ferme le client Redis proprement."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Client Redis fermé")


async def publish(subject: str, payload: dict | BaseModel, max_retries: int = 3):
    """
    Publie un événement via Redis Pub/Sub.

    Args:
        subject: Sujet de l'événement (ex: "cassius.patient.created")
        payload: Données (dict ou modèle Pydantic)
        max_retries: Nombre maximum de tentatives

    Raises:
        redis.RedisError: Si toutes les tentatives échouent
    """
    if redis_client is None:
        logger.debug(f"Redis non initialisé, événement '{subject}' ignoré")
        return

    if isinstance(payload, BaseModel):
        payload_dict = payload.model_dump(mode="json")
    else:
        payload_dict = payload

    message_id = str(uuid.uuid4())
    event_data = {
        "id": message_id,
        "subject": subject,
        "timestamp": datetime.now(UTC).isoformat(),
        "data": payload_dict,
    }

    with tracer.start_as_current_span(
        f"publish.{subject}",
        kind=trace.SpanKind.PRODUCER,
        attributes={
            "messaging.system": "redis",
            "messaging.destination": subject,
            "messaging.message.id": message_id,
        },
    ) as span:
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(redis.RedisError),
                stop=stop_after_attempt(max_retries),
                wait=wait_exponential(min=1, max=4),
                before_sleep=_log_retry_attempt,
                reraise=True,
            ):
                with attempt:
                    await redis_client.publish(subject, json.dumps(event_data, default=str))
        except redis.RedisError as e:
            error_msg = f"Échec définitif publication '{subject}' après {max_retries} tentatives: {e}"
            logger.error(error_msg, exc_info=True)
            span.set_status(Status(StatusCode.ERROR, error_msg))
            span.record_exception(e)
            raise

        logger.debug(f"Événement '{subject}' publié avec ID: {message_id}")
        span.add_event("Événement publié")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie FastAPI pour Redis; un Redis injoignable n'empêche pas le démarrage."""
    try:
        await init_redis()
    except (redis.RedisError, OSError) as e:
        logger.warning(f"Redis injoignable ({settings.REDIS_URL}), événements et cache désactivés: {e}")
        await close_redis()

    try:
        yield
    finally:
        await close_redis()
        logger.info("Messaging Redis arrêté")


__all__ = ["lifespan", "publish"]
