"""
Cache Redis de Cassius.

Cache-aside avec TTL: les agrégats coûteux (tableau de bord, résumé des
alertes, marques d'implants) sont relus depuis Redis et supprimés
explicitement quand un acte, un implant ou une alerte change. Redis absent
ou en erreur équivaut à un cache vide.

Usage:
    cached = await cache_get(cache_key_stats_dashboard(org))
    if cached:
        return DashboardStatistics.model_validate_json(cached)
    await cache_set(cache_key_stats_dashboard(org), stats.model_dump_json(), ttl=120)
"""

import logging
import time
from contextlib import contextmanager

from opentelemetry import metrics
from redis import RedisError

from app.core.config import settings

logger = logging.getLogger(__name__)

meter = metrics.get_meter("cassius-api.cache")

cache_hits_counter = meter.create_counter(
    name="cache_hits_total",
    description="Total number of cache hits",
    unit="1",
)
cache_misses_counter = meter.create_counter(
    name="cache_misses_total",
    description="Total number of cache misses",
    unit="1",
)
cache_latency_histogram = meter.create_histogram(
    name="cache_latency_seconds",
    description="Cache operation latency in seconds",
    unit="s",
)


def _get_redis_client():
    """Client partagé avec le messaging; None si Redis n'est pas initialisé."""
    from app.core.events_redis import redis_client

    return redis_client


def _active_client():
    if not settings.CACHE_ENABLED:
        return None
    return _get_redis_client()


def _key_prefix(key: str) -> str:
    """cassius:stats:org-1:dashboard -> stats"""
    parts = key.split(":")
    return parts[1] if len(parts) >= 2 else "unknown"


@contextmanager
def _timed(operation: str, key: str):
    start = time.perf_counter()
    prefix = _key_prefix(key)
    try:
        yield prefix
    except (RedisError, OSError):
        prefix = "error"
        raise
    finally:
        cache_latency_histogram.record(
            time.perf_counter() - start, {"operation": operation, "key_prefix": prefix}
        )


async def cache_get(key: str) -> str | None:
    """
    Lit une valeur du cache.

    Returns:
        Valeur JSON, ou None si absente, cache désactivé ou erreur Redis
    """
    client = _active_client()
    if client is None:
        return None

    try:
        with _timed("get", key) as prefix:
            value = await client.get(key)
    except (RedisError, OSError) as e:
        cache_misses_counter.add(1, {"key_prefix": "error"})
        logger.warning(f"Erreur cache GET pour {key}: {e}")
        return None

    if value:
        cache_hits_counter.add(1, {"key_prefix": prefix})
        logger.debug(f"Cache HIT: {key}")
        return value
    cache_misses_counter.add(1, {"key_prefix": prefix})
    logger.debug(f"Cache MISS: {key}")
    return None


async def cache_set(key: str, value: str, ttl: int | None = None) -> bool:
    """Écrit une valeur (TTL par défaut CACHE_TTL_DEFAULT); False si rien n'est écrit."""
    client = _active_client()
    if client is None:
        return False

    ttl = ttl or settings.CACHE_TTL_DEFAULT
    try:
        with _timed("set", key):
            await client.set(key, value, ex=ttl)
    except (RedisError, OSError) as e:
        logger.warning(f"Erreur cache SET pour {key}: {e}")
        return False
    logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
    return True


async def cache_delete(key: str) -> bool:
    client = _active_client()
    if client is None:
        return False

    try:
        await client.delete(key)
    except (RedisError, OSError) as e:
        logger.warning(f"Erreur cache DELETE pour {key}: {e}")
        return False
    logger.debug(f"Cache DELETE: {key}")
    return True


def cache_key_stats_dashboard(organisation_id: str) -> str:
    return f"cassius:stats:{organisation_id}:dashboard"


def cache_key_flag_summary(organisation_id: str) -> str:
    return f"cassius:flags:{organisation_id}:summary"


def cache_key_implant_brands(organisation_id: str) -> str:
    return f"cassius:implants:{organisation_id}:brands"


async def invalidate_organisation_stats(organisation_id: str) -> None:
    """Supprime les agrégats d'un cabinet après une écriture clinique."""
    await cache_delete(cache_key_stats_dashboard(organisation_id))
    await cache_delete(cache_key_flag_summary(organisation_id))


__all__ = [
    "cache_delete",
    "cache_get",
    "cache_key_flag_summary",
    "cache_key_implant_brands",
    "cache_key_stats_dashboard",
    "cache_set",
    "invalidate_organisation_stats",
]
