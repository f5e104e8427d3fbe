"""
Tests d'intégration Redis pour cassius-api.

Ces tests utilisent un vrai Redis sur le port 6380 (docker-compose.test.yaml);
le client de test remplace celui initialisé par le lifespan.
"""

import asyncio
import json
from unittest.mock import patch

import pytest
from redis.asyncio import Redis

from app.core.cache import (
    cache_delete,
    cache_get,
    cache_key_flag_summary,
    cache_key_stats_dashboard,
    cache_set,
    invalidate_organisation_stats,
)
from app.core.events import publish


@pytest.fixture
def live_redis(redis_client: Redis):
    with patch("app.core.events_redis.redis_client", redis_client):
        yield redis_client


@pytest.mark.integration
async def test_cache_roundtrip_with_ttl(live_redis: Redis, organisation_id: str):
    """Valeur relue et TTL appliqué."""
    key = cache_key_flag_summary(organisation_id)

    assert await cache_set(key, '{"total": 3}', ttl=30) is True
    assert await cache_get(key) == '{"total": 3}'
    assert 0 < await live_redis.ttl(key) <= 30


@pytest.mark.integration
async def test_cache_delete(live_redis: Redis, organisation_id: str):
    key = cache_key_flag_summary(organisation_id)
    await cache_set(key, "x")

    assert await cache_delete(key) is True
    assert await cache_get(key) is None


@pytest.mark.integration
async def test_invalidate_organisation_stats(live_redis: Redis, organisation_id: str):
    """Les écritures cliniques invalident le tableau de bord du cabinet seulement."""
    own = cache_key_stats_dashboard(organisation_id)
    other = cache_key_stats_dashboard("org-autre")
    await cache_set(own, "{}")
    await cache_set(other, "{}")

    await invalidate_organisation_stats(organisation_id)

    assert await live_redis.exists(own) == 0
    assert await live_redis.exists(other) == 1


@pytest.mark.integration
async def test_publish_reaches_subscriber(live_redis: Redis):
    """Un abonné Pub/Sub reçoit l'enveloppe de l'événement."""
    pubsub = live_redis.pubsub()
    await pubsub.subscribe("cassius.flag.created")
    await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)

    await publish("cassius.flag.created", {"flag_id": 12})

    message = None
    for _ in range(20):
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=0.5)
        if message:
            break
        await asyncio.sleep(0.05)
    await pubsub.unsubscribe()
    await pubsub.aclose()

    assert message is not None
    event = json.loads(message["data"])
    assert event["subject"] == "cassius.flag.created"
    assert event["data"] == {"flag_id": 12}
    assert event["id"]
