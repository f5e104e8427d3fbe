"""
Tests du messaging Redis Pub/Sub.

Le client Redis est mocké: aucun serveur n'est nécessaire.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
import redis.asyncio as redis
from fastapi import FastAPI
from pydantic import BaseModel

from app.core import events_redis
from app.core.events import lifespan, publish


class FlagCreatedEvent(BaseModel):
    flag_id: int
    organisation_id: str


class TestEventsPublish:
    """Tests pour la publication d'événements."""

    @patch("app.core.events_redis.redis_client")
    async def test_publish_dict_payload(self, mock_redis):
        mock_redis.publish = AsyncMock()

        await publish("cassius.flag.created", {"flag_id": 12, "organisation_id": "org-1"})

        subject, raw = mock_redis.publish.call_args.args
        event = json.loads(raw)
        assert subject == "cassius.flag.created"
        assert event["subject"] == "cassius.flag.created"
        assert event["data"] == {"flag_id": 12, "organisation_id": "org-1"}
        assert event["id"]
        assert event["timestamp"]

    @patch("app.core.events_redis.redis_client")
    async def test_publish_pydantic_model(self, mock_redis):
        mock_redis.publish = AsyncMock()

        await publish("cassius.flag.created", FlagCreatedEvent(flag_id=3, organisation_id="org-1"))

        event = json.loads(mock_redis.publish.call_args.args[1])
        assert event["data"] == {"flag_id": 3, "organisation_id": "org-1"}

    @patch("app.core.events_redis.redis_client")
    async def test_publish_retry_on_failure(self, mock_redis):
        """Une erreur Redis transitoire est rejouée."""
        mock_redis.publish = AsyncMock(side_effect=[redis.ConnectionError("reset"), 1])

        with patch("asyncio.sleep", new_callable=AsyncMock):
            await publish("cassius.patient.created", {"patient_id": 1})

        assert mock_redis.publish.call_count == 2

    @patch("app.core.events_redis.redis_client")
    async def test_publish_max_retries_exceeded(self, mock_redis):
        mock_redis.publish = AsyncMock(side_effect=redis.ConnectionError("down"))

        with patch("asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(redis.ConnectionError):
                await publish("cassius.patient.created", {"patient_id": 1}, max_retries=2)

        assert mock_redis.publish.call_count == 2

    async def test_publish_without_redis_is_ignored(self):
        with patch("app.core.events_redis.redis_client", None):
            await publish("cassius.flag.resolved", {"flag_id": 1})


class TestEventsLifespan:
    """Tests pour le cycle de vie du messaging."""

    @patch("app.core.events_redis.close_redis", new_callable=AsyncMock)
    @patch("app.core.events_redis.init_redis", new_callable=AsyncMock)
    async def test_lifespan_startup_shutdown(self, mock_init, mock_close):
        async with lifespan(FastAPI()):
            mock_init.assert_awaited_once()
            mock_close.assert_not_called()

        mock_close.assert_awaited_once()

    @patch("app.core.events_redis.close_redis", new_callable=AsyncMock)
    @patch(
        "app.core.events_redis.init_redis",
        new_callable=AsyncMock,
        side_effect=redis.ConnectionError("refused"),
    )
    async def test_unreachable_redis_does_not_block_startup(self, mock_init, mock_close):
        async with lifespan(FastAPI()):
            pass

        assert mock_close.await_count == 2

    async def test_close_redis_resets_client(self):
        client = AsyncMock()

        with patch("app.core.events_redis.redis_client", client):
            await events_redis.close_redis()

            assert events_redis.redis_client is None
        client.aclose.assert_awaited_once()
