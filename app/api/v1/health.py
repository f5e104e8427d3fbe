import logging
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core import events_redis

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    status: Literal["ok", "error"] = Field(..., description="État global du service")
    database: Literal["ok", "error"]
    redis: Literal["ok", "unavailable"]


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_session)):
    """PostgreSQL est requis; Redis est optionnel (cache et événements dégradés)."""
    try:
        result = await db.execute(select(text("1")))
        result.scalar_one()
    except Exception as e:
        logger.error(f"Base de données injoignable: {e}")
        raise HTTPException(status_code=503, detail=f"Base de données injoignable: {e!s}") from None

    redis_status = "unavailable"
    client = events_redis.redis_client
    if client is not None:
        try:
            await client.ping()
            redis_status = "ok"
        except Exception as e:
            logger.warning(f"Redis injoignable: {e}")

    return HealthResponse(status="ok", database="ok", redis=redis_status)
