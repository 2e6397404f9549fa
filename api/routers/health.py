"""
Health check endpoint.

Checks Postgres (access ledger) and Redis (rate limits) connectivity and
reports whether this process currently holds a broker connection.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from redis.asyncio import Redis

from api.dependencies import get_db, get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    request: Request,
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
) -> dict:
    await db.execute(text("SELECT 1"))
    await redis.ping()

    broker = getattr(request.app.state, "broker", None)
    return {
        "status": "healthy",
        "postgres": "ok",
        "redis": "ok",
        "broker": "connected" if broker is not None and broker.is_connected else "idle",
    }
