"""
FastAPI dependency injection.

Besides the usual database session / Redis handles, the admission gate is
built out of dependencies here. A public submission route declares:

    dependencies=[Depends(rate_limit(...)), Depends(require_ip_access)]

FastAPI resolves route dependencies in order and stops at the first
exception, so a rate-limited request is rejected before a ledger session
is even opened, and neither check touches the broker.
"""

import hmac
from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from access.gate import AccessGate, resolve_client_ip
from access.ledger import AccessLedger
from access.rate_limit import RateLimiter
from broker.publisher import JobPublisher
from broker.queue import JobQueue
from config.settings import settings
from models.base import AsyncSessionLocal
from models.enums import AccessStatus


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yields an async database session, auto-closes when the request ends."""
    async with AsyncSessionLocal() as session:
        yield session


async def get_redis(request: Request) -> Redis:
    """Returns the Redis client stored on the app during startup."""
    return request.app.state.redis


async def get_ledger(db: AsyncSession = Depends(get_db)) -> AccessLedger:
    return AccessLedger(db)


async def get_job_queue(request: Request) -> JobQueue:
    return request.app.state.job_queue


async def get_publisher(request: Request) -> JobPublisher:
    return request.app.state.publisher


def client_ip(request: Request) -> str:
    peer = request.client.host if request.client else None
    return resolve_client_ip(request.headers.get("x-forwarded-for"), peer)


def rate_limit(scope: str, limit: int, window: Optional[int] = None):
    """Dependency factory: at most `limit` requests per IP per window for `scope`."""

    async def _check(request: Request, redis: Redis = Depends(get_redis)) -> None:
        window_seconds = window or settings.RATE_LIMIT_WINDOW
        limiter = RateLimiter(redis, scope, limit, window_seconds)
        result = await limiter.hit(client_ip(request))
        if not result.allowed:
            raise HTTPException(
                status_code=429,
                detail=f"Too many requests. Maximum {result.limit} per {window_seconds}s, try again later.",
                headers={"Retry-After": str(result.retry_after)},
            )

    return _check


async def require_ip_access(
    request: Request,
    ledger: AccessLedger = Depends(get_ledger),
) -> None:
    """Public endpoints only: admit whitelisted IPs, reject the rest with a reason."""
    decision = await AccessGate(ledger.lookup).check(client_ip(request))
    if decision.admitted:
        return

    if decision.status == AccessStatus.BLACKLIST.value:
        detail = {"status": "Blacklisted", "message": decision.message}
    else:
        detail = {"error": decision.message}
    raise HTTPException(status_code=403, detail=detail)


async def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    """Shared-secret check for admin endpoints. No configured key means no admin access."""
    expected = settings.ADMIN_API_KEY
    if not expected or not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Forbidden")
