"""
FastAPI application factory.

This file:
1. Creates the FastAPI app
2. Runs startup logic (create ledger tables, connect to Redis, open the broker)
3. Registers the routers and the error handlers
4. Runs shutdown logic (close connections)

Error bodies share one shape: {"success": false, "error": "..."}.

To run:  uvicorn api.main:app --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.asyncio import Redis as AsyncRedis
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routers import access, articles, health, novels, queue, webhooks
from broker.connection import BrokerConnection, Topology
from broker.errors import QueueUnavailable
from broker.publisher import JobPublisher
from broker.queue import JobQueue
from config.settings import settings
from models.base import async_engine, Base

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup (before yield):
    - Creates the access ledger table if it doesn't exist
    - Connects to Redis for rate limiting
    - Opens the broker connection eagerly, since the API is about to take
      traffic. If the broker is down, startup continues and the first
      publish retries the connection.

    Shutdown (after yield) closes all of it.
    """
    logger.info("Creating database tables...")
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app.state.redis = AsyncRedis.from_url(settings.redis_url)

    broker = BrokerConnection(
        settings.redis_url,
        Topology(
            exchange=settings.BROKER_EXCHANGE,
            queue=settings.BROKER_QUEUE,
            routing_key=settings.BROKER_ROUTING_KEY,
        ),
    )
    try:
        await run_in_threadpool(broker.connect)
    except QueueUnavailable as e:
        logger.warning(f"Broker not reachable at startup, queue features may not work: {e}")

    app.state.broker = broker
    app.state.job_queue = JobQueue(broker, consumer_name="api", max_length=settings.QUEUE_MAX_LENGTH)
    app.state.publisher = JobPublisher(app.state.job_queue)
    logger.info("API ready")

    yield

    broker.close()
    await app.state.redis.close()
    await async_engine.dispose()
    logger.info("API shut down")


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Validation error",
            "details": jsonable_encoder(exc.errors()),
        },
    )


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        content = {"success": False, **exc.detail}
    else:
        content = {"success": False, "error": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def _queue_unavailable(request: Request, exc: QueueUnavailable) -> JSONResponse:
    logger.error(f"Publish failed: {exc}")
    return JSONResponse(
        status_code=503,
        content={"success": False, "error": str(exc), "retryable": True},
        headers={"Retry-After": "5"},
    )


def create_app() -> FastAPI:
    """Factory function that builds and configures the FastAPI application."""
    app = FastAPI(
        title="Content Queue",
        description="Admission-controlled, durably queued article and novel generation with signed webhooks",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.MAX_BODY_BYTES:
            return JSONResponse(
                status_code=413,
                content={
                    "success": False,
                    "error": f"Payload too large. Maximum size is {settings.MAX_BODY_BYTES // 1024}kb.",
                },
            )
        return await call_next(request)

    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(QueueUnavailable, _queue_unavailable)

    app.include_router(health.router)
    app.include_router(access.router)
    app.include_router(articles.router)
    app.include_router(novels.router)
    app.include_router(queue.router)
    app.include_router(webhooks.router)

    return app


# This is what uvicorn imports: `uvicorn api.main:app`
app = create_app()
