"""
Novel submission endpoints.

POST /api/novels/create    → internal: queue a novel job (rate limited)
POST /api/novels/generate  → public: rate limited + IP gated, may name a webhook

Novels are expensive, so the per-IP limit is lower than for articles.
"""

from fastapi import APIRouter, Depends, Response
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_publisher, rate_limit, require_ip_access
from api.schemas.common import ApiResponse
from api.schemas.job import JobQueued, NovelRequest, PublicNovelRequest
from broker.publisher import JobPublisher
from config.settings import settings

router = APIRouter(prefix="/api/novels", tags=["novels"])


@router.post(
    "/create",
    response_model=ApiResponse[JobQueued],
    dependencies=[Depends(rate_limit("novels:create", settings.NOVEL_RATE_LIMIT))],
)
async def create_novel(
    body: NovelRequest,
    response: Response,
    publisher: JobPublisher = Depends(get_publisher),
) -> ApiResponse[JobQueued]:
    result = await run_in_threadpool(publisher.publish, body.to_payload())
    response.headers["X-Payload-Sanitized"] = "true"
    return ApiResponse(
        message="Novel generation job queued",
        data=JobQueued(job_id=result.job_id, queue_position=result.queue_position, title=body.title),
    )


@router.post(
    "/generate",
    response_model=ApiResponse[JobQueued],
    dependencies=[
        Depends(rate_limit("novels:generate", settings.NOVEL_RATE_LIMIT)),
        Depends(require_ip_access),
    ],
)
async def generate_novel(
    body: PublicNovelRequest,
    response: Response,
    publisher: JobPublisher = Depends(get_publisher),
) -> ApiResponse[JobQueued]:
    result = await run_in_threadpool(publisher.publish, body.to_payload(), body.webhook())
    response.headers["X-Payload-Sanitized"] = "true"
    return ApiResponse(
        message="Public novel generation job queued",
        data=JobQueued(job_id=result.job_id, queue_position=result.queue_position, title=body.title),
    )
