"""
Article submission endpoints.

POST /api/articles/create    → internal: queue an article job (rate limited)
POST /api/articles/generate  → public: rate limited + IP gated, may name a webhook

Both answer immediately with status "queued" — the article is generated
later by the worker, and a webhook (if given) receives the result.
"""

from fastapi import APIRouter, Depends, Response
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_publisher, rate_limit, require_ip_access
from api.schemas.common import ApiResponse
from api.schemas.job import ArticleRequest, JobQueued, PublicArticleRequest
from broker.publisher import JobPublisher
from config.settings import settings

router = APIRouter(prefix="/api/articles", tags=["articles"])


@router.post(
    "/create",
    response_model=ApiResponse[JobQueued],
    dependencies=[Depends(rate_limit("articles:create", settings.ARTICLE_RATE_LIMIT))],
)
async def create_article(
    body: ArticleRequest,
    response: Response,
    publisher: JobPublisher = Depends(get_publisher),
) -> ApiResponse[JobQueued]:
    result = await run_in_threadpool(publisher.publish, body.to_payload())
    response.headers["X-Payload-Sanitized"] = "true"
    return ApiResponse(
        message="Article generation job queued",
        data=JobQueued(job_id=result.job_id, queue_position=result.queue_position, topic=body.topic),
    )


@router.post(
    "/generate",
    response_model=ApiResponse[JobQueued],
    dependencies=[
        Depends(rate_limit("articles:generate", settings.ARTICLE_RATE_LIMIT)),
        Depends(require_ip_access),
    ],
)
async def generate_article(
    body: PublicArticleRequest,
    response: Response,
    publisher: JobPublisher = Depends(get_publisher),
) -> ApiResponse[JobQueued]:
    result = await run_in_threadpool(publisher.publish, body.to_payload(), body.webhook())
    response.headers["X-Payload-Sanitized"] = "true"
    return ApiResponse(
        message="Public article generation job queued",
        data=JobQueued(job_id=result.job_id, queue_position=result.queue_position, topic=body.topic),
    )
