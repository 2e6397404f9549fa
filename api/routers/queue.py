"""
Queue inspection endpoints.

GET /api/queue/status       → ready / in-flight / delayed / dead-lettered counts
GET /api/queue/dead-letter  → admin: jobs that exhausted their retries

Dead-lettered jobs are never retried automatically. Someone reviews them
and either fixes the cause and resubmits, or discards them.
"""

from fastapi import APIRouter, Depends, Query
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_job_queue, require_admin
from api.schemas.common import ApiResponse
from api.schemas.queue import QueueStatusOut
from broker.queue import JobQueue

router = APIRouter(prefix="/api/queue", tags=["queue"])


@router.get("/status", response_model=ApiResponse[QueueStatusOut])
async def get_queue_status(
    queue: JobQueue = Depends(get_job_queue),
) -> ApiResponse[QueueStatusOut]:
    status = await run_in_threadpool(queue.status)
    return ApiResponse(
        data=QueueStatusOut(
            queue=status.queue,
            message_count=status.message_count,
            in_flight=status.in_flight,
            delayed=status.delayed,
            dead_lettered=status.dead_lettered,
        )
    )


@router.get("/dead-letter", response_model=ApiResponse[list[dict]], dependencies=[Depends(require_admin)])
async def get_dead_letter_jobs(
    limit: int = Query(100, ge=1, le=1000),
    queue: JobQueue = Depends(get_job_queue),
) -> ApiResponse[list[dict]]:
    entries = await run_in_threadpool(queue.dead_letters, limit)
    return ApiResponse(data=entries)
