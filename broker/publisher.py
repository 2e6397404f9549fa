"""
Job publisher — turns a validated request into a durable queue message.

    1. Generate the job id (before touching the broker)
    2. Stamp createdAt and build the immutable Job
    3. Wrap the flat JSON body in a persistent envelope (message_id = job id,
       x-retry-count = 0)
    4. Publish through the exchange; the resulting queue depth is returned
       as an approximate queue position

Broker trouble surfaces as QueueUnavailable and is never swallowed here.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Optional, Union

from broker.messages import Envelope, RETRY_HEADER, now_ms
from broker.queue import JobQueue
from models.enums import JobKind
from models.job import ArticlePayload, Job, NovelPayload, WebhookTarget

logger = logging.getLogger(__name__)


@dataclass
class PublishResult:
    job_id: str
    queue_position: Optional[int] = None   # approximate, shifts as jobs are processed


def new_job_id(kind: JobKind) -> str:
    """e.g. 'novel-1718000000000-9f2c41ab' — time-ordered, random suffix."""
    return f"{kind.value}-{now_ms()}-{uuid.uuid4().hex[:8]}"


class JobPublisher:

    def __init__(self, queue: JobQueue):
        self._queue = queue

    def publish(
        self,
        payload: Union[ArticlePayload, NovelPayload],
        webhook: Optional[WebhookTarget] = None,
    ) -> PublishResult:
        kind = JobKind(payload.kind)
        job_id = new_job_id(kind)

        job = Job(id=job_id, created_at=now_ms(), payload=payload, webhook=webhook)
        envelope = Envelope(
            message_id=job_id,
            body=json.dumps(job.to_wire()),
            headers={RETRY_HEADER: 0},
            persistent=True,
            timestamp=job.created_at,
        )

        position = self._queue.publish(envelope)
        logger.info(f"Published {kind.value} job {job_id} (queue position ~{position})")
        return PublishResult(job_id=job_id, queue_position=position)
