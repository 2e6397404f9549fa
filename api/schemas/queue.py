"""Pydantic schemas for the /api/queue and /api/webhook endpoints."""

from typing import Optional

from api.schemas.common import ApiModel


class QueueStatusOut(ApiModel):
    queue: str
    message_count: int       # waiting to be delivered
    in_flight: int           # being generated right now
    delayed: int             # waiting out a retry backoff
    dead_lettered: int


class WebhookReceipt(ApiModel):
    received_at: str
    event: Optional[str] = None
    signature_verified: Optional[bool] = None   # None when no signature/secret was supplied
