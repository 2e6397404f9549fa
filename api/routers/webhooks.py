"""
Webhook test receiver.

POST /api/webhook/test lets integrators point a job's webhookUrl at this
service and check what arrives. If they also pass the secret (query
`?secret=` or header X-Webhook-Secret), the X-Webhook-Signature header is
verified against the raw request body.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Header, Query, Request

from api.schemas.common import ApiResponse
from api.schemas.queue import WebhookReceipt
from worker.webhook import verify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhook", tags=["webhooks"])


@router.post("/test", response_model=ApiResponse[WebhookReceipt])
async def receive_test_webhook(
    request: Request,
    secret: Optional[str] = Query(None),
    x_webhook_secret: Optional[str] = Header(None),
    x_webhook_signature: Optional[str] = Header(None),
    x_webhook_type: Optional[str] = Header(None),
) -> ApiResponse[WebhookReceipt]:
    body = await request.body()
    secret = secret or x_webhook_secret

    verified = None
    if x_webhook_signature and secret:
        verified = verify(secret, body, x_webhook_signature)

    logger.info(
        f"Test webhook received ({len(body)} bytes, type={x_webhook_type}, "
        f"signature_verified={verified})"
    )
    return ApiResponse(
        data=WebhookReceipt(
            received_at=datetime.now(timezone.utc).isoformat(),
            event=x_webhook_type,
            signature_verified=verified,
        )
    )
