"""
Webhook notifier — signed, best-effort result delivery.

The body is serialized once and those exact bytes are both signed and
sent, so a receiver can verify with:

    hmac.new(secret, raw_request_body, hashlib.sha256).hexdigest()
        == request.headers["X-Webhook-Signature"]

Delivery never raises. A timeout, a network error or a non-2xx answer is
logged and reported as False; it must not send the job back to the queue.
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"
TYPE_HEADER = "X-Webhook-Type"


def serialize(payload: Any) -> str:
    """Compact JSON, the same text every time for the same payload."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def sign(secret: str, body: str | bytes) -> str:
    if isinstance(body, str):
        body = body.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify(secret: str, body: str | bytes, signature: str) -> bool:
    return hmac.compare_digest(sign(secret, body), signature)


class WebhookNotifier:

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def deliver(
        self,
        url: str,
        payload: Any,
        job_id: str,
        secret: Optional[str] = None,
        event: Optional[str] = None,
    ) -> bool:
        """POST `payload` to `url`. Returns True on a 2xx response, False otherwise."""
        try:
            body = serialize(payload).encode("utf-8")
            headers = {"Content-Type": "application/json"}
            if secret:
                headers[SIGNATURE_HEADER] = sign(secret, body)
            if event:
                headers[TYPE_HEADER] = event

            response = self._client.post(url, content=body, headers=headers)
            response.raise_for_status()
        except Exception as e:
            # A webhook failure never fails the job
            logger.error(f"Failed to deliver webhook for job {job_id} to {url}: {e}")
            return False

        logger.info(f"Webhook delivered for job {job_id} -> {url} (HTTP {response.status_code})")
        return True

    def close(self) -> None:
        self._client.close()
