"""
Message envelope stored in the broker.

The job body travels inside an envelope that carries the delivery metadata
a message broker would normally keep in message properties:

    {
      "message_id": "article-1718000000000-k3j9x2",
      "body": "{...job json...}",
      "headers": {"x-retry-count": 0},
      "persistent": true,
      "timestamp": 1718000000000,
      "redelivered": false
    }

The body is kept as the exact string the publisher serialized, so it is
never re-encoded between attempts. Only the headers change on redelivery.
"""

import json
import time
from dataclasses import dataclass, field, replace
from typing import Optional

RETRY_HEADER = "x-retry-count"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Envelope:
    message_id: str
    body: str
    headers: dict = field(default_factory=dict)
    persistent: bool = True
    timestamp: int = field(default_factory=now_ms)
    redelivered: bool = False

    @property
    def retry_count(self) -> int:
        """Attempts already retried. Missing or malformed headers count as 0."""
        try:
            return max(0, int(self.headers.get(RETRY_HEADER, 0) or 0))
        except (TypeError, ValueError):
            return 0

    def for_retry(self) -> "Envelope":
        """Copy for the next attempt: retry count + 1, flagged as redelivered."""
        headers = {**self.headers, RETRY_HEADER: self.retry_count + 1}
        return replace(self, headers=headers, redelivered=True)

    def encode(self) -> str:
        return json.dumps({
            "message_id": self.message_id,
            "body": self.body,
            "headers": self.headers,
            "persistent": self.persistent,
            "timestamp": self.timestamp,
            "redelivered": self.redelivered,
        })

    @classmethod
    def decode(cls, raw: str | bytes) -> "Envelope":
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
        return cls(
            message_id=data["message_id"],
            body=data["body"],
            headers=data.get("headers") or {},
            persistent=data.get("persistent", True),
            timestamp=data.get("timestamp") or now_ms(),
            redelivered=data.get("redelivered", False),
        )


@dataclass(frozen=True)
class Delivery:
    """
    A message handed to a consumer.

    `raw` is the exact string sitting in the consumer's in-flight list;
    ack/nack remove it by value. `envelope` is None when the raw entry
    could not be decoded (a poison message), so the consumer can still
    dead-letter it.
    """
    raw: str
    envelope: Optional[Envelope]

    @property
    def message_id(self) -> str:
        return self.envelope.message_id if self.envelope else "<undecodable>"

    @property
    def retry_count(self) -> int:
        return self.envelope.retry_count if self.envelope else 0
