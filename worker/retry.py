"""
Retry handler — decides what happens when a generation fails.

Two outcomes, based on the x-retry-count header of the failed delivery:

1. retry_count < MAX_RETRIES → nack with requeue after 2^retry_count seconds;
   the redelivered message carries retry_count + 1
2. retry_count >= MAX_RETRIES → nack without requeue: the job is
   dead-lettered and never delivered again

With the defaults a job is attempted four times in total:

    attempt 1 (count 0) ─fail─ 1s ─▶ attempt 2 (count 1) ─fail─ 2s ─▶
    attempt 3 (count 2) ─fail─ 4s ─▶ attempt 4 (count 3) ─fail─▶ dead letter

The delay is realized by the broker's delayed set, so the handler returns
immediately and the consumer is free to take the next message.
"""

import enum
import logging
from typing import Optional

from broker.messages import Delivery
from broker.queue import JobQueue
from config.settings import settings

logger = logging.getLogger(__name__)


class RetryDecision(str, enum.Enum):
    RETRIED = "retried"
    DEAD_LETTERED = "dead_lettered"


class RetryHandler:

    def __init__(
        self,
        queue: JobQueue,
        max_retries: int = settings.MAX_RETRIES,
        backoff_base: float = settings.RETRY_BACKOFF_BASE,
    ):
        self._queue = queue
        self._max_retries = max_retries
        self._backoff_base = backoff_base

    def backoff_delay(self, retry_count: int) -> float:
        return self._backoff_base ** retry_count

    def handle_failure(self, delivery: Delivery, error: Optional[str]) -> RetryDecision:
        """
        Called by the consumer when a job's generation failed.

        Undecodable messages skip straight to the dead-letter queue.
        """
        retry_count = delivery.retry_count

        if delivery.envelope is not None and retry_count < self._max_retries:
            delay = self.backoff_delay(retry_count)
            self._queue.nack(delivery, requeue=True, delay=delay)
            logger.info(
                f"Job {delivery.message_id} will be retried "
                f"(attempt {retry_count + 1}/{self._max_retries}) in {delay:g}s: {error}"
            )
            return RetryDecision.RETRIED

        return self.dead_letter(delivery, error)

    def dead_letter(self, delivery: Delivery, error: Optional[str]) -> RetryDecision:
        """Dead-letter without retrying, for messages no retry could ever fix."""
        self._queue.nack(delivery, requeue=False, reason=error)
        logger.error(
            f"Job {delivery.message_id} failed permanently after {delivery.retry_count} retries, "
            f"moved to dead-letter queue: {error}"
        )
        return RetryDecision.DEAD_LETTERED
