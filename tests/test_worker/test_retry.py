"""
Tests for the RetryHandler.

These test the decision logic:
- If retries remain → message is requeued with retry_count + 1 after 2^retry_count seconds
- If retries exhausted → message is dead-lettered and never delivered again
"""

import time

from broker.messages import Envelope, RETRY_HEADER
from worker.retry import RetryDecision, RetryHandler


def _deliver(queue, retry_count=0):
    """Publish one message with the given retry count and receive it."""
    queue.publish(Envelope(message_id="article-1-abc", body="{}", headers={RETRY_HEADER: retry_count}))
    return queue.receive()


def test_first_failure_is_retried(job_queue):
    handler = RetryHandler(job_queue, max_retries=3)
    decision = handler.handle_failure(_deliver(job_queue, retry_count=0), "something broke")

    assert decision == RetryDecision.RETRIED
    assert job_queue.status().delayed == 1


def test_retry_increments_count(job_queue):
    handler = RetryHandler(job_queue, max_retries=3)
    handler.handle_failure(_deliver(job_queue, retry_count=1), "failed again")

    job_queue.promote_due(now=time.time() + 60)
    assert job_queue.receive().retry_count == 2


def test_backoff_doubles(job_queue):
    handler = RetryHandler(job_queue, backoff_base=2.0)
    assert [handler.backoff_delay(n) for n in range(3)] == [1.0, 2.0, 4.0]


def test_backoff_delay_is_applied(job_queue, broker_redis):
    handler = RetryHandler(job_queue, max_retries=3)
    before = time.time()
    handler.handle_failure(_deliver(job_queue, retry_count=2), "error")

    [(_, due)] = broker_redis.zrange(job_queue.delayed_key, 0, -1, withscores=True)
    assert before + 4 <= due <= time.time() + 4


def test_exhausted_retries_dead_letters(job_queue):
    handler = RetryHandler(job_queue, max_retries=3)
    decision = handler.handle_failure(_deliver(job_queue, retry_count=3), "permanent failure")

    assert decision == RetryDecision.DEAD_LETTERED
    [entry] = job_queue.dead_letters()
    assert entry["job_id"] == "article-1-abc"
    assert entry["error"] == "permanent failure"
    assert job_queue.status().delayed == 0


def test_four_attempts_in_total(job_queue):
    """Counts 0, 1, 2 are retried; the fourth failure (count 3) dead-letters."""
    handler = RetryHandler(job_queue, max_retries=3)
    job_queue.publish(Envelope(message_id="article-1-abc", body="{}", headers={RETRY_HEADER: 0}))

    decisions = []
    for _ in range(4):
        job_queue.promote_due(now=time.time() + 60)
        decisions.append(handler.handle_failure(job_queue.receive(), "error"))

    assert decisions == [RetryDecision.RETRIED] * 3 + [RetryDecision.DEAD_LETTERED]
    assert job_queue.receive() is None


def test_undecodable_message_is_dead_lettered_immediately(job_queue, broker_redis):
    broker_redis.lpush(job_queue.ready_key("test_queue"), "garbage")
    handler = RetryHandler(job_queue, max_retries=3)

    decision = handler.handle_failure(job_queue.receive(), "Undecodable message")

    assert decision == RetryDecision.DEAD_LETTERED
    assert job_queue.dead_letters()[0]["message"] == "garbage"
