"""Broker-level failures surfaced to callers."""


class QueueUnavailable(RuntimeError):
    """
    The broker could not accept a message.

    Raised when Redis is unreachable, when the routing key has no bound
    queue, or when the queue is at its length limit. Callers should treat
    it as retryable.
    """
