"""
Durable job queue on top of Redis — the publish/consume/ack/nack contract.

Redis keys for a queue named Q:

    queue:Q                    LIST   ready messages (LPUSH in, RPOP out → FIFO)
    queue:Q:inflight:<name>    LIST   the message a consumer is working on
    queue:Q:delayed            ZSET   retries waiting out their backoff (score = due unix ts)
    queue:Q:dead_letter        LIST   messages that exhausted their retries

Message flow:

    publish ──▶ ready ──receive (RPOPLPUSH)──▶ inflight ──ack──▶ (gone)
                  ▲                               │
                  │                               ├─nack(requeue, delay)──▶ delayed ──promote_due──▶ ready
                  │                               │
                  └──────────recover──────────────┤
                                                  └─nack(no requeue)──▶ dead_letter

Receiving moves the message atomically into the consumer's own in-flight
list, so a worker that dies mid-job does not lose it: recover() on the next
start puts whatever is left there back on the ready list. That gives
at-least-once delivery.

Each JobQueue instance holds at most one unsettled delivery. receive()
refuses to hand out a second message until the first has been acked or
nacked — the prefetch=1 guarantee is enforced here, not left to config.

Retry backoff never sleeps inside the consumer: a nack with a delay parks
the message in the delayed set and returns immediately. promote_due(),
called on every turn of the receive loop, moves it back once it is due.
"""

import json
import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from redis import Redis
from redis.exceptions import ResponseError, WatchError

from broker.connection import BrokerConnection, CONNECTION_ERRORS
from broker.errors import QueueUnavailable
from broker.messages import Delivery, Envelope

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class QueueStatus:
    queue: str
    message_count: int     # ready to be delivered
    in_flight: int         # delivered, not yet settled
    delayed: int           # waiting out a retry backoff
    dead_lettered: int


class JobQueue:

    def __init__(
        self,
        connection: BrokerConnection,
        consumer_name: str = "default",
        max_length: int = 10_000,
    ):
        self._connection = connection
        self._consumer_name = consumer_name
        self._max_length = max_length
        self._queue = connection.topology.queue
        self._in_flight: Optional[Delivery] = None

    # ── Key names ───────────────────────────────────────────────
    @staticmethod
    def ready_key(queue: str) -> str:
        return f"queue:{queue}"

    def inflight_key_for(self, consumer_name: str) -> str:
        return f"queue:{self._queue}:inflight:{consumer_name}"

    @property
    def inflight_key(self) -> str:
        return self.inflight_key_for(self._consumer_name)

    @property
    def delayed_key(self) -> str:
        return f"queue:{self._queue}:delayed"

    @property
    def dead_letter_key(self) -> str:
        return f"queue:{self._queue}:dead_letter"

    @property
    def in_flight(self) -> Optional[Delivery]:
        return self._in_flight

    # ── Producer side ───────────────────────────────────────────
    def publish(self, envelope: Envelope, routing_key: Optional[str] = None) -> int:
        """
        Route the message through the exchange and append it to the bound queue.

        Returns the queue depth right after the push — the message's
        approximate position. Raises QueueUnavailable if the broker is
        unreachable, nothing is bound to the routing key, or the queue is full.
        """
        routing_key = routing_key or self._connection.topology.routing_key

        def _publish(client: Redis) -> int:
            queue = self._connection.resolve_queue(client, routing_key)
            if queue is None:
                raise QueueUnavailable(f"No queue bound to routing key '{routing_key}'")

            key = self.ready_key(queue)
            if client.llen(key) >= self._max_length:
                raise QueueUnavailable(
                    f"Queue '{queue}' is full ({self._max_length} messages), publish rejected"
                )
            return client.lpush(key, envelope.encode())

        return self._run(_publish)

    def depth(self) -> int:
        return self._run(lambda client: client.llen(self.ready_key(self._queue)))

    # ── Consumer side ───────────────────────────────────────────
    def receive(self, timeout: Optional[float] = None) -> Optional[Delivery]:
        """
        Take the next message, moving it into this consumer's in-flight list.

        timeout=None polls without blocking; otherwise blocks up to `timeout`
        seconds. Returns None when nothing arrived.
        """
        if self._in_flight is not None:
            raise RuntimeError(
                f"Delivery {self._in_flight.message_id} is still unsettled; "
                "ack or nack it before receiving another"
            )

        ready = self.ready_key(self._queue)

        def _receive(client: Redis):
            if timeout is None:
                return client.rpoplpush(ready, self.inflight_key)
            # 0 would mean "block forever" to Redis
            return client.brpoplpush(ready, self.inflight_key, timeout=max(1, math.ceil(timeout)))

        raw = self._run(_receive)
        if raw is None:
            return None

        try:
            envelope = Envelope.decode(raw)
        except (ValueError, KeyError, TypeError):
            logger.error(f"Received undecodable message: {raw[:200]!r}")
            envelope = None

        delivery = Delivery(raw=raw, envelope=envelope)
        self._in_flight = delivery
        return delivery

    def ack(self, delivery: Delivery) -> None:
        """The message was processed — remove it for good."""
        try:
            self._run(lambda client: client.lrem(self.inflight_key, 1, delivery.raw))
        finally:
            self._settled(delivery)

    def nack(
        self,
        delivery: Delivery,
        requeue: bool,
        delay: float = 0.0,
        reason: Optional[str] = None,
    ) -> None:
        """
        Negative acknowledgement.

        requeue=True  → the message comes back with its retry count + 1,
                        after `delay` seconds if one is given.
        requeue=False → the message is dead-lettered and never delivered again.
        """
        try:
            if requeue:
                self._requeue(delivery, delay)
            else:
                self._dead_letter(delivery, reason)
        finally:
            self._settled(delivery)

    def _requeue(self, delivery: Delivery, delay: float) -> None:
        if delivery.envelope is None:
            raise ValueError("Cannot requeue an undecodable message")
        retry_raw = delivery.envelope.for_retry().encode()

        def _move(client: Redis) -> None:
            pipe = client.pipeline(transaction=True)
            pipe.lrem(self.inflight_key, 1, delivery.raw)
            if delay > 0:
                pipe.zadd(self.delayed_key, {retry_raw: time.time() + delay})
            else:
                pipe.lpush(self.ready_key(self._queue), retry_raw)
            pipe.execute()

        self._run(_move)

    def _dead_letter(self, delivery: Delivery, reason: Optional[str]) -> None:
        entry = json.dumps({
            "job_id": delivery.message_id,
            "retry_count": delivery.retry_count,
            "error": reason,
            "failed_at": datetime.now(timezone.utc).isoformat(),
            "message": delivery.raw,
        })

        def _move(client: Redis) -> None:
            pipe = client.pipeline(transaction=True)
            pipe.lrem(self.inflight_key, 1, delivery.raw)
            pipe.lpush(self.dead_letter_key, entry)
            pipe.execute()

        self._run(_move)

    def _settled(self, delivery: Delivery) -> None:
        if self._in_flight is delivery:
            self._in_flight = None

    # ── Housekeeping ────────────────────────────────────────────
    def promote_due(self, now: Optional[float] = None, batch: int = 50) -> int:
        """Move delayed retries whose backoff has elapsed back onto the ready list."""
        now = time.time() if now is None else now
        ready = self.ready_key(self._queue)

        def _promote(client: Redis) -> int:
            due = client.zrangebyscore(self.delayed_key, 0, now, start=0, num=batch)
            moved = 0
            for raw in due:
                if self._move_due(client, raw, ready):
                    moved += 1
            return moved

        return self._run(_promote)

    def _move_due(self, client: Redis, raw: str, ready: str) -> bool:
        """
        Move one due retry from the delayed set to the ready list atomically.

        ZREM and LPUSH run in one MULTI/EXEC under WATCH, so the message is
        always in exactly one of the two. Another consumer touching the delayed set
        aborts the move; the message stays delayed for the next turn.
        """
        with client.pipeline(transaction=True) as pipe:
            try:
                pipe.watch(self.delayed_key)
                if pipe.zscore(self.delayed_key, raw) is None:
                    return False
                pipe.multi()
                pipe.zrem(self.delayed_key, raw)
                pipe.lpush(ready, raw)
                pipe.execute()
                return True
            except WatchError:
                return False

    def recover(self, consumer_name: Optional[str] = None) -> int:
        """
        Return messages stranded in an in-flight list to the queue.

        Defaults to this consumer's own list. Passing `consumer_name` reclaims
        the list of a worker that was retired or renamed; only do that once
        the named worker is known to be stopped.
        """
        ready = self.ready_key(self._queue)
        inflight = self.inflight_key_for(consumer_name or self._consumer_name)

        def _recover(client: Redis) -> int:
            moved = 0
            while client.rpoplpush(inflight, ready) is not None:
                moved += 1
            return moved

        moved = self._run(_recover)
        if moved:
            logger.warning(
                f"Recovered {moved} unacknowledged message(s) from "
                f"'{consumer_name or self._consumer_name}' for redelivery"
            )
        return moved

    def status(self) -> QueueStatus:
        def _status(client: Redis) -> QueueStatus:
            in_flight = sum(
                client.llen(key)
                for key in client.scan_iter(match=f"queue:{self._queue}:inflight:*")
            )
            return QueueStatus(
                queue=self._queue,
                message_count=client.llen(self.ready_key(self._queue)),
                in_flight=in_flight,
                delayed=client.zcard(self.delayed_key),
                dead_lettered=client.llen(self.dead_letter_key),
            )

        return self._run(_status)

    def dead_letters(self, limit: int = 100) -> list[dict]:
        """Most recently dead-lettered entries first."""
        raw_entries = self._run(lambda client: client.lrange(self.dead_letter_key, 0, limit - 1))
        return [json.loads(entry) for entry in raw_entries]

    # ── Connection handling ─────────────────────────────────────
    def _run(self, operation: Callable[[Redis], T]) -> T:
        """
        Run one broker operation on the shared connection.

        A dropped connection invalidates the client (so the next call
        reconnects) and surfaces as QueueUnavailable. Redis refusing a
        write (e.g. OOM under maxmemory) is treated the same way.
        """
        client = self._connection.ensure_ready()
        try:
            return operation(client)
        except CONNECTION_ERRORS as e:
            self._connection.invalidate()
            raise QueueUnavailable(f"Broker connection lost: {e}") from e
        except ResponseError as e:
            raise QueueUnavailable(f"Broker rejected the operation: {e}") from e
