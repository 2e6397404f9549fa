"""
Broker connection manager.

One BrokerConnection exists per process. It is created by the process root
(the FastAPI lifespan, or worker.main) and handed to everything that needs
the broker, so the publisher and the consumer share one client instead of
each opening their own.

Lifecycle:
    connect()       open a client, ping it, declare the topology
    ensure_ready()  return the live client, connecting lazily on first use
    invalidate()    drop a client that was detected as closed/broken;
                    the next ensure_ready() reconnects transparently
    close()         release the client on shutdown

Topology is a direct exchange with a single binding:

    exchange "content_exchange" ── routing key "content.generate" ──▶ queue "content_generation"

The binding is stored in Redis (hash `exchange:<name>:bindings`) so every
process resolves the same queue from the routing key. Declaring it again on
each connect is idempotent.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from redis import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from broker.errors import QueueUnavailable

logger = logging.getLogger(__name__)

# Errors that mean "the connection is gone", as opposed to a bad command
CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


@dataclass(frozen=True)
class Topology:
    exchange: str
    queue: str
    routing_key: str

    @property
    def bindings_key(self) -> str:
        return f"exchange:{self.exchange}:bindings"


class BrokerConnection:

    QUEUES_KEY = "broker:queues"

    def __init__(
        self,
        url: str,
        topology: Topology,
        client_factory: Optional[Callable[[], Redis]] = None,
    ):
        self._url = url
        self._topology = topology
        self._client_factory = client_factory or (
            lambda: Redis.from_url(url, decode_responses=True)
        )
        self._client: Optional[Redis] = None
        self._lock = threading.Lock()

    @property
    def topology(self) -> Topology:
        return self._topology

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def connect(self) -> Redis:
        """Open a fresh client and declare exchange, queue and binding."""
        with self._lock:
            if self._client is not None:
                return self._client

            logger.info(f"Connecting to broker at {self._url}...")
            client = self._client_factory()
            try:
                client.ping()
                self._declare(client)
            except CONNECTION_ERRORS as e:
                client.close()
                raise QueueUnavailable(f"Broker unreachable: {e}") from e

            self._client = client
            logger.info(
                f"Connected to broker — exchange: {self._topology.exchange}, "
                f"queue: {self._topology.queue}"
            )
            return client

    def ensure_ready(self) -> Redis:
        """Return the live client, connecting on first use or after a detected close."""
        client = self._client
        if client is None:
            return self.connect()
        return client

    def invalidate(self) -> None:
        """Forget the current client. Called when an operation hit a dead connection."""
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            logger.warning("Broker connection closed, will reconnect on next use")
            try:
                client.close()
            except CONNECTION_ERRORS:
                pass

    def close(self) -> None:
        with self._lock:
            client, self._client = self._client, None
        if client is not None:
            client.close()
            logger.info("Broker connection closed")

    def resolve_queue(self, client: Redis, routing_key: str) -> Optional[str]:
        """Look up which queue the exchange routes `routing_key` to."""
        return client.hget(self._topology.bindings_key, routing_key)

    def _declare(self, client: Redis) -> None:
        client.hset(self._topology.bindings_key, self._topology.routing_key, self._topology.queue)
        client.sadd(self.QUEUES_KEY, self._topology.queue)
