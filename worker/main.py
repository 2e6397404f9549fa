"""
Worker process entry point.

This is a SEPARATE process from the FastAPI API server. It owns:

    1. BrokerConnection — one per process, opened eagerly at startup
    2. JobConsumer      — the receive loop (prefetch 1), in a daemon thread
    3. WebhookNotifier  — result delivery to caller-supplied URLs

The main thread just waits for Ctrl+C (SIGINT) or SIGTERM and shuts
everything down gracefully; the job in progress is allowed to finish.

To run:
    python -m worker.main

To scale out, start more worker processes with distinct CONSUMER_NAME
values. Each one still processes a single job at a time.

A worker only recovers its own in-flight list on start, keyed by
CONSUMER_NAME. Restarting it under a different name would leave its
predecessor's unacknowledged job stranded; list retired names in
RECOVER_CONSUMERS (JSON, e.g. '["worker-1"]') and the new worker
returns their messages to the queue before it starts consuming.
"""

import logging
import signal
import threading

from broker.connection import BrokerConnection, Topology
from broker.queue import JobQueue
from config.settings import settings
from jobs.registry import create_registry
from worker.consumer import JobConsumer
from worker.retry import RetryHandler
from worker.webhook import WebhookNotifier

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    connection = BrokerConnection(
        settings.redis_url,
        Topology(
            exchange=settings.BROKER_EXCHANGE,
            queue=settings.BROKER_QUEUE,
            routing_key=settings.BROKER_ROUTING_KEY,
        ),
    )
    connection.connect()

    queue = JobQueue(
        connection,
        consumer_name=settings.CONSUMER_NAME,
        max_length=settings.QUEUE_MAX_LENGTH,
    )
    for retired in settings.RECOVER_CONSUMERS:
        if retired != settings.CONSUMER_NAME:
            queue.recover(consumer_name=retired)

    notifier = WebhookNotifier(timeout=settings.WEBHOOK_TIMEOUT)
    consumer = JobConsumer(
        queue,
        registry=create_registry(settings.GENERATOR_BACKEND),
        notifier=notifier,
        retry_handler=RetryHandler(queue),
        poll_interval=settings.WORKER_POLL_INTERVAL,
    )
    consumer.start()

    # ── Graceful shutdown on Ctrl+C or SIGTERM ──────────────────
    shutdown_event = threading.Event()

    def shutdown(signum, frame):
        logger.info("Shutdown signal received, stopping...")
        shutdown_event.set()

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    logger.info(f"Worker '{settings.CONSUMER_NAME}' running. Press Ctrl+C to stop.")

    # Event.wait() instead of signal.pause() for Windows compatibility
    shutdown_event.wait()

    consumer.stop()
    notifier.close()
    connection.close()
    logger.info("Worker process exited")


if __name__ == "__main__":
    main()
