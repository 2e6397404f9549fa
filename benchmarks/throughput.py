"""
Throughput benchmark — measures raw broker throughput against a real Redis.

How it works:
1. Publish N article jobs through JobPublisher onto a throwaway queue
2. Drain them with a JobConsumer backed by a zero-duration simulated generator
3. Report publish rate and end-to-end processing rate (receive → generate → ack)

Generation is instant here, so the numbers describe the queue machinery
(serialization, reliable pop, ack) rather than content generation, which
in production takes minutes per job.
"""

import time
import uuid

from broker.connection import BrokerConnection, Topology
from broker.publisher import JobPublisher
from broker.queue import JobQueue
from jobs.registry import GeneratorRegistry
from jobs.simulated import SimulatedGenerator
from models.job import ArticlePayload
from worker.consumer import ACKED, JobConsumer
from worker.webhook import WebhookNotifier


class ThroughputBenchmark:

    def __init__(self, redis_url: str, num_jobs: int = 1000):
        self.num_jobs = num_jobs
        suffix = uuid.uuid4().hex[:6]
        self.connection = BrokerConnection(
            redis_url,
            Topology(
                exchange=f"bench_exchange_{suffix}",
                queue=f"bench_queue_{suffix}",
                routing_key="bench.generate",
            ),
        )
        self.queue = JobQueue(self.connection, consumer_name="bench", max_length=num_jobs + 1)
        self.publisher = JobPublisher(self.queue)
        self.consumer = JobConsumer(
            self.queue,
            registry=GeneratorRegistry([SimulatedGenerator(duration=0.0)]),
            notifier=WebhookNotifier(),
        )

    def publish_all(self) -> float:
        start = time.monotonic()
        for i in range(self.num_jobs):
            self.publisher.publish(ArticlePayload(topic=f"bench-{i}"))
        return time.monotonic() - start

    def drain(self) -> tuple[float, int]:
        start = time.monotonic()
        acked = 0
        while (outcome := self.consumer.poll_once()) is not None:
            if outcome == ACKED:
                acked += 1
        return time.monotonic() - start, acked

    def cleanup(self) -> None:
        client = self.connection.ensure_ready()
        topology = self.connection.topology
        client.delete(
            self.queue.ready_key(topology.queue),
            self.queue.dead_letter_key,
            self.queue.delayed_key,
            topology.bindings_key,
        )
        client.srem(BrokerConnection.QUEUES_KEY, topology.queue)
        self.connection.close()

    def run(self) -> dict:
        try:
            publish_sec = self.publish_all()
            drain_sec, acked = self.drain()
        finally:
            self.cleanup()

        return {
            "num_jobs": self.num_jobs,
            "acked": acked,
            "publish_sec": round(publish_sec, 3),
            "publish_per_sec": round(self.num_jobs / publish_sec, 2),
            "process_sec": round(drain_sec, 3),
            "process_per_sec": round(acked / drain_sec, 2) if drain_sec else None,
        }
