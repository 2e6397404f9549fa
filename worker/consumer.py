"""
Worker consumer — the receive loop that turns queued jobs into content.

Each turn of the loop:

    1. promote_due()   retries whose backoff elapsed go back on the queue
    2. receive()       take ONE message into this worker's in-flight list
    3. decode          broker envelope → Job (tagged union on kind)
    4. generate        call the generator for job.kind, bounded by its timeout
    5. settle
         success → webhook {success: true, jobId, data} (best-effort) → ack
         failure → RetryHandler: requeue with backoff, or dead-letter
                   (a dead-lettered job also gets {success: false, jobId, error})

Single concurrency: the queue hands out at most one unsettled delivery, and
the loop settles every delivery before it receives the next one. Generation
itself runs on a one-thread executor, since the generator is a single
browser session. The time budget starts when the generator is called. A
generation that overran its budget fails that attempt but keeps the
thread; the loop receives nothing new until it returns, so the next job is
never charged for time it spent waiting and never runs alongside it.

Nothing that happens to one job stops the loop. When an ack or nack fails
the message stays in the in-flight list, and the next turn returns it to
the queue with recover() before receiving again.
"""

import json
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Callable, Optional

from pydantic import ValidationError

from broker.errors import QueueUnavailable
from broker.messages import Delivery
from broker.queue import JobQueue
from jobs.base import GenerationResult, generation_timeout
from jobs.registry import GeneratorRegistry
from models.job import Job
from worker.retry import RetryDecision, RetryHandler
from worker.webhook import WebhookNotifier

logger = logging.getLogger(__name__)

ACKED = "acked"
RETRIED = RetryDecision.RETRIED.value
DEAD_LETTERED = RetryDecision.DEAD_LETTERED.value
UNSETTLED = "unsettled"


class JobConsumer:

    def __init__(
        self,
        queue: JobQueue,
        registry: GeneratorRegistry,
        notifier: WebhookNotifier,
        retry_handler: Optional[RetryHandler] = None,
        poll_interval: float = 1.0,
        timeout_for: Callable = generation_timeout,
    ):
        self._queue = queue
        self._registry = registry
        self._notifier = notifier
        self._retry = retry_handler or RetryHandler(queue)
        self._poll_interval = poll_interval
        self._timeout_for = timeout_for
        self._generator_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="generator")
        self._running = False
        self._thread: Optional[threading.Thread] = None
        # A generation that outlived its budget; nothing new is received until it returns
        self._overrun: Optional[Future] = None
        # Set when an ack/nack failed and the message is still in the in-flight list
        self._needs_recovery = False

    # ── Lifecycle ───────────────────────────────────────────────
    def start(self) -> None:
        """Recover stranded messages, then run the receive loop in a daemon thread."""
        self._queue.recover()
        self._running = True
        self._thread = threading.Thread(target=self._run_loop, name="consumer", daemon=True)
        self._thread.start()
        logger.info("Consumer started (prefetch: 1)")

    def stop(self) -> None:
        """Finish the current job, then stop receiving."""
        self._running = False
        if self._thread is not None:
            self._thread.join()
        if self._overrun is not None and not self._overrun.done():
            logger.warning("A timed-out generation is still running, not waiting for it")
            self._generator_pool.shutdown(wait=False, cancel_futures=True)
        else:
            self._generator_pool.shutdown(wait=True)
        logger.info("Consumer stopped")

    def _run_loop(self) -> None:
        while self._running:
            try:
                self.poll_once(timeout=self._poll_interval)
            except QueueUnavailable as e:
                logger.error(f"Broker unavailable, retrying shortly: {e}")
                time.sleep(self._poll_interval)
            except Exception as e:
                logger.error(f"Consumer loop error: {e}", exc_info=True)
                time.sleep(self._poll_interval)

    # ── One turn of the loop ────────────────────────────────────
    def poll_once(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Receive and fully process at most one message.

        Returns the outcome (ACKED, RETRIED, DEAD_LETTERED, UNSETTLED) or
        None when the queue was empty or an overrunning generation still
        holds the generator.
        """
        if not self._generator_idle(timeout):
            return None

        if self._needs_recovery:
            self._queue.recover()
            self._needs_recovery = False

        moved = self._queue.promote_due()
        if moved:
            logger.info(f"Moved {moved} delayed job(s) back to the queue")

        delivery = self._queue.receive(timeout=timeout)
        if delivery is None:
            return None
        return self.handle(delivery)

    def handle(self, delivery: Delivery) -> str:
        job = self._decode(delivery)
        if job is None:
            decision = self._settle(
                delivery, lambda: self._retry.dead_letter(delivery, "Undecodable message")
            )
            return decision.value if decision else UNSETTLED

        logger.info(f"Received {job.kind.value} job {job.id} (retry {delivery.retry_count})")
        result = self._generate(job)

        if result.success:
            logger.info(f"Job {job.id} generated successfully")
            self._notify(job, {"success": True, "jobId": job.id, "data": result.data})
            if self._settle(delivery, lambda: self._queue.ack(delivery)) is None:
                return UNSETTLED
            logger.info(f"Job {job.id} completed and acknowledged")
            return ACKED

        logger.error(f"Generation failed for job {job.id}: {result.error}")
        decision = self._settle(delivery, lambda: self._retry.handle_failure(delivery, result.error))
        if decision is None:
            return UNSETTLED
        if decision == RetryDecision.DEAD_LETTERED:
            self._notify(job, {"success": False, "jobId": job.id, "error": result.error})
        return decision.value

    # ── Steps ───────────────────────────────────────────────────
    def _decode(self, delivery: Delivery) -> Optional[Job]:
        if delivery.envelope is None:
            return None
        try:
            return Job.from_wire(json.loads(delivery.envelope.body))
        except (ValueError, ValidationError) as e:
            logger.error(f"Cannot decode job {delivery.message_id}: {e}")
            return None

    def _generator_idle(self, timeout: Optional[float]) -> bool:
        """Wait up to `timeout` for an overrunning generation. True once the generator is free."""
        if self._overrun is None:
            return True
        wait([self._overrun], timeout=timeout or 0)
        if not self._overrun.done():
            return False
        logger.info("Overrunning generation finished, its result was discarded")
        self._overrun = None
        return True

    def _generate(self, job: Job) -> GenerationResult:
        generator = self._registry.for_kind(job.kind)
        timeout = self._timeout_for(job.payload)

        started = threading.Event()

        def _call() -> GenerationResult:
            started.set()
            return generator.generate(job, timeout)

        future = self._generator_pool.submit(_call)
        # The budget runs from the moment the generator is actually called
        started.wait()
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            if not future.cancel():
                self._overrun = future
                logger.warning(
                    f"Generation for job {job.id} overran {timeout:g}s and is still running; "
                    "no new job is received until it returns"
                )
            return GenerationResult.failed(f"Generation timed out after {timeout:g}s")
        except Exception as e:
            logger.error(f"Generator raised for job {job.id}", exc_info=True)
            return GenerationResult.failed(str(e) or type(e).__name__)

    def _notify(self, job: Job, payload: dict) -> None:
        if job.webhook is None:
            return
        self._notifier.deliver(
            job.webhook.url,
            payload,
            job_id=job.id,
            secret=job.webhook.secret,
            event=job.kind.value,
        )

    def _settle(self, delivery: Delivery, action: Callable):
        """Run an ack/nack. On error, log and leave the message for redelivery."""
        try:
            return action() or True
        except Exception as e:
            self._needs_recovery = True
            logger.error(
                f"Could not settle job {delivery.message_id}, "
                f"returning it to the queue before the next receive: {e}",
                exc_info=True,
            )
            return None
