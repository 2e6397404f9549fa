"""
Simulated content generator.

Stands in for the browser-automation service in local development and
demos. It takes a configurable amount of time and fails with a
configurable probability, which is enough to drive the whole
retry → dead-letter pipeline on demand:

    GENERATOR_BACKEND=simulated SIMULATED_FAIL_PROBABILITY=1.0 python -m worker.main
"""

import random
import time

from jobs.base import AbstractContentGenerator, GenerationResult
from models.enums import JobKind
from models.job import ArticlePayload, Job


class SimulatedGenerator(AbstractContentGenerator):

    def __init__(self, duration: float = 1.0, fail_probability: float = 0.0, rng=None):
        self._duration = duration
        self._fail_probability = fail_probability
        self._rng = rng or random.Random()

    def generate(self, job: Job, timeout: float) -> GenerationResult:
        # Failure is decided before sleeping
        if self._rng.random() < self._fail_probability:
            return GenerationResult.failed(
                f"Simulated failure (fail_probability={self._fail_probability})"
            )

        time.sleep(min(self._duration, timeout))

        payload = job.payload
        if isinstance(payload, ArticlePayload):
            title = payload.topic
            content = f"# {payload.topic}\n\nSimulated article about {payload.topic}."
        else:
            title = payload.title or "Untitled"
            words = payload.approx_words or 0
            content = f"# {title}\n\nSimulated novel draft (~{words} words requested)."

        return GenerationResult.ok({
            "title": title,
            "content": content,
            "wordCount": len(content.split()),
        })

    @property
    def kinds(self) -> frozenset[JobKind]:
        return frozenset(JobKind)
