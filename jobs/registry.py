"""
Generator registry — maps each JobKind to the generator that handles it.

The registry refuses to build unless every JobKind is covered, so adding a
new kind without a generator fails at worker startup rather than when the
first such job arrives.
"""

from config.settings import settings
from jobs.base import AbstractContentGenerator
from models.enums import JobKind


class GeneratorRegistry:

    def __init__(self, generators: list[AbstractContentGenerator]):
        self._by_kind: dict[JobKind, AbstractContentGenerator] = {}
        for generator in generators:
            for kind in generator.kinds:
                self._by_kind[kind] = generator

        missing = [kind.value for kind in JobKind if kind not in self._by_kind]
        if missing:
            raise ValueError(f"No generator registered for job kinds: {missing}")

    def for_kind(self, kind: JobKind) -> AbstractContentGenerator:
        return self._by_kind[kind]


def create_registry(backend: str) -> GeneratorRegistry:
    """Build the registry for the configured GENERATOR_BACKEND."""
    # Imported here so the worker only pulls in the backend it uses
    if backend == "http":
        from jobs.http_generator import HttpContentGenerator
        return GeneratorRegistry([HttpContentGenerator(settings.GENERATOR_URL)])

    if backend == "simulated":
        from jobs.simulated import SimulatedGenerator
        return GeneratorRegistry([
            SimulatedGenerator(
                duration=settings.SIMULATED_DURATION,
                fail_probability=settings.SIMULATED_FAIL_PROBABILITY,
            )
        ])

    raise ValueError(f"Unknown generator backend: '{backend}'. Available: ['http', 'simulated']")
