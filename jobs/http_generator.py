"""
HTTP adapter for the external content generator.

The browser-automation service runs as its own process and exposes one
endpoint per kind:

    POST {GENERATOR_URL}/generate/article
    POST {GENERATOR_URL}/generate/novel

    request:  {"jobId": "...", "timeoutMs": 180000, <payload fields, camelCase>}
    response: {"success": true, "data": {...}}  |  {"success": false, "error": "..."}

The webhook target and secret are never forwarded. Anything other than a
well-formed success response becomes a failed GenerationResult.
"""

import logging
from typing import Optional

import httpx

from jobs.base import AbstractContentGenerator, GenerationResult
from models.enums import JobKind
from models.job import Job

logger = logging.getLogger(__name__)


class HttpContentGenerator(AbstractContentGenerator):

    def __init__(self, base_url: str, transport: Optional[httpx.BaseTransport] = None):
        self._client = httpx.Client(base_url=base_url, transport=transport)

    def generate(self, job: Job, timeout: float) -> GenerationResult:
        body = job.payload.model_dump(by_alias=True, exclude_none=True)
        body["jobId"] = job.id
        body["timeoutMs"] = int(timeout * 1000)

        try:
            response = self._client.post(f"/generate/{job.kind.value}", json=body, timeout=timeout)
        except httpx.TimeoutException:
            return GenerationResult.failed(f"Generation timed out after {timeout:.0f}s")
        except httpx.HTTPError as e:
            return GenerationResult.failed(f"Generator unreachable: {e}")

        try:
            result = response.json()
        except ValueError:
            return GenerationResult.failed(
                f"Generator returned non-JSON response (HTTP {response.status_code})"
            )
        if not isinstance(result, dict):
            result = {}

        if response.is_success and result.get("success"):
            return GenerationResult.ok(result.get("data") or {})

        error = result.get("error") or f"Generator returned HTTP {response.status_code}"
        return GenerationResult.failed(str(error))

    @property
    def kinds(self) -> frozenset[JobKind]:
        return frozenset(JobKind)

    def close(self) -> None:
        self._client.close()
