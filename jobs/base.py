"""
Content generator interface.

Generation itself happens outside this service (a browser-automation
session that drives a chat model). The worker only needs a black box:
hand it a job and a time budget, get back success + data or an error
string. Each backend implements AbstractContentGenerator and the registry
maps every JobKind to one.

Generators may also raise. The worker treats an exception exactly like a
failed GenerationResult: the job goes down the retry path.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

from config.settings import settings
from models.enums import JobKind
from models.job import ArticlePayload, Job, NovelPayload


@dataclass
class GenerationResult:
    success: bool
    data: Optional[dict] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: dict) -> "GenerationResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str) -> "GenerationResult":
        return cls(success=False, error=error)


class AbstractContentGenerator(ABC):

    @abstractmethod
    def generate(self, job: Job, timeout: float) -> GenerationResult:
        """
        Produce the content for `job`.

        Args:
            job: the decoded queue message
            timeout: seconds the caller is willing to wait

        Returns:
            GenerationResult — data is forwarded to the job's webhook on success.
        """
        ...

    @property
    @abstractmethod
    def kinds(self) -> frozenset[JobKind]:
        """Job kinds this generator can handle."""
        ...


def generation_timeout(payload: Union[ArticlePayload, NovelPayload]) -> float:
    """
    Time budget for one generation attempt.

    Articles get a flat budget. Novels scale with the requested length but
    never drop below NOVEL_MIN_TIMEOUT.
    """
    if isinstance(payload, ArticlePayload):
        return settings.ARTICLE_TIMEOUT
    if isinstance(payload, NovelPayload):
        words = payload.approx_words or settings.NOVEL_DEFAULT_WORDS
        return max(settings.NOVEL_MIN_TIMEOUT, words * settings.NOVEL_SECONDS_PER_WORD)
    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")
