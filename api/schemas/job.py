"""
Pydantic schemas for the submission endpoints.

These are NOT queue messages — they define what callers send and get back:
- ArticleRequest / NovelRequest: internal submission bodies
- PublicArticleRequest / PublicNovelRequest: public bodies, which may name a webhook
- JobQueued: the immediate answer; "queued" means accepted, not completed

Validation failures are turned into 400 responses by the app's handler.
"""

from typing import Optional

from pydantic import AnyHttpUrl, Field

from api.schemas.common import ApiModel, SanitizedRequest
from models.job import ArticlePayload, NovelPayload, WebhookTarget


class ArticleRequest(SanitizedRequest):
    topic: str = Field(..., min_length=1, examples=["The history of tea"])
    keywords: Optional[list[str]] = None
    category: Optional[str] = None
    author: Optional[str] = None
    session_name: Optional[str] = None

    def to_payload(self) -> ArticlePayload:
        return ArticlePayload(
            topic=self.topic,
            keywords=self.keywords,
            category=self.category,
            author=self.author,
            session_name=self.session_name,
        )


class NovelRequest(SanitizedRequest):
    title: Optional[str] = None
    prompt: Optional[str] = None
    language: Optional[str] = None
    genre: Optional[str] = None
    approx_words: Optional[int] = Field(None, gt=0, description="Target length; also scales the timeout")
    session_name: Optional[str] = None

    def to_payload(self) -> NovelPayload:
        return NovelPayload(
            title=self.title,
            prompt=self.prompt,
            language=self.language,
            genre=self.genre,
            approx_words=self.approx_words,
            session_name=self.session_name,
        )


class WebhookFields(ApiModel):
    webhook_url: Optional[AnyHttpUrl] = None
    webhook_secret: Optional[str] = None

    def webhook(self) -> Optional[WebhookTarget]:
        if self.webhook_url is None:
            return None
        return WebhookTarget(url=str(self.webhook_url), secret=self.webhook_secret)


class PublicArticleRequest(ArticleRequest, WebhookFields):
    pass


class PublicNovelRequest(NovelRequest, WebhookFields):
    pass


class JobQueued(ApiModel):
    job_id: str
    status: str = "queued"
    queue_position: Optional[int] = Field(
        None, description="Approximate; shifts as other jobs are processed"
    )
    topic: Optional[str] = None
    title: Optional[str] = None
