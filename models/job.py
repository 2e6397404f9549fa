"""
Job message model — the unit of work carried by the broker.

A job's payload is a tagged union over the two kinds of content the
system generates. The `kind` field is the tag, so pydantic picks the right
variant on decode and the worker can dispatch on it exhaustively:

    ArticlePayload  {topic, keywords?, category?, author?, sessionName?}
    NovelPayload    {title?, prompt?, language?, genre?, approxWords?, sessionName?}

On the wire the job is flat JSON (the shape the API has always published):

    {"id": "article-1718000000000-k3j9x2", "kind": "article",
     "topic": "...", "keywords": [...], "webhookUrl": "...",
     "webhookSecret": "...", "createdAt": 1718000000000}

Jobs are frozen once built. The retry count is NOT part of the job — it
lives in the broker envelope headers (see broker/messages.py).
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel

from models.enums import JobKind


class CamelModel(BaseModel):
    """Accepts and emits camelCase field names while using snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ArticlePayload(CamelModel):
    kind: Literal["article"] = "article"
    topic: str = Field(..., min_length=1)
    keywords: Optional[list[str]] = None
    category: Optional[str] = None
    author: Optional[str] = None
    session_name: Optional[str] = None


class NovelPayload(CamelModel):
    kind: Literal["novel"] = "novel"
    title: Optional[str] = None
    prompt: Optional[str] = None
    language: Optional[str] = None
    genre: Optional[str] = None
    approx_words: Optional[int] = Field(None, gt=0)
    session_name: Optional[str] = None


JobPayload = Annotated[Union[ArticlePayload, NovelPayload], Field(discriminator="kind")]

_payload_adapter = TypeAdapter(JobPayload)


class WebhookTarget(CamelModel):
    url: str
    secret: Optional[str] = None


class Job(CamelModel):
    id: str
    created_at: int                      # epoch milliseconds, set at publish time
    payload: JobPayload
    webhook: Optional[WebhookTarget] = None

    @property
    def kind(self) -> JobKind:
        return JobKind(self.payload.kind)

    def to_wire(self) -> dict:
        """Flatten into the queue message body."""
        body = {"id": self.id}
        body.update(self.payload.model_dump(by_alias=True, exclude_none=True))
        if self.webhook is not None:
            body["webhookUrl"] = self.webhook.url
            if self.webhook.secret:
                body["webhookSecret"] = self.webhook.secret
        body["createdAt"] = self.created_at
        return body

    @classmethod
    def from_wire(cls, data: dict) -> "Job":
        """Rebuild a Job from a queue message body. Raises pydantic.ValidationError."""
        fields = dict(data)
        job_id = fields.pop("id", None)
        created_at = fields.pop("createdAt", None)
        webhook_url = fields.pop("webhookUrl", None)
        webhook_secret = fields.pop("webhookSecret", None)

        webhook = None
        if webhook_url:
            webhook = WebhookTarget(url=webhook_url, secret=webhook_secret)

        return cls(
            id=job_id,
            created_at=created_at,
            payload=_payload_adapter.validate_python(fields),
            webhook=webhook,
        )
