"""Tests for JobPublisher and the job wire format."""

import json
import re

from broker.messages import Envelope
from broker.publisher import new_job_id
from models.enums import JobKind
from models.job import ArticlePayload, Job, NovelPayload, WebhookTarget


def test_job_id_format():
    job_id = new_job_id(JobKind.NOVEL)
    assert re.fullmatch(r"novel-\d{13}-[0-9a-f]{8}", job_id)


def test_publish_wraps_job_in_persistent_envelope(publisher, job_queue):
    result = publisher.publish(ArticlePayload(topic="tea"))

    delivery = job_queue.receive()
    envelope = delivery.envelope
    assert envelope.message_id == result.job_id
    assert envelope.persistent is True
    assert envelope.retry_count == 0

    body = json.loads(envelope.body)
    assert body["id"] == result.job_id
    assert body["kind"] == "article"
    assert body["topic"] == "tea"
    assert body["createdAt"] == envelope.timestamp


def test_publish_reports_queue_position(publisher):
    assert publisher.publish(ArticlePayload(topic="a")).queue_position == 1
    assert publisher.publish(NovelPayload(title="b")).queue_position == 2


def test_webhook_travels_flat_on_the_wire(publisher, job_queue):
    publisher.publish(
        NovelPayload(title="b", approx_words=500),
        webhook=WebhookTarget(url="https://example.com/hook", secret="s"),
    )

    body = json.loads(job_queue.receive().envelope.body)
    assert body["webhookUrl"] == "https://example.com/hook"
    assert body["webhookSecret"] == "s"
    assert body["approxWords"] == 500


def test_wire_body_decodes_back_to_job(publisher, job_queue):
    publisher.publish(ArticlePayload(topic="tea", keywords=["green"]), webhook=WebhookTarget(url="https://x.io"))

    job = Job.from_wire(json.loads(job_queue.receive().envelope.body))

    assert job.kind == JobKind.ARTICLE
    assert isinstance(job.payload, ArticlePayload)
    assert job.payload.keywords == ["green"]
    assert job.webhook.url == "https://x.io"
    assert job.webhook.secret is None


def test_missing_retry_header_counts_as_zero():
    raw = json.dumps({"message_id": "m", "body": "{}"})
    assert Envelope.decode(raw).retry_count == 0
