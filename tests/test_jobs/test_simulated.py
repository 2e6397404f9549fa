"""Tests for the SimulatedGenerator."""

from jobs.simulated import SimulatedGenerator
from models.enums import JobKind
from models.job import ArticlePayload, Job, NovelPayload


def _job(payload):
    return Job(id=f"{payload.kind}-1-abc", created_at=1, payload=payload)


def test_article_completes_with_content():
    result = SimulatedGenerator(duration=0.01).generate(_job(ArticlePayload(topic="Tea")), timeout=5)

    assert result.success
    assert result.data["title"] == "Tea"
    assert "Tea" in result.data["content"]
    assert result.data["wordCount"] > 0


def test_novel_uses_title():
    result = SimulatedGenerator(duration=0.01).generate(
        _job(NovelPayload(title="Lighthouse", approx_words=100)), timeout=5
    )
    assert result.data["title"] == "Lighthouse"


def test_guaranteed_failure():
    """fail_probability=1.0 should always fail."""
    result = SimulatedGenerator(duration=0.01, fail_probability=1.0).generate(
        _job(ArticlePayload(topic="Tea")), timeout=5
    )
    assert not result.success
    assert "Simulated failure" in result.error


def test_guaranteed_success():
    """fail_probability=0.0 should never fail."""
    generator = SimulatedGenerator(duration=0.0, fail_probability=0.0)
    # Run multiple times to increase confidence
    for _ in range(10):
        assert generator.generate(_job(ArticlePayload(topic="Tea")), timeout=5).success


def test_handles_every_kind():
    assert SimulatedGenerator().kinds == frozenset(JobKind)
