"""Tests for the fixed-window RateLimiter."""

import pytest

from access.rate_limit import RateLimiter


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_allows_up_to_limit_then_refuses(fake_redis):
    limiter = RateLimiter(fake_redis, "test", limit=5, window=60, clock=Clock(1200.0))

    results = [await limiter.hit("1.2.3.4") for _ in range(6)]

    assert [r.allowed for r in results] == [True] * 5 + [False]
    assert results[-1].count == 6


@pytest.mark.asyncio
async def test_new_window_resets_the_count(fake_redis):
    clock = Clock(1200.0)
    limiter = RateLimiter(fake_redis, "test", limit=1, window=60, clock=clock)

    assert (await limiter.hit("1.2.3.4")).allowed
    assert not (await limiter.hit("1.2.3.4")).allowed

    clock.now = 1260.0
    assert (await limiter.hit("1.2.3.4")).allowed


@pytest.mark.asyncio
async def test_retry_after_counts_down_to_window_end(fake_redis):
    limiter = RateLimiter(fake_redis, "test", limit=1, window=60, clock=Clock(1215.0))
    result = await limiter.hit("1.2.3.4")
    assert result.retry_after == 45


@pytest.mark.asyncio
async def test_scopes_and_ips_are_counted_separately(fake_redis):
    clock = Clock(1200.0)
    articles = RateLimiter(fake_redis, "articles", limit=1, clock=clock)
    novels = RateLimiter(fake_redis, "novels", limit=1, clock=clock)

    assert (await articles.hit("1.2.3.4")).allowed
    assert (await novels.hit("1.2.3.4")).allowed
    assert (await articles.hit("5.6.7.8")).allowed


@pytest.mark.asyncio
async def test_counter_expires_with_window(fake_redis):
    limiter = RateLimiter(fake_redis, "test", limit=5, window=60, clock=Clock(1200.0))
    await limiter.hit("1.2.3.4")

    ttl = await fake_redis.ttl("ratelimit:test:1.2.3.4:20")
    assert 0 < ttl <= 60


def test_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        RateLimiter(None, "test", limit=0)
