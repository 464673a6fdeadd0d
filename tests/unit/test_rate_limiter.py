"""Unit tests for the per-provider token bucket."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from evidence_integrity.models import ProviderRateLimit
from evidence_integrity.search import rate_limiter as rate_limiter_module
from evidence_integrity.search.rate_limiter import RateLimiter, build_rate_limiters


def _patch_sleep(monkeypatch, clock) -> list:
    """Replace the limiter's sleep with one that advances the fake clock."""
    sleeps: list = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)
        clock.advance(seconds)

    monkeypatch.setattr(rate_limiter_module, "asyncio", SimpleNamespace(sleep=fake_sleep))
    return sleeps


@pytest.mark.asyncio
async def test_bucket_starts_full(monkeypatch, clock) -> None:
    limiter = RateLimiter(max_tokens=3, refill_rate=1, clock=clock)
    sleeps = _patch_sleep(monkeypatch, clock)

    for _ in range(3):
        await limiter.acquire()

    assert sleeps == []
    assert limiter.tokens == pytest.approx(0.0)


@pytest.mark.asyncio
async def test_empty_bucket_waits_for_refill(monkeypatch, clock) -> None:
    limiter = RateLimiter(max_tokens=2, refill_rate=4, clock=clock)
    sleeps = _patch_sleep(monkeypatch, clock)

    await limiter.acquire()
    await limiter.acquire()
    await limiter.acquire()

    assert sleeps == [pytest.approx(0.25)]
    assert limiter.tokens == pytest.approx(0.0)


def test_refill_is_capped_at_capacity(clock) -> None:
    limiter = RateLimiter(max_tokens=5, refill_rate=10, clock=clock)
    limiter.tokens = 0.0
    clock.advance(100)

    limiter._refill()

    assert limiter.tokens == 5.0


def test_refill_ignores_clock_going_backwards(clock) -> None:
    limiter = RateLimiter(max_tokens=5, refill_rate=10, clock=clock)
    limiter.tokens = 1.0
    clock.advance(-10)

    limiter._refill()

    assert limiter.tokens == 1.0


@pytest.mark.parametrize("max_tokens,refill_rate", [(0, 1), (1, 0), (-1, 1)])
def test_non_positive_settings_rejected(max_tokens, refill_rate) -> None:
    with pytest.raises(ValueError):
        RateLimiter(max_tokens=max_tokens, refill_rate=refill_rate)


@pytest.mark.asyncio
async def test_limiters_are_independent_per_provider() -> None:
    limiters = build_rate_limiters(
        {
            "openalex": ProviderRateLimit(max_tokens=1, refill_rate=1),
            "crossref": ProviderRateLimit(max_tokens=2, refill_rate=5),
        }
    )

    assert set(limiters) == {"openalex", "crossref"}
    assert limiters["openalex"] is not limiters["crossref"]
    assert limiters["crossref"].max_tokens == 2.0

    await limiters["openalex"].acquire()
    assert limiters["crossref"].tokens == pytest.approx(2.0, abs=0.01)


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_consume_token() -> None:
    limiter = RateLimiter(max_tokens=1, refill_rate=0.5)
    await limiter.acquire()

    waiter = asyncio.create_task(limiter.acquire())
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert limiter.tokens < 1
    assert not limiter._lock.locked()
