"""Fixed-window rate limiting with a controllable clock."""

import pytest

from memory.rate_limiter import HOUR_MS, RATE_LIMITS, RateLimitConfig, RateLimiter
from stylist_app.errors import RateLimitExceededError


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


def test_presets() -> None:
    assert RATE_LIMITS["AI_RECOMMENDATIONS"].max_requests == 10
    assert RATE_LIMITS["AI_CLOSET_ANALYSIS"].max_requests == 20
    assert RATE_LIMITS["CLOSET_UPLOAD"].window_ms == 24 * HOUR_MS
    assert RATE_LIMITS["WEATHER_API"].endpoint == "weather"


def test_window_allows_max_requests_then_denies(store) -> None:
    clock = FakeClock()
    limiter = RateLimiter(store, clock_ms=clock)
    config = RateLimitConfig("recommendations", 3, HOUR_MS)

    decisions = [limiter.check("user-1", config) for _ in range(3)]
    assert [decision.allowed for decision in decisions] == [True, True, True]
    assert [decision.remaining for decision in decisions] == [2, 1, 0]

    clock.now_ms += 60_500
    denied = limiter.check("user-1", config)
    assert not denied.allowed
    assert denied.current == 3
    assert denied.reset_in == 3540
    with pytest.raises(RateLimitExceededError) as excinfo:
        denied.raise_for_limit()
    headers = excinfo.value.headers()
    assert headers["Retry-After"] == "3540"
    assert headers["X-RateLimit-Remaining"] == "0"
    assert excinfo.value.to_payload()["limit"] == 3


def test_window_resets_after_expiry(store) -> None:
    clock = FakeClock()
    limiter = RateLimiter(store, clock_ms=clock)
    config = RateLimitConfig("weather", 1, HOUR_MS)

    assert limiter.check("user-1", config).allowed
    assert not limiter.check("user-1", config).allowed
    clock.now_ms += HOUR_MS
    fresh = limiter.check("user-1", config)
    assert fresh.allowed and fresh.current == 1


def test_counters_are_per_user_and_endpoint(store) -> None:
    limiter = RateLimiter(store, clock_ms=FakeClock())
    config = RateLimitConfig("weather", 1, HOUR_MS)

    assert limiter.check("user-1", config).allowed
    assert limiter.check("user-2", config).allowed
    assert limiter.check("user-1", RateLimitConfig("recommendations", 1, HOUR_MS)).allowed


def test_usage_stats_do_not_count(store) -> None:
    limiter = RateLimiter(store, clock_ms=FakeClock())
    config = RateLimitConfig("weather", 5, HOUR_MS)

    assert limiter.get_usage_stats("user-1", config)["count"] == 0
    limiter.check("user-1", config)
    stats = limiter.get_usage_stats("user-1", config)
    assert stats["count"] == 1 and stats["remaining"] == 4
    assert limiter.get_usage_stats("user-1", config)["count"] == 1


def test_store_failure_fails_open(store, monkeypatch) -> None:
    def broken(*args, **kwargs):
        raise RuntimeError("store down")

    monkeypatch.setattr(store, "run_transaction", broken)
    decision = RateLimiter(store, clock_ms=FakeClock()).check("user-1", RateLimitConfig("weather", 1, HOUR_MS))
    assert decision.allowed
