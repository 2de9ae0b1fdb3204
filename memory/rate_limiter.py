"""Fixed-window per-user rate limiting stored in the ``rate_limits`` collection.

Each ``(user, endpoint)`` pair owns one counter document ``{count, resetAt}``
where ``resetAt`` is epoch milliseconds. The check is a transactional
read-modify-write; when the store itself fails the request is allowed.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

from stylist_app.errors import RateLimitExceededError
from stylist_app.logging_config import get_logger, log_event
from tools.document_store import DocumentStore

LOGGER = get_logger(__name__)

RATE_LIMITS_COLLECTION = "rate_limits"
HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


@dataclass(frozen=True)
class RateLimitConfig:
    endpoint: str
    max_requests: int
    window_ms: int


RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "AI_RECOMMENDATIONS": RateLimitConfig("recommendations", 10, HOUR_MS),
    "AI_CLOSET_ANALYSIS": RateLimitConfig("closet-analysis", 20, HOUR_MS),
    "CLOSET_UPLOAD": RateLimitConfig("closet-upload", 50, DAY_MS),
    "EVENT_CREATE": RateLimitConfig("event-create", 100, DAY_MS),
    "WEATHER_API": RateLimitConfig("weather", 100, HOUR_MS),
}


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    current: int
    reset_at_ms: int
    reset_in: int = 0

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current)

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset_at_ms),
        }

    def raise_for_limit(self) -> None:
        if not self.allowed:
            raise RateLimitExceededError(
                limit=self.limit,
                current=self.current,
                reset_in=self.reset_in,
                reset_at_ms=self.reset_at_ms,
            )


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    def __init__(self, store: DocumentStore, clock_ms: Callable[[], int] = _now_ms) -> None:
        self.store = store
        self.clock_ms = clock_ms

    @staticmethod
    def _doc_id(user_id: str, endpoint: str) -> str:
        return f"{user_id}_{endpoint}"

    def check(self, user_id: str, config: RateLimitConfig) -> RateLimitDecision:
        """Count this request against the window and report whether it may proceed."""

        now = self.clock_ms()

        def _mutate(current: Optional[Dict[str, Any]]) -> Tuple[Optional[Dict[str, Any]], RateLimitDecision]:
            if current is None or now >= int(current.get("resetAt", 0)):
                reset_at = now + config.window_ms
                decision = RateLimitDecision(True, config.max_requests, 1, reset_at)
                return {"count": 1, "resetAt": reset_at}, decision

            count = int(current.get("count", 0))
            reset_at = int(current["resetAt"])
            if count >= config.max_requests:
                reset_in = math.ceil((reset_at - now) / 1000)
                return None, RateLimitDecision(False, config.max_requests, count, reset_at, reset_in)

            return {"count": count + 1, "resetAt": reset_at}, RateLimitDecision(
                True, config.max_requests, count + 1, reset_at
            )

        try:
            decision = self.store.run_transaction(
                RATE_LIMITS_COLLECTION, self._doc_id(user_id, config.endpoint), _mutate
            )
        except Exception:
            log_event(
                LOGGER,
                logging.ERROR,
                "rate_limit_check_failed",
                user_id=user_id,
                endpoint=config.endpoint,
                exc_info=True,
            )
            return RateLimitDecision(True, config.max_requests, 0, now + config.window_ms)

        if not decision.allowed:
            log_event(
                LOGGER,
                logging.WARNING,
                "rate_limit_exceeded",
                user_id=user_id,
                endpoint=config.endpoint,
                current=decision.current,
                limit=decision.limit,
            )
        return decision

    def get_usage_stats(self, user_id: str, config: RateLimitConfig) -> Dict[str, int]:
        """Current window usage without counting a request."""

        now = self.clock_ms()
        record = self.store.get(RATE_LIMITS_COLLECTION, self._doc_id(user_id, config.endpoint))
        if record is None or now >= int(record.get("resetAt", 0)):
            return {"count": 0, "limit": config.max_requests, "remaining": config.max_requests, "resetAt": 0}
        count = int(record.get("count", 0))
        return {
            "count": count,
            "limit": config.max_requests,
            "remaining": max(0, config.max_requests - count),
            "resetAt": int(record["resetAt"]),
        }


__all__ = [
    "DAY_MS",
    "HOUR_MS",
    "RATE_LIMITS",
    "RateLimitConfig",
    "RateLimitDecision",
    "RateLimiter",
]
