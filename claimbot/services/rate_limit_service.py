import math
import time
from dataclasses import dataclass
from typing import Callable, Optional

from redis.exceptions import RedisError

from claimbot.logging_config import get_logger
from claimbot.services.errors import StoreUnavailableError

logger = get_logger("rate_limit")

DEFAULT_WINDOW_MS = 60000
DEFAULT_MAX_REQUESTS = 60
EXPIRY_BUFFER_SECONDS = 10


@dataclass
class RateLimitDecision:
    allowed: bool
    count: int
    retry_after_seconds: Optional[int] = None


def rate_limit_key(sender: str, window_start: int) -> str:
    return f"ratelimit:{sender}:{window_start}"


def _now_ms() -> int:
    return int(time.time() * 1000)


class RateLimiter:
    """
    Fixed-window request counter per sender.

    Counts reset at window boundaries, so a sender can get up to twice the
    limit through across two adjacent windows.
    """

    def __init__(
        self,
        redis_client,
        *,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        clock: Callable[[], int] = _now_ms,
    ):
        if window_ms <= 0 or max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")
        self._redis = redis_client
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock

    @property
    def window_seconds(self) -> int:
        return math.ceil(self.window_ms / 1000)

    async def admit(self, sender: str) -> RateLimitDecision:
        now_ms = self._clock()
        window_start = (now_ms // self.window_ms) * self.window_ms
        key = rate_limit_key(sender, window_start)

        try:
            count = int(await self._redis.incr(key))
            if count == 1:
                await self._redis.expire(key, self.window_seconds + EXPIRY_BUFFER_SECONDS)
        except RedisError as exc:
            logger.error("Rate limit store unavailable", extra={"context": {"error": str(exc)}})
            raise StoreUnavailableError("rate_limit") from exc

        if count <= self.max_requests:
            return RateLimitDecision(allowed=True, count=count)

        # The key outlives its window by the expiry buffer; the hint stops at the window end.
        window_remaining = max(1, math.ceil((window_start + self.window_ms - now_ms) / 1000))
        retry_after = self.window_seconds
        try:
            ttl = await self._redis.ttl(key)
            retry_after = min(int(ttl), window_remaining) if ttl and ttl > 0 else window_remaining
        except RedisError as exc:
            logger.warning("Rate limit TTL lookup failed", extra={"context": {"error": str(exc)}})

        logger.warning(
            "Rate limit exceeded",
            extra={"context": {"sender": sender, "count": count, "retry_after": retry_after}},
        )
        return RateLimitDecision(allowed=False, count=count, retry_after_seconds=retry_after)
