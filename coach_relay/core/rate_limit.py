"""Per-client request counters for the API rate limit."""
import time
from dataclasses import dataclass

from limits import RateLimitItem, parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def headers(self, now: float | None = None) -> dict[str, str]:
        now = time.time() if now is None else now
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(max(1, int(self.reset_at - now + 0.999)))
        return headers


class RateLimitStore:
    """
    Moving-window counters keyed by client address.

    One store is created per application and handed to the rate limit
    middleware. ``hit`` is the whole increment-and-check for a key, so
    concurrent requests from different clients never touch each other's
    counters.
    """

    def __init__(self, limit: str | RateLimitItem = "60/minute", storage: Storage | None = None):
        self.item = parse(limit) if isinstance(limit, str) else limit
        self.storage = storage or MemoryStorage()
        self.strategy = MovingWindowRateLimiter(self.storage)

    def hit(self, key: str) -> RateLimitDecision:
        allowed = self.strategy.hit(self.item, key)
        stats = self.strategy.get_window_stats(self.item, key)
        return RateLimitDecision(
            allowed=allowed,
            limit=self.item.amount,
            remaining=max(0, stats.remaining),
            reset_at=stats.reset_time,
        )

    def reset(self) -> None:
        self.storage.reset()
