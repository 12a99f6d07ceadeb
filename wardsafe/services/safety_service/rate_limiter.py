"""Per-session sliding-window rate limiter.

The last gate before the model call for ordinary turns. Blocked and
emergency turns never reach it, so only forwarded turns consume quota.
"""
import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from .config import RateLimitConfig

logger = logging.getLogger(__name__)


def _now_ms() -> float:
    return time.monotonic() * 1000


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check."""
    allowed: bool
    remaining: int
    retry_after_seconds: int = 0
    bypassed: bool = False

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "retry_after_seconds": self.retry_after_seconds,
            "bypassed": self.bypassed,
        }


class RateLimiter:
    """Sliding window over admission timestamps (milliseconds).

    Not thread-safe: a limiter belongs to exactly one session, and a
    session runs one evaluation at a time.

    Args:
        config: Window size, request ceiling and bypass switch
        clock: Callable returning the current time in milliseconds
    """

    def __init__(
        self,
        config: Optional[RateLimitConfig] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config or RateLimitConfig()
        self._clock = clock or _now_ms
        self._timestamps: Deque[float] = deque()

    def _prune(self, now: float) -> None:
        window_start = now - self.config.window_ms
        while self._timestamps and self._timestamps[0] < window_start:
            self._timestamps.popleft()

    def check(self, emergency: bool = False) -> RateLimitDecision:
        """Evaluate one admission request and record it if admitted.

        Args:
            emergency: Request admission under the emergency bypass

        Returns:
            RateLimitDecision; rejected decisions carry retry_after_seconds
        """
        now = self._clock()
        self._prune(now)

        # For callers that admit emergencies through the limiter
        if emergency and self.config.emergency_bypass:
            self._timestamps.append(now)
            logger.info(
                "RATE_LIMIT_EMERGENCY_BYPASS",
                extra={"window_count": len(self._timestamps)}
            )
            return RateLimitDecision(
                allowed=True,
                remaining=max(0, self.config.max_requests - len(self._timestamps)),
                bypassed=True,
            )

        if len(self._timestamps) >= self.config.max_requests:
            oldest = self._timestamps[0]
            retry_after = math.ceil((oldest + self.config.window_ms - now) / 1000)
            logger.warning(
                "RATE_LIMIT_EXCEEDED",
                extra={
                    "window_count": len(self._timestamps),
                    "max_requests": self.config.max_requests,
                    "retry_after_seconds": retry_after,
                }
            )
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                retry_after_seconds=max(1, retry_after),
            )

        self._timestamps.append(now)
        return RateLimitDecision(
            allowed=True,
            remaining=self.config.max_requests - len(self._timestamps),
        )

    def window_count(self) -> int:
        """Number of admissions still inside the window as of now."""
        self._prune(self._clock())
        return len(self._timestamps)
