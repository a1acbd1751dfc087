"""Per-operation-class request spacing.

Each operation class has its own window and its own lock: a backlog of search
requests never delays a profile lookup. Within a class, callers are served in
lock-acquisition order and no two requests start less than the configured
interval apart.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional

from ..metrics import NullTimingSink, TimingSink

logger = logging.getLogger(__name__)


class OperationClass(Enum):
    """Request categories with independent rate limits."""
    SEARCH = "search"
    PROFILE = "profile"


@dataclass
class RateWindow:
    """Spacing state for one operation class."""
    interval: float
    jitter_max: float = 0.5
    last_request: Optional[float] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    # Stats
    total_requests: int = 0
    delayed_requests: int = 0
    total_delay: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "interval": self.interval,
            "jitter_max": self.jitter_max,
            "total_requests": self.total_requests,
            "delayed_requests": self.delayed_requests,
            "avg_delay": self.total_delay / max(1, self.delayed_requests),
        }


class RateLimiter:
    """Minimum-interval throttle with jitter, one window per OperationClass."""

    def __init__(self, search_interval: float = 2.0, profile_interval: float = 1.0,
                 jitter_max: float = 0.5, timing: Optional[TimingSink] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], "asyncio.Future"] = asyncio.sleep,
                 uniform: Callable[[float, float], float] = random.uniform):
        if search_interval < 0 or profile_interval < 0 or jitter_max < 0:
            raise ValueError("intervals and jitter must be non-negative")
        self._windows = {
            OperationClass.SEARCH: RateWindow(search_interval, jitter_max),
            OperationClass.PROFILE: RateWindow(profile_interval, jitter_max),
        }
        self.timing = timing or NullTimingSink()
        self._clock = clock
        self._sleep = sleep
        self._uniform = uniform

    def window(self, operation_class: OperationClass) -> RateWindow:
        return self._windows[operation_class]

    def set_interval(self, operation_class: OperationClass, interval: float) -> None:
        """Change the minimum spacing for one class."""
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self._windows[operation_class].interval = interval

    async def throttle(self, operation_class: OperationClass) -> None:
        """Wait until the next request of this class may start, then claim the slot."""
        window = self._windows[operation_class]
        async with window.lock:
            window.total_requests += 1
            if window.interval == 0:
                return

            start = self._clock()
            if window.last_request is None:
                window.last_request = start
                self.timing.record("throttle", cls=operation_class.value, first_call=True)
                return

            elapsed = start - window.last_request
            jitter = self._uniform(0.0, window.jitter_max) if window.jitter_max > 0 else 0.0
            wait = window.interval + jitter - elapsed
            if wait > 0:
                window.delayed_requests += 1
                window.total_delay += wait
                logger.debug("Throttling %s request for %.3fs", operation_class.value, wait)
                await self._sleep(wait)

            window.last_request = self._clock()
            self.timing.record(
                "throttle", cls=operation_class.value, delay=window.interval,
                jitter=jitter, elapsed=elapsed, slept=self._clock() - start,
            )

    def get_stats(self) -> Dict[str, Dict[str, float]]:
        return {cls.value: window.to_dict() for cls, window in self._windows.items()}


def create_rate_limiter(config, timing: Optional[TimingSink] = None) -> RateLimiter:
    """Build a limiter from a ScraperConfig."""
    return RateLimiter(
        search_interval=config.search_delay,
        profile_interval=config.profile_delay,
        jitter_max=config.jitter_max,
        timing=timing,
    )
