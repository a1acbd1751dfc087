"""Request pacing for the scraper's operation classes."""

from .rate_limiter import (
    OperationClass,
    RateWindow,
    RateLimiter,
    create_rate_limiter,
)

__all__ = [
    "OperationClass",
    "RateWindow",
    "RateLimiter",
    "create_rate_limiter",
]
