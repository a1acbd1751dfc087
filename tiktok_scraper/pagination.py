"""Cursor pagination over paged endpoints.

walk() accumulates records page by page until the limit is reached or the
remote reports no further pages. A failing page ends the walk, but the records
collected so far travel back with the error instead of being thrown away.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from .concurrency import OperationClass, RateLimiter
from .errors import InvalidResponse, ScraperError
from .models import Page

logger = logging.getLogger(__name__)

T = TypeVar("T")

PageFetcher = Callable[[int], Awaitable[Page]]


@dataclass
class WalkResult(Generic[T]):
    """Records collected by a walk, plus the error that stopped it (if any)."""
    records: List[T] = field(default_factory=list)
    error: Optional[ScraperError] = None
    pages: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


# Public name for search operations
SearchResult = WalkResult


async def walk(fetch_page: PageFetcher, limit: int, operation_class: OperationClass,
               limiter: RateLimiter, context: str = "") -> WalkResult:
    """Collect up to limit records, throttling each page fetch.

    Pages are consumed whole; the result is truncated once at the end, so a
    limit smaller than the first page costs exactly one fetch.
    """
    result: WalkResult = WalkResult()
    if limit <= 0:
        return result

    cursor = 0
    while len(result.records) < limit:
        await limiter.throttle(operation_class)
        try:
            page = await fetch_page(cursor)
        except ScraperError as e:
            logger.warning("%s: stopped after %d records: %s",
                           context or "pagination", len(result.records), e)
            result.error = e
            break

        result.pages += 1
        result.records.extend(page.records)
        if page.next_cursor is None:
            break
        if page.next_cursor == cursor:
            # A cursor that does not advance would return the same page again
            logger.warning("%s: cursor %d did not advance, stopping", context or "pagination", cursor)
            break
        cursor = page.next_cursor

    del result.records[limit:]
    return result


_TRUE_STRINGS = {"1", "true"}
_FALSE_STRINGS = {"0", "false", ""}


def normalize_has_more(value: Any, field_name: str = "has_more") -> bool:
    """Interpret the remote's "more pages" flag.

    Booleans, 0/1 and their string forms are taken at face value; a missing
    flag means no more pages. Any other integer counts as "more" and is logged
    as an anomaly. Every other type raises InvalidResponse.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value in (0, 1):
            return bool(value)
        logger.warning("Unexpected %s value %r, treating as more pages", field_name, value)
        return True
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise InvalidResponse(f"unrecognized {field_name} value {value!r}")


def next_cursor(has_more: Any, cursor: Any, field_name: str = "has_more") -> Optional[int]:
    """Build a page's continuation cursor from the raw flag and cursor fields."""
    if not normalize_has_more(has_more, field_name):
        return None
    try:
        value = int(cursor)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidResponse(f"unrecognized cursor value {cursor!r}") from e
    # The remote signals the last page with cursor 0 as well
    return value if value > 0 else None
