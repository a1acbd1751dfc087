"""Data models for the TikTok scraper.

Records are immutable values built by the response decoders; the request
engine only carries them around together with the continuation cursor.
"""

from .records import (
    Video,
    Author,
    Challenge,
    Page,
    timestamp_to_datetime,
)

__all__ = [
    "Video",
    "Author",
    "Challenge",
    "Page",
    "timestamp_to_datetime",
]
