"""Normalized records produced from TikTok responses."""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Video:
    """A TikTok video with its engagement metrics."""
    id: str
    description: str = ""
    author_id: str = ""
    username: str = ""
    created_at: Optional[datetime] = None
    views: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        return data


@dataclass(frozen=True)
class Author:
    """A TikTok user profile with its stats."""
    id: str
    username: str
    nickname: str = ""
    sec_uid: str = ""
    follower_count: int = 0
    following_count: int = 0
    video_count: int = 0
    heart_count: int = 0
    digg_count: int = 0
    verified: bool = False
    bio: str = ""
    avatar_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Challenge:
    """Hashtag (challenge) metadata."""
    id: str
    title: str = ""
    description: str = ""
    video_count: int = 0
    view_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Page(Generic[T]):
    """One decoded page; next_cursor is None when the remote has no more pages."""
    records: List[T] = field(default_factory=list)
    next_cursor: Optional[int] = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


def timestamp_to_datetime(value: Any) -> Optional[datetime]:
    """Convert a unix timestamp (seconds) to an aware UTC datetime."""
    try:
        seconds = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if seconds <= 0:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
