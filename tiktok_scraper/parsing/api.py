"""Decoders for the JSON web API responses.

Field names differ between endpoints (item_list/has_more on search,
itemList/hasMore on challenge items), and counters sometimes arrive as
strings. Decoders absorb that and hand the client uniform records.
"""

import json
from typing import Any, Dict, List, Mapping

from ..errors import InvalidResponse, NotFound
from ..models import Author, Challenge, Page, Video, timestamp_to_datetime
from ..pagination import next_cursor


def load_json(body: bytes, what: str) -> Dict[str, Any]:
    """Parse a JSON object body or raise InvalidResponse."""
    if not body:
        raise InvalidResponse(f"decode {what}: empty body")
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidResponse(f"decode {what}: {e}") from e
    if not isinstance(data, dict):
        raise InvalidResponse(f"decode {what}: expected a JSON object")
    return data


def as_int(value: Any) -> int:
    """Counter value as int; missing or malformed counts as 0."""
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def parse_video(raw: Mapping[str, Any]) -> Video:
    """Convert one raw API item to a Video."""
    author = _mapping(raw.get("author"))
    stats = _mapping(raw.get("stats"))
    return Video(
        id=as_str(raw.get("id")),
        description=as_str(raw.get("desc")),
        author_id=as_str(author.get("id")),
        username=as_str(author.get("uniqueId")),
        created_at=timestamp_to_datetime(raw.get("createTime")),
        views=as_int(stats.get("playCount")),
        likes=as_int(stats.get("diggCount")),
        comments=as_int(stats.get("commentCount")),
        shares=as_int(stats.get("shareCount")),
    )


def parse_author(user_info: Mapping[str, Any]) -> Author:
    """Convert a userInfo object (user + stats) to an Author."""
    user = _mapping(user_info.get("user"))
    stats = _mapping(user_info.get("stats"))
    return Author(
        id=as_str(user.get("id")),
        username=as_str(user.get("uniqueId")),
        nickname=as_str(user.get("nickname")),
        sec_uid=as_str(user.get("secUid")),
        follower_count=as_int(stats.get("followerCount")),
        following_count=as_int(stats.get("followingCount")),
        video_count=as_int(stats.get("videoCount")),
        heart_count=max(as_int(stats.get("heartCount")), as_int(stats.get("heart"))),
        digg_count=as_int(stats.get("diggCount")),
        verified=bool(user.get("verified")),
        bio=as_str(user.get("signature")),
        avatar_url=as_str(user.get("avatarLarger")),
    )


def _parse_items(items: Any, what: str) -> List[Video]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise InvalidResponse(f"decode {what}: item list is not an array")
    return [parse_video(item) for item in items if isinstance(item, Mapping)]


def decode_search_page(body: bytes) -> Page:
    """Decode /api/search/item/full/ (item_list, has_more, cursor)."""
    data = load_json(body, "search response")
    return Page(
        records=_parse_items(data.get("item_list"), "search response"),
        next_cursor=next_cursor(data.get("has_more"), data.get("cursor"), "has_more"),
    )


def decode_challenge_items(body: bytes) -> Page:
    """Decode /api/challenge/item_list/ (itemList, hasMore, cursor)."""
    data = load_json(body, "hashtag videos")
    return Page(
        records=_parse_items(data.get("itemList"), "hashtag videos"),
        next_cursor=next_cursor(data.get("hasMore"), data.get("cursor"), "hasMore"),
    )


def decode_challenge_detail(body: bytes) -> Challenge:
    """Decode /api/challenge/detail/; an empty challenge id means NotFound."""
    data = load_json(body, "challenge detail")
    info = _mapping(data.get("challengeInfo"))
    challenge = _mapping(info.get("challenge"))
    stats = _mapping(info.get("stats"))

    challenge_id = as_str(challenge.get("id"))
    if not challenge_id:
        raise NotFound("challenge not found")
    return Challenge(
        id=challenge_id,
        title=as_str(challenge.get("title")),
        description=as_str(challenge.get("desc")),
        video_count=as_int(stats.get("videoCount")),
        view_count=as_int(stats.get("viewCount")),
    )
