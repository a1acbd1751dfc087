"""Response decoders: server-rendered pages and JSON API payloads."""

from .api import (
    decode_search_page,
    decode_challenge_items,
    decode_challenge_detail,
    parse_video,
    parse_author,
)
from .ssr import extract_universal_data, extract_user

__all__ = [
    "decode_search_page",
    "decode_challenge_items",
    "decode_challenge_detail",
    "parse_video",
    "parse_author",
    "extract_universal_data",
    "extract_user",
]
