"""Server-rendered profile pages.

Profile pages embed their data as JSON in a script tag:

    <script id="__UNIVERSAL_DATA_FOR_REHYDRATION__" type="application/json">{...}</script>

The user lives under __DEFAULT_SCOPE__["webapp.user-detail"].userInfo.
"""

import json
from typing import Any, Dict, Mapping

from ..errors import InvalidResponse, NotFound
from ..models import Author
from .api import parse_author

SSR_TAG_OPEN = b'<script id="__UNIVERSAL_DATA_FOR_REHYDRATION__" type="application/json">'
SSR_TAG_CLOSE = b"</script>"

USER_DETAIL_SCOPE = "webapp.user-detail"


def extract_universal_data(html: bytes) -> Dict[str, Any]:
    """Pull the rehydration JSON out of a page.

    Raises InvalidResponse when the script tag is absent, and InvalidResponse
    chained to the JSONDecodeError when its content does not parse.
    """
    start = html.find(SSR_TAG_OPEN)
    if start == -1:
        raise InvalidResponse("rehydration script tag not found")
    start += len(SSR_TAG_OPEN)

    end = html.find(SSR_TAG_CLOSE, start)
    if end == -1:
        raise InvalidResponse("closing script tag not found")

    try:
        data = json.loads(html[start:end])
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidResponse(f"unparsable rehydration data: {e}") from e
    if not isinstance(data, dict):
        raise InvalidResponse("unparsable rehydration data: expected a JSON object")
    return data


def extract_user(data: Mapping[str, Any]) -> Author:
    """Author from rehydration data; NotFound when the user object is empty."""
    scope = data.get("__DEFAULT_SCOPE__")
    detail = scope.get(USER_DETAIL_SCOPE) if isinstance(scope, Mapping) else None
    user_info = detail.get("userInfo") if isinstance(detail, Mapping) else None
    if not isinstance(user_info, Mapping):
        raise NotFound("user data missing in page")

    user = user_info.get("user")
    if not isinstance(user, Mapping) or not user.get("uniqueId"):
        raise NotFound("user data missing in page")
    return parse_author(user_info)
