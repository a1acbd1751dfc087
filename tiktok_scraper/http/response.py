"""Response wrapper and status classification.

Both fetch routes (direct HTTP and in-browser fetch) produce a Response, so
status classification and decoding downstream do not care which route ran.
"""

import json
from typing import Any, Dict, List, Optional

from ..errors import (
    AuthenticationRequired,
    HTTPStatusError,
    InvalidResponse,
    NotFound,
    RateLimited,
)


class Response:
    """A completed HTTP exchange, independent of the transport that made it."""

    def __init__(self, status_code: int, headers: Dict[str, str], content: bytes,
                 url: str, elapsed: float = 0.0,
                 set_cookie_headers: Optional[List[str]] = None):
        self._status_code = status_code
        self._headers = headers
        self._content = content
        self._url = url
        self._elapsed = elapsed
        self._set_cookie_headers = list(set_cookie_headers or [])

    @property
    def status_code(self) -> int:
        """HTTP status code."""
        return self._status_code

    @property
    def headers(self) -> Dict[str, str]:
        """Response headers."""
        return self._headers

    @property
    def content(self) -> bytes:
        """Raw response content."""
        return self._content

    @property
    def url(self) -> str:
        """Response URL."""
        return self._url

    @property
    def elapsed(self) -> float:
        """Round trip in seconds."""
        return self._elapsed

    @property
    def set_cookie_headers(self) -> List[str]:
        return list(self._set_cookie_headers)

    @property
    def text(self) -> str:
        return self._content.decode("utf-8", errors="replace")

    @property
    def ok(self) -> bool:
        return 200 <= self._status_code < 300

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        name = name.lower()
        for key, value in self._headers.items():
            if key.lower() == name:
                return value
        return default

    def json(self) -> Any:
        """Parse the body as JSON, raising InvalidResponse on failure."""
        if not self._content:
            raise InvalidResponse(f"empty response body from {self._url}")
        try:
            return json.loads(self._content)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidResponse(f"unparsable JSON from {self._url}: {e}") from e

    def raise_for_status(self) -> None:
        """Map the status code onto the error taxonomy."""
        raise_for_status(self._status_code, self._url)

    def __repr__(self) -> str:
        return f"<Response [{self._status_code}] {self._url}>"


def raise_for_status(status_code: int, url: Optional[str] = None) -> None:
    """Raise the typed error for a non-2xx status; no-op for 2xx."""
    if 200 <= status_code < 300:
        return
    if status_code == 429:
        raise RateLimited(f"rate limited (429) for {url}")
    if status_code == 404:
        raise NotFound(f"not found (404) for {url}")
    if status_code == 401:
        raise AuthenticationRequired(f"authentication required (401) for {url}")
    raise HTTPStatusError(status_code, url)
