"""Session state shared by the browser context and the HTTP transport.

The cookie jar is the single source of truth. The rotating msToken is a view
derived from it: every response that carries a fresh token writes it back into
the jar, and readers always go through SessionStore.token.
"""

import ipaddress
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Union
from urllib.parse import urlparse

from .errors import CookieStorageError
from .http.cookies import Cookie, CookieJar

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "msToken"
TOKEN_HEADER = "X-Ms-Token"


class CookieStorage(Protocol):
    """Durable cookie storage collaborator."""

    def load(self, path: Union[str, Path]) -> List[Cookie]:
        ...

    def save(self, path: Union[str, Path], cookies: List[Cookie]) -> None:
        ...


class JSONCookieStorage:
    """Stores cookies as a JSON list, readable only by the owner."""

    def load(self, path: Union[str, Path]) -> List[Cookie]:
        try:
            with open(path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except OSError as e:
            raise CookieStorageError(f"read cookies file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise CookieStorageError(f"unmarshal cookies {path}: {e}") from e

        if not isinstance(data, list):
            raise CookieStorageError(f"unmarshal cookies {path}: expected a JSON list")
        try:
            return [Cookie.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise CookieStorageError(f"unmarshal cookies {path}: {e}") from e

    def save(self, path: Union[str, Path], cookies: List[Cookie]) -> None:
        payload = json.dumps([cookie.to_dict() for cookie in cookies], indent=2)
        try:
            fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
        except OSError as e:
            raise CookieStorageError(f"write cookies file {path}: {e}") from e


class SessionStore:
    """Per-site cookies, rotating session token and the authenticated flag."""

    def __init__(self, base_url: str, storage: Optional[CookieStorage] = None):
        self.cookie_domain = _cookie_domain(urlparse(base_url).hostname or "")
        self.base_url = base_url
        self.storage = storage or JSONCookieStorage()

        self._lock = threading.RLock()
        self._jar = CookieJar(default_domain=self.cookie_domain)
        self._authenticated = False

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------
    def get_cookies(self) -> List[Cookie]:
        """Return a snapshot of all cookies."""
        with self._lock:
            return [Cookie(**vars(c)) for c in self._jar.get_all_cookies()]

    def set_cookies(self, cookies: Iterable[Cookie]) -> None:
        """Replace the cookie set wholesale."""
        with self._lock:
            self._jar.replace_all(Cookie(**vars(c)) for c in cookies)
            logger.debug("Session cookies replaced (%d cookies)", len(self._jar))

    def merge_cookies(self, cookies: Iterable[Cookie]) -> None:
        """Add or overwrite cookies, keeping the others."""
        with self._lock:
            for cookie in cookies:
                self._jar.add_cookie(Cookie(**vars(cookie)))

    def cookie_header(self, url: str) -> Optional[str]:
        with self._lock:
            return self._jar.get_cookie_header(url)

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------
    @property
    def token(self) -> Optional[str]:
        """Current msToken, derived from the cookie jar."""
        with self._lock:
            cookie = self._jar.get(TOKEN_COOKIE)
            return cookie.value if cookie and cookie.value else None

    def update_from_response(self, headers: Mapping[str, str],
                             set_cookie_headers: Iterable[str] = ()) -> None:
        """Merge rotated cookies and the fresh token from a response."""
        header_token = None
        for key, value in headers.items():
            if key.lower() == TOKEN_HEADER.lower() and value:
                header_token = value
                break

        with self._lock:
            for raw in set_cookie_headers:
                self._jar.parse_set_cookie(raw)
            # Header wins over Set-Cookie when both are present
            if header_token:
                existing = self._jar.get(TOKEN_COOKIE)
                if existing is not None:
                    existing.value = header_token
                else:
                    self._jar.add_cookie(Cookie(name=TOKEN_COOKIE, value=header_token))

    def apply_token(self, token: Optional[str]) -> None:
        """Record a token observed outside an HTTP response (e.g. in-page fetch)."""
        if token:
            self.update_from_response({TOKEN_HEADER: token})

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    @property
    def is_authenticated(self) -> bool:
        """Whether a session was ever established (login or cookie load)."""
        return self._authenticated

    def mark_authenticated(self) -> None:
        self._authenticated = True

    # ------------------------------------------------------------------
    # Browser bridge
    # ------------------------------------------------------------------
    def to_browser_cookies(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [c.to_browser_cookie(self.cookie_domain) for c in self._jar.get_all_cookies()]

    def merge_browser_cookies(self, browser_cookies: Iterable[Dict[str, Any]]) -> int:
        """Pull cookies reported by the browser context into the jar."""
        cookies = [Cookie.from_browser_cookie(item) for item in browser_cookies]
        self.merge_cookies(cookies)
        return len(cookies)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def save(self, path: Union[str, Path]) -> None:
        """Write cookies to durable storage."""
        self.storage.save(path, self.get_cookies())
        logger.info("Saved session cookies to %s", path)

    def load(self, path: Union[str, Path]) -> None:
        """Replace cookies from durable storage and mark the session established."""
        cookies = self.storage.load(path)
        self.set_cookies(cookies)
        self._authenticated = True
        logger.info("Loaded %d session cookies from %s", len(cookies), path)


def _cookie_domain(host: str) -> str:
    """www.tiktok.com -> .tiktok.com, so cookies cover the api subdomains too."""
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        pass
    parts = host.split(".")
    if len(parts) < 2:
        return host
    return "." + ".".join(parts[-2:])
