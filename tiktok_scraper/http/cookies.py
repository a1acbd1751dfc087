"""Cookie jar shared by the browser context and the HTTP transport.

Cookies are keyed by (domain, name). The jar converts to and from the three
shapes cookies travel in: Set-Cookie headers from the HTTP transport, cookie
dicts from the browser context, and JSON records in durable storage.
"""

import email.utils
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse


@dataclass
class Cookie:
    """Represents an HTTP cookie."""
    name: str
    value: str
    domain: Optional[str] = None
    path: str = "/"
    expires: Optional[datetime] = None
    secure: bool = False
    http_only: bool = False
    same_site: Optional[str] = None  # "Strict", "Lax", "None"

    @property
    def is_expired(self) -> bool:
        """Check if cookie is expired."""
        if self.expires is None:
            return False
        return datetime.now(timezone.utc) > self.expires

    def matches_domain(self, host: str) -> bool:
        """Check if cookie applies to host."""
        if not self.domain:
            return False
        cookie_domain = self.domain.lower().lstrip('.')
        host = host.lower()
        return host == cookie_domain or host.endswith('.' + cookie_domain)

    def to_header_value(self) -> str:
        """Convert cookie to header value format."""
        return f"{self.name}={self.value}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for durable storage."""
        return {
            "name": self.name,
            "value": self.value,
            "domain": self.domain,
            "path": self.path,
            "expires": self.expires.isoformat() if self.expires else None,
            "secure": self.secure,
            "http_only": self.http_only,
            "same_site": self.same_site,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cookie":
        """Inverse of to_dict. Raises KeyError/ValueError on malformed input."""
        expires = data.get("expires")
        return cls(
            name=str(data["name"]),
            value=str(data["value"]),
            domain=data.get("domain"),
            path=data.get("path") or "/",
            expires=datetime.fromisoformat(expires) if expires else None,
            secure=bool(data.get("secure", False)),
            http_only=bool(data.get("http_only", False)),
            same_site=data.get("same_site"),
        )

    def to_browser_cookie(self, default_domain: str) -> Dict[str, Any]:
        """Convert to the cookie dict accepted by BrowserContext.add_cookies."""
        cookie = {
            "name": self.name,
            "value": self.value,
            "domain": self.domain or default_domain,
            "path": self.path or "/",
            "secure": self.secure,
            "httpOnly": self.http_only,
            "expires": self.expires.timestamp() if self.expires else -1,
        }
        if self.same_site in ("Strict", "Lax", "None"):
            cookie["sameSite"] = self.same_site
        return cookie

    @classmethod
    def from_browser_cookie(cls, data: Dict[str, Any]) -> "Cookie":
        """Build from a cookie dict returned by BrowserContext.cookies."""
        expires = data.get("expires")
        return cls(
            name=data["name"],
            value=data["value"],
            domain=data.get("domain"),
            path=data.get("path") or "/",
            expires=(
                datetime.fromtimestamp(expires, tz=timezone.utc)
                if expires is not None and expires > 0 else None
            ),
            secure=bool(data.get("secure", False)),
            http_only=bool(data.get("httpOnly", False)),
            same_site=data.get("sameSite"),
        )


class CookieJar:
    """Domain-scoped cookie storage. Not synchronized; SessionStore locks around it."""

    def __init__(self, default_domain: str):
        self.default_domain = default_domain
        self._cookies: Dict[str, Dict[str, Cookie]] = {}  # domain -> name -> cookie

    def add_cookie(self, cookie: Cookie) -> None:
        """Add or replace a cookie."""
        if not cookie.domain:
            cookie.domain = self.default_domain
        # "tiktok.com" and ".tiktok.com" name the same cookie scope
        domain_key = "." + cookie.domain.lower().lstrip(".")
        # Reinsert so iteration order follows recency
        domain_cookies = self._cookies.pop(domain_key, {})
        domain_cookies.pop(cookie.name, None)
        domain_cookies[cookie.name] = cookie
        self._cookies[domain_key] = domain_cookies

    def replace_all(self, cookies: Iterable[Cookie]) -> None:
        """Drop every cookie and store the given ones."""
        self._cookies.clear()
        for cookie in cookies:
            self.add_cookie(cookie)

    def get(self, name: str) -> Optional[Cookie]:
        """Return the most recently set unexpired cookie with this name, any domain."""
        for domain_cookies in reversed(list(self._cookies.values())):
            cookie = domain_cookies.get(name)
            if cookie is not None and not cookie.is_expired:
                return cookie
        return None

    def get_cookies(self, url: str) -> List[Cookie]:
        """Get unexpired cookies applying to URL."""
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
        path = parsed.path or "/"
        is_secure = parsed.scheme == "https"

        matching = []
        for domain_cookies in self._cookies.values():
            for cookie in domain_cookies.values():
                if cookie.is_expired or not cookie.matches_domain(host):
                    continue
                if not path.startswith(cookie.path or "/"):
                    continue
                if cookie.secure and not is_secure:
                    continue
                matching.append(cookie)

        # Most specific path first
        matching.sort(key=lambda c: -len(c.path or "/"))
        return matching

    def get_cookie_header(self, url: str) -> Optional[str]:
        """Get Cookie header value for URL."""
        cookies = self.get_cookies(url)
        if not cookies:
            return None
        return "; ".join(cookie.to_header_value() for cookie in cookies)

    def get_all_cookies(self) -> List[Cookie]:
        """Get all cookies in jar."""
        all_cookies = []
        for domain_cookies in self._cookies.values():
            all_cookies.extend(domain_cookies.values())
        return all_cookies

    def parse_set_cookie(self, set_cookie_header: str) -> Optional[Cookie]:
        """Parse one Set-Cookie header and store the cookie."""
        cookie = parse_set_cookie(set_cookie_header)
        if cookie is not None:
            self.add_cookie(cookie)
        return cookie

    def __len__(self) -> int:
        return sum(len(domain_cookies) for domain_cookies in self._cookies.values())


def parse_set_cookie(cookie_str: str) -> Optional[Cookie]:
    """Parse a single Set-Cookie header value."""
    if not cookie_str or not cookie_str.strip():
        return None

    parts = [part.strip() for part in cookie_str.split(';')]
    name_value = parts[0]
    if '=' not in name_value:
        return None

    name, value = name_value.split('=', 1)
    name = name.strip()
    if not name:
        return None
    cookie = Cookie(name=name, value=value.strip().strip('"'))

    max_age: Optional[int] = None
    for part in parts[1:]:
        if '=' in part:
            attr_name, attr_value = part.split('=', 1)
            attr_name = attr_name.strip().lower()
            attr_value = attr_value.strip()

            if attr_name == 'domain':
                cookie.domain = attr_value.lower()
            elif attr_name == 'path':
                cookie.path = attr_value or "/"
            elif attr_name == 'expires':
                cookie.expires = _parse_expires(attr_value)
            elif attr_name == 'max-age':
                try:
                    max_age = int(attr_value)
                except ValueError:
                    pass
            elif attr_name == 'samesite':
                cookie.same_site = attr_value.capitalize()
        else:
            attr_name = part.lower()
            if attr_name == 'secure':
                cookie.secure = True
            elif attr_name == 'httponly':
                cookie.http_only = True

    # Max-Age wins over Expires
    if max_age is not None:
        cookie.expires = datetime.fromtimestamp(
            datetime.now(timezone.utc).timestamp() + max_age, tz=timezone.utc
        )
    return cookie


def _parse_expires(expires_str: str) -> Optional[datetime]:
    try:
        parsed = email.utils.parsedate_to_datetime(expires_str)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

