"""Proxy URL validation for the direct transport."""

from typing import Dict, Optional
from urllib.parse import urlparse

from ..errors import ConfigurationError

SUPPORTED_PROXY_SCHEMES = ("http", "https", "socks5", "socks5h")


def parse_proxy_url(proxy_url: Optional[str]) -> Optional[str]:
    """Validate a proxy URL.

    Returns the normalized URL, or None when proxy_url is empty (no proxy).
    Raises ConfigurationError for malformed URLs or unsupported schemes.
    """
    if not proxy_url:
        return None

    proxy_url = proxy_url.strip()
    try:
        parsed = urlparse(proxy_url)
        port = parsed.port
    except ValueError as e:
        raise ConfigurationError(f"invalid proxy URL {proxy_url!r}: {e}") from e

    if not parsed.scheme:
        raise ConfigurationError(f"invalid proxy URL {proxy_url!r}: missing scheme")
    scheme = parsed.scheme.lower()
    if scheme not in SUPPORTED_PROXY_SCHEMES:
        raise ConfigurationError(
            f"unsupported proxy scheme {scheme!r} (supported: {', '.join(SUPPORTED_PROXY_SCHEMES)})"
        )
    if not parsed.hostname:
        raise ConfigurationError(f"invalid proxy URL {proxy_url!r}: missing host")
    if port is not None and port <= 0:
        raise ConfigurationError(f"invalid proxy URL {proxy_url!r}: bad port")

    return proxy_url


def proxy_mapping(proxy_url: Optional[str]) -> Optional[Dict[str, str]]:
    """Build the proxies mapping curl_cffi expects."""
    if not proxy_url:
        return None
    return {"http": proxy_url, "https": proxy_url}


def redact_proxy_url(proxy_url: Optional[str]) -> str:
    """Hide credentials before a proxy URL reaches the logs."""
    if not proxy_url:
        return "<none>"
    parsed = urlparse(proxy_url)
    if parsed.username or parsed.password:
        host = parsed.hostname or ""
        if parsed.port:
            host = f"{host}:{parsed.port}"
        return f"{parsed.scheme}://***@{host}"
    return proxy_url


def playwright_proxy(proxy_url: Optional[str]) -> Optional[Dict[str, str]]:
    """Build the proxy settings Playwright's launch() expects."""
    if not proxy_url:
        return None
    parsed = urlparse(proxy_url)
    server = f"{parsed.scheme}://{parsed.hostname}"
    if parsed.port:
        server += f":{parsed.port}"
    settings = {"server": server}
    if parsed.username:
        settings["username"] = parsed.username
    if parsed.password:
        settings["password"] = parsed.password
    return settings
