"""HTTP layer: cookies, proxy validation, responses and the direct transport.

The transport module is imported directly (tiktok_scraper.http.transport)
because it depends on the session store, which itself builds on this package.
"""

from .cookies import Cookie, CookieJar, parse_set_cookie
from .proxy import SUPPORTED_PROXY_SCHEMES, parse_proxy_url, redact_proxy_url
from .response import Response, raise_for_status

__all__ = [
    "Cookie",
    "CookieJar",
    "parse_set_cookie",
    "SUPPORTED_PROXY_SCHEMES",
    "parse_proxy_url",
    "redact_proxy_url",
    "Response",
    "raise_for_status",
]
