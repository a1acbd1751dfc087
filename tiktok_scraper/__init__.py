"""TikTok web client with browser-backed request signing.

Key Features:
- Profile lookups over plain HTTP with a Chrome TLS fingerprint (curl_cffi)
- Keyword and hashtag search through a stealth Playwright browser that signs
  requests or fetches them in-page
- Per-operation-class rate limiting with jitter
- One cookie/token session shared by the browser and the HTTP transport
- Cursor pagination that returns partial results together with the error
"""

# Simple blocking interface - PRIMARY INTERFACE
from .scraper import (
    TikTokScraper,
    create_scraper,
)

# Async client
from .client import (
    TikTokClient,
    create_client,
)

from .config import ScraperConfig

from .errors import (
    ScraperError,
    RateLimited,
    NotFound,
    AuthenticationRequired,
    CaptchaRequired,
    SigningFailed,
    ResourceNotReady,
    InvalidResponse,
    InvalidQuery,
    TransportError,
    HTTPStatusError,
    ConfigurationError,
    CookieStorageError,
)

from .models import (
    Video,
    Author,
    Challenge,
    Page,
)

from .pagination import SearchResult, WalkResult
from .http.cookies import Cookie
from .session import SessionStore, CookieStorage, JSONCookieStorage
from .metrics import TimingSink, LoggingTimingSink, RecordingTimingSink

# Version information
__version__ = "0.1.0"
__license__ = "MIT"

__title__ = "tiktok-scraper"
__description__ = "TikTok web client with browser-backed request signing"

__all__ = [
    "TikTokScraper",
    "create_scraper",
    "TikTokClient",
    "create_client",
    "ScraperConfig",
    "ScraperError",
    "RateLimited",
    "NotFound",
    "AuthenticationRequired",
    "CaptchaRequired",
    "SigningFailed",
    "ResourceNotReady",
    "InvalidResponse",
    "InvalidQuery",
    "TransportError",
    "HTTPStatusError",
    "ConfigurationError",
    "CookieStorageError",
    "Video",
    "Author",
    "Challenge",
    "Page",
    "SearchResult",
    "WalkResult",
    "Cookie",
    "SessionStore",
    "CookieStorage",
    "JSONCookieStorage",
    "TimingSink",
    "LoggingTimingSink",
    "RecordingTimingSink",
    "__version__",
]
