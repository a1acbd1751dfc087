"""Exception hierarchy for the TikTok scraper.

Every expected failure mode surfaces as a subclass of ScraperError, so callers
match on the exception type rather than on message text:

    try:
        author = await client.get_user("someone")
    except NotFound:
        ...
    except RateLimited:
        ...
"""

from typing import Optional


class ScraperError(Exception):
    """Base class for all scraper errors."""
    pass


class RateLimited(ScraperError):
    """The remote answered with a too-many-requests signal."""
    pass


class NotFound(ScraperError):
    """The requested user, hashtag or resource does not exist."""
    pass


class AuthenticationRequired(ScraperError):
    """The session is missing or was rejected by the remote."""
    pass


class CaptchaRequired(ScraperError):
    """The remote served a verification challenge instead of data."""
    pass


class SigningFailed(ScraperError):
    """The signing function was unreachable, failed, or timed out."""
    pass


class ResourceNotReady(ScraperError):
    """Signing or browser fetch was attempted before the browser was initialized."""
    pass


class InvalidResponse(ScraperError):
    """The payload was malformed or semantically empty."""
    pass


class TransportError(ScraperError):
    """The request never produced an HTTP response (network failure, timeout)."""
    pass


class HTTPStatusError(ScraperError):
    """Non-2xx status that has no dedicated error type."""

    def __init__(self, status_code: int, url: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        message = f"unexpected status {status_code}"
        if url:
            message += f" for {url}"
        super().__init__(message)


class InvalidQuery(ScraperError, ValueError):
    """A required query argument (username, keyword, hashtag) is empty."""
    pass


class ConfigurationError(ScraperError, ValueError):
    """Invalid client configuration, rejected before any network activity."""
    pass


class CookieStorageError(ScraperError, OSError):
    """Cookies could not be read from or written to durable storage."""
    pass


def add_context(error: ScraperError, operation: str) -> ScraperError:
    """Prefix the error message with what was being done, keeping its type.

        raise add_context(e, f"get user {username!r}")
    """
    message = str(error)
    error.args = (f"{operation}: {message}" if message else operation,)
    return error
