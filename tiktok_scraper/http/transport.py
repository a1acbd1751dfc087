"""Pooled direct HTTP transport on curl_cffi.

curl_cffi impersonates Chrome's TLS and HTTP/2 fingerprint, so direct requests
look like the browser that holds the session. The transport never keeps
cookies of its own: every request takes its Cookie header from the
SessionStore, and every response is written back into it.
"""

import asyncio
import logging
from typing import Dict, Optional

from curl_cffi import CurlError
from curl_cffi.requests import AsyncSession

from ..browser.headers import ChromeHeadersGenerator, ChromeProfile
from ..config import ScraperConfig
from ..errors import TransportError
from ..metrics import NullTimingSink, Timer, TimingSink
from ..session import SessionStore
from .proxy import parse_proxy_url, proxy_mapping, redact_proxy_url
from .response import Response

logger = logging.getLogger(__name__)


class DirectTransport:
    """
    Connection-pooled HTTP client for endpoints that need no in-browser fetch.

    Requests run in parallel; the underlying AsyncSession is created lazily
    and recreated after a proxy change.
    """

    def __init__(self, config: ScraperConfig, session: SessionStore,
                 timing: Optional[TimingSink] = None):
        self.config = config
        self.session = session
        self.timing = timing or NullTimingSink()
        self.headers = ChromeHeadersGenerator(ChromeProfile(config.user_agent), config.base_url)
        self._proxy_url = parse_proxy_url(config.proxy_url)
        self._client: Optional[AsyncSession] = None
        self._closed = False

    @property
    def proxy_url(self) -> Optional[str]:
        return self._proxy_url

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _create_client(self) -> AsyncSession:
        client_kwargs = {
            "impersonate": self.config.impersonate,
            "verify": self.config.verify_ssl,
            "timeout": (self.config.connect_timeout, self.config.request_timeout),
            "max_clients": self.config.max_connections,
        }
        proxies = proxy_mapping(self._proxy_url)
        if proxies:
            client_kwargs["proxies"] = proxies
        return AsyncSession(**client_kwargs)

    async def set_proxy(self, proxy_url: Optional[str]) -> None:
        """Route future requests through proxy_url; empty resets to direct.

        Raises ConfigurationError before touching the current pool.
        """
        validated = parse_proxy_url(proxy_url)
        old_client, self._client = self._client, None
        self._proxy_url = validated
        if old_client is not None:
            await old_client.close()
        logger.info("Direct transport proxy set to %s", redact_proxy_url(validated))

    async def get(self, url: str, extra_headers: Optional[Dict[str, str]] = None) -> Response:
        """GET url with the Chrome header set and the session's cookies.

        Returns the response whatever its status; raises TransportError when
        no response arrived at all.
        """
        if self._closed:
            raise TransportError("transport has been closed")
        if self._client is None:
            self._client = self._create_client()
        # set_proxy may swap the pool while this request is in flight
        client = self._client

        headers = self.headers.generate_headers(self.session.cookie_header(url))
        if extra_headers:
            headers.update(extra_headers)

        timer = Timer()
        try:
            with timer:
                raw = await client.get(url, headers=headers, allow_redirects=True)
        except (CurlError, OSError, asyncio.TimeoutError) as e:
            raise TransportError(f"request {url} failed: {e}") from e
        finally:
            self.timing.record("direct_fetch", url=url, total=timer.elapsed)

        set_cookie_headers = raw.headers.get_list("set-cookie")
        # The SessionStore owns cookies; drop the pool's own copies
        client.cookies.clear()

        response = Response(
            status_code=raw.status_code,
            headers={key: value for key, value in raw.headers.items()},
            content=raw.content,
            url=str(raw.url),
            elapsed=timer.elapsed,
            set_cookie_headers=set_cookie_headers,
        )
        self.session.update_from_response(response.headers, set_cookie_headers)

        logger.debug("GET %s -> %d (%d bytes)", url, response.status_code, len(response.content))
        return response

    async def close(self) -> None:
        """Close the pool. Safe to call more than once."""
        self._closed = True
        if self._client is not None:
            client, self._client = self._client, None
            await client.close()
