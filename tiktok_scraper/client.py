"""Main TikTokClient class.

Profile lookups are plain HTTP against server-rendered pages. Search and
hashtag lookups go through the signing browser, either to sign a URL for the
direct transport or to run the whole fetch inside the page. Both paths share
one SessionStore, so a token rotated on one path is seen by the other.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .auth import BrowserLogin, LoginProcedure
from .browser.driver import BrowserDriver, PlaywrightDriver
from .browser.signer import PassthroughSigner, Signer, SigningAgent
from .challenge import CaptchaDetector
from .concurrency import OperationClass, RateLimiter, create_rate_limiter
from .config import ScraperConfig
from .endpoints import Endpoint, Route, URLBuilder
from .errors import InvalidQuery, ResourceNotReady, ScraperError, add_context
from .http.cookies import Cookie
from .http.proxy import redact_proxy_url
from .http.response import Response
from .http.transport import DirectTransport
from .metrics import Timer, TimingSink, create_timing_sink
from .models import Author, Challenge
from .pagination import SearchResult, walk
from .parsing import (
    decode_challenge_detail,
    decode_challenge_items,
    decode_search_page,
    extract_universal_data,
    extract_user,
)
from .session import CookieStorage, SessionStore


class TikTokClient:
    """
    Async client for TikTok's web endpoints.

    Usage:
        async with TikTokClient() as client:
            author = await client.get_user("someone")
            await client.init_browser()
            result = await client.search_videos("cats", limit=50)
            result.raise_for_error()

    Search operations return a SearchResult carrying the records collected
    so far together with the error that stopped them, if any. Other
    operations raise ScraperError subclasses.
    """

    def __init__(self, config: Optional[ScraperConfig] = None, *,
                 signer: Optional[Signer] = None,
                 driver: Optional[BrowserDriver] = None,
                 login_procedure: Optional[LoginProcedure] = None,
                 cookie_storage: Optional[CookieStorage] = None,
                 limiter: Optional[RateLimiter] = None,
                 timing: Optional[TimingSink] = None):
        self.config = config or ScraperConfig()
        self.logger = logging.getLogger(__name__)

        self.timing = timing or create_timing_sink(self.config.debug_timing)
        self.session = SessionStore(self.config.base_url, cookie_storage)
        self.limiter = limiter or create_rate_limiter(self.config, self.timing)
        self.transport = DirectTransport(self.config, self.session, self.timing)
        self.urls = URLBuilder(self.config)
        self.detector = CaptchaDetector()
        self.login_procedure = login_procedure or BrowserLogin(self.config)

        if signer is not None:
            self.signer = signer
        elif self.config.browser_signing:
            self.signer = SigningAgent(
                driver or PlaywrightDriver(self.config), self.session, self.config,
                self.timing, proxy_url=self.transport.proxy_url,
            )
        else:
            self.signer = PassthroughSigner(self.transport.get)

        self._closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def device_id(self) -> str:
        return self.urls.device_id

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------
    async def get_user(self, username: str) -> Author:
        """Fetch a user profile from its server-rendered page.

        Pure HTTP: needs neither the browser nor a login.
        """
        username = (username or "").strip().lstrip("@")
        if not username:
            raise InvalidQuery("get user: username is required")

        operation = f"get user {username!r}"
        url = self.urls.user_profile(username)
        delay, http, parse = Timer(), Timer(), Timer()
        try:
            with delay:
                await self.limiter.throttle(OperationClass.PROFILE)
            with http:
                response = await self._fetch(Endpoint.USER_PROFILE, url)
            with parse:
                author = extract_user(extract_universal_data(response.content))
        except ScraperError as e:
            add_context(e, operation)
            raise

        self.timing.record(
            "get_user", user=username, delay=delay.elapsed, http=http.elapsed,
            parse=parse.elapsed, body=len(response.content),
        )
        return author

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    async def search_videos(self, keyword: str, limit: int = 20) -> SearchResult:
        """Search videos by keyword, collecting up to limit records."""
        keyword = (keyword or "").strip()
        if not keyword:
            raise InvalidQuery("search videos: keyword is required")
        operation = f"search videos {keyword!r}"

        async def fetch_page(cursor: int):
            url = self.urls.search_videos(keyword, cursor, self.session.token)
            response = await self._fetch(Endpoint.SEARCH_VIDEOS, url)
            return decode_search_page(response.content)

        result = await walk(fetch_page, limit, OperationClass.SEARCH, self.limiter, operation)
        if result.error is not None:
            add_context(result.error, operation)
        self.logger.info("%s: %d videos in %d pages", operation, len(result.records), result.pages)
        return result

    async def get_challenge(self, hashtag: str) -> Challenge:
        """Resolve a hashtag to its challenge metadata (id, title, stats)."""
        hashtag = _normalize_hashtag(hashtag)
        if not hashtag:
            raise InvalidQuery("get challenge: hashtag is required")
        operation = f"get challenge {hashtag!r}"
        try:
            return await self._get_challenge(hashtag)
        except ScraperError as e:
            add_context(e, operation)
            raise

    async def _get_challenge(self, hashtag: str) -> Challenge:
        await self.limiter.throttle(Endpoint.CHALLENGE_DETAIL.operation_class)
        url = self.urls.challenge_detail(hashtag, self.session.token)
        response = await self._fetch(Endpoint.CHALLENGE_DETAIL, url)
        return decode_challenge_detail(response.content)

    async def search_by_hashtag(self, hashtag: str, limit: int = 20) -> SearchResult:
        """Videos under a hashtag: resolve its challenge id, then page the item list."""
        hashtag = _normalize_hashtag(hashtag)
        if not hashtag:
            raise InvalidQuery("search by hashtag: hashtag is required")
        operation = f"search by hashtag {hashtag!r}"

        if limit <= 0:
            return SearchResult()

        try:
            challenge = await self._get_challenge(hashtag)
        except ScraperError as e:
            return SearchResult(error=add_context(e, operation))

        async def fetch_page(cursor: int):
            url = self.urls.challenge_items(challenge.id, cursor, self.session.token)
            response = await self._fetch(Endpoint.CHALLENGE_ITEMS, url)
            return decode_challenge_items(response.content)

        result = await walk(fetch_page, limit, OperationClass.SEARCH, self.limiter, operation)
        if result.error is not None:
            add_context(result.error, operation)
        self.logger.info("%s: %d videos in %d pages", operation, len(result.records), result.pages)
        return result

    # ------------------------------------------------------------------
    # Fetch routing
    # ------------------------------------------------------------------
    async def _fetch(self, endpoint: Endpoint, url: str) -> Response:
        """Send one request along the endpoint's route and vet the response."""
        route = endpoint.route
        if route is Route.DIRECT:
            response = await self.transport.get(url)
        elif route is Route.SIGNED:
            signed_url = await self.signer.sign(url)
            response = await self.transport.get(signed_url)
        else:
            response = (await self.signer.sign_and_fetch(url)).to_response()

        response.raise_for_status()
        self.detector.raise_for_challenge(
            response.content, response.headers, response.status_code, url
        )
        return response

    # ------------------------------------------------------------------
    # Proxy
    # ------------------------------------------------------------------
    async def set_proxy(self, proxy_url: Optional[str]) -> None:
        """Route direct requests through a proxy; "" or None resets.

        Accepts http, https, socks5 and socks5h URLs. The browser picks the
        proxy up the next time it is launched.
        """
        await self.transport.set_proxy(proxy_url)
        if isinstance(self.signer, SigningAgent):
            self.signer.proxy_url = self.transport.proxy_url
            if self.signer.is_initialized:
                self.logger.warning("Browser already running; proxy applies after restart")
        self.logger.info("Proxy set to %s", redact_proxy_url(self.transport.proxy_url))

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def get_cookies(self) -> List[Cookie]:
        return self.session.get_cookies()

    def set_cookies(self, cookies: Iterable[Cookie]) -> None:
        """Replace the session's cookies wholesale."""
        self.session.set_cookies(cookies)

    def save_cookies(self, path: Union[str, Path]) -> None:
        self.session.save(path)

    def load_cookies(self, path: Union[str, Path]) -> None:
        """Load cookies from a file; the session counts as logged in afterwards."""
        self.session.load(path)

    @property
    def is_logged_in(self) -> bool:
        return self.session.is_authenticated

    @property
    def token(self) -> Optional[str]:
        return self.session.token

    # ------------------------------------------------------------------
    # Browser
    # ------------------------------------------------------------------
    async def init_browser(self) -> None:
        """Launch the signing browser. Idempotent."""
        await self.signer.initialize()

    async def login(self, username: str, password: str) -> None:
        """Log in with credentials through the browser."""
        agent = self._require_browser("login")
        await agent.initialize()
        cookies = await agent.run_exclusive(
            lambda driver: self.login_procedure.login(driver, username, password)
        )
        self.session.merge_browser_cookies(cookies)
        self.session.mark_authenticated()
        self.logger.info("Login complete (%d cookies)", len(cookies))

    async def login_with_cookies(self, path: Union[str, Path]) -> None:
        """Load saved cookies and make the browser use them too."""
        self.load_cookies(path)
        await self.signer.initialize()
        await self.signer.push_session()

    def _require_browser(self, operation: str) -> SigningAgent:
        if not isinstance(self.signer, SigningAgent):
            raise ResourceNotReady(f"{operation}: needs a browser-backed signer")
        return self.signer

    async def close(self) -> None:
        """Release the browser and the connection pool. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.signer.close()
        finally:
            await self.transport.close()
        self.logger.debug("TikTokClient closed")


def _normalize_hashtag(hashtag: Optional[str]) -> str:
    return (hashtag or "").strip().lstrip("#")


def create_client(proxy_url: Optional[str] = None, cookies_path: Optional[str] = None,
                  debug_timing: bool = False, **overrides) -> TikTokClient:
    """Create a TikTokClient with common configuration.

    Loading cookies touches only the file system; the browser starts later.
    """
    config = ScraperConfig(proxy_url=proxy_url, debug_timing=debug_timing, **overrides)
    client = TikTokClient(config)
    if cookies_path:
        client.load_cookies(cookies_path)
    return client
