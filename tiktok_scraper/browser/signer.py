"""Request signing through the site's own client-side code.

The signing agent owns the single browser page. The page is not reentrant, so
one asyncio.Lock serializes every sign, fetch, probe and navigation, and the
readiness state is read and written only while that lock is held.

Readiness transitions:

    UNINITIALIZED --initialize()--> READY
    READY --sign/fetch raises--> NOT_READY
    NOT_READY --probe ok, or re-navigate--> READY

A failed call is never retried in place. It leaves the agent NOT_READY, so the
next caller pays the recovery probe (and re-navigation if the probe fails)
exactly once.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, TypeVar

from ..config import ScraperConfig
from ..errors import InvalidResponse, ResourceNotReady, SigningFailed
from ..http.response import Response
from ..metrics import NullTimingSink, Timer, TimingSink
from ..session import TOKEN_HEADER, SessionStore
from .driver import BrowserDriver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Readiness(Enum):
    """Whether the signing function is confirmed reachable in the page."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    NOT_READY = "not_ready"


@dataclass
class BrowserResponse:
    """Result of one in-page signed fetch."""
    status: int
    body: bytes
    url: str
    token: Optional[str] = None
    sign_ms: int = 0
    fetch_ms: int = 0
    read_ms: int = 0

    @classmethod
    def from_script_result(cls, url: str, result: Dict[str, Any]) -> "BrowserResponse":
        try:
            status = int(result["status"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidResponse(f"in-page fetch result has no status: {e}") from e
        body = result.get("body") or ""
        return cls(
            status=status,
            body=body.encode("utf-8") if isinstance(body, str) else bytes(body),
            url=url,
            token=result.get("token") or None,
            sign_ms=int(result.get("signMs") or 0),
            fetch_ms=int(result.get("fetchMs") or 0),
            read_ms=int(result.get("readMs") or 0),
        )

    def to_response(self) -> Response:
        headers = {TOKEN_HEADER: self.token} if self.token else {}
        return Response(self.status, headers, self.body, self.url)


class Signer(Protocol):
    """Signing capability consumed by the client's fetch routes."""

    async def initialize(self) -> None:
        ...

    async def sign(self, url: str) -> str:
        ...

    async def sign_and_fetch(self, url: str) -> BrowserResponse:
        ...

    async def push_session(self) -> None:
        ...

    async def close(self) -> None:
        ...


class SigningAgent:
    """Browser-backed Signer with lazy, bounded readiness recovery."""

    def __init__(self, driver: BrowserDriver, session: SessionStore,
                 config: Optional[ScraperConfig] = None,
                 timing: Optional[TimingSink] = None,
                 proxy_url: Optional[str] = None):
        self.driver = driver
        self.session = session
        self.config = config or ScraperConfig()
        self.timing = timing or NullTimingSink()
        self.proxy_url = proxy_url

        self._lock = asyncio.Lock()
        self._state = Readiness.UNINITIALIZED
        self.probe_count = 0

    @property
    def state(self) -> Readiness:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is not Readiness.UNINITIALIZED

    async def initialize(self) -> None:
        """Launch the browser, open the site and pull its cookies. Idempotent."""
        async with self._lock:
            if self._state is not Readiness.UNINITIALIZED:
                return

            timer = Timer()
            try:
                with timer:
                    await self.driver.launch(self.proxy_url)
                    await self.driver.add_cookies(self.session.to_browser_cookies())
                    await self.driver.navigate(self.config.base_url)
                    browser_cookies = await self.driver.cookies()
            except asyncio.CancelledError:
                await self.driver.close()
                raise
            except Exception as e:
                await self.driver.close()
                raise SigningFailed(f"initialize browser: {e}") from e

            self._state = Readiness.READY
            count = self.session.merge_browser_cookies(browser_cookies)
            self.timing.record("browser_init", total=timer.elapsed, cookies=count)
            logger.info("Signing browser ready (%d cookies synced)", count)

    async def sign(self, url: str) -> str:
        """Return url with the site's signature parameters applied."""
        async with self._lock:
            self._require_initialized()
            timer = Timer()
            try:
                with timer:
                    await self._ensure_ready()
                    signed = await asyncio.wait_for(
                        self.driver.evaluate_sign(url), self.config.sign_timeout
                    )
            except asyncio.CancelledError:
                self._state = Readiness.NOT_READY
                raise
            except asyncio.TimeoutError as e:
                self._state = Readiness.NOT_READY
                raise SigningFailed(f"sign {url}: timed out after {self.config.sign_timeout}s") from e
            except Exception as e:
                self._state = Readiness.NOT_READY
                raise SigningFailed(f"sign {url}: {e}") from e

            self.timing.record("sign", total=timer.elapsed)
            return signed

    async def sign_and_fetch(self, url: str) -> BrowserResponse:
        """Sign url and fetch it from inside the page, sharing the browser's fingerprint."""
        async with self._lock:
            self._require_initialized()
            timer = Timer()
            try:
                with timer:
                    await self._ensure_ready()
                    result = await asyncio.wait_for(
                        self.driver.evaluate_fetch(url), self.config.fetch_timeout
                    )
                    response = BrowserResponse.from_script_result(url, result)
            except asyncio.CancelledError:
                self._state = Readiness.NOT_READY
                raise
            except asyncio.TimeoutError as e:
                self._state = Readiness.NOT_READY
                raise SigningFailed(f"fetch {url}: timed out after {self.config.fetch_timeout}s") from e
            except Exception as e:
                self._state = Readiness.NOT_READY
                raise SigningFailed(f"fetch {url}: {e}") from e

        self.session.apply_token(response.token)
        self.timing.record(
            "browser_fetch", js_sign=f"{response.sign_ms}ms", js_fetch=f"{response.fetch_ms}ms",
            js_read=f"{response.read_ms}ms", total=timer.elapsed, body=len(response.body),
        )
        return response

    async def push_session(self) -> None:
        """Copy the session's cookies into the browser context."""
        async with self._lock:
            self._require_initialized()
            cookies = self.session.to_browser_cookies()
            await self.driver.add_cookies(cookies)
            logger.debug("Pushed %d cookies into the browser", len(cookies))

    async def pull_session(self) -> int:
        """Copy the browser context's cookies into the session."""
        async with self._lock:
            self._require_initialized()
            return self.session.merge_browser_cookies(await self.driver.cookies())

    async def run_exclusive(self, action: Callable[[BrowserDriver], Awaitable[T]]) -> T:
        """Run action against the driver with the page to itself.

        The action may navigate away from the site, so readiness is
        re-verified on the next sign or fetch.
        """
        async with self._lock:
            self._require_initialized()
            try:
                return await action(self.driver)
            finally:
                self._state = Readiness.NOT_READY

    async def close(self) -> None:
        """Tear down the browser. Safe without a browser and safe to repeat."""
        async with self._lock:
            if self._state is Readiness.UNINITIALIZED and not self.driver.is_launched:
                return
            self._state = Readiness.UNINITIALIZED
            await self.driver.close()

    def _require_initialized(self) -> None:
        if self._state is Readiness.UNINITIALIZED:
            raise ResourceNotReady("browser not initialized; call init_browser() first")

    async def _ensure_ready(self) -> None:
        """Re-verify the signing function after a failure. Caller holds the lock."""
        if self._state is Readiness.READY:
            return

        self.probe_count += 1
        timer = Timer()
        with timer:
            try:
                present = await asyncio.wait_for(self.driver.probe(), self.config.probe_timeout)
            except Exception as e:
                logger.debug("Signing probe failed: %s", e)
                present = False

            if not present:
                logger.info("Signing function missing, reloading %s", self.config.base_url)
                await asyncio.wait_for(
                    self.driver.navigate(self.config.base_url),
                    self.config.navigation_timeout + self.config.stable_wait,
                )

        self._state = Readiness.READY
        self.timing.record("ensure_ready", reloaded=not present, total=timer.elapsed)


class PassthroughSigner:
    """Signer that leaves URLs unsigned and fetches them with a plain HTTP call.

    Used for unsigned mode (no browser) and as the test double for the
    signing path.
    """

    def __init__(self, fetch: Callable[[str], Awaitable[Response]]):
        self._fetch = fetch

    async def initialize(self) -> None:
        pass

    async def sign(self, url: str) -> str:
        return url

    async def sign_and_fetch(self, url: str) -> BrowserResponse:
        response = await self._fetch(url)
        return BrowserResponse(
            status=response.status_code,
            body=response.content,
            url=url,
            token=response.get_header(TOKEN_HEADER),
        )

    async def push_session(self) -> None:
        pass

    async def close(self) -> None:
        pass
