"""Browser driver: the one real browser page the signing agent talks to.

BrowserDriver is the narrow surface the rest of the package needs from a
browser. PlaywrightDriver implements it on Playwright's async API; tests
substitute an in-memory fake.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Protocol

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from ..config import ScraperConfig
from ..errors import InvalidResponse, ResourceNotReady
from ..http.proxy import playwright_proxy
from .stealth import CHROMIUM_ARGS, apply_stealth, setup_resource_blocking

logger = logging.getLogger(__name__)

PROBE_SCRIPT = "() => typeof window.byted_acrawler !== 'undefined'"

SIGN_SCRIPT = """(url) => {
    if (typeof window.byted_acrawler === 'undefined') {
        throw new Error('signing function not available');
    }
    const params = window.byted_acrawler.frontierSign(url);
    if (typeof params === 'string') {
        return params;
    }
    const u = new URL(url);
    for (const [k, v] of Object.entries(params)) {
        u.searchParams.set(k, v);
    }
    return u.toString();
}"""

FETCH_SCRIPT = """async (url) => {
    if (typeof window.byted_acrawler === 'undefined') {
        throw new Error('signing function not available');
    }
    const t0 = Date.now();
    const params = window.byted_acrawler.frontierSign(url);
    const signMs = Date.now() - t0;
    let signedUrl;
    if (typeof params === 'string') {
        signedUrl = params;
    } else {
        const u = new URL(url);
        for (const [k, v] of Object.entries(params)) {
            u.searchParams.set(k, v);
        }
        signedUrl = u.toString();
    }
    const t1 = Date.now();
    const resp = await fetch(signedUrl, {
        method: 'GET',
        credentials: 'include',
        headers: {'Accept': 'application/json, text/plain, */*'},
    });
    const fetchMs = Date.now() - t1;
    const t2 = Date.now();
    const text = await resp.text();
    const readMs = Date.now() - t2;
    return JSON.stringify({
        body: text,
        status: resp.status,
        token: resp.headers.get('x-ms-token'),
        signMs, fetchMs, readMs,
    });
}"""


class BrowserDriver(Protocol):
    """Operations the signing agent and the login procedure need from a browser."""

    @property
    def is_launched(self) -> bool:
        ...

    async def launch(self, proxy_url: Optional[str] = None) -> None:
        ...

    async def navigate(self, url: str, stable_wait: Optional[float] = None) -> None:
        ...

    async def probe(self) -> bool:
        ...

    async def evaluate_sign(self, url: str) -> str:
        ...

    async def evaluate_fetch(self, url: str) -> Dict[str, Any]:
        ...

    async def fill(self, selector: str, value: str) -> None:
        ...

    async def click(self, selector: str) -> None:
        ...

    async def cookies(self) -> List[Dict[str, Any]]:
        ...

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        ...

    async def close(self) -> None:
        ...


class PlaywrightDriver:
    """Headless Chromium with stealth patches and sub-resource blocking."""

    def __init__(self, config: ScraperConfig):
        self.config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def is_launched(self) -> bool:
        return self._page is not None

    async def launch(self, proxy_url: Optional[str] = None) -> None:
        """Start Chromium and open the page. No-op when already running."""
        if self._page is not None:
            return

        self._playwright = await async_playwright().start()
        try:
            launch_kwargs: Dict[str, Any] = {
                "headless": self.config.headless,
                "args": CHROMIUM_ARGS,
            }
            proxy = playwright_proxy(proxy_url)
            if proxy:
                launch_kwargs["proxy"] = proxy
            self._browser = await self._playwright.chromium.launch(**launch_kwargs)

            self._context = await self._browser.new_context(
                user_agent=self.config.user_agent,
                locale="en-US",
                timezone_id=self.config.timezone,
                viewport={"width": 1920, "height": 1080},
            )
            self._context.set_default_navigation_timeout(self.config.navigation_timeout * 1000)
            if self.config.block_resources:
                await setup_resource_blocking(self._context)

            self._page = await self._context.new_page()
            if self.config.enable_stealth:
                await apply_stealth(self._context, self._page)
        except BaseException:
            await self.close()
            raise

        logger.info("Browser launched (headless=%s)", self.config.headless)

    async def navigate(self, url: str, stable_wait: Optional[float] = None) -> None:
        """Load url and give the page a moment to settle."""
        page = self._require_page()
        await page.goto(url, wait_until="domcontentloaded")
        wait = self.config.stable_wait if stable_wait is None else stable_wait
        try:
            await page.wait_for_load_state("networkidle", timeout=wait * 1000)
        except PlaywrightTimeoutError:
            # Long-polling pages never go fully idle
            logger.debug("Network not idle after %.1fs on %s", wait, url)

    async def probe(self) -> bool:
        return bool(await self._require_page().evaluate(PROBE_SCRIPT))

    async def evaluate_sign(self, url: str) -> str:
        result = await self._require_page().evaluate(SIGN_SCRIPT, url)
        if not isinstance(result, str) or not result:
            raise InvalidResponse("signing function returned no URL")
        return result

    async def evaluate_fetch(self, url: str) -> Dict[str, Any]:
        raw = await self._require_page().evaluate(FETCH_SCRIPT, url)
        try:
            result = json.loads(raw)
        except (TypeError, json.JSONDecodeError) as e:
            raise InvalidResponse(f"in-page fetch returned unparsable result: {e}") from e
        if not isinstance(result, dict):
            raise InvalidResponse("in-page fetch returned a non-object result")
        return result

    async def fill(self, selector: str, value: str) -> None:
        await self._require_page().fill(selector, value)

    async def click(self, selector: str) -> None:
        await self._require_page().click(selector)

    async def cookies(self) -> List[Dict[str, Any]]:
        if self._context is None:
            return []
        return list(await self._context.cookies(self.config.base_url))

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        if self._context is None or not cookies:
            return
        await self._context.add_cookies(cookies)

    async def close(self) -> None:
        """Tear everything down. Safe when nothing was launched."""
        page, self._page = self._page, None
        context, self._context = self._context, None
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None

        if page is not None:
            await page.close()
        if context is not None:
            await context.close()
        if browser is not None:
            await browser.close()
        if playwright is not None:
            await playwright.stop()
            logger.info("Browser closed")

    def _require_page(self) -> Page:
        if self._page is None:
            raise ResourceNotReady("browser page is not open")
        return self._page
