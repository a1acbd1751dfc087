"""Shared fixtures: fast configs, a session store and an in-memory browser driver."""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from tiktok_scraper.browser.signer import SigningAgent
from tiktok_scraper.config import ScraperConfig
from tiktok_scraper.concurrency import RateLimiter
from tiktok_scraper.metrics import RecordingTimingSink
from tiktok_scraper.session import SessionStore


class FakeDriver:
    """In-memory BrowserDriver.

    Counts calls, detects overlapping evaluations and can be told to fail the
    next sign/fetch or to report the signing function as missing.
    """

    def __init__(self, eval_delay: float = 0.0):
        self.eval_delay = eval_delay
        self.launched = False
        self.closed = 0
        self.launch_proxy: Optional[str] = None

        self.navigations: List[str] = []
        self.probes = 0
        self.sign_calls = 0
        self.fetch_calls = 0
        self.filled: Dict[str, str] = {}
        self.clicked: List[str] = []

        self.signing_present = True
        self.fail_next = 0
        self.hang = False
        self.fail_launch = False

        self.browser_cookies: List[Dict[str, Any]] = [
            {"name": "ttwid", "value": "browser-ttwid", "domain": ".tiktok.com",
             "path": "/", "expires": -1, "httpOnly": True, "secure": True},
        ]
        self.added_cookies: List[Dict[str, Any]] = []
        self.fetch_result: Dict[str, Any] = {
            "status": 200, "body": '{"item_list": [], "has_more": 0}',
            "token": "rotated-token", "signMs": 1, "fetchMs": 2, "readMs": 3,
        }

        self._active = 0
        self.max_active = 0

    @property
    def is_launched(self) -> bool:
        return self.launched

    async def launch(self, proxy_url: Optional[str] = None) -> None:
        if self.fail_launch:
            raise RuntimeError("chromium failed to start")
        self.launched = True
        self.launch_proxy = proxy_url

    async def navigate(self, url: str, stable_wait: Optional[float] = None) -> None:
        self.navigations.append(url)
        self.signing_present = True

    async def probe(self) -> bool:
        self.probes += 1
        return self.signing_present

    async def _enter(self) -> None:
        self._active += 1
        self.max_active = max(self.max_active, self._active)
        try:
            if self.hang:
                await asyncio.sleep(3600)
            if self.eval_delay:
                await asyncio.sleep(self.eval_delay)
        finally:
            self._active -= 1
        if self.fail_next:
            self.fail_next -= 1
            self.signing_present = False
            raise RuntimeError("frontierSign is not a function")

    async def evaluate_sign(self, url: str) -> str:
        self.sign_calls += 1
        await self._enter()
        return url + "&X-Bogus=signed"

    async def evaluate_fetch(self, url: str) -> Dict[str, Any]:
        self.fetch_calls += 1
        await self._enter()
        return dict(self.fetch_result)

    async def fill(self, selector: str, value: str) -> None:
        self.filled[selector] = value

    async def click(self, selector: str) -> None:
        self.clicked.append(selector)

    async def cookies(self) -> List[Dict[str, Any]]:
        return [dict(c) for c in self.browser_cookies]

    async def add_cookies(self, cookies: List[Dict[str, Any]]) -> None:
        self.added_cookies.extend(cookies)

    async def close(self) -> None:
        self.closed += 1
        self.launched = False


@pytest.fixture
def fast_config() -> ScraperConfig:
    """Config with no pacing and short deadlines."""
    return ScraperConfig(
        search_delay=0.0,
        profile_delay=0.0,
        jitter_max=0.0,
        sign_timeout=0.5,
        fetch_timeout=0.5,
        probe_timeout=0.5,
        stable_wait=0.0,
        login_wait=0.0,
    )


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore("https://www.tiktok.com")


@pytest.fixture
def timing() -> RecordingTimingSink:
    return RecordingTimingSink()


@pytest.fixture
def no_wait_limiter() -> RateLimiter:
    return RateLimiter(search_interval=0.0, profile_interval=0.0, jitter_max=0.0)


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def make_driver():
    """Factory for drivers with non-default behaviour."""
    return FakeDriver


@pytest.fixture
def signing_agent(fake_driver, session_store, fast_config, timing) -> SigningAgent:
    return SigningAgent(fake_driver, session_store, fast_config, timing)
