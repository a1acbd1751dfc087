"""
TikTokScraper - blocking interface over TikTokClient

For callers without an event loop. The scraper owns one private event loop
running in a background thread and forwards each call to it, so blocking
calls from several threads share one browser, one rate limiter and one
session.

Example usage:
    import tiktok_scraper

    with tiktok_scraper.create_scraper() as scraper:
        author = scraper.get_user("someone")
        print(author.follower_count)
"""

import asyncio
import threading
from pathlib import Path
from typing import Any, Coroutine, Iterable, List, Optional, TypeVar, Union

from .client import TikTokClient
from .config import ScraperConfig
from .errors import ScraperError
from .http.cookies import Cookie
from .models import Author, Challenge
from .pagination import SearchResult

T = TypeVar("T")


class TikTokScraper:
    """Synchronous scraper interface."""

    def __init__(self, config: Optional[ScraperConfig] = None, **client_kwargs: Any):
        """Start the background loop and build the client on it."""
        self.config = config or ScraperConfig()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._is_closed = False

        self._start_event_loop()
        self._client: TikTokClient = self._run(self._create_client(client_kwargs))

    def _start_event_loop(self):
        """Start the async event loop in a background thread."""
        ready = threading.Event()

        def run_loop():
            self._loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self._loop)
            ready.set()
            self._loop.run_forever()
            self._loop.close()

        self._thread = threading.Thread(target=run_loop, name="tiktok-scraper-loop", daemon=True)
        self._thread.start()
        ready.wait()

    async def _create_client(self, client_kwargs) -> TikTokClient:
        return TikTokClient(self.config, **client_kwargs)

    def _run(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
        if self._is_closed:
            coro.close()
            raise ScraperError("scraper has been closed")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout=timeout)

    @property
    def client(self) -> TikTokClient:
        return self._client

    def get_user(self, username: str) -> Author:
        return self._run(self._client.get_user(username))

    def search_videos(self, keyword: str, limit: int = 20) -> SearchResult:
        return self._run(self._client.search_videos(keyword, limit))

    def search_by_hashtag(self, hashtag: str, limit: int = 20) -> SearchResult:
        return self._run(self._client.search_by_hashtag(hashtag, limit))

    def get_challenge(self, hashtag: str) -> Challenge:
        return self._run(self._client.get_challenge(hashtag))

    def set_proxy(self, proxy_url: Optional[str]) -> None:
        self._run(self._client.set_proxy(proxy_url))

    def get_cookies(self) -> List[Cookie]:
        return self._client.get_cookies()

    def set_cookies(self, cookies: Iterable[Cookie]) -> None:
        self._client.set_cookies(cookies)

    def save_cookies(self, path: Union[str, Path]) -> None:
        self._client.save_cookies(path)

    def load_cookies(self, path: Union[str, Path]) -> None:
        self._client.load_cookies(path)

    @property
    def is_logged_in(self) -> bool:
        return self._client.is_logged_in

    def init_browser(self) -> None:
        self._run(self._client.init_browser())

    def login(self, username: str, password: str) -> None:
        self._run(self._client.login(username, password))

    def login_with_cookies(self, path: Union[str, Path]) -> None:
        self._run(self._client.login_with_cookies(path))

    def close(self):
        """Close the client and stop the background loop. Safe to call twice."""
        if self._is_closed:
            return

        try:
            future = asyncio.run_coroutine_threadsafe(self._client.close(), self._loop)
            future.result(timeout=30)
        finally:
            self._is_closed = True
            self._loop.call_soon_threadsafe(self._loop.stop)
            if self._thread and self._thread.is_alive():
                self._thread.join(timeout=2)

    def __enter__(self):
        """Support context manager protocol."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Support context manager protocol."""
        self.close()


def create_scraper(proxy_url: Optional[str] = None, cookies_path: Optional[str] = None,
                   **config_overrides: Any) -> TikTokScraper:
    """Create a TikTokScraper with common configuration."""
    scraper = TikTokScraper(ScraperConfig(proxy_url=proxy_url, **config_overrides))
    if cookies_path:
        scraper.load_cookies(cookies_path)
    return scraper
