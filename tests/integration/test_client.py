"""
Integration tests: TikTokClient against the local fake server.

These cover every public operation end to end (routing, status
classification, decoding, pagination and session propagation) over real
HTTP on localhost. No browser is launched; browser-routed endpoints go
through the PassthroughSigner or the in-memory FakeDriver.
"""

import asyncio

import pytest

from tiktok_scraper.client import TikTokClient
from tiktok_scraper.errors import (
    CaptchaRequired,
    ConfigurationError,
    InvalidQuery,
    InvalidResponse,
    NotFound,
    RateLimited,
    ResourceNotReady,
    ScraperError,
    TransportError,
)
from tiktok_scraper.http.cookies import Cookie
from tiktok_scraper.scraper import TikTokScraper

pytestmark = pytest.mark.integration


class TestGetUser:

    async def test_profile(self, client, recorded):
        author = await client.get_user("@someone")

        assert author.username == "someone"
        assert author.nickname == "Someone"
        assert author.follower_count == 1200
        assert recorded[0]["path"] == "/@someone"
        assert "Chrome/" in recorded[0]["headers"]["user-agent"]

    async def test_rotated_token_reaches_session(self, client):
        await client.get_user("someone")
        assert client.token == "rotated-by-profile"

    async def test_rate_limited(self, client):
        with pytest.raises(RateLimited, match="get user 'limited'"):
            await client.get_user("limited")

    async def test_not_found(self, client):
        with pytest.raises(NotFound):
            await client.get_user("ghost")

    async def test_empty_user_data_is_not_found(self, client):
        with pytest.raises(NotFound, match="user data missing"):
            await client.get_user("empty")

    async def test_captcha(self, client):
        with pytest.raises(CaptchaRequired):
            await client.get_user("captcha")

    async def test_timing_recorded(self, client):
        await client.get_user("someone")
        event = client.timing.named("get_user")[0]
        assert event.fields["user"] == "someone"
        assert {"delay", "http", "parse", "body"} <= set(event.fields)


class TestSearchVideos:

    async def test_pages_until_limit(self, client, recorded):
        result = await client.search_videos("cats", limit=25)

        assert result.ok
        assert len(result.records) == 25
        assert [r["query"]["cursor"] for r in recorded] == ["0", "20"]

    async def test_small_limit_costs_one_request(self, client, recorded):
        result = await client.search_videos("cats", limit=5)

        assert [v.id for v in result.records] == ["1000", "1001", "1002", "1003", "1004"]
        assert len(recorded) == 1

    async def test_stops_when_remote_exhausted(self, client, recorded):
        result = await client.search_videos("cats", limit=100)
        assert len(result.records) == 25
        assert len(recorded) == 2

    async def test_rate_limited_result(self, client):
        result = await client.search_videos("limited", limit=10)
        assert result.records == []
        assert isinstance(result.error, RateLimited)
        assert "search videos 'limited'" in str(result.error)

    async def test_not_found_result(self, client):
        result = await client.search_videos("ghost", limit=10)
        assert isinstance(result.error, NotFound)

    async def test_partial_results_survive_failure(self, client):
        result = await client.search_videos("flaky", limit=50)

        assert len(result.records) == 20
        assert isinstance(result.error, RateLimited)
        with pytest.raises(RateLimited):
            result.raise_for_error()

    async def test_bad_cursor_keeps_earlier_pages(self, client):
        result = await client.search_videos("unbounded", limit=50)

        assert len(result.records) == 20
        assert isinstance(result.error, InvalidResponse)

    async def test_token_carried_to_next_page(self, client, recorded):
        await client.search_videos("cats", limit=25)

        assert "msToken" not in recorded[0]["query"]
        assert recorded[1]["query"]["msToken"] == "search-token-0"
        assert "msToken=search-token-0" in recorded[1]["headers"]["cookie"]

    async def test_empty_keyword(self, client, recorded):
        with pytest.raises(InvalidQuery):
            await client.search_videos("   ", limit=10)
        assert recorded == []


class TestHashtag:

    async def test_challenge(self, client):
        challenge = await client.get_challenge("#cats")
        assert challenge.id == "42"
        assert challenge.title == "cats"

    async def test_search_by_hashtag(self, client, recorded):
        result = await client.search_by_hashtag("cats", limit=40)

        assert len(result.records) == 40
        assert [r["path"] for r in recorded] == [
            "/api/challenge/detail/",
            "/api/challenge/item_list/",
            "/api/challenge/item_list/",
        ]
        assert recorded[1]["query"]["challengeID"] == "42"

    async def test_unknown_hashtag(self, client):
        result = await client.search_by_hashtag("unknown", limit=10)
        assert result.records == []
        assert isinstance(result.error, NotFound)

        with pytest.raises(NotFound):
            await client.get_challenge("unknown")

    @pytest.mark.parametrize("tag,error", [("limited", RateLimited), ("ghost", NotFound)])
    async def test_status_errors(self, client, tag, error):
        result = await client.search_by_hashtag(tag, limit=10)
        assert isinstance(result.error, error)

        with pytest.raises(error):
            await client.get_challenge(tag)

    async def test_empty_hashtag(self, client):
        with pytest.raises(InvalidQuery):
            await client.search_by_hashtag("#", limit=10)
        with pytest.raises(InvalidQuery):
            await client.get_challenge("")


class TestSessionAndLifecycle:

    async def test_cookie_round_trip_without_network(self, client, recorded, tmp_path):
        client.set_cookies([Cookie("sessionid", "s1"), Cookie("msToken", "t1")])
        path = tmp_path / "cookies.json"
        client.save_cookies(path)

        other = TikTokClient(client.config)
        try:
            other.load_cookies(path)
            assert other.is_logged_in
            assert {c.name for c in other.get_cookies()} == {"sessionid", "msToken"}
            assert recorded == []

            await other.get_user("someone")
            assert "sessionid=s1" in recorded[0]["headers"]["cookie"]
        finally:
            await other.close()

    async def test_not_logged_in_by_default(self, client):
        assert not client.is_logged_in

    async def test_set_proxy_validation(self, client, recorded):
        with pytest.raises(ConfigurationError):
            await client.set_proxy("ftp://127.0.0.1:21")
        with pytest.raises(ConfigurationError):
            await client.set_proxy("://bad")

        await client.set_proxy("socks5://127.0.0.1:1080")
        assert client.transport.proxy_url == "socks5://127.0.0.1:1080"
        await client.set_proxy("")
        assert client.transport.proxy_url is None
        assert recorded == []

    async def test_close_twice(self, client):
        await client.get_user("someone")
        await client.close()
        await client.close()

        with pytest.raises(TransportError):
            await client.get_user("someone")

    async def test_close_without_use(self, server_config):
        client = TikTokClient(server_config)
        await client.close()
        await client.close()

    async def test_login_needs_browser(self, client):
        with pytest.raises(ResourceNotReady):
            await client.login("me", "pw")

    async def test_concurrent_profiles(self, client, recorded):
        authors = await asyncio.gather(*(client.get_user(f"user{i}") for i in range(5)))
        assert sorted(a.username for a in authors) == [f"user{i}" for i in range(5)]


class TestBrowserRoutes:
    """Signed and in-browser routes with the in-memory driver."""

    @pytest.fixture
    def browser_config(self, server_config):
        return server_config.with_overrides(browser_signing=True)

    async def test_signed_route_sends_signature(self, browser_config, fake_driver, recorded):
        async with TikTokClient(browser_config, driver=fake_driver) as client:
            await client.init_browser()
            challenge = await client.get_challenge("cats")

        assert challenge.id == "42"
        assert recorded[0]["query"]["X-Bogus"] == "signed"
        assert fake_driver.closed == 1

    async def test_browser_route_uses_in_page_fetch(self, browser_config, fake_driver, recorded):
        fake_driver.fetch_result = {
            "status": 200,
            "body": '{"item_list": [{"id": "1"}], "has_more": 0}',
            "token": "page-token",
        }
        async with TikTokClient(browser_config, driver=fake_driver) as client:
            await client.init_browser()
            result = await client.search_videos("cats", limit=10)
            assert client.token == "page-token"

        assert [v.id for v in result.records] == ["1"]
        assert recorded == []

    async def test_browser_route_status_classification(self, browser_config, fake_driver):
        fake_driver.fetch_result = {"status": 429, "body": ""}
        async with TikTokClient(browser_config, driver=fake_driver) as client:
            await client.init_browser()
            result = await client.search_videos("cats", limit=10)

        assert isinstance(result.error, RateLimited)

    async def test_search_before_init_browser(self, browser_config, fake_driver):
        async with TikTokClient(browser_config, driver=fake_driver) as client:
            result = await client.search_videos("cats", limit=10)
        assert isinstance(result.error, ResourceNotReady)

    async def test_login(self, browser_config, fake_driver):
        fake_driver.browser_cookies.append(
            {"name": "sessionid", "value": "s1", "domain": "127.0.0.1", "path": "/"}
        )
        async with TikTokClient(browser_config, driver=fake_driver) as client:
            await client.login("me@example.com", "pw")

            assert client.is_logged_in
            assert "sessionid" in {c.name for c in client.get_cookies()}
            assert client.signer.state.value == "not_ready"

    async def test_login_with_cookies(self, browser_config, fake_driver, tmp_path):
        path = tmp_path / "cookies.json"
        async with TikTokClient(browser_config, driver=fake_driver) as client:
            client.set_cookies([Cookie("sessionid", "s1")])
            client.save_cookies(path)

        fresh_driver = type(fake_driver)()
        async with TikTokClient(browser_config, driver=fresh_driver) as client:
            await client.login_with_cookies(path)
            assert client.is_logged_in

        assert "sessionid" in {c["name"] for c in fresh_driver.added_cookies}


class TestSyncScraper:

    async def test_blocking_facade(self, server_config):
        scraper = TikTokScraper(server_config)
        try:
            author = await asyncio.to_thread(scraper.get_user, "someone")
            result = await asyncio.to_thread(scraper.search_videos, "cats", 5)
        finally:
            await asyncio.to_thread(scraper.close)

        assert author.username == "someone"
        assert len(result) == 5
        assert scraper.get_cookies()

    async def test_closed_scraper_rejects_calls(self, server_config):
        scraper = TikTokScraper(server_config)
        await asyncio.to_thread(scraper.close)
        await asyncio.to_thread(scraper.close)

        with pytest.raises(ScraperError, match="closed"):
            scraper.get_user("someone")
