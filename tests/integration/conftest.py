"""Fake TikTok web server for end-to-end client tests.

Serves profile pages and the JSON endpoints from memory. Magic query values
select failure modes: "limited" answers 429, "ghost" answers 404, "captcha"
serves a verification page, "flaky" fails on its second page and "unbounded"
sends a non-finite cursor on its second page.
"""

import json
from typing import Any, Dict, List

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from tiktok_scraper.client import TikTokClient
from tiktok_scraper.config import ScraperConfig
from tiktok_scraper.metrics import RecordingTimingSink

SSR_OPEN = '<script id="__UNIVERSAL_DATA_FOR_REHYDRATION__" type="application/json">'

VERIFY_PAGE = """<html><body>
<div id="captcha_container"><img id="captcha-verify-image" src="x.jpeg"/></div>
</body></html>"""


def make_items(start: int, count: int) -> List[Dict[str, Any]]:
    return [
        {
            "id": str(1000 + i),
            "desc": f"video {i}",
            "createTime": 1700000000 + i,
            "author": {"id": "6789", "uniqueId": "someone"},
            "stats": {"playCount": i * 10, "diggCount": i, "commentCount": 0, "shareCount": 0},
        }
        for i in range(start, start + count)
    ]


def profile_html(username: str) -> str:
    data = {
        "__DEFAULT_SCOPE__": {
            "webapp.user-detail": {
                "userInfo": {
                    "user": {"id": "6789", "uniqueId": username, "nickname": username.title()},
                    "stats": {"followerCount": 1200, "followingCount": 35, "videoCount": 48,
                              "heartCount": 98000, "diggCount": 7},
                }
            }
        }
    }
    return f"<html><head>{SSR_OPEN}{json.dumps(data)}</script></head><body></body></html>"


def failure_for(value: str):
    if value == "limited":
        return web.Response(status=429, text="Too Many Requests")
    if value == "ghost":
        return web.Response(status=404, text="Not Found")
    if value == "captcha":
        return web.Response(status=200, text=VERIFY_PAGE, content_type="text/html")
    return None


async def user_profile(request: web.Request) -> web.Response:
    username = request.match_info["username"]
    failure = failure_for(username)
    if failure is not None:
        return failure
    if username == "empty":
        html = f"<html>{SSR_OPEN}{json.dumps({'__DEFAULT_SCOPE__': {}})}</script></html>"
        return web.Response(text=html, content_type="text/html")

    response = web.Response(text=profile_html(username), content_type="text/html")
    response.set_cookie("msToken", "rotated-by-profile", path="/")
    return response


async def search_videos(request: web.Request) -> web.Response:
    keyword = request.query.get("keyword", "")
    cursor = int(request.query.get("cursor", "0"))
    failure = failure_for(keyword)
    if failure is not None:
        return failure
    if keyword == "flaky" and cursor > 0:
        return web.Response(status=429)
    if keyword == "unbounded" and cursor > 0:
        body = '{"item_list": [], "has_more": 1, "cursor": Infinity}'
        return web.Response(text=body, content_type="application/json")

    if cursor == 0:
        payload = {"item_list": make_items(0, 20), "has_more": 1, "cursor": 20}
    else:
        payload = {"item_list": make_items(cursor, 5), "has_more": 0, "cursor": cursor + 5}
    return web.json_response(payload, headers={"X-Ms-Token": f"search-token-{cursor}"})


async def challenge_detail(request: web.Request) -> web.Response:
    name = request.query.get("challengeName", "")
    failure = failure_for(name)
    if failure is not None:
        return failure
    if name == "unknown":
        return web.json_response({"challengeInfo": {"challenge": {}}})
    return web.json_response({
        "challengeInfo": {
            "challenge": {"id": "42", "title": name, "desc": f"{name} videos"},
            "stats": {"videoCount": 45, "viewCount": 1000000},
        }
    })


async def challenge_items(request: web.Request) -> web.Response:
    challenge_id = request.query.get("challengeID", "")
    cursor = int(request.query.get("cursor", "0"))
    if challenge_id != "42":
        return web.json_response({"itemList": [], "hasMore": False})
    if cursor == 0:
        payload = {"itemList": make_items(0, 35), "hasMore": True, "cursor": "35"}
    else:
        payload = {"itemList": make_items(35, 10), "hasMore": False, "cursor": "45"}
    return web.json_response(payload)


def create_app() -> web.Application:
    app = web.Application()
    app["requests"] = []

    @web.middleware
    async def record(request: web.Request, handler):
        request.app["requests"].append({
            "path": request.path,
            "query": dict(request.query),
            "headers": {k.lower(): v for k, v in request.headers.items()},
        })
        return await handler(request)

    app.middlewares.append(record)
    app.router.add_get("/@{username}", user_profile)
    app.router.add_get("/api/search/item/full/", search_videos)
    app.router.add_get("/api/challenge/detail/", challenge_detail)
    app.router.add_get("/api/challenge/item_list/", challenge_items)
    return app


@pytest_asyncio.fixture
async def fake_tiktok():
    server = TestServer(create_app())
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


@pytest.fixture
def recorded(fake_tiktok) -> List[Dict[str, Any]]:
    return fake_tiktok.app["requests"]


@pytest.fixture
def server_config(fake_tiktok, fast_config) -> ScraperConfig:
    base_url = str(fake_tiktok.make_url("/")).rstrip("/")
    return fast_config.with_overrides(base_url=base_url, browser_signing=False)


@pytest_asyncio.fixture
async def client(server_config):
    """Unsigned client (PassthroughSigner) against the fake server."""
    timing = RecordingTimingSink()
    client = TikTokClient(server_config, timing=timing)
    try:
        yield client
    finally:
        await client.close()
