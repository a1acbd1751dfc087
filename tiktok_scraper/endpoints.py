"""Endpoint table and URL construction.

Each endpoint has a fixed fetch route, chosen statically:

    DIRECT   plain GET through the pooled HTTP transport (server-rendered pages)
    SIGNED   sign in the browser, then GET through the HTTP transport
    BROWSER  sign and fetch inside the browser page, so the request carries
             the same TLS fingerprint that produced the signature
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional
from urllib.parse import quote, urlencode

from .concurrency import OperationClass
from .config import ScraperConfig

SEARCH_PAGE_SIZE = 20
CHALLENGE_PAGE_SIZE = 35


class Route(Enum):
    """How a request reaches the remote."""
    DIRECT = "direct"
    SIGNED = "signed"
    BROWSER = "browser"


@dataclass(frozen=True)
class EndpointSpec:
    path: str
    operation_class: OperationClass
    route: Route
    api: bool = True


class Endpoint(Enum):
    """Remote endpoints the client talks to."""
    USER_PROFILE = EndpointSpec("/@{username}", OperationClass.PROFILE, Route.DIRECT, api=False)
    SEARCH_VIDEOS = EndpointSpec("/api/search/item/full/", OperationClass.SEARCH, Route.BROWSER)
    CHALLENGE_DETAIL = EndpointSpec("/api/challenge/detail/", OperationClass.SEARCH, Route.SIGNED)
    CHALLENGE_ITEMS = EndpointSpec("/api/challenge/item_list/", OperationClass.SEARCH, Route.BROWSER)

    @property
    def path(self) -> str:
        return self.value.path

    @property
    def operation_class(self) -> OperationClass:
        return self.value.operation_class

    @property
    def route(self) -> Route:
        return self.value.route

    @property
    def is_api(self) -> bool:
        return self.value.api


def generate_device_id(rng: Optional[random.Random] = None) -> str:
    """Random 19-digit device id starting with 7, like the web app's."""
    rng = rng or random
    return str(7 * 10**18 + rng.randrange(10**18))


class URLBuilder:
    """Builds endpoint URLs carrying the web app's base query parameters."""

    def __init__(self, config: ScraperConfig, device_id: Optional[str] = None,
                 rng: Optional[random.Random] = None):
        self.config = config
        self._rng = rng or random.Random()
        self.device_id = device_id or config.device_id or generate_device_id(self._rng)

    def api_params(self, token: Optional[str] = None) -> Dict[str, str]:
        """Query parameters a desktop Chrome session sends with every API call."""
        config = self.config
        params = {
            "aid": "1988",
            "app_language": config.language,
            "app_name": "tiktok_web",
            "browser_language": f"{config.language}-{config.region}",
            "browser_name": "Mozilla",
            "browser_online": "true",
            "browser_platform": "MacIntel",
            "browser_version": config.user_agent,
            "channel": "tiktok_web",
            "cookie_enabled": "true",
            "device_id": self.device_id,
            "device_platform": "web_pc",
            "focus_state": "true",
            "history_len": str(2 + self._rng.randrange(8)),
            "is_fullscreen": "false",
            "is_page_visible": "true",
            "language": config.language,
            "os": "mac",
            "priority_region": "",
            "referer": "",
            "region": config.region,
            "screen_height": "1080",
            "screen_width": "1920",
            "tz_name": config.timezone,
            "webcast_language": config.language,
        }
        if token:
            params["msToken"] = token
        return params

    def build(self, endpoint: Endpoint, query: Optional[Mapping[str, object]] = None,
              token: Optional[str] = None, **path_args: str) -> str:
        """Full URL for endpoint; API endpoints get the base parameters first."""
        path = endpoint.path.format(**{k: quote(v, safe="") for k, v in path_args.items()})
        url = self.config.base_url + path
        params: Dict[str, object] = {}
        if endpoint.is_api:
            params.update(self.api_params(token))
        if query:
            params.update(query)
        if params:
            url += "?" + urlencode(params)
        return url

    def search_videos(self, keyword: str, cursor: int, token: Optional[str] = None) -> str:
        return self.build(Endpoint.SEARCH_VIDEOS, {
            "keyword": keyword,
            "count": SEARCH_PAGE_SIZE,
            "cursor": cursor,
            "from_page": "search",
        }, token)

    def challenge_detail(self, hashtag: str, token: Optional[str] = None) -> str:
        return self.build(Endpoint.CHALLENGE_DETAIL, {"challengeName": hashtag}, token)

    def challenge_items(self, challenge_id: str, cursor: int, token: Optional[str] = None) -> str:
        return self.build(Endpoint.CHALLENGE_ITEMS, {
            "challengeID": challenge_id,
            "count": CHALLENGE_PAGE_SIZE,
            "cursor": cursor,
        }, token)

    def user_profile(self, username: str) -> str:
        return self.build(Endpoint.USER_PROFILE, username=username)
