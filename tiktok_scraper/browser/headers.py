"""Chrome request headers for the direct transport.

The header set matches what desktop Chrome sends for a same-origin XHR, so
direct requests blend in with the browser context that produced the session.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlparse


@dataclass
class ChromeProfile:
    """Chrome browser profile configuration."""
    user_agent: str
    platform: str = "macOS"
    accept_language: str = "en-US,en;q=0.9"

    @property
    def major_version(self) -> str:
        """Major Chrome version parsed from the user agent."""
        match = re.search(r"Chrome/(\d+)", self.user_agent)
        return match.group(1) if match else "131"


class ChromeHeadersGenerator:
    """Generates the fixed Chrome header set for one site."""

    def __init__(self, profile: ChromeProfile, site_url: str):
        self.profile = profile
        parsed = urlparse(site_url)
        self.origin = f"{parsed.scheme}://{parsed.netloc}"

    def generate_headers(self, cookie_header: Optional[str] = None) -> Dict[str, str]:
        """Headers for one request. Profile pages and API calls share them."""
        headers = {
            "User-Agent": self.profile.user_agent,
            "Accept": "application/json, text/plain, */*",
            "Accept-Language": self.profile.accept_language,
            "Referer": self.origin + "/",
            "Origin": self.origin,
            "Sec-Ch-Ua": self._get_sec_ch_ua(),
            "Sec-Ch-Ua-Mobile": "?0",
            "Sec-Ch-Ua-Platform": f'"{self.profile.platform}"',
            "Sec-Fetch-Dest": "empty",
            "Sec-Fetch-Mode": "cors",
            "Sec-Fetch-Site": "same-origin",
        }
        if cookie_header:
            headers["Cookie"] = cookie_header
        return headers

    def _get_sec_ch_ua(self) -> str:
        version = self.profile.major_version
        return f'"Google Chrome";v="{version}", "Chromium";v="{version}", "Not_A Brand";v="24"'
