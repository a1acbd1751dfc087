"""Verification challenge detection.

TikTok answers suspicious traffic with a verification flow instead of data:
an HTTP header announcing the verify service, a redirect to the verify center,
or a page/JSON body carrying the captcha widget. Detection only; solving is
left to a human with a real browser.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional

from ..errors import CaptchaRequired

# Embedded in every normal profile page; its presence rules out a verify page
SSR_MARKER = b'id="__UNIVERSAL_DATA_FOR_REHYDRATION__"'


class ChallengeType(Enum):
    """Kinds of verification responses."""
    NONE = "none"
    CAPTCHA_HEADER = "captcha_header"
    VERIFY_PAGE = "verify_page"
    VERIFY_JSON = "verify_json"


@dataclass
class ChallengeInfo:
    """Information about a detected challenge."""
    challenge_type: ChallengeType
    indicators: List[str] = field(default_factory=list)
    status_code: int = 200

    @property
    def detected(self) -> bool:
        return self.challenge_type != ChallengeType.NONE


class CaptchaDetector:
    """Classifies responses that carry a verification challenge."""

    VERIFY_HEADERS = ("bdturing-verify", "x-vc-bdturing-parameters")

    def __init__(self):
        self._compile_patterns()

    def _compile_patterns(self) -> None:
        self.page_patterns = {
            "captcha_container": re.compile(rb'id=["\']captcha[-_]container["\']', re.IGNORECASE),
            "captcha_verify_image": re.compile(rb'id=["\']captcha-verify-image["\']', re.IGNORECASE),
            "verify_bar": re.compile(rb'class=["\'][^"\']*captcha_verify_bar', re.IGNORECASE),
            "verify_center": re.compile(rb'verify(?:-center)?\.tiktok\.com', re.IGNORECASE),
        }
        self.json_patterns = {
            "verify_event": re.compile(rb'"verify_event"\s*:'),
            "captcha_type": re.compile(rb'"(?:captcha|verify)_type"\s*:'),
            "verify_status": re.compile(rb'"status_code"\s*:\s*10000\b'),
        }

    def detect(self, content: bytes, headers: Optional[Mapping[str, str]] = None,
               status_code: int = 200) -> ChallengeInfo:
        """Classify a response; ChallengeType.NONE when it is ordinary data."""
        headers = {k.lower(): v for k, v in (headers or {}).items()}

        indicators = [name for name in self.VERIFY_HEADERS if headers.get(name)]
        if indicators:
            return ChallengeInfo(ChallengeType.CAPTCHA_HEADER, indicators, status_code)

        content = content or b""
        stripped = content.lstrip()
        if stripped.startswith(b"{"):
            indicators = [name for name, pattern in self.json_patterns.items()
                          if pattern.search(content)]
            if indicators:
                return ChallengeInfo(ChallengeType.VERIFY_JSON, indicators, status_code)
        elif SSR_MARKER not in content:
            indicators = [name for name, pattern in self.page_patterns.items()
                          if pattern.search(content)]
            if indicators:
                return ChallengeInfo(ChallengeType.VERIFY_PAGE, indicators, status_code)

        return ChallengeInfo(ChallengeType.NONE, status_code=status_code)

    def raise_for_challenge(self, content: bytes, headers: Optional[Mapping[str, str]] = None,
                            status_code: int = 200, url: str = "") -> None:
        """Raise CaptchaRequired when the response is a verification challenge."""
        info = self.detect(content, headers, status_code)
        if info.detected:
            raise CaptchaRequired(
                f"verification challenge ({info.challenge_type.value}: "
                f"{', '.join(info.indicators)}) for {url}"
            )
