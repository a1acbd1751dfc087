"""Browser side of the scraper: request signing, in-page fetch and stealth setup."""

from .headers import ChromeHeadersGenerator, ChromeProfile
from .driver import BrowserDriver, PlaywrightDriver
from .signer import (
    Readiness,
    BrowserResponse,
    Signer,
    SigningAgent,
    PassthroughSigner,
)

__all__ = [
    "ChromeHeadersGenerator",
    "ChromeProfile",
    "BrowserDriver",
    "PlaywrightDriver",
    "Readiness",
    "BrowserResponse",
    "Signer",
    "SigningAgent",
    "PassthroughSigner",
]
