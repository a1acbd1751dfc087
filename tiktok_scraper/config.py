"""Client configuration."""

import json
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .errors import ConfigurationError

DEFAULT_BASE_URL = "https://www.tiktok.com"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


@dataclass
class ScraperConfig:
    """Configuration for TikTokClient operations."""

    # Target
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    region: str = "US"
    language: str = "en"
    timezone: str = "America/New_York"
    device_id: Optional[str] = None  # generated per client when unset

    # Rate limiting (seconds). Search ~30/min, profile ~60/min.
    search_delay: float = 2.0
    profile_delay: float = 1.0
    jitter_max: float = 0.5

    # Deadlines (seconds)
    request_timeout: float = 15.0
    connect_timeout: float = 10.0
    sign_timeout: float = 5.0
    fetch_timeout: float = 15.0
    probe_timeout: float = 3.0
    navigation_timeout: float = 30.0
    stable_wait: float = 2.0
    login_wait: float = 5.0

    # Transport
    proxy_url: Optional[str] = None
    impersonate: str = "chrome131"
    max_connections: int = 100
    verify_ssl: bool = True

    # Browser
    browser_signing: bool = True  # False: unsigned mode, no browser
    headless: bool = True
    enable_stealth: bool = True
    block_resources: bool = True

    # Observability
    debug_timing: bool = False

    def __post_init__(self):
        if self.search_delay < 0 or self.profile_delay < 0 or self.jitter_max < 0:
            raise ConfigurationError("delays and jitter must be non-negative")
        for name in ("request_timeout", "sign_timeout", "fetch_timeout", "probe_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        self.base_url = self.base_url.rstrip("/")

    def with_overrides(self, **overrides: Any) -> "ScraperConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScraperConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ScraperConfig":
        """Load a JSON config file."""
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"load config {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"config {path} must contain a JSON object")
        return cls.from_dict(data)
