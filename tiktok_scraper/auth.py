"""Credential login through the browser.

The login procedure only needs to leave the browser context holding a valid
session; the client then pulls the context's cookies into the SessionStore.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from .browser.driver import BrowserDriver
from .config import ScraperConfig
from .errors import AuthenticationRequired

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login/phone-or-email/email"

USERNAME_SELECTOR = 'input[name="username"]'
PASSWORD_SELECTOR = 'input[type="password"]'
SUBMIT_SELECTOR = 'button[type="submit"]'

SESSION_COOKIES = ("sessionid", "sessionid_ss", "sid_tt")


class LoginProcedure(Protocol):
    """Turns credentials into a populated cookie set."""

    async def login(self, driver: BrowserDriver, username: str,
                    password: str) -> List[Dict[str, Any]]:
        ...


class BrowserLogin:
    """Fills and submits the email login form."""

    def __init__(self, config: Optional[ScraperConfig] = None,
                 require_session_cookie: bool = True):
        self.config = config or ScraperConfig()
        self.require_session_cookie = require_session_cookie

    async def login(self, driver: BrowserDriver, username: str,
                    password: str) -> List[Dict[str, Any]]:
        """Submit credentials and return the resulting browser cookies.

        Raises AuthenticationRequired when the form cannot be driven or when
        no session cookie shows up afterwards.
        """
        if not username or not password:
            raise AuthenticationRequired("login: username and password are required")

        login_url = self.config.base_url + LOGIN_PATH
        try:
            await driver.navigate(login_url)
            await driver.fill(USERNAME_SELECTOR, username)
            await driver.fill(PASSWORD_SELECTOR, password)
            await driver.click(SUBMIT_SELECTOR)
        except Exception as e:
            raise AuthenticationRequired(f"login: drive login form: {e}") from e

        await asyncio.sleep(self.config.login_wait)
        cookies = await driver.cookies()

        if self.require_session_cookie and not any(
            c.get("name") in SESSION_COOKIES and c.get("value") for c in cookies
        ):
            raise AuthenticationRequired("login: no session cookie after submitting credentials")

        logger.info("Logged in as %s (%d cookies)", username, len(cookies))
        return cookies
