"""
Profile page fetching.

This module renders profile pages in a headless Chromium session (Playwright)
and returns the visible page text. A single browser is shared by every fetch
of a run; each profile gets its own page which is always closed afterwards.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional, Union

from playwright.async_api import Browser, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from lastseen.config import get_settings
from lastseen.utils.errors import BrowserNotStartedError, ProfileFetchError, ProfileTimeoutError
from lastseen.utils.logging import get_logger

logger = get_logger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]


class ProfileFetcher(ABC):
    """
    Abstract base class for profile fetchers.

    Implementations own a session resource that is started once per run and
    closed once at the end, even if individual fetches failed.
    """

    async def start(self) -> None:
        """Acquire the session resource."""
        pass

    async def close(self) -> None:
        """Release the session resource."""
        pass

    @abstractmethod
    async def fetch(self, identifier: str) -> str:
        """
        Return the rendered text of the profile page for ``identifier``.

        Raises:
            ProfileFetchError: If the page could not be loaded
        """
        pass

    async def __aenter__(self) -> "ProfileFetcher":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class PlaywrightProfileFetcher(ProfileFetcher):
    """Fetch profile text with a shared headless Chromium browser."""

    def __init__(
        self,
        url_template: Optional[str] = None,
        navigation_timeout: Optional[float] = None,
        settle_delay: Optional[float] = None,
        headless: Optional[bool] = None,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            url_template: Profile URL containing ``{identifier}``
            navigation_timeout: Seconds allowed for ``page.goto``
            settle_delay: Seconds to wait after load for client-side rendering
            headless: Run Chromium without a window
        """
        settings = get_settings()
        self.url_template = url_template or settings.profile_url_template
        self.navigation_timeout = (
            settings.navigation_timeout_seconds if navigation_timeout is None else navigation_timeout
        )
        self.settle_delay = settings.settle_delay_seconds if settle_delay is None else settle_delay
        self.headless = settings.headless if headless is None else headless

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    def profile_url(self, identifier: str) -> str:
        return self.url_template.format(identifier=identifier)

    async def start(self) -> None:
        if self._browser:
            return

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=BROWSER_ARGS,
            )
        except Exception:
            await self._playwright.stop()
            self._playwright = None
            raise
        logger.info("Browser session started")

    async def close(self) -> None:
        try:
            if self._browser:
                await self._browser.close()
        finally:
            self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
        logger.info("Browser session closed")

    async def fetch(self, identifier: str) -> str:
        if not self._browser:
            raise BrowserNotStartedError(identifier)

        url = self.profile_url(identifier)
        page = await self._browser.new_page()

        try:
            logger.info(f"Visiting {url}")
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.navigation_timeout * 1000,
            )

            # Client-side rendering fills in activity after DOMContentLoaded
            if self.settle_delay > 0:
                await asyncio.sleep(self.settle_delay)

            text = await page.evaluate("() => document.body ? document.body.innerText : ''")
            return text or ""

        except PlaywrightTimeoutError:
            raise ProfileTimeoutError(identifier, self.navigation_timeout)
        except PlaywrightError as e:
            raise ProfileFetchError(identifier, str(e))
        finally:
            await page.close()


class StaticProfileFetcher(ProfileFetcher):
    """
    Serve profile text from memory.

    Values may be page text or an exception instance, which is raised when
    that identifier is fetched. Unknown identifiers raise ``ProfileFetchError``.
    """

    def __init__(self, pages: Mapping[str, Union[str, BaseException]]) -> None:
        self.pages: Dict[str, Union[str, BaseException]] = dict(pages)
        self.started = 0
        self.closed = 0
        self.fetched: list[str] = []

    async def start(self) -> None:
        self.started += 1

    async def close(self) -> None:
        self.closed += 1

    async def fetch(self, identifier: str) -> str:
        self.fetched.append(identifier)
        if identifier not in self.pages:
            raise ProfileFetchError(identifier, "no page available")
        page = self.pages[identifier]
        if isinstance(page, BaseException):
            raise page
        return page


def create_profile_fetcher() -> ProfileFetcher:
    """Create the Playwright fetcher with default settings."""
    return PlaywrightProfileFetcher()
