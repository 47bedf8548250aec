"""
Page renderer using Playwright for JavaScript rendering.

Handles headless browser rendering to capture client-rendered content.
"""

import asyncio
from typing import Optional

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    TimeoutError as PlaywrightTimeout,
)

from ..utils.constants import DEFAULT_PAGE_TIMEOUT, DEFAULT_USER_AGENT
from ..utils.errors import NavigationError
from ..utils.log import get_logger


class PageRenderer:
    """
    Renders web pages using a Playwright headless browser.

    One browser is shared by all page tasks; each render gets its own
    isolated browser context.
    """

    def __init__(
        self,
        timeout: int = DEFAULT_PAGE_TIMEOUT,
        wait_until: str = "networkidle",
        headless: bool = True,
        user_agent: str = DEFAULT_USER_AGENT
    ):
        """
        Initialize the page renderer.

        Args:
            timeout: Page load timeout in milliseconds
            wait_until: Event to wait for ('load', 'domcontentloaded', 'networkidle')
            headless: Run browser in headless mode
            user_agent: User agent for every browser context
        """
        self.timeout = timeout
        self.wait_until = wait_until
        self.headless = headless
        self.user_agent = user_agent
        self.logger = get_logger("renderer")

        self._playwright = None
        self._browser: Optional[Browser] = None
        self._start_lock = asyncio.Lock()

    async def start(self) -> None:
        """Start the Playwright browser instance (once, even when called concurrently)."""
        async with self._start_lock:
            if self._browser:
                return
            self.logger.info("Starting Playwright browser...")
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=[
                    '--no-sandbox',
                    '--disable-setuid-sandbox',
                    '--disable-dev-shm-usage',
                ]
            )
            self.logger.info("Browser started successfully")

    async def stop(self) -> None:
        """Stop the Playwright browser instance."""
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        self.logger.info("Browser stopped")

    async def render_page(self, url: str) -> str:
        """
        Render a page and return the final HTML content.

        Args:
            url: URL to render

        Returns:
            Serialized DOM after network activity settled

        Raises:
            NavigationError: On timeout, navigation failure or HTTP error
        """
        if not self._browser:
            await self.start()

        context: Optional[BrowserContext] = None

        try:
            context = await self._browser.new_context(
                user_agent=self.user_agent,
                viewport={"width": 1920, "height": 1080},
                ignore_https_errors=True,
            )
            page = await context.new_page()

            self.logger.debug(f"Rendering: {url}")
            response = await page.goto(
                url,
                wait_until=self.wait_until,
                timeout=self.timeout
            )

            if not response:
                raise NavigationError(url, "no response")
            if response.status >= 400:
                raise NavigationError(url, f"HTTP {response.status}")

            html_content = await page.content()
            self.logger.debug(f"Successfully rendered: {page.url}")
            return html_content

        except PlaywrightTimeout as e:
            raise NavigationError(url, f"timeout after {self.timeout}ms") from e
        except PlaywrightError as e:
            raise NavigationError(url, str(e)) from e
        finally:
            if context:
                await context.close()

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.stop()
