"""
Direct Playwright client used by the auth bootstrap and the scenario fixtures.

Scenario contexts are created through daee_e2e.sessions on top of a
shared client; the bootstrap uses one short-lived client per profile.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from daee_e2e.config import settings

logger = logging.getLogger(__name__)


class PlaywrightClient:
    """
    In-process Playwright browser with one default context and page.

    Example:
        async with PlaywrightClient(storage_state_path="e2e/.auth/iacs-md.json") as client:
            await client.page.goto("/o2c/indents")
    """

    def __init__(
        self,
        browser_type: Optional[str] = None,
        headless: Optional[bool] = None,
        timeout: Optional[int] = None,
        storage_state_path: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        """
        Initialize Playwright client.

        Args:
            browser_type: Browser to use (chromium, firefox, webkit); defaults to E2E_BROWSER
            headless: Run in headless mode (None = HEADED / PLAYWRIGHT_HEADLESS)
            timeout: Default timeout in milliseconds
            storage_state_path: Session artifact to preload into the default context
            base_url: Base URL for relative navigation (defaults to TEST_BASE_URL)
        """
        self.browser_type = browser_type or settings.browser_type
        self.headless = settings.headless if headless is None else headless
        self.timeout = settings.timeout_ms if timeout is None else timeout
        self.storage_state_path = storage_state_path
        self.base_url = base_url or settings.base_url

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self):
        """Launch the browser and open the default context and page."""
        self._playwright = await async_playwright().start()

        if self.browser_type == "firefox":
            self._browser = await self._playwright.firefox.launch(headless=self.headless)
        elif self.browser_type == "webkit":
            self._browser = await self._playwright.webkit.launch(headless=self.headless)
        else:
            self._browser = await self._playwright.chromium.launch(headless=self.headless)

        storage_state_path = self.storage_state_path
        if storage_state_path and not os.path.exists(storage_state_path):
            logger.warning("storage_state_path does not exist, ignoring: %s", storage_state_path)
            storage_state_path = None

        self._context = await self.new_context(storage_state=storage_state_path)
        self._page = await self._context.new_page()

    async def new_page(self) -> Page:
        if not self._context:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")
        return await self._context.new_page()

    async def new_context(self, **kwargs) -> BrowserContext:
        """
        Create a new isolated browser context.

        Args:
            **kwargs: Context options (storage_state, viewport, ...); base_url
                defaults to the client's base URL
        """
        if not self._browser:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")

        kwargs.setdefault("base_url", self.base_url)
        if kwargs.get("storage_state") is None:
            kwargs.pop("storage_state", None)
        context = await self._browser.new_context(**kwargs)
        context.set_default_timeout(self.timeout)
        return context

    async def close(self):
        """Close all connections and cleanup resources.

        Every handle is released even when closing an earlier one raises;
        the error propagates once the driver has stopped.
        """
        page, context, browser, playwright = self._page, self._context, self._browser, self._playwright
        self._page = self._context = self._browser = self._playwright = None
        try:
            if page:
                await page.close()
        finally:
            try:
                if context:
                    await context.close()
            finally:
                try:
                    if browser:
                        await browser.close()
                finally:
                    if playwright:
                        await playwright.stop()

    @property
    def browser(self) -> Browser:
        if not self._browser:
            raise RuntimeError("Client not connected")
        return self._browser

    @property
    def context(self) -> BrowserContext:
        if not self._context:
            raise RuntimeError("Client not connected")
        return self._context

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("Client not connected or page not created")
        return self._page


