"""Shared behaviour for every page object."""
from __future__ import annotations

import logging
import re
from typing import Pattern, Union
from urllib.parse import urlparse

from playwright.async_api import Page, TimeoutError as PlaywrightTimeout, expect

from daee_e2e.components.dialog import DialogComponent
from daee_e2e.components.toast import ToastComponent
from daee_e2e.config import settings

logger = logging.getLogger(__name__)


class BasePage:
    path = "/"

    def __init__(self, page: Page) -> None:
        self.page = page
        self.toast = ToastComponent(page)

    async def navigate_to(self, path: str | None = None, timeout: float = 30000) -> None:
        """Open ``path`` (default: the page's own route) and let the network settle.

        Pages with long-polling connections never reach network idle, so
        that wait is best-effort.
        """
        await self.page.goto(settings.url(path or self.path), wait_until="domcontentloaded", timeout=timeout)
        await self.wait_for_network_idle()

    async def wait_for_network_idle(self, timeout: float = 10000) -> None:
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout)
        except PlaywrightTimeout:
            logger.debug("networkidle not reached on %s within %sms", self.page.url, timeout)

    async def go_back(self) -> None:
        await self.page.go_back()
        await self.wait_for_network_idle()

    async def reload(self) -> None:
        await self.page.reload()
        await self.wait_for_network_idle()

    @property
    def current_path(self) -> str:
        return urlparse(self.page.url).path

    async def wait_for_url(self, pattern: Union[str, Pattern[str]], timeout: float = 15000) -> None:
        if isinstance(pattern, str) and not pattern.startswith("**"):
            pattern = re.compile(re.escape(pattern))
        await expect(self.page).to_have_url(pattern, timeout=timeout)

    def dialog(self, title: str | Pattern[str] | None = None) -> DialogComponent:
        return DialogComponent(self.page, title)

    async def wait_for_dialog_open(self, title: str | Pattern[str] | None = None, timeout: float = 10000) -> None:
        await self.dialog(title).wait_for_open(timeout)

    async def wait_for_dialog_close(self, timeout: float = 10000) -> None:
        await self.dialog().wait_for_close(timeout)

    async def wait_for_success_toast(self, timeout: float = 10000) -> str:
        return await self.toast.wait_for_success(timeout)

    async def wait_for_error_toast(self, timeout: float = 10000) -> str:
        return await self.toast.wait_for_error(timeout)
