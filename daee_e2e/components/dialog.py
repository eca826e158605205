"""Radix dialogs rendered with role=dialog."""
from __future__ import annotations

import re
from typing import Optional, Pattern, Union

from playwright.async_api import Locator, Page, expect


class DialogComponent:
    def __init__(self, page: Page, title: Optional[Union[str, Pattern[str]]] = None) -> None:
        self.page = page
        self.title = title

    @property
    def root(self) -> Locator:
        dialog = self.page.get_by_role("dialog")
        if self.title is not None:
            dialog = dialog.filter(has_text=self.title)
        return dialog.first

    async def wait_for_open(self, timeout: float = 10000) -> None:
        await expect(self.root).to_be_visible(timeout=timeout)

    async def wait_for_close(self, timeout: float = 10000) -> None:
        await expect(self.page.get_by_role("dialog")).to_have_count(0, timeout=timeout)

    async def heading(self) -> str:
        return (await self.root.get_by_role("heading").first.inner_text()).strip()

    async def close(self) -> None:
        await self.root.get_by_role("button", name=re.compile(r"^close$", re.IGNORECASE)).click()
