"""Comboboxes (shadcn/Radix Select) located through their visible label."""
from __future__ import annotations

import re
from typing import List

from playwright.async_api import Locator, Page, expect


class SelectComponent:
    def __init__(self, page: Page, label: str) -> None:
        self.page = page
        self.label = label

    @property
    def trigger(self) -> Locator:
        # The label is a sibling of the trigger, so scope to the label's parent.
        label = self.page.locator("label", has_text=re.compile(re.escape(self.label), re.IGNORECASE)).first
        return label.locator("xpath=..").get_by_role("combobox").first

    @property
    def options(self) -> Locator:
        return self.page.get_by_role("option")

    async def open(self) -> None:
        await self.trigger.click()
        await expect(self.page.get_by_role("listbox")).to_be_visible()

    async def option_texts(self) -> List[str]:
        return [text.strip() for text in await self.options.all_inner_texts()]

    async def choose(self, text: str) -> None:
        await self.open()
        await self.options.filter(has_text=text).first.click()

    async def close(self) -> None:
        await self.page.keyboard.press("Escape")

    async def value(self) -> str:
        return (await self.trigger.inner_text()).strip()
