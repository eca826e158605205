"""Sonner toasts and inline alerts."""
from __future__ import annotations

from typing import List, Optional

from playwright.async_api import Locator, Page

from daee_e2e.support.messages import MessageKind, classify_message
from daee_e2e.support.polling import poll_until_matches

TOAST = "[data-sonner-toast]"
ALERT = "[role='alert']:not(#__next-route-announcer__)"


class ToastComponent:
    def __init__(self, page: Page) -> None:
        self.page = page

    @property
    def toasts(self) -> Locator:
        return self.page.locator(TOAST)

    @property
    def messages(self) -> Locator:
        """Toasts and alerts together, without Next.js's route announcer."""
        return self.page.locator(f"{TOAST}, {ALERT}")

    async def texts(self) -> List[str]:
        texts = await self.messages.all_inner_texts()
        return [text.strip() for text in texts if text.strip()]

    async def wait_for_toast(
        self, kind: Optional[MessageKind] = None, timeout: float = 10000
    ) -> str:
        """Wait for a visible message, optionally of a given kind, and return its text."""
        def wanted(texts: List[str]) -> bool:
            if kind is None:
                return bool(texts)
            return any(classify_message(text) is kind for text in texts)

        texts = await poll_until_matches(
            self.texts,
            wanted,
            timeout=timeout,
            interval=250,
            description=f"{kind.value if kind else 'any'} toast",
        )
        if kind is None:
            return texts[0]
        return next(text for text in texts if classify_message(text) is kind)

    async def wait_for_success(self, timeout: float = 10000) -> str:
        return await self.wait_for_toast(MessageKind.SUCCESS, timeout)

    async def wait_for_error(self, timeout: float = 10000) -> str:
        return await self.wait_for_toast(MessageKind.ERROR, timeout)

    async def has_error(self) -> bool:
        return any(classify_message(text) is MessageKind.ERROR for text in await self.texts())

    async def dismiss_all(self) -> None:
        close_buttons = self.toasts.locator("button[aria-label='Close toast']")
        for index in range(await close_buttons.count()):
            await close_buttons.nth(index).click()
