"""O2C indents list and the dealer selection modal used to start a new indent."""
from __future__ import annotations

import re

from playwright.async_api import Page, expect

from daee_e2e.pages.base import BasePage
from daee_e2e.support.polling import poll_until_matches

INDENT_FORM_URL = re.compile(r"/o2c/indents/(create|[a-f0-9-]+)")


class IndentsPage(BasePage):
    path = "/o2c/indents"

    def __init__(self, page: Page) -> None:
        super().__init__(page)
        self.create_indent_button = page.get_by_role("button", name=re.compile(r"create indent", re.IGNORECASE))
        self.indents_table = page.get_by_role("table")

        self.dealer_modal = page.get_by_role("dialog")
        self.dealer_search_input = self.dealer_modal.get_by_placeholder(
            re.compile(r"search by dealer code, name, gst, or territory", re.IGNORECASE)
        )
        self.dealer_table = self.dealer_modal.get_by_role("table")
        self.dealer_rows = self.dealer_table.locator("tbody tr")

    async def navigate(self) -> None:
        await self.navigate_to()
        await expect(self.create_indent_button).to_be_visible(timeout=15000)

    async def click_create_indent(self) -> None:
        await self.create_indent_button.click()
        await expect(self.dealer_modal).to_be_visible()

    async def verify_dealer_modal_visible(self, title: str = "Select Dealer") -> None:
        await expect(self.dealer_modal).to_be_visible()
        heading = self.dealer_modal.get_by_role("heading", name=re.compile(re.escape(title), re.IGNORECASE))
        await expect(heading).to_be_visible()

    async def dealer_count(self) -> int:
        """Number of dealer rows once the modal's table has rendered some."""
        await expect(self.dealer_table).to_be_visible()
        return await poll_until_matches(
            self.dealer_rows.count, lambda n: n > 0, timeout=10000, description="dealer rows in modal"
        )

    async def search_dealer(self, term: str) -> None:
        await self.dealer_search_input.fill(term)

    def _dealer_row(self, dealer_name: str):
        return self.dealer_modal.get_by_role("row", name=re.compile(re.escape(dealer_name), re.IGNORECASE))

    async def verify_dealer_in_results(self, dealer_name: str) -> None:
        await expect(self._dealer_row(dealer_name).first).to_be_visible(timeout=10000)

    async def select_dealer(self, dealer_name: str) -> None:
        row = self._dealer_row(dealer_name).first
        await expect(row).to_be_visible(timeout=10000)
        await row.get_by_role("button", name=re.compile(r"select", re.IGNORECASE)).click()

    async def verify_indent_creation_page(self, dealer_name: str | None = None) -> None:
        await expect(self.page).to_have_url(INDENT_FORM_URL, timeout=15000)
        if dealer_name:
            await expect(self.page.get_by_text(dealer_name).first).to_be_visible()
