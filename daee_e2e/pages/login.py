"""Login page: email/password form followed by the TOTP step."""
from __future__ import annotations

import re

from playwright.async_api import Page, expect

from daee_e2e.auth.totp import generate_totp_code
from daee_e2e.components.toast import TOAST
from daee_e2e.pages.base import BasePage
from daee_e2e.support.polling import poll_until

NOTES_URL = re.compile(r"/notes")


class LoginPage(BasePage):
    path = "/login"

    def __init__(self, page: Page) -> None:
        super().__init__(page)
        self.email_input = page.locator("input#email")
        self.password_input = page.locator("input#password")
        self.sign_in_button = page.locator("form").get_by_role("button", name="Sign In", exact=True)
        # Enrolled users get "Verify Code"; first-time setup shows "Verify & Enable".
        self.totp_input = page.locator("input#totp-code, input#verify-code").first
        self.verify_button = page.get_by_role("button", name=re.compile(r"verify", re.IGNORECASE)).first
        self.success_message = page.get_by_text("Welcome!")

    async def navigate_to(self, path: str | None = None, timeout: float = 30000) -> None:
        await super().navigate_to(path, timeout)
        await expect(self.email_input).to_be_visible(timeout=10000)

    async def fill_email(self, email: str) -> None:
        await self.email_input.fill(email)

    async def fill_password(self, password: str) -> None:
        await self.password_input.fill(password)

    async def click_sign_in(self) -> None:
        await self.sign_in_button.click()

    async def submit_login_form(self, email: str, password: str) -> None:
        await self.fill_email(email)
        await self.fill_password(password)
        await self.click_sign_in()

    async def wait_for_totp_step(self, timeout: float = 15000) -> None:
        await expect(self.totp_input).to_be_visible(timeout=timeout)

    async def is_on_totp_step(self) -> bool:
        return await self.totp_input.is_visible()

    def generate_totp_code(self, secret: str) -> str:
        return generate_totp_code(secret)

    async def fill_totp_code(self, code: str) -> None:
        await self.totp_input.fill(code)

    async def click_verify_totp(self) -> None:
        await self.verify_button.click()

    async def complete_totp_verification(self, secret: str) -> str:
        code = self.generate_totp_code(secret)
        await self.fill_totp_code(code)
        await self.click_verify_totp()
        return code

    async def wait_for_success_redirect(self, timeout: float = 20000) -> None:
        async def landed() -> bool:
            return bool(NOTES_URL.search(self.page.url)) or await self.success_message.is_visible()

        await poll_until(landed, timeout=timeout, interval=250, description="redirect to /notes after login")

    async def is_on_notes_page(self) -> bool:
        return bool(NOTES_URL.search(self.page.url))

    async def verify_error_message(self, timeout: float = 10000) -> str:
        """Wait for a toast or alert and return its text."""
        return await self.toast.wait_for_toast(timeout=timeout)

    async def has_validation_errors(self) -> bool:
        """True when the browser's own validation rejects email or password."""
        for field in (self.email_input, self.password_input):
            if not await field.evaluate("el => el.validity.valid"):
                return True
        return False

    async def is_on_login_form(self) -> bool:
        return self.current_path.rstrip("/").endswith("/login") and await self.email_input.is_visible()

    async def perform_login(self, email: str, password: str, totp_secret: str) -> None:
        await self.navigate_to()
        await self.submit_login_form(email, password)
        await self.wait_for_totp_step()
        await self.complete_totp_verification(totp_secret)
        await self.wait_for_success_redirect()

    async def perform_login_with_invalid_totp(self, email: str, password: str, code: str = "000000") -> None:
        await self.navigate_to()
        await self.submit_login_form(email, password)
        await self.wait_for_totp_step()
        await self.fill_totp_code(code)
        await self.click_verify_totp()

    async def wait_for_success_message(self, timeout: float = 10000) -> bool:
        try:
            await expect(self.success_message.or_(self.page.locator(TOAST)).first).to_be_visible(timeout=timeout)
        except AssertionError:
            return False
        return True
