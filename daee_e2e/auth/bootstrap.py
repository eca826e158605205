"""
Log every configured profile in once and save its session for later runs.

For each profile, strictly one after another and each in its own browser:

    NOT_STARTED -> CREDENTIALS_SUBMITTED -> AWAITING_MFA_CHALLENGE
        -> MFA_CODE_SUBMITTED -> AUTHENTICATED | FAILED

Profiles without complete credentials are skipped. A failing profile gets a
screenshot and does not stop the others; the run as a whole only fails when
no profile could be authenticated.

Run it directly with ``daee-auth-setup`` (or ``python -m
daee_e2e.auth.bootstrap``); the browser scenarios run it from a session
fixture unless ``E2E_SKIP_AUTH_SETUP`` is set.
"""
from __future__ import annotations

import argparse
import enum
import logging
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import anyio
from playwright.async_api import Page, TimeoutError as PlaywrightTimeout

from daee_e2e.auth.profiles import UserProfile, profiles_summary, profiles_to_authenticate
from daee_e2e.auth.storage_state import clear_auth_state, save_auth_state
from daee_e2e.auth.totp import generate_totp_code
from daee_e2e.config import settings
from daee_e2e.errors import (
    BootstrapFailed,
    ConfigurationIncomplete,
    E2EError,
    LoginStepFailure,
    PollingTimeoutError,
)
from daee_e2e.log import configure_logging
from daee_e2e.playwright_client import PlaywrightClient
from daee_e2e.support.polling import poll_until

logger = logging.getLogger(__name__)

EMAIL_INPUT = "input#email"
PASSWORD_INPUT = "input#password"
SIGN_IN_BUTTON = 'form button:has-text("Sign In")'
MFA_INPUT = "input#totp-code, input#verify-code"
VERIFY_BUTTON = 'button:has-text("Verify")'
SUCCESS_TEXT = "text=Welcome!"
POST_LOGIN_URL = re.compile(r"/(notes|dashboard|home|o2c)")

EMAIL_TIMEOUT_MS = 10000
MFA_TIMEOUT_MS = 15000
REDIRECT_TIMEOUT_MS = 15000

ClientFactory = Callable[[], PlaywrightClient]


class LoginState(enum.Enum):
    NOT_STARTED = "not_started"
    CREDENTIALS_SUBMITTED = "credentials_submitted"
    AWAITING_MFA_CHALLENGE = "awaiting_mfa_challenge"
    MFA_CODE_SUBMITTED = "mfa_code_submitted"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class OutcomeStatus(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ProfileOutcome:
    profile_id: str
    status: OutcomeStatus = OutcomeStatus.FAILED
    state: LoginState = LoginState.NOT_STARTED
    artifact_path: Optional[Path] = None
    artifact_size: int = 0
    error: Optional[str] = None
    screenshot: Optional[Path] = None


@dataclass
class BootstrapSummary:
    outcomes: List[ProfileOutcome] = field(default_factory=list)

    def _ids(self, status: OutcomeStatus) -> List[str]:
        return [o.profile_id for o in self.outcomes if o.status is status]

    @property
    def authenticated(self) -> List[str]:
        return self._ids(OutcomeStatus.AUTHENTICATED)

    @property
    def failed(self) -> List[str]:
        return self._ids(OutcomeStatus.FAILED)

    @property
    def skipped(self) -> List[str]:
        return self._ids(OutcomeStatus.SKIPPED)

    def format(self) -> str:
        lines = [
            f"Authentication summary: {len(self.authenticated)} authenticated, "
            f"{len(self.failed)} failed, {len(self.skipped)} skipped"
        ]
        for outcome in self.outcomes:
            detail = outcome.error or f"{outcome.artifact_path} ({outcome.artifact_size} bytes)"
            lines.append(f"  [{outcome.status.value:<13}] {outcome.profile_id}: {detail}")
        return "\n".join(lines)

    def raise_for_status(self) -> None:
        """Fail only when not a single profile could be authenticated."""
        if not self.authenticated:
            raise BootstrapFailed(failed=self.failed, skipped=self.skipped)


class AuthBootstrap:
    """Drives the interactive login for a list of profiles."""

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        min_artifact_bytes: Optional[int] = None,
        screenshot_dir: Optional[Path] = None,
    ) -> None:
        self._client_factory = client_factory or PlaywrightClient
        self.min_artifact_bytes = (
            settings.min_auth_state_bytes if min_artifact_bytes is None else min_artifact_bytes
        )
        self.screenshot_dir = screenshot_dir or settings.auth_dir

    async def run(self, profiles: Optional[Iterable[UserProfile]] = None) -> BootstrapSummary:
        profiles = list(profiles) if profiles is not None else profiles_to_authenticate()
        logger.info(profiles_summary(profiles))

        summary = BootstrapSummary()
        for profile in profiles:
            summary.outcomes.append(await self.authenticate(profile))

        logger.info(summary.format())
        return summary

    async def authenticate(self, profile: UserProfile) -> ProfileOutcome:
        outcome = ProfileOutcome(profile_id=profile.id)

        if not profile.is_configured:
            skipped = ConfigurationIncomplete(subject=f"profile '{profile.id}'", missing=profile.missing_fields())
            logger.warning("Skipping %s: %s", profile.id, skipped)
            outcome.status = OutcomeStatus.SKIPPED
            outcome.error = str(skipped)
            return outcome

        logger.info("Authenticating %s (%s, %s)", profile.id, profile.email, profile.role)
        client = self._client_factory()
        try:
            await client.connect()
            page = client.page

            await self._submit_credentials(page, profile)
            outcome.state = LoginState.CREDENTIALS_SUBMITTED

            await self._await_mfa_challenge(page, profile)
            outcome.state = LoginState.AWAITING_MFA_CHALLENGE

            await self._submit_totp(page, profile)
            outcome.state = LoginState.MFA_CODE_SUBMITTED

            await self._await_authenticated(page, profile)
            outcome.artifact_size = await save_auth_state(
                client.context, profile.id, profile.storage_state_path, self.min_artifact_bytes
            )
            outcome.artifact_path = profile.storage_state_path
            outcome.state = LoginState.AUTHENTICATED
            outcome.status = OutcomeStatus.AUTHENTICATED
        except Exception as exc:  # one profile must not stop the others
            if isinstance(exc, E2EError):
                logger.error("Authentication failed for %s: %s", profile.id, exc)
            else:
                logger.exception("Authentication failed for %s", profile.id)
            outcome.state = LoginState.FAILED
            outcome.screenshot = await self._capture_failure(client, profile)
            if isinstance(exc, LoginStepFailure) and outcome.screenshot:
                exc.screenshot = str(outcome.screenshot)
            outcome.error = str(exc)
        finally:
            try:
                await client.close()
            except Exception as close_error:
                logger.warning("Error closing browser for %s: %s", profile.id, close_error)

        return outcome

    async def _submit_credentials(self, page: Page, profile: UserProfile) -> None:
        await page.goto(settings.url("/login"))
        await self._wait_visible(page, EMAIL_INPUT, EMAIL_TIMEOUT_MS, profile, "credentials")
        await page.fill(EMAIL_INPUT, profile.email)
        await page.fill(PASSWORD_INPUT, profile.password)
        await page.click(SIGN_IN_BUTTON)

    async def _await_mfa_challenge(self, page: Page, profile: UserProfile) -> None:
        await self._wait_visible(page, MFA_INPUT, MFA_TIMEOUT_MS, profile, "mfa-challenge")

    async def _submit_totp(self, page: Page, profile: UserProfile) -> None:
        code = generate_totp_code(profile.totp_secret, email=profile.email)
        await page.fill(MFA_INPUT, code)
        await page.click(VERIFY_BUTTON)

    async def _await_authenticated(self, page: Page, profile: UserProfile) -> None:
        async def signed_in() -> bool:
            if POST_LOGIN_URL.search(page.url):
                return True
            return await page.is_visible(SUCCESS_TEXT)

        try:
            await poll_until(
                signed_in,
                timeout=REDIRECT_TIMEOUT_MS,
                interval=250,
                description=f"post-login redirect for {profile.id}",
            )
        except PollingTimeoutError as exc:
            raise LoginStepFailure(
                profile_id=profile.id,
                step="mfa-verification",
                message=f"{exc}; still on {page.url}",
            ) from exc

    async def _wait_visible(
        self, page: Page, selector: str, timeout: int, profile: UserProfile, step: str
    ) -> None:
        try:
            await page.wait_for_selector(selector, state="visible", timeout=timeout)
        except PlaywrightTimeout as exc:
            raise LoginStepFailure(
                profile_id=profile.id,
                step=step,
                message=f"'{selector}' not visible within {timeout}ms on {page.url}",
            ) from exc

    async def _capture_failure(self, client: PlaywrightClient, profile: UserProfile) -> Optional[Path]:
        path = self.screenshot_dir / f"{profile.id}-setup-failure.png"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await client.page.screenshot(path=str(path), full_page=True)
        except Exception as exc:
            logger.warning("Could not capture failure screenshot for %s: %s", profile.id, exc)
            return None
        logger.info("Failure screenshot for %s: %s", profile.id, path)
        return path


async def run_auth_setup(profiles: Optional[Iterable[UserProfile]] = None) -> BootstrapSummary:
    """Authenticate the requested profiles and fail if none succeeded."""
    summary = await AuthBootstrap().run(profiles)
    summary.raise_for_status()
    return summary


def clear_artifacts(profiles: Iterable[UserProfile]) -> None:
    for profile in profiles:
        clear_auth_state(profile.storage_state_path)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Log DAEE user profiles in and save their sessions")
    parser.add_argument(
        "--profiles", help="comma separated profile ids (default: TEST_AUTH_PROFILES or every enabled profile)"
    )
    parser.add_argument(
        "--clear", action="store_true", help="delete the saved sessions of the selected profiles first"
    )
    args = parser.parse_args(argv)

    configure_logging()
    logger.info("Auth setup against %s (headless=%s)", settings.base_url, settings.headless)
    try:
        profiles = profiles_to_authenticate(args.profiles)
        if args.clear:
            clear_artifacts(profiles)
        anyio.run(run_auth_setup, profiles)
    except E2EError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
