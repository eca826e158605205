"""
Fixtures for the browser scenarios.

Browser work runs on one anyio event loop owned by a session-wide
BlockingPortal; the synchronous pytest-bdd steps reach it through
``ctx.run``. The whole suite is skipped when TEST_BASE_URL does not answer.

Profile selection per scenario:
    @unauthenticated     fresh context without any session
    @<profile-id>        e.g. @iacs-md, loads that profile's saved session
    (no tag)             E2E_DEFAULT_PROFILE
"""
from pathlib import Path

import httpx
import pytest
from anyio.from_thread import start_blocking_portal

from daee_e2e.auth.bootstrap import AuthBootstrap
from daee_e2e.auth.profiles import all_profile_ids
from daee_e2e.config import settings
from daee_e2e.db import DatabaseSettings, ReadOnlyDatabase
from daee_e2e.errors import ConfigurationIncomplete
from daee_e2e.log import configure_logging
from daee_e2e.playwright_client import PlaywrightClient
from daee_e2e.sessions import ANONYMOUS, ProfileSessionManager
from daee_e2e.steps.context import ScenarioContext
from daee_e2e.test_data import StableDataLocator

from daee_e2e.steps.common_steps import *  # noqa: F401,F403
from daee_e2e.steps.auth_steps import *  # noqa: F401,F403
from daee_e2e.steps.indent_steps import *  # noqa: F401,F403
from daee_e2e.steps.gstr1_steps import *  # noqa: F401,F403

UNAUTHENTICATED = "unauthenticated"


@pytest.fixture(scope="session")
def portal():
    """Event loop thread for all Playwright calls of the session."""
    configure_logging(settings.log_level)
    with start_blocking_portal() as portal:
        yield portal


@pytest.fixture(scope="session")
def target_available():
    """Skip browser scenarios when the deployment under test is down."""
    try:
        httpx.get(settings.url("/login"), timeout=5.0, follow_redirects=True)
    except httpx.HTTPError as exc:
        pytest.skip(f"{settings.base_url} is not reachable: {exc}")
    return settings.base_url


@pytest.fixture(scope="session")
def auth_setup(portal, target_available):
    """Log every configured profile in once before the first scenario."""
    if settings.skip_auth_setup:
        return None
    summary = portal.call(AuthBootstrap().run)
    summary.raise_for_status()
    return summary


@pytest.fixture(scope="session")
def playwright_client(portal, target_available):
    client = PlaywrightClient()
    portal.call(client.connect)
    yield client
    portal.call(client.close)


def scenario_profile(node) -> str:
    """Profile id selected by the scenario's tags."""
    tags = {marker.name for marker in node.iter_markers()}
    if UNAUTHENTICATED in tags:
        return ANONYMOUS
    for profile_id in all_profile_ids():
        if profile_id in tags:
            return profile_id
    return settings.default_profile


@pytest.fixture
def ctx(request, portal, playwright_client, auth_setup):
    """Per-scenario context: its own browser context for the tagged profile."""
    manager = ProfileSessionManager(playwright_client.browser)
    context = ScenarioContext(portal, manager, scenario_profile(request.node))
    yield context
    context.close()


@pytest.fixture(scope="session")
def database():
    try:
        db = ReadOnlyDatabase.from_settings(DatabaseSettings.from_env())
    except ConfigurationIncomplete as exc:
        pytest.skip(str(exc))
    yield db
    db.close()


@pytest.fixture(scope="session")
def stable_data(database):
    locator = StableDataLocator(database)
    yield locator
    locator.clear_cache()


def pytest_bdd_step_error(request, feature, scenario, step, step_func, step_func_args, exception):
    """Screenshot of the scenario's page when a step fails."""
    context = step_func_args.get("ctx") or request.node.funcargs.get("ctx")
    if context is None or context.session is None:
        return
    name = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in scenario.name)[:80]
    path = Path(settings.screenshot_dir) / f"{name}.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        context.run(context.page.screenshot, path=str(path), full_page=True)
    except Exception as exc:
        print(f"[E2E] could not capture screenshot for {scenario.name!r}: {exc}")
        return
    print(f"[E2E] step {step.name!r} failed, screenshot: {path}")
