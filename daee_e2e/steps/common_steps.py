"""Steps shared by every feature: sessions, navigation and generic assertions."""
from __future__ import annotations

import logging
import re
from typing import Dict, Type

from playwright.async_api import expect
from pytest_bdd import given, parsers, then, when

from daee_e2e.auth.profiles import get_user_profile, role_profile_id
from daee_e2e.pages.base import BasePage
from daee_e2e.pages.gstr1 import GSTR1Page
from daee_e2e.pages.indents import IndentsPage
from daee_e2e.pages.login import LoginPage
from daee_e2e.steps.context import ScenarioContext

logger = logging.getLogger(__name__)

# Page names as written in the feature files.
PAGES: Dict[str, Type[BasePage]] = {
    "login": LoginPage,
    "O2C Indents": IndentsPage,
    "Indents": IndentsPage,
    "GSTR-1 Review": GSTR1Page,
}

PATHS: Dict[str, str] = {
    "notes": "/notes",
    "dashboard": "/dashboard",
    "home": "/",
}


def page_path(name: str) -> str:
    if name in PAGES:
        return PAGES[name].path
    if name.lower() in PATHS:
        return PATHS[name.lower()]
    if name.startswith("/"):
        return name
    raise KeyError(f"Unknown page {name!r}; known pages: {sorted(PAGES) + sorted(PATHS)}")


# ---- sessions ---------------------------------------------------------------------

@given("I am logged in to the Application")
def logged_in(ctx: ScenarioContext):
    """Use the scenario's profile (tag or E2E_DEFAULT_PROFILE) and its saved session."""
    if not ctx.authenticated:
        raise AssertionError("Scenario is tagged @unauthenticated but asks for a logged-in session")
    ctx.use_profile(ctx.profile_id)
    ctx.state["profile"] = get_user_profile(ctx.profile_id)


@given(parsers.parse('I am logged in as "{role}"'))
def logged_in_as(ctx: ScenarioContext, role: str):
    profile_id = role_profile_id(role)
    ctx.use_profile(profile_id)
    ctx.state["profile"] = get_user_profile(profile_id)


@given(parsers.parse('I have permission to "{permission}"'))
def has_permission(ctx: ScenarioContext, permission: str):
    profile = ctx.state.get("profile") or get_user_profile(ctx.profile_id)
    assert profile.has_permission(permission), f"{profile.id} lacks permission {permission!r}"


@given(parsers.parse('I am in "{tenant}" tenant'))
def in_tenant(ctx: ScenarioContext, tenant: str):
    profile = ctx.state.get("profile") or get_user_profile(ctx.profile_id)
    assert profile.tenant.lower() == tenant.lower(), f"{profile.id} belongs to {profile.tenant}, not {tenant}"


# ---- navigation -------------------------------------------------------------------

@given(parsers.parse('I am on the "{name}" page'))
def on_named_page(ctx: ScenarioContext, name: str):
    page_cls = PAGES.get(name, BasePage)
    ctx.run(ctx.page_object(page_cls).navigate_to, page_path(name))


@when(parsers.parse('I navigate to "{path}"'))
def navigate_to(ctx: ScenarioContext, path: str):
    ctx.run(ctx.page_object(BasePage).navigate_to, path)


@when(parsers.re(r'I click the "(?P<name>[^"]+)" (?P<role>button|link)'))
def click_named(ctx: ScenarioContext, name: str, role: str):
    ctx.run(ctx.page.get_by_role(role, name=name).first.click)


@when("I go back")
def go_back(ctx: ScenarioContext):
    ctx.run(ctx.page_object(BasePage).go_back)


@when("I reload the page")
def reload_page(ctx: ScenarioContext):
    ctx.run(ctx.page_object(BasePage).reload)


@when("I wait for the page to load")
def wait_for_load(ctx: ScenarioContext):
    ctx.run(ctx.page_object(BasePage).wait_for_network_idle)


# ---- assertions -------------------------------------------------------------------

@then("I should see a success toast")
def success_toast(ctx: ScenarioContext):
    text = ctx.run(ctx.page_object(BasePage).wait_for_success_toast)
    logger.info("Success toast: %s", text)


@then("I should see an error toast")
def error_toast(ctx: ScenarioContext):
    text = ctx.run(ctx.page_object(BasePage).wait_for_error_toast)
    logger.info("Error toast: %s", text)


@then(parsers.parse('the URL should contain "{text}"'))
def url_contains(ctx: ScenarioContext, text: str):
    ctx.run(expect(ctx.page).to_have_url, re.compile(re.escape(text)))


@then(parsers.parse('I should be on the "{name}" page'))
def on_page(ctx: ScenarioContext, name: str):
    ctx.run(ctx.page_object(BasePage).wait_for_url, page_path(name))


@then(parsers.parse('I should see text "{text}"'))
def text_visible(ctx: ScenarioContext, text: str):
    ctx.run(expect(ctx.page.get_by_text(text).first).to_be_visible)


@then(parsers.parse('I should not see text "{text}"'))
def text_hidden(ctx: ScenarioContext, text: str):
    ctx.run(expect(ctx.page.get_by_text(text).first).to_be_hidden)


@then("a dialog should be open")
def dialog_open(ctx: ScenarioContext):
    ctx.run(ctx.page_object(BasePage).wait_for_dialog_open)


@then("the dialog should be closed")
def dialog_closed(ctx: ScenarioContext):
    ctx.run(ctx.page_object(BasePage).wait_for_dialog_close)
