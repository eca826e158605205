"""Login with email, password and TOTP."""
from __future__ import annotations

import logging

from pytest_bdd import given, parsers, then, when

from daee_e2e.auth.profiles import get_user_profile
from daee_e2e.pages.login import LoginPage
from daee_e2e.steps.context import ScenarioContext

logger = logging.getLogger(__name__)

ADMIN_PROFILE = "super-admin"


def _login(ctx: ScenarioContext) -> LoginPage:
    return ctx.page_object(LoginPage)


@given("I am on the login page")
def on_login_page(ctx: ScenarioContext):
    ctx.run(_login(ctx).navigate_to)


@when("I enter valid admin credentials")
def enter_admin_credentials(ctx: ScenarioContext):
    profile = get_user_profile(ADMIN_PROFILE)
    ctx.state["profile"] = profile
    logger.info("Using admin email %s", profile.email)
    login = _login(ctx)
    ctx.run(login.fill_email, profile.email)
    ctx.run(login.fill_password, profile.password)


@when(parsers.parse('I enter admin email "{email}"'))
def enter_admin_email(ctx: ScenarioContext, email: str):
    ctx.run(_login(ctx).fill_email, email)


@when(parsers.parse('I enter an incorrect password "{password}"'))
def enter_incorrect_password(ctx: ScenarioContext, password: str):
    ctx.run(_login(ctx).fill_password, password)


@when("I submit the login form")
def submit_login_form(ctx: ScenarioContext):
    ctx.run(_login(ctx).click_sign_in)


@when("I submit the login form without entering credentials")
def submit_empty_form(ctx: ScenarioContext):
    ctx.run(_login(ctx).click_sign_in)


@when("I generate and enter a valid TOTP code")
def enter_valid_totp(ctx: ScenarioContext):
    profile = ctx.state["profile"]
    login = _login(ctx)
    code = login.generate_totp_code(profile.totp_secret)
    ctx.state["totp_code"] = code
    ctx.run(login.fill_totp_code, code)


@when(parsers.parse('I enter an invalid TOTP code "{code}"'))
def enter_invalid_totp(ctx: ScenarioContext, code: str):
    ctx.state["totp_code"] = code
    ctx.run(_login(ctx).fill_totp_code, code)


@when("I submit the TOTP verification")
def submit_totp(ctx: ScenarioContext):
    ctx.run(_login(ctx).click_verify_totp)


@then("I should see the TOTP verification step")
def totp_step_visible(ctx: ScenarioContext):
    ctx.run(_login(ctx).wait_for_totp_step)


@then("I should see a success message")
def success_message(ctx: ScenarioContext):
    assert ctx.run(_login(ctx).wait_for_success_message), "No success message after TOTP verification"


@then("I should be redirected to the notes page")
def redirected_to_notes(ctx: ScenarioContext):
    ctx.run(_login(ctx).wait_for_success_redirect)


@then("I should see an error message")
def error_message(ctx: ScenarioContext):
    text = ctx.run(_login(ctx).verify_error_message)
    logger.info("Error message: %s", text)


@then("I should remain on the TOTP verification step")
def still_on_totp_step(ctx: ScenarioContext):
    assert ctx.run(_login(ctx).is_on_totp_step), f"Left the TOTP step; now on {ctx.page.url}"


@then("I should remain on the login page")
def still_on_login_page(ctx: ScenarioContext):
    assert ctx.run(_login(ctx).is_on_login_form), f"Left the login form; now on {ctx.page.url}"


@then("the login form should show validation errors")
def validation_errors(ctx: ScenarioContext):
    assert ctx.run(_login(ctx).has_validation_errors), "Empty login form passed browser validation"


@then("the user session should be authenticated in the database")
def session_authenticated_in_db(ctx: ScenarioContext, database):
    profile = ctx.state["profile"]
    user = database.get_user_by_email(profile.email)
    assert user, f"No auth.users row for {profile.email}"
    assert database.has_user_completed_mfa(str(user["id"])), f"Latest session of {profile.email} is not aal2"
