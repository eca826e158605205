"""O2C indent creation: dealer selection modal."""
from __future__ import annotations

import logging

from playwright.async_api import expect
from pytest_bdd import given, parsers, then, when

from daee_e2e.pages.indents import IndentsPage
from daee_e2e.steps.context import ScenarioContext

logger = logging.getLogger(__name__)


def _indents(ctx: ScenarioContext) -> IndentsPage:
    return ctx.page_object(IndentsPage)


@given("I am on the O2C Indents page")
def on_indents_page(ctx: ScenarioContext):
    ctx.run(_indents(ctx).navigate)


@when("I click the Create Indent button")
def click_create_indent(ctx: ScenarioContext):
    ctx.run(_indents(ctx).click_create_indent)


@when(parsers.parse('I search for dealer by name "{dealer_name}"'))
def search_dealer(ctx: ScenarioContext, dealer_name: str):
    ctx.state["dealer"] = dealer_name
    ctx.run(_indents(ctx).search_dealer, dealer_name)


@when("I search for a stable dealer")
def search_stable_dealer(ctx: ScenarioContext, stable_data):
    profile = ctx.state.get("profile")
    dealer = stable_data.stable_dealer(tenant=profile.tenant if profile else None)
    ctx.state["dealer"] = dealer["name"]
    ctx.run(_indents(ctx).search_dealer, dealer["name"])


@when(parsers.parse('I select the dealer "{dealer_name}"'))
def select_dealer(ctx: ScenarioContext, dealer_name: str):
    ctx.run(_indents(ctx).select_dealer, dealer_name)


@when("I select the stable dealer")
def select_stable_dealer(ctx: ScenarioContext):
    ctx.run(_indents(ctx).select_dealer, ctx.state["dealer"])


@then(parsers.parse('I should see the "{title}" modal'))
def modal_visible(ctx: ScenarioContext, title: str):
    ctx.run(_indents(ctx).verify_dealer_modal_visible, title)


@then("the modal should display a list of active dealers")
def modal_lists_dealers(ctx: ScenarioContext):
    count = ctx.run(_indents(ctx).dealer_count)
    assert count > 0
    logger.info("Dealer modal lists %d dealers", count)


@then("the modal should have a search input")
def modal_has_search(ctx: ScenarioContext):
    search = _indents(ctx).dealer_search_input
    ctx.run(expect(search).to_be_visible)
    ctx.run(expect(search).to_be_enabled)


@then("the dealer list should be filtered")
def dealer_list_filtered(ctx: ScenarioContext):
    ctx.run(expect(_indents(ctx).dealer_table).to_be_visible)


@then(parsers.parse('I should see "{dealer_name}" in the results'))
def dealer_in_results(ctx: ScenarioContext, dealer_name: str):
    ctx.run(_indents(ctx).verify_dealer_in_results, dealer_name)


@then("the stable dealer should be in the results")
def stable_dealer_in_results(ctx: ScenarioContext):
    ctx.run(_indents(ctx).verify_dealer_in_results, ctx.state["dealer"])


@then("the modal should close")
def modal_closed(ctx: ScenarioContext):
    ctx.run(_indents(ctx).wait_for_dialog_close)


@then("I should be on the indent creation page with dealer pre-selected")
def on_indent_creation_page(ctx: ScenarioContext):
    ctx.run(_indents(ctx).verify_indent_creation_page, ctx.state.get("dealer"))
