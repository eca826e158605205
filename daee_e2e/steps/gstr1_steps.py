"""GSTR-1 Review: filters, summary cards, section tabs and exports."""
from __future__ import annotations

import logging

from pytest_bdd import given, parsers, then, when

from daee_e2e import exports
from daee_e2e.pages.gstr1 import (
    B2B_HEADERS,
    CDNR_HEADERS,
    DOCS_HEADERS,
    HSN_HEADERS,
    GSTR1Page,
)
from daee_e2e.steps.context import ScenarioContext
from daee_e2e.support.periods import period_label, resolve_period

logger = logging.getLogger(__name__)


def _gstr1(ctx: ScenarioContext) -> GSTR1Page:
    return ctx.page_object(GSTR1Page)


def _workbook(ctx: ScenarioContext) -> exports.WorkbookSummary:
    """Export once per scenario and reuse the inspected workbook."""
    if "workbook" not in ctx.state:
        download = ctx.run(_gstr1(ctx).export_excel)
        ctx.state["download"] = download
        ctx.state["workbook"] = exports.inspect_gstr1_workbook(download.path)
    return ctx.state["workbook"]


# ---- page and filters -------------------------------------------------------------

@given("I am on the GSTR-1 Review page")
def on_gstr1_page(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).navigate)


@then("I should see the GSTR-1 Review page")
def gstr1_page_loaded(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_page_loaded)


@then("I should be denied access to GSTR-1 page")
def gstr1_access_denied(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_access_denied)


@then(parsers.parse('I should see "{outcome}" for GSTR-1 access'))
def gstr1_access_outcome(ctx: ScenarioContext, outcome: str):
    if "denied" in outcome.lower():
        ctx.run(_gstr1(ctx).verify_access_denied)
    else:
        ctx.run(_gstr1(ctx).verify_page_loaded)


@then(parsers.parse('I should see empty state message "{message}"'))
def gstr1_empty_state(ctx: ScenarioContext, message: str):
    ctx.run(_gstr1(ctx).verify_empty_state)


@then("I should see Seller GSTIN and Return Period filters")
def gstr1_filters(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_filters_present)


@then("the Filing Period dropdown should be visible with current month options")
def filing_period_options(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_filing_period_options)


@then("the Seller GSTIN dropdown should display GSTIN and State Name format")
def seller_gstin_format(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_seller_gstin_format)


@when(parsers.parse('I select Seller GSTIN "{gstin}" and Return Period "{period}"'))
def select_filters(ctx: ScenarioContext, gstin: str, period: str):
    gstr1 = _gstr1(ctx)
    ctx.state["gstin"] = ctx.run(gstr1.select_seller_gstin, gstin)
    ctx.state["period"] = ctx.run(gstr1.select_return_period, period)
    logger.info("GSTR-1 filters: %s / %s", ctx.state["gstin"], ctx.state["period"])


@when(parsers.parse('I change Return Period to "{period}"'))
def change_period(ctx: ScenarioContext, period: str):
    ctx.state["period"] = ctx.run(_gstr1(ctx).select_return_period, period)
    ctx.run(_gstr1(ctx).wait_for_data_loaded)


@then("data should load and empty state should disappear")
def data_loaded(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).wait_for_data_loaded)


# ---- summary cards ----------------------------------------------------------------

@then("the Return Period card should show human-readable format")
def return_period_card(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_return_period_card_format)


@then(parsers.parse('the Return Period card should show period "{period}"'))
def return_period_card_value(ctx: ScenarioContext, period: str):
    text = ctx.run(_gstr1(ctx).return_period_text)
    assert text == period_label(resolve_period(period)), f"Return Period card shows {text!r}"


@then("the Total Liability card should be visible and show numeric value")
def total_liability_card(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_total_liability_card)


@then("the Total Taxable Value card should be visible and numeric")
def total_outward_card(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_total_outward_card)


@then("the Validation Errors card should be visible with error count")
def validation_card(ctx: ScenarioContext):
    counts = ctx.run(_gstr1(ctx).validation_counts)
    assert counts["errors"] >= 0 and counts["warnings"] >= 0
    logger.info("Validation status: %s", counts)


@then("the E-Invoice Status card should be visible with IRN status")
def einvoice_card(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_einvoice_status_card)


@then("the Net Taxable Value card should be visible and show correct formula")
def net_taxable_card(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_net_taxable_value_card)


# ---- validation banner ------------------------------------------------------------

@then("the collapsible Fix Required or Review Recommended banner should appear above tabs")
@then("the validation banner should not appear when there are zero validation errors")
def validation_banner(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_validation_banner)


@then("the validation banner should list specific issues with document or message")
def validation_banner_issues(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_banner_lists_issues)


# ---- tabs -------------------------------------------------------------------------

@then("all tabs Summary B2B B2CL B2CS CDNR CDNUR HSN Docs should be clickable and show content")
def all_tabs(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_all_tabs_show_content)


@then("the Summary tab should show section totals and liability")
def summary_sections(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_summary_sections)


@then("Summary Total Liability should match sum of tax from HSN sheets")
def liability_matches_hsn(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_liability_matches_hsn)


@then("the B2B tab should show columns Status GSTIN Name Inv No Date and others")
def b2b_headers(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_tab_headers, "B2B", B2B_HEADERS)


@then("the B2B Rate column should show percentage for taxable invoices")
def b2b_rate(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_b2b_rate_column)


@then("the CDNR tab should show columns Note Type Note Value Taxable Value and tax amounts")
def cdnr_headers(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_tab_headers, "CDNR", CDNR_HEADERS)


@then("CDNR note values should be shown as positive in the UI")
def cdnr_positive(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_cdnr_values_positive)


@then("the HSN tab should show columns HSN Code UQC Rate Total Value and tax columns")
def hsn_headers(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_tab_headers, "HSN", HSN_HEADERS)


@then("the HSN Rate column should show correct percentage not 0% or decimal")
def hsn_rate(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_hsn_rate_column)


@then("the HSN tab should not show Description or Product Name column")
def hsn_no_description(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_hsn_has_no_description_column)


@then("the HSN tab should show single line per HSN UQC Rate combination")
def hsn_unique(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_hsn_unique_lines)


@then("the Docs tab should show columns Nature of Doc Sr No From Sr No To Total Number Cancelled Net Issued")
def docs_headers(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_tab_headers, "Docs", DOCS_HEADERS)


@then("Docs Net Issued should equal Total Number minus Cancelled for each row")
def docs_net_issued(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_docs_net_issued)


@then("Docs Nature of Document should use exact allowed strings")
def docs_natures(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_docs_natures)


# ---- export -----------------------------------------------------------------------

@then("the Export button should open a menu with Export Excel and Export JSON options")
def export_menu(ctx: ScenarioContext):
    ctx.run(_gstr1(ctx).verify_export_menu)


@then("Export Excel should download a file named GSTR1 GSTIN Month xlsx")
def export_excel(ctx: ScenarioContext):
    _workbook(ctx)
    logger.info("Excel export: %s", ctx.state["download"].filename)


@then("the exported Excel file should have expected sheets and template structure")
def export_sheets(ctx: ScenarioContext):
    exports.verify_required_sheets(_workbook(ctx))


@then("the exported Excel data in b2b cdnr hsn docs should start at row 5")
def export_row_five(ctx: ScenarioContext):
    exports.verify_data_starts_at_row_five(_workbook(ctx))


@then(
    "the exported Excel b2b and cdnr should exclude Tax Amount columns "
    "and hsn should include Tax Amount columns"
)
def export_tax_columns(ctx: ScenarioContext):
    exports.verify_tax_amount_columns(_workbook(ctx))


@then("the exported Excel date format should be dd-mmm-yyyy and POS should be Code-StateName")
def export_date_pos(ctx: ScenarioContext):
    exports.verify_b2b_date_and_pos(_workbook(ctx))


@then("Export All GSTINs should download a ZIP named GSTR1_ALL_Month zip")
def export_zip(ctx: ScenarioContext):
    download = ctx.run(_gstr1(ctx).export_zip)
    logger.info("ZIP export: %s", download.filename)
