"""
GSTR-1 Review page (finance / compliance).

The page starts empty ("Select filters to load"); choosing a seller GSTIN
and a return period loads the summary cards and the section tabs. Section
tabs with no rows show an empty-state sentence instead of a table, and every
table check treats that as a pass.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from playwright.async_api import Download, Locator, Page, expect

from daee_e2e.components.select import SelectComponent
from daee_e2e.pages.base import BasePage
from daee_e2e.support.periods import is_human_readable_period, period_label, resolve_period

logger = logging.getLogger(__name__)

ALL_GSTINS = "All GSTINs"
BANNER = re.compile(r"Fix Required Before Filing|Review Recommended", re.IGNORECASE)
EXCEL_FILENAME = re.compile(r"^GSTR1_[A-Z0-9]+_\d{6}\.xlsx$")
ZIP_FILENAME = re.compile(r"^GSTR1_ALL_\d{6}\.zip$")

TABS = ["Summary", "B2B", "B2CL", "B2CS", "CDNR", "CDNUR", "HSN", "Docs"]

EMPTY_STATES: Dict[str, str] = {
    "B2B": "No B2B invoices for this period",
    "B2CL": "No B2C Large invoices for this period",
    "B2CS": "No B2C Small invoices for this period",
    "CDNR": "No credit notes to registered dealers for this period",
    "CDNUR": "No credit notes to unregistered parties for this period",
    "HSN": "No HSN summary for this period",
    "Docs": "No document summary for this period",
}

TAB_CONTENT: Dict[str, re.Pattern] = {
    "Summary": re.compile(r"Outward Supplies|B2B Invoices|Total Outward"),
    "B2B": re.compile(r"No B2B invoices for this period|B2B Invoices|Buyer GSTIN", re.IGNORECASE),
    "B2CL": re.compile(r"No B2C Large invoices for this period|B2C Large|Invoice", re.IGNORECASE),
    "B2CS": re.compile(r"No B2C Small invoices for this period|B2C Small", re.IGNORECASE),
    "CDNR": re.compile(r"No credit notes to registered dealers for this period|Note Type", re.IGNORECASE),
    "CDNUR": re.compile(r"No credit notes to unregistered parties for this period|Note", re.IGNORECASE),
    "HSN": re.compile(r"No HSN summary for this period|HSN Summary|HSN Code", re.IGNORECASE),
    "Docs": re.compile(r"No document summary for this period|Document Summary|Document Type", re.IGNORECASE),
}

B2B_HEADERS = [
    "Status", "Buyer GSTIN", "Buyer Name", "Invoice No.", "Date", "POS", "Supply Type",
    "Rate", "RCM", "Cess", "Inv Type", "Taxable Value", "Invoice Value",
]
CDNR_HEADERS = ["Note Type", "Note No.", "Taxable Value", "IGST", "CGST", "SGST", "Total Tax", "Note Value"]
HSN_HEADERS = ["HSN Code", "UQC", "Rate", "Total Value", "Taxable Value", "CGST", "SGST", "IGST", "Total Tax"]
DOCS_HEADERS = ["Document Type", "Series Prefix", "From Number", "To Number", "Total Issued", "Cancelled", "Net Issued"]
DOC_NATURES = [
    "Invoices for outward supply",
    "Credit Note",
    "Debit Note",
    "Revised Invoice",
    "Delivery Challan",
]

RATE_FORMAT = re.compile(r"^\d+(\.\d+)?%$")


def parse_amount(text: str) -> float:
    """``"₹1,23,456.70"`` -> ``123456.7``; blank or dash is zero."""
    cleaned = re.sub(r"[₹,\s]", "", text or "")
    match = re.search(r"-?[\d.]+", cleaned)
    return float(match.group()) if match else 0.0


@dataclass
class ExportDownload:
    path: Path
    filename: str


class GSTR1Page(BasePage):
    path = "/finance/compliance/gstr1"

    def __init__(self, page: Page) -> None:
        super().__init__(page)
        self.page_title = page.locator('[data-slot="card-title"]').filter(has_text="GSTR-1 Review").or_(
            page.get_by_text("GSTR-1 Review", exact=True)
        ).first
        self.page_description = page.get_by_text("Review outward supplies and export for GST filing")
        self.seller_gstin = SelectComponent(page, "Seller GSTIN")
        self.return_period = SelectComponent(page, "Return Period")
        self.empty_state = page.get_by_text("Select filters to load").first
        self.loading = page.get_by_text("Loading data...").first
        self.data_loaded = page.get_by_text("Data Loaded").first
        self.export_button = page.get_by_role("button", name=re.compile(r"Export", re.IGNORECASE)).first
        self.total_tax_box = page.locator("div.bg-blue-600").filter(has_text="Total Tax").filter(has_text="Liability")

    # ---- page state -------------------------------------------------------------
    async def navigate(self) -> None:
        await self.navigate_to()

    async def verify_page_loaded(self) -> None:
        await self.wait_for_network_idle()
        url = self.page.url
        if "/restrictedUser" in url or "/login" in url:
            raise AssertionError(f"Access denied or not logged in. Current URL: {url}")
        await expect(self.page).to_have_url(re.compile(r"/finance/compliance/gstr1"), timeout=5000)
        await expect(self.page_title).to_be_visible(timeout=10000)
        await expect(self.page_description).to_be_visible(timeout=5000)

    async def verify_access_denied(self) -> None:
        if "/restrictedUser" in self.page.url:
            return
        denied = self.page.get_by_text(re.compile(r"restricted|access denied|permission", re.IGNORECASE)).first
        await expect(denied).to_be_visible(timeout=5000)

    async def verify_filters_present(self) -> None:
        await expect(self.seller_gstin.trigger).to_be_visible(timeout=5000)
        await expect(self.return_period.trigger).to_be_visible(timeout=5000)

    async def verify_empty_state(self) -> None:
        await expect(self.loading).to_be_hidden(timeout=10000)
        await expect(self.empty_state).to_be_visible(timeout=10000)

    # ---- filters ------------------------------------------------------------------
    async def first_gstin(self) -> str:
        """GSTIN of the first real option, skipping "All GSTINs"."""
        await self.seller_gstin.open()
        options = self.seller_gstin.options
        for index in range(await options.count()):
            option = options.nth(index)
            if ALL_GSTINS in (await option.inner_text()):
                continue
            gstin = (await option.locator("span.font-mono").inner_text()).strip()
            await self.seller_gstin.close()
            return gstin
        await self.seller_gstin.close()
        raise AssertionError("Seller GSTIN dropdown has no GSTIN options")

    async def select_seller_gstin(self, gstin: str) -> str:
        if gstin == "first":
            gstin = await self.first_gstin()
        elif gstin == "all":
            gstin = ALL_GSTINS
        await self.seller_gstin.choose(gstin)
        await expect(self.page.get_by_role("listbox")).to_be_hidden(timeout=2000)
        return gstin

    async def select_return_period(self, period: str) -> str:
        """Select ``current``, ``previous``, ``YYYY-MM`` or a ``Month YYYY`` label."""
        key = resolve_period(period)
        await self.return_period.open()
        await self.page.get_by_role("option", name=period_label(key)).click()
        await expect(self.page.get_by_role("listbox")).to_be_hidden(timeout=2000)
        return key

    async def verify_filing_period_options(self) -> None:
        current, previous = period_label(resolve_period("current")), period_label(resolve_period("previous"))
        await self.return_period.open()
        options = await self.return_period.option_texts()
        await self.return_period.close()
        if current not in options and previous not in options:
            raise AssertionError(
                f"Return Period options lack {current!r} and {previous!r}; first options: {options[:5]}"
            )

    async def verify_seller_gstin_format(self) -> None:
        """Options read "<GSTIN> <State Name>", not a city."""
        await self.seller_gstin.open()
        options = self.seller_gstin.options
        checked = 0
        for index in range(await options.count()):
            option = options.nth(index)
            if ALL_GSTINS in (await option.inner_text()):
                continue
            gstin = (await option.locator("span.font-mono").inner_text()).strip()
            state = (await option.locator("span.text-xs.text-muted-foreground").inner_text()).strip()
            if not re.fullmatch(r"\d{2}[A-Z0-9]{13}", gstin):
                raise AssertionError(f"Option {index + 1}: {gstin!r} is not a GSTIN")
            if not state:
                raise AssertionError(f"Option {index + 1}: GSTIN {gstin} has no state name")
            checked += 1
        await self.seller_gstin.close()
        assert checked, "Seller GSTIN dropdown has no GSTIN options"

    async def wait_for_data_loaded(self) -> None:
        await expect(self.loading).to_be_hidden(timeout=15000)
        await expect(self.empty_state).to_be_hidden(timeout=10000)
        await expect(self.data_loaded).to_be_visible(timeout=10000)
        await expect(self.page.get_by_role("tablist")).to_be_visible(timeout=5000)

    # ---- summary cards ------------------------------------------------------------
    def card(self, title: str | re.Pattern) -> Locator:
        title_el = self.page.locator('[data-slot="card-title"]').filter(has_text=title).first
        return title_el.locator("xpath=ancestor::*[@data-slot='card'][1]")

    async def return_period_text(self) -> str:
        value = self.card("Return Period").locator(".text-2xl.font-bold").first
        await expect(value).to_be_visible(timeout=10000)
        return (await value.inner_text()).strip()

    async def verify_return_period_card_format(self) -> None:
        text = await self.return_period_text()
        if not is_human_readable_period(text):
            raise AssertionError(f"Return Period card should read like 'March 2025', got {text!r}")

    async def total_liability(self) -> float:
        value = self.total_tax_box.locator(".text-2xl.font-bold.text-white").first
        await expect(value).to_be_visible(timeout=10000)
        return parse_amount(await value.inner_text())

    async def verify_total_liability_card(self) -> None:
        assert await self.total_liability() >= 0

    async def verify_total_outward_card(self) -> None:
        value = self.card(re.compile("Total Outward")).locator(".text-2xl.font-bold").first
        await expect(value).to_be_visible(timeout=10000)
        text = await value.inner_text()
        if not re.search(r"\d", text):
            raise AssertionError(f"Total Outward card shows no amount: {text!r}")

    async def validation_counts(self) -> Dict[str, int]:
        card = self.card(re.compile("Validation Status"))
        counts = {}
        for label in ("Errors", "Warnings"):
            value = card.get_by_text(label, exact=True).locator("xpath=..").locator(".text-lg.font-bold").first
            await expect(value).to_be_visible(timeout=5000)
            counts[label.lower()] = int(parse_amount(await value.inner_text()))
        return counts

    async def verify_einvoice_status_card(self) -> None:
        card = self.card(re.compile("E-Invoice Status"))
        await expect(card.get_by_text("IRN Ready", exact=True)).to_be_visible(timeout=5000)
        await expect(card.get_by_text("Pending", exact=True)).to_be_visible(timeout=5000)

    async def verify_net_taxable_value_card(self) -> None:
        card = self.card(re.compile("Net Taxable Value"))
        await expect(card.get_by_text(re.compile(r"Outward Supplies - Credit Notes", re.IGNORECASE))).to_be_visible()
        await expect(card.locator(".text-3xl.font-bold").first).to_be_visible()

    # ---- validation banner --------------------------------------------------------
    @property
    def validation_banner(self) -> Locator:
        return self.page.get_by_text(BANNER).first

    async def verify_validation_banner(self) -> None:
        """Banner with a Show/Hide Details toggle when issues exist, absent otherwise."""
        counts = await self.validation_counts()
        if counts["errors"] == 0 and counts["warnings"] == 0:
            await expect(self.validation_banner).to_be_hidden(timeout=3000)
            return
        await expect(self.validation_banner).to_be_visible(timeout=10000)
        toggle = self.page.get_by_role("button", name=re.compile(r"Show Details|Hide Details", re.IGNORECASE))
        await expect(toggle).to_be_visible(timeout=5000)

    async def verify_banner_lists_issues(self) -> None:
        counts = await self.validation_counts()
        if counts["errors"] == 0 and counts["warnings"] == 0:
            await expect(self.validation_banner).to_be_hidden(timeout=3000)
            return
        show = self.page.get_by_role("button", name=re.compile(r"Show Details", re.IGNORECASE))
        if await show.is_visible():
            await show.click()
        issues = self.page.locator("table").filter(has=self.page.get_by_text("Severity")).filter(
            has=self.page.get_by_text("Issue")
        )
        await expect(issues).to_be_visible(timeout=5000)
        first_row = await issues.locator("tbody tr").first.locator("td").all_inner_texts()
        if not any(cell.strip() for cell in first_row):
            raise AssertionError("Validation issue rows are empty")

    # ---- tabs and tables ----------------------------------------------------------
    async def switch_to_tab(self, name: str) -> None:
        await self.wait_for_network_idle()
        await self.page.get_by_role("tab", name=re.compile(rf"^{re.escape(name)}", re.IGNORECASE)).first.click()
        await expect(self.page.locator('[role="tabpanel"][data-state="active"]')).to_be_visible(timeout=3000)

    async def tab_is_empty(self, name: str) -> bool:
        empty = EMPTY_STATES.get(name)
        return bool(empty) and await self.page.get_by_text(empty).is_visible()

    @property
    def table(self) -> Locator:
        return self.page.locator('[role="tabpanel"][data-state="active"] table').first

    async def table_headers(self) -> List[str]:
        await expect(self.table).to_be_visible(timeout=5000)
        headers = self.table.locator('thead th, thead [role="columnheader"]')
        return [text.strip() for text in await headers.all_inner_texts()]

    async def table_rows(self, exclude: Optional[str] = "TOTAL") -> List[List[str]]:
        rows = self.table.locator("tbody tr")
        if exclude:
            rows = rows.filter(has_not=self.page.get_by_text(exclude))
        result = []
        for index in range(await rows.count()):
            cells = await rows.nth(index).locator("td").all_inner_texts()
            result.append([cell.strip() for cell in cells])
        return result

    async def verify_tab_headers(self, tab: str, expected: List[str]) -> None:
        await self.switch_to_tab(tab)
        if await self.tab_is_empty(tab):
            logger.info("%s tab has no rows for this period; header check skipped", tab)
            return
        headers = await self.table_headers()
        combined = " ".join(headers)
        missing = [header for header in expected if header not in combined]
        if missing:
            raise AssertionError(f"{tab} table missing columns {missing}. Found: {headers}")

    async def verify_all_tabs_show_content(self) -> None:
        panel = self.page.locator('[role="tabpanel"][data-state="active"]')
        for name in TABS:
            await self.switch_to_tab(name)
            await expect(panel).to_contain_text(TAB_CONTENT[name], timeout=5000)

    async def verify_b2b_rate_column(self) -> None:
        await self.switch_to_tab("B2B")
        if await self.tab_is_empty("B2B"):
            return
        headers = await self.table_headers()
        rate_index = next((i for i, h in enumerate(headers) if h.startswith("Rate")), None)
        taxable_index = next((i for i, h in enumerate(headers) if h.startswith("Taxable Value")), None)
        assert rate_index is not None and taxable_index is not None, f"B2B headers: {headers}"
        for number, row in enumerate(await self.table_rows(exclude="No invoices match"), start=1):
            if len(row) <= max(rate_index, taxable_index):
                continue
            if parse_amount(row[taxable_index]) > 0 and not re.search(r"\d+(\.\d+)?%", row[rate_index]):
                raise AssertionError(f"B2B row {number}: taxable invoice shows rate {row[rate_index]!r}")

    async def verify_cdnr_values_positive(self) -> None:
        await self.switch_to_tab("CDNR")
        if await self.tab_is_empty("CDNR"):
            return
        for number, row in enumerate(await self.table_rows(exclude="TOTAL ADJUSTMENTS"), start=1):
            negative = [cell for cell in row if re.fullmatch(r"-\s*₹?[\d,]+(\.\d+)?", cell)]
            if negative:
                raise AssertionError(f"CDNR row {number} shows negative amounts {negative}")

    async def verify_hsn_rate_column(self) -> None:
        await self.switch_to_tab("HSN")
        if await self.tab_is_empty("HSN"):
            return
        for number, row in enumerate(await self.table_rows(), start=1):
            rate = row[4] if len(row) > 4 else ""
            if rate in ("0%", "0.0%"):
                raise AssertionError(f"HSN row {number}: rate shows {rate!r} for a taxable line")
            if re.fullmatch(r"0\.\d+%", rate):
                raise AssertionError(f"HSN row {number}: rate {rate!r} looks like a fraction, expected e.g. 18%")
            if rate and rate != "-" and not RATE_FORMAT.match(rate):
                raise AssertionError(f"HSN row {number}: rate {rate!r} is not a percentage")

    async def verify_hsn_has_no_description_column(self) -> None:
        await self.switch_to_tab("HSN")
        if await self.tab_is_empty("HSN"):
            return
        combined = " ".join(await self.table_headers()).lower()
        for forbidden in ("description", "product name"):
            if forbidden in combined:
                raise AssertionError(f"HSN table should not have a {forbidden!r} column")

    async def verify_hsn_unique_lines(self) -> None:
        await self.switch_to_tab("HSN")
        if await self.tab_is_empty("HSN"):
            return
        seen = set()
        for row in await self.table_rows():
            if len(row) < 5:
                continue
            key = (row[0], row[2], row[4])
            if key in seen:
                raise AssertionError(f"Duplicate HSN line for HSN|UQC|Rate {'|'.join(key)}")
            seen.add(key)

    async def verify_docs_net_issued(self) -> None:
        await self.switch_to_tab("Docs")
        if await self.tab_is_empty("Docs"):
            return
        for number, row in enumerate(await self.table_rows(), start=1):
            if len(row) < 7:
                continue
            total, cancelled, net = (int(parse_amount(cell)) for cell in row[4:7])
            if net != total - cancelled:
                raise AssertionError(
                    f"Docs row {number}: Net Issued {net} != Total {total} - Cancelled {cancelled}"
                )

    async def verify_docs_natures(self) -> None:
        await self.switch_to_tab("Docs")
        if await self.tab_is_empty("Docs"):
            return
        for number, row in enumerate(await self.table_rows(), start=1):
            nature = row[0] if row else ""
            if nature and not any(nature.startswith(allowed) for allowed in DOC_NATURES):
                raise AssertionError(f"Docs row {number}: unexpected Nature of Document {nature!r}")

    async def verify_summary_sections(self) -> None:
        await self.switch_to_tab("Summary")
        titles = self.page.locator('[data-slot="card-title"]')
        await expect(
            self.page.get_by_text("Outward Supplies (Sales)").or_(titles.filter(has_text="B2B Invoices")).first
        ).to_be_visible(timeout=5000)
        for title in (re.compile("B2C Large|B2CL"), re.compile("B2C Small|B2CS"), "CDNR", "CDNUR"):
            await expect(titles.filter(has_text=title).first).to_be_visible(timeout=3000)
        await expect(self.total_tax_box).to_be_visible(timeout=5000)

    async def verify_liability_matches_hsn(self, tolerance: float = 1.0) -> None:
        """Summary Total Liability equals the Total Tax of the HSN TOTAL rows, within a rupee."""
        await self.switch_to_tab("Summary")
        liability = await self.total_liability()

        await self.switch_to_tab("HSN")
        if await self.tab_is_empty("HSN"):
            assert liability < tolerance, f"No HSN lines but liability is {liability}"
            return
        panel_tables = self.page.locator('[role="tabpanel"][data-state="active"] table')
        hsn_tax = 0.0
        for index in range(await panel_tables.count()):
            table = panel_tables.nth(index)
            headers = [h.strip() for h in await table.locator("thead th").all_inner_texts()]
            total_row = table.locator("tbody tr").filter(has_text="TOTAL").first
            if "Total Tax" not in headers or not await total_row.count():
                continue
            cells = await total_row.locator("td").all_inner_texts()
            hsn_tax += parse_amount(cells[headers.index("Total Tax")])
        if abs(hsn_tax - liability) > tolerance:
            raise AssertionError(f"Summary liability {liability:.2f} != HSN total tax {hsn_tax:.2f}")

    # ---- export -------------------------------------------------------------------
    async def open_export_menu(self) -> None:
        await expect(self.export_button).to_be_enabled(timeout=10000)
        await self.export_button.click()

    async def verify_export_menu(self) -> None:
        await self.open_export_menu()
        menu_item = self.page.get_by_role("menuitem", name=re.compile(r"Export Excel|Export ZIP", re.IGNORECASE))
        await expect(menu_item.first).to_be_visible(timeout=3000)
        await expect(self.page.get_by_role("menuitem", name=re.compile(r"Export JSON", re.IGNORECASE))).to_be_visible(
            timeout=3000
        )
        await self.page.keyboard.press("Escape")

    async def _export(self, item: str, filename: re.Pattern) -> ExportDownload:
        await self.wait_for_network_idle(timeout=15000)
        await self.open_export_menu()
        async with self.page.expect_download(timeout=60000) as download_info:
            await self.page.get_by_role("menuitem", name=re.compile(item, re.IGNORECASE)).click()
        download: Download = await download_info.value
        name = download.suggested_filename
        if not filename.match(name):
            raise AssertionError(f"{item} downloaded {name!r}, expected {filename.pattern}")
        path = await download.path()
        logger.info("%s downloaded %s", item, name)
        return ExportDownload(path=Path(path), filename=name)

    async def export_excel(self) -> ExportDownload:
        return await self._export("Export Excel", EXCEL_FILENAME)

    async def export_zip(self) -> ExportDownload:
        return await self._export("Export ZIP", ZIP_FILENAME)
