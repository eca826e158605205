"""Checks on the GSTR-1 Excel export (offline template layout)."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from openpyxl import load_workbook

REQUIRED_SHEETS = ("b2b", "cdnr", "docs", "hsn(b2b)")
MIN_SHEETS = 20
HEADER_ROW = 4
FIRST_DATA_ROW = 5
HSN_TAX_COLUMNS = ("Integrated Tax Amount", "Central Tax Amount", "State/UT Tax Amount")

DATE_FORMAT = re.compile(r"^\d{2}-[A-Za-z]{3}-\d{4}$")
POS_FORMAT = re.compile(r"^\d{2}-[A-Za-z\s]+$")

# b2b sheet, 1-based columns
B2B_DATE_COLUMN = 5
B2B_POS_COLUMN = 7


def _text(value) -> str:
    return "" if value is None else str(value).strip()


@dataclass
class WorkbookSummary:
    path: Path
    sheet_names: List[str]
    headers: Dict[str, List[str]] = field(default_factory=dict)
    first_rows: Dict[str, List[str]] = field(default_factory=dict)


def inspect_gstr1_workbook(path: Path) -> WorkbookSummary:
    """Sheet names, the header row and the first data row of every sheet."""
    workbook = load_workbook(path, read_only=True, data_only=True)
    try:
        summary = WorkbookSummary(path=Path(path), sheet_names=list(workbook.sheetnames))
        for sheet in workbook.worksheets:
            rows = sheet.iter_rows(min_row=HEADER_ROW, max_row=FIRST_DATA_ROW, values_only=True)
            header, first = (list(row) for row in _pad(rows))
            summary.headers[sheet.title] = [_text(v) for v in header if _text(v)]
            summary.first_rows[sheet.title] = [_text(v) for v in first]
    finally:
        workbook.close()
    return summary


def _pad(rows):
    rows = list(rows)
    while len(rows) < 2:
        rows.append(())
    return rows[:2]


def verify_required_sheets(summary: WorkbookSummary) -> None:
    if len(summary.sheet_names) < MIN_SHEETS:
        raise AssertionError(
            f"Export should have at least {MIN_SHEETS} template sheets, got {len(summary.sheet_names)}"
        )
    missing = [name for name in REQUIRED_SHEETS if name not in summary.sheet_names]
    if missing:
        raise AssertionError(f"Export missing sheets {missing}; has {summary.sheet_names}")


def verify_tax_amount_columns(summary: WorkbookSummary) -> None:
    """b2b and cdnr carry no "Tax Amount" columns; hsn(b2b) carries all three."""
    for sheet in ("b2b", "cdnr"):
        taxed = [h for h in summary.headers.get(sheet, []) if re.search(r"Tax Amount", h, re.IGNORECASE)]
        if taxed:
            raise AssertionError(f"{sheet} sheet should not have Tax Amount columns: {taxed}")
    hsn_headers = summary.headers.get("hsn(b2b)", [])
    missing = [column for column in HSN_TAX_COLUMNS if column not in hsn_headers]
    if missing:
        raise AssertionError(f"hsn(b2b) sheet missing {missing}; headers {hsn_headers}")


def verify_data_starts_at_row_five(summary: WorkbookSummary) -> None:
    for sheet in ("b2b", "cdnr", "docs", "hsn(b2b)"):
        if not summary.headers.get(sheet):
            raise AssertionError(f"{sheet} sheet has no header on row {HEADER_ROW}")


def verify_b2b_date_and_pos(summary: WorkbookSummary) -> None:
    """Row 5 dates read dd-mmm-yyyy and places of supply read ``29-Karnataka``."""
    row = summary.first_rows.get("b2b", [])
    date = row[B2B_DATE_COLUMN - 1] if len(row) >= B2B_DATE_COLUMN else ""
    pos = row[B2B_POS_COLUMN - 1] if len(row) >= B2B_POS_COLUMN else ""
    if date and not DATE_FORMAT.match(date):
        raise AssertionError(f"b2b invoice date should be dd-mmm-yyyy, got {date!r}")
    if pos and not POS_FORMAT.match(pos):
        raise AssertionError(f"b2b place of supply should be Code-StateName, got {pos!r}")
