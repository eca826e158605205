"""Return-period helpers for the GSTR-1 filters and cards.

Periods are keyed ``YYYY-MM`` and shown to users as ``Month YYYY``.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Optional

PERIOD_KEY = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
PERIOD_LABEL = re.compile(
    r"^(January|February|March|April|May|June|July|August|September|October|November|December)\s+\d{4}$"
)
RAW_PERIOD = re.compile(r"^\d{6}$")

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def period_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def resolve_period(value: str, today: Optional[date] = None) -> str:
    """Turn ``current``, ``previous``, ``YYYY-MM`` or ``Month YYYY`` into a period key."""
    today = today or date.today()
    value = value.strip()
    lowered = value.lower()

    if lowered == "current":
        return period_key(today.year, today.month)
    if lowered == "previous":
        if today.month == 1:
            return period_key(today.year - 1, 12)
        return period_key(today.year, today.month - 1)
    if PERIOD_KEY.match(value):
        return value
    if PERIOD_LABEL.match(value):
        month_name, year = value.split()
        return period_key(int(year), MONTHS.index(month_name) + 1)
    raise ValueError(f"Unrecognised return period: {value!r}")


def period_label(key: str) -> str:
    """``2025-03`` -> ``March 2025``."""
    match = PERIOD_KEY.match(key)
    if not match:
        raise ValueError(f"Not a YYYY-MM period: {key!r}")
    year, month = match.groups()
    return f"{MONTHS[int(month) - 1]} {year}"


def filing_suffix(key: str) -> str:
    """``2025-03`` -> ``032025``, the MMYYYY part of export file names."""
    year, month = key.split("-")
    return f"{month}{year}"


def is_human_readable_period(text: str) -> bool:
    text = text.strip()
    return bool(PERIOD_LABEL.match(text)) and not RAW_PERIOD.match(text)
