"""Return period parsing and formatting for the GSTR-1 filters."""
from datetime import date

import pytest

from daee_e2e.support.periods import (
    filing_suffix,
    is_human_readable_period,
    period_label,
    resolve_period,
)


class TestResolvePeriod:
    def test_current_and_previous(self):
        today = date(2025, 4, 15)
        assert resolve_period("current", today) == "2025-04"
        assert resolve_period("previous", today) == "2025-03"

    def test_previous_rolls_over_january(self):
        assert resolve_period("previous", date(2025, 1, 3)) == "2024-12"

    def test_explicit_forms(self):
        assert resolve_period("2025-03") == "2025-03"
        assert resolve_period("March 2025") == "2025-03"
        assert resolve_period("  Current ", date(2025, 6, 1)) == "2025-06"

    @pytest.mark.parametrize("value", ["032025", "2025-13", "Marc 2025", ""])
    def test_rejects_unknown_formats(self, value):
        with pytest.raises(ValueError):
            resolve_period(value)


def test_period_label():
    assert period_label("2025-03") == "March 2025"
    with pytest.raises(ValueError):
        period_label("March 2025")


def test_filing_suffix():
    assert filing_suffix("2025-03") == "032025"


@pytest.mark.parametrize(
    "text, expected",
    [("March 2025", True), (" December 2024 ", True), ("032025", False), ("2025-03", False)],
)
def test_is_human_readable_period(text, expected):
    assert is_human_readable_period(text) is expected
