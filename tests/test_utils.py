from datetime import date

import pytest

from core.eligibility import EligibilityState, EligibilityStatus
from core.models import TaxBreakdown, TaxResult, TrusteeEstimate
from utils.formatters import (
    format_currency,
    format_date,
    format_date_hebrew,
    format_eligibility,
    format_percentage,
    format_tax_result,
    format_time_remaining,
)
from utils.validators import is_valid_amount, is_valid_rate, parse_amount, parse_date, validate_grant_data


class TestFormatters:
    def test_currency(self):
        assert format_currency(1234.5) == "₪1,234.50"
        assert format_currency(1234.5, "USD") == "$1,234.50"
        assert format_currency(-12, "USD") == "-$12.00"
        assert format_currency(1234.5, with_symbol=False) == "1,234.50"

    def test_dates(self):
        assert format_date(date(2025, 3, 5)) == "2025-03-05"
        assert format_date_hebrew(date(2025, 3, 5)) == "05/03/2025"

    def test_percentage(self):
        assert format_percentage(0.47) == "47.0%"
        assert format_percentage(0.1234, decimals=2) == "12.34%"

    @pytest.mark.parametrize("days,text", [(0, "0d"), (20, "20d"), (72, "2m 12d"), (-3, "0d")])
    def test_time_remaining(self, days, text):
        assert format_time_remaining(days) == text

    def test_eligibility(self):
        assert format_eligibility(EligibilityStatus(EligibilityState.NOT_APPLICABLE, 0, 0, None)) == "Not 102"
        assert format_eligibility(EligibilityStatus(EligibilityState.ELIGIBLE, 0, 0, date(2024, 1, 1))) == "Eligible"
        waiting = EligibilityStatus(EligibilityState.WAITING, 13, 374, date(2026, 1, 10))
        assert format_eligibility(waiting) == "12m 14d"

    def test_tax_result(self):
        breakdown = TaxBreakdown(
            ordinary_income_tax=705,
            capital_gains_tax=500,
            preferential_track_applied=True,
            trustee_estimate=TrusteeEstimate(withheld=1205, actually_owed=714.05),
            notes=["note"],
        )
        text = format_tax_result(TaxResult.from_breakdown(3500, breakdown))
        assert "Total tax: $1,205.00" in text
        assert "National Insurance" not in text
        assert "Expected refund: $490.95" in text
        assert text.endswith("note")


class TestValidators:
    def test_amounts(self):
        assert parse_amount("₪1,234.50") == 1234.5
        assert parse_amount(" $ 12 ") == 12.0
        assert is_valid_amount("1,000")
        assert not is_valid_amount("abc")

    @pytest.mark.parametrize("rate,valid", [(0, True), ("0.47", True), (1, True), (1.2, False), (None, False)])
    def test_rates(self, rate, valid):
        assert is_valid_rate(rate) is valid

    @pytest.mark.parametrize(
        "text,expected",
        [("2024-03-15", date(2024, 3, 15)), ("15/03/2024", date(2024, 3, 15)), ("2024-03-15T10:00:00", date(2024, 3, 15))],
    )
    def test_parse_date(self, text, expected):
        assert parse_date(text) == expected

    def test_parse_date_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_date("soon")

    def test_validate_grant_data(self):
        record = {"type": "RSUs", "amount": 10, "price": 1, "grant_date": "2024-01-01", "ticker": "X"}
        assert validate_grant_data(record) == (True, "")
        assert validate_grant_data({**record, "ticker": None}) == (False, "Missing required field: ticker")
        assert validate_grant_data({**record, "vesting_years": "four"}) == (False, "Invalid vesting_years format")
