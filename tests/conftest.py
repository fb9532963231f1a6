from datetime import date

import pytest

from core.models import ESPPGrant, OptionGrant, PreferentialTrack, RSUGrant
from core.tax_calculator import InstrumentTaxEngine, get_tax_rules


@pytest.fixture
def rules():
    return get_tax_rules(2025)


@pytest.fixture
def engine(rules):
    return InstrumentTaxEngine(rules)


@pytest.fixture
def make_rsu():
    def _make(issue_date=date(2024, 6, 1), share_count=1000, issue_price=15.50, **kwargs):
        return RSUGrant(
            share_count=share_count,
            issue_price=issue_price,
            issue_date=issue_date,
            vesting_start_date=kwargs.pop("vesting_start_date", issue_date),
            vesting_years=kwargs.pop("vesting_years", 4),
            ticker=kwargs.pop("ticker", "ACME"),
            **kwargs,
        )
    return _make


@pytest.fixture
def make_option():
    def _make(issue_date=date(2022, 1, 1), share_count=500, issue_price=12.25, **kwargs):
        return OptionGrant(
            share_count=share_count,
            issue_price=issue_price,
            issue_date=issue_date,
            vesting_start_date=kwargs.pop("vesting_start_date", issue_date),
            vesting_years=kwargs.pop("vesting_years", 4),
            ticker=kwargs.pop("ticker", "ACME"),
            preferential_track=kwargs.pop("preferential_track", PreferentialTrack.CAPITAL_GAINS),
            **kwargs,
        )
    return _make


@pytest.fixture
def make_espp():
    def _make(purchase_date=date(2024, 6, 1), share_count=100, issue_price=85.0, **kwargs):
        return ESPPGrant(
            share_count=share_count,
            issue_price=issue_price,
            issue_date=kwargs.pop("issue_date", purchase_date),
            vesting_start_date=kwargs.pop("vesting_start_date", purchase_date),
            vesting_years=0,
            ticker=kwargs.pop("ticker", "ACME"),
            purchase_date=purchase_date,
            discount_rate=kwargs.pop("discount_rate", 0.15),
            **kwargs,
        )
    return _make
