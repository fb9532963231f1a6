from datetime import date

import pytest

from core.calculator import (
    DEFAULT_GROWTH_SCENARIOS,
    calculate_available_shares,
    calculate_exercised_shares,
    calculate_grant_value,
    calculate_portfolio_summary,
    calculate_vested_shares,
    simulate_scenarios,
)
from core.models import Exercise, TaxSettings

AS_OF = date(2025, 1, 1)
FIXED_47 = TaxSettings(marginal_rate=0.47)


@pytest.fixture
def rsu(make_rsu):
    return make_rsu(issue_date=date(2024, 1, 1), grant_id="r1")


class TestVesting:
    @pytest.mark.parametrize(
        "as_of,vested",
        [
            (date(2023, 12, 31), 0),
            (date(2024, 3, 31), 0),
            (date(2024, 4, 1), 62.5),
            (date(2025, 1, 1), 250),
            (date(2028, 1, 1), 1000),
            (date(2030, 1, 1), 1000),
        ],
    )
    def test_quarterly(self, rsu, as_of, vested):
        assert calculate_vested_shares(rsu, as_of) == pytest.approx(vested)

    def test_no_vesting_schedule(self, make_rsu):
        assert calculate_vested_shares(make_rsu(vesting_years=0), AS_OF) == 1000

    def test_espp_owned_after_purchase(self, make_espp):
        grant = make_espp(purchase_date=date(2024, 6, 1))
        assert calculate_vested_shares(grant, date(2024, 5, 31)) == 0
        assert calculate_vested_shares(grant, date(2024, 6, 1)) == 100


class TestExercises:
    def test_only_counted_exercises(self, rsu):
        exercises = [
            Exercise("r1", 50, date(2024, 10, 1)),
            Exercise("r1", 30, date(2024, 11, 1), is_simulation=True),
            Exercise("r1", 20, date(2024, 12, 1), is_simulation=True, include_in_calculations=True),
            Exercise("other", 999, date(2024, 12, 1)),
        ]
        assert calculate_exercised_shares(rsu, exercises) == 70
        assert calculate_available_shares(rsu, exercises, AS_OF) == 180


class TestGrantValue:
    def test_rsu(self, rsu):
        assert calculate_grant_value(rsu, 20.0, [], AS_OF) == pytest.approx(5000.0)

    def test_option_spread(self, make_option):
        grant = make_option(vesting_years=0)
        assert calculate_grant_value(grant, 20.0, [], AS_OF) == pytest.approx(3875.0)
        assert calculate_grant_value(grant, 10.0, [], AS_OF) == 0

    def test_nothing_available(self, rsu):
        assert calculate_grant_value(rsu, 20.0, [Exercise("r1", 250, AS_OF)], AS_OF) == 0


class TestPortfolioSummary:
    def test_rsu_with_exercise(self, rsu, rules):
        summary = calculate_portfolio_summary(
            [rsu], [Exercise("r1", 50, date(2024, 10, 1))], {"ACME": 20.0}, FIXED_47, 3.65, AS_OF, rules,
        )
        assert summary.total_shares["RSUs"] == 1000
        assert summary.vested_shares["RSUs"] == pytest.approx(250)
        assert summary.today_worth == pytest.approx(4000.0)
        assert summary.total_tax == pytest.approx(1880.0)
        assert summary.today_net_worth == pytest.approx(2120.0)

    def test_espp_keeps_purchase_cost(self, make_espp, rules):
        summary = calculate_portfolio_summary([make_espp()], [], {"ACME": 120.0}, FIXED_47, 1.0, AS_OF, rules)
        assert summary.today_worth == pytest.approx(12000.0)
        assert summary.total_tax == pytest.approx(940.0)
        assert summary.today_net_worth == pytest.approx(3500.0 - 940.0 + 8500.0)

    def test_missing_price(self, rsu, rules):
        summary = calculate_portfolio_summary([rsu], [], {}, FIXED_47, 3.65, AS_OF, rules)
        assert summary.total_shares["RSUs"] == 1000
        assert summary.today_worth == 0
        assert summary.total_tax == 0


class TestSimulateScenarios:
    @pytest.fixture
    def grant(self, make_rsu):
        return make_rsu(issue_date=date(2024, 1, 1), vesting_years=1, issue_price=10.0, grant_id="r1")

    def test_default_growth_rates(self, grant, rules):
        scenarios = simulate_scenarios([grant], [], {"ACME": 20.0}, FIXED_47, 3.65, AS_OF, rules=rules)
        assert [s.growth for s in scenarios] == list(DEFAULT_GROWTH_SCENARIOS)

    def test_flat_and_doubled(self, grant, rules):
        flat, doubled = simulate_scenarios(
            [grant], [], {"ACME": 20.0}, FIXED_47, 3.65, AS_OF, growth_scenarios=(0.0, 1.0), rules=rules,
        )
        assert flat.expected_gross == pytest.approx(20000.0)
        assert flat.expected_tax == pytest.approx(9400.0)
        assert flat.expected_net == pytest.approx(10600.0)
        assert flat.gross_ils == pytest.approx(73000.0)
        assert flat.gross_per_month == pytest.approx(73000.0 / 12)
        assert doubled.projected_prices == {"ACME": pytest.approx(40.0)}
        assert doubled.expected_gross == pytest.approx(40000.0)

    def test_leave_before_vesting(self, grant, rules):
        (scenario,) = simulate_scenarios(
            [grant], [], {"ACME": 20.0}, FIXED_47, 3.65, date(2023, 6, 1), growth_scenarios=(0.0,), rules=rules,
        )
        assert scenario.expected_gross == 0
        assert scenario.gross_per_month == 0

    def test_no_grants(self, rules):
        assert [s.expected_gross for s in simulate_scenarios([], [], {}, FIXED_47, 3.65, AS_OF, rules=rules)] == [0.0] * 6
