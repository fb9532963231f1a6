"""National Insurance and Health Tax on monthly income."""

import pytest

from core.social_contribution import SocialContribution


@pytest.fixture
def social(rules):
    return rules.social_contribution


class TestMonthly:
    def test_zero_income(self, social):
        assert social.monthly(0).total_amount == 0

    def test_low_threshold(self, social):
        amounts = social.monthly(7522)
        assert amounts.ni_amount == pytest.approx(78.2288)
        assert amounts.health_amount == pytest.approx(242.9606)
        assert amounts.total_amount == pytest.approx(321.1894)

    def test_between_thresholds(self, social):
        amounts = social.monthly(10000)
        assert amounts.ni_amount == pytest.approx(251.6888)
        assert amounts.health_amount == pytest.approx(370.8254)

    def test_capped_above_ceiling(self, social):
        at_ceiling = social.monthly(50695)
        assert at_ceiling.ni_amount == pytest.approx(3100.3388)
        assert at_ceiling.health_amount == pytest.approx(2470.6874)
        assert social.monthly(100000).total_amount == pytest.approx(at_ceiling.total_amount)


class TestAnnual:
    def test_annual_is_twelve_average_months(self, social):
        assert social.annual(120000).total_amount == pytest.approx(7470.1704)

    def test_annual_on_top_matches_monthly(self, social):
        annual = social.annual_on_top(60000, 60000).total_amount
        assert annual == pytest.approx(social.additional_on_top(5000, 5000).total_amount * 12)


class TestAdditionalOnTop:
    def test_spans_low_threshold(self, social):
        # 622.5142 on 10,000 minus 213.5 on 5,000
        assert social.additional_on_top(5000, 5000).total_amount == pytest.approx(409.0142)

    def test_base_above_ceiling_adds_nothing(self, social):
        assert social.additional_on_top(60000, 10000).total_amount == pytest.approx(0.0)

    def test_negative_inputs_clamped(self, social):
        assert social.additional_on_top(-100, 5000).total_amount == pytest.approx(213.5)
        assert social.additional_on_top(5000, -100).total_amount == 0


def test_from_config_uses_given_thresholds():
    social = SocialContribution.from_config({
        "monthly_thresholds": {"low": 1000, "high": 2000},
        "rates": {"ni_low": 0.01, "health_low": 0.02, "ni_high": 0.1, "health_high": 0.05},
    })
    amounts = social.monthly(3000)
    assert amounts.ni_amount == pytest.approx(110.0)
    assert amounts.health_amount == pytest.approx(70.0)
