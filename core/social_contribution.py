"""
National Insurance and Health Tax (Bituach Leumi) on monthly income.

Both components share the same monthly thresholds: a reduced rate up to the
low threshold, a full rate up to the ceiling, and nothing above it.
"""

from dataclasses import dataclass
from typing import Any, Dict

from core.brackets import BracketTable


MONTHS_PER_YEAR = 12


@dataclass(frozen=True)
class ContributionAmounts:
    ni_amount: float
    health_amount: float

    @property
    def total_amount(self) -> float:
        return self.ni_amount + self.health_amount

    def scaled(self, factor: float) -> "ContributionAmounts":
        return ContributionAmounts(self.ni_amount * factor, self.health_amount * factor)

    def minus(self, other: "ContributionAmounts") -> "ContributionAmounts":
        return ContributionAmounts(
            self.ni_amount - other.ni_amount,
            self.health_amount - other.health_amount,
        )


class SocialContribution:
    """
    Monthly social contribution over two bracket tables.

    Args:
        ni_table: National Insurance brackets on monthly income
        health_table: Health Tax brackets on the same thresholds
    """

    def __init__(self, ni_table: BracketTable, health_table: BracketTable):
        self.ni_table = ni_table
        self.health_table = health_table

    @classmethod
    def from_config(cls, ni_settings: Dict[str, Any]) -> "SocialContribution":
        """
        Build from the ``national_insurance`` settings block.

        Expects ``monthly_thresholds`` (``low``, ``high``) and ``rates``
        (``ni_low``, ``health_low``, ``ni_high``, ``health_high``). Income
        above ``high`` carries no contribution.
        """
        thresholds = ni_settings.get("monthly_thresholds", {})
        rates = ni_settings.get("rates", {})

        low = thresholds.get("low", 7522)
        high = thresholds.get("high", 50695)

        ni_rows = [
            {"min": 0, "max": low, "rate": rates.get("ni_low", 0.0104)},
            {"min": low, "max": high, "rate": rates.get("ni_high", 0.07)},
            {"min": high, "max": None, "rate": 0.0},
        ]
        health_rows = [
            {"min": 0, "max": low, "rate": rates.get("health_low", 0.0323)},
            {"min": low, "max": high, "rate": rates.get("health_high", 0.0516)},
            {"min": high, "max": None, "rate": 0.0},
        ]
        return cls(
            BracketTable.from_config(ni_rows, progressive=False),
            BracketTable.from_config(health_rows, progressive=False),
        )

    def monthly(self, monthly_income: float) -> ContributionAmounts:
        """Contribution for one month of income."""
        return ContributionAmounts(
            ni_amount=self.ni_table.cumulative(monthly_income),
            health_amount=self.health_table.cumulative(monthly_income),
        )

    def annual(self, annual_income: float) -> ContributionAmounts:
        """Twelve times the contribution on an average month of ``annual_income``."""
        return self.monthly(annual_income / MONTHS_PER_YEAR).scaled(MONTHS_PER_YEAR)

    def additional_on_top(self, base_monthly: float, additional_monthly: float) -> ContributionAmounts:
        """Extra monthly contribution caused by ``additional_monthly`` on top of ``base_monthly``."""
        base = max(0.0, base_monthly)
        additional = max(0.0, additional_monthly)
        return self.monthly(base + additional).minus(self.monthly(base))

    def annual_on_top(self, base_annual: float, additional_annual: float) -> ContributionAmounts:
        """Annualized ``additional_on_top`` for amounts given per year."""
        return self.additional_on_top(
            base_annual / MONTHS_PER_YEAR,
            additional_annual / MONTHS_PER_YEAR,
        ).scaled(MONTHS_PER_YEAR)
