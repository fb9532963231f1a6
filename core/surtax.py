"""
High-income surtax (mas yesef).

A flat extra rate on annual income above a fixed threshold, higher for
passive (capital) income than for labor income.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class SurtaxResult:
    labor_surtax: float = 0.0
    passive_surtax: float = 0.0

    @property
    def total(self) -> float:
        return self.labor_surtax + self.passive_surtax


class Surtax:
    def __init__(self, threshold: float, labor_rate: float, passive_rate: float):
        self.threshold = threshold
        self.labor_rate = labor_rate
        self.passive_rate = passive_rate

    @classmethod
    def from_config(cls, surtax_settings: Dict[str, Any]) -> "Surtax":
        return cls(
            threshold=surtax_settings.get("threshold", 721560),
            labor_rate=surtax_settings.get("labor_rate", 0.03),
            passive_rate=surtax_settings.get("passive_rate", 0.05),
        )

    def compute(self, labor_income: float, passive_income: float) -> SurtaxResult:
        """
        Split the income above the threshold between labor and passive.

        Labor income absorbs the excess first; only what is left over is
        charged at the passive rate.
        """
        labor = max(0.0, labor_income)
        passive = max(0.0, passive_income)

        if labor + passive <= self.threshold:
            return SurtaxResult()

        excess = labor + passive - self.threshold
        labor_excess = min(excess, labor)
        passive_excess = max(0.0, excess - labor_excess)

        return SurtaxResult(
            labor_surtax=labor_excess * self.labor_rate,
            passive_surtax=passive_excess * self.passive_rate,
        )

    def on_top(self, base_labor: float, labor_income: float, passive_income: float) -> SurtaxResult:
        """Extra surtax caused by new labor and passive income over an existing labor base."""
        with_new = self.compute(max(0.0, base_labor) + max(0.0, labor_income), passive_income)
        base = self.compute(base_labor, 0.0)
        return SurtaxResult(
            labor_surtax=with_new.labor_surtax - base.labor_surtax,
            passive_surtax=with_new.passive_surtax - base.passive_surtax,
        )
