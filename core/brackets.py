"""
Progressive bracket tables and income tax.

A bracket table is an ordered list of (floor, ceiling, rate) slices. Each
slice taxes only the part of the income that falls inside it, so the
cumulative tax is continuous at every boundary.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from core.errors import InvalidBracketTableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bracket:
    floor: float
    ceiling: Optional[float]  # None = unbounded
    rate: float

    def portion_of(self, income: float) -> float:
        """Amount of ``income`` that falls inside this bracket."""
        if income <= self.floor:
            return 0.0
        top = income if self.ceiling is None else min(income, self.ceiling)
        return top - self.floor


class BracketTable:
    """
    Immutable, validated sequence of brackets.

    Args:
        brackets: Bracket objects in floor order
        progressive: Require non-decreasing rates. Social contribution
            tables end with a zero-rate cap bracket and turn this off.
    """

    def __init__(self, brackets: Sequence[Bracket], progressive: bool = True):
        self._brackets = tuple(brackets)
        self._validate(progressive)

    @classmethod
    def from_config(cls, rows: Sequence[Dict[str, Any]], progressive: bool = True) -> "BracketTable":
        """
        Build a table from config rows.

        Rows use the ``{"min": ..., "max": ..., "rate": ...}`` shape of the
        settings file; a ``max`` of ``None`` or infinity is unbounded.
        """
        brackets = []
        for row in rows:
            try:
                ceiling = row.get("max")
                if ceiling is not None and ceiling == float("inf"):
                    ceiling = None
                brackets.append(
                    Bracket(
                        floor=float(row["min"]),
                        ceiling=None if ceiling is None else float(ceiling),
                        rate=float(row["rate"]),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidBracketTableError(f"Invalid bracket row {row!r}: {e}") from e
        return cls(brackets, progressive=progressive)

    def _validate(self, progressive: bool) -> None:
        if not self._brackets:
            raise InvalidBracketTableError("Bracket table is empty")
        if self._brackets[0].floor != 0:
            raise InvalidBracketTableError("First bracket must start at 0")
        if self._brackets[-1].ceiling is not None:
            raise InvalidBracketTableError("Last bracket must be unbounded")

        for prev, curr in zip(self._brackets, self._brackets[1:]):
            if prev.ceiling is None:
                raise InvalidBracketTableError("Only the last bracket may be unbounded")
            if prev.ceiling != curr.floor:
                raise InvalidBracketTableError(
                    f"Gap or overlap between {prev.ceiling:,.0f} and {curr.floor:,.0f}"
                )
            if curr.floor <= prev.floor:
                raise InvalidBracketTableError("Bracket floors must be strictly increasing")
            if progressive and curr.rate < prev.rate:
                raise InvalidBracketTableError(
                    f"Rate drops from {prev.rate} to {curr.rate} at {curr.floor:,.0f}"
                )

        for bracket in self._brackets:
            if not 0 <= bracket.rate <= 1:
                raise InvalidBracketTableError(f"Rate {bracket.rate} is outside [0, 1]")

    def __iter__(self):
        return iter(self._brackets)

    def __len__(self) -> int:
        return len(self._brackets)

    def __getitem__(self, index: int) -> Bracket:
        return self._brackets[index]

    @property
    def boundaries(self) -> List[float]:
        """Inner bracket boundaries (every floor except 0)."""
        return [b.floor for b in self._brackets[1:]]

    def cumulative(self, amount: float) -> float:
        """Apply each bracket's rate to the slice of ``amount`` inside it."""
        if amount <= 0:
            return 0.0
        total = 0.0
        for bracket in self._brackets:
            if amount <= bracket.floor:
                break
            total += bracket.portion_of(amount) * bracket.rate
            if bracket.ceiling is None:
                break
        return total

    def rate_at(self, amount: float) -> float:
        """Rate of the bracket that contains ``amount``."""
        for bracket in self._brackets:
            if bracket.ceiling is None or amount < bracket.ceiling:
                return bracket.rate
        return self._brackets[-1].rate


class ProgressiveIncomeTax:
    """Annual income tax over a progressive bracket table."""

    def __init__(self, table: BracketTable):
        self.table = table

    def cumulative_tax(self, income: float) -> float:
        """Total tax on ``income`` as the only income of the year."""
        return self.table.cumulative(income)

    def tax_on_top(self, base_income: float, additional_income: float) -> float:
        """
        Extra tax caused by adding ``additional_income`` on top of ``base_income``.

        The base is taxed once; only the additional slice moves up the brackets.
        """
        base = max(0.0, base_income)
        additional = max(0.0, additional_income)
        return self.cumulative_tax(base + additional) - self.cumulative_tax(base)

    def marginal_rate_at(self, income: float) -> float:
        return self.table.rate_at(max(0.0, income))

    def bracket_breakdown(self, income: float) -> List[Dict[str, float]]:
        """
        Per-bracket tax on ``income``.

        Returns:
            [{"floor": float, "ceiling": float | None, "rate": float,
              "taxable": float, "amount": float}, ...] for brackets reached
        """
        breakdown = []
        for bracket in self.table:
            taxable = bracket.portion_of(income)
            if taxable <= 0:
                break
            breakdown.append({
                "floor": bracket.floor,
                "ceiling": bracket.ceiling,
                "rate": bracket.rate,
                "taxable": taxable,
                "amount": taxable * bracket.rate,
            })
        return breakdown
