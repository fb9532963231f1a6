"""
Vesting, portfolio and what-if calculations built on the tax engine.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence

import config
from core.currency import CurrencyAdapter
from core.eligibility import months_between
from core.models import Exercise, Grant, InstrumentType, TaxSettings
from core.tax_calculator import InstrumentTaxEngine, TaxRules

DEFAULT_GROWTH_SCENARIOS = (0.0, 0.1, 0.3, 0.5, 1.0, 2.0)  # 0%, 10%, 30%, 50%, 100%, 200%


def calculate_vested_shares(grant: Grant, as_of: date = None) -> float:
    """
    Shares vested by ``as_of``.

    RSUs and options vest quarterly over ``vesting_years`` from the vesting
    start. ESPP shares are owned outright once the purchase date has passed.
    """
    as_of = as_of or config.today()

    if grant.instrument_type is InstrumentType.ESPP:
        return grant.share_count if as_of >= grant.vesting_start_date else 0.0

    if as_of < grant.vesting_start_date:
        return 0.0
    if grant.vesting_years <= 0:
        return grant.share_count

    quarters_vested = months_between(grant.vesting_start_date, as_of) // 3
    total_quarters = grant.vesting_years * 4
    return min(grant.share_count, quarters_vested * grant.share_count / total_quarters)


def calculate_exercised_shares(grant: Grant, exercises: Iterable[Exercise]) -> float:
    """Shares already exercised or sold from ``grant``."""
    return sum(
        exercise.shares
        for exercise in exercises
        if exercise.grant_id == grant.grant_id and exercise.counts
    )


def calculate_available_shares(grant: Grant, exercises: Iterable[Exercise], as_of: date = None) -> float:
    return calculate_vested_shares(grant, as_of) - calculate_exercised_shares(grant, exercises)


def calculate_grant_value(grant: Grant, current_price: float, exercises: Iterable[Exercise], as_of: date = None) -> float:
    """
    Pre-tax value of the available shares.

    Options are worth their spread over the strike (nothing when underwater);
    RSUs and ESPP shares are worth their full market value.
    """
    available = calculate_available_shares(grant, exercises, as_of)
    if available <= 0:
        return 0.0
    if grant.instrument_type is InstrumentType.OPTION:
        if current_price <= grant.issue_price:
            return 0.0
        return available * (current_price - grant.issue_price)
    return available * current_price


@dataclass
class PortfolioSummary:
    total_shares: Dict[str, float] = field(default_factory=dict)
    vested_shares: Dict[str, float] = field(default_factory=dict)
    today_worth: float = 0.0
    today_net_worth: float = 0.0
    total_tax: float = 0.0


def calculate_portfolio_summary(
    grants: Sequence[Grant],
    exercises: Sequence[Exercise],
    prices: Dict[str, float],
    settings: TaxSettings,
    exchange_rate: float,
    as_of: date = None,
    rules: Optional[TaxRules] = None,
) -> PortfolioSummary:
    """
    Totals per instrument type plus gross and after-tax worth (USD).

    Grants whose ticker has no price are counted but add no value.
    """
    engine = InstrumentTaxEngine(rules)
    as_of = as_of or config.today()
    summary = PortfolioSummary(
        total_shares={t.value: 0.0 for t in InstrumentType},
        vested_shares={t.value: 0.0 for t in InstrumentType},
    )

    for grant in grants:
        kind = grant.instrument_type.value
        summary.total_shares[kind] += grant.share_count
        summary.vested_shares[kind] += calculate_vested_shares(grant, as_of)

        current_price = prices.get(grant.ticker, 0.0)
        available = calculate_available_shares(grant, exercises, as_of)
        if available <= 0 or not current_price:
            continue

        summary.today_worth += calculate_grant_value(grant, current_price, exercises, as_of)
        result = engine.compute(grant, available, current_price, settings, exchange_rate, as_of)
        summary.total_tax += result.total_tax
        # ESPP shares are owned outright: keep the purchase cost in the net worth
        cost = grant.issue_price * available if grant.instrument_type is InstrumentType.ESPP else 0.0
        summary.today_net_worth += result.net_gain + cost

    return summary


@dataclass
class SimulationScenario:
    leave_date: date
    growth: float
    projected_prices: Dict[str, float]
    expected_gross: float
    gross_ils: float
    expected_tax: float
    expected_net: float
    net_ils: float
    gross_per_month: float
    net_per_month: float


def simulate_scenarios(
    grants: Sequence[Grant],
    exercises: Sequence[Exercise],
    prices: Dict[str, float],
    settings: TaxSettings,
    exchange_rate: float,
    leave_date: date,
    growth_scenarios: Sequence[float] = DEFAULT_GROWTH_SCENARIOS,
    rules: Optional[TaxRules] = None,
) -> List[SimulationScenario]:
    """
    Project gross, tax and net for leaving the company on ``leave_date``.

    For each growth rate every ticker's price is scaled, the shares vested
    by ``leave_date`` (minus counted exercises) are taxed with the full
    engine, and the totals are spread over the months since the earliest
    vesting start.
    """
    engine = InstrumentTaxEngine(rules)
    currency = CurrencyAdapter(exchange_rate)
    earliest_start = min((g.vesting_start_date for g in grants), default=None)
    months_to_leave = months_between(earliest_start, leave_date) if earliest_start else 1

    scenarios = []
    for growth in growth_scenarios:
        projected_prices = {
            ticker: price * (1 + growth)
            for ticker, price in prices.items()
        }
        expected_gross = 0.0
        expected_tax = 0.0

        for grant in grants:
            available = calculate_available_shares(grant, exercises, leave_date)
            price = projected_prices.get(grant.ticker, 0.0)
            if available <= 0 or not price:
                continue
            result = engine.compute(grant, available, price, settings, exchange_rate, leave_date)
            expected_gross += result.gross_gain
            expected_tax += result.total_tax

        expected_net = expected_gross - expected_tax
        gross_ils = currency.to_local(expected_gross)
        net_ils = currency.to_local(expected_net)

        scenarios.append(
            SimulationScenario(
                leave_date=leave_date,
                growth=growth,
                projected_prices=projected_prices,
                expected_gross=expected_gross,
                gross_ils=gross_ils,
                expected_tax=expected_tax,
                expected_net=expected_net,
                net_ils=net_ils,
                gross_per_month=gross_ils / months_to_leave if months_to_leave > 0 else 0.0,
                net_per_month=net_ils / months_to_leave if months_to_leave > 0 else 0.0,
            )
        )

    return scenarios
