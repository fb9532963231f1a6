"""
Tax engine for equity compensation (RSUs, Options, ESPP) under Israeli rules.

Ordinary income goes through the progressive income tax brackets, National
Insurance and the labor surtax. Gains that qualify for the Section 102
capital gains track are taxed at the flat capital gains rate plus the
passive surtax. Bracket tables are in shekels, so dollar amounts are
converted in before evaluation and converted back for the result.

Example
-------

>>> from datetime import date
>>> from core.models import RSUGrant
>>> grant = RSUGrant(1000, 15.50, date(2024, 1, 1), date(2024, 1, 1), 4, "ACME")
>>> result = compute_tax(grant, 1000, 22.00, TaxSettings(marginal_rate=0.47), 3.65,
...                      as_of=date(2025, 1, 1))
>>> round(result.total_tax, 2)
10340.0
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from functools import lru_cache
from typing import Any, Dict, Optional

import config
from core import eligibility
from core.brackets import BracketTable, ProgressiveIncomeTax
from core.currency import CurrencyAdapter
from core.eligibility import EligibilityState, EligibilityStatus
from core.models import (
    AdditiveOnIncome,
    ESPPGrant,
    FixedRate,
    Grant,
    InstrumentType,
    PreferentialTrack,
    TaxBreakdown,
    TaxMode,
    TaxResult,
    TaxSettings,
    TrusteeEstimate,
)
from core.social_contribution import SocialContribution
from core.surtax import Surtax, SurtaxResult

logger = logging.getLogger(__name__)

TRUSTEE_NOTE = (
    "Trustee withholding is an estimate: the trustee does not know your "
    "real bracket, so the amount withheld may differ from what you owe"
)
PREPAID_DISCOUNT_NOTE = "ESPP discount was taxed as salary at purchase and is not included"


@dataclass(frozen=True)
class TaxRules:
    """One tax year's rule set, built once and never mutated."""
    year: str
    income_tax: ProgressiveIncomeTax
    social_contribution: SocialContribution
    surtax: Surtax
    capital_gains_rate: float
    controlling_shareholder_rate: float
    holding_period_months: int
    trustee_withholding_rate: float
    default_marginal_rate: float

    @classmethod
    def from_config(cls, year_rules: Dict[str, Any], year: str = "") -> "TaxRules":
        capital_gains = year_rules.get("capital_gains", {})
        section_102 = year_rules.get("section_102", {})
        defaults = year_rules.get("defaults", {})
        return cls(
            year=str(year),
            income_tax=ProgressiveIncomeTax(BracketTable.from_config(year_rules["income_tax"]["brackets"])),
            social_contribution=SocialContribution.from_config(year_rules.get("national_insurance", {})),
            surtax=Surtax.from_config(year_rules.get("surtax", {})),
            capital_gains_rate=capital_gains.get("rate", 0.25),
            controlling_shareholder_rate=capital_gains.get("controlling_shareholder_rate", 0.30),
            holding_period_months=section_102.get("holding_period_months", eligibility.HOLDING_PERIOD_MONTHS),
            trustee_withholding_rate=section_102.get("trustee_withholding_rate", 0.62),
            default_marginal_rate=defaults.get("marginal_rate", 0.47),
        )

    def capital_gains_rate_for(self, settings: TaxSettings) -> float:
        if settings.is_controlling_shareholder:
            return self.controlling_shareholder_rate
        return self.capital_gains_rate


def get_tax_rules(year=None) -> TaxRules:
    """Rules for ``year`` (default ``config.TAX_YEAR``), loaded once per process."""
    return _load_tax_rules(str(year or config.TAX_YEAR))


@lru_cache(maxsize=None)
def _load_tax_rules(year: str) -> TaxRules:
    return TaxRules.from_config(config.get_year_rules(year), year)


@dataclass(frozen=True)
class _LocalTaxes:
    """Ordinary-income taxes in local currency."""
    income_tax: float = 0.0
    social_contribution: float = 0.0
    surtax: SurtaxResult = SurtaxResult()


class InstrumentTaxEngine:
    """
    Computes the tax on selling / exercising shares of a grant.

    Args:
        rules: Tax year rules (defaults to the configured year)
    """

    def __init__(self, rules: Optional[TaxRules] = None):
        self.rules = rules or get_tax_rules()

    # ── Public entry points ──

    def compute(
        self,
        grant: Grant,
        shares: float,
        current_price: float,
        settings: Optional[TaxSettings] = None,
        exchange_rate: float = None,
        as_of: date = None,
    ) -> TaxResult:
        """
        Tax, net proceeds and breakdown for ``shares`` of ``grant`` at ``current_price``.

        Returns a zero result for non-positive share counts and for grants
        with no gain (underwater options, ESPP below purchase price).
        """
        if shares is None or shares <= 0:
            return TaxResult.zero()

        settings = settings or TaxSettings()
        mode = settings.tax_mode(self.rules.default_marginal_rate)
        currency = CurrencyAdapter(exchange_rate)
        as_of = as_of or config.today()
        current_price = max(0.0, current_price or 0.0)

        if grant.instrument_type is InstrumentType.RSU:
            return self._rsu(grant, shares, current_price, settings, mode, currency, as_of)
        if grant.instrument_type is InstrumentType.OPTION:
            return self._option(grant, shares, current_price, settings, mode, currency, as_of)
        return self._espp(grant, shares, current_price, settings, mode, currency, as_of)

    def classify(self, grant: Grant, as_of: date = None) -> EligibilityStatus:
        return eligibility.status(grant, as_of, self.rules.holding_period_months)

    # ── Instruments ──

    def _rsu(self, grant, shares, price, settings, mode, currency, as_of) -> TaxResult:
        gross_gain = shares * price
        state = eligibility.classify(grant, as_of, self.rules.holding_period_months)
        preferential = self._capital_gains_track(grant, state)

        if preferential:
            # Grant-date value is salary; appreciation since grant is capital gain
            ordinary = min(grant.issue_price * shares, gross_gain)
            capital_gain = gross_gain - ordinary
        else:
            ordinary = gross_gain
            capital_gain = 0.0

        logger.debug(
            "RSU %s: state=%s ordinary=%.2f capital_gain=%.2f mode=%s",
            grant.ticker, state.value, ordinary, capital_gain, mode.label,
        )
        return self._result(
            gross_gain, ordinary, capital_gain, settings, mode, currency,
            preferential_track_applied=preferential,
            eligibility=state.value,
        )

    def _option(self, grant, shares, price, settings, mode, currency, as_of) -> TaxResult:
        if price <= grant.issue_price:
            logger.debug("Option %s is underwater (%.2f <= %.2f)", grant.ticker, price, grant.issue_price)
            return TaxResult.zero(notes=["Option is underwater"])

        gross_gain = shares * (price - grant.issue_price)
        state = eligibility.classify(grant, as_of, self.rules.holding_period_months)
        preferential = state is EligibilityState.ELIGIBLE

        if preferential:
            ordinary, capital_gain = 0.0, gross_gain
        else:
            ordinary, capital_gain = gross_gain, 0.0

        logger.debug(
            "Option %s: state=%s ordinary=%.2f capital_gain=%.2f mode=%s",
            grant.ticker, state.value, ordinary, capital_gain, mode.label,
        )
        return self._result(
            gross_gain, ordinary, capital_gain, settings, mode, currency,
            preferential_track_applied=preferential,
            eligibility=state.value,
        )

    def _espp(self, grant: ESPPGrant, shares, price, settings, mode, currency, as_of) -> TaxResult:
        fmv = grant.fair_market_value_at_purchase
        gross_gain = (price - grant.issue_price) * shares
        discount_benefit = max(0.0, fmv - grant.issue_price) * shares
        appreciation = (price - fmv) * shares

        if gross_gain <= 0:
            return TaxResult.zero(discount_benefit=discount_benefit, notes=["Sale price is at or below purchase price"])

        held = eligibility.holding_period_met(grant.holding_anchor_date, as_of, self.rules.holding_period_months)
        state = EligibilityState.ELIGIBLE if held else EligibilityState.WAITING

        if not grant.uses_trustee:
            # Discount was already taxed through payroll at purchase
            taxable = max(0.0, appreciation)
            ordinary, capital_gain = (0.0, taxable) if held else (taxable, 0.0)
            logger.debug("ESPP %s without trustee: held=%s taxable=%.2f", grant.ticker, held, taxable)
            return self._result(
                gross_gain, ordinary, capital_gain, settings, mode, currency,
                preferential_track_applied=held,
                eligibility=state.value,
                discount_benefit=discount_benefit,
                discount_prepaid=True,
                notes=[PREPAID_DISCOUNT_NOTE],
            )

        if not self._capital_gains_track(grant, state):
            logger.debug("ESPP %s with trustee, full gain is ordinary income", grant.ticker)
            return self._result(
                gross_gain, gross_gain, 0.0, settings, mode, currency,
                eligibility=state.value,
                discount_benefit=discount_benefit,
            )

        # Discount is always salary; only appreciation gets the capital gains rate
        ordinary = min(discount_benefit, gross_gain)
        capital_gain = gross_gain - ordinary
        result = self._result(
            gross_gain, ordinary, capital_gain, settings, mode, currency,
            preferential_track_applied=True,
            eligibility=state.value,
            discount_benefit=discount_benefit,
        )

        withheld = (
            ordinary * self.rules.trustee_withholding_rate
            + capital_gain * self.rules.capital_gains_rate_for(settings)
        )
        estimate = TrusteeEstimate(withheld=withheld, actually_owed=result.total_tax, note=TRUSTEE_NOTE)
        logger.debug(
            "ESPP %s trustee estimate: withheld=%.2f owed=%.2f",
            grant.ticker, estimate.withheld, estimate.actually_owed,
        )
        breakdown = replace(
            result.breakdown,
            trustee_estimate=estimate,
            notes=list(result.breakdown.notes) + [TRUSTEE_NOTE],
        )
        return replace(result, breakdown=breakdown)

    @staticmethod
    def _capital_gains_track(grant: Grant, state: EligibilityState) -> bool:
        return state is EligibilityState.ELIGIBLE and grant.preferential_track is PreferentialTrack.CAPITAL_GAINS

    # ── Shared tax layers ──

    def _layered_taxes(self, ordinary_local: float, passive_local: float, mode: TaxMode) -> _LocalTaxes:
        """
        Income tax, social contribution and surtax on ordinary income, in ILS.

        A fixed rate is the holder's all-in marginal rate, so only the
        passive surtax is added on top of it.
        """
        rules = self.rules

        if isinstance(mode, FixedRate):
            surtax = rules.surtax.compute(ordinary_local, passive_local)
            return _LocalTaxes(
                income_tax=ordinary_local * mode.rate,
                surtax=SurtaxResult(passive_surtax=surtax.passive_surtax),
            )

        if isinstance(mode, AdditiveOnIncome):
            base = mode.base_income
            return _LocalTaxes(
                income_tax=rules.income_tax.tax_on_top(base, ordinary_local),
                social_contribution=rules.social_contribution.annual_on_top(base, ordinary_local).total_amount,
                surtax=rules.surtax.on_top(base, ordinary_local, passive_local),
            )

        return _LocalTaxes(
            income_tax=rules.income_tax.cumulative_tax(ordinary_local),
            social_contribution=rules.social_contribution.annual(ordinary_local).total_amount,
            surtax=rules.surtax.compute(ordinary_local, passive_local),
        )

    def _result(
        self,
        gross_gain: float,
        ordinary: float,
        capital_gain: float,
        settings: TaxSettings,
        mode: TaxMode,
        currency: CurrencyAdapter,
        **breakdown_fields,
    ) -> TaxResult:
        local = self._layered_taxes(currency.to_local(ordinary), currency.to_local(capital_gain), mode)
        labor_surtax = currency.to_original(local.surtax.labor_surtax)
        passive_surtax = currency.to_original(local.surtax.passive_surtax)

        breakdown = TaxBreakdown(
            ordinary_income_tax=currency.to_original(local.income_tax),
            social_contribution=currency.to_original(local.social_contribution),
            capital_gains_tax=capital_gain * self.rules.capital_gains_rate_for(settings),
            surtax=labor_surtax + passive_surtax,
            ordinary_income=ordinary,
            capital_gain=capital_gain,
            labor_surtax=labor_surtax,
            passive_surtax=passive_surtax,
            tax_mode=mode.label,
            **breakdown_fields,
        )
        return TaxResult.from_breakdown(gross_gain, breakdown)


# ─────────────────────────────────────────────
# Function-level contract
# ─────────────────────────────────────────────

def compute_tax(
    grant: Grant,
    shares: float,
    current_price: float,
    settings: Optional[TaxSettings] = None,
    exchange_rate: float = None,
    as_of: date = None,
    rules: Optional[TaxRules] = None,
) -> TaxResult:
    """Tax result for ``shares`` of ``grant`` sold at ``current_price`` (USD)."""
    return InstrumentTaxEngine(rules).compute(grant, shares, current_price, settings, exchange_rate, as_of)


def classify_eligibility(grant: Grant, as_of: date = None, rules: Optional[TaxRules] = None) -> EligibilityStatus:
    """Section 102 state and months remaining for ``grant``."""
    return InstrumentTaxEngine(rules).classify(grant, as_of)


def cumulative_income_tax(annual_income: float, year=None) -> float:
    """Income tax on ``annual_income`` (ILS) as the only income of the year."""
    return get_tax_rules(year).income_tax.cumulative_tax(annual_income)


def tax_on_top(base_income: float, additional_income: float, year=None) -> float:
    """Extra income tax (ILS) on ``additional_income`` over ``base_income``."""
    return get_tax_rules(year).income_tax.tax_on_top(base_income, additional_income)


def marginal_rate_at(income: float, year=None) -> float:
    return get_tax_rules(year).income_tax.marginal_rate_at(income)
