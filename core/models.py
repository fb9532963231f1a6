"""
Value objects passed into and returned from the tax engine.

Grants are a tagged union (RSUGrant | OptionGrant | ESPPGrant) so that the
ESPP-only fields exist only on ESPP grants. The tax mode is derived once
from TaxSettings instead of being re-interpreted at every call site.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from core.errors import InvalidGrantError
from utils import validators

logger = logging.getLogger(__name__)

DEFAULT_MARGINAL_RATE = 0.47
DEFAULT_ESPP_DISCOUNT = 0.15


class InstrumentType(str, Enum):
    RSU = "RSUs"
    OPTION = "Options"
    ESPP = "ESPP"


class PreferentialTrack(str, Enum):
    """Section 102 track chosen for the grant."""
    CAPITAL_GAINS = "capital-gains"
    ORDINARY_INCOME = "ordinary-income"


# ─────────────────────────────────────────────
# Grants
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class _GrantBase:
    share_count: float
    issue_price: float
    issue_date: date
    vesting_start_date: date
    vesting_years: float
    ticker: str
    preferential_track_enabled: bool = True
    preferential_track: PreferentialTrack = PreferentialTrack.CAPITAL_GAINS
    grant_id: str = ""

    instrument_type = None  # set by each subclass

    @property
    def holding_anchor_date(self) -> date:
        """Date the Section 102 holding period counts from."""
        return self.issue_date


@dataclass(frozen=True)
class RSUGrant(_GrantBase):
    instrument_type = InstrumentType.RSU


@dataclass(frozen=True)
class OptionGrant(_GrantBase):
    instrument_type = InstrumentType.OPTION


@dataclass(frozen=True)
class ESPPGrant(_GrantBase):
    """
    ESPP shares. ``issue_price`` is the discounted purchase price actually paid.

    ``period_start_price`` is the offering-period start price used by
    lookback plans; when known, the fair market value at purchase is the
    lower of it and the price reconstructed from the discount.
    """
    discount_rate: float = DEFAULT_ESPP_DISCOUNT
    purchase_date: Optional[date] = None
    uses_trustee: bool = False
    period_start_price: Optional[float] = None

    instrument_type = InstrumentType.ESPP

    @property
    def holding_anchor_date(self) -> date:
        return self.purchase_date or self.issue_date

    @property
    def effective_discount_rate(self) -> float:
        if not 0 <= self.discount_rate < 1:
            logger.warning(
                "ESPP discount %s for %s is outside [0, 1); using %s",
                self.discount_rate, self.ticker, DEFAULT_ESPP_DISCOUNT,
            )
            return DEFAULT_ESPP_DISCOUNT
        return self.discount_rate

    @property
    def fair_market_value_at_purchase(self) -> float:
        """Pre-discount price per share at purchase."""
        fmv = self.issue_price / (1 - self.effective_discount_rate)
        if self.period_start_price:
            fmv = min(fmv, self.period_start_price)
        return fmv


Grant = Union[RSUGrant, OptionGrant, ESPPGrant]

_GRANT_CLASSES = {
    InstrumentType.RSU: RSUGrant,
    InstrumentType.OPTION: OptionGrant,
    InstrumentType.ESPP: ESPPGrant,
}


def _to_date(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return validators.parse_date(str(value))
    except ValueError as e:
        raise InvalidGrantError(f"Invalid {field_name}: {value!r}") from e


def grant_from_dict(data: Dict[str, Any]) -> Grant:
    """
    Build a typed grant from caller data (e.g. a stored grant record).

    Raises:
        InvalidGrantError: unknown type, missing field or bad value
    """
    is_valid, error = validators.validate_grant_data(data)
    if not is_valid:
        raise InvalidGrantError(error)

    instrument_type = InstrumentType(data["type"])
    issue_date = _to_date(data["grant_date"], "grant_date")

    kwargs = {
        "share_count": float(data["amount"]),
        "issue_price": float(data["price"]),
        "issue_date": issue_date,
        "vesting_start_date": _to_date(data.get("vesting_from") or issue_date, "vesting_from"),
        "vesting_years": float(data.get("vesting_years", 0) or 0),
        "ticker": str(data["ticker"]).upper(),
        "preferential_track_enabled": data.get("is_section_102") is not False,
        "preferential_track": PreferentialTrack(data.get("section_102_track") or PreferentialTrack.CAPITAL_GAINS.value),
        "grant_id": str(data.get("id", "")),
    }

    if instrument_type is InstrumentType.ESPP:
        purchase_date = data.get("purchase_date")
        kwargs.update(
            discount_rate=float(DEFAULT_ESPP_DISCOUNT if data.get("espp_discount") is None else data["espp_discount"]),
            purchase_date=_to_date(purchase_date, "purchase_date") if purchase_date else None,
            uses_trustee=bool(data.get("espp_with_trustee", False)),
            period_start_price=float(data["espp_period_start_price"]) if data.get("espp_period_start_price") else None,
        )

    return _GRANT_CLASSES[instrument_type](**kwargs)


# ─────────────────────────────────────────────
# Settings and tax mode
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class FixedRate:
    """Holder's all-in marginal rate applied flat to ordinary income."""
    rate: float

    label = "fixed_rate"


@dataclass(frozen=True)
class AdditiveOnIncome:
    """Progressive tax on top of an existing annual income (ILS)."""
    base_income: float

    label = "additive_on_income"


@dataclass(frozen=True)
class Simplified:
    """Progressive tax treating the gain as the only income of the year."""

    label = "simplified_progressive"


TaxMode = Union[FixedRate, AdditiveOnIncome, Simplified]


@dataclass(frozen=True)
class TaxSettings:
    marginal_rate: Optional[float] = None
    annual_income: Optional[float] = None
    use_progressive: bool = False
    is_controlling_shareholder: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaxSettings":
        return cls(
            marginal_rate=data.get("marginal_tax_rate"),
            annual_income=data.get("annual_income"),
            use_progressive=bool(data.get("use_progressive_tax", False)),
            is_controlling_shareholder=bool(data.get("is_controlling_shareholder", False)),
        )

    def tax_mode(self, default_rate: float = DEFAULT_MARGINAL_RATE) -> TaxMode:
        """
        Resolve the single active tax mode.

        Progressive settings win over a fixed rate; with neither, the
        conservative ``default_rate`` is used.
        """
        annual_income = self.annual_income
        if annual_income is not None and annual_income < 0:
            logger.warning("Negative annual income %s ignored", annual_income)
            annual_income = None

        if self.use_progressive:
            if annual_income:
                return AdditiveOnIncome(base_income=float(annual_income))
            return Simplified()

        if self.marginal_rate is not None:
            rate = float(self.marginal_rate)
            if not 0 <= rate <= 1:
                clamped = min(1.0, max(0.0, rate))
                logger.warning("Marginal rate %s clamped to %s", rate, clamped)
                rate = clamped
            return FixedRate(rate=rate)

        logger.debug("No marginal rate or progressive settings; using %s", default_rate)
        return FixedRate(rate=default_rate)


# ─────────────────────────────────────────────
# Exercises
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class Exercise:
    grant_id: str
    shares: float
    exercise_date: date
    is_simulation: bool = False
    include_in_calculations: bool = False

    @property
    def counts(self) -> bool:
        """Real exercises always count; simulated ones only when included."""
        return not self.is_simulation or self.include_in_calculations


# ─────────────────────────────────────────────
# Results
# ─────────────────────────────────────────────

@dataclass(frozen=True)
class TrusteeEstimate:
    """
    What the trustee withholds versus what the holder actually owes.

    Informational only. A positive ``difference`` means the trustee withheld
    more than the real liability (expected refund); negative means a balance
    is still owed.
    """
    withheld: float
    actually_owed: float
    note: str = ""

    @property
    def difference(self) -> float:
        return self.withheld - self.actually_owed


@dataclass(frozen=True)
class TaxBreakdown:
    ordinary_income_tax: float = 0.0
    social_contribution: float = 0.0
    capital_gains_tax: float = 0.0
    surtax: float = 0.0
    preferential_track_applied: bool = False

    ordinary_income: float = 0.0
    capital_gain: float = 0.0
    labor_surtax: float = 0.0
    passive_surtax: float = 0.0
    tax_mode: str = ""
    eligibility: str = ""
    discount_benefit: float = 0.0
    discount_prepaid: bool = False
    trustee_estimate: Optional[TrusteeEstimate] = None
    notes: List[str] = field(default_factory=list)

    @property
    def total(self) -> float:
        return self.ordinary_income_tax + self.social_contribution + self.capital_gains_tax + self.surtax


@dataclass(frozen=True)
class TaxResult:
    gross_gain: float
    total_tax: float
    net_gain: float
    effective_rate: float
    breakdown: TaxBreakdown = field(default_factory=TaxBreakdown)

    @classmethod
    def zero(cls, **breakdown_fields) -> "TaxResult":
        return cls(0.0, 0.0, 0.0, 0.0, TaxBreakdown(**breakdown_fields))

    @classmethod
    def from_breakdown(cls, gross_gain: float, breakdown: TaxBreakdown) -> "TaxResult":
        total_tax = breakdown.total
        return cls(
            gross_gain=gross_gain,
            total_tax=total_tax,
            net_gain=gross_gain - total_tax,
            effective_rate=total_tax / gross_gain if gross_gain > 0 else 0.0,
            breakdown=breakdown,
        )
