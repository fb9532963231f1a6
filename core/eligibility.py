"""
Section 102 holding-period eligibility.

A grant on the preferential track must be held for a fixed number of whole
months (24) after issuance before its gain can be taxed on the capital
gains track. Eligibility is a pure function of the grant and the as-of date.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

import config
from core.models import Grant

HOLDING_PERIOD_MONTHS = 24


class EligibilityState(str, Enum):
    NOT_APPLICABLE = "not-applicable"
    WAITING = "waiting"
    ELIGIBLE = "eligible"


@dataclass(frozen=True)
class EligibilityStatus:
    state: EligibilityState
    months_remaining: int
    days_remaining: int
    eligibility_date: Optional[date]


def _as_date(value: Union[date, datetime, None]) -> date:
    if value is None:
        return config.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def months_between(start: Union[date, datetime], end: Union[date, datetime]) -> int:
    """
    Whole calendar months from ``start`` to ``end``.

    Both sides are reduced to dates first, so the time of day never shifts
    the anniversary.
    """
    delta = relativedelta(_as_date(end), _as_date(start))
    return delta.years * 12 + delta.months


def holding_period_met(start: date, as_of: date = None, months: int = HOLDING_PERIOD_MONTHS) -> bool:
    return months_between(start, _as_date(as_of)) >= months


def classify(grant: Grant, as_of: date = None, months: int = HOLDING_PERIOD_MONTHS) -> EligibilityState:
    if not grant.preferential_track_enabled:
        return EligibilityState.NOT_APPLICABLE
    if holding_period_met(grant.holding_anchor_date, as_of, months):
        return EligibilityState.ELIGIBLE
    return EligibilityState.WAITING


def eligibility_date(grant: Grant, months: int = HOLDING_PERIOD_MONTHS) -> date:
    """First date on which the holding period is met."""
    return _as_date(grant.holding_anchor_date) + relativedelta(months=months)


def months_remaining(grant: Grant, as_of: date = None, months: int = HOLDING_PERIOD_MONTHS) -> int:
    if classify(grant, as_of, months) is not EligibilityState.WAITING:
        return 0
    return max(0, months - months_between(grant.holding_anchor_date, _as_date(as_of)))


def days_remaining(grant: Grant, as_of: date = None, months: int = HOLDING_PERIOD_MONTHS) -> int:
    if classify(grant, as_of, months) is not EligibilityState.WAITING:
        return 0
    return max(0, (eligibility_date(grant, months) - _as_date(as_of)).days)


def status(grant: Grant, as_of: date = None, months: int = HOLDING_PERIOD_MONTHS) -> EligibilityStatus:
    as_of = _as_date(as_of)
    state = classify(grant, as_of, months)
    return EligibilityStatus(
        state=state,
        months_remaining=months_remaining(grant, as_of, months),
        days_remaining=days_remaining(grant, as_of, months),
        eligibility_date=None if state is EligibilityState.NOT_APPLICABLE else eligibility_date(grant, months),
    )
