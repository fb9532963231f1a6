"""
USD <-> ILS conversion with a caller-supplied rate.

Bracket tables are in shekels, grant prices in dollars.
"""

import logging

import config

logger = logging.getLogger(__name__)


class CurrencyAdapter:
    def __init__(self, usd_to_local: float, fallback_rate: float = None):
        fallback_rate = fallback_rate or config.DEFAULT_USD_ILS_RATE
        if not usd_to_local or usd_to_local <= 0:
            logger.warning("Unusable exchange rate %r; using %s", usd_to_local, fallback_rate)
            usd_to_local = fallback_rate
        self.rate = float(usd_to_local)

    def to_local(self, amount: float) -> float:
        return amount * self.rate

    def to_original(self, amount: float) -> float:
        return amount / self.rate
