"""
Configuration management and default tax rules.

Tax rules are plain data keyed by tax year so that a new year's brackets can
be added (or loaded from a JSON file) without touching the calculation code.
Scalar defaults can be overridden from the environment / .env file.
"""

import copy
import json
import os
from datetime import date, datetime

import pytz
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def get_env_value(key: str, default=None, type_func=str):
    """Get environment variable with type conversion and default."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return type_func(value)
    except (ValueError, TypeError):
        return default


TAX_YEAR = get_env_value("TAX_YEAR", 2025, int)
TIMEZONE = get_env_value("TIMEZONE", "Asia/Jerusalem")
TAX_RULES_FILE = get_env_value("TAX_RULES_FILE")

# Used only when the caller passes an unusable exchange rate
DEFAULT_USD_ILS_RATE = get_env_value("DEFAULT_USD_ILS_RATE", 3.65, float)

# Shared by every year unless a year's rules say otherwise
_COMMON_RULES = {
    "national_insurance": {
        "monthly_thresholds": {
            "low": get_env_value("NI_MONTHLY_THRESHOLD_LOW", 7522, float),  # ₪7,522
            "high": get_env_value("NI_MONTHLY_THRESHOLD_HIGH", 50695, float),  # ₪50,695
        },
        "rates": {
            "ni_low": get_env_value("NI_RATE_LOW", 0.0104, float),  # 1.04%
            "health_low": get_env_value("HEALTH_RATE_LOW", 0.0323, float),  # 3.23%
            "ni_high": get_env_value("NI_RATE_HIGH", 0.07, float),  # 7%
            "health_high": get_env_value("HEALTH_RATE_HIGH", 0.0516, float),  # 5.16%
        },
    },
    "surtax": {
        "threshold": get_env_value("SURTAX_THRESHOLD", 721560, float),
        "labor_rate": get_env_value("SURTAX_LABOR_RATE", 0.03, float),  # 3%
        "passive_rate": get_env_value("SURTAX_PASSIVE_RATE", 0.05, float),  # 3% + 2% on capital income
    },
    "capital_gains": {
        "rate": get_env_value("CAPITAL_GAINS_RATE", 0.25, float),
        "controlling_shareholder_rate": get_env_value("CAPITAL_GAINS_CONTROLLING_RATE", 0.30, float),
    },
    "section_102": {
        "holding_period_months": get_env_value("SECTION_102_HOLDING_MONTHS", 24, int),
        "trustee_withholding_rate": get_env_value("TRUSTEE_WITHHOLDING_RATE", 0.62, float),  # maximum rate
    },
    "defaults": {
        "marginal_rate": get_env_value("DEFAULT_MARGINAL_RATE", 0.47, float),
    },
}

DEFAULT_TAX_RULES = {
    "2024": {
        **copy.deepcopy(_COMMON_RULES),
        "income_tax": {
            "brackets": [
                {"min": 0, "max": 79560, "rate": 0.10},
                {"min": 79560, "max": 114120, "rate": 0.14},
                {"min": 114120, "max": 177360, "rate": 0.20},
                {"min": 177360, "max": 247440, "rate": 0.31},
                {"min": 247440, "max": 514920, "rate": 0.35},
                {"min": 514920, "max": None, "rate": 0.47},
            ],
        },
    },
    "2025": {
        **copy.deepcopy(_COMMON_RULES),
        "income_tax": {
            "brackets": [
                {"min": 0, "max": 84120, "rate": 0.10},
                {"min": 84120, "max": 120720, "rate": 0.14},
                {"min": 120720, "max": 193800, "rate": 0.20},
                {"min": 193800, "max": 269280, "rate": 0.31},
                {"min": 269280, "max": 560280, "rate": 0.35},
                {"min": 560280, "max": None, "rate": 0.47},  # surtax is separate
            ],
        },
    },
}


def load_tax_rules(filepath=None):
    """
    Load tax rules keyed by year.

    Uses ``filepath`` (or ``TAX_RULES_FILE``) when it exists; years missing
    from the file fall back to the built-in defaults.
    """
    rules = copy.deepcopy(DEFAULT_TAX_RULES)
    filepath = filepath or TAX_RULES_FILE
    if filepath and os.path.exists(filepath):
        with open(filepath, "r", encoding="utf-8") as f:
            rules.update(json.load(f))
    return rules


def save_tax_rules(rules, filepath):
    """Save tax rules to a JSON file."""
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(rules, f, indent=2, ensure_ascii=False)


def get_year_rules(year=None, filepath=None):
    """Rules for one tax year (defaults to ``TAX_YEAR``)."""
    year = str(year or TAX_YEAR)
    rules = load_tax_rules(filepath)
    if year not in rules:
        raise KeyError(f"No tax rules for {year}. Available: {sorted(rules)}")
    return rules[year]


def get_tz():
    """Get timezone object."""
    return pytz.timezone(TIMEZONE)


def today() -> date:
    """Current date in the configured timezone."""
    return datetime.now(get_tz()).date()
