"""
Input validation utilities.
"""

from datetime import date, datetime
import re

GRANT_TYPES = ("RSUs", "Options", "ESPP")
SECTION_102_TRACKS = ("capital-gains", "ordinary-income")


def is_valid_amount(amount: str) -> bool:
    """Check if amount string is valid."""
    try:
        parse_amount(amount)
        return True
    except ValueError:
        return False


def parse_amount(amount_str: str) -> float:
    """Parse amount string to float."""
    # Remove currency symbols and whitespace
    cleaned = re.sub(r"[₪$,\s]", "", str(amount_str))
    return float(cleaned)


def is_valid_rate(rate) -> bool:
    """Check if a tax or discount rate is a fraction in [0, 1]."""
    try:
        return 0 <= float(rate) <= 1
    except (ValueError, TypeError):
        return False


def parse_date(value: str) -> date:
    """
    Parse a date string.

    Accepts ISO dates (2024-03-15, optionally with a time part) and the
    DD/MM/YYYY form used on Israeli documents.
    """
    value = value.strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            pass
    return datetime.fromisoformat(value).date()


def validate_grant_data(data: dict) -> tuple[bool, str]:
    """
    Validate a grant record before it is turned into a typed grant.

    Returns:
        (is_valid, error_message)
    """
    required_fields = ["type", "amount", "price", "grant_date", "ticker"]

    for field in required_fields:
        if data.get(field) in (None, ""):
            return False, f"Missing required field: {field}"

    if data["type"] not in GRANT_TYPES:
        return False, f"Unknown grant type: {data['type']}"

    for field in ("amount", "price"):
        try:
            if float(data[field]) < 0:
                return False, f"{field.capitalize()} cannot be negative"
        except (ValueError, TypeError):
            return False, f"Invalid {field} format"

    if not str(data["ticker"]).strip():
        return False, "Ticker cannot be empty"

    track = data.get("section_102_track")
    if track and track not in SECTION_102_TRACKS:
        return False, f"Unknown Section 102 track: {track}"

    if data["type"] == "ESPP":
        discount = data.get("espp_discount")
        if discount is not None and (not is_valid_rate(discount) or float(discount) == 1):
            return False, "ESPP discount must be at least 0 and below 1"
        start_price = data.get("espp_period_start_price")
        if start_price:
            try:
                float(start_price)
            except (ValueError, TypeError):
                return False, "Invalid espp_period_start_price format"

    try:
        float(data.get("vesting_years", 0) or 0)
    except (ValueError, TypeError):
        return False, "Invalid vesting_years format"

    return True, ""
