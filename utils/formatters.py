"""
Number, date, and currency formatting utilities.
"""

from datetime import date
from typing import Optional

CURRENCY_SYMBOLS = {"ILS": "₪", "USD": "$"}


def format_currency(amount: float, currency: str = "ILS", with_symbol: bool = True) -> str:
    """
    Format amount as currency.

    Args:
        amount: Amount to format
        currency: ISO code, "ILS" (₪) or "USD" ($)
        with_symbol: Include currency symbol

    Returns:
        Formatted string (e.g., "1,234.56", "₪1,234.56" or "-$12.00")
    """
    if not with_symbol:
        return f"{amount:,.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_date(value: Optional[date] = None) -> str:
    """Format date as YYYY-MM-DD (defaults to today)."""
    if value is None:
        value = date.today()
    return value.strftime("%Y-%m-%d")


def format_date_hebrew(value: Optional[date] = None) -> str:
    """Format date in Hebrew format (DD/MM/YYYY)."""
    if value is None:
        value = date.today()
    return value.strftime("%d/%m/%Y")


def format_percentage(value: float, decimals: int = 1) -> str:
    """Format as percentage."""
    return f"{value * 100:.{decimals}f}%"


def format_time_remaining(days_remaining: int) -> str:
    """
    Short countdown to Section 102 eligibility, e.g. "5m 12d" or "20d".

    Months are counted as 30 days.
    """
    months, days = divmod(max(0, days_remaining), 30)
    if months > 0:
        return f"{months}m {days}d"
    return f"{days}d"


def format_eligibility(status) -> str:
    """Status text for an EligibilityStatus: "Not 102", "Eligible" or the countdown."""
    if status.state.value == "not-applicable":
        return "Not 102"
    if status.state.value == "eligible":
        return "Eligible"
    return format_time_remaining(status.days_remaining)


def format_tax_result(result, currency: str = "USD") -> str:
    """
    Plain-text summary of a TaxResult.

    Only non-zero tax layers are listed.
    """
    b = result.breakdown
    lines = [
        f"Gross gain: {format_currency(result.gross_gain, currency)}",
        f"Total tax: {format_currency(result.total_tax, currency)} ({format_percentage(result.effective_rate)})",
        f"Net gain: {format_currency(result.net_gain, currency)}",
    ]

    layers = [
        ("Income tax", b.ordinary_income_tax),
        ("National Insurance", b.social_contribution),
        ("Capital gains tax", b.capital_gains_tax),
        ("Surtax", b.surtax),
    ]
    for name, amount in layers:
        if amount:
            lines.append(f"  {name}: {format_currency(amount, currency)}")

    if b.preferential_track_applied:
        lines.append("Section 102 capital gains track applied")
    if b.trustee_estimate is not None:
        estimate = b.trustee_estimate
        label = "Expected refund" if estimate.difference >= 0 else "Expected balance due"
        lines.append(
            f"Trustee withholds {format_currency(estimate.withheld, currency)}; "
            f"{label}: {format_currency(abs(estimate.difference), currency)}"
        )
    lines.extend(b.notes)
    return "\n".join(lines)
