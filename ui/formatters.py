"""
Display formatting for planner metrics.
"""

from typing import Optional

MISSING = "—"


def fmt_int(n: Optional[float]) -> str:
    """Whole number with thousands separators: 1234567 -> '1,234,567'."""
    if n is None:
        return MISSING
    return f"{int(round(n)):,}"


def fmt2(n: Optional[float]) -> str:
    """Two decimal places."""
    if n is None:
        return MISSING
    return f"{n:.2f}"


def fmt_currency(n: Optional[float]) -> str:
    """US dollars without cents: 1500000 -> '$1,500,000'."""
    if n is None:
        return MISSING
    amount = int(round(n))
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,}"


def fmt_percent(n: Optional[float], decimals: int = 1) -> str:
    """Percentage value with a trailing % sign."""
    if n is None:
        return MISSING
    return f"{n:.{decimals}f}%"
