"""
Numeric and presentation helpers shared by the calculators and the templates.
"""
import math
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£"}


def round_currency(value: float, decimals: int = 2) -> float:
    """
    Rounds half away from zero at the given precision.
    Goes through repr() so 1.005 rounds to 1.01 as written, not as stored.
    """
    if not math.isfinite(value):
        raise ValueError(f"Cannot round non-finite amount {value!r}")
    quantum = Decimal(1).scaleb(-decimals)
    try:
        return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
    except InvalidOperation as e:
        raise ValueError(f"Amount {value!r} is too large to round") from e


def format_number(value: Optional[float], decimals: int = 2) -> str:
    """Formats a number with thousands grouping. Example: 1234.5 -> '1,234.50'."""
    if value is None:
        return "-"
    return f"{value:,.{decimals}f}"


def format_currency(value: Optional[float], currency: str = "EUR") -> str:
    """
    Formats a number as currency, sign before the symbol.
    Example: -1234.5 -> '-€1,234.50'
    """
    if value is None:
        return "-"
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_percent(value: Optional[float], decimals: int = 2) -> str:
    if value is None:
        return "-"
    return f"{value:.{decimals}f}%"


def format_date(dt: Optional[datetime]) -> str:
    """
    Formats a stored timestamp (UTC) for display.
    Format: DD/MM/YYYY at HH:mm UTC
    """
    if dt is None:
        return "-"
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%d/%m/%Y at %H:%M UTC")
