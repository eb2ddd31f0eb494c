"""
Shared currency and date formatting.

Transactional emails and in-app displays must render amounts identically, so
every template and subject line goes through these helpers.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, Union

CURRENCY_SYMBOLS: Dict[str, str] = {
    "NGN": "₦",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}

DEFAULT_CURRENCY = "NGN"

Number = Union[int, float, Decimal]


def get_currency_symbol(currency: str = DEFAULT_CURRENCY) -> str:
    """Return the display symbol for a currency code, or the code itself."""
    return CURRENCY_SYMBOLS.get((currency or DEFAULT_CURRENCY).upper(), currency)


def format_currency(amount: Number, currency: str = DEFAULT_CURRENCY) -> str:
    """
    Format an amount as ``<symbol><amount>`` with thousands separators and
    between zero and two fraction digits, e.g. ``₦1,234.5``.
    """
    code = (currency or DEFAULT_CURRENCY).upper()
    value = Decimal(str(amount))
    sign = "-" if value < 0 else ""
    digits = f"{abs(value):,.2f}".rstrip("0").rstrip(".")

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{sign}{code} {digits}"
    return f"{sign}{symbol}{digits}"


def format_datetime(value: Union[datetime, str, None]) -> str:
    """Render a datetime (or ISO-8601 string) as ``Jan 5, 2026, 02:30 PM``."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return f"{value:%b} {value.day}, {value:%Y, %I:%M %p}"
