"""Currency and date formatting shared by every receipt layout"""

from datetime import date, datetime, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from pressing_gateway.domain.exceptions import UnsupportedCurrencyError

# fr-FR separators
GROUP_SEPARATOR = "\u202f"  # Narrow no-break space
SYMBOL_SEPARATOR = "\u00a0"  # No-break space
DECIMAL_SEPARATOR = ","

# ISO code -> (symbol, ISO 4217 minor unit exponent)
CURRENCIES = {
    "XAF": ("FCFA", 0),
    "XOF": ("F\u202fCFA", 0),
    "EUR": ("€", 2),
    "USD": ("$US", 2),
    "GBP": ("£GB", 2),
    "MAD": ("MAD", 2),
    "NGN": ("NGN", 2),
    "GHS": ("GHS", 2),
    "JPY": ("JPY", 0),
    "KRW": ("KRW", 0),
    "KWD": ("KWD", 3),
    "TND": ("TND", 3),
}


def is_supported_currency(currency_code: Optional[str]) -> bool:
    return bool(currency_code) and currency_code.upper() in CURRENCIES


def group_thousands(n: int) -> str:
    """1234567 -> "1 234 567" with fr-FR narrow spaces"""
    return f"{n:,d}".replace(",", GROUP_SEPARATOR)


def format_currency(amount_cents: int, currency_code: str = "XAF") -> str:
    """
    Format integer minor units the way fr-FR Intl.NumberFormat does.

    Examples:
        format_currency(38000, "XAF") → "38 000 FCFA"
        format_currency(123456, "EUR") → "1 234,56 €"

    Raises:
        UnsupportedCurrencyError: for codes outside CURRENCIES, whose
            exponent would otherwise be guessed
    """
    if not is_supported_currency(currency_code):
        raise UnsupportedCurrencyError(currency_code)
    symbol, exponent = CURRENCIES[currency_code.upper()]

    sign = "-" if amount_cents < 0 else ""
    units, minor = divmod(abs(amount_cents), 10**exponent)

    number = group_thousands(units)
    if exponent:
        number += DECIMAL_SEPARATOR + str(minor).zfill(exponent)

    return f"{sign}{number}{SYMBOL_SEPARATOR}{symbol}"


def format_date(value: Optional[Union[date, datetime]]) -> str:
    """dd/mm/yyyy"""
    if value is None:
        return "N/A"
    return value.strftime("%d/%m/%Y")


def format_datetime(value: Optional[datetime], tz_name: Optional[str] = None) -> str:
    """
    dd/mm/yyyy HH:MM, shown in tz_name when given.

    Naive values are stored timestamps and are read as UTC.
    """
    if value is None:
        return "N/A"
    if tz_name:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(ZoneInfo(tz_name))
    return value.strftime("%d/%m/%Y %H:%M")
