"""
Locale-aware amount parsing.

Model output mixes US ("1,234.56") and European ("1.234,56") conventions,
currency symbols and codes. ``parse_amount`` reduces all of them to a float
and never raises: anything unparseable becomes the caller's default.
"""

import math
import re
from loguru import logger

CURRENCY_SYMBOLS = "$€£¥"
CURRENCY_CODES = ("USD", "EUR", "GBP", "AUD", "CAD", "CHF", "JPY", "CNY")

_STRIP_SYMBOLS = re.compile(f"[{re.escape(CURRENCY_SYMBOLS)}\\s]+")
_STRIP_CODES = re.compile(r"(?<![A-Za-z])(?:" + "|".join(CURRENCY_CODES) + r")(?![A-Za-z])", re.IGNORECASE)


def _canonical_number_text(text: str) -> str:
    """Rewrite separators so the decimal separator is a period and thousands separators are gone"""
    has_comma = "," in text
    has_period = "." in text

    if has_comma and not has_period:
        # Repeated commas can only be thousands grouping
        if text.count(",") > 1:
            return text.replace(",", "")
        return text.replace(",", ".")

    if has_period and not has_comma and text.count(".") > 1:
        return text.replace(".", "")

    if has_comma and has_period:
        # Whichever separator occurs last is the decimal separator
        if text.rfind(",") > text.rfind("."):
            return text.replace(".", "").replace(",", ".")
        return text.replace(",", "")

    return text


def parse_amount(value, default: float = 0.0) -> float:
    """
    Parse a numeric value that may be a locale-formatted string.

    Args:
        value: Number or string such as "1.234,56 €" or "$1,234.56"
        default: Returned when the value cannot be parsed

    Returns:
        The parsed amount, or ``default``
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value
    if value is None:
        return default

    text = _STRIP_SYMBOLS.sub("", _STRIP_CODES.sub("", str(value)))
    if not text:
        return default

    try:
        amount = float(_canonical_number_text(text))
    except ValueError:
        logger.debug("Unparseable amount, using default", raw=str(value), default=default)
        return default

    if math.isnan(amount) or math.isinf(amount):
        return default
    return amount
