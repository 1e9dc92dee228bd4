"""Display formatting shared by the CLI and the exported reports."""

from __future__ import annotations

from decimal import Decimal

from babel.numbers import format_currency as _babel_currency
from babel.numbers import format_decimal

LOCALE = "es_ES"
CURRENCY = "EUR"

DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365


def format_currency(value) -> str:
    try:
        return _babel_currency(Decimal(str(value)), CURRENCY, locale=LOCALE)
    except Exception:
        return f"{float(value):,.2f} €"


def format_percentage(value) -> str:
    """``40.5`` → ``"40,50 %"``."""
    number = format_decimal(Decimal(str(value)), format="#,##0.00", locale=LOCALE)
    return f"{number} %"


def format_duration(days: int) -> str:
    """Human-readable holding period on a simplified calendar.

    Months are 30 days and years 365 days, so 40 → "1 meses y 10 días" and
    400 → "1 años y 1 meses".
    """
    if days < DAYS_PER_MONTH:
        return f"{days} días"
    if days < DAYS_PER_YEAR:
        months, rest = divmod(days, DAYS_PER_MONTH)
        text = f"{months} meses"
        if rest:
            text += f" y {rest} días"
        return text
    years, rest = divmod(days, DAYS_PER_YEAR)
    months = rest // DAYS_PER_MONTH
    text = f"{years} años"
    if months:
        text += f" y {months} meses"
    return text


def profit_tone(value) -> str:
    """``"profit"`` for a non-negative result, ``"loss"`` otherwise."""
    return "profit" if Decimal(str(value)) >= 0 else "loss"
