"""Value normalization, rounding rules and record sealing."""

from __future__ import annotations

import hashlib
import json
from datetime import date, datetime
from decimal import (
    MAX_EMAX, MIN_EMIN, ROUND_HALF_EVEN, ROUND_HALF_UP,
    Context, Decimal, DivisionByZero, InvalidOperation, localcontext,
)
from typing import Any

from domain.exceptions import ValidationError


# ---------------------------------------------------------------------------
# Decimal contexts
# ---------------------------------------------------------------------------

# Trade arithmetic: 60 significant digits and the widest exponent range the
# decimal module allows, so products of any finite inputs never overflow.
ARITHMETIC_CONTEXT = Context(
    prec=60,
    rounding=ROUND_HALF_EVEN,
    Emax=MAX_EMAX,
    Emin=MIN_EMIN,
    traps=[InvalidOperation, DivisionByZero],
)

# Stored amounts must stay below MAX_AMOUNT; 40 digits covers 24 integer
# digits plus 8 decimals when quantizing.
MAX_AMOUNT = Decimal("1e24")
_STORAGE_CONTEXT = Context(prec=40, rounding=ROUND_HALF_UP)


def arithmetic_context():
    """``with arithmetic_context(): ...`` runs trade math in ARITHMETIC_CONTEXT."""
    return localcontext(ARITHMETIC_CONTEXT)


# ---------------------------------------------------------------------------
# Rounding helpers
# ---------------------------------------------------------------------------

ZERO = Decimal("0")
MONETARY_PRECISION = Decimal("0.01")        # 2 decimal places (display)
AMOUNT_PRECISION = Decimal("0.00000001")    # 8 decimal places (storage)


def _check_range(value: Decimal) -> None:
    if not value.is_finite() or value.copy_abs() >= MAX_AMOUNT:
        raise ValidationError(f"Importe fuera de rango: {value}")


def round_monetary(value: Decimal) -> Decimal:
    """Round a monetary value to 2 decimal places using ROUND_HALF_UP."""
    _check_range(value)
    return value.quantize(MONETARY_PRECISION, context=_STORAGE_CONTEXT)


def round_amount(value: Decimal) -> Decimal:
    """Round a stored amount (price, shares, rate, profit) to 8 places.

    Raises ValidationError when the value is not below MAX_AMOUNT.
    """
    _check_range(value)
    return value.quantize(AMOUNT_PRECISION, context=_STORAGE_CONTEXT)


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def to_decimal(value: Any) -> Decimal:
    """Safely convert a value to Decimal."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"Cannot convert {value!r} to Decimal") from exc


def to_amount(value: Any) -> Decimal:
    """Parse-or-zero: turn any client-supplied number into a finite Decimal.

    Missing values, empty or unparsable strings, booleans and non-finite
    numbers (NaN, Infinity) all become ``Decimal("0")``.  This is the single
    place where lenient input is accepted; everything downstream works on
    finite Decimals only.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return ZERO
    try:
        result = to_decimal(value)
    except ValueError:
        return ZERO
    if not result.is_finite():
        return ZERO
    return result


def parse_calendar_date(value: Any, field_name: str = "date") -> date:
    """Return the calendar date of *value*, dropping any time of day.

    Accepts ``date``/``datetime`` objects and ISO strings such as
    ``2025-03-10`` or ``2025-03-10T14:30:00Z``.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"Falta la fecha ({field_name})")
    if not isinstance(value, str):
        raise ValidationError(f"Fecha inválida ({field_name}): {value!r}")
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError as exc:
        raise ValidationError(
            f"Fecha inválida ({field_name}): {value!r}"
        ) from exc


# ---------------------------------------------------------------------------
# Consistency Hash
# ---------------------------------------------------------------------------

def compute_consistency_hash(data: dict) -> str:
    """Compute SHA-256 of a canonical JSON representation.

    Keys are sorted and Decimals are normalized before being serialized as
    strings, so ``Decimal("405")`` and ``Decimal("405.00000000")`` (as read
    back from the database) hash identically.
    """
    def _default(obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return format(obj.normalize(), "f")
        if hasattr(obj, "value"):  # Enum
            return obj.value
        if hasattr(obj, "isoformat"):  # date/datetime
            return obj.isoformat()
        raise TypeError(f"Cannot serialize {type(obj)}")

    canonical = json.dumps(data, sort_keys=True, default=_default)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
