"""Profit / tax arithmetic for a single buy-sell trade.

Rules:
- gross profit = (sell price − buy price) × shares, may be negative.
- tax is applied only to a positive gross profit; losses are never taxed.
- net profit = gross profit − tax.

All inputs go through ``to_amount`` first, so missing or garbage values count
as zero instead of being rejected.
"""

from __future__ import annotations

from datetime import date as _date
from decimal import Decimal
from typing import Any, Optional

from domain.entities import Calculation, CalculationData, ProfitMetrics
from domain.exceptions import ValidationError
from domain.value_objects import arithmetic_context, to_amount

ZERO = Decimal("0")
HUNDRED = Decimal("100")

CALCULATION_DATE_FORMAT = "%d/%m/%Y"


def compute_metrics(
    buy_price: Any,
    sell_price: Any,
    shares: Any,
    tax_rate: Any,
) -> ProfitMetrics:
    buy = to_amount(buy_price)
    sell = to_amount(sell_price)
    qty = to_amount(shares)
    rate = to_amount(tax_rate)

    with arithmetic_context():
        gross = (sell - buy) * qty
        tax = gross * (rate / HUNDRED) if gross > ZERO else ZERO
        net = gross - tax
    return ProfitMetrics(gross_profit=gross, tax_amount=tax, net_profit=net)


def compute_totals(
    buy_price: Any, sell_price: Any, shares: Any
) -> tuple[Decimal, Decimal]:
    """Return (total purchase value, total sale value)."""
    qty = to_amount(shares)
    with arithmetic_context():
        return to_amount(buy_price) * qty, to_amount(sell_price) * qty


def today_label(today: Optional[_date] = None) -> str:
    """Date label stored on a calculation, e.g. ``19/10/2026``."""
    return (today or _date.today()).strftime(CALCULATION_DATE_FORMAT)


def build_calculation(
    name: Optional[str],
    date: Optional[str],
    buy_price: Any,
    sell_price: Any,
    shares: Any,
    tax_rate: Any,
) -> Calculation:
    """Validate inputs and return a sealed, unsaved Calculation.

    ``net_profit`` is always recomputed here; a value coming from the client
    is never trusted.
    """
    buy = to_amount(buy_price)
    sell = to_amount(sell_price)
    qty = to_amount(shares)
    rate = to_amount(tax_rate)

    if buy == ZERO and sell == ZERO and qty == ZERO:
        raise ValidationError("Introduce datos antes de guardar")
    if name is None or not str(name).strip():
        raise ValidationError("El nombre del cálculo es obligatorio")
    if date is None or not str(date).strip():
        raise ValidationError("La fecha del cálculo es obligatoria")

    metrics = compute_metrics(buy, sell, qty, rate)
    calc = Calculation(
        name=str(name).strip(),
        date=str(date).strip(),
        data=CalculationData(
            buy_price=buy,
            sell_price=sell,
            shares=qty,
            tax_rate=rate,
            net_profit=metrics.net_profit,
        ),
    )
    calc.seal()
    return calc
