"""OperationLifecycle: open a trade with its purchase side, close it once.

States are ``open`` (initial) and ``closed`` (terminal).  There is no
reopen.  Closing computes every derived metric up front and only then
attaches them, so a failed close leaves the operation untouched.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from domain.entities import Operation
from domain.enums import OperationStatus
from domain.exceptions import InvalidStateError, ValidationError
from domain.value_objects import arithmetic_context, parse_calendar_date, to_amount
from application.calculation_engine import compute_metrics

log = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def profit_percentage(net_profit: Decimal, total_cost: Decimal) -> Decimal:
    """Net profit as a percentage of the cost basis.

    A zero cost basis has no meaningful return; it is reported as 0.
    """
    if total_cost == ZERO:
        log.warning("Zero cost basis, profit percentage reported as 0")
        return ZERO
    with arithmetic_context():
        return net_profit / total_cost * HUNDRED


def duration_days(purchase_date: date, sell_date: date) -> int:
    """Whole calendar days between purchase and sale (may be negative)."""
    return (sell_date - purchase_date).days


class OperationLifecycle:
    """Owns the open → closed transition of trade operations."""

    def open(
        self,
        name: Any,
        purchase_date: Any,
        buy_price: Any,
        shares: Any,
    ) -> Operation:
        if name is None or not str(name).strip():
            raise ValidationError("El nombre de la operación es obligatorio")
        bought_on = parse_calendar_date(purchase_date, "purchaseDate")

        price = to_amount(buy_price)
        qty = to_amount(shares)
        with arithmetic_context():
            total_cost = price * qty
        # Out-of-range amounts are rejected here with a ValidationError.
        op = Operation(
            name=str(name).strip(),
            purchase_date=bought_on,
            buy_price=price,
            shares=qty,
            total_cost=total_cost,
            status=OperationStatus.OPEN,
        )
        op.seal()
        log.info(
            "Opened operation '%s': %s shares @ %s on %s",
            op.name, qty, price, bought_on,
        )
        return op

    def close(
        self,
        operation: Operation,
        sell_date: Any,
        sell_price: Any,
        tax_rate: Any,
    ) -> Operation:
        """Close *operation* and return it with every derived field attached."""
        if operation.status != OperationStatus.OPEN:
            raise InvalidStateError(
                f"La operación '{operation.name}' ya está cerrada"
            )

        sold_on = parse_calendar_date(sell_date, "sellDate")
        price = to_amount(sell_price)
        if price == ZERO:
            # 0 means "not entered"; a genuine zero sale price cannot be recorded.
            raise ValidationError("El precio de venta es obligatorio")
        rate = to_amount(tax_rate)

        metrics = compute_metrics(
            operation.buy_price, price, operation.shares, rate
        )
        days = duration_days(operation.purchase_date, sold_on)
        if days < 0:
            log.warning(
                "Operation '%s' sold on %s, before its purchase date %s",
                operation.name, sold_on, operation.purchase_date,
            )

        operation.mark_closed(
            sell_date=sold_on,
            sell_price=price,
            tax_rate=rate,
            gross_profit=metrics.gross_profit,
            tax_amount=metrics.tax_amount,
            net_profit=metrics.net_profit,
            profit_percentage=profit_percentage(
                metrics.net_profit, operation.total_cost
            ),
            duration_days=days,
        )
        operation.seal()
        log.info(
            "Closed operation '%s': net profit %s after %d day(s)",
            operation.name, operation.net_profit, days,
        )
        return operation
