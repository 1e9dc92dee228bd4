"""Application use cases: orchestration of domain and infrastructure."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Optional

from domain.entities import Calculation, Operation
from domain.enums import OperationStatus
from domain.value_objects import arithmetic_context, round_monetary
from application.calculation_engine import build_calculation, today_label
from application.operation_lifecycle import OperationLifecycle
from infrastructure.repositories import (
    CalculationRepository,
    OperationRepository,
)

log = logging.getLogger(__name__)

ZERO = Decimal("0")


# ═══════════════════════════════════════════════════════════════════════════
# Calculations
# ═══════════════════════════════════════════════════════════════════════════

class SaveCalculationUseCase:
    """Recomputes net profit from the raw inputs and stores the snapshot."""

    def execute(
        self,
        session,
        name: Optional[str],
        data: Mapping[str, Any],
        date: Optional[str] = None,
    ) -> int:
        """*data* uses the wire keys: buyPrice, sellPrice, shares, taxRate.

        Any ``netProfit`` in *data* is ignored.  Returns the new id.
        """
        calc = build_calculation(
            name,
            date or today_label(),
            data.get("buyPrice"),
            data.get("sellPrice"),
            data.get("shares"),
            data.get("taxRate"),
        )
        calc_id = CalculationRepository.insert(session, calc)
        log.info(
            "Saved calculation %d '%s' (net profit %s)",
            calc_id, calc.name, calc.data.net_profit,
        )
        return calc_id


class LoadCalculationUseCase:
    """Fetch one saved calculation, warning when it no longer matches its seal."""

    def execute(self, session, calc_id: int) -> Calculation:
        calc = CalculationRepository.get_by_id(session, calc_id)
        if not calc.verify():
            log.warning("Calculation %d does not match its consistency hash", calc_id)
        return calc


class DeleteCalculationUseCase:

    def execute(self, session, calc_id: int) -> None:
        CalculationRepository.delete(session, calc_id)
        log.info("Deleted calculation %d", calc_id)


# ═══════════════════════════════════════════════════════════════════════════
# Operations
# ═══════════════════════════════════════════════════════════════════════════

class OpenOperationUseCase:

    def __init__(self, lifecycle: OperationLifecycle | None = None) -> None:
        self._lifecycle = lifecycle or OperationLifecycle()

    def execute(
        self,
        session,
        name: Any,
        purchase_date: Any,
        buy_price: Any,
        shares: Any,
    ) -> int:
        op = self._lifecycle.open(name, purchase_date, buy_price, shares)
        return OperationRepository.insert(session, op)


class CloseOperationUseCase:
    """Loads an open operation, closes it and persists the frozen result."""

    def __init__(self, lifecycle: OperationLifecycle | None = None) -> None:
        self._lifecycle = lifecycle or OperationLifecycle()

    def execute(
        self,
        session,
        op_id: int,
        sell_date: Any,
        sell_price: Any,
        tax_rate: Any,
    ) -> Operation:
        op = OperationRepository.get_by_id(session, op_id)
        if not op.verify():
            log.warning("Operation %d does not match its consistency hash", op_id)
        self._lifecycle.close(op, sell_date, sell_price, tax_rate)
        OperationRepository.update_closed(session, op)
        return op


class DeleteOperationUseCase:

    def execute(self, session, op_id: int) -> None:
        OperationRepository.delete(session, op_id)
        log.info("Deleted operation %d", op_id)


# ═══════════════════════════════════════════════════════════════════════════
# PortfolioSummary
# ═══════════════════════════════════════════════════════════════════════════

class PortfolioSummaryUseCase:
    """Aggregate figures across the operation journal, rounded to cents."""

    def execute(self, session) -> dict:
        operations = OperationRepository.get_all(session)
        open_ops = [op for op in operations if op.status == OperationStatus.OPEN]
        closed_ops = [op for op in operations if op.status == OperationStatus.CLOSED]

        def _total(values) -> Decimal:
            with arithmetic_context():
                total = sum(values, ZERO)
            return round_monetary(total)

        return {
            "open": len(open_ops),
            "closed": len(closed_ops),
            "invested": _total(op.total_cost for op in open_ops),
            "realized_gross": _total(op.gross_profit for op in closed_ops),
            "realized_tax": _total(op.tax_amount for op in closed_ops),
            "realized_net": _total(op.net_profit for op in closed_ops),
        }
