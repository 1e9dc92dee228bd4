"""Repositories: data access layer for calculations and operations."""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from domain.entities import (
    CLOSED_FIELDS, Calculation, CalculationData, Operation,
)
from domain.enums import OperationStatus
from domain.exceptions import InvalidStateError, RecordNotFoundError
from infrastructure.database import (
    AuditLogModel, CalculationModel, OperationModel,
)


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════

def _calc_model_to_entity(m: CalculationModel) -> Calculation:
    return Calculation(
        id=m.id,
        name=m.name,
        date=m.date,
        data=CalculationData(
            buy_price=m.buy_price,
            sell_price=m.sell_price,
            shares=m.shares,
            tax_rate=m.tax_rate,
            net_profit=m.net_profit,
        ),
        consistency_hash=m.consistency_hash,
        created_at=m.created_at,
    )


def _calc_entity_to_model(e: Calculation) -> CalculationModel:
    return CalculationModel(
        name=e.name,
        date=e.date,
        buy_price=e.data.buy_price,
        sell_price=e.data.sell_price,
        shares=e.data.shares,
        tax_rate=e.data.tax_rate,
        net_profit=e.data.net_profit,
        consistency_hash=e.consistency_hash,
        created_at=e.created_at or datetime.utcnow(),
    )


def _op_model_to_entity(m: OperationModel) -> Operation:
    return Operation(
        id=m.id,
        name=m.name,
        status=OperationStatus(m.status),
        purchase_date=m.purchase_date,
        buy_price=m.buy_price,
        shares=m.shares,
        total_cost=m.total_cost,
        sell_date=m.sell_date,
        sell_price=m.sell_price,
        tax_rate=m.tax_rate,
        gross_profit=m.gross_profit,
        tax_amount=m.tax_amount,
        net_profit=m.net_profit,
        profit_percentage=m.profit_percentage,
        duration_days=m.duration_days,
        consistency_hash=m.consistency_hash,
        created_at=m.created_at,
        closed_at=m.closed_at,
    )


def _op_entity_to_model(e: Operation) -> OperationModel:
    model = OperationModel(
        name=e.name,
        status=e.status.value,
        purchase_date=e.purchase_date,
        buy_price=e.buy_price,
        shares=e.shares,
        total_cost=e.total_cost,
        consistency_hash=e.consistency_hash,
        created_at=e.created_at or datetime.utcnow(),
        closed_at=e.closed_at,
    )
    for attr in CLOSED_FIELDS:
        setattr(model, attr, getattr(e, attr))
    return model


# ═══════════════════════════════════════════════════════════════════════════
# CalculationRepository
# ═══════════════════════════════════════════════════════════════════════════

class CalculationRepository:
    """Saved calculations. Records are insert-only; there is no update."""

    @staticmethod
    def get_all(session: Session) -> list[Calculation]:
        """All calculations, newest first."""
        rows = session.execute(
            select(CalculationModel).order_by(
                CalculationModel.created_at.desc(), CalculationModel.id.desc()
            )
        ).scalars().all()
        return [_calc_model_to_entity(r) for r in rows]

    @staticmethod
    def get_by_id(session: Session, calc_id: int) -> Calculation:
        m = session.get(CalculationModel, calc_id)
        if m is None:
            raise RecordNotFoundError("Calculation", calc_id)
        return _calc_model_to_entity(m)

    @staticmethod
    def insert(session: Session, calc: Calculation) -> int:
        calc.seal()
        model = _calc_entity_to_model(calc)
        session.add(model)
        session.flush()
        calc.mark_saved(model.id, model.created_at)
        AuditLogRepository.log_action(
            session, "calculations", model.id, "INSERT", new_data=_model_to_json(model)
        )
        return model.id

    @staticmethod
    def delete(session: Session, calc_id: int) -> None:
        model = session.get(CalculationModel, calc_id)
        if model is None:
            raise RecordNotFoundError("Calculation", calc_id)
        old_json = _model_to_json(model)
        session.delete(model)
        session.flush()
        AuditLogRepository.log_action(
            session, "calculations", calc_id, "DELETE", old_data=old_json,
        )


# ═══════════════════════════════════════════════════════════════════════════
# OperationRepository
# ═══════════════════════════════════════════════════════════════════════════

class OperationRepository:

    @staticmethod
    def get_all(
        session: Session, status: Optional[OperationStatus] = None
    ) -> list[Operation]:
        """All operations (optionally of one status), newest first."""
        stmt = select(OperationModel)
        if status is not None:
            stmt = stmt.where(OperationModel.status == OperationStatus(status).value)
        rows = session.execute(
            stmt.order_by(OperationModel.created_at.desc(), OperationModel.id.desc())
        ).scalars().all()
        return [_op_model_to_entity(r) for r in rows]

    @staticmethod
    def get_by_id(session: Session, op_id: int) -> Operation:
        m = session.get(OperationModel, op_id)
        if m is None:
            raise RecordNotFoundError("Operation", op_id)
        return _op_model_to_entity(m)

    @staticmethod
    def insert(session: Session, op: Operation) -> int:
        op.seal()
        model = _op_entity_to_model(op)
        session.add(model)
        session.flush()
        op.id = model.id
        op.created_at = model.created_at
        AuditLogRepository.log_action(
            session, "operations", model.id, "INSERT", new_data=_model_to_json(model)
        )
        return model.id

    @staticmethod
    def update_closed(session: Session, op: Operation) -> None:
        """Persist the closed fields of an operation that was open in storage."""
        if not op.is_closed:
            raise InvalidStateError(f"Operation {op.id} is not closed")
        model = session.get(OperationModel, op.id)
        if model is None:
            raise RecordNotFoundError("Operation", op.id)
        if model.status != OperationStatus.OPEN.value:
            raise InvalidStateError(f"Operation {op.id} is already closed in storage")
        old_json = _model_to_json(model)
        op.seal()
        for attr in CLOSED_FIELDS:
            setattr(model, attr, getattr(op, attr))
        model.status = op.status.value
        model.closed_at = op.closed_at
        model.consistency_hash = op.consistency_hash
        session.flush()
        AuditLogRepository.log_action(
            session, "operations", model.id, "UPDATE",
            old_data=old_json, new_data=_model_to_json(model),
        )

    @staticmethod
    def delete(session: Session, op_id: int) -> None:
        model = session.get(OperationModel, op_id)
        if model is None:
            raise RecordNotFoundError("Operation", op_id)
        old_json = _model_to_json(model)
        session.delete(model)
        session.flush()
        AuditLogRepository.log_action(
            session, "operations", op_id, "DELETE", old_data=old_json,
        )


# ═══════════════════════════════════════════════════════════════════════════
# AuditLogRepository
# ═══════════════════════════════════════════════════════════════════════════

class AuditLogRepository:

    @staticmethod
    def log_action(
        session: Session,
        table_name: str,
        record_id: int,
        action: str,
        old_data: str | None = None,
        new_data: str | None = None,
    ) -> None:
        session.add(AuditLogModel(
            table_name=table_name,
            record_id=record_id,
            action=action,
            old_data=old_data,
            new_data=new_data,
            timestamp=datetime.utcnow(),
        ))

    @staticmethod
    def get_recent(session: Session, limit: int = 100) -> list[dict]:
        rows = session.execute(
            select(AuditLogModel)
            .order_by(AuditLogModel.timestamp.desc(), AuditLogModel.id.desc())
            .limit(limit)
        ).scalars().all()
        return [
            {
                "id": r.id, "table_name": r.table_name, "record_id": r.record_id,
                "action": r.action, "old_data": r.old_data, "new_data": r.new_data,
                "timestamp": r.timestamp,
            }
            for r in rows
        ]


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _decimal_default(obj):
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    raise TypeError(f"Not serializable: {type(obj)}")


def _model_to_json(model) -> str:
    data = {
        c.name: getattr(model, c.name)
        for c in model.__table__.columns
    }
    return json.dumps(data, default=_decimal_default, sort_keys=True)
