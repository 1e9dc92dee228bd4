"""Domain entities: pure data structures, no infrastructure dependencies."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from domain.enums import OperationStatus
from domain.exceptions import InvalidStateError
from domain.value_objects import (
    compute_consistency_hash,
    round_amount,
    to_decimal,
)


def _amount(value) -> Decimal:
    return round_amount(to_decimal(value))


def _optional_amount(value) -> Optional[Decimal]:
    return None if value is None else _amount(value)


@dataclass(frozen=True)
class ProfitMetrics:
    """Result of the profit/tax arithmetic for one trade."""

    gross_profit: Decimal
    tax_amount: Decimal
    net_profit: Decimal

    @property
    def is_loss(self) -> bool:
        return self.gross_profit < Decimal("0")


@dataclass(frozen=True)
class CalculationData:
    """Inputs of a saved calculation plus its derived net profit."""

    buy_price: Decimal
    sell_price: Decimal
    shares: Decimal
    tax_rate: Decimal           # percent, e.g. 19 for 19 %
    net_profit: Decimal

    def __post_init__(self) -> None:
        for attr in ("buy_price", "sell_price", "shares", "tax_rate", "net_profit"):
            object.__setattr__(self, attr, _amount(getattr(self, attr)))

    @property
    def total_buy(self) -> Decimal:
        """Total purchase value = buy_price × shares."""
        return self.buy_price * self.shares

    @property
    def total_sell(self) -> Decimal:
        """Total sale value = sell_price × shares."""
        return self.sell_price * self.shares

    def as_dict(self) -> dict:
        return {
            "buyPrice": self.buy_price,
            "sellPrice": self.sell_price,
            "shares": self.shares,
            "taxRate": self.tax_rate,
            "netProfit": self.net_profit,
        }


@dataclass
class Calculation:
    """A standalone profit snapshot.

    Unsaved calculations can still be sealed; once a record has an id
    (after ``mark_saved`` or when loaded from storage) every assignment
    raises InvalidStateError.
    """

    name: str
    date: str                   # locale-formatted, e.g. 19/10/2026
    data: CalculationData
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    consistency_hash: str = ""

    def __post_init__(self) -> None:
        if self.id is not None:
            object.__setattr__(self, "_frozen", True)

    def __setattr__(self, name, value) -> None:
        if getattr(self, "_frozen", False):
            raise InvalidStateError(
                f"El cálculo '{self.name}' ya está guardado y no se puede modificar"
            )
        object.__setattr__(self, name, value)

    @property
    def is_saved(self) -> bool:
        return self.id is not None

    def mark_saved(self, calc_id: int, created_at: datetime) -> None:
        """Attach the storage id and timestamp, then freeze the record."""
        if self.is_saved:
            raise InvalidStateError(f"El cálculo '{self.name}' ya está guardado")
        object.__setattr__(self, "id", calc_id)
        object.__setattr__(self, "created_at", created_at)
        object.__setattr__(self, "_frozen", True)

    def compute_hash(self) -> str:
        payload = {"name": self.name, "date": self.date}
        payload.update(self.data.as_dict())
        return compute_consistency_hash(payload)

    def seal(self) -> None:
        self.consistency_hash = self.compute_hash()

    def verify(self) -> bool:
        """True when the record still matches the hash taken at save time."""
        return bool(self.consistency_hash) and self.consistency_hash == self.compute_hash()


# Fields that are populated exactly when an operation is closed.
CLOSED_FIELDS = (
    "sell_date", "sell_price", "tax_rate",
    "gross_profit", "tax_amount", "net_profit",
    "profit_percentage", "duration_days",
)

# Bookkeeping fields the persistence layer may still set on a closed record.
_WRITABLE_WHEN_CLOSED = frozenset({"id", "created_at", "consistency_hash"})


@dataclass
class Operation:
    """A trade position with an open → closed lifecycle.

    While open only the purchase side is populated.  Closing attaches every
    field in ``CLOSED_FIELDS`` at once; after that the record is frozen and
    any assignment (other than bookkeeping ids) raises InvalidStateError.
    """

    name: str
    purchase_date: date
    buy_price: Decimal
    shares: Decimal
    total_cost: Decimal         # buy_price × shares, fixed at creation
    status: OperationStatus = OperationStatus.OPEN
    sell_date: Optional[date] = None
    sell_price: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    gross_profit: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    net_profit: Optional[Decimal] = None
    profit_percentage: Optional[Decimal] = None
    duration_days: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    consistency_hash: str = ""

    def __post_init__(self) -> None:
        self.status = OperationStatus(self.status)
        self.buy_price = _amount(self.buy_price)
        self.shares = _amount(self.shares)
        self.total_cost = _amount(self.total_cost)
        for attr in (
            "sell_price", "tax_rate", "gross_profit", "tax_amount",
            "net_profit", "profit_percentage",
        ):
            setattr(self, attr, _optional_amount(getattr(self, attr)))
        self._check_closed_fields()
        if self.status == OperationStatus.CLOSED:
            object.__setattr__(self, "_frozen", True)

    def __setattr__(self, name, value) -> None:
        if getattr(self, "_frozen", False) and name not in _WRITABLE_WHEN_CLOSED:
            raise InvalidStateError(
                f"La operación '{self.name}' está cerrada y no se puede modificar"
            )
        object.__setattr__(self, name, value)

    @property
    def is_open(self) -> bool:
        return self.status == OperationStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == OperationStatus.CLOSED

    @property
    def total_sell(self) -> Optional[Decimal]:
        if self.sell_price is None:
            return None
        return self.sell_price * self.shares

    def _check_closed_fields(self) -> None:
        present = [f for f in CLOSED_FIELDS if getattr(self, f) is not None]
        expected = len(CLOSED_FIELDS) if self.is_closed else 0
        if len(present) != expected:
            raise InvalidStateError(
                f"Operation '{self.name}' is {self.status.value} but has "
                f"closed fields {present}"
            )

    def mark_closed(self, **closed_values) -> None:
        """Attach every closed field and flip the status in one step.

        Only the lifecycle should call this; the record is frozen afterwards.
        """
        if self.is_closed:
            raise InvalidStateError(f"La operación '{self.name}' ya está cerrada")
        if set(closed_values) != set(CLOSED_FIELDS):
            raise InvalidStateError(
                f"Closing requires exactly {CLOSED_FIELDS}, got {sorted(closed_values)}"
            )
        converted = {
            attr: value if attr in ("sell_date", "duration_days") else _amount(value)
            for attr, value in closed_values.items()
        }
        for attr, value in converted.items():
            object.__setattr__(self, attr, value)
        object.__setattr__(self, "closed_at", datetime.utcnow())
        object.__setattr__(self, "status", OperationStatus.CLOSED)
        object.__setattr__(self, "_frozen", True)

    def compute_hash(self) -> str:
        data = {
            "name": self.name,
            "purchase_date": self.purchase_date,
            "buy_price": self.buy_price,
            "shares": self.shares,
            "total_cost": self.total_cost,
            "status": self.status,
        }
        for attr in CLOSED_FIELDS:
            data[attr] = getattr(self, attr)
        return compute_consistency_hash(data)

    def seal(self) -> None:
        self.consistency_hash = self.compute_hash()

    def verify(self) -> bool:
        return bool(self.consistency_hash) and self.consistency_hash == self.compute_hash()
