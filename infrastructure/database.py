"""Database engine, session factory, and ORM models (SQLAlchemy 2.0+)."""

from __future__ import annotations

import os
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Date, DateTime, Index, Integer, Numeric, String, Text,
    create_engine, event,
)
from sqlalchemy.orm import (
    DeclarativeBase, Mapped, mapped_column, sessionmaker,
)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# ORM Models
# ---------------------------------------------------------------------------

class CalculationModel(Base):
    __tablename__ = "calculations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[str] = mapped_column(String(40), nullable=False)
    buy_price: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    sell_price: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    shares: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    net_profit: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    consistency_hash: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )


class OperationModel(Base):
    __tablename__ = "operations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="open")
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    buy_price: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    shares: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    total_cost: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    sell_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    sell_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    tax_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    gross_profit: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    tax_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    net_profit: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    profit_percentage: Mapped[Optional[Decimal]] = mapped_column(Numeric(20, 8), nullable=True)
    duration_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    consistency_hash: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_operations_status_created", "status", "created_at"),
    )


class AuditLogModel(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    table_name: Mapped[str] = mapped_column(String(50), nullable=False)
    record_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[str] = mapped_column(String(10), nullable=False)
    old_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    new_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )


# ---------------------------------------------------------------------------
# Engine and session factory
# ---------------------------------------------------------------------------

DB_PATH_ENV = "TRADE_NOTES_DB"
_DB_DIR = os.path.join(os.path.expanduser("~"), ".trade_notes")
_DB_PATH = os.path.join(_DB_DIR, "trades.db")


def get_db_path() -> str:
    """Database file: ``$TRADE_NOTES_DB`` if set, else ~/.trade_notes/trades.db."""
    return os.environ.get(DB_PATH_ENV) or _DB_PATH


def _set_wal_mode(dbapi_conn, connection_record):
    """Enable WAL journal mode for file databases."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def create_db_engine(db_path: str | None = None):
    """Create the SQLAlchemy engine (WAL mode for file databases)."""
    path = db_path or get_db_path()
    is_memory = path == ":memory:"
    if not is_memory:
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    url = "sqlite:///:memory:" if is_memory else f"sqlite:///{path}"
    engine = create_engine(url, echo=False)
    if not is_memory:
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def create_tables(engine) -> None:
    """Create all tables if they don't exist."""
    Base.metadata.create_all(engine)


def make_session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)
