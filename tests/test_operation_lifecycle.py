"""Tests for the open → closed operation lifecycle."""

import dataclasses
import pytest
from datetime import date
from decimal import Decimal

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from domain.entities import CLOSED_FIELDS, Operation
from domain.enums import OperationStatus
from domain.exceptions import InvalidStateError, ValidationError
from application.operation_lifecycle import (
    OperationLifecycle, duration_days, profit_percentage,
)

ZERO = Decimal("0")


@pytest.fixture
def lifecycle():
    return OperationLifecycle()


@pytest.fixture
def open_op(lifecycle):
    return lifecycle.open("AAPL", "2025-01-10", 100, 10)


class TestOpen:
    def test_open_sets_total_cost(self, open_op):
        assert open_op.total_cost == Decimal("1000")

    def test_large_amounts(self, lifecycle):
        op = lifecycle.open("X", "2025-01-01", "1e21", 1)
        assert op.total_cost == Decimal("1e21")
        assert op.verify()

    def test_out_of_range_amount_rejected(self, lifecycle, open_op):
        with pytest.raises(ValidationError, match="fuera de rango"):
            lifecycle.open("X", "2025-01-01", "1e30", 1)
        assert open_op.status == OperationStatus.OPEN
        assert open_op.is_open
        assert open_op.purchase_date == date(2025, 1, 10)

    def test_open_has_no_closed_fields(self, open_op):
        for attr in CLOSED_FIELDS:
            assert getattr(open_op, attr) is None

    def test_lenient_numbers(self, lifecycle):
        op = lifecycle.open("X", "2025-01-10", "abc", "5")
        assert op.buy_price == ZERO
        assert op.total_cost == ZERO

    @pytest.mark.parametrize("name", [None, "", "  "])
    def test_name_required(self, lifecycle, name):
        with pytest.raises(ValidationError):
            lifecycle.open(name, "2025-01-10", 100, 10)

    @pytest.mark.parametrize("purchase_date", [None, "", "not-a-date"])
    def test_purchase_date_required(self, lifecycle, purchase_date):
        with pytest.raises(ValidationError):
            lifecycle.open("AAPL", purchase_date, 100, 10)

    def test_total_cost_is_fixed(self, open_op):
        open_op.buy_price = Decimal("200")
        assert open_op.total_cost == Decimal("1000")


class TestClose:
    def test_close_computes_metrics(self, lifecycle, open_op):
        closed = lifecycle.close(open_op, "2025-02-19", 150, 19)
        assert closed is open_op
        assert closed.status == OperationStatus.CLOSED
        assert closed.sell_date == date(2025, 2, 19)
        assert closed.sell_price == Decimal("150")
        assert closed.tax_rate == Decimal("19")
        assert closed.gross_profit == Decimal("500")
        assert closed.tax_amount == Decimal("95")
        assert closed.net_profit == Decimal("405")
        assert closed.profit_percentage == Decimal("40.5")
        assert closed.duration_days == 40
        assert closed.closed_at is not None
        assert closed.verify()

    def test_close_with_loss(self, lifecycle, open_op):
        lifecycle.close(open_op, "2025-01-20", 80, 19)
        assert open_op.gross_profit == Decimal("-200")
        assert open_op.tax_amount == ZERO
        assert open_op.net_profit == Decimal("-200")
        assert open_op.profit_percentage == Decimal("-20")

    def test_time_of_day_is_ignored(self, lifecycle, open_op):
        lifecycle.close(open_op, "2025-02-19T23:59:00Z", 150, 19)
        assert open_op.duration_days == 40

    def test_close_twice_is_rejected(self, lifecycle, open_op):
        lifecycle.close(open_op, "2025-02-19", 150, 19)
        before = dataclasses.asdict(open_op)
        with pytest.raises(InvalidStateError):
            lifecycle.close(open_op, "2025-03-01", 999, 50)
        assert dataclasses.asdict(open_op) == before

    def test_zero_sell_price_rejected(self, lifecycle, open_op):
        with pytest.raises(ValidationError):
            lifecycle.close(open_op, "2025-02-19", 0, 19)
        assert open_op.is_open
        for attr in CLOSED_FIELDS:
            assert getattr(open_op, attr) is None

    def test_missing_sell_price_rejected(self, lifecycle, open_op):
        with pytest.raises(ValidationError):
            lifecycle.close(open_op, "2025-02-19", "", 19)

    def test_missing_sell_date_rejected(self, lifecycle, open_op):
        with pytest.raises(ValidationError):
            lifecycle.close(open_op, None, 150, 19)
        assert open_op.is_open

    def test_missing_tax_rate_means_zero(self, lifecycle, open_op):
        lifecycle.close(open_op, "2025-02-19", 150, None)
        assert open_op.tax_amount == ZERO
        assert open_op.net_profit == Decimal("500")

    def test_zero_cost_basis_percentage(self, lifecycle):
        op = lifecycle.open("GIFT", "2025-01-10", 0, 10)
        lifecycle.close(op, "2025-01-11", 10, 0)
        assert op.gross_profit == Decimal("100")
        assert op.profit_percentage == ZERO

    def test_sell_before_purchase_gives_negative_duration(self, lifecycle, open_op):
        lifecycle.close(open_op, "2025-01-05", 150, 19)
        assert open_op.duration_days == -5

    def test_close_with_large_amounts(self, lifecycle):
        op = lifecycle.open("X", "2025-01-01", "1e21", 1)
        lifecycle.close(op, "2025-02-01", "2e21", 19)
        assert op.gross_profit == Decimal("1e21")
        assert op.tax_amount == Decimal("1.9e20")
        assert op.net_profit == Decimal("8.1e20")
        assert op.profit_percentage == Decimal("81")
        assert op.verify()

    def test_out_of_range_close_leaves_operation_open(self, lifecycle, open_op):
        with pytest.raises(ValidationError, match="fuera de rango"):
            lifecycle.close(open_op, "2025-02-19", "1e30", 19)
        assert open_op.is_open
        for attr in CLOSED_FIELDS:
            assert getattr(open_op, attr) is None


class TestClosedOperationIsFrozen:
    def test_fields_cannot_be_reassigned(self, lifecycle, open_op):
        lifecycle.close(open_op, "2025-02-19", 150, 19)
        with pytest.raises(InvalidStateError):
            open_op.net_profit = Decimal("1")
        with pytest.raises(InvalidStateError):
            open_op.status = OperationStatus.OPEN
        assert open_op.net_profit == Decimal("405")

    def test_bookkeeping_fields_stay_writable(self, lifecycle, open_op):
        lifecycle.close(open_op, "2025-02-19", 150, 19)
        open_op.id = 7
        assert open_op.id == 7

    def test_partial_closed_fields_rejected(self):
        with pytest.raises(InvalidStateError):
            Operation(
                name="AAPL",
                purchase_date=date(2025, 1, 10),
                buy_price=Decimal("100"),
                shares=Decimal("10"),
                total_cost=Decimal("1000"),
                sell_price=Decimal("150"),
            )

    def test_closed_without_closed_fields_rejected(self):
        with pytest.raises(InvalidStateError):
            Operation(
                name="AAPL",
                purchase_date=date(2025, 1, 10),
                buy_price=Decimal("100"),
                shares=Decimal("10"),
                total_cost=Decimal("1000"),
                status=OperationStatus.CLOSED,
            )


class TestHelpers:
    def test_profit_percentage(self):
        assert profit_percentage(Decimal("405"), Decimal("1000")) == Decimal("40.5")
        assert profit_percentage(Decimal("10"), ZERO) == ZERO

    def test_duration_days(self):
        assert duration_days(date(2025, 1, 10), date(2025, 2, 19)) == 40
        assert duration_days(date(2024, 2, 28), date(2024, 3, 1)) == 2
        assert duration_days(date(2025, 1, 10), date(2025, 1, 10)) == 0
