"""Tests for the application use cases."""

import pytest
from decimal import Decimal

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from domain.exceptions import InvalidStateError, RecordNotFoundError, ValidationError
from application.calculation_engine import today_label
from application.use_cases import (
    CloseOperationUseCase, DeleteCalculationUseCase, DeleteOperationUseCase,
    LoadCalculationUseCase, OpenOperationUseCase, PortfolioSummaryUseCase,
    SaveCalculationUseCase,
)
from infrastructure.database import (
    CalculationModel, OperationModel, create_db_engine, create_tables, make_session_factory,
)
from infrastructure.repositories import CalculationRepository, OperationRepository
from infrastructure.transaction import run_in_transaction


@pytest.fixture
def factory():
    engine = create_db_engine(":memory:")
    create_tables(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def session(factory):
    sess = factory()
    yield sess
    sess.close()


DATA = {"buyPrice": 10, "sellPrice": 20, "shares": 50, "taxRate": 19}


class TestSaveCalculation:
    def test_client_net_profit_is_ignored(self, session):
        data = dict(DATA, netProfit=99999)
        calc_id = SaveCalculationUseCase().execute(session, "AAPL", data, "01/02/2026")
        session.commit()
        calc = CalculationRepository.get_by_id(session, calc_id)
        assert calc.data.net_profit == Decimal("405")
        assert calc.date == "01/02/2026"

    def test_date_defaults_to_today(self, session):
        calc_id = SaveCalculationUseCase().execute(session, "AAPL", DATA)
        calc = CalculationRepository.get_by_id(session, calc_id)
        assert calc.date == today_label()

    def test_empty_data_rejected(self, session):
        with pytest.raises(ValidationError):
            SaveCalculationUseCase().execute(session, "AAPL", {})

    def test_delete(self, session):
        calc_id = SaveCalculationUseCase().execute(session, "AAPL", DATA)
        DeleteCalculationUseCase().execute(session, calc_id)
        with pytest.raises(RecordNotFoundError):
            DeleteCalculationUseCase().execute(session, calc_id)

    def test_load(self, session, caplog):
        calc_id = SaveCalculationUseCase().execute(session, "AAPL", DATA, "01/02/2026")
        session.commit()
        with caplog.at_level("WARNING"):
            calc = LoadCalculationUseCase().execute(session, calc_id)
        assert calc.name == "AAPL"
        assert calc.data.net_profit == Decimal("405")
        assert "consistency hash" not in caplog.text

    def test_load_warns_on_tampered_record(self, session, caplog):
        calc_id = SaveCalculationUseCase().execute(session, "AAPL", DATA, "01/02/2026")
        session.get(CalculationModel, calc_id).net_profit = Decimal("1")
        session.commit()
        with caplog.at_level("WARNING"):
            calc = LoadCalculationUseCase().execute(session, calc_id)
        assert calc.data.net_profit == Decimal("1")
        assert f"Calculation {calc_id} does not match its consistency hash" in caplog.text

    def test_load_unknown_id(self, session):
        with pytest.raises(RecordNotFoundError):
            LoadCalculationUseCase().execute(session, 42)


class TestOperationUseCases:
    def test_open_then_close(self, session):
        op_id = OpenOperationUseCase().execute(session, "AAPL", "2025-01-10", 100, 10)
        session.commit()
        op = CloseOperationUseCase().execute(session, op_id, "2025-02-19", 150, 19)
        session.commit()

        assert op.id == op_id
        assert op.net_profit == Decimal("405")
        stored = OperationRepository.get_by_id(session, op_id)
        assert stored.is_closed
        assert stored.tax_amount == Decimal("95")

    def test_close_twice_leaves_record_unchanged(self, session):
        op_id = OpenOperationUseCase().execute(session, "AAPL", "2025-01-10", 100, 10)
        CloseOperationUseCase().execute(session, op_id, "2025-02-19", 150, 19)
        session.commit()

        with pytest.raises(InvalidStateError):
            CloseOperationUseCase().execute(session, op_id, "2025-03-01", 10, 0)
        stored = OperationRepository.get_by_id(session, op_id)
        assert stored.sell_price == Decimal("150")
        assert stored.duration_days == 40

    def test_close_unknown_id(self, session):
        with pytest.raises(RecordNotFoundError):
            CloseOperationUseCase().execute(session, 123, "2025-02-19", 150, 19)

    def test_delete(self, session):
        op_id = OpenOperationUseCase().execute(session, "AAPL", "2025-01-10", 100, 10)
        DeleteOperationUseCase().execute(session, op_id)
        assert OperationRepository.get_all(session) == []

    def test_summary(self, session):
        open_uc, close_uc = OpenOperationUseCase(), CloseOperationUseCase()
        open_uc.execute(session, "A", "2025-01-10", 100, 10)
        b = open_uc.execute(session, "B", "2025-01-10", 100, 10)
        c = open_uc.execute(session, "C", "2025-01-10", 10, 100)
        close_uc.execute(session, b, "2025-02-19", 150, 19)
        close_uc.execute(session, c, "2025-02-19", 5, 19)
        session.commit()

        summary = PortfolioSummaryUseCase().execute(session)
        assert summary["open"] == 1
        assert summary["closed"] == 2
        assert summary["invested"] == Decimal("1000")
        assert summary["realized_gross"] == Decimal("0")     # 500 - 500
        assert summary["realized_tax"] == Decimal("95")
        assert summary["realized_net"] == Decimal("-95")

    def test_close_warns_on_tampered_record(self, session, caplog):
        op_id = OpenOperationUseCase().execute(session, "AAPL", "2025-01-10", 100, 10)
        session.get(OperationModel, op_id).buy_price = Decimal("90")
        session.commit()
        with caplog.at_level("WARNING"):
            op = CloseOperationUseCase().execute(session, op_id, "2025-02-19", 150, 19)
        assert f"Operation {op_id} does not match its consistency hash" in caplog.text
        assert op.is_closed

    def test_summary_is_rounded_to_cents(self, session):
        OpenOperationUseCase().execute(session, "A", "2025-01-10", "10.005", 1)
        OpenOperationUseCase().execute(session, "B", "2025-01-10", "0.001", 3)
        session.commit()
        summary = PortfolioSummaryUseCase().execute(session)
        assert summary["invested"] == Decimal("10.01")
        assert summary["invested"].as_tuple().exponent == -2


class TestRunInTransaction:
    def test_commit(self, factory):
        calc_id = run_in_transaction(
            factory, lambda s: SaveCalculationUseCase().execute(s, "AAPL", DATA)
        )
        calcs = run_in_transaction(factory, CalculationRepository.get_all)
        assert [c.id for c in calcs] == [calc_id]

    def test_rollback_on_error(self, factory):
        def _save_then_fail(s):
            SaveCalculationUseCase().execute(s, "AAPL", DATA)
            raise ValidationError("boom")

        with pytest.raises(ValidationError):
            run_in_transaction(factory, _save_then_fail)
        assert run_in_transaction(factory, CalculationRepository.get_all) == []
