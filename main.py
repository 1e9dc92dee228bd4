"""Trade Notes: command-line entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sys

# ---------------------------------------------------------------------------
# Ensure the project root is on sys.path so domain/application/etc imports work
# ---------------------------------------------------------------------------
_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from domain.enums import OperationStatus  # noqa: E402
from domain.exceptions import DomainError  # noqa: E402

log = logging.getLogger("trade_notes")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trade-notes",
        description="Calculadora de beneficios e impuestos y diario de operaciones.",
    )
    parser.add_argument("--db", help="ruta de la base de datos SQLite")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("calc", help="calcular beneficio sin guardar")
    p.add_argument("buy_price")
    p.add_argument("sell_price")
    p.add_argument("shares")
    p.add_argument("tax_rate", nargs="?", default="0")

    p = sub.add_parser("save", help="calcular y guardar")
    p.add_argument("name")
    p.add_argument("buy_price")
    p.add_argument("sell_price")
    p.add_argument("shares")
    p.add_argument("tax_rate", nargs="?", default="0")
    p.add_argument("--date", help="fecha a mostrar (por defecto hoy, dd/mm/aaaa)")

    sub.add_parser("calculations", help="listar cálculos guardados")

    p = sub.add_parser("show-calculation", help="ver un cálculo guardado")
    p.add_argument("id", type=int)

    p = sub.add_parser("delete-calculation", help="borrar un cálculo")
    p.add_argument("id", type=int)

    p = sub.add_parser("open", help="abrir una operación")
    p.add_argument("name")
    p.add_argument("purchase_date", help="AAAA-MM-DD")
    p.add_argument("buy_price")
    p.add_argument("shares")

    p = sub.add_parser("close", help="cerrar una operación abierta")
    p.add_argument("id", type=int)
    p.add_argument("sell_date", help="AAAA-MM-DD")
    p.add_argument("sell_price")
    p.add_argument("tax_rate", nargs="?", default="0")

    p = sub.add_parser("operations", help="listar operaciones")
    p.add_argument("--status", choices=[s.value for s in OperationStatus])

    p = sub.add_parser("delete-operation", help="borrar una operación")
    p.add_argument("id", type=int)

    sub.add_parser("summary", help="resumen de operaciones")

    p = sub.add_parser("audit", help="últimos cambios registrados")
    p.add_argument("--limit", type=int, default=20)

    p = sub.add_parser("export", help="exportar a CSV o PDF")
    p.add_argument("what", choices=["calculations", "operations"])
    p.add_argument("path")

    return parser


def _print_metrics(buy_price, sell_price, shares, tax_rate) -> None:
    from application.calculation_engine import compute_metrics, compute_totals
    from reports.formatting import format_currency

    total_buy, total_sell = compute_totals(buy_price, sell_price, shares)
    m = compute_metrics(buy_price, sell_price, shares, tax_rate)
    print(f"Total compra:    {format_currency(total_buy)}")
    print(f"Total venta:     {format_currency(total_sell)}")
    print(f"Beneficio bruto: {format_currency(m.gross_profit)}")
    print(f"Impuestos:       {format_currency(m.tax_amount)}")
    print(f"Beneficio neto:  {format_currency(m.net_profit)}")
    print(f"Resultado:       {'pérdida' if m.is_loss else 'beneficio'}")


def _print_operation(op) -> None:
    from reports.formatting import format_currency, format_duration, format_percentage

    line = (
        f"[{op.id}] {op.name} ({op.status.label}) "
        f"{op.purchase_date.isoformat()} {op.shares.normalize():f} @ "
        f"{format_currency(op.buy_price)} = {format_currency(op.total_cost)}"
    )
    if op.is_closed:
        line += (
            f" -> {op.sell_date.isoformat()} @ {format_currency(op.sell_price)}: "
            f"neto {format_currency(op.net_profit)} "
            f"({format_percentage(op.profit_percentage)}, "
            f"{format_duration(op.duration_days)})"
        )
    print(line)


def _run(args, session_factory) -> None:
    from application.use_cases import (
        CloseOperationUseCase, DeleteCalculationUseCase, DeleteOperationUseCase,
        LoadCalculationUseCase, OpenOperationUseCase, PortfolioSummaryUseCase,
        SaveCalculationUseCase,
    )
    from infrastructure.repositories import (
        AuditLogRepository, CalculationRepository, OperationRepository,
    )
    from infrastructure.transaction import run_in_transaction
    from reports.formatting import format_currency, format_percentage
    from reports.journal_report import export_calculations, export_operations

    cmd = args.command

    if cmd == "save":
        data = {
            "buyPrice": args.buy_price,
            "sellPrice": args.sell_price,
            "shares": args.shares,
            "taxRate": args.tax_rate,
        }
        calc_id = run_in_transaction(
            session_factory,
            lambda s: SaveCalculationUseCase().execute(s, args.name, data, args.date),
        )
        _print_metrics(args.buy_price, args.sell_price, args.shares, args.tax_rate)
        print(f"Guardado con id {calc_id}")

    elif cmd == "calculations":
        calcs = run_in_transaction(session_factory, CalculationRepository.get_all)
        if not calcs:
            print("No hay cálculos guardados")
        for c in calcs:
            print(f"[{c.id}] {c.name} {c.date} {format_currency(c.data.net_profit)}")

    elif cmd == "show-calculation":
        calc = run_in_transaction(
            session_factory, lambda s: LoadCalculationUseCase().execute(s, args.id)
        )
        data = calc.data
        print(f"[{calc.id}] {calc.name} {calc.date}")
        print(
            f"{data.shares.normalize():f} acciones: compra {format_currency(data.buy_price)}, "
            f"venta {format_currency(data.sell_price)}, "
            f"impuesto {format_percentage(data.tax_rate)}"
        )
        _print_metrics(data.buy_price, data.sell_price, data.shares, data.tax_rate)

    elif cmd == "delete-calculation":
        run_in_transaction(
            session_factory, lambda s: DeleteCalculationUseCase().execute(s, args.id)
        )
        print(f"Cálculo {args.id} borrado")

    elif cmd == "open":
        op_id = run_in_transaction(
            session_factory,
            lambda s: OpenOperationUseCase().execute(
                s, args.name, args.purchase_date, args.buy_price, args.shares
            ),
        )
        print(f"Operación abierta con id {op_id}")

    elif cmd == "close":
        op = run_in_transaction(
            session_factory,
            lambda s: CloseOperationUseCase().execute(
                s, args.id, args.sell_date, args.sell_price, args.tax_rate
            ),
        )
        _print_operation(op)

    elif cmd == "operations":
        status = OperationStatus(args.status) if args.status else None
        ops = run_in_transaction(
            session_factory, lambda s: OperationRepository.get_all(s, status)
        )
        if not ops:
            print("No hay operaciones")
        for op in ops:
            _print_operation(op)

    elif cmd == "delete-operation":
        run_in_transaction(
            session_factory, lambda s: DeleteOperationUseCase().execute(s, args.id)
        )
        print(f"Operación {args.id} borrada")

    elif cmd == "summary":
        summary = run_in_transaction(session_factory, PortfolioSummaryUseCase().execute)
        print(f"Abiertas: {summary['open']}  Cerradas: {summary['closed']}")
        print(f"Capital invertido: {format_currency(summary['invested'])}")
        print(f"Beneficio bruto realizado: {format_currency(summary['realized_gross'])}")
        print(f"Impuestos: {format_currency(summary['realized_tax'])}")
        print(f"Beneficio neto realizado: {format_currency(summary['realized_net'])}")

    elif cmd == "audit":
        entries = run_in_transaction(
            session_factory, lambda s: AuditLogRepository.get_recent(s, args.limit)
        )
        if not entries:
            print("Sin cambios registrados")
        for e in entries:
            print(
                f"{e['timestamp']:%d/%m/%Y %H:%M:%S} {e['action']:<6} "
                f"{e['table_name']} #{e['record_id']}"
            )

    elif cmd == "export":
        if args.what == "calculations":
            records = run_in_transaction(session_factory, CalculationRepository.get_all)
            path = export_calculations(args.path, records)
        else:
            records = run_in_transaction(session_factory, OperationRepository.get_all)
            path = export_operations(args.path, records)
        print(f"Exportado a {path}")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    if args.command == "calc":
        _print_metrics(args.buy_price, args.sell_price, args.shares, args.tax_rate)
        return 0

    # ── Database setup ─────────────────────────────────────────────────
    from infrastructure.database import create_db_engine, create_tables, make_session_factory

    engine = create_db_engine(args.db)
    create_tables(engine)
    session_factory = make_session_factory(engine)
    log.debug("Database ready")

    try:
        _run(args, session_factory)
    except DomainError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
