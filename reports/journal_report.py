"""Tabular views of saved calculations and the operation journal."""

from __future__ import annotations

from domain.entities import Calculation, Operation
from reports.formatting import (
    format_currency, format_duration, format_percentage, profit_tone,
)
from reports.report_export import export_csv, export_pdf

CALCULATION_HEADERS = [
    "Nombre", "Fecha", "Precio compra", "Precio venta", "Acciones",
    "Impuesto %", "Total compra", "Total venta", "Beneficio neto",
]

OPERATION_HEADERS = [
    "Nombre", "Estado", "Fecha compra", "Precio compra", "Acciones",
    "Coste total", "Fecha venta", "Precio venta", "Beneficio bruto",
    "Impuestos", "Rentabilidad", "Duración", "Beneficio neto",
]


def _fmt_qty(value) -> str:
    v = float(value)
    if v == int(v):
        return str(int(v))
    return f"{v:.8f}".rstrip("0").rstrip(".")


def calculation_rows(calculations: list[Calculation]) -> list[list[str]]:
    rows = []
    for c in calculations:
        d = c.data
        rows.append([
            c.name,
            c.date,
            format_currency(d.buy_price),
            format_currency(d.sell_price),
            _fmt_qty(d.shares),
            format_percentage(d.tax_rate),
            format_currency(d.total_buy),
            format_currency(d.total_sell),
            format_currency(d.net_profit),
        ])
    return rows


def operation_rows(operations: list[Operation]) -> list[list[str]]:
    rows = []
    for op in operations:
        row = [
            op.name,
            op.status.label,
            op.purchase_date.strftime("%d/%m/%Y"),
            format_currency(op.buy_price),
            _fmt_qty(op.shares),
            format_currency(op.total_cost),
        ]
        if op.is_closed:
            row += [
                op.sell_date.strftime("%d/%m/%Y"),
                format_currency(op.sell_price),
                format_currency(op.gross_profit),
                format_currency(op.tax_amount),
                format_percentage(op.profit_percentage),
                format_duration(op.duration_days),
                format_currency(op.net_profit),
            ]
        else:
            row += ["-"] * 7
        rows.append(row)
    return rows


def export_calculations(path: str, calculations: list[Calculation]) -> str:
    """Write calculations to *path*; ``.pdf`` selects PDF, anything else CSV."""
    rows = calculation_rows(calculations)
    if path.lower().endswith(".pdf"):
        return export_pdf(
            path, "Cálculos guardados", CALCULATION_HEADERS, rows,
            landscape_mode=True,
            tones=[profit_tone(c.data.net_profit) for c in calculations],
        )
    return export_csv(path, CALCULATION_HEADERS, rows)


def export_operations(path: str, operations: list[Operation]) -> str:
    """Write the operation journal to *path* (CSV, or PDF for ``.pdf``)."""
    rows = operation_rows(operations)
    if path.lower().endswith(".pdf"):
        tones = [
            profit_tone(op.net_profit) if op.is_closed else ""
            for op in operations
        ]
        return export_pdf(
            path, "Operaciones", OPERATION_HEADERS, rows,
            landscape_mode=True, tones=tones,
        )
    return export_csv(path, OPERATION_HEADERS, rows)
