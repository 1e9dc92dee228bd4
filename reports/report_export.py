"""Journal export: semicolon CSV for spreadsheets and a ReportLab PDF table.

Both writers take pre-formatted string rows; number formatting happens in
``reports.formatting`` so the two outputs always show the same text.
"""

from __future__ import annotations

import csv
import os
from datetime import datetime

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle,
)

PROFIT_COLOR = colors.HexColor("#1E8E3E")
LOSS_COLOR = colors.HexColor("#D93025")
_TONE_COLORS = {"profit": PROFIT_COLOR, "loss": LOSS_COLOR}

HEADER_FILL = colors.HexColor("#263238")
STRIPE_FILL = colors.HexColor("#F2F5F7")
RULE_COLOR = colors.HexColor("#B0BEC5")
MUTED_COLOR = colors.HexColor("#78909C")

PAGE_MARGIN = 12 * mm
CSV_DELIMITER = ";"

# First column is the record name; everything after it is a figure or a date.
_BASE_TABLE_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), HEADER_FILL),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 8),
    ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
    ("LINEBELOW", (0, 0), (-1, -1), 0.25, RULE_COLOR),
    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, STRIPE_FILL]),
]


def _ensure_parent(path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)


def export_csv(
    path: str,
    headers: list[str],
    rows: list[list[str]],
) -> str:
    """Write *rows* under *headers*; the BOM lets spreadsheet apps detect UTF-8."""
    _ensure_parent(path)
    with open(path, "w", newline="", encoding="utf-8-sig") as fh:
        csv.writer(fh, delimiter=CSV_DELIMITER).writerows([headers, *rows])
    return path


def _tone_commands(tones: list[str], column: int) -> list[tuple]:
    commands = []
    for row, tone in enumerate(tones, start=1):
        color = _TONE_COLORS.get(tone)
        if color is not None:
            commands.append(("TEXTCOLOR", (column, row), (column, row), color))
    return commands


def _journal_table(
    headers: list[str],
    rows: list[list[str]],
    tones: list[str],
    tone_column: int,
) -> Table:
    column = tone_column % len(headers)
    table = Table([headers, *rows], repeatRows=1)
    table.setStyle(TableStyle(_BASE_TABLE_STYLE + _tone_commands(tones, column)))
    return table


def export_pdf(
    path: str,
    title: str,
    headers: list[str],
    rows: list[list[str]],
    *,
    landscape_mode: bool = False,
    tones: list[str] | None = None,
    tone_column: int = -1,
) -> str:
    """Render *rows* as a single striped table. Returns the path.

    *tones* holds one ``"profit"``/``"loss"`` (or empty) entry per row;
    the cell at *tone_column* is coloured accordingly.
    """
    _ensure_parent(path)
    stamp = datetime.now().strftime("%d/%m/%Y %H:%M")
    styles = getSampleStyleSheet()
    subtitle = ParagraphStyle(
        "JournalSubtitle", parent=styles["Normal"],
        fontSize=9, textColor=MUTED_COLOR,
    )

    story: list = [
        Paragraph(title, styles["Heading1"]),
        Paragraph(f"{len(rows)} registro(s)", subtitle),
        Spacer(1, 5 * mm),
    ]
    if rows:
        story.append(_journal_table(headers, rows, tones or [], tone_column))
    else:
        story.append(Paragraph("No hay registros que exportar.", styles["Italic"]))

    def _page_footer(canvas, doc) -> None:
        width, _ = doc.pagesize
        canvas.saveState()
        canvas.setFont("Helvetica", 7)
        canvas.setFillColor(MUTED_COLOR)
        canvas.drawString(PAGE_MARGIN, PAGE_MARGIN / 2, f"Trade Notes · {stamp}")
        canvas.drawRightString(
            width - PAGE_MARGIN, PAGE_MARGIN / 2, f"Página {doc.page}"
        )
        canvas.restoreState()

    doc = SimpleDocTemplate(
        path,
        pagesize=landscape(A4) if landscape_mode else A4,
        leftMargin=PAGE_MARGIN, rightMargin=PAGE_MARGIN,
        topMargin=PAGE_MARGIN, bottomMargin=PAGE_MARGIN,
        title=title,
    )
    doc.build(story, onFirstPage=_page_footer, onLaterPages=_page_footer)
    return path
