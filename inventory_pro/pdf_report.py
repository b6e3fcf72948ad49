"""PDF rendering for formatted reports.

Lays out a :class:`~inventory_pro.reports.FormattedReport` with reportlab:

  1. Header (report title, generated-at label, store name)
  2. Summary table (per report type)
  3. Record table (header row repeated on every page, zebra striped)
  4. Footer

Wide or long reports (more than 5 columns or more than 20 rows) switch to
landscape so the record table fits.
"""

from __future__ import annotations

import io
import logging
import math
from typing import Any
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import (
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from .reports import FormattedReport, ReportType

logger = logging.getLogger("inventory_pro.pdf")

# ---------------------------------------------------------------------------
# Color palette
# ---------------------------------------------------------------------------
HEADER_BLUE = colors.Color(41 / 255, 128 / 255, 185 / 255)
SLATE_900 = colors.HexColor("#0f172a")
SLATE_400 = colors.HexColor("#94a3b8")
LIGHT_BG = colors.HexColor("#f5f5f5")

LANDSCAPE_MIN_ROWS = 20
LANDSCAPE_MIN_COLUMNS = 5

NO_DATA_CELL = "No data available"

# (label, summary key, formatter) per report type
_SUMMARY_LINES: dict[ReportType, list[tuple[str, str, str]]] = {
    ReportType.SALES: [
        ("Total Sales", "total_sales", "money"),
        ("Transactions", "sale_count", "int"),
        ("Total Items Sold", "total_items", "int"),
    ],
    ReportType.INVENTORY: [
        ("Total Items", "total_items", "int"),
        ("Total Inventory Value", "total_value", "money"),
        ("Categories", "categories", "int"),
    ],
    ReportType.LOW_STOCK: [
        ("Low Stock Items", "low_stock_count", "int"),
        ("Out of Stock", "urgent_items", "int"),
        ("Categories Affected", "categories", "int"),
    ],
    ReportType.REFUNDS: [
        ("Total Refunded", "total_refunded", "money"),
        ("Refund Count", "refund_count", "int"),
        ("Average Refund", "average_refund", "money"),
    ],
    ReportType.LOSSES: [
        ("Loss Incidents", "loss_count", "int"),
        ("Total Loss Value", "total_value", "money"),
        ("Loss Reasons", "reason_count", "int"),
    ],
    ReportType.OTHER: [
        ("Records", "record_count", "int"),
        ("Report Type", "report_type", "text"),
    ],
}


def _build_styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "ReportTitle",
            parent=base["Title"],
            fontSize=20,
            textColor=SLATE_900,
            spaceAfter=4,
        ),
        "subtitle": ParagraphStyle(
            "ReportSubtitle",
            parent=base["Normal"],
            fontSize=10,
            textColor=SLATE_400,
            spaceAfter=12,
        ),
        "h2": ParagraphStyle(
            "SectionH2",
            parent=base["Heading2"],
            fontSize=13,
            textColor=SLATE_900,
            spaceBefore=12,
            spaceAfter=6,
        ),
        "footer": ParagraphStyle(
            "Footer",
            parent=base["Normal"],
            fontSize=7,
            textColor=SLATE_400,
            alignment=TA_CENTER,
        ),
    }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _fmt_dollar(amount: float) -> str:
    return f"${amount:,.2f}"


def _fmt_summary_value(value: Any, kind: str) -> str:
    if kind == "text":
        return str(value)
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return "N/A"
    if not math.isfinite(number):
        return "N/A"
    if kind == "money":
        return _fmt_dollar(number)
    return f"{int(number):,}"


def summary_lines(report: FormattedReport) -> list[tuple[str, str]]:
    """(label, display value) pairs for the summary block."""
    return [
        (label, _fmt_summary_value(report.summary.get(key, 0), kind))
        for label, key, kind in _SUMMARY_LINES[report.report_type]
    ]


def use_landscape(report: FormattedReport) -> bool:
    return (
        len(report.rows) > LANDSCAPE_MIN_ROWS
        or len(report.headers) > LANDSCAPE_MIN_COLUMNS
    )


def _make_table(
    data: list[list],
    col_widths: list[float] | None = None,
    header: bool = True,
) -> Table:
    """Build a styled table."""
    t = Table(data, colWidths=col_widths, repeatRows=1 if header else 0)
    style_cmds: list[tuple] = [
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("TOPPADDING", (0, 0), (-1, -1), 4),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
        ("LEFTPADDING", (0, 0), (-1, -1), 6),
        ("RIGHTPADDING", (0, 0), (-1, -1), 6),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
    ]
    if header:
        style_cmds.extend([
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_BLUE),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ])
    # Zebra striping
    for i in range(1, len(data)):
        if i % 2 == 0:
            style_cmds.append(("BACKGROUND", (0, i), (-1, i), LIGHT_BG))
    t.setStyle(TableStyle(style_cmds))
    return t


def _record_table_data(report: FormattedReport) -> list[list[str]]:
    if report.is_empty:
        return [[NO_DATA_CELL]]
    return [list(report.headers)] + [list(row) for row in report.rows]


# ---------------------------------------------------------------------------
# Main PDF generation
# ---------------------------------------------------------------------------
def render_report_pdf(report: FormattedReport, store_name: str | None = None) -> bytes:
    """Render a formatted report as PDF bytes.

    Parameters
    ----------
    report : FormattedReport
        Output of :func:`inventory_pro.reports.build_report`.
    store_name : str, optional
        Printed under the title when given.

    Returns
    -------
    bytes
        PDF file content ready to be saved or streamed.
    """
    buf = io.BytesIO()
    pagesize = landscape(letter) if use_landscape(report) else letter
    doc = SimpleDocTemplate(
        buf,
        pagesize=pagesize,
        title=report.title,
        topMargin=0.5 * inch,
        bottomMargin=0.5 * inch,
        leftMargin=0.5 * inch,
        rightMargin=0.5 * inch,
    )

    styles = _build_styles()
    story: list = []

    # ── HEADER ───────────────────────────────────────────────────
    story.append(Paragraph(escape(report.title), styles["title"]))
    subtitle = f"Generated on {escape(report.generated_at_label)}"
    if store_name:
        subtitle = f"{escape(store_name)} &nbsp;|&nbsp; {subtitle}"
    story.append(Paragraph(subtitle, styles["subtitle"]))
    story.append(HRFlowable(
        width="100%", thickness=2, color=HEADER_BLUE,
        spaceAfter=10, spaceBefore=4,
    ))

    # ── SUMMARY ──────────────────────────────────────────────────
    story.append(Paragraph("Summary", styles["h2"]))
    summary_data = [["Metric", "Value"]] + [list(pair) for pair in summary_lines(report)]
    story.append(_make_table(summary_data, col_widths=[2.5 * inch, 2.0 * inch]))
    story.append(Spacer(1, 12))

    # ── RECORDS ──────────────────────────────────────────────────
    story.append(Paragraph("Records", styles["h2"]))
    data = _record_table_data(report)
    usable_width = pagesize[0] - doc.leftMargin - doc.rightMargin
    columns = len(data[0])
    story.append(_make_table(
        data,
        col_widths=[usable_width / columns] * columns,
        header=not report.is_empty,
    ))
    story.append(Spacer(1, 16))

    # ── FOOTER ───────────────────────────────────────────────────
    story.append(HRFlowable(
        width="100%", thickness=1, color=SLATE_400,
        spaceAfter=8, spaceBefore=8,
    ))
    story.append(Paragraph(
        f"Report generated: {escape(report.generated_at_label)}"
        f" &bull; {len(report.rows):,} record{'s' if len(report.rows) != 1 else ''}",
        styles["footer"],
    ))

    doc.build(story)
    pdf_bytes = buf.getvalue()
    buf.close()

    logger.info(
        "Rendered %s report PDF: %d rows, %d bytes",
        report.report_type.value,
        len(report.rows),
        len(pdf_bytes),
    )
    return pdf_bytes
