"""Report formatter and filter.

Turns a raw record batch into export-ready rows for one report type:

    sales      ID, Date, Cashier, Amount ($), Status
    inventory  ID, SKU, Name, Category, Stock, Unit, Price ($), Status
    losses     ID, Date, Item Name, Quantity, Reason, Recorded By, Value ($)
    low-stock  ID, SKU, Name, Category, Current Stock, Threshold, Status
    refunds    Transaction ID, Refund Date, Refunded By, Original Cashier, Amount ($), Items
    other      ID, Name, Value

Each report type is a :class:`ReportLayout` holding its header schema, one
formatter per cell, the sentinel used when a cell cannot be formatted, and
its summary function. Only ``refunds`` filters the batch (status equal to
"refunded", any case); every other type takes all mapping records as-is,
since the data source is expected to have scoped the batch already (the
low-stock endpoint returns only low-stock items, for example).

A cell that fails to format degrades to its sentinel ("N/A", "0",
"0.00"). Rows are never dropped for formatting problems.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .models import REFUNDED_STATUS
from .normalizer import coerce_int, coerce_number

logger = logging.getLogger("inventory_pro.reports")

NOT_AVAILABLE = "N/A"

Record = Mapping[str, Any]
ReportRow = tuple[str, ...]


class ReportType(str, Enum):
    """Report variants; anything unrecognised formats as ``OTHER``."""

    SALES = "sales"
    INVENTORY = "inventory"
    LOSSES = "losses"
    LOW_STOCK = "low-stock"
    REFUNDS = "refunds"
    OTHER = "other"

    @classmethod
    def parse(cls, token: Any) -> ReportType:
        if isinstance(token, cls):
            return token
        try:
            return cls(str(token).strip().lower())
        except ValueError:
            return cls.OTHER


# ---------------------------------------------------------------------------
# Cell formatters
# ---------------------------------------------------------------------------


def _field(record: Record, *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def _text(*keys: str, default: str = NOT_AVAILABLE) -> Callable[[Record], str]:
    def cell(record: Record) -> str:
        value = _field(record, *keys)
        if value is None:
            return default
        text = str(value)
        return text if text else default

    return cell


def _money(*keys: str) -> Callable[[Record], str]:
    def cell(record: Record) -> str:
        return f"{coerce_number(_field(record, *keys)):.2f}"

    return cell


def _whole(*keys: str) -> Callable[[Record], str]:
    def cell(record: Record) -> str:
        value = _field(record, *keys)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return _plain(value)
        return str(coerce_int(value))

    return cell


def _plain(value: float) -> str:
    number = float(value)
    return str(int(number)) if number.is_integer() else str(number)


def _number(*keys: str) -> Callable[[Record], str]:
    def cell(record: Record) -> str:
        return _plain(coerce_number(_field(record, *keys)))

    return cell


def _item_count(record: Record) -> str:
    items = record.get("items")
    if isinstance(items, (list, tuple)):
        return str(len(items))
    return "0"


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def _distinct(records: Sequence[Record], key: str) -> int:
    return len({str(r.get(key)) for r in records if r.get(key)})


def _sales_summary(records: Sequence[Record]) -> dict[str, Any]:
    return {
        "total_sales": round(sum(coerce_number(r.get("amount")) for r in records), 2),
        "total_items": sum(int(_item_count(r)) for r in records),
        "sale_count": len(records),
    }


def _inventory_summary(records: Sequence[Record]) -> dict[str, Any]:
    total_value = sum(
        coerce_number(r.get("price")) * coerce_int(r.get("stock")) for r in records
    )
    return {
        "total_items": len(records),
        "total_value": round(total_value, 2),
        "categories": _distinct(records, "category"),
    }


def _is_out_of_stock(record: Record) -> bool:
    stock = record.get("stock")
    if isinstance(stock, bool):
        return False
    if isinstance(stock, (int, float)):
        return stock == 0
    return coerce_number(stock, default=-1.0) == 0


def _low_stock_summary(records: Sequence[Record]) -> dict[str, Any]:
    return {
        "low_stock_count": len(records),
        "urgent_items": sum(1 for r in records if _is_out_of_stock(r)),
        "categories": _distinct(records, "category"),
    }


def _refund_summary(records: Sequence[Record]) -> dict[str, Any]:
    total = sum(coerce_number(r.get("amount")) for r in records)
    count = len(records)
    return {
        "total_refunded": round(total, 2),
        "refund_count": count,
        "average_refund": round(total / count, 2) if count > 0 else 0,
    }


def _loss_summary(records: Sequence[Record]) -> dict[str, Any]:
    return {
        "loss_count": len(records),
        "total_value": round(sum(coerce_number(r.get("value")) for r in records), 2),
        "reason_count": _distinct(records, "reason"),
    }


def _other_summary(records: Sequence[Record]) -> dict[str, Any]:
    return {"record_count": len(records)}


# ---------------------------------------------------------------------------
# Layouts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportLayout:
    """Header schema, cell formatters and summary for one report type."""

    headers: tuple[str, ...]
    cells: tuple[Callable[[Record], str], ...]
    fallback: tuple[str, ...]
    summarize: Callable[[Sequence[Record]], dict[str, Any]]

    def format_cells(self, record: Record) -> tuple[ReportRow, int]:
        """The formatted row and how many of its cells fell back."""
        row: list[str] = []
        degraded = 0
        for index, cell in enumerate(self.cells):
            try:
                row.append(cell(record))
            except Exception as exc:
                logger.warning(
                    "Cell %r degraded to %r: %s",
                    self.headers[index],
                    self.fallback[index],
                    exc,
                )
                row.append(self.fallback[index])
                degraded += 1
        return tuple(row), degraded

    def format_row(self, record: Record) -> ReportRow:
        return self.format_cells(record)[0]


REPORT_LAYOUTS: dict[ReportType, ReportLayout] = {
    ReportType.SALES: ReportLayout(
        headers=("ID", "Date", "Cashier", "Amount ($)", "Status"),
        cells=(
            _text("id"),
            _text("date", "timestamp"),
            _text("cashier"),
            _money("amount"),
            _text("status"),
        ),
        fallback=("N/A", "N/A", "N/A", "0.00", "N/A"),
        summarize=_sales_summary,
    ),
    ReportType.INVENTORY: ReportLayout(
        headers=("ID", "SKU", "Name", "Category", "Stock", "Unit", "Price ($)", "Status"),
        cells=(
            _text("id"),
            _text("sku"),
            _text("name"),
            _text("category"),
            _whole("stock"),
            _text("unit", default="ea"),
            _money("price"),
            _text("status", default="Active"),
        ),
        fallback=("N/A", "N/A", "N/A", "N/A", "0", "ea", "0.00", "Unknown"),
        summarize=_inventory_summary,
    ),
    ReportType.LOSSES: ReportLayout(
        headers=("ID", "Date", "Item Name", "Quantity", "Reason", "Recorded By", "Value ($)"),
        cells=(
            _text("id"),
            _text("date", "timestamp"),
            _text("itemName", "item_name"),
            _whole("quantity"),
            _text("reason"),
            _text("recordedBy", "recorded_by"),
            _money("value"),
        ),
        fallback=("N/A", "N/A", "N/A", "0", "N/A", "N/A", "0.00"),
        summarize=_loss_summary,
    ),
    ReportType.LOW_STOCK: ReportLayout(
        headers=("ID", "SKU", "Name", "Category", "Current Stock", "Threshold", "Status"),
        cells=(
            _text("id"),
            _text("sku"),
            _text("name"),
            _text("category"),
            _whole("stock"),
            _whole("threshold"),
            _text("status", default="Active"),
        ),
        fallback=("N/A", "N/A", "N/A", "N/A", "0", "0", "Unknown"),
        summarize=_low_stock_summary,
    ),
    ReportType.REFUNDS: ReportLayout(
        headers=(
            "Transaction ID",
            "Refund Date",
            "Refunded By",
            "Original Cashier",
            "Amount ($)",
            "Items",
        ),
        cells=(
            _text("id"),
            _text("refundDate", "refund_date", "date"),
            _text("refundedBy", "refunded_by"),
            _text("cashier"),
            _money("amount"),
            _item_count,
        ),
        fallback=("N/A", "N/A", "N/A", "N/A", "0.00", "0"),
        summarize=_refund_summary,
    ),
    ReportType.OTHER: ReportLayout(
        headers=("ID", "Name", "Value"),
        cells=(_text("id"), _text("name", "title"), _number("value")),
        fallback=("N/A", "N/A", "0"),
        summarize=_other_summary,
    ),
}


def report_headers(report_type: ReportType | str) -> tuple[str, ...]:
    return REPORT_LAYOUTS[ReportType.parse(report_type)].headers


# ---------------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------------


def is_record_batch(batch: Any) -> bool:
    """A list/tuple of records; strings and mappings do not count."""
    return isinstance(batch, Sequence) and not isinstance(batch, (str, bytes))


def _is_refund(record: Record) -> bool:
    status = record.get("status")
    return status is not None and str(status).strip().lower() == REFUNDED_STATUS


def filter_records(batch: Any, report_type: ReportType | str) -> list[Record]:
    """Records that belong in the report.

    Non-sequence input gives an empty list. Non-mapping entries are
    dropped. Only ``refunds`` filters further.
    """
    if not is_record_batch(batch):
        return []
    records = [r for r in batch if isinstance(r, Mapping)]
    if ReportType.parse(report_type) is ReportType.REFUNDS:
        return [r for r in records if _is_refund(r)]
    return records


def format_rows(records: Sequence[Record], report_type: ReportType | str) -> list[ReportRow]:
    layout = REPORT_LAYOUTS[ReportType.parse(report_type)]
    return [layout.format_row(record) for record in records]


def summarize_report(
    records: Sequence[Record],
    report_type: ReportType | str,
) -> dict[str, Any]:
    """Header-area totals for the exported document."""
    kind = ReportType.parse(report_type)
    summary = REPORT_LAYOUTS[kind].summarize(records)
    if kind is ReportType.OTHER:
        summary["report_type"] = str(getattr(report_type, "value", report_type) or "unknown")
    return summary


def format_generated_at(now: datetime) -> str:
    """``Jan 2, 2024, 3:04:05 PM``."""
    hour = now.hour % 12 or 12
    meridiem = "AM" if now.hour < 12 else "PM"
    return f"{now:%b} {now.day}, {now.year}, {hour}:{now:%M:%S} {meridiem}"


def report_filename(report_name: str, on: date | datetime) -> str:
    """``{Report_Name}_{YYYY-MM-DD}.pdf``; whitespace runs become underscores."""
    stem = re.sub(r"\s+", "_", report_name.strip()) or "Report"
    return f"{stem}_{on:%Y-%m-%d}.pdf"


class FormattedReport(BaseModel):
    """Headers, rows and summary ready for the document renderer."""

    model_config = ConfigDict(frozen=True)

    report_type: ReportType
    title: str
    headers: tuple[str, ...]
    rows: tuple[ReportRow, ...] = ()
    summary: dict[str, Any] = Field(default_factory=dict)
    generated_at_label: str = ""
    source_count: int = 0
    degraded_cells: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.rows


def build_report(
    batch: Any,
    report_type: ReportType | str,
    title: str,
    now: datetime,
) -> FormattedReport:
    """Filter, format and summarize a raw batch for one report type."""
    kind = ReportType.parse(report_type)
    layout = REPORT_LAYOUTS[kind]
    records = filter_records(batch, report_type)
    source_count = len(batch) if is_record_batch(batch) else 0
    formatted = [layout.format_cells(record) for record in records]
    degraded = sum(count for _, count in formatted)
    logger.info(
        "Formatted %s report: %d rows from %d records (%d degraded cells)",
        kind.value,
        len(formatted),
        source_count,
        degraded,
    )
    return FormattedReport(
        report_type=kind,
        title=title or "Report",
        headers=layout.headers,
        rows=tuple(row for row, _ in formatted),
        summary=summarize_report(records, report_type),
        generated_at_label=format_generated_at(now),
        source_count=source_count,
        degraded_cells=degraded,
    )
