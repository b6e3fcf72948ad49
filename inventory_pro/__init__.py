"""Inventory Pro Analytics: reporting and aggregation for a retail POS.

Turns raw sales, inventory and loss records into dashboard aggregates,
heuristic insights and export-ready reports.

Usage:
    from inventory_pro import aggregate_sales, build_dashboard_insights

    trend = aggregate_sales(sales, "week", now)
    for insight in build_dashboard_insights(sales, inventory, "month", now):
        print(insight)

Reports:
    from inventory_pro import LocalFileSaver, ReportExporter

    exporter = ReportExporter(saver=LocalFileSaver("reports"))
    outcome = exporter.generate("refunds", "Refund Report", fetch_sales)
    print(outcome.title, outcome.message)
"""

__version__ = "0.1.0"

from .category_mix import (
    count_by_status,
    low_stock_items,
    summarize_cashiers,
    summarize_categories,
    summarize_losses,
    summarize_refunds,
    top_selling_products,
)
from .config import AnalyticsSettings, get_settings
from .export import (
    LocalFileSaver,
    ReportErrorKind,
    ReportExporter,
    ReportExportError,
    ReportInProgressError,
    ReportOutcome,
    ReportState,
)
from .insights import build_dashboard_insights, generate_insights
from .models import (
    AggregatedBucket,
    CategorySummary,
    Insight,
    InsightKind,
    InventoryItem,
    LossRecord,
    ProfitabilityReport,
    SaleLineItem,
    SaleRecord,
    SalesTotals,
)
from .normalizer import normalize_inventory, normalize_losses, normalize_sales
from .pdf_report import render_report_pdf
from .profitability import analyze_profitability, profit_trend, suggested_price
from .reports import FormattedReport, ReportType, build_report, report_filename
from .time_buckets import (
    ReportPeriod,
    aggregate_losses,
    aggregate_sales,
    daily_sales_log,
    window_totals,
)

__all__ = [
    "AggregatedBucket",
    "AnalyticsSettings",
    "CategorySummary",
    "FormattedReport",
    "Insight",
    "InsightKind",
    "InventoryItem",
    "LocalFileSaver",
    "LossRecord",
    "ProfitabilityReport",
    "ReportErrorKind",
    "ReportExportError",
    "ReportExporter",
    "ReportInProgressError",
    "ReportOutcome",
    "ReportPeriod",
    "ReportState",
    "ReportType",
    "SaleLineItem",
    "SaleRecord",
    "SalesTotals",
    "aggregate_losses",
    "aggregate_sales",
    "analyze_profitability",
    "build_dashboard_insights",
    "build_report",
    "count_by_status",
    "daily_sales_log",
    "generate_insights",
    "get_settings",
    "low_stock_items",
    "normalize_inventory",
    "normalize_losses",
    "normalize_sales",
    "profit_trend",
    "render_report_pdf",
    "report_filename",
    "suggested_price",
    "summarize_cashiers",
    "summarize_categories",
    "summarize_losses",
    "summarize_refunds",
    "top_selling_products",
    "window_totals",
]
