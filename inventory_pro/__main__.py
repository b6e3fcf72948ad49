"""CLI entry point for Inventory Pro Analytics.

Usage:
    # Start the analytics sidecar API server
    python -m inventory_pro serve
    INVENTORY_PRO_SIDECAR_DEV_MODE=true python -m inventory_pro serve

    # Print dashboard insights for a snapshot file
    python -m inventory_pro insights --snapshot snapshot.json
    python -m inventory_pro insights --snapshot snapshot.json --period week

    # Export a PDF report
    python -m inventory_pro report --type refunds --input snapshot.json
    python -m inventory_pro report --type sales --input sales.json --name "Sales Report"

A snapshot file is a JSON object with ``sales``, ``inventory`` and
``losses`` lists. ``report --input`` also accepts a plain JSON list of
records.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from .reports import ReportType

# Snapshot key holding the source records for each report type
_SNAPSHOT_KEYS = {
    ReportType.SALES: "sales",
    ReportType.REFUNDS: "sales",
    ReportType.INVENTORY: "inventory",
    ReportType.LOW_STOCK: "inventory",
    ReportType.LOSSES: "losses",
}


def _load_json(path: str) -> Any:
    source = Path(path)
    if not source.exists():
        print(f"Error: Path not found: {source}", file=sys.stderr)
        sys.exit(1)
    try:
        return json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print(f"Error: {source} is not valid JSON: {exc}", file=sys.stderr)
        sys.exit(1)


def _parse_now(value: str | None) -> datetime:
    if not value:
        return datetime.now()
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        print(f"Error: --now must be an ISO date or datetime, got {value!r}", file=sys.stderr)
        sys.exit(1)


def select_report_records(data: Any, report_type: ReportType) -> Any:
    """Pick the records a report needs out of a snapshot or a plain list."""
    if not isinstance(data, dict):
        return data
    key = _SNAPSHOT_KEYS.get(report_type)
    if key is None:
        return data.get("records")
    records = data.get(key)
    if report_type is ReportType.LOW_STOCK and isinstance(records, list):
        from .normalizer import normalize_inventory_item

        low_stock = []
        for raw in records:
            item = normalize_inventory_item(raw)
            if item is not None and item.is_low_stock:
                low_stock.append(raw)
        return low_stock
    return records


def _cmd_serve(args: argparse.Namespace) -> None:
    """Start the sidecar API server."""
    import uvicorn

    from .config import get_settings
    from .sidecar import create_app

    settings = get_settings()
    app = create_app(settings)

    uvicorn.run(
        app,
        host=settings.sidecar_host,
        port=settings.sidecar_port,
        log_level="info",
    )


def _cmd_insights(args: argparse.Namespace) -> None:
    """Print dashboard insights and headline totals for a snapshot."""
    from .config import get_settings
    from .insights import build_dashboard_insights
    from .time_buckets import parse_period, window_totals

    settings = get_settings()
    snapshot = _load_json(args.snapshot)
    if not isinstance(snapshot, dict):
        print("Error: snapshot must be a JSON object", file=sys.stderr)
        sys.exit(1)

    period = parse_period(args.period, default=settings.default_period)
    now = _parse_now(args.now)
    sales = snapshot.get("sales")
    totals = window_totals(sales, period, now)

    print(f"{settings.store_name}: {period.value} ending {totals.end}")
    print(f"  Gross sales: ${totals.gross_sales:,.2f} ({totals.transactions} transactions)")
    print(f"  Refunds:     ${totals.refunds:,.2f} ({totals.refund_count} refunds)")
    print(f"  Net sales:   ${totals.net_sales:,.2f}")
    print()

    insights = build_dashboard_insights(sales, snapshot.get("inventory"), period, now)
    if insights:
        print(f"--- Insights ({len(insights)}) ---")
        for insight in insights:
            print(f"  * {insight}")
    else:
        print("No insights for this period.")


def _cmd_report(args: argparse.Namespace) -> None:
    """Generate and save a PDF report."""
    from functools import partial

    from .config import get_settings
    from .export import LocalFileSaver, ReportExporter
    from .pdf_report import render_report_pdf

    settings = get_settings()
    report_type = ReportType.parse(args.type)
    data = _load_json(args.input)
    name = args.name or f"{args.type.title()} Report"

    exporter = ReportExporter(
        saver=LocalFileSaver(args.output_dir or settings.report_output_dir),
        renderer=partial(render_report_pdf, store_name=settings.store_name),
    )
    outcome = exporter.generate(
        args.type,
        name,
        lambda: select_report_records(data, report_type),
        now=_parse_now(args.now),
    )

    if not outcome.success:
        print(f"{outcome.title}: {outcome.message}", file=sys.stderr)
        sys.exit(1)
    print(f"{outcome.title}: {outcome.location}")
    if outcome.report is not None:
        print(f"  {len(outcome.report.rows):,} rows")
        if outcome.report.degraded_cells:
            print(f"  {outcome.report.degraded_cells} cells could not be formatted")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="inventory_pro",
        description="Inventory Pro Analytics: sales, inventory and loss reporting",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # serve
    subparsers.add_parser("serve", help="Start the analytics sidecar API server")

    # insights
    insights_parser = subparsers.add_parser("insights", help="Print dashboard insights")
    insights_parser.add_argument(
        "--snapshot",
        required=True,
        help="JSON file with sales, inventory and losses lists",
    )
    insights_parser.add_argument(
        "--period",
        help="Trend window: week, month or year (default: from settings)",
    )
    insights_parser.add_argument("--now", help="End of the window (ISO date, default: today)")

    # report
    report_parser = subparsers.add_parser("report", help="Export a PDF report")
    report_parser.add_argument(
        "--type",
        required=True,
        help="Report type: sales, inventory, losses, low-stock, refunds",
    )
    report_parser.add_argument(
        "--input",
        required=True,
        help="JSON snapshot or list of records",
    )
    report_parser.add_argument("--name", help="Report name (default: '<Type> Report')")
    report_parser.add_argument(
        "--output-dir",
        "-o",
        help="Directory to write the PDF to (default: from settings)",
    )
    report_parser.add_argument("--now", help="Report timestamp (ISO datetime, default: now)")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.command == "serve":
        _cmd_serve(args)
    elif args.command == "insights":
        _cmd_insights(args)
    elif args.command == "report":
        _cmd_report(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
