"""Tests for PDF report rendering."""

from datetime import datetime

from inventory_pro.pdf_report import (
    render_report_pdf,
    summary_lines,
    use_landscape,
)
from inventory_pro.reports import build_report

NOW = datetime(2024, 1, 2, 9, 30)


def _sales(n: int) -> list[dict]:
    return [
        {"id": i, "date": "2024-01-01", "cashier": "amy", "amount": 2.5, "status": "completed"}
        for i in range(n)
    ]


class TestLayout:
    def test_portrait_for_small_narrow_reports(self):
        assert not use_landscape(build_report(_sales(3), "sales", "Sales", NOW))

    def test_landscape_for_many_rows(self):
        assert use_landscape(build_report(_sales(21), "sales", "Sales", NOW))

    def test_landscape_for_wide_reports(self):
        inventory = [{"id": 1, "name": "Milk", "price": 3, "stock": 2}]
        assert use_landscape(build_report(inventory, "inventory", "Inventory", NOW))


class TestSummaryLines:
    def test_sales(self):
        report = build_report(_sales(4), "sales", "Sales", NOW)
        assert summary_lines(report) == [
            ("Total Sales", "$10.00"),
            ("Transactions", "4"),
            ("Total Items Sold", "0"),
        ]

    def test_refunds(self):
        batch = [{"id": 1, "status": "refunded", "amount": 1500}]
        report = build_report(batch, "refunds", "Refunds", NOW)
        assert ("Total Refunded", "$1,500.00") in summary_lines(report)

    def test_non_finite_values_show_placeholder(self):
        report = build_report(_sales(1), "sales", "Sales", NOW)
        report = report.model_copy(
            update={"summary": {"total_sales": float("inf"), "sale_count": float("nan")}}
        )
        assert summary_lines(report)[:2] == [("Total Sales", "N/A"), ("Transactions", "N/A")]
        assert render_report_pdf(report).startswith(b"%PDF")

    def test_other(self):
        report = build_report([{"id": 1}], "custom", "Custom", NOW)
        assert summary_lines(report) == [("Records", "1"), ("Report Type", "custom")]


class TestRender:
    def test_renders_pdf_bytes(self):
        report = build_report(_sales(3), "sales", "Sales & Returns", NOW)
        pdf = render_report_pdf(report, store_name="Corner <Store>")
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 500

    def test_renders_multi_page(self):
        report = build_report(_sales(200), "sales", "Sales", NOW)
        assert render_report_pdf(report).startswith(b"%PDF")

    def test_empty_report_still_renders(self):
        report = build_report([], "refunds", "Refunds", NOW)
        assert render_report_pdf(report).startswith(b"%PDF")
