"""Analytics sidecar API.

FastAPI application serving read-only analytics over posted data
snapshots. Nothing is persisted; every request carries the records it
wants analyzed.

Endpoints:
    GET  /health                                health check
    POST /api/v1/analytics/trends               sales/loss buckets and totals
    POST /api/v1/analytics/categories           category mix, best sellers, cashiers
    POST /api/v1/analytics/profitability        profit by product/category
    POST /api/v1/analytics/insights             dashboard insights
    POST /api/v1/analytics/losses               loss summary and trend
    POST /api/v1/analytics/refunds              refund summary
    POST /api/v1/reports/{report_type}          formatted rows and summary
    POST /api/v1/reports/{report_type}/pdf      PDF download
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from functools import partial

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from . import __version__
from .api_models import (
    CategoriesResponse,
    ErrorResponse,
    HealthResponse,
    InsightsResponse,
    LossesResponse,
    ProfitabilityResponse,
    RefundsResponse,
    ReportRequest,
    ReportResponse,
    SnapshotRequest,
    TrendsResponse,
)
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
    ReportErrorKind,
    ReportExporter,
    ReportInProgressError,
)
from .insights import build_dashboard_insights
from .pdf_report import render_report_pdf
from .profitability import analyze_profitability, profit_trend
from .reports import build_report, report_filename
from .time_buckets import (
    aggregate_losses,
    aggregate_sales,
    daily_sales_log,
    parse_period,
    window_totals,
)

logger = logging.getLogger("inventory_pro.sidecar")

# Failed report outcomes -> (HTTP status, error code)
_REPORT_ERROR_STATUS: dict[ReportErrorKind, tuple[int, str]] = {
    ReportErrorKind.EMPTY_DATASET: (422, "EMPTY_DATASET"),
    ReportErrorKind.NO_MATCHING_RECORDS: (404, "NO_MATCHING_RECORDS"),
    ReportErrorKind.FETCH_FAILED: (502, "FETCH_FAILED"),
    ReportErrorKind.EXPORT_FAILED: (500, "EXPORT_FAILED"),
}


class _InlineSaver:
    """Keeps the rendered document in memory; the response streams it."""

    def save(self, document: bytes, filename: str) -> str:
        return f"inline:{filename}"


def create_app(
    settings: AnalyticsSettings | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()
    clock = clock or datetime.now

    app = FastAPI(
        title="Inventory Pro Analytics",
        version=__version__,
        description="Sales, inventory and loss analytics for Inventory Pro.",
    )

    # CORS
    origins = ["*"] if settings.sidecar_dev_mode else ["http://localhost:3000"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Services
    exporter = ReportExporter(
        saver=_InlineSaver(),
        renderer=partial(render_report_pdf, store_name=settings.store_name),
        clock=clock,
    )

    # -----------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------

    @app.exception_handler(ReportInProgressError)
    async def in_progress_handler(
        request: Request,
        exc: ReportInProgressError,
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content=ErrorResponse(
                code="REPORT_IN_PROGRESS",
                message="A report is already being generated",
                detail=str(exc),
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def general_error_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                code="INTERNAL_ERROR",
                message="An unexpected error occurred",
                detail=str(exc) if settings.sidecar_dev_mode else None,
            ).model_dump(),
        )

    def _now(body_now: datetime | None) -> datetime:
        return body_now or clock()

    # -----------------------------------------------------------------
    # Endpoints
    # -----------------------------------------------------------------

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        return HealthResponse(
            status="ok",
            version=__version__,
            store_name=settings.store_name,
            dev_mode=settings.sidecar_dev_mode,
        )

    @app.post("/api/v1/analytics/trends", response_model=TrendsResponse)
    async def trends(body: SnapshotRequest) -> TrendsResponse:
        period = parse_period(body.period, default=settings.default_period)
        now = _now(body.now)
        totals = window_totals(body.sales, period, now)
        return TrendsResponse(
            period=period.value,
            start=totals.start,
            end=totals.end,
            sales=aggregate_sales(body.sales, period, now),
            losses=aggregate_losses(body.losses, period, now),
            totals=totals,
            net_sales=totals.net_sales,
            daily_log=daily_sales_log(body.sales),
        )

    @app.post("/api/v1/analytics/categories", response_model=CategoriesResponse)
    async def categories(body: SnapshotRequest) -> CategoriesResponse:
        return CategoriesResponse(
            categories=summarize_categories(body.inventory),
            status_counts=count_by_status(body.inventory),
            low_stock=low_stock_items(body.inventory),
            top_products=top_selling_products(body.sales, limit=settings.top_products),
            cashiers=summarize_cashiers(body.sales),
        )

    @app.post("/api/v1/analytics/profitability", response_model=ProfitabilityResponse)
    async def profitability(body: SnapshotRequest) -> ProfitabilityResponse:
        period = parse_period(body.period, default=settings.default_period)
        report = analyze_profitability(
            body.sales, body.inventory, top_n=settings.top_profitable
        )
        return ProfitabilityResponse(
            report=report,
            items_without_cost=report.items_without_cost,
            trend=profit_trend(body.sales, body.inventory, period, _now(body.now)),
        )

    @app.post("/api/v1/analytics/insights", response_model=InsightsResponse)
    async def insights(body: SnapshotRequest) -> InsightsResponse:
        period = parse_period(body.period, default=settings.default_period)
        found = build_dashboard_insights(body.sales, body.inventory, period, _now(body.now))
        return InsightsResponse(insights=found, rendered=[i.text for i in found])

    @app.post("/api/v1/analytics/losses", response_model=LossesResponse)
    async def losses(body: SnapshotRequest) -> LossesResponse:
        period = parse_period(body.period, default=settings.default_period)
        summary = summarize_losses(body.losses, top_n=settings.top_loss_items)
        return LossesResponse(
            summary=summary,
            average_loss=summary.average_loss,
            trend=aggregate_losses(body.losses, period, _now(body.now)),
        )

    @app.post("/api/v1/analytics/refunds", response_model=RefundsResponse)
    async def refunds(body: SnapshotRequest) -> RefundsResponse:
        summary = summarize_refunds(body.sales)
        return RefundsResponse(summary=summary, average_refund=summary.average_refund)

    @app.post("/api/v1/reports/{report_type}", response_model=ReportResponse)
    async def report_rows(report_type: str, body: ReportRequest) -> ReportResponse:
        now = _now(body.now)
        name = body.report_name or f"{report_type.title()} Report"
        return ReportResponse(
            report=build_report(body.records, report_type, name, now),
            filename=report_filename(name, now),
        )

    @app.post("/api/v1/reports/{report_type}/pdf")
    def report_pdf(report_type: str, body: ReportRequest) -> Response:
        name = body.report_name or f"{report_type.title()} Report"
        outcome = exporter.generate(report_type, name, lambda: body.records, now=body.now)
        if not outcome.success:
            status, code = _REPORT_ERROR_STATUS[outcome.error]
            return JSONResponse(
                status_code=status,
                content=ErrorResponse(
                    code=code,
                    message=outcome.title,
                    detail=outcome.message,
                ).model_dump(),
            )
        return Response(
            content=outcome.document,
            media_type="application/pdf",
            headers={"Content-Disposition": f'attachment; filename="{outcome.filename}"'},
        )

    return app
