"""API request/response models for the analytics sidecar.

Requests carry a snapshot of raw records exactly as the data source returns
them; the sidecar normalizes them itself. Responses wrap the domain models
with the derived figures the dashboard displays next to them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .models import (
    AggregatedBucket,
    CashierSummary,
    CategorySummary,
    Insight,
    InventoryItem,
    LossSummary,
    ProductSales,
    ProfitabilityReport,
    ProfitTrendPoint,
    RefundSummary,
    SalesTotals,
)
from .reports import FormattedReport

# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    code: str
    message: str
    detail: str | None = None


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: str
    version: str
    store_name: str
    dev_mode: bool


class SnapshotRequest(BaseModel):
    """Raw data snapshot posted to the analytics endpoints."""

    sales: list[dict[str, Any]] = Field(default_factory=list)
    inventory: list[dict[str, Any]] = Field(default_factory=list)
    losses: list[dict[str, Any]] = Field(default_factory=list)
    period: str | None = None
    now: datetime | None = None


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class TrendsResponse(BaseModel):
    """Response for POST /api/v1/analytics/trends."""

    period: str
    start: str
    end: str
    sales: list[AggregatedBucket]
    losses: list[AggregatedBucket]
    totals: SalesTotals
    net_sales: float
    daily_log: list[AggregatedBucket]


class CategoriesResponse(BaseModel):
    """Response for POST /api/v1/analytics/categories."""

    categories: list[CategorySummary]
    status_counts: dict[str, int]
    low_stock: list[InventoryItem]
    top_products: list[ProductSales]
    cashiers: list[CashierSummary]


class ProfitabilityResponse(BaseModel):
    """Response for POST /api/v1/analytics/profitability."""

    report: ProfitabilityReport
    items_without_cost: int
    trend: list[ProfitTrendPoint]


class InsightsResponse(BaseModel):
    """Response for POST /api/v1/analytics/insights."""

    insights: list[Insight]
    rendered: list[str]


class LossesResponse(BaseModel):
    """Response for POST /api/v1/analytics/losses."""

    summary: LossSummary
    average_loss: float
    trend: list[AggregatedBucket]


class RefundsResponse(BaseModel):
    """Response for POST /api/v1/analytics/refunds."""

    summary: RefundSummary
    average_refund: float


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class ReportRequest(BaseModel):
    """Request body for POST /api/v1/reports/{report_type}[/pdf].

    ``records`` is left untyped: malformed batches are reported as an
    empty dataset instead of failing validation.
    """

    records: Any = None
    report_name: str | None = None
    now: datetime | None = None


class ReportResponse(BaseModel):
    """Response for POST /api/v1/reports/{report_type}."""

    report: FormattedReport
    filename: str
