"""Pydantic models for the Inventory Pro analytics engine.

Raw records (sales, inventory snapshots, loss events) are normalized into
these frozen models once, at the boundary. Every aggregate produced by the
engine is also a frozen model, so results compare structurally and a second
run over the same snapshot is equal to the first.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

REFUNDED_STATUS = "refunded"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Source records
# ---------------------------------------------------------------------------


class SaleLineItem(_Record):
    """A single product line on a sale."""

    product_id: str
    name: str = "Unknown Item"
    quantity: float = Field(default=0.0, ge=0)
    unit_price: float = 0.0
    subtotal: float = 0.0
    unit: str = "ea"


class SaleRecord(_Record):
    """A completed (or refunded) POS transaction."""

    id: str
    cashier: str = "Unknown"
    timestamp: datetime | None = None
    amount: float = 0.0
    status: str = "completed"
    items: tuple[SaleLineItem, ...] = ()
    refunded_by: str | None = None
    refund_date: datetime | None = None

    @property
    def is_refunded(self) -> bool:
        return self.status.strip().lower() == REFUNDED_STATUS

    @property
    def units(self) -> float:
        return sum(item.quantity for item in self.items)


class ProfitType(str, Enum):
    """How an inventory item's profit margin override is expressed."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


class InventoryItem(_Record):
    """An inventory snapshot row."""

    id: str
    name: str = "Unknown Item"
    sku: str = ""
    category: str = "Uncategorized"
    stock: float = 0.0
    unit: str = "ea"
    price: float = 0.0
    cost_price: float | None = None
    profit_margin: float | None = None
    profit_type: ProfitType | None = None
    threshold: float = 0.0
    status: str = "Active"

    @property
    def has_cost_data(self) -> bool:
        """Cost price is present and usable as a margin denominator."""
        return self.cost_price is not None and self.cost_price > 0

    @property
    def stock_value(self) -> float:
        return self.price * self.stock

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.threshold


class LossRecord(_Record):
    """A recorded inventory loss (damage, theft, expiry, ...)."""

    id: str
    timestamp: datetime | None = None
    item_name: str = "Unknown Item"
    inventory_item_id: str | None = None
    quantity: float = 0.0
    reason: str = "Unknown"
    recorded_by: str = "Unknown"
    value: float = 0.0


# ---------------------------------------------------------------------------
# Derived aggregates
# ---------------------------------------------------------------------------


class AggregatedBucket(_Record):
    """One calendar bucket (day or month) of a trend series."""

    key: str
    amount: float = 0.0
    refund_amount: float = 0.0
    transactions: int = 0
    refund_count: int = 0
    items: float = 0.0


class SalesTotals(_Record):
    """Gross, refunded and net sales over a single window."""

    start: str
    end: str
    gross_sales: float = 0.0
    refunds: float = 0.0
    transactions: int = 0
    refund_count: int = 0

    @property
    def net_sales(self) -> float:
        return self.gross_sales - self.refunds


class CategorySummary(_Record):
    """Inventory value rolled up by category."""

    name: str
    count: int = 0
    value: float = 0.0
    percentage: float = 0.0


class ProductSales(_Record):
    """Units and revenue sold for one product."""

    product_id: str
    name: str
    quantity: float = 0.0
    revenue: float = 0.0


class CashierSummary(_Record):
    """Completed-sales performance for one cashier."""

    cashier: str
    amount: float = 0.0
    transactions: int = 0

    @property
    def average_transaction(self) -> float:
        return self.amount / self.transactions if self.transactions > 0 else 0.0


class GroupTotal(_Record):
    """Count and value for one group key (item, reason, user, date)."""

    name: str
    count: int = 0
    quantity: float = 0.0
    value: float = 0.0


class LossSummary(_Record):
    """Loss analysis: totals, most-lost items and reason distribution."""

    loss_count: int = 0
    total_value: float = 0.0
    top_items: tuple[GroupTotal, ...] = ()
    reasons: tuple[GroupTotal, ...] = ()

    @property
    def average_loss(self) -> float:
        return self.total_value / self.loss_count if self.loss_count > 0 else 0.0


class RefundSummary(_Record):
    """Refund analysis grouped by date, refunding user and product."""

    refund_count: int = 0
    total_refunded: float = 0.0
    by_date: tuple[GroupTotal, ...] = ()
    by_user: tuple[GroupTotal, ...] = ()
    by_product: tuple[GroupTotal, ...] = ()

    @property
    def average_refund(self) -> float:
        return (
            self.total_refunded / self.refund_count if self.refund_count > 0 else 0.0
        )


class ProfitabilityRecord(_Record):
    """Profit and margin for one product or category.

    ``margin_pct`` is the mean margin of the line items that contributed.
    ``percentage`` is this record's share of total profit.
    """

    name: str
    quantity_sold: float = 0.0
    revenue: float = 0.0
    profit: float = 0.0
    margin_pct: float = 0.0
    percentage: float = 0.0


class ProfitTrendPoint(_Record):
    """Daily profit alongside gross sales."""

    key: str
    profit: float = 0.0
    sales: float = 0.0


class ProfitabilityReport(_Record):
    """Everything the profit dashboard needs from one snapshot."""

    total_profit: float = 0.0
    average_margin_pct: float = 0.0
    products: tuple[ProfitabilityRecord, ...] = ()
    categories: tuple[ProfitabilityRecord, ...] = ()
    top_products: tuple[ProfitabilityRecord, ...] = ()
    total_items: int = 0
    items_with_cost: int = 0
    items_missing_cost: tuple[str, ...] = ()
    line_items_priced: int = 0

    @property
    def items_without_cost(self) -> int:
        return len(self.items_missing_cost)


class InsightKind(str, Enum):
    """Which heuristic produced an insight."""

    CATEGORY_CONCENTRATION = "category_concentration"
    RESTOCK = "restock"
    BEST_SELLER = "best_seller"
    TREND_UP = "trend_up"
    TREND_DOWN = "trend_down"


class Insight(_Record):
    """A short observation plus the numbers that triggered it."""

    kind: InsightKind
    text: str
    facts: dict[str, float | str] = Field(default_factory=dict)

    def __str__(self) -> str:
        return self.text
