"""Record normalizer.

Coerces raw, partially-malformed dashboard records (JSON objects from the
data-access layer, CSV rows, ad-hoc dicts) into the frozen models in
:mod:`inventory_pro.models`. Nothing here raises for bad input: a field that
cannot be parsed falls back to a safe default, and a record with no identity
and nothing recoverable is dropped from its batch.

Both the dashboard's camelCase keys (``costPrice``, ``itemName``) and
snake_case keys are accepted.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from typing import Any

from pydantic import ValidationError

from .models import (
    InventoryItem,
    LossRecord,
    ProfitType,
    SaleLineItem,
    SaleRecord,
)

logger = logging.getLogger("inventory_pro.normalizer")

UNCATEGORIZED = "Uncategorized"
DEFAULT_INVENTORY_STATUS = "Active"
DEFAULT_SALE_STATUS = "completed"
UNKNOWN = "Unknown"
UNKNOWN_ITEM = "Unknown Item"
DEFAULT_UNIT = "ea"

# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------


def coerce_number(value: Any, default: float = 0.0) -> float:
    """Parse a number or numeric-looking text, falling back to ``default``.

    Handles ``$`` signs, thousands separators and accounting negatives
    such as ``(12.50)``. Booleans, NaN, infinities and integers too large
    for a float are rejected.
    """
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        try:
            result = float(value)
        except OverflowError:
            return default
    elif isinstance(value, str):
        s = value.strip().strip('"').strip("'")
        if not s or s == "-":
            return default
        s = s.replace("$", "").replace(",", "")
        if s.startswith("(") and s.endswith(")"):
            s = "-" + s[1:-1]
        try:
            result = float(s)
        except ValueError:
            return default
    else:
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def coerce_int(value: Any, default: int = 0) -> int:
    """Like :func:`coerce_number` but truncated toward zero."""
    number = coerce_number(value, default=float(default))
    return int(number)


def coerce_text(value: Any, default: str) -> str:
    if value is None or isinstance(value, (Mapping, list, tuple, set)):
        return default
    text = str(value).strip()
    return text or default


def _optional_text(value: Any) -> str | None:
    text = coerce_text(value, "")
    return text or None


def _optional_number(value: Any) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = coerce_number(value, default=math.nan)
    return None if math.isnan(number) else number


# ---------------------------------------------------------------------------
# Timestamp parsing
# ---------------------------------------------------------------------------

_DATE_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%Y/%m/%d",
    "%Y%m%d",
    "%d-%b-%Y",
    "%b %d, %Y",
    "%m-%d-%Y",
]


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp from a datetime, date, ISO-8601 or POS date string."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    s = value.strip().strip('"').strip("'")
    if not s:
        return None
    iso = s[:-1] + "+00:00" if s.endswith(("Z", "z")) else s
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    return None


def to_utc_date(ts: datetime) -> date:
    """Calendar date of a timestamp; aware timestamps are read in UTC."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date()


# ---------------------------------------------------------------------------
# Field lookup
# ---------------------------------------------------------------------------


def _pick(raw: Mapping, *keys: str) -> Any:
    """First present, non-None value among ``keys``."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _identity(raw: Mapping, *keys: str) -> str | None:
    value = _pick(raw, *keys)
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _optional_text(value)


def _as_batch(batch: Any) -> list:
    if batch is None or isinstance(batch, (str, bytes, Mapping)):
        return []
    if not isinstance(batch, Iterable):
        return []
    return list(batch)


# ---------------------------------------------------------------------------
# Record normalizers
# ---------------------------------------------------------------------------


def normalize_line_item(raw: Any) -> SaleLineItem | None:
    """Normalize one sale line; lines with no product and no name are dropped."""
    if not isinstance(raw, Mapping):
        return None
    product_id = _identity(raw, "productId", "product_id", "id")
    name = _optional_text(_pick(raw, "name", "itemName", "item_name"))
    if product_id is None and name is None:
        return None
    quantity = max(coerce_number(_pick(raw, "quantity", "qty")), 0.0)
    unit_price = coerce_number(_pick(raw, "price", "unitPrice", "unit_price"))
    subtotal = _optional_number(_pick(raw, "subtotal", "lineSubtotal", "line_subtotal"))
    return SaleLineItem(
        product_id=product_id or name,
        name=name or UNKNOWN_ITEM,
        quantity=quantity,
        unit_price=unit_price,
        subtotal=subtotal if subtotal is not None else quantity * unit_price,
        unit=coerce_text(raw.get("unit"), DEFAULT_UNIT),
    )


def normalize_sale(raw: Any) -> SaleRecord | None:
    if not isinstance(raw, Mapping):
        return None
    sale_id = _identity(raw, "id", "transactionId", "transaction_id")
    raw_items = _pick(raw, "items", "lineItems", "line_items")
    items = tuple(
        item
        for item in (normalize_line_item(r) for r in _as_batch(raw_items))
        if item is not None
    )
    amount = _pick(raw, "amount", "total")
    timestamp = parse_timestamp(_pick(raw, "date", "timestamp", "createdAt"))

    if sale_id is None:
        if amount is None and timestamp is None and not items:
            logger.debug("Dropping sale with no identity or data: %r", raw)
            return None
        sale_id = UNKNOWN

    try:
        return SaleRecord(
            id=sale_id,
            cashier=coerce_text(raw.get("cashier"), UNKNOWN),
            timestamp=timestamp,
            amount=coerce_number(amount),
            status=coerce_text(raw.get("status"), DEFAULT_SALE_STATUS),
            items=items,
            refunded_by=_optional_text(_pick(raw, "refundedBy", "refunded_by")),
            refund_date=parse_timestamp(_pick(raw, "refundDate", "refund_date")),
        )
    except ValidationError as exc:
        logger.debug("Dropping sale %s: %s", sale_id, exc)
        return None


def _profit_type(value: Any) -> ProfitType | None:
    text = coerce_text(value, "").lower()
    try:
        return ProfitType(text)
    except ValueError:
        return None


def normalize_inventory_item(raw: Any) -> InventoryItem | None:
    if not isinstance(raw, Mapping):
        return None
    item_id = _identity(raw, "id", "itemId", "item_id")
    sku = _optional_text(raw.get("sku"))
    name = _optional_text(raw.get("name"))

    if item_id is None:
        item_id = sku or name
    if item_id is None:
        if _pick(raw, "category", "price", "stock", "quantity") is None:
            logger.debug("Dropping inventory item with no identity or data: %r", raw)
            return None
        item_id = UNKNOWN

    try:
        return InventoryItem(
            id=item_id,
            name=name or UNKNOWN_ITEM,
            sku=sku or "",
            category=coerce_text(raw.get("category"), UNCATEGORIZED),
            stock=coerce_number(_pick(raw, "stock", "quantity")),
            unit=coerce_text(raw.get("unit"), DEFAULT_UNIT),
            price=coerce_number(raw.get("price")),
            cost_price=_optional_number(_pick(raw, "costPrice", "cost_price")),
            profit_margin=_optional_number(_pick(raw, "profitMargin", "profit_margin")),
            profit_type=_profit_type(_pick(raw, "profitType", "profit_type")),
            threshold=coerce_number(raw.get("threshold")),
            status=coerce_text(raw.get("status"), DEFAULT_INVENTORY_STATUS),
        )
    except ValidationError as exc:
        logger.debug("Dropping inventory item %s: %s", item_id, exc)
        return None


def normalize_loss(raw: Any) -> LossRecord | None:
    if not isinstance(raw, Mapping):
        return None
    loss_id = _identity(raw, "id", "lossId", "loss_id")
    item_name = _optional_text(_pick(raw, "itemName", "item_name", "name"))
    value = _pick(raw, "value", "amount")

    if loss_id is None:
        if item_name is None and value is None:
            logger.debug("Dropping loss with no identity or data: %r", raw)
            return None
        loss_id = UNKNOWN

    return LossRecord(
        id=loss_id,
        timestamp=parse_timestamp(_pick(raw, "date", "timestamp")),
        item_name=item_name or UNKNOWN_ITEM,
        inventory_item_id=_identity(raw, "inventoryItemId", "inventory_item_id"),
        quantity=coerce_number(raw.get("quantity")),
        reason=coerce_text(raw.get("reason"), UNKNOWN),
        recorded_by=coerce_text(_pick(raw, "recordedBy", "recorded_by"), UNKNOWN),
        value=coerce_number(value),
    )


def _normalize_batch(batch: Any, normalize, model: type, label: str) -> tuple:
    rows = _as_batch(batch)
    records = []
    for raw in rows:
        if isinstance(raw, model):
            records.append(raw)
            continue
        record = normalize(raw)
        if record is not None:
            records.append(record)
    dropped = len(rows) - len(records)
    if dropped:
        logger.debug("Normalized %d %s (dropped %d)", len(records), label, dropped)
    return tuple(records)


def normalize_sales(batch: Any) -> tuple[SaleRecord, ...]:
    """Normalize a batch of sales; non-sequence input gives an empty batch."""
    return _normalize_batch(batch, normalize_sale, SaleRecord, "sales")


def normalize_inventory(batch: Any) -> tuple[InventoryItem, ...]:
    return _normalize_batch(batch, normalize_inventory_item, InventoryItem, "inventory items")


def normalize_losses(batch: Any) -> tuple[LossRecord, ...]:
    return _normalize_batch(batch, normalize_loss, LossRecord, "losses")
