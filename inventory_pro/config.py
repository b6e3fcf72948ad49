"""Analytics configuration.

Loads from environment variables (prefix ``INVENTORY_PRO_``) and a .env
file using pydantic-settings.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings

from .time_buckets import ReportPeriod


class AnalyticsSettings(BaseSettings):
    """Configuration for the analytics engine, CLI and sidecar.

    All values can be set via environment variables or .env file,
    e.g. ``INVENTORY_PRO_STORE_NAME=Main Street``.
    """

    # ----- Reports -----
    store_name: str = Field(
        default="Inventory Pro",
        description="Store name printed on exported reports.",
    )
    report_output_dir: str = Field(
        default="reports",
        description="Directory exported report files are written to.",
    )

    # ----- Analytics -----
    default_period: ReportPeriod = Field(
        default=ReportPeriod.MONTH,
        description="Trend window used when a request does not name one.",
    )
    top_products: int = Field(
        default=10,
        ge=0,
        description="Number of best-selling products to list.",
    )
    top_profitable: int = Field(
        default=5,
        ge=0,
        description="Number of most profitable products to list.",
    )
    top_loss_items: int = Field(
        default=5,
        ge=0,
        description="Number of most frequently lost items to list.",
    )

    # ----- Server -----
    sidecar_host: str = Field(default="0.0.0.0", description="Bind host.")
    sidecar_port: int = Field(default=8002, description="Bind port.")
    sidecar_dev_mode: bool = Field(
        default=False,
        description="Dev mode: enables CORS wildcard and error details.",
    )

    model_config = {
        "env_prefix": "INVENTORY_PRO_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> AnalyticsSettings:
    """Get cached settings singleton."""
    return AnalyticsSettings()
