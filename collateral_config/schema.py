"""
LedgerSettings schema.

The human-authored YAML settings are parsed into this frozen dataclass by
the loader.  Services receive a LedgerSettings instance by injection and
never read files or environment variables themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class SalesMetricsSource(str, Enum):
    """Where analyze_inventory_velocity takes its window totals from."""

    LEDGER = "ledger"
    PLACEHOLDER = "placeholder"


@dataclass(frozen=True)
class LedgerSettings:
    """Deployment-time settings for both engines."""

    administrator: str
    blocks_per_day: int = 144
    validity_period: int = 1008
    analysis_window: int = 4320
    min_analysis_window: int = 144
    max_analysis_window: int = 52560
    max_sensors_per_inventory: int = 10
    max_inventories_per_reporter: int = 20
    max_sensor_data_length: int = 500
    sales_metrics_source: SalesMetricsSource = SalesMetricsSource.LEDGER

    def __post_init__(self) -> None:
        if not isinstance(self.sales_metrics_source, SalesMetricsSource):
            object.__setattr__(
                self,
                "sales_metrics_source",
                SalesMetricsSource(self.sales_metrics_source),
            )
        if not self.administrator:
            raise ValueError("administrator must be a non-empty identity")
        if self.blocks_per_day <= 0:
            raise ValueError(f"blocks_per_day must be positive, got {self.blocks_per_day}")
        if self.validity_period <= 0:
            raise ValueError(f"validity_period must be positive, got {self.validity_period}")
        if not 0 < self.min_analysis_window <= self.max_analysis_window:
            raise ValueError(
                "analysis window bounds must satisfy 0 < min <= max, got "
                f"[{self.min_analysis_window}, {self.max_analysis_window}]"
            )
        if not self.min_analysis_window <= self.analysis_window <= self.max_analysis_window:
            raise ValueError(
                f"analysis_window {self.analysis_window} outside "
                f"[{self.min_analysis_window}, {self.max_analysis_window}]"
            )
        for name in (
            "max_sensors_per_inventory",
            "max_inventories_per_reporter",
            "max_sensor_data_length",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    def with_overrides(self, **changes: Any) -> LedgerSettings:
        """Return a validated copy with some fields replaced."""
        return replace(self, **changes)

    def as_dict(self) -> dict[str, Any]:
        return {
            "administrator": self.administrator,
            "blocks_per_day": self.blocks_per_day,
            "validity_period": self.validity_period,
            "analysis_window": self.analysis_window,
            "min_analysis_window": self.min_analysis_window,
            "max_analysis_window": self.max_analysis_window,
            "max_sensors_per_inventory": self.max_sensors_per_inventory,
            "max_inventories_per_reporter": self.max_inventories_per_reporter,
            "max_sensor_data_length": self.max_sensor_data_length,
            "sales_metrics_source": self.sales_metrics_source.value,
        }
