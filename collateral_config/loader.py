"""
Configuration Loader (``collateral_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen
``LedgerSettings``.  The single public entry point for runtime config is
``collateral_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``ledger`` section or ``administrator`` -> ``KeyError``.
* Unknown keys or out-of-range values -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from collateral_config.schema import LedgerSettings, SalesMetricsSource
from collateral_kernel.utils.hashing import hash_payload

_INT_FIELDS = (
    "blocks_per_day",
    "validity_period",
    "analysis_window",
    "min_analysis_window",
    "max_analysis_window",
    "max_sensors_per_inventory",
    "max_inventories_per_reporter",
    "max_sensor_data_length",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse the ``ledger`` section of a settings document.

    Raises:
        KeyError: if ``ledger`` or ``ledger.administrator`` is missing.
        ValueError: on unknown keys, non-integer numbers, or invalid ranges.
    """
    section = data["ledger"]
    known = {"administrator", "sales_metrics_source", *_INT_FIELDS}
    unknown = set(section) - known
    if unknown:
        raise ValueError(f"Unknown ledger settings: {sorted(unknown)}")

    kwargs: dict[str, Any] = {"administrator": str(section["administrator"])}
    for name in _INT_FIELDS:
        if name in section:
            value = section[name]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            kwargs[name] = value
    if "sales_metrics_source" in section:
        kwargs["sales_metrics_source"] = SalesMetricsSource(section["sales_metrics_source"])

    return LedgerSettings(**kwargs)


def compute_checksum(settings: LedgerSettings) -> str:
    """Deterministic SHA-256 of the settings, for change detection."""
    return hash_payload(settings.as_dict())
