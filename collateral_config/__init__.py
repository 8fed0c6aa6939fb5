"""
collateral_config: single public entrypoint for ledger configuration.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_config()``.  Services receive the returned
    ``LedgerSettings`` by injection.

Audit relevance:
    Every successful ``get_active_config()`` call logs
    ``collateral_config_loaded`` with the settings checksum so an epoch's
    decisions can be tied back to the configuration that governed them.
"""

from __future__ import annotations

from pathlib import Path

from collateral_config.loader import compute_checksum, load_yaml_file, parse_settings
from collateral_config.schema import LedgerSettings, SalesMetricsSource
from collateral_kernel.logging_config import get_logger

logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"


def get_active_config(config_path: Path | None = None) -> LedgerSettings:
    """Load and validate ledger settings.

    Args:
        config_path: Override path to a YAML settings file.
            Defaults to collateral_config/defaults/ledger.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If required settings are missing.
        ValueError: If settings fail validation.
    """
    path = config_path or _DEFAULT_CONFIG_PATH
    settings = parse_settings(load_yaml_file(path))
    logger.info(
        "collateral_config_loaded",
        extra={
            "config_path": str(path),
            "checksum": compute_checksum(settings),
            "administrator": settings.administrator,
            "sales_metrics_source": settings.sales_metrics_source.value,
        },
    )
    return settings


__all__ = [
    "LedgerSettings",
    "SalesMetricsSource",
    "compute_checksum",
    "get_active_config",
]
