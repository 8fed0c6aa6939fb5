"""Tests for LedgerSettings, the YAML loader and get_active_config()."""

from pathlib import Path

import pytest
import yaml

from collateral_config import get_active_config
from collateral_config.loader import compute_checksum, load_yaml_file, parse_settings
from collateral_config.schema import LedgerSettings, SalesMetricsSource


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "ledger.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:
    def test_packaged_defaults(self):
        settings = get_active_config()
        assert settings.administrator == "ledger-admin"
        assert settings.blocks_per_day == 144
        assert settings.validity_period == 1008
        assert settings.analysis_window == 4320
        assert settings.min_analysis_window == 144
        assert settings.max_analysis_window == 52560
        assert settings.max_sensors_per_inventory == 10
        assert settings.max_inventories_per_reporter == 20
        assert settings.max_sensor_data_length == 500
        assert settings.sales_metrics_source == SalesMetricsSource.LEDGER

    def test_dataclass_defaults_match_packaged_file(self):
        assert get_active_config() == LedgerSettings(administrator="ledger-admin")

    def test_load_logs_checksum(self, captured_logs):
        settings = get_active_config()
        entry = next(
            r for r in captured_logs() if r["message"] == "collateral_config_loaded"
        )
        assert entry["checksum"] == compute_checksum(settings)


class TestLoader:
    def test_override_file(self, tmp_path):
        path = _write(
            tmp_path,
            {"ledger": {"administrator": "ops", "validity_period": 50,
                        "sales_metrics_source": "placeholder"}},
        )
        settings = get_active_config(path)
        assert settings.administrator == "ops"
        assert settings.validity_period == 50
        assert settings.sales_metrics_source == SalesMetricsSource.PLACEHOLDER

    def test_missing_section(self):
        with pytest.raises(KeyError):
            parse_settings({})

    def test_missing_administrator(self):
        with pytest.raises(KeyError):
            parse_settings({"ledger": {"validity_period": 5}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown"):
            parse_settings({"ledger": {"administrator": "a", "colour": "red"}})

    def test_non_integer(self):
        with pytest.raises(ValueError):
            parse_settings({"ledger": {"administrator": "a", "blocks_per_day": "144"}})

    def test_unknown_metrics_source(self):
        with pytest.raises(ValueError):
            parse_settings({"ledger": {"administrator": "a", "sales_metrics_source": "guess"}})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "absent.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}


class TestValidation:
    def test_empty_administrator(self):
        with pytest.raises(ValueError):
            LedgerSettings(administrator="")

    def test_window_outside_bounds(self):
        with pytest.raises(ValueError):
            LedgerSettings(administrator="a", analysis_window=100)

    def test_inverted_bounds(self):
        with pytest.raises(ValueError):
            LedgerSettings(administrator="a", min_analysis_window=500, max_analysis_window=400)

    def test_non_positive_capacity(self):
        with pytest.raises(ValueError):
            LedgerSettings(administrator="a", max_sensors_per_inventory=0)

    def test_with_overrides_validates(self):
        base = LedgerSettings(administrator="a")
        assert base.with_overrides(validity_period=10).validity_period == 10
        with pytest.raises(ValueError):
            base.with_overrides(blocks_per_day=0)

    def test_frozen(self):
        settings = LedgerSettings(administrator="a")
        with pytest.raises(AttributeError):
            settings.administrator = "b"

    def test_checksum_tracks_content(self):
        a = LedgerSettings(administrator="a")
        assert compute_checksum(a) == compute_checksum(LedgerSettings(administrator="a"))
        assert compute_checksum(a) != compute_checksum(a.with_overrides(validity_period=7))
