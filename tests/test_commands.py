"""Tests for the scan configuration loader."""

from pathlib import Path

import pytest
import yaml

from flowscan.commands.scan import load_scan_config
from flowscan.exceptions import ConfigError
from flowscan.types import EngineConfig, SelectionRule


def write_config(tmp_path: Path, config: dict) -> Path:
    path = tmp_path / "scan.yaml"
    path.write_text(yaml.safe_dump(config, allow_unicode=True), encoding="utf-8")
    return path


@pytest.fixture
def minimal_config() -> dict:
    """Smallest valid scan configuration."""
    return {
        "tickers": ["2330", "2603"],
        "prices": {"source": "yahoo"},
        "flows": {"source": "csv", "params": {"file_path": "flows.csv"}},
    }


class TestLoadScanConfig:
    """Tests for load_scan_config."""

    def test_minimal_config_uses_defaults(self, tmp_path: Path, minimal_config: dict) -> None:
        config = load_scan_config(write_config(tmp_path, minimal_config))

        assert config.tickers == ["2330", "2603"]
        assert config.prices.source == "yahoo"
        assert config.prices.params == {}
        assert config.flows.params == {"file_path": "flows.csv"}
        assert config.engine == EngineConfig()
        assert config.selection_rule is SelectionRule.BELOW_LONG_MA
        assert config.log_level == "INFO"
        assert config.names == {}

    def test_full_config(self, tmp_path: Path, minimal_config: dict) -> None:
        minimal_config.update(
            {
                "names": {"2330": "台積電"},
                "engine": {"momentum_ratio": 1.5, "flow_days": 10},
                "selection": {"rule": "between_mas"},
                "logging": {"level": "debug"},
            }
        )
        config = load_scan_config(write_config(tmp_path, minimal_config))

        assert config.names == {"2330": "台積電"}
        assert config.engine.momentum_ratio == 1.5
        assert config.engine.flow_days == 10
        assert config.selection_rule is SelectionRule.BETWEEN_MAS
        assert config.log_level == "DEBUG"

    def test_unquoted_ticker_codes_become_strings(self, tmp_path: Path) -> None:
        path = tmp_path / "scan.yaml"
        path.write_text(
            "tickers: [2330, 2603]\nprices: {source: yahoo}\nflows: {source: csv}\n",
            encoding="utf-8",
        )
        config = load_scan_config(path)

        assert config.tickers == ["2330", "2603"]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_scan_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "scan.yaml"
        path.write_text("tickers: [2330\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_scan_config(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "scan.yaml"
        path.write_text("- 2330\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            load_scan_config(path)

    @pytest.mark.parametrize("field", ["tickers", "prices", "flows"])
    def test_missing_required_field(self, tmp_path: Path, minimal_config: dict, field: str) -> None:
        del minimal_config[field]
        with pytest.raises(ConfigError, match=f"Missing required field: {field}"):
            load_scan_config(write_config(tmp_path, minimal_config))

    def test_empty_tickers(self, tmp_path: Path, minimal_config: dict) -> None:
        minimal_config["tickers"] = []
        with pytest.raises(ConfigError, match="non-empty list"):
            load_scan_config(write_config(tmp_path, minimal_config))

    def test_source_without_type(self, tmp_path: Path, minimal_config: dict) -> None:
        minimal_config["prices"] = {"params": {}}
        with pytest.raises(ConfigError, match="prices.source"):
            load_scan_config(write_config(tmp_path, minimal_config))

    def test_unknown_engine_setting(self, tmp_path: Path, minimal_config: dict) -> None:
        minimal_config["engine"] = {"rsi_window": 14}
        with pytest.raises(ConfigError, match="Unknown engine settings"):
            load_scan_config(write_config(tmp_path, minimal_config))

    def test_invalid_engine_windows(self, tmp_path: Path, minimal_config: dict) -> None:
        minimal_config["engine"] = {"short_window": 30}
        with pytest.raises(ConfigError, match="Invalid engine settings"):
            load_scan_config(write_config(tmp_path, minimal_config))

    def test_invalid_selection_rule(self, tmp_path: Path, minimal_config: dict) -> None:
        minimal_config["selection"] = {"rule": "above_ma"}
        with pytest.raises(ConfigError, match="Invalid selection rule"):
            load_scan_config(write_config(tmp_path, minimal_config))

    def test_invalid_log_level(self, tmp_path: Path, minimal_config: dict) -> None:
        minimal_config["logging"] = {"level": "VERBOSE"}
        with pytest.raises(ConfigError, match="Invalid log level"):
            load_scan_config(write_config(tmp_path, minimal_config))
