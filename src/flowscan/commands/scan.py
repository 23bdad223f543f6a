"""Configuration loading for the scan command.

Example config file (scan.yaml):

    tickers:
      - "2330"
      - "2603"
    names:                      # Optional, used before any other lookup
      "2330": "台積電"
    prices:
      source: "yahoo"           # yahoo, csv or fallback
      params:
        suffix: ".TW"
    flows:
      source: "csv"
      params:
        file_path: "institutional.csv"
    engine:                     # Optional, any EngineConfig field
      momentum_ratio: 1.2
      price_days: 30
      flow_days: 5
    selection:
      rule: "below_long_ma"     # or "between_mas"
    logging:
      level: "INFO"
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from flowscan.exceptions import ConfigError
from flowscan.types import (EngineConfig, ScanConfig, SelectionRule,
                            SourceSpec, TickerId)

# Valid log levels
VALID_LOG_LEVELS = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


def _parse_source(raw: Any, field: str) -> SourceSpec:
    """Parse a ``{source, params}`` mapping.

    :param raw: Raw YAML value.
    :param field: Field name used in error messages.
    :raises ConfigError: If the mapping is malformed.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"'{field}' must be a mapping")
    if "source" not in raw or not isinstance(raw["source"], str):
        raise ConfigError(f"'{field}.source' is required and must be a string")

    params = raw.get("params", {})
    if params is None:
        params = {}
    if not isinstance(params, dict):
        raise ConfigError(f"'{field}.params' must be a mapping")

    return SourceSpec(source=raw["source"], params=params)


def _parse_engine(raw: Any) -> EngineConfig:
    if raw is None:
        return EngineConfig()
    if not isinstance(raw, dict):
        raise ConfigError("'engine' must be a mapping")

    unknown = set(raw) - set(EngineConfig.model_fields)
    if unknown:
        raise ConfigError(f"Unknown engine settings: {sorted(unknown)}")

    try:
        return EngineConfig(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid engine settings: {e}") from e


def load_scan_config(config_path: str | Path) -> ScanConfig:
    """Parse and validate a scan configuration file.

    :param config_path: Path to YAML configuration file.
    :returns: Validated ScanConfig object.
    :raises ConfigError: If file cannot be read or config is invalid.
    """
    config_path = Path(config_path)

    # Read and parse YAML
    try:
        with open(config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {config_path}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Configuration must be a YAML mapping")

    # Validate required fields
    required_fields = ["tickers", "prices", "flows"]
    for field in required_fields:
        if field not in raw_config:
            raise ConfigError(f"Missing required field: {field}")

    # Parse tickers; YAML may read unquoted codes as integers
    raw_tickers = raw_config["tickers"]
    if not isinstance(raw_tickers, list) or len(raw_tickers) == 0:
        raise ConfigError("'tickers' must be a non-empty list")
    tickers = [TickerId(str(t).strip()) for t in raw_tickers if str(t).strip()]
    if not tickers:
        raise ConfigError("'tickers' must contain at least one non-blank code")

    # Parse names (optional)
    raw_names = raw_config.get("names") or {}
    if not isinstance(raw_names, dict):
        raise ConfigError("'names' must be a mapping of ticker to name")
    names = {str(k).strip(): str(v).strip() for k, v in raw_names.items()}

    prices = _parse_source(raw_config["prices"], "prices")
    flows = _parse_source(raw_config["flows"], "flows")
    engine = _parse_engine(raw_config.get("engine"))

    # Parse selection (optional)
    raw_selection = raw_config.get("selection") or {}
    if not isinstance(raw_selection, dict):
        raise ConfigError("'selection' must be a mapping")
    raw_rule = raw_selection.get("rule", SelectionRule.BELOW_LONG_MA.value)
    try:
        selection_rule = SelectionRule(raw_rule)
    except ValueError as e:
        raise ConfigError(
            f"Invalid selection rule '{raw_rule}'. "
            f"Valid options: {sorted(r.value for r in SelectionRule)}"
        ) from e

    # Parse logging (optional)
    raw_logging = raw_config.get("logging") or {}
    if not isinstance(raw_logging, dict):
        raise ConfigError("'logging' must be a mapping")

    log_level = str(raw_logging.get("level", "INFO")).upper()
    if log_level not in VALID_LOG_LEVELS:
        raise ConfigError(
            f"Invalid log level '{log_level}'. "
            f"Valid options: {sorted(VALID_LOG_LEVELS)}"
        )

    return ScanConfig(
        tickers=tickers,
        names=names,
        prices=prices,
        flows=flows,
        engine=engine,
        selection_rule=selection_rule,
        log_level=log_level,
    )
