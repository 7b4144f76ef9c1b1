"""
Configuration loading and management for the portfolio ledger.

This module handles loading engine configuration from YAML files, environment
overrides and validation of configuration parameters.
"""

import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

import yaml

from bitpal_ledger.models import LedgerConfig
from bitpal_ledger.portfolio.holdings import HOLDINGS_SORT_KEYS


# Environment variable overriding decision_log_path
DECISION_LOG_ENV_VAR = "BITPAL_DECISION_LOG"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""
    pass


def load_ledger_config(config_path: str | Path) -> LedgerConfig:
    """
    Load ledger configuration from a YAML file.

    Every key is optional; missing keys take LedgerConfig defaults. The
    BITPAL_DECISION_LOG environment variable, when set, overrides
    decision_log_path.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        LedgerConfig object with validated settings

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigurationError(
            f"Configuration file must contain a mapping, got {type(raw_config).__name__}"
        )

    return _parse_ledger_config(raw_config)


def _parse_ledger_config(raw: dict[str, Any]) -> LedgerConfig:
    """
    Parse and validate raw configuration dictionary into LedgerConfig.

    Args:
        raw: Dictionary loaded from YAML

    Returns:
        Validated LedgerConfig

    Raises:
        ConfigurationError: If a field is invalid
    """
    defaults = LedgerConfig()

    epsilon = _parse_decimal(
        raw.get("epsilon", str(defaults.epsilon)),
        "epsilon",
        min_val=Decimal("0"),
        max_val=Decimal("1"),
    )
    if epsilon == Decimal("0"):
        raise ConfigurationError("epsilon must be greater than zero")

    holdings_sort = str(raw.get("holdings_sort", defaults.holdings_sort))
    if holdings_sort not in HOLDINGS_SORT_KEYS:
        raise ConfigurationError(
            f"holdings_sort must be one of {list(HOLDINGS_SORT_KEYS)}, got {holdings_sort}"
        )

    validate_sell_balance = _parse_bool(
        raw.get("validate_sell_balance", defaults.validate_sell_balance),
        "validate_sell_balance",
    )

    decision_log_path: Optional[str] = raw.get("decision_log_path")
    if decision_log_path is not None:
        decision_log_path = str(decision_log_path)

    # Environment overrides file (highest priority)
    if os.environ.get(DECISION_LOG_ENV_VAR):
        decision_log_path = os.environ[DECISION_LOG_ENV_VAR]

    return LedgerConfig(
        epsilon=epsilon,
        holdings_sort=holdings_sort,
        validate_sell_balance=validate_sell_balance,
        decision_log_path=decision_log_path,
    )


def _parse_bool(value: Any, field_name: str) -> bool:
    """
    Parse a boolean from YAML bool or common string spellings.

    Raises:
        ConfigurationError: If the value is not a recognizable boolean
    """
    if isinstance(value, bool):
        return value

    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False

    raise ConfigurationError(f"Invalid boolean value for {field_name}: {value}")


def _parse_decimal(
    value: Any,
    field_name: str,
    min_val: Decimal | None = None,
    max_val: Decimal | None = None,
) -> Decimal:
    """
    Parse a decimal value with optional range validation.

    Args:
        value: The value to parse
        field_name: Name of the field for error messages
        min_val: Minimum allowed value (inclusive)
        max_val: Maximum allowed value (inclusive)

    Returns:
        Parsed Decimal

    Raises:
        ConfigurationError: If the value is invalid or out of range
    """
    try:
        decimal_value = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ConfigurationError(f"Invalid decimal value for {field_name}: {value}")

    if not decimal_value.is_finite():
        raise ConfigurationError(f"Invalid decimal value for {field_name}: {value}")

    if min_val is not None and decimal_value < min_val:
        raise ConfigurationError(
            f"{field_name} must be >= {min_val}, got {decimal_value}"
        )

    if max_val is not None and decimal_value > max_val:
        raise ConfigurationError(
            f"{field_name} must be <= {max_val}, got {decimal_value}"
        )

    return decimal_value


def create_default_config(
    output_path: str | Path | None = None,
) -> LedgerConfig:
    """
    Create a ledger config with default parameters.

    Useful for programmatic configuration without a YAML file.

    Args:
        output_path: Optional path to write config YAML

    Returns:
        LedgerConfig with default settings
    """
    config = LedgerConfig()

    if output_path:
        write_config(config, output_path)

    return config


def write_config(config: LedgerConfig, output_path: str | Path) -> None:
    """
    Write a LedgerConfig to a YAML file.

    Args:
        config: The configuration to write
        output_path: Path to write the YAML file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = {
        "epsilon": str(config.epsilon),
        "holdings_sort": config.holdings_sort,
        "validate_sell_balance": config.validate_sell_balance,
        "decision_log_path": config.decision_log_path,
    }

    with open(output_path, "w") as f:
        yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
