"""
Tests for ledger configuration loading.
"""

from decimal import Decimal

import pytest

from bitpal_ledger.config import (
    DECISION_LOG_ENV_VAR,
    ConfigurationError,
    create_default_config,
    load_ledger_config,
    write_config,
)
from bitpal_ledger.models import LedgerConfig


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    monkeypatch.delenv(DECISION_LOG_ENV_VAR, raising=False)


class TestLoadLedgerConfig:
    """Tests for load_ledger_config."""

    def test_full_config(self, temp_output_dir):
        path = temp_output_dir / "ledger.yaml"
        path.write_text(
            "epsilon: '0.000001'\n"
            "holdings_sort: asset_id\n"
            "validate_sell_balance: false\n"
            "decision_log_path: logs/decisions.jsonl\n"
        )

        config = load_ledger_config(path)

        assert config.epsilon == Decimal("0.000001")
        assert config.holdings_sort == "asset_id"
        assert config.validate_sell_balance is False
        assert config.decision_log_path == "logs/decisions.jsonl"

    def test_empty_file_uses_defaults(self, temp_output_dir):
        path = temp_output_dir / "ledger.yaml"
        path.write_text("")

        assert load_ledger_config(path) == LedgerConfig()

    def test_missing_file(self, temp_output_dir):
        with pytest.raises(ConfigurationError, match="not found"):
            load_ledger_config(temp_output_dir / "missing.yaml")

    def test_invalid_yaml(self, temp_output_dir):
        path = temp_output_dir / "ledger.yaml"
        path.write_text("epsilon: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_ledger_config(path)

    def test_non_mapping_rejected(self, temp_output_dir):
        path = temp_output_dir / "ledger.yaml"
        path.write_text("- epsilon\n- holdings_sort\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_ledger_config(path)

    @pytest.mark.parametrize("epsilon", ["0", "-0.1", "2", "abc"])
    def test_invalid_epsilon(self, temp_output_dir, epsilon):
        path = temp_output_dir / "ledger.yaml"
        path.write_text(f"epsilon: '{epsilon}'\n")

        with pytest.raises(ConfigurationError):
            load_ledger_config(path)

    def test_invalid_holdings_sort(self, temp_output_dir):
        path = temp_output_dir / "ledger.yaml"
        path.write_text("holdings_sort: pnl\n")

        with pytest.raises(ConfigurationError, match="holdings_sort"):
            load_ledger_config(path)

    @pytest.mark.parametrize("raw,expected", [("'yes'", True), ("'off'", False), ("true", True)])
    def test_bool_spellings(self, temp_output_dir, raw, expected):
        path = temp_output_dir / "ledger.yaml"
        path.write_text(f"validate_sell_balance: {raw}\n")

        assert load_ledger_config(path).validate_sell_balance is expected

    def test_invalid_bool(self, temp_output_dir):
        path = temp_output_dir / "ledger.yaml"
        path.write_text("validate_sell_balance: sometimes\n")

        with pytest.raises(ConfigurationError, match="validate_sell_balance"):
            load_ledger_config(path)

    def test_env_overrides_decision_log(self, temp_output_dir, monkeypatch):
        path = temp_output_dir / "ledger.yaml"
        path.write_text("decision_log_path: from_file.jsonl\n")
        monkeypatch.setenv(DECISION_LOG_ENV_VAR, "/tmp/from_env.jsonl")

        assert load_ledger_config(path).decision_log_path == "/tmp/from_env.jsonl"


class TestWriteConfig:
    """Tests for writing configuration files."""

    def test_write_then_load(self, temp_output_dir):
        config = LedgerConfig(
            epsilon=Decimal("0.0001"),
            holdings_sort="asset_id",
            validate_sell_balance=False,
        )
        path = temp_output_dir / "nested" / "ledger.yaml"

        write_config(config, path)

        assert load_ledger_config(path) == config

    def test_create_default_config(self, temp_output_dir):
        path = temp_output_dir / "default.yaml"

        config = create_default_config(path)

        assert config == LedgerConfig()
        assert path.exists()
        assert load_ledger_config(path) == config
