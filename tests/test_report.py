"""
Tests for DataFrame report output.
"""

from datetime import datetime, timezone

import pandas as pd

from bitpal_ledger.analytics.report import (
    closed_position_groups_to_frame,
    closed_positions_to_frame,
    holdings_to_frame,
    summary_to_dict,
    transactions_to_frame,
)
from bitpal_ledger.data.schemas import (
    CLOSED_POSITIONS_SCHEMA,
    HOLDINGS_SCHEMA,
    TRANSACTIONS_SCHEMA,
)
from bitpal_ledger.models import Transaction
from bitpal_ledger.portfolio.valuation import value_portfolio


class TestFrames:
    """Tests for tabular rendering."""

    def test_holdings_frame(self, mixed_ledger, sample_prices):
        valuation = value_portfolio(mixed_ledger, sample_prices)

        df = holdings_to_frame(valuation.holdings)

        assert list(df.columns) == HOLDINGS_SCHEMA.all_columns
        assert list(df["asset_id"]) == ["bitcoin", "ethereum"]
        assert df["current_value"].sum() == 80000.0
        assert HOLDINGS_SCHEMA.validate_columns(list(df.columns)) == (True, [])

    def test_empty_holdings_frame(self):
        df = holdings_to_frame([])

        assert df.empty
        assert list(df.columns) == HOLDINGS_SCHEMA.all_columns

    def test_closed_positions_frame(self, mixed_ledger, sample_prices):
        valuation = value_portfolio(mixed_ledger, sample_prices)

        df = closed_positions_to_frame(valuation.closed_positions)

        assert list(df.columns) == CLOSED_POSITIONS_SCHEMA.all_columns
        assert list(df["realized_pnl"]) == [-500.0, 10000.0]
        assert list(df["num_transactions"]) == [2, 2]
        assert pd.api.types.is_datetime64_any_dtype(df["closed_date"])

    def test_closed_position_groups_frame(self, mixed_ledger, sample_prices):
        valuation = value_portfolio(mixed_ledger, sample_prices)

        df = closed_position_groups_to_frame(valuation.closed_position_groups)

        assert list(df["asset_id"]) == ["solana", "bitcoin"]
        assert list(df["cycle_count"]) == [1, 1]

    def test_transactions_frame_is_chronological(self, mixed_ledger):
        df = transactions_to_frame(reversed(mixed_ledger))

        assert list(df.columns) == TRANSACTIONS_SCHEMA.all_columns
        assert list(df["transaction_id"]) == [tx.transaction_id for tx in mixed_ledger]
        assert df["timestamp"].is_monotonic_increasing

    def test_timezone_aware_timestamps(self):
        tx = Transaction.create(
            "bitcoin", "BUY", "1", "40000",
            timestamp=datetime(2024, 1, 2, tzinfo=timezone.utc),
        )

        df = transactions_to_frame([tx])

        assert df["timestamp"].dt.tz is not None

    def test_notes_column_is_optional(self, make_tx):
        """Test that transactions without notes leave the notes column empty."""
        txs = [
            make_tx("bitcoin", "BUY", "1", "40000"),
            make_tx("bitcoin", "SELL", "0.5", "50000", notes="rebalance"),
        ]

        df = transactions_to_frame(txs)

        assert "notes" not in TRANSACTIONS_SCHEMA.required_columns
        assert "notes" in TRANSACTIONS_SCHEMA.all_columns
        assert df["notes"].isna().tolist() == [True, False]
        assert df.loc[1, "notes"] == "rebalance"


class TestSummaryToDict:
    """Tests for summary_to_dict."""

    def test_decimal_strings(self, mixed_ledger, sample_prices):
        summary = value_portfolio(mixed_ledger, sample_prices).summary

        result = summary_to_dict(summary)

        assert result["total_value"] == "80000"
        assert result["realized_pnl"] == "19500"
        assert result["holding_count"] == 2
        assert result["closed_position_count"] == 2
        assert result["total_closed_cost"] == "48000"
