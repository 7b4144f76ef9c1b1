"""
Tests for portfolio valuation and summary calculations.
"""

from decimal import Decimal

from bitpal_ledger.portfolio.valuation import (
    calculate_portfolio_return,
    summarize_portfolio,
    value_portfolio,
)
from bitpal_ledger.models import PortfolioSummary


class TestValuePortfolio:
    """Tests for the value_portfolio function."""

    def test_mixed_ledger_summary(self, mixed_ledger, sample_prices):
        """Test portfolio totals over closed, partial and open cycles."""
        valuation = value_portfolio(mixed_ledger, sample_prices)
        summary = valuation.summary

        assert summary.total_value == Decimal("80000")
        assert summary.total_cost == Decimal("60000")
        assert summary.unrealized_pnl == Decimal("20000")
        assert summary.closed_realized_pnl == Decimal("9500")
        assert summary.partial_realized_pnl == Decimal("10000")
        assert summary.realized_pnl == Decimal("19500")
        assert summary.total_pnl == Decimal("39500")
        assert summary.holding_count == 2

    def test_summary_equals_sum_of_parts(self, mixed_ledger, sample_prices):
        """Test that summary totals decompose into holdings and cycles."""
        valuation = value_portfolio(mixed_ledger, sample_prices)
        summary = valuation.summary

        assert summary.total_value == sum(h.current_value for h in valuation.holdings)
        assert summary.unrealized_pnl == sum(h.unrealized_pnl for h in valuation.holdings)
        assert summary.closed_realized_pnl == sum(
            p.realized_pnl for p in valuation.closed_positions
        )
        assert summary.partial_realized_pnl == sum(
            r.partial_realized_gain for r in valuation.resolutions.values()
        )
        assert summary.total_pnl == summary.unrealized_pnl + summary.realized_pnl

    def test_unrealized_percent(self, mixed_ledger, sample_prices):
        """Test aggregate unrealized percentage against open cost."""
        summary = value_portfolio(mixed_ledger, sample_prices).summary

        expected = (Decimal("80000") / Decimal("60000") - 1) * 100
        assert summary.unrealized_pnl_percent == expected

    def test_closed_positions_newest_first(self, mixed_ledger, sample_prices):
        """Test closed positions and their per-asset groups."""
        valuation = value_portfolio(mixed_ledger, sample_prices)

        assert [p.asset_id for p in valuation.closed_positions] == ["solana", "bitcoin"]
        assert [g.asset_id for g in valuation.closed_position_groups] == ["solana", "bitcoin"]

    def test_realized_includes_assets_without_holdings(self, make_tx, sample_prices):
        """Test that a fully closed asset still counts toward realized P&L."""
        txs = [
            make_tx("bitcoin", "BUY", "1", "40000"),
            make_tx("bitcoin", "SELL", "1", "50000"),
        ]

        summary = value_portfolio(txs, sample_prices).summary

        assert not summary.is_empty
        assert summary.holding_count == 0
        assert summary.closed_position_count == 1
        assert summary.total_closed_cost == Decimal("40000")
        assert summary.total_pnl_percent == Decimal("25")
        assert summary.total_value == Decimal("0")
        assert summary.realized_pnl == Decimal("10000")
        assert summary.total_pnl == Decimal("10000")

    def test_unpriced_asset_still_realizes(self, make_tx, bitcoin_quote):
        """Test that realized P&L of an unpriced asset is still counted."""
        txs = [
            make_tx("dogecoin", "BUY", "1000", "0.10"),
            make_tx("dogecoin", "SELL", "500", "0.12"),
        ]

        valuation = value_portfolio(txs, {"bitcoin": bitcoin_quote})

        assert valuation.holdings == []
        assert valuation.summary.partial_realized_pnl == Decimal("10")

    def test_empty_ledger(self):
        """Test that an empty ledger values to zero everywhere."""
        valuation = value_portfolio([], {})

        assert valuation.holdings == []
        assert valuation.closed_positions == []
        assert valuation.closed_position_groups == []
        assert valuation.summary.total_value == Decimal("0")
        assert valuation.summary.total_pnl == Decimal("0")
        assert valuation.summary.unrealized_pnl_percent == Decimal("0")
        assert valuation.summary.is_empty
        assert valuation.summary.total_pnl_percent == Decimal("0")

    def test_valuation_ignores_input_order(self, mixed_ledger, sample_prices):
        """Test that shuffled input gives the same summary."""
        forward = value_portfolio(mixed_ledger, sample_prices).summary
        backward = value_portfolio(list(reversed(mixed_ledger)), sample_prices).summary

        assert forward == backward


class TestSummarizePortfolio:
    """Tests for summarize_portfolio."""

    def test_no_holdings_no_resolutions(self):
        summary = summarize_portfolio([], [])

        assert summary == PortfolioSummary(
            total_value=Decimal("0"),
            unrealized_pnl=Decimal("0"),
            realized_pnl=Decimal("0"),
            total_pnl=Decimal("0"),
        )


class TestCalculatePortfolioReturn:
    """Tests for calculate_portfolio_return."""

    def test_return_on_open_and_closed_cost(self, mixed_ledger, sample_prices):
        """Test return over open cost (60k) plus closed cycle cost (48k)."""
        summary = value_portfolio(mixed_ledger, sample_prices).summary

        result = calculate_portfolio_return(summary)

        assert summary.total_closed_cost == Decimal("48000")
        assert summary.closed_position_count == 2
        assert result == Decimal("39500") / Decimal("108000")

    def test_return_with_only_closed_cycles(self, make_tx, sample_prices):
        """Buy 1 @ 40k, sell 1 @ 50k: a 25% return with nothing held."""
        txs = [
            make_tx("bitcoin", "BUY", "1", "40000"),
            make_tx("bitcoin", "SELL", "1", "50000"),
        ]
        summary = value_portfolio(txs, sample_prices).summary

        assert calculate_portfolio_return(summary) == Decimal("0.25")

    def test_zero_cost_returns_zero(self):
        summary = PortfolioSummary(
            total_value=Decimal("0"),
            unrealized_pnl=Decimal("0"),
            realized_pnl=Decimal("500"),
            total_pnl=Decimal("500"),
        )

        assert calculate_portfolio_return(summary) == Decimal("0")
