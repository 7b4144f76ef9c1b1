"""
Portfolio computation module for the ledger.

Provides cycle resolution, holdings aggregation and portfolio valuation
over an in-memory transaction snapshot.
"""

from bitpal_ledger.portfolio.cycles import (
    EPSILON,
    AssetResolution,
    calculate_partial_realized_gain,
    compute_closed_positions,
    group_closed_positions,
    open_cycle_transactions,
    resolve_asset,
    resolve_all,
    walk_cycles,
)
from bitpal_ledger.portfolio.holdings import (
    compute_holdings,
    get_holding_quantity,
    calculate_position_weights,
)
from bitpal_ledger.portfolio.valuation import (
    PortfolioValuation,
    summarize_portfolio,
    value_portfolio,
)

__all__ = [
    "EPSILON",
    "AssetResolution",
    "calculate_partial_realized_gain",
    "compute_closed_positions",
    "group_closed_positions",
    "open_cycle_transactions",
    "resolve_asset",
    "resolve_all",
    "walk_cycles",
    "compute_holdings",
    "get_holding_quantity",
    "calculate_position_weights",
    "PortfolioValuation",
    "summarize_portfolio",
    "value_portfolio",
]
