"""
Analytics module for the portfolio ledger.

Provides P&L breakdowns, performer rankings and tabular report output.
"""

from bitpal_ledger.analytics.pnl import (
    get_top_performers,
    get_worst_performers,
    calculate_win_rate,
    calculate_realized_pnl_summary,
    calculate_pnl_by_asset,
)
from bitpal_ledger.analytics.report import (
    holdings_to_frame,
    closed_positions_to_frame,
    closed_position_groups_to_frame,
    transactions_to_frame,
    summary_to_dict,
)

__all__ = [
    "get_top_performers",
    "get_worst_performers",
    "calculate_win_rate",
    "calculate_realized_pnl_summary",
    "calculate_pnl_by_asset",
    "holdings_to_frame",
    "closed_positions_to_frame",
    "closed_position_groups_to_frame",
    "transactions_to_frame",
    "summary_to_dict",
]
