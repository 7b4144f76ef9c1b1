"""
P&L (Profit and Loss) analytics over holdings and closed positions.

This module provides performer rankings, win/loss statistics for closed
cycles and per-asset P&L breakdowns built on a PortfolioValuation.
"""

from decimal import Decimal
from typing import Iterable

from bitpal_ledger.models import (
    ClosedPosition,
    Holding,
    ZERO,
)
from bitpal_ledger.portfolio.cycles import AssetResolution
from bitpal_ledger.portfolio.valuation import PortfolioValuation


def get_top_performers(
    holdings: Iterable[Holding],
    n: int = 5,
) -> list[Holding]:
    """
    Get the best open holdings by unrealized P&L percentage.

    Args:
        holdings: Open holdings
        n: Number of holdings to return

    Returns:
        Top n holdings, best first
    """
    return sorted(holdings, key=lambda h: h.unrealized_pnl_percent, reverse=True)[:n]


def get_worst_performers(
    holdings: Iterable[Holding],
    n: int = 5,
) -> list[Holding]:
    """
    Get the worst open holdings by unrealized P&L percentage.

    Args:
        holdings: Open holdings
        n: Number of holdings to return

    Returns:
        Bottom n holdings, worst first
    """
    return sorted(holdings, key=lambda h: h.unrealized_pnl_percent)[:n]


def calculate_win_rate(
    closed_positions: Iterable[ClosedPosition],
) -> dict[str, Decimal]:
    """
    Calculate win/loss statistics over closed cycles.

    Args:
        closed_positions: Closed positions

    Returns:
        Dictionary with win rate statistics
    """
    positions = list(closed_positions)
    if not positions:
        return {
            "win_count": 0,
            "loss_count": 0,
            "breakeven_count": 0,
            "win_rate": ZERO,
            "avg_win": ZERO,
            "avg_loss": ZERO,
        }

    winners = [p for p in positions if p.realized_pnl > ZERO]
    losers = [p for p in positions if p.realized_pnl < ZERO]
    breakeven = [p for p in positions if p.realized_pnl == ZERO]

    win_rate = Decimal(len(winners)) / Decimal(len(positions))

    avg_win = ZERO
    if winners:
        avg_win = sum((p.realized_pnl for p in winners), ZERO) / Decimal(len(winners))

    avg_loss = ZERO
    if losers:
        avg_loss = sum((p.realized_pnl for p in losers), ZERO) / Decimal(len(losers))

    return {
        "win_count": len(winners),
        "loss_count": len(losers),
        "breakeven_count": len(breakeven),
        "win_rate": win_rate,
        "avg_win": avg_win,
        "avg_loss": avg_loss,
    }


def calculate_realized_pnl_summary(
    resolutions: Iterable[AssetResolution],
) -> dict[str, Decimal]:
    """
    Calculate realized P&L totals from cycle resolutions.

    Args:
        resolutions: Cycle resolution of each asset

    Returns:
        Dictionary with realized P&L summary:
        - closed_realized_pnl: P&L of fully closed cycles
        - partial_realized_pnl: Gains realized by sells of open cycles
        - total_realized_pnl: Sum of both
        - total_proceeds: Sale proceeds of closed cycles
        - total_cost_basis: Cost basis of closed cycles
    """
    closed_realized = ZERO
    partial_realized = ZERO
    total_proceeds = ZERO
    total_cost = ZERO

    for resolution in resolutions:
        partial_realized += resolution.partial_realized_gain
        for position in resolution.closed_positions:
            closed_realized += position.realized_pnl
            total_proceeds += position.total_proceeds
            total_cost += position.total_cost

    return {
        "closed_realized_pnl": closed_realized,
        "partial_realized_pnl": partial_realized,
        "total_realized_pnl": closed_realized + partial_realized,
        "total_proceeds": total_proceeds,
        "total_cost_basis": total_cost,
    }


def calculate_pnl_by_asset(
    valuation: PortfolioValuation,
) -> dict[str, dict[str, Decimal]]:
    """
    Calculate P&L by asset.

    Args:
        valuation: Portfolio valuation

    Returns:
        Dictionary mapping asset_id to its unrealized, realized and total P&L
    """
    unrealized = {h.asset_id: h.unrealized_pnl for h in valuation.holdings}

    by_asset: dict[str, dict[str, Decimal]] = {}
    for asset_id, resolution in valuation.resolutions.items():
        realized = resolution.closed_realized_pnl + resolution.partial_realized_gain
        asset_unrealized = unrealized.get(asset_id, ZERO)
        by_asset[asset_id] = {
            "unrealized_pnl": asset_unrealized,
            "closed_realized_pnl": resolution.closed_realized_pnl,
            "partial_realized_pnl": resolution.partial_realized_gain,
            "realized_pnl": realized,
            "total_pnl": asset_unrealized + realized,
        }

    return by_asset
