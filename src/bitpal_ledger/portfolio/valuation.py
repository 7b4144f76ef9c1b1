"""
Portfolio valuation and summary calculations.

Runs the full pipeline over a transaction snapshot: cycle resolution per asset,
holdings valuation at current prices, closed-position grouping and the
portfolio-wide P&L summary.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping

from bitpal_ledger.models import (
    AssetQuote,
    ClosedPosition,
    ClosedPositionGroup,
    HUNDRED,
    Holding,
    PortfolioSummary,
    Transaction,
    ZERO,
)
from bitpal_ledger.portfolio.cycles import (
    EPSILON,
    AssetResolution,
    group_closed_positions,
    resolve_all,
)
from bitpal_ledger.portfolio.holdings import holdings_from_resolutions


@dataclass
class PortfolioValuation:
    """
    Complete portfolio valuation.

    Attributes:
        holdings: Open holdings, sorted
        closed_positions: All closed cycles, most recently closed first
        closed_position_groups: Closed cycles grouped by asset
        resolutions: Per-asset cycle resolution
        summary: Portfolio totals
    """
    holdings: list[Holding]
    closed_positions: list[ClosedPosition]
    closed_position_groups: list[ClosedPositionGroup]
    resolutions: dict[str, AssetResolution] = field(default_factory=dict)
    summary: PortfolioSummary = field(
        default_factory=lambda: PortfolioSummary(ZERO, ZERO, ZERO, ZERO)
    )


def summarize_portfolio(
    holdings: Iterable[Holding],
    resolutions: Iterable[AssetResolution],
) -> PortfolioSummary:
    """
    Reduce holdings and cycle resolutions into portfolio totals.

    Realized P&L covers every asset, including assets that currently have
    no holding: the P&L of all closed cycles plus the partial gains of the
    open cycles.

    Args:
        holdings: Open holdings
        resolutions: Cycle resolution of every asset in the ledger

    Returns:
        PortfolioSummary
    """
    holdings = list(holdings)

    total_value = sum((h.current_value for h in holdings), ZERO)
    unrealized_pnl = sum((h.unrealized_pnl for h in holdings), ZERO)
    total_cost = sum((h.total_cost for h in holdings), ZERO)

    closed_realized = ZERO
    partial_realized = ZERO
    closed_cost = ZERO
    closed_count = 0
    for resolution in resolutions:
        closed_realized += resolution.closed_realized_pnl
        partial_realized += resolution.partial_realized_gain
        closed_cost += sum((p.total_cost for p in resolution.closed_positions), ZERO)
        closed_count += len(resolution.closed_positions)

    realized_pnl = closed_realized + partial_realized

    if total_cost > ZERO:
        unrealized_pnl_percent = (total_value / total_cost - 1) * HUNDRED
    else:
        unrealized_pnl_percent = ZERO

    return PortfolioSummary(
        total_value=total_value,
        unrealized_pnl=unrealized_pnl,
        realized_pnl=realized_pnl,
        total_pnl=unrealized_pnl + realized_pnl,
        total_cost=total_cost,
        unrealized_pnl_percent=unrealized_pnl_percent,
        closed_realized_pnl=closed_realized,
        partial_realized_pnl=partial_realized,
        holding_count=len(holdings),
        total_closed_cost=closed_cost,
        closed_position_count=closed_count,
    )


def value_portfolio(
    transactions: Iterable[Transaction],
    current_prices: Mapping[str, AssetQuote],
    epsilon: Decimal = EPSILON,
    sort_by: str = "value",
) -> PortfolioValuation:
    """
    Create a complete portfolio valuation from a transaction snapshot.

    Args:
        transactions: Transactions of any assets, in any order
        current_prices: Mapping of asset_id to AssetQuote
        epsilon: Zero tolerance for the net quantity
        sort_by: Holding order ("value" or "asset_id")

    Returns:
        PortfolioValuation with holdings, closed positions and summary
    """
    resolutions = resolve_all(transactions, epsilon)
    holdings = holdings_from_resolutions(resolutions, current_prices, epsilon, sort_by)

    closed_positions = [
        position
        for resolution in resolutions.values()
        for position in resolution.closed_positions
    ]
    closed_positions.sort(key=lambda p: p.closed_date, reverse=True)

    return PortfolioValuation(
        holdings=holdings,
        closed_positions=closed_positions,
        closed_position_groups=group_closed_positions(closed_positions),
        resolutions=resolutions,
        summary=summarize_portfolio(holdings, resolutions.values()),
    )


def calculate_portfolio_return(summary: PortfolioSummary) -> Decimal:
    """
    Total P&L relative to the cost basis of open holdings and closed cycles.

    Args:
        summary: Portfolio summary

    Returns:
        Return as decimal (e.g., 0.05 for 5%), zero without any cost basis
    """
    total_cost_basis = summary.total_cost + summary.total_closed_cost
    if total_cost_basis <= ZERO:
        return ZERO

    return summary.total_pnl / total_cost_basis
