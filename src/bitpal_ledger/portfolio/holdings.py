"""
Holdings aggregation for the portfolio ledger.

Turns a multi-asset transaction list and a price map into the list of open
holdings, using the open cycle of each asset and weighted-average cost basis.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from bitpal_ledger.models import (
    AssetQuote,
    Holding,
    Transaction,
    ZERO,
)
from bitpal_ledger.portfolio.cycles import (
    EPSILON,
    AssetResolution,
    resolve_all,
)


logger = logging.getLogger(__name__)

HOLDINGS_SORT_KEYS = ("value", "asset_id")


def holding_from_resolution(
    resolution: AssetResolution,
    quote: Optional[AssetQuote],
    epsilon: Decimal = EPSILON,
) -> Optional[Holding]:
    """
    Value the open cycle of a resolved asset.

    Args:
        resolution: Cycle resolution of the asset
        quote: Current quote for the asset, if any
        epsilon: Zero tolerance for the open quantity

    Returns:
        Holding, or None when nothing positive is held or no price is known
    """
    if not resolution.has_open_position(epsilon):
        return None

    if quote is None:
        logger.debug(
            f"No price for {resolution.asset_id}; excluding open position "
            f"of {resolution.net_quantity} from holdings"
        )
        return None

    return Holding.from_position(
        quote=quote,
        total_quantity=resolution.net_quantity,
        avg_cost_basis=resolution.avg_cost_basis,
    )


def sort_holdings(holdings: list[Holding], sort_by: str = "value") -> list[Holding]:
    """
    Order holdings for display.

    Args:
        holdings: Holdings to order
        sort_by: "value" for current value descending (asset_id breaks ties)
                 or "asset_id" for ascending asset key

    Returns:
        New sorted list
    """
    if sort_by == "asset_id":
        return sorted(holdings, key=lambda h: h.asset_id)
    if sort_by == "value":
        return sorted(holdings, key=lambda h: (-h.current_value, h.asset_id))
    raise ValueError(f"Unknown holdings sort key: {sort_by}. Expected one of {HOLDINGS_SORT_KEYS}")


def holdings_from_resolutions(
    resolutions: Mapping[str, AssetResolution],
    current_prices: Mapping[str, AssetQuote],
    epsilon: Decimal = EPSILON,
    sort_by: str = "value",
) -> list[Holding]:
    """
    Build sorted holdings from already-resolved assets.
    """
    holdings = []
    for asset_id, resolution in resolutions.items():
        holding = holding_from_resolution(resolution, current_prices.get(asset_id), epsilon)
        if holding is not None:
            holdings.append(holding)

    return sort_holdings(holdings, sort_by)


def compute_holdings(
    transactions: Iterable[Transaction],
    current_prices: Mapping[str, AssetQuote],
    epsilon: Decimal = EPSILON,
    sort_by: str = "value",
) -> list[Holding]:
    """
    Compute open holdings from transactions and current prices.

    Only each asset's open cycle contributes, so units bought in a cycle
    that later closed never blend into the cost basis of a new position.
    Assets with an open position but no price are left out, since they
    cannot be valued.

    Args:
        transactions: Transactions of any assets, in any order
        current_prices: Mapping of asset_id to AssetQuote
        epsilon: Zero tolerance for the net quantity
        sort_by: Holding order, see sort_holdings()

    Returns:
        List of Holding objects, one per asset with a positive open quantity
    """
    resolutions = resolve_all(transactions, epsilon)
    return holdings_from_resolutions(resolutions, current_prices, epsilon, sort_by)


def get_portfolio_assets(transactions: Iterable[Transaction]) -> set[str]:
    """
    Get unique asset keys present in a transaction list.
    """
    return {tx.asset_id for tx in transactions}


def get_holding_quantity(holdings: Iterable[Holding], asset_id: str) -> Decimal:
    """
    Get the held quantity for one asset, zero when not held.
    """
    for holding in holdings:
        if holding.asset_id == asset_id:
            return holding.total_quantity
    return ZERO


def calculate_position_weights(
    holdings: Iterable[Holding],
    total_portfolio_value: Optional[Decimal] = None,
) -> dict[str, Decimal]:
    """
    Calculate current portfolio weights by asset.

    Args:
        holdings: Open holdings
        total_portfolio_value: Optional pre-calculated total value

    Returns:
        Dictionary mapping asset_id to weight (0-1)
    """
    holdings = list(holdings)
    if total_portfolio_value is None:
        total_portfolio_value = sum((h.current_value for h in holdings), ZERO)

    if total_portfolio_value == ZERO:
        return {}

    asset_values: dict[str, Decimal] = defaultdict(Decimal)
    for holding in holdings:
        asset_values[holding.asset_id] += holding.current_value

    return {
        asset_id: value / total_portfolio_value
        for asset_id, value in asset_values.items()
    }
