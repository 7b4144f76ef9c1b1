"""
Trading cycle resolution for a single asset's transaction history.

A cycle is a run of transactions between two points where the net held
quantity is zero. This module walks an asset's transactions in chronological
order, splits them into closed cycles (which become ClosedPosition records with
realized P&L) and at most one open cycle (which feeds the holdings aggregator
and carries the partial gains already realized by its sells).

All accounting uses the weighted-average cost method.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from bitpal_ledger.models import (
    ClosedPosition,
    ClosedPositionGroup,
    HUNDRED,
    Transaction,
    TransactionType,
    ZERO,
)


logger = logging.getLogger(__name__)

# Tolerates 8-decimal-place crypto quantities
EPSILON = Decimal("0.00000001")


@dataclass
class CycleWalk:
    """
    Result of walking one asset's transactions.

    Attributes:
        closed_cycles: Transactions of each closed cycle, in order
        open_transactions: Transactions after the last closure
        net_quantity: Net quantity of the open cycle (0 when fully closed)
    """
    closed_cycles: list[list[Transaction]] = field(default_factory=list)
    open_transactions: list[Transaction] = field(default_factory=list)
    net_quantity: Decimal = ZERO


@dataclass
class CostBasisState:
    """
    Running weighted-average cost state over a chronological sequence.

    Attributes:
        quantity: Net quantity after the last transaction
        avg_cost_basis: Weighted average cost of the units held
        realized_gain: Sum of (sell price - average cost) * sell amount
    """
    quantity: Decimal = ZERO
    avg_cost_basis: Decimal = ZERO
    realized_gain: Decimal = ZERO


@dataclass
class AssetResolution:
    """
    Full cycle resolution of one asset.

    Attributes:
        asset_id: Asset key
        closed_positions: Closed cycles, oldest first
        open_transactions: Chronological transactions of the open cycle
        net_quantity: Net quantity of the open cycle
        avg_cost_basis: Running weighted average cost of the open cycle
        partial_realized_gain: Gains realized by sells in the open cycle
    """
    asset_id: str
    closed_positions: list[ClosedPosition]
    open_transactions: list[Transaction]
    net_quantity: Decimal
    avg_cost_basis: Decimal
    partial_realized_gain: Decimal

    @property
    def closed_realized_pnl(self) -> Decimal:
        return sum((p.realized_pnl for p in self.closed_positions), ZERO)

    def has_open_position(self, epsilon: Decimal = EPSILON) -> bool:
        """
        Whether the open cycle holds a positive quantity.

        Uses the same tolerance as cycle closure: any net quantity that did not
        close the cycle (net >= epsilon) is held.
        """
        return self.net_quantity >= epsilon


def sort_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """
    Sort transactions ascending by timestamp.

    The sort is stable: transactions sharing a timestamp keep their input
    order, which for repository snapshots is insertion order.
    """
    return sorted(transactions, key=lambda tx: tx.timestamp)


def group_transactions_by_asset(
    transactions: Iterable[Transaction],
) -> dict[str, list[Transaction]]:
    """
    Group transactions by asset, preserving input order within each asset.

    Args:
        transactions: Transactions for any number of assets

    Returns:
        Dictionary mapping asset_id to its transactions
    """
    grouped: dict[str, list[Transaction]] = defaultdict(list)
    for tx in transactions:
        grouped[tx.asset_id].append(tx)
    return dict(grouped)


def walk_cycles(
    transactions: Iterable[Transaction],
    epsilon: Decimal = EPSILON,
) -> CycleWalk:
    """
    Split one asset's transactions into closed cycles and the open cycle.

    A cycle closes as soon as abs(net quantity) drops below epsilon; the net
    quantity is then reset to exactly zero and a new cycle begins with the
    next transaction. A negative net quantity (oversell) is carried through
    without raising.

    Args:
        transactions: Transactions of a single asset, in any order
        epsilon: Zero tolerance for the net quantity

    Returns:
        CycleWalk with closed cycles, open-cycle transactions and net quantity
    """
    walk = CycleWalk()
    net_quantity = ZERO
    current: list[Transaction] = []

    for tx in sort_transactions(transactions):
        net_quantity += tx.signed_amount
        current.append(tx)

        if abs(net_quantity) < epsilon:
            walk.closed_cycles.append(current)
            current = []
            net_quantity = ZERO

    walk.open_transactions = current
    walk.net_quantity = net_quantity
    return walk


def open_cycle_transactions(
    transactions: Iterable[Transaction],
    epsilon: Decimal = EPSILON,
) -> list[Transaction]:
    """
    Get the transactions of the current open cycle.

    Returns the chronological transactions strictly after the most recent
    closure: the full sorted history when no cycle ever closed, and an empty
    list when the last transaction closed a cycle.
    """
    return walk_cycles(transactions, epsilon).open_transactions


def weighted_average_price(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
) -> Decimal:
    """
    Volume-weighted average price of the legs of one type.

    Args:
        transactions: Transactions to average over
        transaction_type: BUY or SELL legs

    Returns:
        sum(amount * price) / sum(amount), or 0 when the leg volume is zero
    """
    total_amount = ZERO
    total_value = ZERO
    for tx in transactions:
        if tx.type == transaction_type:
            total_amount += tx.amount
            total_value += tx.total_value

    if total_amount == ZERO:
        return ZERO
    return total_value / total_amount


def build_closed_position(
    asset_id: str,
    cycle: list[Transaction],
) -> ClosedPosition:
    """
    Build a ClosedPosition from the transactions of a closed cycle.

    A cycle without buy volume cannot have a cost basis; its average cost is
    taken as zero and the position is flagged as degenerate.

    Args:
        asset_id: Asset key
        cycle: Chronological, non-empty transactions of the cycle

    Returns:
        ClosedPosition with weighted averages and realized P&L
    """
    total_quantity = sum((tx.amount for tx in cycle if tx.is_buy), ZERO)
    avg_cost_price = weighted_average_price(cycle, TransactionType.BUY)
    avg_sale_price = weighted_average_price(cycle, TransactionType.SELL)

    is_degenerate = total_quantity == ZERO
    if is_degenerate:
        logger.warning(
            f"Closed cycle for {asset_id} ending {cycle[-1].timestamp.isoformat()} "
            f"has no buy volume; using zero cost basis"
        )

    realized_pnl = (avg_sale_price - avg_cost_price) * total_quantity

    if avg_cost_price > ZERO:
        realized_pnl_percent = (avg_sale_price / avg_cost_price - 1) * HUNDRED
    else:
        realized_pnl_percent = ZERO

    return ClosedPosition(
        asset_id=asset_id,
        total_quantity=total_quantity,
        avg_cost_price=avg_cost_price,
        avg_sale_price=avg_sale_price,
        opened_date=cycle[0].timestamp,
        closed_date=cycle[-1].timestamp,
        realized_pnl=realized_pnl,
        realized_pnl_percent=realized_pnl_percent,
        cycle_transactions=tuple(cycle),
        is_degenerate=is_degenerate,
    )


def running_cost_basis(transactions: Iterable[Transaction]) -> CostBasisState:
    """
    Track the weighted-average cost basis through a chronological sequence.

    Buys blend into the average:
        new_avg = (old_avg * old_qty + amount * price) / (old_qty + amount)
    Sells reduce the quantity, leave the average unchanged and realize
    (price - avg) * amount.

    A buy arriving while the running quantity is not positive (after an
    oversell) has no held units to blend with, so the average restarts at
    the buy price.

    Args:
        transactions: Chronologically ordered transactions of one asset

    Returns:
        Final CostBasisState
    """
    state = CostBasisState()

    for tx in transactions:
        if tx.is_buy:
            new_quantity = state.quantity + tx.amount
            if state.quantity > ZERO:
                state.avg_cost_basis = (
                    state.avg_cost_basis * state.quantity + tx.total_value
                ) / new_quantity
            else:
                state.avg_cost_basis = tx.price_per_unit
            state.quantity = new_quantity
        else:
            state.realized_gain += (tx.price_per_unit - state.avg_cost_basis) * tx.amount
            state.quantity -= tx.amount

    return state


def calculate_partial_realized_gain(
    transactions: Iterable[Transaction],
    epsilon: Decimal = EPSILON,
) -> Decimal:
    """
    Gains locked in by sells of the still-open cycle.

    Only the open cycle counts: gains of fully closed cycles belong to their
    ClosedPosition. Returns zero when the open cycle has no sells or the last
    cycle closed.
    """
    open_txs = open_cycle_transactions(transactions, epsilon)
    return running_cost_basis(open_txs).realized_gain


def resolve_asset(
    asset_id: str,
    transactions: Iterable[Transaction],
    epsilon: Decimal = EPSILON,
) -> AssetResolution:
    """
    Resolve one asset's transaction history into closed and open cycles.

    Args:
        asset_id: Asset key
        transactions: Transactions of this asset, in any order
        epsilon: Zero tolerance for the net quantity

    Returns:
        AssetResolution with closed positions and open-cycle state
    """
    walk = walk_cycles(transactions, epsilon)
    closed_positions = [
        build_closed_position(asset_id, cycle) for cycle in walk.closed_cycles
    ]
    open_state = running_cost_basis(walk.open_transactions)

    return AssetResolution(
        asset_id=asset_id,
        closed_positions=closed_positions,
        open_transactions=walk.open_transactions,
        net_quantity=walk.net_quantity,
        avg_cost_basis=open_state.avg_cost_basis,
        partial_realized_gain=open_state.realized_gain,
    )


def resolve_all(
    transactions: Iterable[Transaction],
    epsilon: Decimal = EPSILON,
) -> dict[str, AssetResolution]:
    """
    Resolve every asset present in a multi-asset transaction list.

    Returns:
        Dictionary mapping asset_id to its AssetResolution
    """
    return {
        asset_id: resolve_asset(asset_id, txs, epsilon)
        for asset_id, txs in group_transactions_by_asset(transactions).items()
    }


def compute_closed_positions(
    transactions: Iterable[Transaction],
    epsilon: Decimal = EPSILON,
) -> list[ClosedPosition]:
    """
    Closed positions of all assets, most recently closed first.
    """
    positions = []
    for resolution in resolve_all(transactions, epsilon).values():
        positions.extend(resolution.closed_positions)

    positions.sort(key=lambda p: p.closed_date, reverse=True)
    return positions


def group_closed_positions(
    closed_positions: Iterable[ClosedPosition],
    asset_id: Optional[str] = None,
) -> list[ClosedPositionGroup]:
    """
    Group closed positions by asset for display.

    Args:
        closed_positions: Closed positions of any assets
        asset_id: Optional asset to restrict the grouping to

    Returns:
        One ClosedPositionGroup per asset, each sorted by closed_date
        descending, groups ordered by their most recent closure descending
    """
    by_asset: dict[str, list[ClosedPosition]] = defaultdict(list)
    for position in closed_positions:
        if asset_id is None or position.asset_id == asset_id:
            by_asset[position.asset_id].append(position)

    groups = []
    for key, positions in by_asset.items():
        positions.sort(key=lambda p: p.closed_date, reverse=True)
        groups.append(ClosedPositionGroup(asset_id=key, closed_positions=positions))

    groups.sort(key=lambda g: (g.most_recent_close_date, g.asset_id), reverse=True)
    return groups
