"""
Tabular report output for the display layer.

Converts holdings, closed positions and transactions into pandas DataFrames
with the columns declared in bitpal_ledger.data.schemas. Decimals become
floats here and only here; the computation core stays in Decimal.
"""

from decimal import Decimal
from typing import Iterable

import pandas as pd

from bitpal_ledger.data.schemas import (
    CLOSED_POSITION_GROUPS_SCHEMA,
    CLOSED_POSITIONS_SCHEMA,
    HOLDINGS_SCHEMA,
    TRANSACTIONS_SCHEMA,
    TableSchema,
)
from bitpal_ledger.models import (
    ClosedPosition,
    ClosedPositionGroup,
    Holding,
    PortfolioSummary,
    Transaction,
)
from bitpal_ledger.portfolio.cycles import sort_transactions


def _to_frame(records: list[dict], schema: TableSchema) -> pd.DataFrame:
    """Build a DataFrame with the schema's column order and dtypes."""
    df = pd.DataFrame(records, columns=schema.all_columns)
    for name, dtype in schema.dtypes.items():
        if dtype.startswith("datetime64"):
            # to_datetime keeps tz-aware timestamps aware
            df[name] = pd.to_datetime(df[name])
        else:
            df[name] = df[name].astype(dtype)
    return df


def holdings_to_frame(holdings: Iterable[Holding]) -> pd.DataFrame:
    """
    Render holdings as a table, keeping their order.

    Args:
        holdings: Open holdings

    Returns:
        DataFrame with HOLDINGS_SCHEMA columns
    """
    records = []
    for h in holdings:
        records.append({
            "asset_id": h.asset_id,
            "symbol": h.quote.symbol,
            "name": h.quote.name,
            "total_quantity": float(h.total_quantity),
            "avg_cost_basis": float(h.avg_cost_basis),
            "current_price": float(h.current_price),
            "current_value": float(h.current_value),
            "total_cost": float(h.total_cost),
            "unrealized_pnl": float(h.unrealized_pnl),
            "unrealized_pnl_percent": float(h.unrealized_pnl_percent),
        })

    return _to_frame(records, HOLDINGS_SCHEMA)


def closed_positions_to_frame(closed_positions: Iterable[ClosedPosition]) -> pd.DataFrame:
    """
    Render closed positions as a table, keeping their order.

    Args:
        closed_positions: Closed cycles

    Returns:
        DataFrame with CLOSED_POSITIONS_SCHEMA columns
    """
    records = []
    for p in closed_positions:
        records.append({
            "asset_id": p.asset_id,
            "total_quantity": float(p.total_quantity),
            "avg_cost_price": float(p.avg_cost_price),
            "avg_sale_price": float(p.avg_sale_price),
            "opened_date": p.opened_date,
            "closed_date": p.closed_date,
            "realized_pnl": float(p.realized_pnl),
            "realized_pnl_percent": float(p.realized_pnl_percent),
            "num_transactions": len(p.cycle_transactions),
            "is_degenerate": p.is_degenerate,
        })

    return _to_frame(records, CLOSED_POSITIONS_SCHEMA)


def closed_position_groups_to_frame(groups: Iterable[ClosedPositionGroup]) -> pd.DataFrame:
    """
    Render per-asset closed position groups as a table.

    Args:
        groups: Closed position groups

    Returns:
        DataFrame with CLOSED_POSITION_GROUPS_SCHEMA columns
    """
    records = []
    for g in groups:
        records.append({
            "asset_id": g.asset_id,
            "cycle_count": g.cycle_count,
            "total_realized_pnl": float(g.total_realized_pnl),
            "total_realized_pnl_percent": float(g.total_realized_pnl_percent),
            "most_recent_close_date": g.most_recent_close_date,
        })

    return _to_frame(records, CLOSED_POSITION_GROUPS_SCHEMA)


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """
    Render transactions as a chronological table.

    Args:
        transactions: Transactions in any order

    Returns:
        DataFrame with TRANSACTIONS_SCHEMA columns
    """
    records = []
    for tx in sort_transactions(transactions):
        records.append({
            "transaction_id": tx.transaction_id,
            "asset_id": tx.asset_id,
            "type": tx.type.value,
            "amount": float(tx.amount),
            "price_per_unit": float(tx.price_per_unit),
            "total_value": float(tx.total_value),
            "timestamp": tx.timestamp,
            "notes": tx.notes,
        })

    return _to_frame(records, TRANSACTIONS_SCHEMA)


def summary_to_dict(summary: PortfolioSummary) -> dict[str, str | int]:
    """
    Render a portfolio summary as a flat dictionary of strings.

    Decimal values are kept exact as strings for display formatting.
    """
    result: dict[str, str | int] = {}
    for name in (
        "total_value",
        "unrealized_pnl",
        "realized_pnl",
        "total_pnl",
        "total_cost",
        "unrealized_pnl_percent",
        "closed_realized_pnl",
        "partial_realized_pnl",
        "total_closed_cost",
        "total_pnl_percent",
    ):
        value: Decimal = getattr(summary, name)
        result[name] = str(value)
    result["holding_count"] = summary.holding_count
    result["closed_position_count"] = summary.closed_position_count
    return result
