"""
Tabular schemas for report output.

Defines the columns and data types of every table the reporting layer hands to
the display layer.
"""

from dataclasses import dataclass


@dataclass
class ColumnSchema:
    """Schema definition for a single column."""
    name: str
    dtype: str  # pandas dtype string
    required: bool = True


@dataclass
class TableSchema:
    """Schema definition for a table."""
    name: str
    columns: list[ColumnSchema]
    description: str

    @property
    def required_columns(self) -> list[str]:
        """Get list of required column names."""
        return [c.name for c in self.columns if c.required]

    @property
    def all_columns(self) -> list[str]:
        """Get list of all column names."""
        return [c.name for c in self.columns]

    @property
    def dtypes(self) -> dict[str, str]:
        """Mapping of column name to pandas dtype."""
        return {c.name: c.dtype for c in self.columns}

    def validate_columns(self, df_columns: list[str]) -> tuple[bool, list[str]]:
        """
        Validate that a dataframe has the required columns.

        Args:
            df_columns: List of column names from the dataframe

        Returns:
            Tuple of (is_valid, list of missing columns)
        """
        missing = [col for col in self.required_columns if col not in df_columns]
        return len(missing) == 0, missing


TRANSACTIONS_SCHEMA = TableSchema(
    name="transactions",
    description="Ledger transactions in chronological order",
    columns=[
        ColumnSchema(name="transaction_id", dtype="object"),
        ColumnSchema(name="asset_id", dtype="object"),
        ColumnSchema(name="type", dtype="object"),
        ColumnSchema(name="amount", dtype="float64"),
        ColumnSchema(name="price_per_unit", dtype="float64"),
        ColumnSchema(name="total_value", dtype="float64"),
        ColumnSchema(name="timestamp", dtype="datetime64[ns]"),
        ColumnSchema(name="notes", dtype="object", required=False),
    ],
)

HOLDINGS_SCHEMA = TableSchema(
    name="holdings",
    description="Open positions valued at current prices",
    columns=[
        ColumnSchema(name="asset_id", dtype="object"),
        ColumnSchema(name="symbol", dtype="object"),
        ColumnSchema(name="name", dtype="object"),
        ColumnSchema(name="total_quantity", dtype="float64"),
        ColumnSchema(name="avg_cost_basis", dtype="float64"),
        ColumnSchema(name="current_price", dtype="float64"),
        ColumnSchema(name="current_value", dtype="float64"),
        ColumnSchema(name="total_cost", dtype="float64"),
        ColumnSchema(name="unrealized_pnl", dtype="float64"),
        ColumnSchema(name="unrealized_pnl_percent", dtype="float64"),
    ],
)

CLOSED_POSITIONS_SCHEMA = TableSchema(
    name="closed_positions",
    description="Fully closed trading cycles with realized P&L",
    columns=[
        ColumnSchema(name="asset_id", dtype="object"),
        ColumnSchema(name="total_quantity", dtype="float64"),
        ColumnSchema(name="avg_cost_price", dtype="float64"),
        ColumnSchema(name="avg_sale_price", dtype="float64"),
        ColumnSchema(name="opened_date", dtype="datetime64[ns]"),
        ColumnSchema(name="closed_date", dtype="datetime64[ns]"),
        ColumnSchema(name="realized_pnl", dtype="float64"),
        ColumnSchema(name="realized_pnl_percent", dtype="float64"),
        ColumnSchema(name="num_transactions", dtype="int64"),
        ColumnSchema(name="is_degenerate", dtype="bool"),
    ],
)

CLOSED_POSITION_GROUPS_SCHEMA = TableSchema(
    name="closed_position_groups",
    description="Closed cycles aggregated per asset",
    columns=[
        ColumnSchema(name="asset_id", dtype="object"),
        ColumnSchema(name="cycle_count", dtype="int64"),
        ColumnSchema(name="total_realized_pnl", dtype="float64"),
        ColumnSchema(name="total_realized_pnl_percent", dtype="float64"),
        ColumnSchema(name="most_recent_close_date", dtype="datetime64[ns]"),
    ],
)
