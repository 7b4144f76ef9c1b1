"""
Append-only decision logging for the portfolio ledger.

Ledger writes and valuation runs are logged with timestamps and key figures
to support auditability and reproducibility.
"""

import json
from datetime import datetime, date
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, TYPE_CHECKING

from bitpal_ledger.models import (
    ActionType,
    ClosedPosition,
    DecisionLogEntry,
    LedgerConfig,
    Transaction,
)

if TYPE_CHECKING:
    from bitpal_ledger.portfolio.valuation import PortfolioValuation


class DecisionLogger:
    """
    Audit trail of ledger writes and valuation runs.

    Entries are appended to a JSONL file and never rewritten.
    One JSON object per line, one line per action.
    """

    def __init__(self, log_path: str | Path):
        """
        Open (or create) the audit log.

        Args:
            log_path: Path to the log file (will be created if not exists)
        """
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log(self, entry: DecisionLogEntry) -> None:
        """
        Write a decision log entry.

        Args:
            entry: DecisionLogEntry to write
        """
        record = {
            "timestamp": entry.timestamp.isoformat(),
            "action_type": entry.action_type.value,
            "asset_id": entry.asset_id,
            "details": entry.details,
        }

        with open(self.log_path, "a") as f:
            f.write(json.dumps(record, cls=DecimalEncoder) + "\n")

    def log_action(
        self,
        action_type: ActionType,
        asset_id: Optional[str],
        details: dict,
    ) -> None:
        """Convenience wrapper creating and writing an entry."""
        self.log(DecisionLogEntry.create(action_type, asset_id, details))

    def log_config_loaded(
        self,
        config: LedgerConfig,
        config_path: str,
    ) -> None:
        """
        Log configuration loading.

        Args:
            config: Loaded configuration
            config_path: Path to configuration file
        """
        details = {
            "config_path": str(config_path),
            "epsilon": str(config.epsilon),
            "holdings_sort": config.holdings_sort,
            "validate_sell_balance": config.validate_sell_balance,
        }
        self.log_action(ActionType.CONFIG_LOADED, None, details)

    def log_transaction_recorded(self, transaction: Transaction, replaced: bool = False) -> None:
        """
        Log a transaction insert or edit.

        Args:
            transaction: The stored transaction
            replaced: True when an existing record was edited
        """
        details = {
            "transaction_id": transaction.transaction_id,
            "type": transaction.type.value,
            "amount": str(transaction.amount),
            "price_per_unit": str(transaction.price_per_unit),
            "timestamp": transaction.timestamp.isoformat(),
            "replaced": replaced,
        }
        self.log_action(ActionType.TRANSACTION_RECORDED, transaction.asset_id, details)

    def log_transaction_deleted(self, transaction: Transaction) -> None:
        """
        Log a transaction removal.

        Args:
            transaction: The removed transaction
        """
        details = {
            "transaction_id": transaction.transaction_id,
            "type": transaction.type.value,
            "amount": str(transaction.amount),
        }
        self.log_action(ActionType.TRANSACTION_DELETED, transaction.asset_id, details)

    def log_portfolio_valued(self, valuation: "PortfolioValuation") -> None:
        """
        Log a portfolio valuation run.

        Args:
            valuation: Valuation result
        """
        summary = valuation.summary
        details = {
            "total_value": str(summary.total_value),
            "unrealized_pnl": str(summary.unrealized_pnl),
            "realized_pnl": str(summary.realized_pnl),
            "partial_realized_pnl": str(summary.partial_realized_pnl),
            "total_pnl": str(summary.total_pnl),
            "num_holdings": len(valuation.holdings),
            "num_closed_positions": len(valuation.closed_positions),
            "num_assets": len(valuation.resolutions),
            "unpriced_assets": sorted(
                asset_id
                for asset_id, resolution in valuation.resolutions.items()
                if resolution.has_open_position()
                and asset_id not in {h.asset_id for h in valuation.holdings}
            ),
        }
        self.log_action(ActionType.PORTFOLIO_VALUED, None, details)

    def log_degenerate_cycle(self, position: ClosedPosition) -> None:
        """
        Flag a closed cycle that had no buy volume.

        Args:
            position: The degenerate closed position
        """
        details = {
            "closed_date": position.closed_date.isoformat(),
            "avg_sale_price": str(position.avg_sale_price),
            "transaction_ids": [tx.transaction_id for tx in position.cycle_transactions],
        }
        self.log_action(ActionType.DEGENERATE_CYCLE_FLAGGED, position.asset_id, details)

    def read_log(self) -> list[DecisionLogEntry]:
        """
        Load every entry from the audit log, oldest first.

        Returns:
            List of DecisionLogEntry objects
        """
        if not self.log_path.exists():
            return []

        entries = []
        with open(self.log_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                entries.append(
                    DecisionLogEntry(
                        timestamp=datetime.fromisoformat(record["timestamp"]),
                        action_type=ActionType(record["action_type"]),
                        asset_id=record.get("asset_id"),
                        details=record.get("details", {}),
                    )
                )

        return entries

    def filter_by_asset(
        self,
        asset_id: str,
    ) -> list[DecisionLogEntry]:
        """
        Get log entries for a specific asset.
        """
        return [e for e in self.read_log() if e.asset_id == asset_id]

    def filter_by_action_type(
        self,
        action_type: ActionType,
    ) -> list[DecisionLogEntry]:
        """
        Get log entries of a specific action type.
        """
        return [e for e in self.read_log() if e.action_type == action_type]


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (date, datetime)):
            return obj.isoformat()
        return super().default(obj)
