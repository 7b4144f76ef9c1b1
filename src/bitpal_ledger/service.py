"""
Portfolio service tying the ledger, price lookup and computation core together.

The service owns no global state: the transaction repository, the price source
and the optional decision logger are injected. Each valuation runs on an
immutable snapshot of the ledger, so concurrent callers never see a
half-applied write.
"""

import logging
from decimal import Decimal
from pathlib import Path
from typing import Optional

from bitpal_ledger.config import load_ledger_config
from bitpal_ledger.data.prices import PriceLookup, PriceLookupError
from bitpal_ledger.data.repository import (
    InMemoryTransactionRepository,
    TransactionRepository,
)
from bitpal_ledger.logging import DecisionLogger
from bitpal_ledger.models import (
    ClosedPosition,
    ClosedPositionGroup,
    LedgerConfig,
    Transaction,
    ZERO,
)
from bitpal_ledger.portfolio.cycles import (
    compute_closed_positions,
    group_closed_positions,
    open_cycle_transactions,
    resolve_asset,
)
from bitpal_ledger.portfolio.valuation import PortfolioValuation, value_portfolio


logger = logging.getLogger(__name__)


class PortfolioServiceError(Exception):
    """Raised when the portfolio cannot be loaded."""
    pass


class PortfolioService:
    """
    Application-facing entry point of the ledger.

    Example:
        >>> repo = InMemoryTransactionRepository()
        >>> prices = StaticPriceLookup()
        >>> service = PortfolioService(repo, prices)
        >>> service.record_transaction(Transaction.create("bitcoin", "BUY", "1", "40000"))
        >>> valuation = service.load_portfolio()
    """

    def __init__(
        self,
        repository: TransactionRepository,
        price_lookup: PriceLookup,
        config: Optional[LedgerConfig] = None,
        decision_logger: Optional[DecisionLogger] = None,
    ):
        self.repository = repository
        self.price_lookup = price_lookup
        self.config = config or LedgerConfig()

        if decision_logger is None and self.config.decision_log_path:
            decision_logger = DecisionLogger(self.config.decision_log_path)
        self.decision_logger = decision_logger

    @classmethod
    def from_config_file(
        cls,
        config_path: str | Path,
        price_lookup: PriceLookup,
        repository: Optional[TransactionRepository] = None,
    ) -> "PortfolioService":
        """
        Build a service from a YAML config, with an in-memory ledger by default.
        """
        config = load_ledger_config(config_path)
        if repository is None:
            repository = InMemoryTransactionRepository(
                validate_sell_balance=config.validate_sell_balance,
                epsilon=config.epsilon,
            )

        service = cls(repository, price_lookup, config=config)
        if service.decision_logger:
            service.decision_logger.log_config_loaded(config, str(config_path))
        return service

    def load_portfolio(self) -> PortfolioValuation:
        """
        Value the whole portfolio at current prices.

        Returns:
            PortfolioValuation with holdings, closed positions and summary

        Raises:
            PortfolioServiceError: If current prices cannot be fetched
        """
        transactions = self.repository.snapshot()
        if not transactions:
            return value_portfolio([], {}, self.config.epsilon, self.config.holdings_sort)

        asset_ids = list(dict.fromkeys(tx.asset_id for tx in transactions))
        try:
            prices = self.price_lookup.get_quotes(asset_ids)
        except PriceLookupError as e:
            logger.error(f"Failed to fetch prices for {len(asset_ids)} assets: {e}")
            raise PortfolioServiceError(f"Price data is currently unavailable: {e}") from e

        valuation = value_portfolio(
            transactions,
            prices,
            epsilon=self.config.epsilon,
            sort_by=self.config.holdings_sort,
        )

        logger.info(
            f"Loaded portfolio: {len(valuation.holdings)} holdings from "
            f"{len(transactions)} transactions"
        )

        if self.decision_logger:
            self.decision_logger.log_portfolio_valued(valuation)
            for position in valuation.closed_positions:
                if position.is_degenerate:
                    self.decision_logger.log_degenerate_cycle(position)

        return valuation

    def record_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert a transaction, or replace the stored one with the same ID.

        Raises:
            InsufficientBalanceError: If the repository rejects an oversell
        """
        replaced = self.repository.save(transaction)

        if self.decision_logger:
            self.decision_logger.log_transaction_recorded(transaction, replaced=replaced)
        return transaction

    def delete_transaction(self, transaction_id: str) -> Transaction:
        """
        Remove a transaction from the ledger.

        Raises:
            TransactionNotFoundError: If the ID is unknown
        """
        removed = self.repository.delete(transaction_id)
        logger.info(f"Deleted transaction: {transaction_id}")

        if self.decision_logger:
            self.decision_logger.log_transaction_deleted(removed)
        return removed

    def holding_quantity(self, asset_id: str) -> Decimal:
        """
        Quantity currently held in an asset's open cycle.

        Needs no prices; returns zero when the asset is closed or unknown.
        """
        transactions = self.repository.list_transactions(asset_id)
        resolution = resolve_asset(asset_id, transactions, self.config.epsilon)
        if not resolution.has_open_position(self.config.epsilon):
            return ZERO
        return resolution.net_quantity

    def closed_positions(self, asset_id: Optional[str] = None) -> list[ClosedPosition]:
        """
        Closed cycles, most recently closed first.

        Args:
            asset_id: Optional asset to restrict to
        """
        transactions = (
            self.repository.snapshot()
            if asset_id is None
            else self.repository.list_transactions(asset_id)
        )
        return compute_closed_positions(transactions, self.config.epsilon)

    def closed_position_groups(self) -> list[ClosedPositionGroup]:
        """Closed cycles grouped per asset, most recent activity first."""
        return group_closed_positions(self.closed_positions())

    def transaction_history(self, asset_id: str) -> list[Transaction]:
        """
        All transactions of an asset, newest first.
        """
        return sorted(
            self.repository.list_transactions(asset_id),
            key=lambda tx: tx.timestamp,
            reverse=True,
        )

    def open_cycle(self, asset_id: str) -> list[Transaction]:
        """
        Chronological transactions of the asset's open cycle.
        """
        return open_cycle_transactions(
            self.repository.list_transactions(asset_id),
            self.config.epsilon,
        )
