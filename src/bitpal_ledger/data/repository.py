"""
Transaction storage interface for the portfolio ledger.

The computation core never talks to a storage engine directly. It reads
transactions through a TransactionRepository, which any persistence layer can
implement. InMemoryTransactionRepository is the reference implementation used
by tests and embedding applications.
"""

import threading
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from bitpal_ledger.models import Transaction, ZERO
from bitpal_ledger.portfolio.cycles import EPSILON, sort_transactions, walk_cycles


class RepositoryError(Exception):
    """Raised when a repository operation cannot be completed."""
    pass


class TransactionNotFoundError(RepositoryError):
    """Raised when a transaction ID is not present in the repository."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class InsufficientBalanceError(RepositoryError):
    """Raised when a sell would exceed the quantity held at its time."""

    def __init__(self, asset_id: str, owned: Decimal, attempted: Decimal):
        self.asset_id = asset_id
        self.owned = owned
        self.attempted = attempted
        super().__init__(
            f"You only own {owned} {asset_id}. Cannot sell {attempted}."
        )


class TransactionRepository(ABC):
    """
    Abstract base class for transaction storage.

    Implementations must provide:
    - Listing transactions (all, or per asset) in insertion order
    - Lookup, save (insert or replace) and delete by transaction ID
    - A consistent read-only snapshot for computation

    Balance validation, when an implementation offers it, must cover every
    write that can lower the held quantity at some point in an asset's
    history: new or edited sells, and buys that are edited or deleted.
    Anything it lets through reaches the resolver, which carries a negative
    quantity without raising.
    """

    @abstractmethod
    def list_transactions(self, asset_id: Optional[str] = None) -> list[Transaction]:
        """
        List stored transactions in insertion order.

        Args:
            asset_id: If provided, only transactions of this asset

        Returns:
            List of Transaction objects
        """
        pass

    @abstractmethod
    def get(self, transaction_id: str) -> Transaction:
        """
        Get a transaction by ID.

        Raises:
            TransactionNotFoundError: If the ID is unknown
        """
        pass

    @abstractmethod
    def save(self, transaction: Transaction) -> bool:
        """
        Insert a new transaction or replace the one with the same ID.

        Returns:
            True when an existing record was replaced, False on insert

        Raises:
            InsufficientBalanceError: If balance validation rejects the write
        """
        pass

    @abstractmethod
    def delete(self, transaction_id: str) -> Transaction:
        """
        Remove a transaction.

        Returns:
            The removed transaction

        Raises:
            TransactionNotFoundError: If the ID is unknown
        """
        pass

    def snapshot(self) -> tuple[Transaction, ...]:
        """
        Immutable copy of all transactions for one computation run.

        Default implementation copies list_transactions(); implementations
        with concurrent writers must take the copy atomically.
        """
        return tuple(self.list_transactions())

    def asset_ids(self) -> list[str]:
        """Distinct asset keys in first-seen order."""
        return list(dict.fromkeys(tx.asset_id for tx in self.list_transactions()))


class InMemoryTransactionRepository(TransactionRepository):
    """
    Thread-safe in-memory transaction store.

    Writes and snapshots are serialized by a single re-entrant lock, so a
    snapshot never observes a half-applied save or delete.
    """

    def __init__(
        self,
        transactions: Optional[list[Transaction]] = None,
        validate_sell_balance: bool = True,
        epsilon: Decimal = EPSILON,
    ):
        """
        Initialize the repository.

        Args:
            transactions: Initial transactions, loaded without balance validation
            validate_sell_balance: Reject writes that leave a sell larger than
                the quantity held at its time
            epsilon: Quantity tolerance used by balance validation
        """
        self.validate_sell_balance = validate_sell_balance
        self.epsilon = epsilon
        self._lock = threading.RLock()
        self._transactions: dict[str, Transaction] = {}

        for tx in transactions or []:
            self._transactions[tx.transaction_id] = tx

    def __len__(self) -> int:
        with self._lock:
            return len(self._transactions)

    def __contains__(self, transaction_id: object) -> bool:
        with self._lock:
            return transaction_id in self._transactions

    def list_transactions(self, asset_id: Optional[str] = None) -> list[Transaction]:
        with self._lock:
            if asset_id is None:
                return list(self._transactions.values())
            return [tx for tx in self._transactions.values() if tx.asset_id == asset_id]

    def get(self, transaction_id: str) -> Transaction:
        with self._lock:
            try:
                return self._transactions[transaction_id]
            except KeyError:
                raise TransactionNotFoundError(transaction_id)

    def save(self, transaction: Transaction) -> bool:
        with self._lock:
            previous = self._transactions.get(transaction.transaction_id)
            if self.validate_sell_balance:
                self._check_save(transaction, previous)
            # Replacing an existing key keeps its insertion position
            self._transactions[transaction.transaction_id] = transaction
            return previous is not None

    def delete(self, transaction_id: str) -> Transaction:
        with self._lock:
            try:
                removed = self._transactions[transaction_id]
            except KeyError:
                raise TransactionNotFoundError(transaction_id)
            if self.validate_sell_balance and removed.is_buy:
                self._check_history(
                    removed.asset_id,
                    self._history_with(removed.asset_id, transaction_id, None),
                )
            return self._transactions.pop(transaction_id)

    def snapshot(self) -> tuple[Transaction, ...]:
        with self._lock:
            return tuple(self._transactions.values())

    def open_quantity(self, asset_id: str, exclude_id: Optional[str] = None) -> Decimal:
        """
        Net quantity of the asset's open cycle.

        Args:
            asset_id: Asset key
            exclude_id: Transaction to leave out (the record being edited)

        Returns:
            Open-cycle quantity, zero when the last cycle closed
        """
        with self._lock:
            others = [
                tx for tx in self._transactions.values()
                if tx.asset_id == asset_id and tx.transaction_id != exclude_id
            ]
        return walk_cycles(others, self.epsilon).net_quantity

    def _history_with(
        self,
        asset_id: str,
        transaction_id: str,
        replacement: Optional[Transaction],
    ) -> list[Transaction]:
        """The asset's records in insertion order as they would be after a write."""
        history = []
        for tx in self._transactions.values():
            if tx.transaction_id == transaction_id:
                tx = replacement
            if tx is not None and tx.asset_id == asset_id:
                history.append(tx)
        if (
            replacement is not None
            and replacement.asset_id == asset_id
            and transaction_id not in self._transactions
        ):
            history.append(replacement)
        return history

    def _check_save(self, transaction: Transaction, previous: Optional[Transaction]) -> None:
        # A new buy can only raise holdings; anything else may lower them
        if transaction.is_sell:
            self._check_history(
                transaction.asset_id,
                self._history_with(transaction.asset_id, transaction.transaction_id, transaction),
            )
        if previous is not None and previous.is_buy:
            self._check_history(
                previous.asset_id,
                self._history_with(previous.asset_id, transaction.transaction_id, transaction),
            )

    def _check_history(self, asset_id: str, history: list[Transaction]) -> None:
        """
        Reject a history in which some sell exceeds the quantity held at its time.

        Raises:
            InsufficientBalanceError: For the first sell that oversells
        """
        owned = ZERO
        for tx in sort_transactions(history):
            if tx.is_sell and tx.amount - owned > self.epsilon:
                raise InsufficientBalanceError(
                    asset_id=asset_id,
                    owned=owned,
                    attempted=tx.amount,
                )
            owned += tx.signed_amount
            if abs(owned) < self.epsilon:
                owned = ZERO
