"""
Data interfaces for the portfolio ledger.

Provides the transaction repository and price lookup contracts the core
reads through, plus the table schemas used for report output.
"""

from bitpal_ledger.data.repository import (
    TransactionRepository,
    InMemoryTransactionRepository,
    RepositoryError,
    TransactionNotFoundError,
    InsufficientBalanceError,
)
from bitpal_ledger.data.prices import (
    PriceLookup,
    StaticPriceLookup,
    PriceLookupError,
)
from bitpal_ledger.data.schemas import (
    TRANSACTIONS_SCHEMA,
    HOLDINGS_SCHEMA,
    CLOSED_POSITIONS_SCHEMA,
    CLOSED_POSITION_GROUPS_SCHEMA,
)

__all__ = [
    "TransactionRepository",
    "InMemoryTransactionRepository",
    "RepositoryError",
    "TransactionNotFoundError",
    "InsufficientBalanceError",
    "PriceLookup",
    "StaticPriceLookup",
    "PriceLookupError",
    "TRANSACTIONS_SCHEMA",
    "HOLDINGS_SCHEMA",
    "CLOSED_POSITIONS_SCHEMA",
    "CLOSED_POSITION_GROUPS_SCHEMA",
]
