"""
Pytest fixtures for the portfolio ledger tests.

Provides common test data and utilities used across test modules.
"""

import tempfile
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Callable

import pytest

from bitpal_ledger.data.prices import StaticPriceLookup
from bitpal_ledger.data.repository import InMemoryTransactionRepository
from bitpal_ledger.models import (
    AssetQuote,
    LedgerConfig,
    Transaction,
    TransactionType,
)


BASE_TIME = datetime(2024, 1, 2, 9, 30)


@pytest.fixture
def make_tx() -> Callable[..., Transaction]:
    """
    Factory fixture for transactions.

    Each call is placed one day after the previous one unless a day offset
    is given, so call order is chronological order.

    Usage:
        def test_something(make_tx):
            buy = make_tx("bitcoin", "BUY", "1", "40000")
    """
    counter = {"day": 0}

    def _make(
        asset_id: str,
        tx_type: str,
        amount: str,
        price: str,
        day: int | None = None,
        notes: str | None = None,
    ) -> Transaction:
        if day is None:
            day = counter["day"]
            counter["day"] += 1
        return Transaction.create(
            asset_id=asset_id,
            type=TransactionType(tx_type),
            amount=amount,
            price_per_unit=price,
            timestamp=BASE_TIME + timedelta(days=day),
            notes=notes,
        )

    return _make


@pytest.fixture
def bitcoin_quote() -> AssetQuote:
    """Bitcoin quoted at $50k."""
    return AssetQuote(
        asset_id="bitcoin",
        symbol="btc",
        name="Bitcoin",
        current_price=Decimal("50000"),
        price_change_24h=Decimal("2.5"),
        last_updated=datetime(2024, 6, 15, 12, 0),
    )


@pytest.fixture
def ethereum_quote() -> AssetQuote:
    """Ethereum quoted at $3k."""
    return AssetQuote(
        asset_id="ethereum",
        symbol="eth",
        name="Ethereum",
        current_price=Decimal("3000"),
        price_change_24h=Decimal("-1.2"),
        last_updated=datetime(2024, 6, 15, 12, 0),
    )


@pytest.fixture
def solana_quote() -> AssetQuote:
    """Solana quoted at $150."""
    return AssetQuote(
        asset_id="solana",
        symbol="sol",
        name="Solana",
        current_price=Decimal("150"),
        last_updated=datetime(2024, 6, 15, 12, 0),
    )


@pytest.fixture
def sample_prices(
    bitcoin_quote: AssetQuote,
    ethereum_quote: AssetQuote,
    solana_quote: AssetQuote,
) -> dict[str, AssetQuote]:
    """Price map for bitcoin, ethereum and solana."""
    return {
        "bitcoin": bitcoin_quote,
        "ethereum": ethereum_quote,
        "solana": solana_quote,
    }


@pytest.fixture
def mixed_ledger(make_tx) -> list[Transaction]:
    """
    Multi-asset ledger exercising every kind of cycle.

    - bitcoin: one closed cycle (+$10k), then an open cycle of 2 BTC @ $40k
      with a partial sell of 1 BTC @ $50k (+$10k partial gain)
    - ethereum: open, 10 ETH @ $2k, no sells
    - solana: one closed cycle at a loss (-$500)
    """
    return [
        make_tx("bitcoin", "BUY", "1", "40000"),
        make_tx("bitcoin", "SELL", "1", "50000"),
        make_tx("ethereum", "BUY", "10", "2000"),
        make_tx("solana", "BUY", "50", "160"),
        make_tx("bitcoin", "BUY", "2", "40000"),
        make_tx("solana", "SELL", "50", "150"),
        make_tx("bitcoin", "SELL", "1", "50000"),
    ]


@pytest.fixture
def sample_config() -> LedgerConfig:
    """Default ledger configuration."""
    return LedgerConfig()


@pytest.fixture
def repository() -> InMemoryTransactionRepository:
    """Empty in-memory repository with sell validation."""
    return InMemoryTransactionRepository()


@pytest.fixture
def price_lookup(sample_prices: dict[str, AssetQuote]) -> StaticPriceLookup:
    """Static price source seeded with sample prices."""
    return StaticPriceLookup(sample_prices.values())


@pytest.fixture
def temp_output_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)
