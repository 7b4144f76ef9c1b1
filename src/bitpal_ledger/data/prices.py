"""
Current-price lookup interface.

Price fetching (REST polling, streaming) lives outside the core. The core only
needs a mapping from asset key to the latest AssetQuote, supplied through a
PriceLookup implementation injected into the service.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from bitpal_ledger.models import AssetQuote, TransactionValidationError, to_decimal


class PriceLookupError(Exception):
    """Raised when a price lookup encounters an error."""
    pass


class PriceLookup(ABC):
    """
    Abstract base class for current-price sources.

    Implementations return quotes only for the assets they know; assets
    without a price are simply absent from the result.
    """

    @abstractmethod
    def get_quotes(self, asset_ids: Iterable[str]) -> dict[str, AssetQuote]:
        """
        Fetch current quotes for assets.

        Args:
            asset_ids: Asset keys to price

        Returns:
            Dictionary mapping asset_id to AssetQuote (missing assets omitted)

        Raises:
            PriceLookupError: If the source cannot be queried
        """
        pass

    def get_price(self, asset_id: str) -> Optional[Decimal]:
        """Current price of a single asset, None when unknown."""
        quote = self.get_quotes([asset_id]).get(asset_id)
        return quote.current_price if quote else None


class StaticPriceLookup(PriceLookup):
    """
    Dictionary-backed price source.

    Used in tests and by applications that push prices into the core from
    their own fetch loop.
    """

    def __init__(self, quotes: Optional[Iterable[AssetQuote]] = None):
        self._lock = threading.Lock()
        self._quotes: dict[str, AssetQuote] = {}
        for quote in quotes or []:
            self._quotes[quote.asset_id] = quote

    def get_quotes(self, asset_ids: Iterable[str]) -> dict[str, AssetQuote]:
        with self._lock:
            return {
                asset_id: self._quotes[asset_id]
                for asset_id in asset_ids
                if asset_id in self._quotes
            }

    def set_quote(self, quote: AssetQuote) -> None:
        with self._lock:
            self._quotes[quote.asset_id] = quote

    def update_price(self, asset_id: str, price: Decimal | str | int) -> AssetQuote:
        """
        Set the current price of an asset, creating a bare quote if needed.

        Returns:
            The stored quote
        """
        try:
            current_price = to_decimal(price, "price")
        except TransactionValidationError as e:
            raise PriceLookupError(str(e))
        if current_price <= 0:
            raise PriceLookupError(f"Price must be positive for {asset_id}, got {current_price}")

        with self._lock:
            existing = self._quotes.get(asset_id)
            quote = AssetQuote(
                asset_id=asset_id,
                symbol=existing.symbol if existing else asset_id,
                name=existing.name if existing else asset_id,
                current_price=current_price,
                price_change_24h=existing.price_change_24h if existing else Decimal("0"),
                last_updated=datetime.now(),
            )
            self._quotes[asset_id] = quote
            return quote
