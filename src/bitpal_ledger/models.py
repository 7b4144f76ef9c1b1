"""
Core data models for the portfolio ledger.

This module defines the fundamental data structures used throughout the system,
including transactions, holdings, closed positions and portfolio summaries.
All monetary and quantity values use Decimal for precision.
"""

from dataclasses import dataclass, field, replace as dataclass_replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
import uuid


ZERO = Decimal("0")
HUNDRED = Decimal("100")


class TransactionType(Enum):
    """Trade direction indicator."""
    BUY = "BUY"
    SELL = "SELL"


class ActionType(Enum):
    """Types of logged actions for the decision log."""
    CONFIG_LOADED = "CONFIG_LOADED"
    TRANSACTION_RECORDED = "TRANSACTION_RECORDED"
    TRANSACTION_DELETED = "TRANSACTION_DELETED"
    PORTFOLIO_VALUED = "PORTFOLIO_VALUED"
    DEGENERATE_CYCLE_FLAGGED = "DEGENERATE_CYCLE_FLAGGED"


class TransactionValidationError(ValueError):
    """Raised when a transaction cannot be constructed from the given values."""
    pass


class InvalidAmountError(TransactionValidationError):
    """Raised when a transaction amount is not greater than zero."""

    def __init__(self, amount: Any):
        self.amount = amount
        super().__init__(f"Amount must be greater than zero, got {amount}")


class InvalidPriceError(TransactionValidationError):
    """Raised when a transaction price is not greater than zero."""

    def __init__(self, price: Any):
        self.price = price
        super().__init__(f"Price must be greater than zero, got {price}")


class FutureTimestampError(TransactionValidationError):
    """Raised when a transaction is dated in the future."""

    def __init__(self, timestamp: datetime):
        self.timestamp = timestamp
        super().__init__(
            f"Transaction date cannot be in the future: {timestamp.isoformat()}"
        )


def to_decimal(value: Any, field_name: str) -> Decimal:
    """
    Coerce a numeric or string value to Decimal.

    Floats go through str() so that 0.1 becomes Decimal("0.1") rather than
    its binary expansion.

    Raises:
        TransactionValidationError: If the value is not a valid decimal
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TransactionValidationError(f"Invalid decimal value for {field_name}: {value}")
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise TransactionValidationError(f"Invalid decimal value for {field_name}: {value}")
    if not result.is_finite():
        raise TransactionValidationError(f"Invalid decimal value for {field_name}: {value}")
    return result


def _now_like(timestamp: datetime) -> datetime:
    """Current time in the same timezone awareness as the given timestamp."""
    if timestamp.tzinfo is not None:
        return datetime.now(timestamp.tzinfo)
    return datetime.now()


@dataclass(frozen=True)
class Transaction:
    """
    A single recorded buy or sell of one asset.

    Transactions are immutable. A user edit produces a replacement record with
    the same transaction_id (see replace()); the core never mutates them.

    Attributes:
        transaction_id: Unique identifier for this transaction
        asset_id: Key of the traded asset (e.g. "bitcoin")
        type: BUY or SELL
        amount: Quantity traded (> 0)
        price_per_unit: Price paid or received per unit (> 0)
        timestamp: When the trade happened (not in the future)
        notes: Optional free-text notes
    """
    transaction_id: str
    asset_id: str
    type: TransactionType
    amount: Decimal
    price_per_unit: Decimal
    timestamp: datetime
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.asset_id:
            raise TransactionValidationError("asset_id cannot be empty")
        if not isinstance(self.type, TransactionType):
            raise TransactionValidationError(f"Invalid transaction type: {self.type}")
        if not isinstance(self.amount, Decimal) or not self.amount.is_finite() or self.amount <= ZERO:
            raise InvalidAmountError(self.amount)
        if (
            not isinstance(self.price_per_unit, Decimal)
            or not self.price_per_unit.is_finite()
            or self.price_per_unit <= ZERO
        ):
            raise InvalidPriceError(self.price_per_unit)
        if self.timestamp > _now_like(self.timestamp):
            raise FutureTimestampError(self.timestamp)

    @classmethod
    def create(
        cls,
        asset_id: str,
        type: TransactionType | str,
        amount: Any,
        price_per_unit: Any,
        timestamp: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> "Transaction":
        """Factory method to create a validated Transaction with auto-generated ID."""
        if isinstance(type, str):
            try:
                type = TransactionType(type.upper())
            except ValueError:
                raise TransactionValidationError(f"Invalid transaction type: {type}")

        return cls(
            transaction_id=str(uuid.uuid4()),
            asset_id=asset_id,
            type=type,
            amount=to_decimal(amount, "amount"),
            price_per_unit=to_decimal(price_per_unit, "price_per_unit"),
            timestamp=timestamp if timestamp is not None else datetime.now(),
            notes=notes or None,
        )

    def replace(self, **changes: Any) -> "Transaction":
        """Return an edited copy of this transaction that keeps its ID."""
        changes.pop("transaction_id", None)
        for name in ("amount", "price_per_unit"):
            if name in changes:
                changes[name] = to_decimal(changes[name], name)
        return dataclass_replace(self, **changes)

    @property
    def is_buy(self) -> bool:
        return self.type == TransactionType.BUY

    @property
    def is_sell(self) -> bool:
        return self.type == TransactionType.SELL

    @property
    def total_value(self) -> Decimal:
        """Total value of the trade (amount * price_per_unit)."""
        return self.amount * self.price_per_unit

    @property
    def signed_amount(self) -> Decimal:
        """Quantity change this transaction applies to the position."""
        return self.amount if self.is_buy else -self.amount


@dataclass
class AssetQuote:
    """
    Asset metadata with its current market price.

    Attributes:
        asset_id: Asset key matching Transaction.asset_id
        symbol: Ticker symbol (e.g. "btc")
        name: Display name (e.g. "Bitcoin")
        current_price: Latest price per unit
        price_change_24h: 24 hour price change percentage
        last_updated: When the price was fetched
    """
    asset_id: str
    symbol: str
    name: str
    current_price: Decimal
    price_change_24h: Decimal = ZERO
    last_updated: Optional[datetime] = None


@dataclass
class Holding:
    """
    Current open position in one asset.

    Derived from the open cycle of the asset's transactions on every run,
    never persisted.

    Attributes:
        asset_id: Asset key
        quote: Asset metadata and price used for valuation
        total_quantity: Units currently held (> 0)
        avg_cost_basis: Weighted average price paid per held unit
        current_price: Price used for valuation
        current_value: total_quantity * current_price
        unrealized_pnl: current_value - total_quantity * avg_cost_basis
        unrealized_pnl_percent: Unrealized P&L as percentage of cost (e.g. 25 for 25%)
    """
    asset_id: str
    quote: AssetQuote
    total_quantity: Decimal
    avg_cost_basis: Decimal
    current_price: Decimal
    current_value: Decimal
    unrealized_pnl: Decimal
    unrealized_pnl_percent: Decimal

    @classmethod
    def from_position(
        cls,
        quote: AssetQuote,
        total_quantity: Decimal,
        avg_cost_basis: Decimal,
    ) -> "Holding":
        """Create a Holding from an open quantity, its cost basis and a quote."""
        current_value = total_quantity * quote.current_price
        total_cost = total_quantity * avg_cost_basis
        unrealized_pnl = current_value - total_cost

        # Avoid division by zero
        if total_cost > ZERO:
            unrealized_pnl_percent = unrealized_pnl / total_cost * HUNDRED
        else:
            unrealized_pnl_percent = ZERO

        return cls(
            asset_id=quote.asset_id,
            quote=quote,
            total_quantity=total_quantity,
            avg_cost_basis=avg_cost_basis,
            current_price=quote.current_price,
            current_value=current_value,
            unrealized_pnl=unrealized_pnl,
            unrealized_pnl_percent=unrealized_pnl_percent,
        )

    @property
    def total_cost(self) -> Decimal:
        """Cost basis of the units held (total_quantity * avg_cost_basis)."""
        return self.total_quantity * self.avg_cost_basis


@dataclass
class ClosedPosition:
    """
    A fully closed trading cycle for one asset.

    Attributes:
        asset_id: Asset key
        total_quantity: Total units bought during the cycle
        avg_cost_price: Weighted average buy price of the cycle
        avg_sale_price: Weighted average sell price of the cycle
        opened_date: Timestamp of the first transaction in the cycle
        closed_date: Timestamp of the transaction that brought quantity to zero
        realized_pnl: (avg_sale_price - avg_cost_price) * total_quantity
        realized_pnl_percent: ((avg_sale_price / avg_cost_price) - 1) * 100
        cycle_transactions: Chronological transactions of the cycle
        is_degenerate: True when the cycle had no buy volume
    """
    asset_id: str
    total_quantity: Decimal
    avg_cost_price: Decimal
    avg_sale_price: Decimal
    opened_date: datetime
    closed_date: datetime
    realized_pnl: Decimal
    realized_pnl_percent: Decimal
    cycle_transactions: tuple[Transaction, ...]
    is_degenerate: bool = False

    @property
    def total_cost(self) -> Decimal:
        return self.avg_cost_price * self.total_quantity

    @property
    def total_proceeds(self) -> Decimal:
        return self.avg_sale_price * self.total_quantity


@dataclass
class ClosedPositionGroup:
    """
    All closed positions of one asset, newest first.

    Attributes:
        asset_id: Asset key
        closed_positions: Closed cycles sorted by closed_date descending
    """
    asset_id: str
    closed_positions: list[ClosedPosition] = field(default_factory=list)

    @property
    def cycle_count(self) -> int:
        return len(self.closed_positions)

    @property
    def total_realized_pnl(self) -> Decimal:
        return sum((p.realized_pnl for p in self.closed_positions), ZERO)

    @property
    def total_realized_pnl_percent(self) -> Decimal:
        """Realized return across all cycles, weighted by each cycle's cost."""
        total_cost = sum((p.total_cost for p in self.closed_positions), ZERO)
        if total_cost <= ZERO:
            return ZERO
        total_proceeds = sum((p.total_proceeds for p in self.closed_positions), ZERO)
        return (total_proceeds / total_cost - 1) * HUNDRED

    @property
    def most_recent_close_date(self) -> Optional[datetime]:
        if not self.closed_positions:
            return None
        return max(p.closed_date for p in self.closed_positions)


@dataclass
class PortfolioSummary:
    """
    Portfolio totals across all assets.

    Attributes:
        total_value: Sum of open holdings' current value
        unrealized_pnl: Sum of open holdings' unrealized P&L
        realized_pnl: Closed-cycle P&L plus partial gains of open cycles
        total_pnl: unrealized_pnl + realized_pnl
        total_cost: Sum of open holdings' cost basis
        unrealized_pnl_percent: ((total_value / total_cost) - 1) * 100
        closed_realized_pnl: Realized P&L of fully closed cycles
        partial_realized_pnl: Gains locked in by sells within open cycles
        holding_count: Number of open holdings
        total_closed_cost: Sum of closed positions' cost basis
        closed_position_count: Number of closed cycles
    """
    total_value: Decimal
    unrealized_pnl: Decimal
    realized_pnl: Decimal
    total_pnl: Decimal
    total_cost: Decimal = ZERO
    unrealized_pnl_percent: Decimal = ZERO
    closed_realized_pnl: Decimal = ZERO
    partial_realized_pnl: Decimal = ZERO
    holding_count: int = 0
    total_closed_cost: Decimal = ZERO
    closed_position_count: int = 0

    @property
    def total_pnl_percent(self) -> Decimal:
        """Total P&L as a percentage of open plus closed cost basis."""
        total_cost_basis = self.total_cost + self.total_closed_cost
        if total_cost_basis <= ZERO:
            return ZERO
        return self.total_pnl / total_cost_basis * HUNDRED

    @property
    def is_empty(self) -> bool:
        """True when there is neither an open holding nor a closed cycle."""
        return self.holding_count == 0 and self.closed_position_count == 0


@dataclass
class LedgerConfig:
    """
    Engine configuration loaded from YAML.

    Attributes:
        epsilon: Quantity tolerance for detecting a closed cycle
        holdings_sort: Holding order, "value" (descending) or "asset_id"
        validate_sell_balance: Reject sells exceeding the open quantity on save
        decision_log_path: JSONL audit log path (no audit log when None)
    """
    epsilon: Decimal = Decimal("0.00000001")
    holdings_sort: str = "value"
    validate_sell_balance: bool = True
    decision_log_path: Optional[str] = None


@dataclass
class DecisionLogEntry:
    """
    Entry for the append-only decision log.

    Attributes:
        timestamp: When the action occurred
        action_type: Type of action
        asset_id: Asset involved (if applicable)
        details: JSON-serializable details dictionary
    """
    timestamp: datetime
    action_type: ActionType
    asset_id: Optional[str]
    details: dict

    @classmethod
    def create(
        cls,
        action_type: ActionType,
        asset_id: Optional[str],
        details: dict,
    ) -> "DecisionLogEntry":
        """Factory method with auto-generated timestamp."""
        return cls(
            timestamp=datetime.now(),
            action_type=action_type,
            asset_id=asset_id,
            details=details,
        )
