"""
Shared data structures, exceptions, and utilities for exchange clients.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


# ============================================================================
# Exceptions
# ============================================================================

class ExchangeError(Exception):
    """Base exception for failures reported by (or while talking to) an exchange."""

    def __init__(self, message: str, *, exchange: Optional[str] = None):
        self.exchange = exchange
        super().__init__(message)


class ExchangeConnectionError(ExchangeError):
    """Raised when connectivity to the exchange cannot be established."""


class OrderRejectedError(ExchangeError):
    """Raised when the exchange refuses an order submission."""

    def __init__(self, message: str, *, exchange: Optional[str] = None, request: Optional["OrderRequest"] = None):
        self.request = request
        super().__init__(message, exchange=exchange)


class ExchangeTimeoutError(ExchangeError):
    """Raised when an exchange call does not complete within its time budget."""


class MissingCredentialsError(Exception):
    """Raised when exchange credentials are missing or invalid (placeholders)."""
    pass


def validate_credentials(
    credential_name: str,
    credential_value: Optional[str],
    placeholder_values: Optional[List[str]] = None,
) -> None:
    """
    Validate exchange credentials to ensure they're not missing or placeholders.

    Args:
        credential_name: Name of the credential (e.g., 'BLUEFIN_PRIVATE_KEY')
        credential_value: Value of the credential from environment
        placeholder_values: List of placeholder values to reject

    Raises:
        MissingCredentialsError: If credential is missing or is a placeholder
    """
    if placeholder_values is None:
        placeholder_values = [
            "your_api_key_here",
            "your_secret_key_here",
            "your_private_key_here",
            "your_wallet_key_here",
            "PLACEHOLDER",
            "placeholder",
            "",
        ]

    if not credential_value:
        raise MissingCredentialsError(f"Missing {credential_name} environment variable")

    if credential_value in placeholder_values:
        raise MissingCredentialsError(f"{credential_name} is not configured (placeholder or empty)")


# ============================================================================
# Order primitives
# ============================================================================

class OrderSide(str, Enum):
    """Order direction."""

    BUY = "BUY"
    SELL = "SELL"

    @property
    def opposite(self) -> "OrderSide":
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class OrderType(str, Enum):
    LIMIT = "LIMIT"
    MARKET = "MARKET"


class TimeInForce(str, Enum):
    GTC = "GTC"


@dataclass(frozen=True)
class OrderRequest:
    """
    Exchange-agnostic order submission.

    ``price`` and ``time_in_force`` only apply to LIMIT orders.
    """

    symbol: str
    side: OrderSide
    order_type: OrderType
    quantity: Decimal
    price: Optional[Decimal] = None
    time_in_force: Optional[TimeInForce] = None

    def __post_init__(self):
        if self.order_type is OrderType.LIMIT and self.price is None:
            raise ValueError("LIMIT orders require a price")

    @classmethod
    def limit(cls, symbol: str, side: OrderSide, quantity: Decimal, price: Decimal) -> "OrderRequest":
        return cls(
            symbol=symbol,
            side=side,
            order_type=OrderType.LIMIT,
            quantity=quantity,
            price=price,
            time_in_force=TimeInForce.GTC,
        )

    @classmethod
    def market(cls, symbol: str, side: OrderSide, quantity: Decimal) -> "OrderRequest":
        return cls(symbol=symbol, side=side, order_type=OrderType.MARKET, quantity=quantity)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "symbol": self.symbol,
            "side": self.side.value,
            "type": self.order_type.value,
            "quantity": str(self.quantity),
        }
        if self.price is not None:
            payload["price"] = str(self.price)
        if self.time_in_force is not None:
            payload["timeInForce"] = self.time_in_force.value
        return payload


@dataclass
class OrderResult:
    """Standardized order result structure returned by ``create_order``."""

    success: bool
    order_id: Optional[str] = None
    side: Optional[str] = None
    size: Optional[Decimal] = None
    price: Optional[Decimal] = None
    status: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class PositionInfo:
    """
    Position/leverage view for a single symbol.

    The grid core only reads ``leverage`` (diagnostics); the remaining
    fields are carried for logging.
    """

    symbol: str
    leverage: Optional[int] = None
    quantity: Decimal = Decimal("0")
    entry_price: Optional[Decimal] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
