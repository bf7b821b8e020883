"""
Exchange client contract.

Modules:
    - base_client: Trading execution interface (BaseExchangeClient)
    - base_models: Order/position dataclasses, exceptions, credential checks
    - events: Fill notifications (OrderFillEvent, FillEventDispatcher)
    - factory: Lazy client creation (ExchangeFactory)
"""

from .base_client import BaseExchangeClient
from .base_models import (
    ExchangeConnectionError,
    ExchangeError,
    ExchangeTimeoutError,
    MissingCredentialsError,
    OrderRejectedError,
    OrderRequest,
    OrderResult,
    OrderSide,
    OrderType,
    PositionInfo,
    TimeInForce,
    validate_credentials,
)
from .events import FillEventDispatcher, OrderFillEvent
from .factory import ExchangeFactory

__all__ = [
    "BaseExchangeClient",
    "ExchangeConnectionError",
    "ExchangeError",
    "ExchangeFactory",
    "ExchangeTimeoutError",
    "FillEventDispatcher",
    "MissingCredentialsError",
    "OrderFillEvent",
    "OrderRejectedError",
    "OrderRequest",
    "OrderResult",
    "OrderSide",
    "OrderType",
    "PositionInfo",
    "TimeInForce",
    "validate_credentials",
]

__version__ = "1.0.0"
