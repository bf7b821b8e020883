"""Pytest configuration and in-memory exchange for grid tests."""

import asyncio
import os
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Keep test runs from writing into logs/
os.environ.setdefault("GRID_LOG_TO_FILE", "false")

pytest_plugins = ["pytest_asyncio"]

from exchange_clients.base_client import BaseExchangeClient  # noqa: E402
from exchange_clients.base_models import (  # noqa: E402
    OrderRejectedError,
    OrderRequest,
    OrderResult,
    OrderType,
    PositionInfo,
)
from strategies.implementations.grid.config import GridConfig  # noqa: E402


class DummyExchange(BaseExchangeClient):
    """
    Scriptable exchange client.

    ``prices`` is consumed one value per ticker call; the last value repeats.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config or {"symbol": "ETH-PERP"})
        self.prices: List[Decimal] = [Decimal("100")]
        self.requests: List[OrderRequest] = []
        self.connected = False
        self.disconnect_calls = 0
        self.leverage_calls: List[tuple] = []
        self.position_leverage: Optional[int] = 3

        # Failure switches
        self.connect_error: Optional[Exception] = None
        self.ticker_error: Optional[Exception] = None
        self.position_error: Optional[Exception] = None
        self.leverage_result = True
        self.reject_limit_prices: Set[Decimal] = set()
        self.fail_market_orders = 0
        self.order_delay = 0.0

        self._next_id = 0

    def _validate_config(self) -> None:
        pass

    async def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False
        self.disconnect_calls += 1

    def get_exchange_name(self) -> str:
        return "dummy"

    async def set_leverage(self, symbol: str, leverage: int) -> bool:
        self.leverage_calls.append((symbol, leverage))
        return self.leverage_result

    async def get_position(self, symbol: str) -> PositionInfo:
        if self.position_error is not None:
            raise self.position_error
        return PositionInfo(symbol=symbol, leverage=self.position_leverage)

    async def get_ticker(self, symbol: str) -> Decimal:
        if self.ticker_error is not None:
            raise self.ticker_error
        if len(self.prices) > 1:
            return self.prices.pop(0)
        return self.prices[0]

    async def create_order(self, request: OrderRequest) -> OrderResult:
        if self.order_delay:
            await asyncio.sleep(self.order_delay)
        self.requests.append(request)

        if request.order_type is OrderType.MARKET and self.fail_market_orders > 0:
            self.fail_market_orders -= 1
            raise OrderRejectedError("insufficient margin", exchange="dummy", request=request)
        if request.order_type is OrderType.LIMIT and request.price in self.reject_limit_prices:
            return OrderResult(success=False, error_message=f"price {request.price} rejected")

        self._next_id += 1
        return OrderResult(
            success=True,
            order_id=f"order-{self._next_id}",
            side=request.side.value,
            size=request.quantity,
            price=request.price,
            status="OPEN" if request.order_type is OrderType.LIMIT else "FILLED",
        )

    # Test helpers
    @property
    def limit_requests(self) -> List[OrderRequest]:
        return [r for r in self.requests if r.order_type is OrderType.LIMIT]

    @property
    def market_requests(self) -> List[OrderRequest]:
        return [r for r in self.requests if r.order_type is OrderType.MARKET]


def make_grid_config(**overrides: Any) -> GridConfig:
    params: Dict[str, Any] = {
        "symbol": "ETH-PERP",
        "grid_size": 5,
        "lower_price": Decimal("90"),
        "upper_price": Decimal("110"),
        "quantity": Decimal("2"),
        "leverage": 3,
        "take_profit_price": Decimal("110"),
        "stop_loss_price": Decimal("95"),
        "poll_interval": 0.01,
        "request_timeout": 1.0,
    }
    params.update(overrides)
    return GridConfig(**params)


async def wait_until(predicate, timeout: float = 1.0, interval: float = 0.005) -> bool:
    """Poll ``predicate`` on the running loop until it holds or ``timeout`` passes."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


class RecordingLogger:
    """Minimal UnifiedLogger stand-in that keeps every message."""

    def __init__(self):
        self.records: List[tuple] = []

    def log(self, message: str, level: str = "INFO", **kwargs):
        self.records.append((level.upper(), message))

    def log_transaction(self, order_id, side, quantity, price, status):
        self.records.append(("INFO", f"TRANSACTION: {side} {quantity} @ {price} | Order: {order_id} | Status: {status}"))

    def info(self, message: str, **kwargs):
        self.log(message, "INFO")

    def warning(self, message: str, **kwargs):
        self.log(message, "WARNING")

    def error(self, message: str, **kwargs):
        self.log(message, "ERROR")

    def debug(self, message: str, **kwargs):
        self.log(message, "DEBUG")

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [msg for lvl, msg in self.records if level is None or lvl == level.upper()]


@pytest.fixture
def dummy_exchange() -> DummyExchange:
    return DummyExchange()


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def grid_config() -> GridConfig:
    return make_grid_config()
