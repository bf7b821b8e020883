"""Base interface for trading exchange clients."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, Optional

from .base_models import OrderRequest, OrderResult, PositionInfo
from .events import FillEventDispatcher, OrderFillEvent


class BaseExchangeClient(ABC):
    """
    Capability contract the grid strategy relies on.

    Concrete clients own transport, signing and wallet handling; the strategy
    only sees the async methods below.

    Implementation Pattern:
        ```python
        class BluefinClient(BaseExchangeClient):
            def _validate_config(self) -> None:
                validate_credentials("BLUEFIN_PRIVATE_KEY", os.getenv("BLUEFIN_PRIVATE_KEY"))

            async def connect(self) -> None:
                ...
        ```

    Fill notifications are pushed by the client through ``emit_fill_event``;
    consumers obtain a queue via ``fill_events_queue``.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize the exchange client with configuration.

        Args:
            config: Client configuration (symbol, testnet flag, credentials)
        """
        self.config = config
        self._validate_config()
        self._fill_dispatcher = FillEventDispatcher()

    @abstractmethod
    def _validate_config(self) -> None:
        """
        Validate exchange-specific configuration.

        Should call ``validate_credentials()`` for each required secret and
        raise ``MissingCredentialsError`` when one is unusable.
        """
        pass

    @property
    def testnet(self) -> bool:
        return bool(self.config.get("testnet", False))

    # ========================================================================
    # FILL EVENTS
    # ========================================================================

    def fill_events_queue(
        self,
        queue: Optional[asyncio.Queue[OrderFillEvent]] = None,
    ) -> asyncio.Queue[OrderFillEvent]:
        """Register for fill events and return the queue they arrive on."""
        return self._fill_dispatcher.register(queue)

    def unregister_fill_queue(self, queue: asyncio.Queue[OrderFillEvent]) -> None:
        """Remove a previously registered fill queue."""
        self._fill_dispatcher.unregister(queue)

    async def emit_fill_event(self, event: OrderFillEvent) -> None:
        """Publish a fill to every registered listener."""
        await self._fill_dispatcher.emit(event)

    # ========================================================================
    # CONNECTION MANAGEMENT
    # ========================================================================

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connectivity (HTTP session, websocket, wallet onboarding).

        Raises:
            ExchangeConnectionError: If the venue cannot be reached
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connections and cancel background tasks."""
        pass

    @abstractmethod
    def get_exchange_name(self) -> str:
        """
        Get the exchange name identifier.

        Returns:
            Exchange name (e.g., "bluefin")
        """
        pass

    # ========================================================================
    # ACCOUNT
    # ========================================================================

    @abstractmethod
    async def set_leverage(self, symbol: str, leverage: int) -> bool:
        """
        Apply account leverage for ``symbol``.

        Returns:
            True when the venue accepted the change
        """
        pass

    @abstractmethod
    async def get_position(self, symbol: str) -> PositionInfo:
        """Return leverage and position details for ``symbol``."""
        pass

    # ========================================================================
    # MARKET DATA
    # ========================================================================

    @abstractmethod
    async def get_ticker(self, symbol: str) -> Decimal:
        """Return the last traded price for ``symbol``."""
        pass

    # ========================================================================
    # ORDERS
    # ========================================================================

    @abstractmethod
    async def create_order(self, request: OrderRequest) -> OrderResult:
        """
        Submit an order.

        Returns:
            OrderResult carrying the exchange-assigned ``order_id``

        Raises:
            OrderRejectedError: If the venue refuses the order
        """
        pass
