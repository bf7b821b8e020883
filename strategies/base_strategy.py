"""
Base Strategy Interface
Defines the lifecycle contract that trading strategies implement.

- initialize() runs the strategy-specific setup exactly once
- start()/stop() register and drop event listeners
- cleanup() releases runtime resources and flushes logs
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from helpers.unified_logger import get_strategy_logger


class BaseStrategy(ABC):
    """
    Base class for trading strategies.

    Concrete strategies compose whatever helpers they need; this class only
    owns the logger, the initialization guard and the listener registry.
    """

    def __init__(self, config, exchange_client=None):
        """
        Initialize strategy with configuration and exchange client.

        Args:
            config: Strategy configuration
            exchange_client: Exchange client the strategy trades through
        """
        self.config = config
        self.exchange_client = exchange_client

        context = {}
        symbol = getattr(config, "symbol", None)
        if symbol:
            context["symbol"] = symbol
        if exchange_client is not None and hasattr(exchange_client, "get_exchange_name"):
            context["exchange"] = exchange_client.get_exchange_name()

        self.logger = get_strategy_logger(
            self.get_strategy_name().lower().replace(" ", "_"),
            **context,
        )

        self.is_initialized = False
        self._event_listeners: Dict[str, Callable] = {}

    async def initialize(self):
        """Initialize strategy-specific components (once)."""
        if not self.is_initialized:
            await self._initialize_strategy()
            self.is_initialized = True
            self.logger.info(f"Strategy '{self.get_strategy_name()}' initialized")

    @abstractmethod
    async def _initialize_strategy(self):
        """Strategy-specific initialization logic."""
        pass

    def start(self):
        """Register event listeners and mark the strategy as running."""
        self.register_events()
        self.logger.info(f"Strategy '{self.get_strategy_name()}' started")

    async def stop(self):
        """Stop the strategy and drop its listeners."""
        self.unregister_events()
        self.logger.info(f"Strategy '{self.get_strategy_name()}' terminated")

    def register_events(self):
        """
        Register event listeners.

        Override in child strategy to add listeners:

        Example:
        --------
        def register_events(self):
            self.add_listener('order_filled', self.handle_fill_event)
        """
        pass

    def unregister_events(self):
        """Cleanup all event listeners"""
        self._event_listeners.clear()

    def add_listener(self, event_name: str, callback: Callable):
        self._event_listeners[event_name] = callback

    def get_listener(self, event_name: str) -> Optional[Callable]:
        """Listener the bot dispatches ``event_name`` to, or None once stopped."""
        return self._event_listeners.get(event_name)

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Get the strategy name."""
        pass

    async def cleanup(self):
        """Cleanup strategy resources."""
        self.logger.info(f"Strategy '{self.get_strategy_name()}' cleanup completed")
        # Enqueued file sinks only write on flush
        if hasattr(self.logger, "flush"):
            self.logger.flush()
