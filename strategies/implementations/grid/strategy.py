"""
Grid Trading Strategy

Single-exchange leveraged grid. Inherits from BaseStrategy and composes
the level calculator, order manager, position monitor and stats tracker.
"""

import asyncio
from decimal import Decimal
from typing import Any, Dict, List, Optional

from exchange_clients.base_models import ExchangeConnectionError, ExchangeError
from exchange_clients.events import OrderFillEvent
from helpers.unified_logger import log_stage
from strategies.base_strategy import BaseStrategy

from .config import GridConfig
from .levels import compute_levels
from .models import TrackedOrder
from .order_manager import GridOrderManager
from .position_monitor import GridPositionMonitor
from .stats_tracker import GridStatsTracker
from .utils import call_exchange


class GridStrategy(BaseStrategy):
    """
    Grid trading strategy implementation.

    This strategy:
    1. Places a ladder of limit orders between ``lower_price`` and ``upper_price``
    2. Posts the opposite-side order one step away whenever a ladder order fills
    3. Watches every filled order against the global take-profit / stop-loss
    4. Flattens a position with a market order once a threshold is crossed
    5. Reports realized statistics after every close
    """

    def __init__(self, config: GridConfig, exchange_client):
        """
        Initialize grid strategy.

        Args:
            config: GridConfig instance with strategy parameters
            exchange_client: Exchange client for trading
        """
        super().__init__(config=config, exchange_client=exchange_client)

        self.levels: List[Decimal] = []
        self.reported_leverage: Optional[int] = None
        self.ladder_placed = False

        self.stats = GridStatsTracker(config.leverage, logger=self.logger)
        self.position_monitor = GridPositionMonitor(
            config=config,
            exchange_client=exchange_client,
            logger=self.logger,
        )
        self.order_manager = GridOrderManager(
            config=config,
            exchange_client=exchange_client,
            logger=self.logger,
            monitor=self.position_monitor,
            stats=self.stats,
        )
        self.position_monitor.set_close_handler(self.order_manager.close_order)

        self.logger.log("Grid strategy initialized with parameters:", "INFO")
        self.logger.log(f"  - Symbol: {config.symbol}", "INFO")
        self.logger.log(f"  - Range: {config.lower_price} - {config.upper_price} ({config.grid_size} levels)", "INFO")
        self.logger.log(f"  - Quantity: {config.quantity}", "INFO")
        self.logger.log(f"  - Leverage: {config.leverage}x", "INFO")
        self.logger.log(f"  - Take Profit: {config.take_profit_price}", "INFO")
        self.logger.log(f"  - Stop Loss: {config.stop_loss_price}", "INFO")
        self.logger.log(f"  - Poll Interval: {config.poll_interval}s", "INFO")
        if config.reladder_step is not None:
            self.logger.log(f"  - Re-ladder Step: {config.reladder_step}", "INFO")
        if config.testnet:
            self.logger.log("  - Network: testnet", "WARNING")

    def _call(self, description: str, call, level: str = "ERROR"):
        return call_exchange(
            description,
            call,
            logger=self.logger,
            timeout=self.config.request_timeout,
            max_attempts=self.config.max_call_attempts,
            level=level,
        )

    # ------------------------------------------------------------------ #
    # Initialization
    # ------------------------------------------------------------------ #
    async def _initialize_strategy(self):
        """
        Connect, configure leverage and place the initial ladder.

        Raises:
            ExchangeConnectionError: If the exchange cannot be reached
            GridConfigurationError: If the levels cannot be derived
        """
        log_stage(self.logger, "Grid Initialization", icon="🚀")

        await self._connect()

        leverage_set = await self._call(
            f"set leverage {self.config.leverage}x",
            lambda: self.exchange_client.set_leverage(self.config.symbol, self.config.leverage),
        )
        if leverage_set.ok and leverage_set.value is False:
            self.logger.log(f"Grid: Exchange declined leverage {self.config.leverage}x", "WARNING")

        self.reported_leverage = await self.get_leverage()
        if self.reported_leverage is not None:
            self.logger.log(f"Grid: Exchange reports leverage {self.reported_leverage}x", "INFO")

        self.levels = compute_levels(self.config.lower_price, self.config.upper_price, self.config.grid_size)
        self.logger.log(f"Grid: Levels {', '.join(str(level) for level in self.levels)}", "INFO")

        price = await self._call("current price lookup", self._fetch_price)
        if not price.ok:
            self.logger.log("Grid: No reference price; initial ladder not placed", "ERROR")
            return

        placed = await self.order_manager.place_initial_ladder(self.levels, price.value)
        self.ladder_placed = bool(placed)

    async def _connect(self) -> None:
        exchange_name = self.exchange_client.get_exchange_name()
        try:
            if self.config.request_timeout is None:
                await self.exchange_client.connect()
            else:
                await asyncio.wait_for(self.exchange_client.connect(), timeout=self.config.request_timeout)
        except ExchangeConnectionError:
            raise
        except asyncio.TimeoutError as exc:
            raise ExchangeConnectionError(
                f"Connecting to {exchange_name} timed out after {self.config.request_timeout}s",
                exchange=exchange_name,
            ) from exc
        except ExchangeError as exc:
            raise ExchangeConnectionError(str(exc), exchange=exchange_name) from exc
        except Exception as exc:
            raise ExchangeConnectionError(f"Failed to connect to {exchange_name}: {exc}", exchange=exchange_name) from exc

        self.logger.log(f"Grid: Connected to {exchange_name}", "INFO")

    async def _fetch_price(self) -> Decimal:
        price = await self.exchange_client.get_ticker(self.config.symbol)
        return price if isinstance(price, Decimal) else Decimal(str(price))

    # ------------------------------------------------------------------ #
    # Events
    # ------------------------------------------------------------------ #
    def register_events(self):
        self.add_listener("order_filled", self.handle_fill_event)

    async def handle_fill_event(self, event: OrderFillEvent) -> Optional[TrackedOrder]:
        return await self.on_fill(event.order_id, event.fill_price)

    async def on_fill(self, order_id: str, fill_price: Decimal) -> Optional[TrackedOrder]:
        """Forward a fill notification to the order manager."""
        return await self.order_manager.on_fill(order_id, fill_price)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    async def get_leverage(self) -> Optional[int]:
        """Leverage reported by the exchange, or None if it cannot be read."""
        result = await self._call(
            "leverage lookup",
            lambda: self.exchange_client.get_position(self.config.symbol),
            level="WARNING",
        )
        if not result.ok or result.value is None:
            return None
        return result.value.leverage

    def get_status(self) -> Dict[str, Any]:
        """Get current strategy status."""
        orders = self.order_manager.active_orders()
        return {
            "strategy": "grid",
            "symbol": self.config.symbol,
            "initialized": self.is_initialized,
            "ladder_placed": self.ladder_placed,
            "levels": [str(level) for level in self.levels],
            "active_orders": len(orders),
            "orders": [order.to_dict() for order in orders],
            "monitored_positions": self.position_monitor.active_count(),
            "reported_leverage": self.reported_leverage,
            "stats": self.stats.report().to_dict(),
        }

    def get_strategy_name(self) -> str:
        return "Grid Trading"

    # ------------------------------------------------------------------ #
    # Shutdown
    # ------------------------------------------------------------------ #
    async def stop(self):
        """Stop every position monitor; resting orders are left on the book."""
        await self.position_monitor.shutdown()
        await super().stop()

    async def cleanup(self):
        await self.position_monitor.shutdown()
        if self.is_initialized:
            self.stats.log_report()
        await super().cleanup()
