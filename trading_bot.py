"""
Grid Trading Bot - wires one exchange client to the grid strategy
"""

import asyncio
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from exchange_clients.base_client import BaseExchangeClient
from exchange_clients.events import OrderFillEvent
from exchange_clients.factory import ExchangeFactory
from helpers.unified_logger import get_logger
from strategies import StrategyFactory
from strategies.implementations.grid.config import GridConfig


@dataclass
class TradingConfig:
    """Configuration class for a bot run."""
    exchange: str
    grid: GridConfig
    strategy: str = "grid"

    # Extra keyword configuration handed to the exchange client
    exchange_params: Dict[str, Any] = field(default_factory=dict)

    def client_config(self) -> Dict[str, Any]:
        """Config dict passed to the exchange client constructor."""
        return {
            **self.exchange_params,
            "symbol": self.grid.symbol,
            "testnet": self.grid.testnet,
        }


class TradingBot:
    """Runs the grid strategy and relays exchange fill notifications to it."""

    # Seconds the fill pump waits on an empty queue before re-checking shutdown
    FILL_POLL_TIMEOUT = 0.5

    def __init__(self, config: TradingConfig, exchange_client: Optional[BaseExchangeClient] = None):
        """
        Initialize Trading Bot.

        Args:
            config: Trading configuration
            exchange_client: Pre-built client; created through ExchangeFactory when omitted
        """
        self.config = config
        self.logger = get_logger(
            "bot",
            config.strategy,
            context={"exchange": config.exchange, "symbol": config.grid.symbol},
        )

        if exchange_client is None:
            try:
                exchange_client = ExchangeFactory.create_exchange(config.exchange, config.client_config())
            except (ValueError, ImportError) as e:
                raise ValueError(f"Failed to create exchange client: {e}") from e
        self.exchange_client = exchange_client

        try:
            self.strategy = StrategyFactory.create_strategy(config.strategy, config.grid, self.exchange_client)
        except ValueError as e:
            raise ValueError(f"Failed to create strategy: {e}") from e
        self.logger.info(f"Strategy '{config.strategy}' created successfully")

        self.shutdown_requested = False
        self._shutdown_complete = False
        self._fill_queue: Optional[asyncio.Queue] = None
        self.fills_processed = 0

    def _log_configuration(self):
        """Log the current trading configuration."""
        self.logger.info("=== Trading Configuration ===")
        self.logger.info(f"Exchange: {self.config.exchange}")
        self.logger.info(f"Strategy: {self.config.strategy}")
        for key, value in self.config.grid.model_dump().items():
            self.logger.info(f"  {key}: {value}")
        self.logger.info("=============================")

    def request_shutdown(self, reason: str = "Shutdown requested") -> None:
        """Ask the fill pump to stop; ``run`` performs the actual shutdown."""
        if not self.shutdown_requested:
            self.logger.info(f"Shutdown requested: {reason}")
        self.shutdown_requested = True

    async def _dispatch_fill(self, event: OrderFillEvent) -> None:
        listener = self.strategy.get_listener("order_filled")
        if listener is None:
            self.logger.warning(f"No fill listener registered; dropping fill for order {event.order_id}")
            return
        try:
            await listener(event)
        except Exception as exc:
            self.logger.error(f"Failed to process fill for order {event.order_id}: {exc}")
        finally:
            self.fills_processed += 1

    async def _run_fill_pump(self) -> None:
        """Deliver fill events to the strategy one at a time until shutdown."""
        queue = self._fill_queue
        while not self.shutdown_requested:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=self.FILL_POLL_TIMEOUT)
            except asyncio.TimeoutError:
                continue
            await self._dispatch_fill(event)

    async def graceful_shutdown(self, reason: str = "Unknown"):
        """Stop monitors, flush stats and disconnect from the exchange."""
        if self._shutdown_complete:
            return
        self._shutdown_complete = True
        self.shutdown_requested = True
        self.logger.info(f"🛑 Graceful shutdown initiated: {reason}")

        try:
            await asyncio.wait_for(self.strategy.stop(), timeout=30.0)
        except asyncio.TimeoutError:
            self.logger.warning("⚠️ Strategy stop timed out")
        except Exception as e:
            self.logger.error(f"❌ Strategy stop error: {e}")

        try:
            await asyncio.wait_for(self.strategy.cleanup(), timeout=30.0)
        except asyncio.TimeoutError:
            self.logger.warning("⚠️ Strategy cleanup timed out")
        except Exception as e:
            self.logger.error(f"❌ Strategy cleanup error: {e}")

        if self._fill_queue is not None:
            self.exchange_client.unregister_fill_queue(self._fill_queue)
            self._fill_queue = None

        try:
            await asyncio.wait_for(self.exchange_client.disconnect(), timeout=10.0)
            self.logger.info(f"✅ Disconnected from: {self.config.exchange}")
        except asyncio.TimeoutError:
            self.logger.warning(f"⚠️ Disconnect from {self.config.exchange} timed out")
        except Exception as e:
            self.logger.error(f"❌ Disconnect error: {e}")

        self.logger.info("✅ Shutdown complete")

    async def run(self):
        """Initialize the strategy, then relay fills until shutdown is requested."""
        try:
            self._log_configuration()

            # Registered before the ladder goes out so early fills are queued
            self._fill_queue = self.exchange_client.fill_events_queue()

            await self.strategy.initialize()
            self.strategy.start()

            await self._run_fill_pump()
            await self.graceful_shutdown("Shutdown requested")

        except asyncio.CancelledError:
            await self.graceful_shutdown("Cancelled")
            raise
        except KeyboardInterrupt:
            await self.graceful_shutdown("User interruption (Ctrl+C)")
        except Exception as e:
            self.logger.error(f"Critical error: {e}")
            self.logger.error(f"Traceback: {traceback.format_exc()}")
            await self.graceful_shutdown(f"Critical error: {e}")
            raise
