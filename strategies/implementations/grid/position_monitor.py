"""
Take-profit / stop-loss monitoring for filled grid orders.

Each filled order gets its own asyncio task that polls the ticker every
``poll_interval`` seconds until a threshold is crossed, then hands the
order id to the close handler. Tasks are tracked in a registry so a close
on any path, or a global shutdown, can cancel them.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, Optional

from exchange_clients.base_models import OrderSide

from .config import GridConfig
from .models import CloseOutcome, MonitorHandle, MonitorState, TrackedOrder
from .utils import call_exchange


CloseHandler = Callable[[str, Decimal, CloseOutcome], Awaitable[Any]]


class GridPositionMonitor:
    """Registry of per-position threshold checks."""

    def __init__(
        self,
        config: GridConfig,
        exchange_client,
        logger,
        close_handler: Optional[CloseHandler] = None,
    ) -> None:
        self.config = config
        self.exchange_client = exchange_client
        self.logger = logger
        self.poll_interval = config.poll_interval

        self._close_handler = close_handler
        self._handles: Dict[str, MonitorHandle] = {}
        # Monitors whose own task is flattening the position
        self._closing: Dict[str, MonitorHandle] = {}
        self._accepting = True

    def set_close_handler(self, handler: CloseHandler) -> None:
        self._close_handler = handler

    # ------------------------------------------------------------------ #
    # Evaluation
    # ------------------------------------------------------------------ #
    @staticmethod
    def evaluate(
        side: OrderSide,
        price: Decimal,
        take_profit_price: Decimal,
        stop_loss_price: Decimal,
    ) -> Optional[CloseOutcome]:
        """
        Decide whether ``price`` closes a position of ``side``.

        BUY positions profit at or above take-profit and lose at or below
        stop-loss; SELL positions mirror both comparisons. Take-profit is
        checked first.
        """
        if side is OrderSide.BUY:
            if price >= take_profit_price:
                return CloseOutcome.PROFIT
            if price <= stop_loss_price:
                return CloseOutcome.LOSS
            return None

        if price <= take_profit_price:
            return CloseOutcome.PROFIT
        if price >= stop_loss_price:
            return CloseOutcome.LOSS
        return None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def watch(self, order: TrackedOrder) -> Optional[MonitorHandle]:
        """Start checking ``order`` against its thresholds (None after shutdown)."""
        if self._close_handler is None:
            raise RuntimeError("GridPositionMonitor has no close handler")
        if not self._accepting:
            self.logger.log(f"Grid: Position {order.order_id} left unmonitored; monitors are shut down", "WARNING")
            return None

        existing = self._handles.get(order.order_id)
        if existing is not None and existing.active:
            return existing

        handle = MonitorHandle(order_id=order.order_id)
        handle.task = asyncio.create_task(
            self._run(handle, order.side, order.take_profit_price, order.stop_loss_price),
            name=f"grid-monitor-{order.order_id}",
        )
        self._handles[order.order_id] = handle
        order.monitor = handle

        self.logger.log(
            f"Grid: Monitoring {order.side.value} position {order.order_id} "
            f"(TP {order.take_profit_price}, SL {order.stop_loss_price}, every {self.poll_interval}s)",
            "INFO",
        )
        return handle

    def stop(self, order_id: str) -> bool:
        """
        Stop monitoring ``order_id``.

        The calling task is never cancelled, so the close path can run from
        inside the monitor task itself. Returns False if nothing was watched.
        """
        handle = self._handles.pop(order_id, None)
        if handle is None:
            return False

        task = handle.task
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None

        if task is not None and not task.done():
            if task is current:
                self._closing[order_id] = handle
            else:
                task.cancel()
                handle.state = MonitorState.TERMINATED
        return True

    async def shutdown(self) -> None:
        """
        Cancel every outstanding check and wait for the tasks to finish.

        Positions already being flattened are not cancelled: their market
        close runs to completion first. No new monitors start afterwards.
        """
        self._accepting = False
        current = asyncio.current_task()

        handles = list(self._handles.values())
        self._handles.clear()

        tasks = [h.task for h in handles if h.task is not None and h.task is not current and not h.task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        for handle in handles:
            handle.state = MonitorState.TERMINATED

        closing = [
            h.task for h in self._closing.values()
            if h.task is not None and h.task is not current and not h.task.done()
        ]
        if closing:
            self.logger.log(f"Grid: Waiting for {len(closing)} position close(s) in flight", "INFO")
            await asyncio.gather(*closing, return_exceptions=True)

        if handles:
            self.logger.log(f"Grid: Stopped {len(handles)} position monitor(s)", "INFO")

    def is_watching(self, order_id: str) -> bool:
        handle = self._handles.get(order_id)
        return handle is not None and handle.active

    def active_count(self) -> int:
        return sum(1 for handle in self._handles.values() if handle.active)

    def get_handle(self, order_id: str) -> Optional[MonitorHandle]:
        return self._handles.get(order_id)

    # ------------------------------------------------------------------ #
    # Internal
    # ------------------------------------------------------------------ #
    async def _fetch_price(self) -> Decimal:
        price = await self.exchange_client.get_ticker(self.config.symbol)
        return price if isinstance(price, Decimal) else Decimal(str(price))

    async def _run(
        self,
        handle: MonitorHandle,
        side: OrderSide,
        take_profit_price: Decimal,
        stop_loss_price: Decimal,
    ) -> None:
        try:
            while handle.state is MonitorState.WATCHING:
                await asyncio.sleep(self.poll_interval)
                handle.ticks += 1

                result = await call_exchange(
                    f"price check for position {handle.order_id}",
                    self._fetch_price,
                    logger=self.logger,
                    timeout=self.config.request_timeout,
                    max_attempts=self.config.max_call_attempts,
                    level="WARNING",
                )
                if not result.ok:
                    handle.skipped_ticks += 1
                    continue

                current_price = result.value
                outcome = self.evaluate(side, current_price, take_profit_price, stop_loss_price)
                if outcome is None:
                    continue

                handle.state = MonitorState.CLOSING
                self.logger.log(
                    f"Grid: {outcome.value} threshold crossed for {side.value} position "
                    f"{handle.order_id} at {current_price}",
                    "INFO",
                )
                try:
                    await self._close_handler(handle.order_id, current_price, outcome)
                except Exception as exc:
                    self.logger.log(
                        f"Grid: Close handler failed for position {handle.order_id}: {exc}",
                        "ERROR",
                    )
        finally:
            handle.state = MonitorState.TERMINATED
            if self._handles.get(handle.order_id) is handle:
                del self._handles[handle.order_id]
            if self._closing.get(handle.order_id) is handle:
                del self._closing[handle.order_id]
