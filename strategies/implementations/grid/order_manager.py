"""
Order lifecycle for the grid strategy.

Owns every order the grid has placed, from the initial ladder through
fills, re-laddering and the market close of a monitored position.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from exchange_clients.base_models import ExchangeConnectionError, OrderRejectedError, OrderRequest, OrderSide

from .config import GridConfig
from .models import CloseOutcome, OrderStatus, TrackedOrder
from .position_monitor import GridPositionMonitor
from .stats_tracker import GridStatsTracker
from .utils import call_exchange

# Rejected or timed-out submissions may already rest on the book and are never resent
SUBMIT_RETRY_ON = (ExchangeConnectionError,)


class GridOrderManager:
    """
    Tracks grid orders by exchange-assigned id.

    Every mutation of the order mapping happens between awaits, so fill
    handling, monitor ticks and closes running concurrently on one event
    loop never observe a half-updated record.
    """

    def __init__(
        self,
        config: GridConfig,
        exchange_client,
        logger,
        monitor: GridPositionMonitor,
        stats: GridStatsTracker,
    ) -> None:
        self.config = config
        self.exchange_client = exchange_client
        self.logger = logger
        self.monitor = monitor
        self.stats = stats

        self._orders: Dict[str, TrackedOrder] = {}

    # ------------------------------------------------------------------ #
    # Query helpers
    # ------------------------------------------------------------------ #
    def get(self, order_id: str) -> Optional[TrackedOrder]:
        return self._orders.get(order_id)

    def active_orders(self) -> List[TrackedOrder]:
        """Return a copy of all tracked orders."""
        return list(self._orders.values())

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    # ------------------------------------------------------------------ #
    # Placement
    # ------------------------------------------------------------------ #
    async def _submit(self, request: OrderRequest) -> str:
        result = await self.exchange_client.create_order(request)
        if result is None or not result.success or not result.order_id:
            reason = getattr(result, "error_message", None) or "no order id returned"
            raise OrderRejectedError(reason, request=request)
        return str(result.order_id)

    async def place_limit_order(self, side: OrderSide, price: Decimal) -> Optional[TrackedOrder]:
        """
        Place one grid limit order and start tracking it.

        Returns None (after logging) if the exchange call fails.
        """
        request = OrderRequest.limit(self.config.symbol, side, self.config.quantity, price)
        result = await call_exchange(
            f"{side.value} limit order at {price}",
            lambda: self._submit(request),
            logger=self.logger,
            timeout=self.config.request_timeout,
            max_attempts=self.config.max_call_attempts,
            exception_type=SUBMIT_RETRY_ON,
        )
        if not result.ok:
            return None

        order = TrackedOrder(
            order_id=result.value,
            side=side,
            price=price,
            quantity=self.config.quantity,
            take_profit_price=self.config.take_profit_price,
            stop_loss_price=self.config.stop_loss_price,
        )
        self._orders[order.order_id] = order
        self.logger.log_transaction(order.order_id, side.value, order.quantity, price, OrderStatus.OPEN.value)
        return order

    async def place_initial_ladder(
        self,
        levels: Sequence[Decimal],
        current_price: Decimal,
    ) -> List[TrackedOrder]:
        """
        Place one order per level: BUY below ``current_price``, SELL at or above.

        Levels whose placement fails are skipped; the rest of the ladder is
        still placed, one order at a time.
        """
        placed: List[TrackedOrder] = []
        for level in levels:
            side = OrderSide.BUY if level < current_price else OrderSide.SELL
            order = await self.place_limit_order(side, level)
            if order is not None:
                placed.append(order)

        skipped = len(levels) - len(placed)
        self.logger.log(
            f"Grid: Ladder placed with {len(placed)}/{len(levels)} orders around {current_price}"
            + (f" ({skipped} level(s) skipped)" if skipped else ""),
            "WARNING" if skipped else "INFO",
        )
        return placed

    def reladder_price(self, order: TrackedOrder) -> Decimal:
        """
        Price of the opposite order posted after ``order`` fills.

        With ``reladder_step`` configured: ``price * (1 + step)`` after a BUY
        fill and ``price * (1 - step)`` after a SELL fill. Without it the
        opposite order sits one grid interval away.
        """
        step = self.config.reladder_step
        if step is None:
            interval = self.config.grid_interval
            return order.price + interval if order.side is OrderSide.BUY else order.price - interval

        if order.side is OrderSide.BUY:
            return order.price * (Decimal("1") + step)
        return order.price * (Decimal("1") - step)

    # ------------------------------------------------------------------ #
    # Fill handling
    # ------------------------------------------------------------------ #
    async def on_fill(self, order_id: str, fill_price: Decimal) -> Optional[TrackedOrder]:
        """
        React to a fill notification.

        Unknown ids and repeated notifications for an order that already
        filled are ignored. Otherwise the opposite-side order is placed and
        the filled order is handed to the position monitor.
        """
        order = self._orders.get(order_id)
        if order is None:
            self.logger.log(f"Grid: Ignoring fill for untracked order {order_id}", "DEBUG")
            return None
        if order.status is not OrderStatus.OPEN:
            self.logger.log(f"Grid: Ignoring duplicate fill for order {order_id}", "DEBUG")
            return None

        # Marked before any await so a duplicate delivered meanwhile is dropped.
        order.status = OrderStatus.FILLED
        order.fill_price = fill_price if isinstance(fill_price, Decimal) else Decimal(str(fill_price))
        self.logger.log(
            f"Grid: {order.side.value} order {order_id} filled at {order.fill_price} (level {order.price})",
            "INFO",
        )

        opposite_price = self.reladder_price(order)
        if opposite_price <= 0:
            self.logger.log(
                f"Grid: Skipping re-ladder for {order_id}; computed price {opposite_price} is not positive",
                "WARNING",
            )
        else:
            await self.place_limit_order(order.side.opposite, opposite_price)

        if self._orders.get(order_id) is order and order.status is OrderStatus.FILLED:
            self.monitor.watch(order)
        return order

    # ------------------------------------------------------------------ #
    # Close handling
    # ------------------------------------------------------------------ #
    async def close_order(
        self,
        order_id: str,
        current_price: Decimal,
        outcome: CloseOutcome,
    ) -> Optional[Decimal]:
        """
        Flatten the position opened by ``order_id`` with a market order.

        The record leaves the mapping and its monitor is stopped before the
        market order is sent, so a second close for the same id is a no-op.
        If the market order fails the record is restored and monitoring
        resumes. Returns the realized PnL, or None when nothing was closed.
        """
        order = self._orders.get(order_id)
        if order is None:
            self.logger.log(f"Grid: Ignoring close for untracked order {order_id}", "DEBUG")
            return None
        if order.status is not OrderStatus.FILLED:
            self.logger.log(
                f"Grid: Order {order_id} is {order.status.value}; only filled positions can be closed",
                "WARNING",
            )
            return None

        del self._orders[order_id]
        self.monitor.stop(order_id)
        order.monitor = None
        order.status = OrderStatus.CLOSING

        pnl = order.realized_pnl(current_price)
        close_side = order.side.opposite
        request = OrderRequest.market(self.config.symbol, close_side, order.quantity)

        result = await call_exchange(
            f"{close_side.value} market close of position {order_id}",
            lambda: self._submit(request),
            logger=self.logger,
            timeout=self.config.request_timeout,
            max_attempts=self.config.max_call_attempts,
            exception_type=SUBMIT_RETRY_ON,
        )
        if not result.ok:
            order.status = OrderStatus.FILLED
            self._orders[order_id] = order
            self.logger.log(
                f"Grid: Position {order_id} is still open after failed close; monitoring resumes",
                "WARNING",
            )
            self.monitor.watch(order)
            return None

        self.logger.log_transaction(result.value, close_side.value, order.quantity, current_price, "MARKET")
        self.stats.record_close(pnl, outcome)
        self.logger.log(
            f"Grid: Closed {order.side.value} position {order_id} as {outcome.value} "
            f"(entry {order.price}, exit {current_price}, PnL {pnl:.4f})",
            "INFO",
        )
        self.stats.log_report()
        return pnl
