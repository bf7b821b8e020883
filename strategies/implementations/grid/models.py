"""
Grid Trading Strategy Data Models

Data structures specific to the grid trading strategy.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from exchange_clients.base_models import OrderSide


class OrderStatus(str, Enum):
    """Lifecycle of a tracked grid order."""
    OPEN = "open"          # Resting on the book
    FILLED = "filled"      # Filled, position being monitored
    CLOSING = "closing"    # Flattening order in flight


class CloseOutcome(str, Enum):
    """Why a monitored position was closed."""
    PROFIT = "PROFIT"
    LOSS = "LOSS"


class MonitorState(str, Enum):
    """WATCHING -> CLOSING -> TERMINATED, or cancelled from WATCHING."""
    WATCHING = "watching"
    CLOSING = "closing"
    TERMINATED = "terminated"


@dataclass
class MonitorHandle:
    """Recurring threshold check bound to a single filled order."""
    order_id: str
    task: Optional[asyncio.Task] = None
    state: MonitorState = MonitorState.WATCHING
    ticks: int = 0
    skipped_ticks: int = 0

    @property
    def active(self) -> bool:
        return self.task is not None and not self.task.done()


@dataclass
class TrackedOrder:
    """An order placed by the grid, from placement until its position is closed."""
    order_id: str
    side: OrderSide
    price: Decimal
    quantity: Decimal
    take_profit_price: Decimal
    stop_loss_price: Decimal
    status: OrderStatus = OrderStatus.OPEN
    fill_price: Optional[Decimal] = None
    monitor: Optional[MonitorHandle] = None

    def realized_pnl(self, exit_price: Decimal) -> Decimal:
        """PnL of flattening this order's position at ``exit_price``."""
        if self.side is OrderSide.BUY:
            return (exit_price - self.price) * self.quantity
        return (self.price - exit_price) * self.quantity

    def to_dict(self) -> dict:
        """Plain representation for status output."""
        return {
            'id': self.order_id,
            'side': self.side.value,
            'price': float(self.price),
            'quantity': float(self.quantity),
            'status': self.status.value,
            'fill_price': float(self.fill_price) if self.fill_price is not None else None,
            'monitored': bool(self.monitor and self.monitor.active),
        }


@dataclass(frozen=True)
class StatsSnapshot:
    """Realized performance at a point in time."""
    leverage: int
    total_pnl: Decimal
    total_trades: int
    profit_trades: int
    loss_trades: int
    win_rate: Optional[Decimal]  # None until the first close

    def to_dict(self) -> dict:
        return {
            'leverage': self.leverage,
            'total_pnl': float(self.total_pnl),
            'total_trades': self.total_trades,
            'profit_trades': self.profit_trades,
            'loss_trades': self.loss_trades,
            'win_rate': float(self.win_rate) if self.win_rate is not None else None,
        }
