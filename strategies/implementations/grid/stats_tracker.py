"""
Realized performance statistics for the grid strategy.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from helpers.unified_logger import log_stage

from .models import CloseOutcome, StatsSnapshot


class GridStatsTracker:
    """
    Accumulates realized PnL and trade counts.

    ``record_close`` is the only mutator and contains no awaits, so
    concurrent closes on the event loop cannot interleave inside it.
    """

    def __init__(self, leverage: int, logger=None) -> None:
        self.leverage = leverage
        self.logger = logger

        self._total_pnl = Decimal("0")
        self._total_trades = 0
        self._profit_trades = 0
        self._loss_trades = 0

    def record_close(self, pnl: Decimal, outcome: CloseOutcome) -> None:
        """Add one closed position to the aggregate."""
        self._total_pnl += pnl
        self._total_trades += 1
        if outcome is CloseOutcome.PROFIT:
            self._profit_trades += 1
        else:
            self._loss_trades += 1

    def win_rate(self) -> Optional[Decimal]:
        """Percentage of closes that were PROFIT, or None before the first close."""
        if self._total_trades == 0:
            return None
        return Decimal(self._profit_trades) / Decimal(self._total_trades) * Decimal("100")

    def report(self) -> StatsSnapshot:
        return StatsSnapshot(
            leverage=self.leverage,
            total_pnl=self._total_pnl,
            total_trades=self._total_trades,
            profit_trades=self._profit_trades,
            loss_trades=self._loss_trades,
            win_rate=self.win_rate(),
        )

    def log_report(self) -> StatsSnapshot:
        """Emit the statistics block and return the snapshot it was built from."""
        snapshot = self.report()
        if self.logger is None:
            return snapshot

        win_rate = f"{snapshot.win_rate:.2f}%" if snapshot.win_rate is not None else "n/a"
        log_stage(self.logger, "Trading Statistics", icon="📊")
        self.logger.log(f"Current Leverage: {snapshot.leverage}x", "INFO")
        self.logger.log(f"Total P&L: {snapshot.total_pnl:.4f}", "INFO")
        self.logger.log(f"Total Trades: {snapshot.total_trades}", "INFO")
        self.logger.log(f"Profitable Trades: {snapshot.profit_trades}", "INFO")
        self.logger.log(f"Loss Trades: {snapshot.loss_trades}", "INFO")
        self.logger.log(f"Win Rate: {win_rate}", "INFO")
        return snapshot
