"""
Grid Trading Strategy Implementation

A single-exchange leveraged grid that:
- Places a ladder of limit orders across a configured price range
- Re-posts the opposite-side order one step away after each fill
- Closes filled positions at a global take-profit or stop-loss price
- Reports realized PnL and win rate after every close
"""

from .config import GridConfig
from .exceptions import GridConfigurationError, GridError
from .levels import compute_levels, grid_interval
from .models import CloseOutcome, MonitorHandle, MonitorState, OrderStatus, StatsSnapshot, TrackedOrder
from .order_manager import GridOrderManager
from .position_monitor import GridPositionMonitor
from .stats_tracker import GridStatsTracker
from .strategy import GridStrategy

__all__ = [
    'GridStrategy',
    'GridConfig',
    'GridOrderManager',
    'GridPositionMonitor',
    'GridStatsTracker',
    'compute_levels',
    'grid_interval',
    'TrackedOrder',
    'MonitorHandle',
    'StatsSnapshot',
    'OrderStatus',
    'CloseOutcome',
    'MonitorState',
    'GridError',
    'GridConfigurationError',
]
