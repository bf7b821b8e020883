"""
Trading Strategies Module
Provides the strategy abstraction and its implementations.

- BaseStrategy: Minimal abstract lifecycle every strategy implements
- GridStrategy: Leveraged single-exchange grid
- StrategyFactory: Name -> strategy class registry used by the bot runner
"""

from .base_strategy import BaseStrategy
from .factory import StrategyFactory

from .implementations.grid import GridStrategy, GridConfig

__all__ = [
    'BaseStrategy',
    'StrategyFactory',
    'GridStrategy',
    'GridConfig',
]
