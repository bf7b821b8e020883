"""
Strategy Implementations

Concrete strategy implementations organized by type:
- grid: Single-exchange leveraged grid trading
"""

from .grid import GridStrategy, GridConfig

__all__ = [
    'GridStrategy',
    'GridConfig',
]
