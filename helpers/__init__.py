"""
Helper modules for the grid bot.
"""

from .unified_logger import (
    configure_sinks,
    get_core_logger,
    get_exchange_logger,
    get_logger,
    get_strategy_logger,
    log_stage,
)

__all__ = [
    'configure_sinks',
    'get_logger',
    'get_exchange_logger',
    'get_strategy_logger',
    'get_core_logger',
    'log_stage',
]
