"""
Grid strategy exceptions.
"""

from typing import Optional


class GridError(Exception):
    """Base exception for grid strategy errors."""

    pass


class GridConfigurationError(GridError):
    """Raised when grid bounds, level count or thresholds are unusable.

    Always raised before any order reaches the exchange.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)
