"""
Grid level derivation.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Union

from .exceptions import GridConfigurationError

Number = Union[Decimal, int, str]


def _validate(lower: Decimal, upper: Decimal, count: int) -> None:
    if count < 2:
        raise GridConfigurationError(f"Grid needs at least 2 levels, got {count}", field="grid_size")
    if upper <= lower:
        raise GridConfigurationError(
            f"Upper price {upper} must be greater than lower price {lower}",
            field="upper_price",
        )


def grid_interval(lower: Number, upper: Number, count: int) -> Decimal:
    """Spacing between adjacent levels of a ``count``-level grid."""
    lower_dec, upper_dec = Decimal(str(lower)), Decimal(str(upper))
    _validate(lower_dec, upper_dec, count)
    return (upper_dec - lower_dec) / Decimal(count - 1)


def compute_levels(lower: Number, upper: Number, count: int) -> List[Decimal]:
    """
    Evenly spaced price levels from ``lower`` to ``upper`` inclusive.

    ``level[i] = lower + i * (upper - lower) / (count - 1)``; the last level
    is pinned to ``upper`` so rounding in the interval cannot move it.

    Raises:
        GridConfigurationError: If ``count < 2`` or ``upper <= lower``

    Example:
        >>> compute_levels(90, 110, 5)
        [Decimal('90'), Decimal('95'), Decimal('100'), Decimal('105'), Decimal('110')]
    """
    lower_dec, upper_dec = Decimal(str(lower)), Decimal(str(upper))
    interval = grid_interval(lower_dec, upper_dec, count)

    levels = [lower_dec + interval * i for i in range(count - 1)]
    levels.append(upper_dec)
    return levels
