"""
Shared event primitives for exchange clients.

Exchange clients publish order fills through a ``FillEventDispatcher``;
any number of consumers (the trading bot's fill pump, tests, monitors) can
register their own queue and receive every event.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Set


@dataclass(frozen=True)
class OrderFillEvent:
    """
    Normalised fill notification emitted by an exchange client.

    Delivery is at-least-once: consumers must tolerate duplicates and ids
    they never placed.

    Attributes:
        order_id: Exchange-assigned identifier of the filled order
        fill_price: Execution price of the fill
        symbol: Instrument the order belongs to
        exchange: Canonical exchange name
        timestamp: Event timestamp (UTC)
        metadata: Raw fields from the venue payload
    """

    order_id: str
    fill_price: Decimal
    symbol: Optional[str] = None
    exchange: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)


class FillEventDispatcher:
    """
    Broadcast helper for fill events.

    Consumers register queues; emit() fans each event out to all listeners.
    """

    def __init__(self) -> None:
        self._queues: Set[asyncio.Queue[OrderFillEvent]] = set()

    def register(self, queue: Optional[asyncio.Queue[OrderFillEvent]] = None) -> asyncio.Queue[OrderFillEvent]:
        """
        Register a queue to receive fill events.

        Args:
            queue: Optional pre-created asyncio.Queue. If omitted, a new queue is created.
        """
        target_queue: asyncio.Queue[OrderFillEvent] = asyncio.Queue() if queue is None else queue
        self._queues.add(target_queue)
        return target_queue

    def unregister(self, queue: asyncio.Queue[OrderFillEvent]) -> None:
        """Remove a previously registered queue."""
        self._queues.discard(queue)

    async def emit(self, event: OrderFillEvent) -> None:
        """Fan out ``event`` to all registered queues."""
        if not self._queues:
            return

        await asyncio.gather(
            *[self._safe_put(queue, event) for queue in list(self._queues)],
            return_exceptions=True,
        )

    async def _safe_put(self, queue: asyncio.Queue[OrderFillEvent], event: OrderFillEvent) -> None:
        try:
            await queue.put(event)
        except asyncio.CancelledError:
            raise
        except Exception:
            # A broken queue is dropped so it stops failing every emit.
            self._queues.discard(queue)

    def listeners(self) -> Iterable[asyncio.Queue[OrderFillEvent]]:
        """Expose current listeners (read-only)."""
        return tuple(self._queues)
