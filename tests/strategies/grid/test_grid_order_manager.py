import asyncio
from decimal import Decimal
from typing import List

import pytest

from conftest import DummyExchange, make_grid_config
from exchange_clients.base_models import ExchangeConnectionError, OrderSide, OrderType, TimeInForce
from strategies.implementations.grid.models import CloseOutcome, OrderStatus
from strategies.implementations.grid.order_manager import GridOrderManager
from strategies.implementations.grid.stats_tracker import GridStatsTracker


class StubMonitor:
    def __init__(self):
        self.watched: List[str] = []
        self.stopped: List[str] = []

    def watch(self, order):
        self.watched.append(order.order_id)

    def stop(self, order_id):
        self.stopped.append(order_id)
        return True


def build_manager(logger, **config_overrides):
    config = make_grid_config(**config_overrides)
    exchange = DummyExchange()
    monitor = StubMonitor()
    stats = GridStatsTracker(config.leverage, logger=logger)
    manager = GridOrderManager(config, exchange, logger, monitor, stats)
    return manager, exchange, monitor, stats


LEVELS = [Decimal("90"), Decimal("95"), Decimal("100"), Decimal("105"), Decimal("110")]


@pytest.mark.asyncio
async def test_initial_ladder_sides_follow_current_price(recording_logger):
    manager, exchange, _, _ = build_manager(recording_logger)

    placed = await manager.place_initial_ladder(LEVELS, Decimal("100"))

    assert [(r.side, r.price) for r in exchange.requests] == [
        (OrderSide.BUY, Decimal("90")),
        (OrderSide.BUY, Decimal("95")),
        (OrderSide.SELL, Decimal("100")),
        (OrderSide.SELL, Decimal("105")),
        (OrderSide.SELL, Decimal("110")),
    ]
    assert all(r.order_type is OrderType.LIMIT for r in exchange.requests)
    assert all(r.time_in_force is TimeInForce.GTC for r in exchange.requests)
    assert all(r.quantity == Decimal("2") for r in exchange.requests)
    assert len(placed) == 5
    assert len(manager) == 5
    assert all(order.status is OrderStatus.OPEN for order in manager.active_orders())


@pytest.mark.asyncio
async def test_initial_ladder_skips_rejected_levels(recording_logger):
    manager, exchange, _, _ = build_manager(recording_logger)
    exchange.reject_limit_prices = {Decimal("95")}

    placed = await manager.place_initial_ladder(LEVELS, Decimal("100"))

    assert len(placed) == 4
    assert len(exchange.requests) == 5
    assert Decimal("95") not in {order.price for order in manager.active_orders()}
    assert any("price 95 rejected" in message for message in recording_logger.messages("ERROR"))
    assert any("1 level(s) skipped" in message for message in recording_logger.messages("WARNING"))


@pytest.mark.asyncio
async def test_buy_fill_posts_sell_one_interval_up(recording_logger):
    manager, exchange, monitor, _ = build_manager(recording_logger)
    await manager.place_initial_ladder(LEVELS, Decimal("100"))

    order = await manager.on_fill("order-2", Decimal("95"))

    assert order.status is OrderStatus.FILLED
    assert order.fill_price == Decimal("95")
    new_request = exchange.requests[-1]
    assert new_request.side is OrderSide.SELL
    assert new_request.price == Decimal("100")
    assert new_request.order_type is OrderType.LIMIT
    assert len(manager) == 6
    assert "order-2" in manager
    assert monitor.watched == ["order-2"]


@pytest.mark.asyncio
async def test_sell_fill_posts_buy_one_interval_down(recording_logger):
    manager, exchange, monitor, _ = build_manager(recording_logger)
    await manager.place_initial_ladder(LEVELS, Decimal("100"))

    await manager.on_fill("order-4", Decimal("105"))

    assert exchange.requests[-1].side is OrderSide.BUY
    assert exchange.requests[-1].price == Decimal("100")
    assert monitor.watched == ["order-4"]


@pytest.mark.asyncio
async def test_configured_reladder_step_is_a_fraction_of_the_level(recording_logger):
    manager, exchange, _, _ = build_manager(recording_logger, reladder_step=Decimal("0.02"))
    await manager.place_initial_ladder(LEVELS, Decimal("100"))

    await manager.on_fill("order-1", Decimal("90"))
    await manager.on_fill("order-3", Decimal("100"))

    assert exchange.requests[-2].side is OrderSide.SELL
    assert exchange.requests[-2].price == Decimal("91.80")
    assert exchange.requests[-1].side is OrderSide.BUY
    assert exchange.requests[-1].price == Decimal("98.00")


@pytest.mark.asyncio
async def test_duplicate_fill_is_ignored(recording_logger):
    manager, exchange, monitor, stats = build_manager(recording_logger)
    await manager.place_initial_ladder(LEVELS, Decimal("100"))
    await manager.on_fill("order-2", Decimal("95"))
    requests_before = len(exchange.requests)

    assert await manager.on_fill("order-2", Decimal("95")) is None

    assert len(exchange.requests) == requests_before
    assert monitor.watched == ["order-2"]
    assert stats.report().total_trades == 0


@pytest.mark.asyncio
async def test_concurrent_duplicate_fills_place_one_opposite_order(recording_logger):
    manager, exchange, monitor, _ = build_manager(recording_logger)
    await manager.place_initial_ladder(LEVELS, Decimal("100"))
    exchange.order_delay = 0.01

    await asyncio.gather(
        manager.on_fill("order-2", Decimal("95")),
        manager.on_fill("order-2", Decimal("95")),
    )

    assert len(exchange.limit_requests) == 6
    assert monitor.watched == ["order-2"]


@pytest.mark.asyncio
async def test_unknown_fill_is_ignored(recording_logger):
    manager, exchange, monitor, _ = build_manager(recording_logger)
    await manager.place_initial_ladder(LEVELS, Decimal("100"))

    assert await manager.on_fill("not-ours", Decimal("95")) is None

    assert len(exchange.requests) == 5
    assert monitor.watched == []


@pytest.mark.asyncio
async def test_non_positive_reladder_price_is_skipped(recording_logger):
    manager, exchange, monitor, _ = build_manager(
        recording_logger,
        grid_size=2,
        lower_price=Decimal("1"),
        upper_price=Decimal("11"),
        take_profit_price=Decimal("0.5"),
        stop_loss_price=Decimal("20"),
    )
    await manager.place_initial_ladder([Decimal("1"), Decimal("11")], Decimal("0.5"))

    order = await manager.on_fill("order-1", Decimal("1"))

    assert order.status is OrderStatus.FILLED
    assert len(exchange.requests) == 2
    assert monitor.watched == ["order-1"]
    assert any("Skipping re-ladder" in message for message in recording_logger.messages("WARNING"))


async def _filled_buy_at_100(manager):
    # Ladder around 105 makes order-3 a BUY at 100
    await manager.place_initial_ladder(LEVELS, Decimal("105"))
    order = manager.get("order-3")
    assert order.side is OrderSide.BUY and order.price == Decimal("100")
    await manager.on_fill("order-3", Decimal("100"))
    return order


@pytest.mark.asyncio
async def test_close_buy_position_for_profit(recording_logger):
    manager, exchange, monitor, stats = build_manager(recording_logger)
    await _filled_buy_at_100(manager)

    pnl = await manager.close_order("order-3", Decimal("111"), CloseOutcome.PROFIT)

    assert pnl == Decimal("22")
    market = exchange.market_requests
    assert len(market) == 1
    assert market[0].side is OrderSide.SELL
    assert market[0].quantity == Decimal("2")
    assert "order-3" not in manager
    assert monitor.stopped == ["order-3"]
    snapshot = stats.report()
    assert snapshot.total_pnl == Decimal("22")
    assert snapshot.profit_trades == 1
    assert snapshot.loss_trades == 0
    assert "Win Rate: 100.00%" in recording_logger.messages()


@pytest.mark.asyncio
async def test_close_buy_position_at_a_loss(recording_logger):
    manager, _, _, stats = build_manager(recording_logger)
    await _filled_buy_at_100(manager)

    pnl = await manager.close_order("order-3", Decimal("94"), CloseOutcome.LOSS)

    assert pnl == Decimal("-12")
    snapshot = stats.report()
    assert snapshot.total_pnl == Decimal("-12")
    assert snapshot.loss_trades == 1
    assert snapshot.total_trades == 1


@pytest.mark.asyncio
async def test_close_sell_position_uses_buy_market_order(recording_logger):
    manager, exchange, _, _ = build_manager(recording_logger)
    await manager.place_initial_ladder(LEVELS, Decimal("100"))
    await manager.on_fill("order-4", Decimal("105"))

    pnl = await manager.close_order("order-4", Decimal("100"), CloseOutcome.PROFIT)

    assert pnl == Decimal("10")
    assert exchange.market_requests[-1].side is OrderSide.BUY


@pytest.mark.asyncio
async def test_second_close_is_a_no_op(recording_logger):
    manager, exchange, _, stats = build_manager(recording_logger)
    await _filled_buy_at_100(manager)

    await manager.close_order("order-3", Decimal("111"), CloseOutcome.PROFIT)
    assert await manager.close_order("order-3", Decimal("111"), CloseOutcome.PROFIT) is None

    assert len(exchange.market_requests) == 1
    assert stats.report().total_trades == 1


@pytest.mark.asyncio
async def test_concurrent_closes_flatten_once(recording_logger):
    manager, exchange, _, stats = build_manager(recording_logger)
    await _filled_buy_at_100(manager)
    exchange.order_delay = 0.01

    results = await asyncio.gather(
        manager.close_order("order-3", Decimal("111"), CloseOutcome.PROFIT),
        manager.close_order("order-3", Decimal("94"), CloseOutcome.LOSS),
    )

    assert results == [Decimal("22"), None]
    assert len(exchange.market_requests) == 1
    assert stats.report().total_trades == 1


@pytest.mark.asyncio
async def test_failed_close_restores_position_and_monitoring(recording_logger):
    manager, exchange, monitor, stats = build_manager(recording_logger)
    order = await _filled_buy_at_100(manager)
    exchange.fail_market_orders = 1

    assert await manager.close_order("order-3", Decimal("111"), CloseOutcome.PROFIT) is None

    assert manager.get("order-3") is order
    assert order.status is OrderStatus.FILLED
    assert monitor.watched == ["order-3", "order-3"]
    assert stats.report().total_trades == 0
    assert any("insufficient margin" in message for message in recording_logger.messages("ERROR"))

    assert await manager.close_order("order-3", Decimal("111"), CloseOutcome.PROFIT) == Decimal("22")
    assert stats.report().total_trades == 1


@pytest.mark.asyncio
async def test_resting_order_cannot_be_closed(recording_logger):
    manager, exchange, _, _ = build_manager(recording_logger)
    await manager.place_initial_ladder(LEVELS, Decimal("100"))

    assert await manager.close_order("order-1", Decimal("120"), CloseOutcome.PROFIT) is None

    assert exchange.market_requests == []
    assert "order-1" in manager


@pytest.mark.asyncio
async def test_rejected_close_is_not_resent_even_with_retries(recording_logger):
    manager, exchange, _, stats = build_manager(recording_logger, max_call_attempts=3)
    await _filled_buy_at_100(manager)
    exchange.fail_market_orders = 1

    assert await manager.close_order("order-3", Decimal("111"), CloseOutcome.PROFIT) is None

    assert len(exchange.market_requests) == 1
    assert stats.report().total_trades == 0


@pytest.mark.asyncio
async def test_timed_out_limit_order_is_not_resent(recording_logger):
    manager, exchange, _, _ = build_manager(recording_logger, max_call_attempts=3, request_timeout=0.01)
    attempts = []

    async def hanging_create(request):
        attempts.append(request)
        await asyncio.sleep(1)

    exchange.create_order = hanging_create

    assert await manager.place_limit_order(OrderSide.BUY, Decimal("95")) is None

    assert len(attempts) == 1
    assert len(manager) == 0
    assert any("timed out" in message for message in recording_logger.messages("ERROR"))


@pytest.mark.asyncio
async def test_unreachable_exchange_submission_is_retried(recording_logger):
    manager, exchange, _, _ = build_manager(recording_logger, max_call_attempts=2)
    original_create = exchange.create_order
    attempts = []

    async def flaky_create(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise ExchangeConnectionError("connection reset", exchange="dummy")
        return await original_create(request)

    exchange.create_order = flaky_create

    order = await manager.place_limit_order(OrderSide.BUY, Decimal("95"))

    assert order is not None
    assert len(attempts) == 2
    assert len(exchange.limit_requests) == 1
