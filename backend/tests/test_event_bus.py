"""
Tests for the in-memory event bus and the stock monitor.
"""
import asyncio

import pytest

from app.events.event_bus import AsyncEventBus, publish_events, set_event_bus
from app.events.stock_monitor import StockMonitor


async def _wait_for(predicate, timeout: float = 2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("event was not delivered in time")
        await asyncio.sleep(0.01)


class TestAsyncEventBus:

    @pytest.mark.asyncio
    async def test_inmemory_delivery(self):
        bus = AsyncEventBus(use_redis=False)
        received = []

        async def handler(topic, data):
            received.append((topic, data))

        await bus.subscribe("orders.created", handler)
        await bus.start()
        try:
            assert bus.is_running and not bus.is_redis
            await bus.publish("orders.created", {"order_id": 1})
            await _wait_for(lambda: received)
        finally:
            await bus.stop()

        assert received == [("orders.created", {"order_id": 1})]
        assert bus.get_recent("orders.created")[0]["data"] == {"order_id": 1}

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self):
        bus = AsyncEventBus(use_redis=False)
        received = []

        async def broken(topic, data):
            raise RuntimeError("boom")

        async def handler(topic, data):
            received.append(data)

        await bus.subscribe("transfers.completed", broken)
        await bus.subscribe("transfers.completed", handler)
        await bus.start()
        try:
            await bus.publish("transfers.completed", {"transfer_id": 3})
            await _wait_for(lambda: received)
        finally:
            await bus.stop()

    @pytest.mark.asyncio
    async def test_publish_events_uses_global_bus(self):
        # 버스가 없으면 조용히 생략
        await publish_events([("orders.created", {"order_id": 1})])

        bus = AsyncEventBus(use_redis=False)
        set_event_bus(bus)
        try:
            await publish_events([("orders.created", {"order_id": 2}), ("orders.created", {"order_id": 3})])
        finally:
            set_event_bus(None)
        assert [e["data"]["order_id"] for e in bus.get_recent("orders.created")] == [2, 3]


class TestStockMonitor:

    @staticmethod
    def _update(status: str, quantity: int) -> dict:
        return {
            "warehouse_id": 1, "product_id": 7, "sku": "ECO-PKG-0007",
            "quantity": quantity, "reserved": 0, "available": quantity, "reorder_status": status,
        }

    @pytest.mark.asyncio
    async def test_alerts_once_per_status_change(self):
        bus = AsyncEventBus(use_redis=False)
        monitor = StockMonitor(bus)

        await monitor._on_inventory_updated("inventory.updated", self._update("BELOW_REORDER", 15))
        await monitor._on_inventory_updated("inventory.updated", self._update("BELOW_REORDER", 12))
        await monitor._on_inventory_updated("inventory.updated", self._update("BELOW_MIN", 3))

        alerts = bus.get_recent("inventory.low_stock")
        assert [a["data"]["reorder_status"] for a in alerts] == ["BELOW_REORDER", "BELOW_MIN"]
        assert monitor.low_stock_items == {(1, 7): "BELOW_MIN"}

    @pytest.mark.asyncio
    async def test_recovery_clears_item(self):
        bus = AsyncEventBus(use_redis=False)
        monitor = StockMonitor(bus)

        await monitor._on_inventory_updated("inventory.updated", self._update("BELOW_MIN", 2))
        await monitor._on_inventory_updated("inventory.updated", self._update("OK", 80))
        assert monitor.low_stock_items == {}
