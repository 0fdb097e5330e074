"""
Tests for the orders API (/api/orders).
"""
import logging
import re

import pytest
from httpx import AsyncClient

from app.models import Inventory

PREFIX = "/api/orders"


def _levels(db, warehouse, product):
    db.expire_all()
    inventory = (
        db.query(Inventory)
        .filter(Inventory.warehouse_id == warehouse.id, Inventory.product_id == product.id)
        .first()
    )
    return inventory.quantity, inventory.reserved, inventory.available


@pytest.fixture
def order_body(user, warehouse, product, stock_in):
    stock_in(warehouse.id, product.id, 20)
    return {
        "customerName": "Green Cafe GmbH",
        "customerEmail": "orders@greencafe.test",
        "createdById": user.id,
        "fulfillmentWarehouseId": warehouse.id,
        "tax": 1.5,
        "shippingCost": 4.0,
        "items": [{"productId": product.id, "quantity": 6}],
    }


async def _advance(client, order_id, *statuses):
    for status in statuses:
        response = await client.put(f"{PREFIX}/{order_id}", json={"status": status})
        assert response.status_code == 200, response.json()
    return response.json()["data"]


class TestCreateOrder:

    @pytest.mark.asyncio
    async def test_create_reserves_stock(self, client: AsyncClient, db, warehouse, product, order_body):
        response = await client.post(PREFIX, json=order_body)
        assert response.status_code == 201
        data = response.json()["data"]
        assert re.fullmatch(r"ORD-\d{8}-00001", data["orderNumber"])
        assert data["status"] == "NEW"
        assert data["priority"] == "NORMAL"
        assert data["subtotal"] == pytest.approx(30.0)
        assert data["totalAmount"] == pytest.approx(35.5)
        assert data["items"][0]["status"] == "RESERVED"
        assert data["fulfillmentProgress"] == 25
        assert data["totalCarbon"] == pytest.approx(7.2)

        assert _levels(db, warehouse, product) == (20, 6, 14)

    @pytest.mark.asyncio
    async def test_create_without_warehouse_reserves_nothing(
        self, client: AsyncClient, db, warehouse, product, order_body,
    ):
        del order_body["fulfillmentWarehouseId"]
        response = await client.post(PREFIX, json=order_body)
        assert response.json()["data"]["items"][0]["status"] == "PENDING"
        assert _levels(db, warehouse, product) == (20, 0, 20)

    @pytest.mark.asyncio
    async def test_insufficient_stock(self, client: AsyncClient, db, warehouse, product, order_body):
        order_body["items"][0]["quantity"] = 21
        response = await client.post(PREFIX, json=order_body)
        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient stock for product Bamboo Box"
        assert _levels(db, warehouse, product) == (20, 0, 20)

    @pytest.mark.asyncio
    async def test_customer_name_required(self, client: AsyncClient, order_body):
        del order_body["customerName"]
        response = await client.post(PREFIX, json=order_body)
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required field: customerName"


class TestOrderLifecycle:

    @pytest.mark.asyncio
    async def test_cancel_releases_reservation(self, client: AsyncClient, db, warehouse, product, order_body):
        order = (await client.post(PREFIX, json=order_body)).json()["data"]
        data = await _advance(client, order["id"], "PROCESSING", "CANCELLED")
        assert data["items"][0]["status"] == "PENDING"
        assert _levels(db, warehouse, product) == (20, 0, 20)

    @pytest.mark.asyncio
    async def test_ship_consumes_reservation(self, client: AsyncClient, db, warehouse, product, order_body):
        order = (await client.post(PREFIX, json=order_body)).json()["data"]
        data = await _advance(client, order["id"], "PROCESSING", "PICKING", "PACKED")
        assert data["items"][0]["status"] == "PACKED"
        assert data["fulfillmentProgress"] == 75

        data = await _advance(client, order["id"], "SHIPPED")
        assert data["shippedDate"] is not None
        assert data["fulfillmentProgress"] == 100
        assert _levels(db, warehouse, product) == (14, 0, 14)

        data = await _advance(client, order["id"], "DELIVERED")
        assert data["deliveredDate"] is not None

    @pytest.mark.asyncio
    async def test_return_restocks(self, client: AsyncClient, db, warehouse, product, order_body):
        order = (await client.post(PREFIX, json=order_body)).json()["data"]
        await _advance(client, order["id"], "PROCESSING", "PICKING", "PACKED", "SHIPPED", "RETURNED")
        assert _levels(db, warehouse, product) == (20, 0, 20)

    @pytest.mark.asyncio
    async def test_invalid_transition(self, client: AsyncClient, db, warehouse, product, order_body):
        order = (await client.post(PREFIX, json=order_body)).json()["data"]
        response = await client.put(f"{PREFIX}/{order['id']}", json={"status": "SHIPPED"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid status transition from NEW to SHIPPED"

        current = (await client.get(f"{PREFIX}/{order['id']}")).json()["data"]
        assert current["status"] == "NEW"
        assert current["shippedDate"] is None
        assert _levels(db, warehouse, product) == (20, 6, 14)

    @pytest.mark.asyncio
    async def test_ship_with_reduced_reservation_warns(
        self, client: AsyncClient, db, warehouse, product, order_body, caplog,
    ):
        order = (await client.post(PREFIX, json=order_body)).json()["data"]
        await _advance(client, order["id"], "PROCESSING", "PICKING", "PACKED")

        # 수동 조정으로 예약분이 6 → 2로 줄어든 상태
        db.expire_all()
        inventory = (
            db.query(Inventory)
            .filter(Inventory.warehouse_id == warehouse.id, Inventory.product_id == product.id)
            .one()
        )
        inventory.reserved, inventory.available = 2, 18
        db.commit()

        with caplog.at_level(logging.WARNING, logger="app.services.order_service"):
            await _advance(client, order["id"], "SHIPPED")

        assert _levels(db, warehouse, product) == (18, 0, 18)
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert order["orderNumber"] in warnings[0].getMessage()

    @pytest.mark.asyncio
    async def test_warehouse_cannot_change(self, client: AsyncClient, other_warehouse, order_body):
        order = (await client.post(PREFIX, json=order_body)).json()["data"]
        response = await client.put(
            f"{PREFIX}/{order['id']}", json={"fulfillmentWarehouseId": other_warehouse.id},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_shipping_cost_recomputes_total(self, client: AsyncClient, order_body):
        order = (await client.post(PREFIX, json=order_body)).json()["data"]
        response = await client.put(f"{PREFIX}/{order['id']}", json={"shippingCost": 0})
        assert response.json()["data"]["totalAmount"] == pytest.approx(31.5)


class TestOrderQueries:

    @pytest.mark.asyncio
    async def test_detail_includes_availability(self, client: AsyncClient, order_body):
        order_body["fulfillmentWarehouseId"] = None
        order = (await client.post(PREFIX, json=order_body)).json()["data"]

        response = await client.get(f"{PREFIX}/{order['id']}")
        data = response.json()["data"]
        assert data["items"][0]["availableStock"] == 20
        assert data["items"][0]["canFulfill"] is True
        assert data["canFulfillAll"] is True

    @pytest.mark.asyncio
    async def test_to_fulfill_lists_open_orders_oldest_first(self, client: AsyncClient, order_body):
        first = (await client.post(PREFIX, json=order_body)).json()["data"]
        second = (await client.post(PREFIX, json=order_body)).json()["data"]
        await _advance(client, second["id"], "CANCELLED")

        response = await client.post(f"{PREFIX}/to-fulfill", json={})
        assert [o["id"] for o in response.json()["data"]] == [first["id"]]

    @pytest.mark.asyncio
    async def test_search_by_status(self, client: AsyncClient, order_body):
        order = (await client.post(PREFIX, json=order_body)).json()["data"]
        await _advance(client, order["id"], "PROCESSING")

        response = await client.post(f"{PREFIX}/status/PROCESSING", json={})
        assert response.json()["pagination"]["total"] == 1
        assert (await client.post(f"{PREFIX}/status/LOST", json={})).status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_order(self, client: AsyncClient):
        response = await client.get(f"{PREFIX}/999")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Order not found"}
