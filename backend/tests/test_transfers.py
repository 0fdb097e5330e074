"""
Tests for the transfers API (/api/transfers).
"""
import re

import pytest
from httpx import AsyncClient

from app.models import Inventory

PREFIX = "/api/transfers"


def _levels(db, warehouse, product):
    db.expire_all()
    inventory = (
        db.query(Inventory)
        .filter(Inventory.warehouse_id == warehouse.id, Inventory.product_id == product.id)
        .first()
    )
    if inventory is None:
        return None
    return inventory.quantity, inventory.reserved, inventory.available


@pytest.fixture
def transfer_body(user, warehouse, other_warehouse, product, stock_in):
    stock_in(warehouse.id, product.id, 30)
    return {
        "sourceWarehouseId": warehouse.id,
        "destWarehouseId": other_warehouse.id,
        "requestedById": user.id,
        "items": [{"productId": product.id, "quantity": 12}],
        "notes": "rebalance",
    }


class TestCreateTransfer:

    @pytest.mark.asyncio
    async def test_create_does_not_move_stock(self, client: AsyncClient, db, warehouse, product, transfer_body):
        response = await client.post(PREFIX, json=transfer_body)
        assert response.status_code == 201
        data = response.json()["data"]
        assert re.fullmatch(r"TRF-\d{6}-00001", data["transferNumber"])
        assert data["status"] == "PENDING"
        assert _levels(db, warehouse, product) == (30, 0, 30)

    @pytest.mark.asyncio
    async def test_same_source_and_destination(self, client: AsyncClient, warehouse, transfer_body):
        transfer_body["destWarehouseId"] = warehouse.id
        response = await client.post(PREFIX, json=transfer_body)
        assert response.status_code == 400
        assert response.json()["error"] == "Source and destination warehouses cannot be the same"

    @pytest.mark.asyncio
    async def test_source_must_have_stock(self, client: AsyncClient, transfer_body):
        transfer_body["items"][0]["quantity"] = 31
        response = await client.post(PREFIX, json=transfer_body)
        assert response.status_code == 400
        assert response.json()["error"] == "Product Bamboo Box not available in source warehouse"


class TestCompleteTransfer:

    @pytest.mark.asyncio
    async def test_complete_moves_stock(
        self, client: AsyncClient, db, user, warehouse, other_warehouse, product, transfer_body,
    ):
        created = (await client.post(PREFIX, json=transfer_body)).json()["data"]

        response = await client.post(f"{PREFIX}/{created['id']}/complete", json={"completedById": user.id})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "COMPLETED"
        assert data["completedById"] == user.id
        assert data["completedAt"] is not None

        assert _levels(db, warehouse, product) == (18, 0, 18)
        assert _levels(db, other_warehouse, product) == (12, 0, 12)

    @pytest.mark.asyncio
    async def test_complete_from_in_transit(self, client: AsyncClient, user, transfer_body):
        created = (await client.post(PREFIX, json=transfer_body)).json()["data"]
        moved = await client.patch(f"{PREFIX}/{created['id']}/status", json={"status": "IN_TRANSIT"})
        assert moved.json()["data"]["status"] == "IN_TRANSIT"

        response = await client.post(f"{PREFIX}/{created['id']}/complete", json={"completedById": user.id})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_complete_twice_is_rejected(self, client: AsyncClient, db, user, warehouse, product, transfer_body):
        created = (await client.post(PREFIX, json=transfer_body)).json()["data"]
        await client.post(f"{PREFIX}/{created['id']}/complete", json={"completedById": user.id})

        response = await client.post(f"{PREFIX}/{created['id']}/complete", json={"completedById": user.id})
        assert response.status_code == 400
        assert _levels(db, warehouse, product) == (18, 0, 18)

    @pytest.mark.asyncio
    async def test_complete_rechecks_source_stock(
        self, client: AsyncClient, db, user, warehouse, other_warehouse, product, transfer_body,
    ):
        created = (await client.post(PREFIX, json=transfer_body)).json()["data"]
        await client.post("/api/transactions/stock-out", json={
            "warehouseId": warehouse.id,
            "performedById": user.id,
            "items": [{"productId": product.id, "quantity": 25}],
        })

        response = await client.post(f"{PREFIX}/{created['id']}/complete", json={"completedById": user.id})
        assert response.status_code == 400
        assert _levels(db, warehouse, product) == (5, 0, 5)
        assert _levels(db, other_warehouse, product) is None


class TestTransferStatus:

    @pytest.mark.asyncio
    async def test_completed_only_via_complete_endpoint(self, client: AsyncClient, transfer_body):
        created = (await client.post(PREFIX, json=transfer_body)).json()["data"]
        response = await client.put(f"{PREFIX}/{created['id']}", json={"status": "COMPLETED"})
        assert response.status_code == 400
        assert response.json()["error"] == "Use the complete endpoint to complete a transfer"

    @pytest.mark.asyncio
    async def test_cancelled_transfer_is_final(self, client: AsyncClient, transfer_body):
        created = (await client.post(PREFIX, json=transfer_body)).json()["data"]
        await client.patch(f"{PREFIX}/{created['id']}/status", json={"status": "CANCELLED"})

        response = await client.put(f"{PREFIX}/{created['id']}", json={"notes": "again"})
        assert response.status_code == 400
        assert response.json()["error"] == "Cannot update a CANCELLED transfer"

    @pytest.mark.asyncio
    async def test_in_transit_cannot_go_back_to_pending(self, client: AsyncClient, transfer_body):
        created = (await client.post(PREFIX, json=transfer_body)).json()["data"]
        await client.patch(f"{PREFIX}/{created['id']}/status", json={"status": "IN_TRANSIT"})

        response = await client.patch(f"{PREFIX}/{created['id']}/status", json={"status": "PENDING"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid status transition from IN_TRANSIT to PENDING"

    @pytest.mark.asyncio
    async def test_update_can_clear_notes(self, client: AsyncClient, transfer_body):
        created = (await client.post(PREFIX, json=transfer_body)).json()["data"]
        response = await client.put(f"{PREFIX}/{created['id']}", json={"notes": None})
        assert response.status_code == 200
        assert response.json()["data"]["notes"] is None

    @pytest.mark.asyncio
    async def test_only_pending_transfers_can_be_deleted(self, client: AsyncClient, transfer_body):
        first = (await client.post(PREFIX, json=transfer_body)).json()["data"]
        second = (await client.post(PREFIX, json=transfer_body)).json()["data"]
        assert second["transferNumber"].endswith("-00002")

        await client.patch(f"{PREFIX}/{second['id']}/status", json={"status": "IN_TRANSIT"})
        assert (await client.delete(f"{PREFIX}/{second['id']}")).status_code == 400
        assert (await client.delete(f"{PREFIX}/{first['id']}")).status_code == 200


class TestTransferQueries:

    @pytest.mark.asyncio
    async def test_incoming_and_outgoing(self, client: AsyncClient, warehouse, other_warehouse, transfer_body):
        await client.post(PREFIX, json=transfer_body)

        outgoing = await client.post(f"{PREFIX}/warehouse/{warehouse.id}/outgoing", json={})
        incoming = await client.post(f"{PREFIX}/warehouse/{warehouse.id}/incoming", json={})
        assert outgoing.json()["pagination"]["total"] == 1
        assert incoming.json()["pagination"]["total"] == 0

        response = await client.post(f"{PREFIX}/warehouse/{other_warehouse.id}/sideways", json={})
        assert response.status_code == 400
