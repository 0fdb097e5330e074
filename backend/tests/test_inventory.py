"""
Tests for the inventory API (/api/inventory).
"""
import pytest
from httpx import AsyncClient

from app.models.order import OrderStatus
from app.services import OrderService
from app.services.order_service import OrderItemInput

PREFIX = "/api/inventory"


class TestUpsert:

    @pytest.mark.asyncio
    async def test_creates_then_updates_row(self, client: AsyncClient, warehouse, product):
        body = {"warehouseId": warehouse.id, "productId": product.id, "quantity": 8, "aisle": "A1"}
        created = (await client.post(PREFIX, json=body)).json()["data"]
        assert created["quantity"] == 8
        assert created["reorderStatus"] == "BELOW_REORDER"

        body["quantity"] = 40
        updated = (await client.post(PREFIX, json=body)).json()["data"]
        assert updated["id"] == created["id"]
        assert (updated["quantity"], updated["available"]) == (40, 40)
        assert updated["reorderStatus"] == "OK"

    @pytest.mark.asyncio
    async def test_ids_required(self, client: AsyncClient, warehouse):
        response = await client.post(PREFIX, json={"warehouseId": warehouse.id, "quantity": 1})
        assert response.status_code == 400
        assert response.json()["error"] == "Warehouse ID and Product ID are required"


class TestQuantityUpdate:

    @pytest.mark.asyncio
    async def test_actions_keep_reservation(self, client: AsyncClient, db, user, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 20)
        OrderService(db).create("Cafe", user.id, [OrderItemInput(product.id, 5)], fulfillment_warehouse_id=warehouse.id)
        inventory_id = (await client.post(f"{PREFIX}/warehouse/{warehouse.id}", json={})).json()["data"][0]["id"]

        data = (await client.patch(f"{PREFIX}/{inventory_id}/quantity", json={"quantity": 3, "action": "ADD"})).json()["data"]
        assert (data["quantity"], data["reserved"], data["available"]) == (23, 5, 18)

        data = (await client.patch(f"{PREFIX}/{inventory_id}/quantity", json={"quantity": 30, "action": "SUBTRACT"})).json()["data"]
        assert (data["quantity"], data["reserved"], data["available"]) == (0, 5, 0)

    @pytest.mark.asyncio
    async def test_invalid_action(self, client: AsyncClient, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 2)
        inventory_id = (await client.post(f"{PREFIX}/product/{product.id}", json={})).json()["data"][0]["id"]
        response = await client.patch(f"{PREFIX}/{inventory_id}/quantity", json={"quantity": 1, "action": "DOUBLE"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_bulk_update_reports_each_item(self, client: AsyncClient, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 2)
        inventory_id = (await client.post(f"{PREFIX}/search", json={})).json()["data"][0]["id"]

        response = await client.post(f"{PREFIX}/bulk-update", json={"updates": [
            {"id": inventory_id, "quantity": 50},
            {"id": 999, "quantity": 1},
        ]})
        results = response.json()["data"]
        assert results[0]["success"] is True
        assert results[0]["data"]["quantity"] == 50
        assert results[1] == {"id": 999, "success": False, "data": None, "error": "Inventory record not found"}


class TestInventoryQueries:

    @pytest.mark.asyncio
    async def test_low_stock_and_text_search(
        self, client: AsyncClient, warehouse, other_warehouse, product, stock_in,
    ):
        stock_in(warehouse.id, product.id, 3)
        stock_in(other_warehouse.id, product.id, 50)

        low = (await client.post(f"{PREFIX}/low-stock", json={})).json()
        assert [i["warehouseId"] for i in low["data"]] == [warehouse.id]

        found = (await client.post(f"{PREFIX}/search", json={"search": "ham"})).json()
        assert [i["warehouseId"] for i in found["data"]] == [other_warehouse.id]

    @pytest.mark.asyncio
    async def test_pagination(self, client: AsyncClient, warehouse, other_warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 3)
        stock_in(other_warehouse.id, product.id, 3)
        body = (await client.post(f"{PREFIX}/search", json={"limit": 1, "currentPage": 2})).json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {
            "currentPage": 2, "limit": 1, "total": 2, "totalPages": 2, "hasNext": False, "hasPrev": True,
        }


class TestDeleteInventory:

    @pytest.mark.asyncio
    async def test_rows_with_stock_cannot_be_deleted(self, client: AsyncClient, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 4)
        inventory_id = (await client.post(f"{PREFIX}/search", json={})).json()["data"][0]["id"]

        response = await client.delete(f"{PREFIX}/{inventory_id}")
        assert response.status_code == 400

        await client.patch(f"{PREFIX}/{inventory_id}/quantity", json={"quantity": 0})
        assert (await client.delete(f"{PREFIX}/{inventory_id}")).status_code == 200
