"""
Tests for the transactions API (/api/transactions).
"""
import re

import pytest
from httpx import AsyncClient

from app.models import AuditLog, Inventory, Transaction
from app.models.inventory import ReorderStatus

PREFIX = "/api/transactions"


def _body(warehouse, user, product, quantity, **extra):
    return {
        "warehouseId": warehouse.id,
        "performedById": user.id,
        "items": [{"productId": product.id, "quantity": quantity}],
        **extra,
    }


def _inventory(db, warehouse, product) -> Inventory:
    db.expire_all()
    return (
        db.query(Inventory)
        .filter(Inventory.warehouse_id == warehouse.id, Inventory.product_id == product.id)
        .first()
    )


class TestStockIn:

    @pytest.mark.asyncio
    async def test_stock_in_creates_inventory_row(self, client: AsyncClient, db, user, warehouse, product):
        response = await client.post(f"{PREFIX}/stock-in", json=_body(warehouse, user, product, 50))
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert re.fullmatch(r"SI-\d{8}-00001", data["transactionNumber"])
        assert data["type"] == "STOCK_IN"
        assert data["totalItems"] == 50
        assert data["totalValue"] == pytest.approx(100.0)
        assert data["items"][0]["previousQty"] == 0
        assert data["items"][0]["newQty"] == 50

        inventory = _inventory(db, warehouse, product)
        assert (inventory.quantity, inventory.reserved, inventory.available) == (50, 0, 50)
        assert inventory.reorder_status == ReorderStatus.OK

    @pytest.mark.asyncio
    async def test_numbers_increase_within_a_day(self, client: AsyncClient, user, warehouse, product):
        first = await client.post(f"{PREFIX}/stock-in", json=_body(warehouse, user, product, 1))
        second = await client.post(f"{PREFIX}/stock-in", json=_body(warehouse, user, product, 1))
        assert first.json()["data"]["transactionNumber"].endswith("-00001")
        assert second.json()["data"]["transactionNumber"].endswith("-00002")

    @pytest.mark.asyncio
    async def test_stock_in_writes_audit_entry(self, client: AsyncClient, db, user, warehouse, product):
        response = await client.post(f"{PREFIX}/stock-in", json=_body(warehouse, user, product, 5))
        tx_id = response.json()["data"]["id"]
        audit = db.query(AuditLog).filter(AuditLog.entity_type == "Transaction").one()
        assert audit.entity_id == tx_id
        assert audit.action == "CREATE"

    @pytest.mark.asyncio
    async def test_unknown_warehouse_is_not_found(self, client: AsyncClient, user, warehouse, product):
        body = _body(warehouse, user, product, 5)
        body["warehouseId"] = 999
        response = await client.post(f"{PREFIX}/stock-in", json=body)
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Warehouse not found"}

    @pytest.mark.asyncio
    async def test_duplicate_products_rejected(self, client: AsyncClient, user, warehouse, product):
        body = _body(warehouse, user, product, 5)
        body["items"].append({"productId": product.id, "quantity": 1})
        response = await client.post(f"{PREFIX}/stock-in", json=body)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_empty_items_fail_validation(self, client: AsyncClient, user, warehouse, product):
        body = _body(warehouse, user, product, 5)
        body["items"] = []
        response = await client.post(f"{PREFIX}/stock-in", json=body)
        assert response.status_code == 422
        assert response.json()["success"] is False


class TestStockOut:

    @pytest.mark.asyncio
    async def test_stock_out_decrements(self, client: AsyncClient, db, user, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 20)
        response = await client.post(f"{PREFIX}/stock-out", json=_body(warehouse, user, product, 12))
        assert response.status_code == 201
        assert response.json()["data"]["transactionNumber"].startswith("SO-")

        inventory = _inventory(db, warehouse, product)
        assert (inventory.quantity, inventory.available) == (8, 8)
        assert inventory.reorder_status == ReorderStatus.BELOW_REORDER

    @pytest.mark.asyncio
    async def test_insufficient_stock_leaves_nothing_behind(
        self, client: AsyncClient, db, user, warehouse, product, stock_in,
    ):
        stock_in(warehouse.id, product.id, 3)
        response = await client.post(f"{PREFIX}/stock-out", json=_body(warehouse, user, product, 4))
        assert response.status_code == 400
        assert response.json()["error"] == "Insufficient stock for product Bamboo Box"

        inventory = _inventory(db, warehouse, product)
        assert inventory.quantity == 3
        assert db.query(Transaction).count() == 1

    @pytest.mark.asyncio
    async def test_stock_out_without_inventory_row(self, client: AsyncClient, db, user, warehouse, product):
        response = await client.post(f"{PREFIX}/stock-out", json=_body(warehouse, user, product, 1))
        assert response.status_code == 400
        assert _inventory(db, warehouse, product) is None

    @pytest.mark.asyncio
    async def test_waste_recycling_requires_disposal_type(
        self, client: AsyncClient, user, warehouse, product, stock_in,
    ):
        stock_in(warehouse.id, product.id, 10)
        response = await client.post(
            f"{PREFIX}/waste-recycling", json=_body(warehouse, user, product, 2, type="STOCK_IN"),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Type must be WASTE or RECYCLING"

        response = await client.post(
            f"{PREFIX}/waste-recycling", json=_body(warehouse, user, product, 2, type="RECYCLING"),
        )
        assert response.status_code == 201
        assert response.json()["data"]["transactionNumber"].startswith("RCY-")


class TestAdjustment:

    @pytest.mark.asyncio
    async def test_adjustment_sets_absolute_quantity(
        self, client: AsyncClient, db, user, warehouse, product, stock_in,
    ):
        stock_in(warehouse.id, product.id, 30)
        response = await client.post(f"{PREFIX}/adjustment", json=_body(warehouse, user, product, 4))
        assert response.status_code == 201
        item = response.json()["data"]["items"][0]
        assert (item["previousQty"], item["newQty"]) == (30, 4)

        inventory = _inventory(db, warehouse, product)
        assert (inventory.quantity, inventory.available) == (4, 4)
        assert inventory.reorder_status == ReorderStatus.BELOW_MIN

    @pytest.mark.asyncio
    async def test_adjustment_needs_existing_row(self, client: AsyncClient, user, warehouse, product):
        response = await client.post(f"{PREFIX}/adjustment", json=_body(warehouse, user, product, 4))
        assert response.status_code == 400


class TestReverse:

    @pytest.mark.asyncio
    async def test_delete_reverts_stock_out(self, client: AsyncClient, db, user, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 20)
        created = await client.post(f"{PREFIX}/stock-out", json=_body(warehouse, user, product, 5))
        tx_id = created.json()["data"]["id"]

        response = await client.delete(f"{PREFIX}/{tx_id}")
        assert response.status_code == 200
        assert response.json()["data"]["message"] == "Transaction deleted and inventory reverted"

        inventory = _inventory(db, warehouse, product)
        assert (inventory.quantity, inventory.available) == (20, 20)
        assert (await client.get(f"{PREFIX}/{tx_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_restores_adjusted_quantity(
        self, client: AsyncClient, db, user, warehouse, product, stock_in,
    ):
        stock_in(warehouse.id, product.id, 30)
        created = await client.post(f"{PREFIX}/adjustment", json=_body(warehouse, user, product, 12))
        await client.delete(f"{PREFIX}/{created.json()['data']['id']}")
        assert _inventory(db, warehouse, product).quantity == 30

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "tx_type", ["STOCK_IN", "RETURN", "STOCK_OUT", "WASTE", "RECYCLING", "ADJUSTMENT"],
    )
    async def test_create_then_delete_restores_levels(
        self, client: AsyncClient, db, user, warehouse, product, stock_in, tx_type,
    ):
        stock_in(warehouse.id, product.id, 20)
        inventory = _inventory(db, warehouse, product)
        inventory.reserved, inventory.available = 4, 16
        db.commit()

        created = await client.post(PREFIX, json=_body(warehouse, user, product, 5, type=tx_type))
        assert created.status_code == 201, created.json()
        inventory = _inventory(db, warehouse, product)
        assert (inventory.quantity, inventory.available) != (20, 16)

        response = await client.delete(f"{PREFIX}/{created.json()['data']['id']}")
        assert response.status_code == 200

        inventory = _inventory(db, warehouse, product)
        assert (inventory.quantity, inventory.reserved, inventory.available) == (20, 4, 16)

    @pytest.mark.asyncio
    async def test_cannot_reverse_consumed_stock_in(
        self, client: AsyncClient, db, user, warehouse, product, stock_in,
    ):
        transaction = stock_in(warehouse.id, product.id, 10)
        await client.post(f"{PREFIX}/stock-out", json=_body(warehouse, user, product, 8))

        response = await client.delete(f"{PREFIX}/{transaction.id}")
        assert response.status_code == 400
        assert response.json()["error"].startswith(f"Cannot reverse transaction {transaction.transaction_number}")
        assert _inventory(db, warehouse, product).quantity == 2


class TestQueries:

    @pytest.mark.asyncio
    async def test_search_filters_by_type(self, client: AsyncClient, user, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 20)
        await client.post(f"{PREFIX}/stock-out", json=_body(warehouse, user, product, 5))

        response = await client.post(f"{PREFIX}/search", json={"filters": {"type": "STOCK_OUT"}})
        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["data"][0]["type"] == "STOCK_OUT"

    @pytest.mark.asyncio
    async def test_search_by_warehouse(
        self, client: AsyncClient, user, warehouse, other_warehouse, product, stock_in,
    ):
        stock_in(warehouse.id, product.id, 5)
        stock_in(other_warehouse.id, product.id, 5)
        response = await client.post(f"{PREFIX}/warehouse/{other_warehouse.id}", json={})
        data = response.json()["data"]
        assert [t["warehouseId"] for t in data] == [other_warehouse.id]

    @pytest.mark.asyncio
    async def test_only_notes_are_editable(self, client: AsyncClient, warehouse, product, stock_in):
        transaction = stock_in(warehouse.id, product.id, 5)
        response = await client.patch(f"{PREFIX}/{transaction.id}", json={"notes": "pallet 7"})
        assert response.status_code == 200
        assert response.json()["data"]["notes"] == "pallet 7"
        assert response.json()["data"]["totalItems"] == 5
