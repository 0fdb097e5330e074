"""
Tests for categories, products, warehouses and users.
"""
import pytest
from httpx import AsyncClient

from app.models import Category


class TestCategories:

    @pytest.mark.asyncio
    async def test_tree_nests_children(self, client: AsyncClient, category, product):
        child = (await client.post("/api/categories", json={"name": "Boxes", "parentId": category.id})).json()["data"]
        assert child["parent"]["name"] == "Packaging"

        tree = (await client.get("/api/categories/tree")).json()["data"]
        assert tree[0]["name"] == "Packaging"
        assert tree[0]["productCount"] == 1
        assert [c["id"] for c in tree[0]["children"]] == [child["id"]]

    @pytest.mark.asyncio
    async def test_circular_parent_rejected(self, client: AsyncClient, db, category):
        child = Category(name="Boxes", parent_id=category.id)
        db.add(child)
        db.commit()

        response = await client.put(f"/api/categories/{category.id}", json={"parentId": child.id})
        assert response.status_code == 400
        assert response.json()["error"] == "Circular reference detected"

        response = await client.put(f"/api/categories/{category.id}", json={"parentId": category.id})
        assert response.json()["error"] == "Category cannot be its own parent"

    @pytest.mark.asyncio
    async def test_duplicate_name(self, client: AsyncClient, category):
        response = await client.post("/api/categories", json={"name": "Packaging"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_category_with_products_cannot_be_deleted(self, client: AsyncClient, category, product):
        response = await client.delete(f"/api/categories/{category.id}")
        assert response.status_code == 400


class TestProducts:

    @pytest.mark.asyncio
    async def test_create_applies_defaults(self, client: AsyncClient, category):
        response = await client.post("/api/products", json={
            "sku": "ECO-CUP-0001", "name": "Paper Cup", "categoryId": category.id,
            "unit": "pcs", "costPrice": 0.1,
        })
        assert response.status_code == 201
        data = response.json()["data"]
        assert (data["minStockLevel"], data["reorderPoint"]) == (10, 20)
        assert data["isActive"] is True
        assert data["isEcoFriendly"] is True

    @pytest.mark.asyncio
    async def test_missing_fields(self, client: AsyncClient, category):
        response = await client.post("/api/products", json={"sku": "X"})
        assert response.status_code == 400
        assert response.json()["error"] == "SKU, name, category, unit, and cost price are required"

    @pytest.mark.asyncio
    async def test_duplicate_sku(self, client: AsyncClient, category, product):
        response = await client.post("/api/products", json={
            "sku": product.sku, "name": "Copy", "categoryId": category.id, "unit": "pcs", "costPrice": 1,
        })
        assert response.status_code == 400
        assert response.json()["error"] == f"Product with SKU {product.sku} already exists"

    @pytest.mark.asyncio
    async def test_update_keeps_existing_values(self, client: AsyncClient, product):
        response = await client.put(f"/api/products/{product.id}", json={"sellingPrice": 6.5})
        data = response.json()["data"]
        assert data["sellingPrice"] == 6.5
        assert data["name"] == "Bamboo Box"
        assert data["minStockLevel"] == 5

    @pytest.mark.asyncio
    async def test_detail_and_inventory_totals(
        self, client: AsyncClient, warehouse, other_warehouse, product, stock_in,
    ):
        stock_in(warehouse.id, product.id, 7)
        stock_in(other_warehouse.id, product.id, 5)

        detail = (await client.get(f"/api/products/{product.id}")).json()["data"]
        assert detail["totals"] == {"totalQuantity": 12, "totalReserved": 0, "totalAvailable": 12}

        inventory = (await client.get(f"/api/products/{product.id}/inventory")).json()["data"]
        assert {row["warehouse"]["code"] for row in inventory["inventory"]} == {"WH-BER-01", "WH-HAM-01"}

    @pytest.mark.asyncio
    async def test_low_stock_uses_total_available(self, client: AsyncClient, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 7)
        body = (await client.post("/api/products/low-stock", json={})).json()
        assert [p["id"] for p in body["data"]] == [product.id]

        stock_in(warehouse.id, product.id, 10)
        body = (await client.post("/api/products/low-stock", json={})).json()
        assert body["data"] == []

    @pytest.mark.asyncio
    async def test_bulk_update_continues_after_failure(self, client: AsyncClient, product):
        response = await client.post("/api/products/bulk-update", json={"updates": [
            {"id": 999, "data": {"name": "Ghost"}},
            {"id": product.id, "data": {"reorderPoint": 15}},
        ]})
        results = response.json()["data"]
        assert results[0]["success"] is False
        assert results[1]["success"] is True
        assert results[1]["data"]["reorderPoint"] == 15

    @pytest.mark.asyncio
    async def test_product_with_history_cannot_be_deleted(self, client: AsyncClient, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 1)
        response = await client.delete(f"/api/products/{product.id}")
        assert response.status_code == 400


class TestWarehousesAndUsers:

    @pytest.mark.asyncio
    async def test_create_warehouse_validates(self, client: AsyncClient, warehouse):
        response = await client.post("/api/warehouses", json={"code": "WH-MUC-01", "name": "Munich"})
        assert response.status_code == 400
        assert response.json()["error"] == "Missing required field: location"

        response = await client.post("/api/warehouses", json={
            "code": warehouse.code, "name": "Dup", "location": "x", "address": "x",
            "city": "x", "country": "DE", "capacity": 10,
        })
        assert response.json()["error"] == "Warehouse code already exists"

    @pytest.mark.asyncio
    async def test_inventory_summary(self, client: AsyncClient, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 4)
        summary = (await client.get(f"/api/warehouses/{warehouse.id}/inventory-summary")).json()["data"]
        assert summary["totalItems"] == 1
        assert summary["totalQuantity"] == 4
        assert summary["lowStockItems"] == 1
        assert summary["totalValue"] == pytest.approx(8.0)

    @pytest.mark.asyncio
    async def test_warehouse_with_history_cannot_be_deleted(self, client: AsyncClient, warehouse, product, stock_in):
        stock_in(warehouse.id, product.id, 1)
        assert (await client.delete(f"/api/warehouses/{warehouse.id}")).status_code == 400

    @pytest.mark.asyncio
    async def test_user_email_unique(self, client: AsyncClient, user):
        response = await client.post("/api/users", json={
            "email": user.email, "firstName": "A", "lastName": "B",
        })
        assert response.status_code == 400
        assert response.json()["error"] == f"User with email {user.email} already exists"
