"""
카테고리 / 제품 스키마
"""

from datetime import datetime

from pydantic import Field

from app.models.inventory import ReorderStatus
from app.schemas.common import CamelModel, CategoryBrief, WarehouseBrief


# ── 카테고리 ──────────────────────────────────────────

class CategoryCreate(CamelModel):
    name: str | None = None
    description: str | None = None
    parent_id: int | None = None
    is_recyclable: bool = False


class CategoryUpdate(CamelModel):
    name: str | None = None
    description: str | None = None
    parent_id: int | None = None
    is_recyclable: bool | None = None


class CategoryResponse(CamelModel):
    id: int
    name: str
    description: str | None = None
    parent_id: int | None = None
    parent: CategoryBrief | None = None
    is_recyclable: bool
    product_count: int = 0
    child_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CategoryTreeNode(CamelModel):
    id: int
    name: str
    description: str | None = None
    parent_id: int | None = None
    is_recyclable: bool
    product_count: int = 0
    children: list["CategoryTreeNode"] = []

    @classmethod
    def from_node(cls, node) -> "CategoryTreeNode":
        category = node.category
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            parent_id=category.parent_id,
            is_recyclable=category.is_recyclable,
            product_count=category.product_count,
            children=[cls.from_node(child) for child in node.children],
        )


# ── 제품 ──────────────────────────────────────────────

class ProductUpsert(CamelModel):
    sku: str | None = None
    name: str | None = None
    description: str | None = None
    category_id: int | None = None
    unit: str | None = None
    cost_price: float | None = Field(None, ge=0)
    selling_price: float | None = Field(None, ge=0)
    min_stock_level: int | None = None
    reorder_point: int | None = None
    is_active: bool | None = None
    weight: float | None = None
    volume: float | None = None
    is_eco_friendly: bool | None = None
    material_type: str | None = None
    carbon_footprint_kg: float | None = None


class ProductBulkItem(CamelModel):
    id: int
    data: ProductUpsert


class ProductBulkRequest(CamelModel):
    updates: list[ProductBulkItem] = Field(..., min_length=1)


class ProductResponse(CamelModel):
    id: int
    sku: str
    name: str
    description: str | None = None
    category_id: int
    category: CategoryBrief | None = None
    unit: str
    cost_price: float
    selling_price: float | None = None
    min_stock_level: int
    reorder_point: int
    is_active: bool
    weight: float | None = None
    volume: float | None = None
    is_eco_friendly: bool
    material_type: str | None = None
    carbon_footprint_kg: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StockTotalsResponse(CamelModel):
    total_quantity: int
    total_reserved: int
    total_available: int


class ProductDetailResponse(ProductResponse):
    totals: StockTotalsResponse


class ProductBulkResult(CamelModel):
    id: int
    success: bool
    data: ProductResponse | None = None
    error: str | None = None


class ProductWarehouseStock(CamelModel):
    id: int
    warehouse: WarehouseBrief
    quantity: int
    reserved: int
    available: int
    aisle: str | None = None
    shelf: str | None = None
    bin: str | None = None
    reorder_status: ReorderStatus


class ProductInventoryResponse(CamelModel):
    inventory: list[ProductWarehouseStock]
    totals: StockTotalsResponse
