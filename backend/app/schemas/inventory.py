"""
재고 스키마
"""

from datetime import datetime

from pydantic import Field

from app.models.inventory import ReorderStatus
from app.schemas.common import CamelModel, ProductBrief, WarehouseBrief


class InventoryUpsert(CamelModel):
    warehouse_id: int | None = None
    product_id: int | None = None
    quantity: int = Field(0, ge=0)
    aisle: str | None = None
    shelf: str | None = None
    bin: str | None = None


class QuantityUpdate(CamelModel):
    quantity: int = Field(..., ge=0)
    action: str = "SET"
    notes: str | None = None


class BulkQuantityItem(QuantityUpdate):
    id: int


class InventoryBulkRequest(CamelModel):
    updates: list[BulkQuantityItem] = Field(..., min_length=1)


class InventoryResponse(CamelModel):
    id: int
    warehouse_id: int
    product_id: int
    warehouse: WarehouseBrief | None = None
    product: ProductBrief | None = None
    quantity: int
    reserved: int
    available: int
    aisle: str | None = None
    shelf: str | None = None
    bin: str | None = None
    reorder_status: ReorderStatus
    last_updated: datetime | None = None


class InventoryBulkResult(CamelModel):
    id: int
    success: bool
    data: InventoryResponse | None = None
    error: str | None = None
