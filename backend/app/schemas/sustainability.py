"""
지속가능성 기록 스키마
"""

from datetime import datetime

from app.models.sustainability import (
    CarbonCategory, CarbonScope, FlowCategory, RecyclingMethod, RecyclingType,
)
from app.schemas.common import CamelModel, ProductBrief, UserBrief, WarehouseBrief


class CarbonCreate(CamelModel):
    scope: CarbonScope | None = None
    category: CarbonCategory | None = None
    carbon_kg: float | None = None
    source_id: int | None = None
    source_type: str | None = None
    measurement_period: str | None = None
    calculation_method: str | None = None
    notes: str | None = None


class CarbonUpdate(CamelModel):
    carbon_kg: float | None = None
    calculation_method: str | None = None
    notes: str | None = None


class CarbonResponse(CamelModel):
    id: int
    scope: CarbonScope
    category: CarbonCategory
    source_id: int | None = None
    source_type: str | None = None
    carbon_kg: float
    measurement_period: str
    calculation_method: str
    recorded_at: datetime | None = None
    notes: str | None = None


class RecyclingCreate(CamelModel):
    processing_warehouse_id: int | None = None
    product_id: int | None = None
    quantity: int | None = None
    weight_kg: float | None = None
    recycling_type: RecyclingType | None = None
    method: RecyclingMethod | None = None
    carbon_saved_kg: float | None = None
    landfill_diverted_kg: float | None = None
    processed_by_id: int | None = None


class RecyclingUpdate(CamelModel):
    quantity: int | None = None
    weight_kg: float | None = None
    carbon_saved_kg: float | None = None
    landfill_diverted_kg: float | None = None


class RecyclingResponse(CamelModel):
    id: int
    processing_warehouse_id: int
    processing_warehouse: WarehouseBrief | None = None
    product_id: int
    product: ProductBrief | None = None
    quantity: int
    weight_kg: float | None = None
    recycling_type: RecyclingType
    method: RecyclingMethod
    carbon_saved_kg: float | None = None
    landfill_diverted_kg: float | None = None
    processed_by_id: int
    processed_by: UserBrief | None = None
    processed_date: datetime | None = None


class MaterialFlowCreate(CamelModel):
    material_type: str | None = None
    category: FlowCategory | None = None
    quantity: int | None = None
    unit: str | None = None
    source_id: int | None = None
    source_type: str | None = None
    dest_id: int | None = None
    dest_type: str | None = None
    flow_date: datetime | None = None


class MaterialFlowUpdate(CamelModel):
    quantity: int | None = None


class MaterialFlowResponse(CamelModel):
    id: int
    material_type: str
    category: FlowCategory
    quantity: int
    unit: str
    source_id: int | None = None
    source_type: str | None = None
    dest_id: int | None = None
    dest_type: str | None = None
    flow_date: datetime | None = None
    recorded_at: datetime | None = None
