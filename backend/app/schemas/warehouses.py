"""
창고 / 사용자 스키마
"""

from datetime import datetime

from pydantic import Field

from app.schemas.common import CamelModel, UserBrief


class UserCreate(CamelModel):
    email: str
    first_name: str
    last_name: str
    role: str = "staff"
    department: str | None = None
    is_active: bool = True


class UserResponse(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    department: str | None = None
    is_active: bool
    created_at: datetime | None = None


class WarehouseCreate(CamelModel):
    code: str | None = None
    name: str | None = None
    location: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    postal_code: str | None = None
    capacity: int | None = Field(None, ge=0)
    is_active: bool = True
    manager_id: int | None = None
    carbon_per_sq_meter: float | None = None
    energy_source: str | None = None
    solar_percentage: float | None = Field(None, ge=0, le=100)


class WarehouseUpdate(CamelModel):
    code: str | None = None
    name: str | None = None
    location: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None
    postal_code: str | None = None
    capacity: int | None = Field(None, ge=0)
    is_active: bool | None = None
    manager_id: int | None = None
    carbon_per_sq_meter: float | None = None
    energy_source: str | None = None
    solar_percentage: float | None = Field(None, ge=0, le=100)


class WarehouseResponse(CamelModel):
    id: int
    code: str
    name: str
    location: str
    address: str
    city: str
    country: str
    postal_code: str | None = None
    capacity: int
    is_active: bool
    manager_id: int | None = None
    manager: UserBrief | None = None
    carbon_per_sq_meter: float | None = None
    energy_source: str | None = None
    solar_percentage: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class InventorySummaryResponse(CamelModel):
    warehouse_id: int
    total_items: int
    total_quantity: int
    total_reserved: int
    total_available: int
    total_value: float
    low_stock_items: int
    out_of_stock_items: int
