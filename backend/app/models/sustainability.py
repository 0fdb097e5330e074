"""
지속가능성 테이블
- carbon_tracking: 탄소 배출 기록 (Scope 1~3)
- recycling_records: 재활용 처리 기록
- material_flow: 자재 유입/유출 흐름
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Text, Enum, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class CarbonScope(str, enum.Enum):
    SCOPE_1 = "SCOPE_1"  # 직접 배출
    SCOPE_2 = "SCOPE_2"  # 간접 에너지
    SCOPE_3 = "SCOPE_3"  # 공급망


class CarbonCategory(str, enum.Enum):
    TRANSPORT = "TRANSPORT"
    ENERGY = "ENERGY"
    WASTE = "WASTE"
    MATERIALS = "MATERIALS"


class RecyclingType(str, enum.Enum):
    PLASTIC = "PLASTIC"
    PAPER = "PAPER"
    METAL = "METAL"
    ELECTRONIC = "ELECTRONIC"
    ORGANIC = "ORGANIC"


class RecyclingMethod(str, enum.Enum):
    MECHANICAL = "MECHANICAL"
    CHEMICAL = "CHEMICAL"
    COMPOSTING = "COMPOSTING"


class FlowCategory(str, enum.Enum):
    INPUT = "INPUT"
    OUTPUT = "OUTPUT"
    WASTE = "WASTE"
    RECYCLED = "RECYCLED"


class CarbonTracking(Base):
    __tablename__ = "carbon_tracking"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scope = Column(Enum(CarbonScope), nullable=False)
    category = Column(Enum(CarbonCategory), nullable=False)
    source_id = Column(Integer, nullable=True)  # source_type이 WAREHOUSE면 창고 id
    source_type = Column(String(30), nullable=True)  # "WAREHOUSE" 등
    carbon_kg = Column(Float, nullable=False, default=0.0)
    measurement_period = Column(String(20), nullable=False)  # 예: "2026-02"
    calculation_method = Column(String(30), nullable=False, default="ESTIMATED")
    recorded_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    notes = Column(Text, nullable=True)



class RecyclingRecord(Base):
    __tablename__ = "recycling_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    processing_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    weight_kg = Column(Float, nullable=True)
    recycling_type = Column(Enum(RecyclingType), nullable=False)
    method = Column(Enum(RecyclingMethod), nullable=False)
    carbon_saved_kg = Column(Float, nullable=True, default=0.0)
    landfill_diverted_kg = Column(Float, nullable=True, default=0.0)
    processed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    processed_date = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    processing_warehouse = relationship("Warehouse", lazy="selectin")
    product = relationship("Product", lazy="selectin")
    processed_by = relationship("User", lazy="selectin")


class MaterialFlow(Base):
    __tablename__ = "material_flow"

    id = Column(Integer, primary_key=True, autoincrement=True)
    material_type = Column(String(50), nullable=False)
    category = Column(Enum(FlowCategory), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit = Column(String(20), nullable=False)  # kg, tons, units
    source_id = Column(Integer, nullable=True)  # source_type이 WAREHOUSE면 창고 id
    source_type = Column(String(30), nullable=True)
    dest_id = Column(Integer, nullable=True)
    dest_type = Column(String(30), nullable=True)
    flow_date = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    recorded_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
