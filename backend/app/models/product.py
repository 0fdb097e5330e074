"""
products 테이블 — 제품(SKU) 정보, 가격 및 재주문 기준
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sku = Column(String(50), unique=True, nullable=False)  # 예: "ECO-PKG-0001"
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    unit = Column(String(20), nullable=False)  # "pcs", "kg", "box" 등
    cost_price = Column(Float, nullable=False)
    selling_price = Column(Float, nullable=True)
    min_stock_level = Column(Integer, nullable=False, default=10)
    reorder_point = Column(Integer, nullable=False, default=20)
    is_active = Column(Boolean, nullable=False, default=True)

    # 지속가능성 속성
    weight = Column(Float, nullable=True)  # kg
    volume = Column(Float, nullable=True)
    is_eco_friendly = Column(Boolean, nullable=False, default=True)
    material_type = Column(String(50), nullable=True)
    carbon_footprint_kg = Column(Float, nullable=True, default=0.0)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    category = relationship("Category", back_populates="products", lazy="selectin")
