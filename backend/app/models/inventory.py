"""
inventory 테이블 — 창고별 SKU 재고 현황
- quantity: 보유 수량, reserved: 주문 예약 수량, available: quantity - reserved
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Enum, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base


class ReorderStatus(str, enum.Enum):
    OK = "OK"
    BELOW_REORDER = "BELOW_REORDER"
    BELOW_MIN = "BELOW_MIN"


class Inventory(Base):
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, autoincrement=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    reserved = Column(Integer, nullable=False, default=0)
    available = Column(Integer, nullable=False, default=0)
    aisle = Column(String(20), nullable=True)
    shelf = Column(String(20), nullable=True)
    bin = Column(String(20), nullable=True)
    reorder_status = Column(Enum(ReorderStatus), nullable=False, default=ReorderStatus.OK)
    last_updated = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    warehouse = relationship("Warehouse", lazy="selectin")
    product = relationship("Product", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("warehouse_id", "product_id", name="uq_warehouse_product"),
    )
