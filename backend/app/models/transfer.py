"""
transfers / transfer_items 테이블 — 창고 간 재고 이송 요청
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Text, Enum, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class TransferStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Transfer(Base):
    __tablename__ = "transfers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transfer_number = Column(String(30), unique=True, nullable=False)  # "TRF-202602-00001"
    source_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    dest_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    status = Column(Enum(TransferStatus), default=TransferStatus.PENDING, nullable=False)
    requested_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    completed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    request_date = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime, nullable=True)
    estimated_arrival = Column(DateTime, nullable=True)
    estimated_carbon_kg = Column(Float, nullable=True, default=0.0)
    notes = Column(Text, nullable=True)

    source_warehouse = relationship("Warehouse", foreign_keys=[source_warehouse_id], lazy="selectin")
    dest_warehouse = relationship("Warehouse", foreign_keys=[dest_warehouse_id], lazy="selectin")
    requested_by = relationship("User", foreign_keys=[requested_by_id], lazy="selectin")
    completed_by = relationship("User", foreign_keys=[completed_by_id], lazy="selectin")
    items = relationship(
        "TransferItem",
        back_populates="transfer",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class TransferItem(Base):
    __tablename__ = "transfer_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transfer_id = Column(Integer, ForeignKey("transfers.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    transfer = relationship("Transfer", back_populates="items")
    product = relationship("Product", lazy="selectin")
