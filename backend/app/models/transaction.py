"""
transactions / transaction_items 테이블 — 재고 변동 이벤트 로그
- DB 트랜잭션과는 무관한 도메인 용어 (입고, 출고, 조정, 반품, 폐기, 재활용)
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Text, Enum, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class TransactionType(str, enum.Enum):
    STOCK_IN = "STOCK_IN"
    STOCK_OUT = "STOCK_OUT"
    ADJUSTMENT = "ADJUSTMENT"
    RETURN = "RETURN"
    WASTE = "WASTE"
    RECYCLING = "RECYCLING"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_number = Column(String(30), unique=True, nullable=False)  # "SI-20260206-00001"
    type = Column(Enum(TransactionType), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    performed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reference_id = Column(String(50), nullable=True)  # 주문번호, 이송번호 등 외부 참조
    reference_type = Column(String(30), nullable=True)
    total_items = Column(Integer, nullable=False, default=0)
    total_value = Column(Float, nullable=True)
    carbon_impact_kg = Column(Float, nullable=True, default=0.0)
    notes = Column(Text, nullable=True)
    transaction_date = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    warehouse = relationship("Warehouse", lazy="selectin")
    performed_by = relationship("User", lazy="selectin")
    items = relationship(
        "TransactionItem",
        back_populates="transaction",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class TransactionItem(Base):
    __tablename__ = "transaction_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=True)
    total_price = Column(Float, nullable=True)
    previous_qty = Column(Integer, nullable=True)  # 적용 직전 재고 (ADJUSTMENT 역적용에 사용)
    new_qty = Column(Integer, nullable=True)

    transaction = relationship("Transaction", back_populates="items")
    product = relationship("Product", lazy="selectin")
