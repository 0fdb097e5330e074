"""
orders / order_items 테이블 — 고객 주문 및 상세 품목
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, Text, Enum, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class OrderStatus(str, enum.Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    PICKING = "PICKING"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


class OrderPriority(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class OrderItemStatus(str, enum.Enum):
    PENDING = "PENDING"
    RESERVED = "RESERVED"
    PICKED = "PICKED"
    PACKED = "PACKED"
    SHIPPED = "SHIPPED"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String(30), unique=True, nullable=False)  # "ORD-20260206-00001"
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    shipping_address = Column(Text, nullable=True)
    fulfillment_warehouse_id = Column(
        Integer, ForeignKey("warehouses.id", ondelete="SET NULL"), nullable=True
    )
    status = Column(Enum(OrderStatus), default=OrderStatus.NEW, nullable=False)
    priority = Column(Enum(OrderPriority), default=OrderPriority.NORMAL, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    fulfilled_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    order_date = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    required_date = Column(DateTime, nullable=True)
    shipped_date = Column(DateTime, nullable=True)
    delivered_date = Column(DateTime, nullable=True)
    subtotal = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False, default=0.0)
    shipping_cost = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False, default=0.0)
    estimated_carbon_kg = Column(Float, nullable=True, default=0.0)
    packaging_type = Column(String(30), nullable=True, default="STANDARD")
    notes = Column(Text, nullable=True)

    fulfillment_warehouse = relationship("Warehouse", lazy="selectin")
    created_by = relationship("User", foreign_keys=[created_by_id], lazy="selectin")
    fulfilled_by = relationship("User", foreign_keys=[fulfilled_by_id], lazy="selectin")
    items = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)
    status = Column(Enum(OrderItemStatus), default=OrderItemStatus.PENDING, nullable=False)

    order = relationship("Order", back_populates="items")
    product = relationship("Product", lazy="selectin")
