"""
주문 관련 Pydantic 스키마
"""

from datetime import datetime

from pydantic import Field

from app.models.order import OrderItemStatus, OrderPriority, OrderStatus
from app.schemas.common import CamelModel, ProductBrief, UserBrief, WarehouseBrief
from app.services.order_service import fulfillment_progress, total_carbon


class OrderItemInput(CamelModel):
    product_id: int
    quantity: int = Field(..., gt=0)
    unit_price: float | None = Field(None, ge=0)


class OrderCreate(CamelModel):
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    shipping_address: str | None = None
    fulfillment_warehouse_id: int | None = None
    priority: OrderPriority | None = None
    created_by_id: int | None = None
    required_date: datetime | None = None
    tax: float | None = Field(None, ge=0)
    shipping_cost: float | None = Field(None, ge=0)
    estimated_carbon_kg: float | None = None
    packaging_type: str | None = None
    notes: str | None = None
    items: list[OrderItemInput] = []


class OrderUpdate(CamelModel):
    status: OrderStatus | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    shipping_address: str | None = None
    fulfillment_warehouse_id: int | None = None
    fulfilled_by_id: int | None = None
    priority: OrderPriority | None = None
    required_date: datetime | None = None
    tax: float | None = Field(None, ge=0)
    shipping_cost: float | None = Field(None, ge=0)
    estimated_carbon_kg: float | None = None
    packaging_type: str | None = None
    notes: str | None = None


class OrderItemResponse(CamelModel):
    id: int
    product_id: int
    product: ProductBrief | None = None
    quantity: int
    unit_price: float
    total_price: float
    status: OrderItemStatus


class OrderResponse(CamelModel):
    id: int
    order_number: str
    customer_name: str
    customer_email: str | None = None
    customer_phone: str | None = None
    shipping_address: str | None = None
    fulfillment_warehouse_id: int | None = None
    fulfillment_warehouse: WarehouseBrief | None = None
    status: OrderStatus
    priority: OrderPriority
    created_by_id: int
    created_by: UserBrief | None = None
    fulfilled_by_id: int | None = None
    fulfilled_by: UserBrief | None = None
    order_date: datetime | None = None
    required_date: datetime | None = None
    shipped_date: datetime | None = None
    delivered_date: datetime | None = None
    subtotal: float
    tax: float
    shipping_cost: float
    total_amount: float
    estimated_carbon_kg: float | None = None
    packaging_type: str | None = None
    notes: str | None = None
    items: list[OrderItemResponse] = []
    fulfillment_progress: int = 0
    total_carbon: float = 0.0

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        response = cls.model_validate(order)
        response.fulfillment_progress = fulfillment_progress(order)
        response.total_carbon = total_carbon(order)
        return response


class OrderItemAvailability(OrderItemResponse):
    available_stock: int = 0
    can_fulfill: bool = False


class OrderDetailResponse(OrderResponse):
    items: list[OrderItemAvailability] = []
    can_fulfill_all: bool = False

    @classmethod
    def from_order_with_availability(cls, order, availability) -> "OrderDetailResponse":
        response = cls.from_order(order)
        by_item = {a.item_id: a for a in availability}
        for item in response.items:
            info = by_item.get(item.id)
            if info is not None:
                item.available_stock = info.available_stock
                item.can_fulfill = info.can_fulfill
        response.can_fulfill_all = all(item.can_fulfill for item in response.items)
        return response
