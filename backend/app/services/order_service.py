"""
Order Service — 고객 주문과 재고 예약.

주문 상태 전이는 고정 인접 테이블로 검증하고,
출하 창고가 지정된 주문은 상태에 따라 재고 카운터를 움직인다.
  생성      → 예약   (reserved += q, available -= q)
  CANCELLED → 해제   (reserved -= q, available += q)
  SHIPPED   → 소비   (quantity -= q, reserved -= q)
  RETURNED  → 재입고 (quantity += q, available += q)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import func

from app.exceptions import NotFoundError, ServiceError
from app.models import Inventory, Order, OrderItem, Product
from app.models.order import OrderItemStatus, OrderPriority, OrderStatus
from app.services import stock
from app.services.audit import record_audit
from app.services.base import BaseService
from app.services.numbering import next_number
from app.services.search import (
    Page, SearchParams, paginate, parse_datetime, parse_enum, parse_int,
    LIKE_ESCAPE, like_pattern, text_search,
)
from app.services.stock import StockLevel

logger = logging.getLogger(__name__)

VALID_TRANSITIONS = {
    OrderStatus.NEW: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.PICKING, OrderStatus.CANCELLED},
    OrderStatus.PICKING: {OrderStatus.PACKED, OrderStatus.CANCELLED},
    OrderStatus.PACKED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.RETURNED: set(),
}

# 주문 상태 → 품목 상태
ITEM_STATUS_FOR_ORDER = {
    OrderStatus.PICKING: OrderItemStatus.PICKED,
    OrderStatus.PACKED: OrderItemStatus.PACKED,
    OrderStatus.SHIPPED: OrderItemStatus.SHIPPED,
}

# 품목 상태별 진행률 가중치
PROGRESS_WEIGHTS = {
    OrderItemStatus.PENDING: 0,
    OrderItemStatus.RESERVED: 25,
    OrderItemStatus.PICKED: 50,
    OrderItemStatus.PACKED: 75,
    OrderItemStatus.SHIPPED: 100,
}

TO_FULFILL_STATUSES = [OrderStatus.NEW, OrderStatus.PROCESSING, OrderStatus.PICKING]

# 예약분이 아직 재고에 잡혀 있는 품목 상태
RESERVED_ITEM_STATUSES = {
    OrderItemStatus.RESERVED,
    OrderItemStatus.PICKED,
    OrderItemStatus.PACKED,
}

FINAL_STATUSES = {OrderStatus.CANCELLED, OrderStatus.RETURNED}

# update()로 직접 수정 가능한 필드
EDITABLE_FIELDS = {
    "customer_name", "customer_email", "customer_phone", "shipping_address",
    "priority", "required_date", "tax", "shipping_cost",
    "estimated_carbon_kg", "packaging_type", "notes",
}

SORT_COLUMNS = {
    "orderDate": Order.order_date,
    "orderNumber": Order.order_number,
    "customerName": Order.customer_name,
    "status": Order.status,
    "priority": Order.priority,
    "totalAmount": Order.total_amount,
    "subtotal": Order.subtotal,
    "requiredDate": Order.required_date,
}


@dataclass
class OrderItemInput:
    product_id: int
    quantity: int
    unit_price: float | None = None


@dataclass
class ItemAvailability:
    item_id: int
    available_stock: int
    can_fulfill: bool


def fulfillment_progress(order: Order) -> int:
    """품목 상태 가중 평균 (0~100)"""
    if not order.items:
        return 0
    total = sum(PROGRESS_WEIGHTS[OrderItemStatus(item.status)] for item in order.items)
    return round(total / len(order.items))


def total_carbon(order: Order) -> float:
    return sum((item.product.carbon_footprint_kg or 0.0) * item.quantity for item in order.items)


class OrderService(BaseService):
    """주문 서비스"""

    def search(self, params: SearchParams) -> Page:
        query = self.db.query(Order)
        query = text_search(
            query, params.search,
            Order.order_number, Order.customer_name, Order.customer_email,
            Order.customer_phone, Order.shipping_address,
        )

        filters = params.filters
        status = filters.get("status")
        if isinstance(status, (list, tuple)):
            query = query.filter(
                Order.status.in_([parse_enum(OrderStatus, s, "status") for s in status])
            )
        elif status:
            query = query.filter(Order.status == parse_enum(OrderStatus, status, "status"))
        if filters.get("priority"):
            query = query.filter(
                Order.priority == parse_enum(OrderPriority, filters["priority"], "priority")
            )
        if filters.get("fulfillmentWarehouseId"):
            query = query.filter(
                Order.fulfillment_warehouse_id
                == parse_int(filters["fulfillmentWarehouseId"], "fulfillmentWarehouseId")
            )
        if filters.get("createdById"):
            query = query.filter(Order.created_by_id == parse_int(filters["createdById"], "createdById"))
        if filters.get("customerName"):
            query = query.filter(Order.customer_name.ilike(
                like_pattern(str(filters["customerName"])), escape=LIKE_ESCAPE,
            ))
        if filters.get("startDate"):
            query = query.filter(Order.order_date >= parse_datetime(filters["startDate"], "startDate"))
        if filters.get("endDate"):
            query = query.filter(Order.order_date <= parse_datetime(filters["endDate"], "endDate"))

        return paginate(query, params, SORT_COLUMNS, ("orderDate", "desc"))

    def search_by_status(self, status: str, params: SearchParams) -> Page:
        parse_enum(OrderStatus, status, "status")
        return self.search(params.with_filters(status=status))

    def search_to_fulfill(self, params: SearchParams) -> Page:
        """처리 대기 주문 (NEW, PROCESSING, PICKING): 기본 정렬은 오래된 순"""
        scoped = params.with_filters(status=[s.value for s in TO_FULFILL_STATUSES])
        if scoped.sort_field not in SORT_COLUMNS:
            scoped.sort_field, scoped.sort_order = "orderDate", "asc"
        return self.search(scoped)

    def get(self, order_id: int) -> Order:
        return self._get_or_404(Order, order_id, "Order not found")

    def availability(self, order: Order) -> list[ItemAvailability]:
        """
        품목별 가용 재고.
        출하 창고가 있으면 해당 창고, 없으면 전체 창고 합계.
        이미 예약된 품목은 충족 가능으로 본다.
        """
        result = []
        for item in order.items:
            query = self.db.query(func.coalesce(func.sum(Inventory.available), 0)).filter(
                Inventory.product_id == item.product_id
            )
            if order.fulfillment_warehouse_id:
                query = query.filter(Inventory.warehouse_id == order.fulfillment_warehouse_id)
            available = int(query.scalar() or 0)
            item_status = OrderItemStatus(item.status)
            can_fulfill = item_status != OrderItemStatus.PENDING or available >= item.quantity
            result.append(ItemAvailability(item.id, available, can_fulfill))
        return result

    # ── 생성 ──────────────────────────────────────────────

    def create(
        self,
        customer_name: str | None,
        created_by_id: int | None,
        items: list[OrderItemInput],
        fulfillment_warehouse_id: int | None = None,
        priority: OrderPriority | None = None,
        customer_email: str | None = None,
        customer_phone: str | None = None,
        shipping_address: str | None = None,
        required_date: datetime | None = None,
        tax: float | None = None,
        shipping_cost: float | None = None,
        estimated_carbon_kg: float | None = None,
        packaging_type: str | None = None,
        notes: str | None = None,
    ) -> Order:
        """주문 생성: 출하 창고가 지정되면 재고를 예약한다 (단일 DB 트랜잭션)"""
        if not customer_name:
            raise ServiceError("Missing required field: customerName")
        if not created_by_id:
            raise ServiceError("Missing required field: createdById")
        if not items:
            raise ServiceError("Order must contain at least one item")
        if any(item.quantity is None or item.quantity <= 0 for item in items):
            raise ServiceError("Item quantity must be greater than zero")
        product_ids = [item.product_id for item in items]
        if len(set(product_ids)) != len(product_ids):
            raise ServiceError("Each product may appear only once per order")

        with self.atomic():
            self._require_user(created_by_id)
            if fulfillment_warehouse_id:
                self._require_warehouse(fulfillment_warehouse_id)

            products = {
                p.id: p for p in self.db.query(Product)
                .filter(Product.id.in_(product_ids), Product.is_active.is_(True))
                .all()
            }
            missing = [str(pid) for pid in product_ids if pid not in products]
            if missing:
                raise NotFoundError(f"Products not found or inactive: {', '.join(missing)}")

            now = datetime.now(timezone.utc)
            scope = f"ORD-{now:%Y%m%d}"
            order = Order(
                order_number=next_number(self.db, Order.order_number, scope + "-", scope),
                customer_name=customer_name,
                customer_email=customer_email,
                customer_phone=customer_phone,
                shipping_address=shipping_address,
                fulfillment_warehouse_id=fulfillment_warehouse_id,
                status=OrderStatus.NEW,
                priority=priority or OrderPriority.NORMAL,
                created_by_id=created_by_id,
                order_date=now,
                required_date=required_date,
                estimated_carbon_kg=estimated_carbon_kg or 0.0,
                packaging_type=packaging_type or "STANDARD",
                notes=notes,
            )

            subtotal = 0.0
            for item in items:
                product = products[item.product_id]
                unit_price = item.unit_price if item.unit_price is not None else (product.selling_price or 0.0)
                line_total = item.quantity * unit_price
                subtotal += line_total

                item_status = OrderItemStatus.PENDING
                if fulfillment_warehouse_id:
                    inventory = self._find_inventory(fulfillment_warehouse_id, product.id)
                    if inventory is None or inventory.available < item.quantity:
                        raise ServiceError(f"Insufficient stock for product {product.name}")
                    self._write_level(
                        inventory, stock.reserve(StockLevel.of(inventory), item.quantity), product
                    )
                    item_status = OrderItemStatus.RESERVED

                order.items.append(OrderItem(
                    product_id=product.id,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    total_price=line_total,
                    status=item_status,
                ))

            order.subtotal = subtotal
            order.tax = tax or 0.0
            order.shipping_cost = shipping_cost or 0.0
            order.total_amount = subtotal + order.tax + order.shipping_cost
            self.db.add(order)
            self.db.flush()

            record_audit(
                self.db, "CREATE", "Order", order.id,
                user_id=created_by_id,
                new_values={
                    "order_number": order.order_number,
                    "fulfillment_warehouse_id": fulfillment_warehouse_id,
                    "items": [{"product_id": i.product_id, "quantity": i.quantity} for i in items],
                },
            )

        self.db.refresh(order)
        logger.info(
            f"주문 생성: {order.order_number} ({order.customer_name}) "
            f"품목 {len(items)}개, 합계 {order.total_amount:.2f}"
            + (f", 창고 {fulfillment_warehouse_id} 예약" if fulfillment_warehouse_id else "")
        )
        self.events.append(("orders.created", self._event_payload(order)))
        return order

    # ── 수정 / 상태 전이 ─────────────────────────────────

    def update(self, order_id: int, changes: dict) -> Order:
        """
        주문 수정. changes는 snake_case 필드 → 값.
        status가 포함되면 전이 테이블을 검증하고 재고 효과를 적용한다.
        """
        with self.atomic():
            order = self.get(order_id)
            current = OrderStatus(order.status)

            warehouse_id = changes.get("fulfillment_warehouse_id")
            if warehouse_id is not None and warehouse_id != order.fulfillment_warehouse_id:
                raise ServiceError("Fulfillment warehouse cannot be changed after order creation")

            new_status = changes.get("status")
            if new_status is not None:
                new_status = OrderStatus(new_status)
                if new_status not in VALID_TRANSITIONS[current]:
                    raise ServiceError(
                        f"Invalid status transition from {current.value} to {new_status.value}"
                    )
            elif current in FINAL_STATUSES:
                raise ServiceError(f"Cannot update a {current.value} order")

            if changes.get("fulfilled_by_id") is not None:
                self._require_user(changes["fulfilled_by_id"])
                order.fulfilled_by_id = changes["fulfilled_by_id"]

            for field, value in changes.items():
                if field in EDITABLE_FIELDS:
                    if field == "customer_name" and not value:
                        raise ServiceError("Missing required field: customerName")
                    setattr(order, field, value)
            if "tax" in changes or "shipping_cost" in changes:
                order.tax = order.tax or 0.0
                order.shipping_cost = order.shipping_cost or 0.0
                order.total_amount = order.subtotal + order.tax + order.shipping_cost

            if new_status is not None:
                self._apply_status(order, current, new_status)
                record_audit(
                    self.db, "STATUS_CHANGE", "Order", order.id,
                    user_id=order.fulfilled_by_id,
                    old_values={"status": current.value},
                    new_values={"status": new_status.value},
                )

        self.db.refresh(order)
        if new_status is not None:
            logger.info(f"주문 상태 변경: {order.order_number} {current.value} → {new_status.value}")
            self.events.append(("orders.status_changed", {
                **self._event_payload(order),
                "previous_status": current.value,
            }))
        return order

    def _apply_status(self, order: Order, current: OrderStatus, new: OrderStatus):
        """상태 전이에 따른 재고·품목·일자 반영"""
        now = datetime.now(timezone.utc)
        warehouse_id = order.fulfillment_warehouse_id

        for item in order.items:
            item_status = OrderItemStatus(item.status)
            product = item.product
            inventory = self._find_inventory(warehouse_id, item.product_id) if warehouse_id else None

            if new == OrderStatus.CANCELLED:
                if inventory is not None and item_status in RESERVED_ITEM_STATUSES:
                    level = StockLevel.of(inventory)
                    self._warn_short_reservation(order, item, level)
                    self._write_level(inventory, stock.release(level, item.quantity), product)
                    item.status = OrderItemStatus.PENDING
            elif new == OrderStatus.SHIPPED:
                if inventory is not None and item_status in RESERVED_ITEM_STATUSES:
                    level = StockLevel.of(inventory)
                    self._warn_short_reservation(order, item, level)
                    self._write_level(
                        inventory, stock.consume_reservation(level, item.quantity), product
                    )
                item.status = OrderItemStatus.SHIPPED
            elif new == OrderStatus.RETURNED:
                if warehouse_id:
                    if inventory is None:
                        inventory = self._new_inventory(warehouse_id, item.product_id)
                        before = stock.EMPTY
                    else:
                        before = StockLevel.of(inventory)
                    self._write_level(inventory, stock.restock(before, item.quantity), product)
            elif new in ITEM_STATUS_FOR_ORDER:
                item.status = ITEM_STATUS_FOR_ORDER[new]

        order.status = new
        if new == OrderStatus.SHIPPED:
            order.shipped_date = now
        elif new == OrderStatus.DELIVERED:
            order.delivered_date = now

    @staticmethod
    def _warn_short_reservation(order: Order, item: OrderItem, level: StockLevel):
        # 수동 SET 등으로 예약분이 줄어든 경우 남은 예약분까지만 움직인다
        if level.reserved < item.quantity:
            logger.warning(
                f"예약 부족: 주문 {order.order_number} 제품 {item.product_id} "
                f"주문 수량 {item.quantity}, 남은 예약 {level.reserved}"
            )

    @staticmethod
    def _event_payload(order: Order) -> dict:
        return {
            "order_id": order.id,
            "order_number": order.order_number,
            "status": OrderStatus(order.status).value,
            "priority": OrderPriority(order.priority).value,
            "fulfillment_warehouse_id": order.fulfillment_warehouse_id,
        }
