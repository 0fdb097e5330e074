"""
Inventory Service — 창고 x 제품 재고 행 관리.
수동 수량 변경(SET/ADD/SUBTRACT)도 세 카운터와 재주문 상태를 함께 기록한다.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import or_

from app.exceptions import ServiceError
from app.models import Inventory, Product, Warehouse
from app.models.inventory import ReorderStatus
from app.services.audit import record_audit
from app.services.base import BaseService
from app.services.search import (
    LIKE_ESCAPE, Page, SearchParams, like_pattern, paginate, parse_bool, parse_enum,
    parse_int,
)
from app.services.stock import StockLevel

logger = logging.getLogger(__name__)

QUANTITY_ACTIONS = ("SET", "ADD", "SUBTRACT")

SORT_COLUMNS = {
    "lastUpdated": Inventory.last_updated,
    "quantity": Inventory.quantity,
    "available": Inventory.available,
    "reserved": Inventory.reserved,
    "reorderStatus": Inventory.reorder_status,
    "product.name": Product.name,
    "product.sku": Product.sku,
    "warehouse.name": Warehouse.name,
}


@dataclass
class BulkResult:
    id: int
    success: bool
    inventory: Inventory | None = None
    error: str | None = None


class InventoryService(BaseService):
    """재고 행 서비스"""

    def search(self, params: SearchParams) -> Page:
        query = (
            self.db.query(Inventory)
            .join(Product, Inventory.product_id == Product.id)
            .join(Warehouse, Inventory.warehouse_id == Warehouse.id)
        )
        if params.search:
            pattern = like_pattern(params.search.strip())
            query = query.filter(or_(
                Product.name.ilike(pattern, escape=LIKE_ESCAPE),
                Product.sku.ilike(pattern, escape=LIKE_ESCAPE),
                Warehouse.name.ilike(pattern, escape=LIKE_ESCAPE),
                Warehouse.code.ilike(pattern, escape=LIKE_ESCAPE),
            ))

        filters = params.filters
        if filters.get("warehouseId"):
            query = query.filter(Inventory.warehouse_id == parse_int(filters["warehouseId"], "warehouseId"))
        if filters.get("productId"):
            query = query.filter(Inventory.product_id == parse_int(filters["productId"], "productId"))
        if filters.get("categoryId"):
            query = query.filter(Product.category_id == parse_int(filters["categoryId"], "categoryId"))
        if parse_bool(filters.get("lowStockOnly", False)):
            query = query.filter(Inventory.quantity <= Product.min_stock_level)
        if parse_bool(filters.get("outOfStockOnly", False)):
            query = query.filter(Inventory.quantity == 0)
        if filters.get("reorderStatus"):
            query = query.filter(
                Inventory.reorder_status
                == parse_enum(ReorderStatus, filters["reorderStatus"], "reorderStatus")
            )

        return paginate(query, params, SORT_COLUMNS, ("lastUpdated", "desc"))

    def search_low_stock(self, params: SearchParams) -> Page:
        return self.search(params.with_filters(lowStockOnly=True))

    def search_by_warehouse(self, warehouse_id: int, params: SearchParams) -> Page:
        return self.search(params.with_filters(warehouseId=warehouse_id))

    def search_by_product(self, product_id: int, params: SearchParams) -> Page:
        return self.search(params.with_filters(productId=product_id))

    def get(self, inventory_id: int) -> Inventory:
        return self._get_or_404(Inventory, inventory_id, "Inventory record not found")

    def upsert(
        self,
        warehouse_id: int | None,
        product_id: int | None,
        quantity: int = 0,
        aisle: str | None = None,
        shelf: str | None = None,
        bin: str | None = None,
    ) -> Inventory:
        """(창고, 제품) 재고 행 생성 또는 수량·위치 갱신. 예약분은 유지한다."""
        if not warehouse_id or not product_id:
            raise ServiceError("Warehouse ID and Product ID are required")
        if quantity is None or quantity < 0:
            raise ServiceError("Quantity must be zero or greater")

        with self.atomic():
            self._require_warehouse(warehouse_id)
            product = self._get_or_404(Product, product_id, "Product not found")

            inventory = self._find_inventory(warehouse_id, product_id)
            created = inventory is None
            if created:
                inventory = self._new_inventory(warehouse_id, product_id)
                before = StockLevel(0, 0, 0)
            else:
                before = StockLevel.of(inventory)

            after = before._replace(
                quantity=quantity,
                available=max(0, quantity - before.reserved),
            )
            inventory.aisle = aisle
            inventory.shelf = shelf
            inventory.bin = bin
            self._write_level(inventory, after, product)
            self.db.flush()

            record_audit(
                self.db, "CREATE" if created else "UPSERT", "Inventory", inventory.id,
                old_values=None if created else {"quantity": before.quantity},
                new_values={"quantity": quantity, "warehouse_id": warehouse_id, "product_id": product_id},
            )

        self.db.refresh(inventory)
        logger.info(
            f"재고 {'생성' if created else '갱신'}: 창고 {warehouse_id} / {product.sku} "
            f"수량 {before.quantity} → {quantity}"
        )
        return inventory

    def update_quantity(self, inventory_id: int, quantity: int, action: str = "SET",
                        notes: str | None = None) -> Inventory:
        """
        수동 수량 변경.
        SET: 절대값, ADD: 가산, SUBTRACT: 차감 (0 미만은 0).
        available = max(0, quantity - reserved)
        """
        action = (action or "SET").upper()
        if action not in QUANTITY_ACTIONS:
            raise ServiceError("Invalid action. Use 'SET', 'ADD', or 'SUBTRACT'")
        if quantity is None or quantity < 0:
            raise ServiceError("Quantity must be zero or greater")

        with self.atomic():
            inventory = self.get(inventory_id)
            before = StockLevel.of(inventory)
            if action == "SET":
                new_quantity = quantity
            elif action == "ADD":
                new_quantity = before.quantity + quantity
            else:
                new_quantity = max(0, before.quantity - quantity)

            after = before._replace(
                quantity=new_quantity,
                available=max(0, new_quantity - before.reserved),
            )
            self._write_level(inventory, after, inventory.product)
            record_audit(
                self.db, f"QUANTITY_{action}", "Inventory", inventory.id,
                old_values={"quantity": before.quantity, "available": before.available},
                new_values={"quantity": after.quantity, "available": after.available, "notes": notes},
            )

        self.db.refresh(inventory)
        logger.info(
            f"재고 수량 변경({action}): 창고 {inventory.warehouse_id} / 제품 {inventory.product_id} "
            f"{before.quantity} → {after.quantity}"
        )
        return inventory

    def bulk_update(self, updates: list[dict]) -> list[BulkResult]:
        """항목별 독립 처리: 실패한 항목은 결과에 에러로 남고 나머지는 계속 진행"""
        results = []
        for update in updates:
            try:
                inventory = self.update_quantity(
                    update["id"], update["quantity"], update.get("action", "SET"), update.get("notes")
                )
                results.append(BulkResult(id=update["id"], success=True, inventory=inventory))
            except ServiceError as e:
                results.append(BulkResult(id=update["id"], success=False, error=e.message))
        return results

    def delete(self, inventory_id: int) -> None:
        with self.atomic():
            inventory = self.get(inventory_id)
            if inventory.quantity > 0:
                raise ServiceError("Cannot delete inventory with stock. Set quantity to zero first.")
            record_audit(
                self.db, "DELETE", "Inventory", inventory.id,
                old_values={
                    "warehouse_id": inventory.warehouse_id,
                    "product_id": inventory.product_id,
                    "reserved": inventory.reserved,
                },
            )
            self.db.delete(inventory)
        logger.info(f"재고 행 삭제: #{inventory_id}")
