"""
Product Service — 제품(SKU) 카탈로그.
upsert: id가 있으면 수정(기존 값 위에 병합), 없으면 생성.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import func

from app.exceptions import NotFoundError, ServiceError
from app.models import (
    Category, Inventory, OrderItem, Product, TransactionItem, TransferItem, Warehouse,
)
from app.services.base import BaseService
from app.services.search import Page, SearchParams, paginate, parse_bool, parse_int, text_search

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = (
    "sku", "name", "description", "category_id", "unit", "cost_price", "selling_price",
    "min_stock_level", "reorder_point", "is_active", "weight", "volume",
    "is_eco_friendly", "material_type", "carbon_footprint_kg",
)

PRODUCT_DEFAULTS = {
    "min_stock_level": 10,
    "reorder_point": 20,
    "is_active": True,
    "is_eco_friendly": True,
}

SORT_COLUMNS = {
    "name": Product.name,
    "sku": Product.sku,
    "costPrice": Product.cost_price,
    "sellingPrice": Product.selling_price,
    "createdAt": Product.created_at,
    "updatedAt": Product.updated_at,
    "reorderPoint": Product.reorder_point,
}


@dataclass
class StockTotals:
    total_quantity: int = 0
    total_reserved: int = 0
    total_available: int = 0


@dataclass
class ProductStock:
    """제품의 창고별 재고 + 합계"""
    inventory: list = field(default_factory=list)
    totals: StockTotals = field(default_factory=StockTotals)


@dataclass
class BulkResult:
    id: int
    success: bool
    product: Product | None = None
    error: str | None = None


class ProductService(BaseService):
    """제품 서비스"""

    def search(self, params: SearchParams) -> Page:
        query = text_search(
            self.db.query(Product), params.search,
            Product.name, Product.sku, Product.description, Product.material_type,
        )
        query = self._apply_filters(query, params.filters)
        return paginate(query, params, SORT_COLUMNS, ("createdAt", "desc"))

    def _apply_filters(self, query, filters: dict):
        if filters.get("categoryId"):
            query = query.filter(Product.category_id == parse_int(filters["categoryId"], "categoryId"))
        if filters.get("isEcoFriendly") is not None:
            query = query.filter(Product.is_eco_friendly.is_(parse_bool(filters["isEcoFriendly"])))
        if filters.get("isActive") is not None:
            query = query.filter(Product.is_active.is_(parse_bool(filters["isActive"])))
        if filters.get("materialType"):
            query = query.filter(Product.material_type == filters["materialType"])
        return query

    def search_low_stock(self, params: SearchParams) -> Page:
        """
        활성 제품 중 전체 창고 가용 재고 합계가 재주문점 이하인 제품.
        filters.threshold가 있으면 재주문점 대신 사용한다.
        """
        totals = (
            self.db.query(
                Inventory.product_id.label("product_id"),
                func.sum(Inventory.available).label("total_available"),
            )
            .group_by(Inventory.product_id)
            .subquery()
        )
        total_available = func.coalesce(totals.c.total_available, 0)

        query = (
            self.db.query(Product)
            .outerjoin(totals, totals.c.product_id == Product.id)
            .filter(Product.is_active.is_(True))
        )
        query = text_search(query, params.search, Product.name, Product.sku)
        filters = {k: v for k, v in params.filters.items() if k != "isActive"}
        query = self._apply_filters(query, filters)

        threshold = filters.get("threshold")
        if threshold is not None:
            query = query.filter(total_available <= int(threshold))
        else:
            query = query.filter(total_available <= Product.reorder_point)

        sort_columns = {**SORT_COLUMNS, "totalAvailable": total_available}
        return paginate(query, params, sort_columns, ("totalAvailable", "asc"))

    def search_by_category(self, category_id: int, params: SearchParams) -> Page:
        return self.search(params.with_filters(categoryId=category_id))

    def get(self, product_id: int) -> Product:
        return self._get_or_404(Product, product_id, "Product not found")

    def inventory(self, product_id: int) -> ProductStock:
        """창고별 재고 행과 합계"""
        self.get(product_id)
        rows = (
            self.db.query(Inventory)
            .join(Warehouse, Inventory.warehouse_id == Warehouse.id)
            .filter(Inventory.product_id == product_id)
            .order_by(Warehouse.name)
            .all()
        )
        totals = StockTotals(
            total_quantity=sum(r.quantity for r in rows),
            total_reserved=sum(r.reserved for r in rows),
            total_available=sum(r.available for r in rows),
        )
        return ProductStock(inventory=rows, totals=totals)

    def totals(self, product_id: int) -> StockTotals:
        quantity, reserved, available = (
            self.db.query(
                func.coalesce(func.sum(Inventory.quantity), 0),
                func.coalesce(func.sum(Inventory.reserved), 0),
                func.coalesce(func.sum(Inventory.available), 0),
            )
            .filter(Inventory.product_id == product_id)
            .one()
        )
        return StockTotals(int(quantity), int(reserved), int(available))

    # ── 생성 / 수정 ──────────────────────────────────────

    def upsert(self, data: dict, product_id: int | None = None) -> Product:
        with self.atomic():
            product = self._upsert(data, product_id)
        self.db.refresh(product)
        logger.info(f"제품 {'수정' if product_id else '생성'}: {product.sku} ({product.name})")
        return product

    def _upsert(self, data: dict, product_id: int | None) -> Product:
        existing = self.get(product_id) if product_id else None
        values = dict(PRODUCT_DEFAULTS)
        if existing is not None:
            values.update({f: getattr(existing, f) for f in PRODUCT_FIELDS})
        values.update({k: v for k, v in data.items() if k in PRODUCT_FIELDS})

        if (
            not values.get("sku") or not values.get("name") or not values.get("category_id")
            or not values.get("unit") or values.get("cost_price") is None
        ):
            raise ServiceError("SKU, name, category, unit, and cost price are required")
        for name in PRODUCT_DEFAULTS:
            if values.get(name) is None:
                values[name] = PRODUCT_DEFAULTS[name]
        if values["min_stock_level"] < 0 or values["reorder_point"] < 0:
            raise ServiceError("Stock levels must be zero or greater")

        if self.db.get(Category, values["category_id"]) is None:
            raise NotFoundError("Category not found")

        clash = self.db.query(Product).filter(Product.sku == values["sku"])
        if existing is not None:
            clash = clash.filter(Product.id != existing.id)
        if clash.first():
            raise ServiceError(f"Product with SKU {values['sku']} already exists")

        if existing is None:
            product = Product(**values)
            self.db.add(product)
        else:
            product = existing
            for name, value in values.items():
                setattr(product, name, value)
        self.db.flush()
        return product

    def bulk_update(self, updates: list[tuple[int, dict]]) -> list[BulkResult]:
        """항목별 독립 커밋: 실패한 항목만 롤백되고 나머지는 계속 진행"""
        results = []
        for product_id, data in updates:
            try:
                with self.atomic():
                    product = self._upsert(data, product_id)
                self.db.refresh(product)
                results.append(BulkResult(id=product_id, success=True, product=product))
            except ServiceError as e:
                results.append(BulkResult(id=product_id, success=False, error=e.message))
        logger.info(
            f"제품 일괄 수정: 성공 {sum(r.success for r in results)} / 전체 {len(results)}"
        )
        return results

    def delete(self, product_id: int) -> None:
        with self.atomic():
            product = self.get(product_id)
            if self.db.query(Inventory).filter(Inventory.product_id == product_id).count():
                raise ServiceError(
                    "Cannot delete product with existing inventory. "
                    "Please transfer or adjust inventory first."
                )
            if self.db.query(OrderItem).filter(OrderItem.product_id == product_id).count():
                raise ServiceError(
                    "Cannot delete product with existing order history. "
                    "Consider marking as inactive instead."
                )
            history = (
                self.db.query(TransactionItem).filter(TransactionItem.product_id == product_id).count()
                + self.db.query(TransferItem).filter(TransferItem.product_id == product_id).count()
            )
            if history:
                raise ServiceError(
                    "Cannot delete product with existing transaction or transfer history. "
                    "Consider marking as inactive instead."
                )
            sku = product.sku
            self.db.delete(product)
        logger.info(f"제품 삭제: {sku}")
