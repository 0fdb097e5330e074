"""
Warehouse / User Service — 창고와 사용자 기본 CRUD
"""

import logging
from dataclasses import dataclass

from app.exceptions import ServiceError
from app.models import Inventory, Product, Transaction, Transfer, User, Warehouse
from app.services.base import BaseService
from app.services.search import Page, SearchParams, paginate, parse_bool, parse_int, text_search

logger = logging.getLogger(__name__)

WAREHOUSE_REQUIRED = ("code", "name", "location", "address", "city", "country", "capacity")

WAREHOUSE_FIELDS = WAREHOUSE_REQUIRED + (
    "postal_code", "is_active", "manager_id",
    "carbon_per_sq_meter", "energy_source", "solar_percentage",
)

SORT_COLUMNS = {
    "name": Warehouse.name,
    "code": Warehouse.code,
    "city": Warehouse.city,
    "country": Warehouse.country,
    "capacity": Warehouse.capacity,
    "createdAt": Warehouse.created_at,
}


@dataclass
class InventorySummary:
    warehouse_id: int
    total_items: int
    total_quantity: int
    total_reserved: int
    total_available: int
    total_value: float
    low_stock_items: int
    out_of_stock_items: int


class WarehouseService(BaseService):
    """창고 서비스"""

    def list_all(self) -> list[Warehouse]:
        return self.db.query(Warehouse).order_by(Warehouse.name).all()

    def search(self, params: SearchParams) -> Page:
        query = text_search(
            self.db.query(Warehouse), params.search,
            Warehouse.name, Warehouse.code, Warehouse.location, Warehouse.city, Warehouse.country,
        )
        filters = params.filters
        if "isActive" in filters and filters["isActive"] is not None:
            query = query.filter(Warehouse.is_active.is_(parse_bool(filters["isActive"])))
        if filters.get("country"):
            query = query.filter(Warehouse.country == filters["country"])
        if filters.get("city"):
            query = query.filter(Warehouse.city == filters["city"])
        if filters.get("managerId"):
            query = query.filter(Warehouse.manager_id == parse_int(filters["managerId"], "managerId"))
        return paginate(query, params, SORT_COLUMNS, ("name", "asc"))

    def get(self, warehouse_id: int) -> Warehouse:
        return self._require_warehouse(warehouse_id)

    def create(self, data: dict) -> Warehouse:
        for field in WAREHOUSE_REQUIRED:
            if data.get(field) in (None, ""):
                raise ServiceError(f"Missing required field: {field}")

        with self.atomic():
            if self.db.query(Warehouse).filter(Warehouse.code == data["code"]).first():
                raise ServiceError("Warehouse code already exists")
            if data.get("manager_id"):
                self._require_user(data["manager_id"], "Manager not found")
            warehouse = Warehouse(**{k: v for k, v in data.items() if k in WAREHOUSE_FIELDS})
            self.db.add(warehouse)

        self.db.refresh(warehouse)
        logger.info(f"창고 생성: {warehouse.code} ({warehouse.name})")
        return warehouse

    def update(self, warehouse_id: int, data: dict) -> Warehouse:
        with self.atomic():
            warehouse = self.get(warehouse_id)
            for field in WAREHOUSE_REQUIRED:
                if field in data and data[field] in (None, ""):
                    raise ServiceError(f"Missing required field: {field}")
            code = data.get("code")
            if code and code != warehouse.code:
                clash = self.db.query(Warehouse).filter(Warehouse.code == code).first()
                if clash:
                    raise ServiceError("Warehouse code already exists")
            if data.get("manager_id"):
                self._require_user(data["manager_id"], "Manager not found")
            for field, value in data.items():
                if field in WAREHOUSE_FIELDS:
                    setattr(warehouse, field, value)

        self.db.refresh(warehouse)
        logger.info(f"창고 수정: {warehouse.code}")
        return warehouse

    def delete(self, warehouse_id: int) -> None:
        with self.atomic():
            warehouse = self.get(warehouse_id)
            if self.db.query(Inventory).filter(Inventory.warehouse_id == warehouse_id).count():
                raise ServiceError(
                    "Cannot delete warehouse with inventory. Transfer or remove inventory first."
                )
            history = (
                self.db.query(Transaction).filter(Transaction.warehouse_id == warehouse_id).count()
                + self.db.query(Transfer).filter(
                    (Transfer.source_warehouse_id == warehouse_id)
                    | (Transfer.dest_warehouse_id == warehouse_id)
                ).count()
            )
            if history:
                raise ServiceError(
                    "Cannot delete warehouse with transaction or transfer history. "
                    "Consider marking it inactive instead."
                )
            code = warehouse.code
            self.db.delete(warehouse)
        logger.info(f"창고 삭제: {code}")

    def inventory_summary(self, warehouse_id: int) -> InventorySummary:
        self.get(warehouse_id)
        rows = (
            self.db.query(Inventory, Product)
            .join(Product, Inventory.product_id == Product.id)
            .filter(Inventory.warehouse_id == warehouse_id)
            .all()
        )
        return InventorySummary(
            warehouse_id=warehouse_id,
            total_items=len(rows),
            total_quantity=sum(inv.quantity for inv, _ in rows),
            total_reserved=sum(inv.reserved for inv, _ in rows),
            total_available=sum(inv.available for inv, _ in rows),
            total_value=sum(inv.quantity * (product.cost_price or 0.0) for inv, product in rows),
            low_stock_items=sum(1 for inv, product in rows if inv.quantity <= product.min_stock_level),
            out_of_stock_items=sum(1 for inv, _ in rows if inv.quantity == 0),
        )


class UserService(BaseService):
    """사용자 서비스: 다른 리소스가 참조할 사용자 등록/조회"""

    def list_all(self) -> list[User]:
        return self.db.query(User).order_by(User.last_name, User.first_name).all()

    def get(self, user_id: int) -> User:
        return self._require_user(user_id)

    def create(self, data: dict) -> User:
        for field in ("email", "first_name", "last_name"):
            if not data.get(field):
                raise ServiceError(f"Missing required field: {field}")
        with self.atomic():
            if self.db.query(User).filter(User.email == data["email"]).first():
                raise ServiceError(f"User with email {data['email']} already exists")
            user = User(**data)
            self.db.add(user)
        self.db.refresh(user)
        logger.info(f"사용자 등록: {user.email} ({user.role})")
        return user
