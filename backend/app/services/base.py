"""
서비스 공통 베이스
- 요청 단위 DB 세션 보관
- 커밋 이후 발행할 도메인 이벤트 수집
"""

import logging
from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.exceptions import NotFoundError
from app.models import Inventory, Product, User, Warehouse
from app.services import stock
from app.services.stock import StockLevel

logger = logging.getLogger(__name__)


class BaseService:
    """리소스별 서비스의 공통 기능"""

    def __init__(self, db: Session):
        self.db = db
        # (topic, data): 라우터가 커밋 후 BackgroundTasks로 발행
        self.events: list[tuple[str, dict]] = []

    @contextmanager
    def atomic(self):
        """
        하나의 DB 트랜잭션 범위.
        블록 안에서 예외가 나면 전체 롤백, 정상 종료 시 커밋.
        """
        pending = len(self.events)
        try:
            yield
            self.db.commit()
        except Exception:
            self.db.rollback()
            del self.events[pending:]
            raise

    def _get_or_404(self, model, obj_id: int, message: str):
        obj = self.db.get(model, obj_id)
        if obj is None:
            raise NotFoundError(message)
        return obj

    def _require_warehouse(self, warehouse_id: int, message: str = "Warehouse not found") -> Warehouse:
        return self._get_or_404(Warehouse, warehouse_id, message)

    def _require_user(self, user_id: int, message: str = "User not found") -> User:
        return self._get_or_404(User, user_id, message)

    def _find_inventory(self, warehouse_id: int, product_id: int) -> Inventory | None:
        return (
            self.db.query(Inventory)
            .filter(
                Inventory.warehouse_id == warehouse_id,
                Inventory.product_id == product_id,
            )
            .first()
        )

    def _new_inventory(self, warehouse_id: int, product_id: int) -> Inventory:
        inventory = Inventory(
            warehouse_id=warehouse_id,
            product_id=product_id,
            quantity=0,
            reserved=0,
            available=0,
        )
        self.db.add(inventory)
        return inventory

    def _write_level(self, inventory: Inventory, level: StockLevel, product: Product):
        """세 카운터와 재주문 상태를 함께 기록하고 inventory.updated 이벤트를 예약한다."""
        inventory.quantity = level.quantity
        inventory.reserved = level.reserved
        inventory.available = level.available
        inventory.reorder_status = stock.reorder_status(
            level.quantity, product.min_stock_level, product.reorder_point
        )
        self.events.append(("inventory.updated", {
            "warehouse_id": inventory.warehouse_id,
            "product_id": product.id,
            "sku": product.sku,
            "quantity": level.quantity,
            "reserved": level.reserved,
            "available": level.available,
            "reorder_status": inventory.reorder_status.value,
        }))
