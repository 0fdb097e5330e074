"""
서비스 계층 패키지
- 리소스별 서비스 클래스 (요청 단위 DB 세션)
- stock: 재고 카운터 전이 규칙 (순수 함수)
- search: 검색/페이지네이션 공통 헬퍼
"""

from app.services.category_service import CategoryService
from app.services.inventory_service import InventoryService
from app.services.order_service import OrderService
from app.services.product_service import ProductService
from app.services.sustainability_service import SustainabilityService
from app.services.transaction_service import TransactionService
from app.services.transfer_service import TransferService
from app.services.warehouse_service import UserService, WarehouseService

__all__ = [
    "CategoryService",
    "InventoryService",
    "OrderService",
    "ProductService",
    "SustainabilityService",
    "TransactionService",
    "TransferService",
    "UserService",
    "WarehouseService",
]
