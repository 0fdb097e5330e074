"""
SQLAlchemy ORM 모델 패키지
- 모든 모델을 여기서 import하여 Base.metadata에 등록한다.
"""

from app.models.user import User
from app.models.warehouse import Warehouse
from app.models.category import Category
from app.models.product import Product
from app.models.inventory import Inventory
from app.models.transaction import Transaction, TransactionItem
from app.models.transfer import Transfer, TransferItem
from app.models.order import Order, OrderItem
from app.models.sustainability import CarbonTracking, RecyclingRecord, MaterialFlow
from app.models.audit_log import AuditLog

__all__ = [
    "User",
    "Warehouse",
    "Category",
    "Product",
    "Inventory",
    "Transaction",
    "TransactionItem",
    "Transfer",
    "TransferItem",
    "Order",
    "OrderItem",
    "CarbonTracking",
    "RecyclingRecord",
    "MaterialFlow",
    "AuditLog",
]
