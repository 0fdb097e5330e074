"""
Transaction Service — 재고 트랜잭션 생성/역적용.

생성: 창고·사용자·제품 검증 → 출고 유형 재고 확인 → 트랜잭션/품목 저장
      → 품목별 재고 규칙 적용 (입고 유형만 재고 행 생성)
삭제: 기록된 효과를 정확히 역적용한 뒤 품목과 트랜잭션 삭제.
두 흐름 모두 하나의 DB 트랜잭션으로 실행되며 실패 시 전체 롤백된다.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from app.exceptions import NotFoundError, ServiceError
from app.models import Product, Transaction, TransactionItem
from app.models.transaction import TransactionType
from app.services import stock
from app.services.audit import record_audit
from app.services.base import BaseService
from app.services.numbering import next_number
from app.services.search import (
    Page, SearchParams, paginate, parse_datetime, parse_enum, parse_int,
    text_search,
)
from app.services.stock import StockLevel

logger = logging.getLogger(__name__)

# 트랜잭션 번호 접두어
TYPE_PREFIXES = {
    TransactionType.STOCK_IN: "SI",
    TransactionType.STOCK_OUT: "SO",
    TransactionType.ADJUSTMENT: "ADJ",
    TransactionType.RETURN: "RET",
    TransactionType.WASTE: "WST",
    TransactionType.RECYCLING: "RCY",
}

SORT_COLUMNS = {
    "transactionDate": Transaction.transaction_date,
    "transactionNumber": Transaction.transaction_number,
    "type": Transaction.type,
    "totalItems": Transaction.total_items,
    "totalValue": Transaction.total_value,
}


@dataclass
class ItemInput:
    product_id: int
    quantity: int
    unit_price: float | None = None


class TransactionService(BaseService):
    """재고 트랜잭션 서비스"""

    # ── 조회 ──────────────────────────────────────────────

    def search(self, params: SearchParams) -> Page:
        query = self.db.query(Transaction)
        query = text_search(query, params.search, Transaction.transaction_number, Transaction.notes)

        filters = params.filters
        if filters.get("type"):
            query = query.filter(
                Transaction.type == parse_enum(TransactionType, filters["type"], "type")
            )
        if filters.get("warehouseId"):
            query = query.filter(Transaction.warehouse_id == parse_int(filters["warehouseId"], "warehouseId"))
        if filters.get("performedById"):
            query = query.filter(Transaction.performed_by_id == parse_int(filters["performedById"], "performedById"))
        if filters.get("referenceType"):
            query = query.filter(Transaction.reference_type == filters["referenceType"])
        if filters.get("startDate"):
            query = query.filter(
                Transaction.transaction_date >= parse_datetime(filters["startDate"], "startDate")
            )
        if filters.get("endDate"):
            query = query.filter(
                Transaction.transaction_date <= parse_datetime(filters["endDate"], "endDate")
            )

        return paginate(query, params, SORT_COLUMNS, ("transactionDate", "desc"))

    def search_by_warehouse(self, warehouse_id: int, params: SearchParams) -> Page:
        return self.search(params.with_filters(warehouseId=warehouse_id))

    def get(self, transaction_id: int) -> Transaction:
        return self._get_or_404(Transaction, transaction_id, "Transaction not found")

    # ── 생성 ──────────────────────────────────────────────

    def create(
        self,
        tx_type: TransactionType,
        warehouse_id: int,
        performed_by_id: int,
        items: list[ItemInput],
        reference_id: str | None = None,
        reference_type: str | None = None,
        notes: str | None = None,
        carbon_impact_kg: float | None = None,
    ) -> Transaction:
        """트랜잭션 생성 및 재고 반영 (단일 DB 트랜잭션)"""
        if not items:
            raise ServiceError("Transaction must contain at least one item")
        for item in items:
            if item.quantity is None or item.quantity < 0:
                raise ServiceError("Item quantity must be zero or greater")
            if item.quantity == 0 and tx_type != TransactionType.ADJUSTMENT:
                raise ServiceError("Item quantity must be greater than zero")
        product_ids = [item.product_id for item in items]
        if len(set(product_ids)) != len(product_ids):
            raise ServiceError("Each product may appear only once per transaction")

        with self.atomic():
            self._require_warehouse(warehouse_id)
            self._require_user(performed_by_id)
            products = self._load_products(product_ids)

            # 출고 유형: 모든 품목의 가용 재고를 먼저 확인
            if tx_type in stock.OUTBOUND_TYPES:
                for item in items:
                    inventory = self._find_inventory(warehouse_id, item.product_id)
                    if inventory is None or inventory.available < item.quantity:
                        raise ServiceError(
                            f"Insufficient stock for product {products[item.product_id].name}"
                        )
            elif tx_type == TransactionType.ADJUSTMENT:
                for item in items:
                    if self._find_inventory(warehouse_id, item.product_id) is None:
                        raise ServiceError(
                            f"No inventory record for product {products[item.product_id].name} "
                            f"in this warehouse"
                        )

            now = datetime.now(timezone.utc)
            prefix = TYPE_PREFIXES[tx_type]
            scope = f"{prefix}-{now:%Y%m%d}"
            transaction = Transaction(
                transaction_number=next_number(self.db, Transaction.transaction_number, scope + "-", scope),
                type=tx_type,
                warehouse_id=warehouse_id,
                performed_by_id=performed_by_id,
                reference_id=reference_id,
                reference_type=reference_type,
                carbon_impact_kg=carbon_impact_kg or 0.0,
                notes=notes,
                transaction_date=now,
            )

            total_items = 0
            total_value = 0.0
            for item in items:
                product = products[item.product_id]
                unit_price = item.unit_price if item.unit_price is not None else (product.cost_price or 0.0)
                line_total = item.quantity * unit_price
                total_items += item.quantity
                total_value += line_total

                inventory = self._find_inventory(warehouse_id, product.id)
                if inventory is None:
                    # 출고·조정 유형은 위에서 걸러졌으므로 입고 유형만 도달한다
                    inventory = self._new_inventory(warehouse_id, product.id)
                    before = stock.EMPTY
                else:
                    before = StockLevel.of(inventory)

                after = stock.apply_transaction(before, tx_type, item.quantity)
                self._write_level(inventory, after, product)

                transaction.items.append(TransactionItem(
                    product_id=product.id,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    total_price=line_total,
                    previous_qty=before.quantity,
                    new_qty=after.quantity,
                ))

            transaction.total_items = total_items
            transaction.total_value = total_value
            self.db.add(transaction)
            self.db.flush()

            record_audit(
                self.db, "CREATE", "Transaction", transaction.id,
                user_id=performed_by_id,
                new_values={
                    "transaction_number": transaction.transaction_number,
                    "type": tx_type.value,
                    "warehouse_id": warehouse_id,
                    "items": [
                        {"product_id": i.product_id, "quantity": i.quantity,
                         "previous_qty": i.previous_qty, "new_qty": i.new_qty}
                        for i in transaction.items
                    ],
                },
            )

        self.db.refresh(transaction)
        logger.info(
            f"트랜잭션 생성: {transaction.transaction_number} ({tx_type.value}) "
            f"창고 {warehouse_id}, 품목 {len(items)}개, 수량 {total_items}"
        )
        self.events.append(("transactions.created", {
            "transaction_id": transaction.id,
            "transaction_number": transaction.transaction_number,
            "type": tx_type.value,
            "warehouse_id": warehouse_id,
            "total_items": total_items,
        }))
        return transaction

    def _load_products(self, product_ids: list[int]) -> dict[int, Product]:
        products = self.db.query(Product).filter(Product.id.in_(product_ids)).all()
        found = {p.id: p for p in products}
        missing = [str(pid) for pid in product_ids if pid not in found]
        if missing:
            raise NotFoundError(f"Products not found: {', '.join(missing)}")
        return found

    # ── 수정 ──────────────────────────────────────────────

    def update_notes(self, transaction_id: int, notes: str | None) -> Transaction:
        """트랜잭션은 불변 로그이므로 메모만 수정 가능"""
        with self.atomic():
            transaction = self.get(transaction_id)
            transaction.notes = notes
        self.db.refresh(transaction)
        return transaction

    # ── 삭제 (역적용) ─────────────────────────────────────

    def delete(self, transaction_id: int) -> None:
        """트랜잭션 효과를 역적용한 뒤 삭제 (단일 DB 트랜잭션)"""
        with self.atomic():
            transaction = self.get(transaction_id)
            tx_type = TransactionType(transaction.type)

            for item in transaction.items:
                product = item.product
                inventory = self._find_inventory(transaction.warehouse_id, item.product_id)
                if inventory is None:
                    inventory = self._new_inventory(transaction.warehouse_id, item.product_id)
                    before = stock.EMPTY
                else:
                    before = StockLevel.of(inventory)

                try:
                    after = stock.reverse_transaction(
                        before, tx_type, item.quantity, item.previous_qty
                    )
                except ServiceError:
                    raise ServiceError(
                        f"Cannot reverse transaction {transaction.transaction_number}: "
                        f"insufficient stock for product {product.name}"
                    )
                self._write_level(inventory, after, product)

            record_audit(
                self.db, "REVERSE", "Transaction", transaction.id,
                user_id=transaction.performed_by_id,
                old_values={
                    "transaction_number": transaction.transaction_number,
                    "type": tx_type.value,
                    "warehouse_id": transaction.warehouse_id,
                    "items": [
                        {"product_id": i.product_id, "quantity": i.quantity,
                         "previous_qty": i.previous_qty}
                        for i in transaction.items
                    ],
                },
            )
            number = transaction.transaction_number
            warehouse_id = transaction.warehouse_id
            self.db.delete(transaction)

        logger.info(f"트랜잭션 삭제(역적용): {number} ({tx_type.value}) 창고 {warehouse_id}")
        self.events.append(("transactions.reversed", {
            "transaction_id": transaction_id,
            "transaction_number": number,
            "type": tx_type.value,
            "warehouse_id": warehouse_id,
        }))
