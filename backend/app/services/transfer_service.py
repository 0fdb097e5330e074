"""
Transfer Service — 창고 간 재고 이송.

PENDING → IN_TRANSIT → COMPLETED, PENDING → COMPLETED,
PENDING/IN_TRANSIT → CANCELLED.
재고는 완료 시점에만 이동한다 (출발 창고 차감 + 도착 창고 가산, 단일 DB 트랜잭션).
"""

import logging
from datetime import datetime, timezone

from app.exceptions import NotFoundError, ServiceError
from app.models import Product, Transfer, TransferItem
from app.models.transfer import TransferStatus
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

# 일반 수정/상태 변경으로 허용되는 전이 (COMPLETED는 complete()로만)
ALLOWED_TRANSITIONS = {
    TransferStatus.PENDING: {TransferStatus.IN_TRANSIT, TransferStatus.CANCELLED},
    TransferStatus.IN_TRANSIT: {TransferStatus.CANCELLED},
    TransferStatus.COMPLETED: set(),
    TransferStatus.CANCELLED: set(),
}

FINAL_STATUSES = {TransferStatus.COMPLETED, TransferStatus.CANCELLED}

SORT_COLUMNS = {
    "requestDate": Transfer.request_date,
    "transferNumber": Transfer.transfer_number,
    "status": Transfer.status,
    "completedAt": Transfer.completed_at,
    "estimatedArrival": Transfer.estimated_arrival,
}


class TransferService(BaseService):
    """창고 간 이송 서비스"""

    def search(self, params: SearchParams) -> Page:
        query = self.db.query(Transfer)
        query = text_search(query, params.search, Transfer.transfer_number, Transfer.notes)

        filters = params.filters
        if filters.get("status"):
            query = query.filter(
                Transfer.status == parse_enum(TransferStatus, filters["status"], "status")
            )
        if filters.get("sourceWarehouseId"):
            query = query.filter(Transfer.source_warehouse_id == parse_int(filters["sourceWarehouseId"], "sourceWarehouseId"))
        if filters.get("destWarehouseId"):
            query = query.filter(Transfer.dest_warehouse_id == parse_int(filters["destWarehouseId"], "destWarehouseId"))
        if filters.get("requestedById"):
            query = query.filter(Transfer.requested_by_id == parse_int(filters["requestedById"], "requestedById"))
        if filters.get("dateFrom"):
            query = query.filter(Transfer.request_date >= parse_datetime(filters["dateFrom"], "dateFrom"))
        if filters.get("dateTo"):
            query = query.filter(Transfer.request_date <= parse_datetime(filters["dateTo"], "dateTo"))

        return paginate(query, params, SORT_COLUMNS, ("requestDate", "desc"))

    def search_by_warehouse(self, warehouse_id: int, direction: str, params: SearchParams) -> Page:
        """창고 기준 조회: direction: incoming(도착) / outgoing(출발)"""
        if direction == "incoming":
            return self.search(params.with_filters(destWarehouseId=warehouse_id))
        if direction == "outgoing":
            return self.search(params.with_filters(sourceWarehouseId=warehouse_id))
        raise ServiceError("Direction must be 'incoming' or 'outgoing'")

    def get(self, transfer_id: int) -> Transfer:
        return self._get_or_404(Transfer, transfer_id, "Transfer not found")

    # ── 생성 ──────────────────────────────────────────────

    def create(
        self,
        source_warehouse_id: int | None,
        dest_warehouse_id: int | None,
        requested_by_id: int | None,
        items: list[tuple[int, int]],
        notes: str | None = None,
        estimated_arrival: datetime | None = None,
        estimated_carbon_kg: float | None = None,
    ) -> Transfer:
        """이송 요청 생성: 재고는 이동하지 않는다. items: [(product_id, quantity)]"""
        if not source_warehouse_id:
            raise ServiceError("Source warehouse is required")
        if not dest_warehouse_id:
            raise ServiceError("Destination warehouse is required")
        if source_warehouse_id == dest_warehouse_id:
            raise ServiceError("Source and destination warehouses cannot be the same")
        if not requested_by_id:
            raise ServiceError("Requested by user is required")
        if not items:
            raise ServiceError("Transfer must contain at least one item")
        if any(quantity is None or quantity <= 0 for _, quantity in items):
            raise ServiceError("Item quantity must be greater than zero")
        product_ids = [product_id for product_id, _ in items]
        if len(set(product_ids)) != len(product_ids):
            raise ServiceError("Each product may appear only once per transfer")

        with self.atomic():
            self._require_warehouse(source_warehouse_id, "Source warehouse not found")
            self._require_warehouse(dest_warehouse_id, "Destination warehouse not found")
            self._require_user(requested_by_id, "Requested by user not found")

            products = {
                p.id: p for p in self.db.query(Product).filter(Product.id.in_(product_ids)).all()
            }
            missing = [str(pid) for pid in product_ids if pid not in products]
            if missing:
                raise NotFoundError(f"Products not found: {', '.join(missing)}")

            for product_id, quantity in items:
                inventory = self._find_inventory(source_warehouse_id, product_id)
                if inventory is None or inventory.available < quantity:
                    raise ServiceError(
                        f"Product {products[product_id].name} not available in source warehouse"
                    )

            now = datetime.now(timezone.utc)
            transfer = Transfer(
                transfer_number=next_number(
                    self.db, Transfer.transfer_number, f"TRF-{now:%Y}", f"TRF-{now:%Y%m}"
                ),
                source_warehouse_id=source_warehouse_id,
                dest_warehouse_id=dest_warehouse_id,
                status=TransferStatus.PENDING,
                requested_by_id=requested_by_id,
                request_date=now,
                estimated_arrival=estimated_arrival,
                estimated_carbon_kg=estimated_carbon_kg or 0.0,
                notes=notes,
            )
            for product_id, quantity in items:
                transfer.items.append(TransferItem(product_id=product_id, quantity=quantity))
            self.db.add(transfer)
            self.db.flush()

            record_audit(
                self.db, "CREATE", "Transfer", transfer.id,
                user_id=requested_by_id,
                new_values={
                    "transfer_number": transfer.transfer_number,
                    "source_warehouse_id": source_warehouse_id,
                    "dest_warehouse_id": dest_warehouse_id,
                    "items": [{"product_id": p, "quantity": q} for p, q in items],
                },
            )

        self.db.refresh(transfer)
        logger.info(
            f"이송 요청 생성: {transfer.transfer_number} "
            f"창고 {source_warehouse_id} → {dest_warehouse_id}, 품목 {len(items)}개"
        )
        self.events.append(("transfers.created", self._event_payload(transfer)))
        return transfer

    # ── 수정 / 상태 변경 ─────────────────────────────────

    def update(
        self,
        transfer_id: int,
        notes: str | None = None,
        estimated_arrival: datetime | None = None,
        status: TransferStatus | None = None,
        fields_set: set[str] | None = None,
    ) -> Transfer:
        """
        메모·도착 예정일·상태 수정.
        fields_set: 요청에 실제로 포함된 필드 (None 값으로 지우기 허용)
        """
        fields_set = fields_set or set()
        with self.atomic():
            transfer = self.get(transfer_id)
            current = TransferStatus(transfer.status)
            if current in FINAL_STATUSES:
                raise ServiceError(f"Cannot update a {current.value} transfer")

            if "notes" in fields_set:
                transfer.notes = notes
            if "estimated_arrival" in fields_set:
                transfer.estimated_arrival = estimated_arrival
            changed = None
            if status is not None and status != current:
                changed = self._transition(transfer, current, status)

        self.db.refresh(transfer)
        if changed:
            self._status_changed(transfer, changed)
        return transfer

    def update_status(self, transfer_id: int, status: TransferStatus) -> Transfer:
        with self.atomic():
            transfer = self.get(transfer_id)
            current = TransferStatus(transfer.status)
            if current in FINAL_STATUSES:
                raise ServiceError(f"Cannot update a {current.value} transfer")
            changed = self._transition(transfer, current, status)

        self.db.refresh(transfer)
        self._status_changed(transfer, changed)
        return transfer

    def _transition(self, transfer: Transfer, current: TransferStatus, new: TransferStatus):
        if new == TransferStatus.COMPLETED:
            raise ServiceError("Use the complete endpoint to complete a transfer")
        if new not in ALLOWED_TRANSITIONS[current]:
            raise ServiceError(
                f"Invalid status transition from {current.value} to {new.value}"
            )
        transfer.status = new
        record_audit(
            self.db, "STATUS_CHANGE", "Transfer", transfer.id,
            old_values={"status": current.value},
            new_values={"status": new.value},
        )
        return current, new

    def _status_changed(self, transfer: Transfer, change: tuple[TransferStatus, TransferStatus]):
        old, new = change
        logger.info(f"이송 상태 변경: {transfer.transfer_number} {old.value} → {new.value}")
        self.events.append(("transfers.status_changed", {
            **self._event_payload(transfer),
            "previous_status": old.value,
        }))

    # ── 완료 (재고 이동) ──────────────────────────────────

    def complete(self, transfer_id: int, completed_by_id: int) -> Transfer:
        """출발 창고 차감 + 도착 창고 가산 후 COMPLETED 처리 (단일 DB 트랜잭션)"""
        with self.atomic():
            transfer = self.get(transfer_id)
            current = TransferStatus(transfer.status)
            if current not in (TransferStatus.PENDING, TransferStatus.IN_TRANSIT):
                raise ServiceError("Transfer must be pending or in transit before completion")
            self._require_user(completed_by_id, "Completer not found")

            moved = []
            for item in transfer.items:
                product = item.product
                source = self._find_inventory(transfer.source_warehouse_id, item.product_id)
                if source is None or source.available < item.quantity:
                    raise ServiceError(
                        f"Insufficient stock for product {product.name} in source warehouse"
                    )
                source_before = StockLevel.of(source)
                self._write_level(source, stock.ship_out(source_before, item.quantity), product)

                dest = self._find_inventory(transfer.dest_warehouse_id, item.product_id)
                if dest is None:
                    dest = self._new_inventory(transfer.dest_warehouse_id, item.product_id)
                    dest_before = stock.EMPTY
                else:
                    dest_before = StockLevel.of(dest)
                self._write_level(dest, stock.receive(dest_before, item.quantity), product)

                moved.append({
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "source_previous_qty": source_before.quantity,
                    "dest_previous_qty": dest_before.quantity,
                })

            transfer.status = TransferStatus.COMPLETED
            transfer.completed_at = datetime.now(timezone.utc)
            transfer.completed_by_id = completed_by_id

            record_audit(
                self.db, "COMPLETE", "Transfer", transfer.id,
                user_id=completed_by_id,
                old_values={"status": current.value},
                new_values={"status": TransferStatus.COMPLETED.value, "items": moved},
            )

        self.db.refresh(transfer)
        logger.info(
            f"이송 완료: {transfer.transfer_number} "
            f"창고 {transfer.source_warehouse_id} → {transfer.dest_warehouse_id}, "
            f"품목 {len(moved)}개"
        )
        self.events.append(("transfers.completed", self._event_payload(transfer)))
        return transfer

    # ── 삭제 ──────────────────────────────────────────────

    def delete(self, transfer_id: int) -> None:
        """PENDING 상태의 이송만 삭제 가능"""
        with self.atomic():
            transfer = self.get(transfer_id)
            current = TransferStatus(transfer.status)
            if current != TransferStatus.PENDING:
                raise ServiceError(f"Cannot delete a {current.value} transfer")
            number = transfer.transfer_number
            self.db.delete(transfer)
        logger.info(f"이송 요청 삭제: {number}")

    @staticmethod
    def _event_payload(transfer: Transfer) -> dict:
        return {
            "transfer_id": transfer.id,
            "transfer_number": transfer.transfer_number,
            "status": TransferStatus(transfer.status).value,
            "source_warehouse_id": transfer.source_warehouse_id,
            "dest_warehouse_id": transfer.dest_warehouse_id,
        }
