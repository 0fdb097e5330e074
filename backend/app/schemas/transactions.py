"""
재고 트랜잭션 / 이송 스키마
"""

from datetime import datetime

from pydantic import Field

from app.models.transaction import TransactionType
from app.models.transfer import TransferStatus
from app.schemas.common import CamelModel, ProductBrief, UserBrief, WarehouseBrief


# ── 트랜잭션 ──────────────────────────────────────────

class TransactionItemInput(CamelModel):
    product_id: int
    quantity: int = Field(..., ge=0)
    unit_price: float | None = Field(None, ge=0)


class TransactionCreate(CamelModel):
    """유형별 엔드포인트(stock-in 등)에서는 type을 생략한다"""
    type: TransactionType | None = None
    warehouse_id: int
    performed_by_id: int
    items: list[TransactionItemInput] = Field(..., min_length=1)
    reference_id: str | None = None
    reference_type: str | None = None
    notes: str | None = None
    carbon_impact_kg: float | None = None


class DisposalCreate(TransactionCreate):
    """폐기/재활용: type은 WASTE 또는 RECYCLING"""
    type: TransactionType = TransactionType.WASTE


class TransactionNotesUpdate(CamelModel):
    notes: str | None = None


class TransactionItemResponse(CamelModel):
    id: int
    product_id: int
    product: ProductBrief | None = None
    quantity: int
    unit_price: float | None = None
    total_price: float | None = None
    previous_qty: int | None = None
    new_qty: int | None = None


class TransactionResponse(CamelModel):
    id: int
    transaction_number: str
    type: TransactionType
    warehouse_id: int
    warehouse: WarehouseBrief | None = None
    performed_by_id: int
    performed_by: UserBrief | None = None
    reference_id: str | None = None
    reference_type: str | None = None
    total_items: int
    total_value: float | None = None
    carbon_impact_kg: float | None = None
    notes: str | None = None
    transaction_date: datetime | None = None
    items: list[TransactionItemResponse] = []


# ── 이송 ──────────────────────────────────────────────

class TransferItemInput(CamelModel):
    product_id: int
    quantity: int = Field(..., gt=0)


class TransferCreate(CamelModel):
    source_warehouse_id: int | None = None
    dest_warehouse_id: int | None = None
    requested_by_id: int | None = None
    items: list[TransferItemInput] = []
    notes: str | None = None
    estimated_arrival: datetime | None = None
    estimated_carbon_kg: float | None = None


class TransferUpdate(CamelModel):
    notes: str | None = None
    estimated_arrival: datetime | None = None
    status: TransferStatus | None = None


class TransferStatusUpdate(CamelModel):
    status: TransferStatus


class TransferComplete(CamelModel):
    completed_by_id: int


class TransferItemResponse(CamelModel):
    id: int
    product_id: int
    product: ProductBrief | None = None
    quantity: int


class TransferResponse(CamelModel):
    id: int
    transfer_number: str
    source_warehouse_id: int
    source_warehouse: WarehouseBrief | None = None
    dest_warehouse_id: int
    dest_warehouse: WarehouseBrief | None = None
    status: TransferStatus
    requested_by_id: int
    requested_by: UserBrief | None = None
    completed_by_id: int | None = None
    completed_by: UserBrief | None = None
    request_date: datetime | None = None
    completed_at: datetime | None = None
    estimated_arrival: datetime | None = None
    estimated_carbon_kg: float | None = None
    notes: str | None = None
    items: list[TransferItemResponse] = []
