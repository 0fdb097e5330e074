"""
재고 트랜잭션 API
- 생성/삭제는 서비스 계층에서 하나의 DB 트랜잭션으로 재고에 반영된다.
- 커밋 이후 BackgroundTasks로 도메인 이벤트를 발행한다.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.events.event_bus import publish_events
from app.exceptions import ServiceError
from app.models.transaction import TransactionType
from app.schemas.common import (
    ApiResponse, MessageResponse, SearchRequest, SearchResponse, search_response,
)
from app.schemas.transactions import (
    DisposalCreate, TransactionCreate, TransactionNotesUpdate, TransactionResponse,
)
from app.services import TransactionService
from app.services.transaction_service import ItemInput

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def _create(body: TransactionCreate, tx_type: TransactionType,
            background_tasks: BackgroundTasks, db: Session) -> dict:
    service = TransactionService(db)
    transaction = service.create(
        tx_type=tx_type,
        warehouse_id=body.warehouse_id,
        performed_by_id=body.performed_by_id,
        items=[ItemInput(i.product_id, i.quantity, i.unit_price) for i in body.items],
        reference_id=body.reference_id,
        reference_type=body.reference_type,
        notes=body.notes,
        carbon_impact_kg=body.carbon_impact_kg,
    )
    background_tasks.add_task(publish_events, service.events)
    return {"data": transaction}


@router.post("/search", response_model=SearchResponse[TransactionResponse])
def search_transactions(body: SearchRequest, db: Session = Depends(get_db)):
    page = TransactionService(db).search(body.to_params())
    return search_response(page, TransactionResponse)


@router.post("/warehouse/{warehouse_id}", response_model=SearchResponse[TransactionResponse])
def search_by_warehouse(warehouse_id: int, body: SearchRequest, db: Session = Depends(get_db)):
    page = TransactionService(db).search_by_warehouse(warehouse_id, body.to_params())
    return search_response(page, TransactionResponse)


@router.post("", response_model=ApiResponse[TransactionResponse], status_code=201)
def create_transaction(body: TransactionCreate, background_tasks: BackgroundTasks,
                       db: Session = Depends(get_db)):
    """유형을 지정한 일반 트랜잭션 생성"""
    if body.type is None:
        raise ServiceError("Transaction type is required")
    return _create(body, body.type, background_tasks, db)


@router.post("/stock-in", response_model=ApiResponse[TransactionResponse], status_code=201)
def stock_in(body: TransactionCreate, background_tasks: BackgroundTasks,
             db: Session = Depends(get_db)):
    return _create(body, TransactionType.STOCK_IN, background_tasks, db)


@router.post("/stock-out", response_model=ApiResponse[TransactionResponse], status_code=201)
def stock_out(body: TransactionCreate, background_tasks: BackgroundTasks,
              db: Session = Depends(get_db)):
    return _create(body, TransactionType.STOCK_OUT, background_tasks, db)


@router.post("/adjustment", response_model=ApiResponse[TransactionResponse], status_code=201)
def adjustment(body: TransactionCreate, background_tasks: BackgroundTasks,
               db: Session = Depends(get_db)):
    """재고 실사 조정: 품목 수량은 절대값"""
    return _create(body, TransactionType.ADJUSTMENT, background_tasks, db)


@router.post("/return", response_model=ApiResponse[TransactionResponse], status_code=201)
def stock_return(body: TransactionCreate, background_tasks: BackgroundTasks,
                 db: Session = Depends(get_db)):
    return _create(body, TransactionType.RETURN, background_tasks, db)


@router.post("/waste-recycling", response_model=ApiResponse[TransactionResponse], status_code=201)
def waste_or_recycling(body: DisposalCreate, background_tasks: BackgroundTasks,
                       db: Session = Depends(get_db)):
    """폐기(WASTE) 또는 재활용(RECYCLING) 출고"""
    if body.type not in (TransactionType.WASTE, TransactionType.RECYCLING):
        raise ServiceError("Type must be WASTE or RECYCLING")
    return _create(body, body.type, background_tasks, db)


@router.get("/{transaction_id}", response_model=ApiResponse[TransactionResponse])
def get_transaction(transaction_id: int, db: Session = Depends(get_db)):
    return {"data": TransactionService(db).get(transaction_id)}


@router.patch("/{transaction_id}", response_model=ApiResponse[TransactionResponse])
def update_transaction_notes(transaction_id: int, body: TransactionNotesUpdate,
                             db: Session = Depends(get_db)):
    """트랜잭션은 메모만 수정 가능"""
    return {"data": TransactionService(db).update_notes(transaction_id, body.notes)}


@router.delete("/{transaction_id}", response_model=ApiResponse[MessageResponse])
def delete_transaction(transaction_id: int, background_tasks: BackgroundTasks,
                       db: Session = Depends(get_db)):
    """트랜잭션 삭제: 재고 효과를 역적용한다"""
    service = TransactionService(db)
    service.delete(transaction_id)
    background_tasks.add_task(publish_events, service.events)
    return {"data": {"message": "Transaction deleted and inventory reverted"}}
