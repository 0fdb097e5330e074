"""
창고 간 이송 API
- 재고는 /complete 호출 시에만 이동한다.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.events.event_bus import publish_events
from app.schemas.common import (
    ApiResponse, MessageResponse, SearchRequest, SearchResponse, search_response,
)
from app.schemas.transactions import (
    TransferComplete, TransferCreate, TransferResponse, TransferStatusUpdate, TransferUpdate,
)
from app.services import TransferService

router = APIRouter(prefix="/api/transfers", tags=["transfers"])


@router.post("/search", response_model=SearchResponse[TransferResponse])
def search_transfers(body: SearchRequest, db: Session = Depends(get_db)):
    page = TransferService(db).search(body.to_params())
    return search_response(page, TransferResponse)


@router.post("/warehouse/{warehouse_id}/{direction}", response_model=SearchResponse[TransferResponse])
def search_by_warehouse(warehouse_id: int, direction: str, body: SearchRequest,
                        db: Session = Depends(get_db)):
    """direction: incoming(도착 창고 기준) / outgoing(출발 창고 기준)"""
    page = TransferService(db).search_by_warehouse(warehouse_id, direction, body.to_params())
    return search_response(page, TransferResponse)


@router.get("/{transfer_id}", response_model=ApiResponse[TransferResponse])
def get_transfer(transfer_id: int, db: Session = Depends(get_db)):
    return {"data": TransferService(db).get(transfer_id)}


@router.post("", response_model=ApiResponse[TransferResponse], status_code=201)
def create_transfer(body: TransferCreate, background_tasks: BackgroundTasks,
                    db: Session = Depends(get_db)):
    service = TransferService(db)
    transfer = service.create(
        source_warehouse_id=body.source_warehouse_id,
        dest_warehouse_id=body.dest_warehouse_id,
        requested_by_id=body.requested_by_id,
        items=[(i.product_id, i.quantity) for i in body.items],
        notes=body.notes,
        estimated_arrival=body.estimated_arrival,
        estimated_carbon_kg=body.estimated_carbon_kg,
    )
    background_tasks.add_task(publish_events, service.events)
    return {"data": transfer}


@router.put("/{transfer_id}", response_model=ApiResponse[TransferResponse])
def update_transfer(transfer_id: int, body: TransferUpdate, background_tasks: BackgroundTasks,
                    db: Session = Depends(get_db)):
    """메모·도착 예정일·상태 수정 (COMPLETED 제외)"""
    service = TransferService(db)
    transfer = service.update(
        transfer_id,
        notes=body.notes,
        estimated_arrival=body.estimated_arrival,
        status=body.status,
        fields_set=body.model_fields_set,
    )
    background_tasks.add_task(publish_events, service.events)
    return {"data": transfer}


@router.patch("/{transfer_id}/status", response_model=ApiResponse[TransferResponse])
def update_transfer_status(transfer_id: int, body: TransferStatusUpdate,
                           background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    service = TransferService(db)
    transfer = service.update_status(transfer_id, body.status)
    background_tasks.add_task(publish_events, service.events)
    return {"data": transfer}


@router.post("/{transfer_id}/complete", response_model=ApiResponse[TransferResponse])
def complete_transfer(transfer_id: int, body: TransferComplete, background_tasks: BackgroundTasks,
                      db: Session = Depends(get_db)):
    """이송 완료: 출발 창고 차감, 도착 창고 가산"""
    service = TransferService(db)
    transfer = service.complete(transfer_id, body.completed_by_id)
    background_tasks.add_task(publish_events, service.events)
    return {"data": transfer}


@router.delete("/{transfer_id}", response_model=ApiResponse[MessageResponse])
def delete_transfer(transfer_id: int, db: Session = Depends(get_db)):
    TransferService(db).delete(transfer_id)
    return {"data": {"message": "Transfer deleted successfully"}}
