"""
재고 API — 창고 x 제품 재고 행 조회/수정
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.events.event_bus import publish_events
from app.schemas.common import (
    ApiResponse, MessageResponse, SearchRequest, SearchResponse, search_response,
)
from app.schemas.inventory import (
    InventoryBulkRequest, InventoryBulkResult, InventoryResponse, InventoryUpsert, QuantityUpdate,
)
from app.services import InventoryService

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.post("/search", response_model=SearchResponse[InventoryResponse])
def search_inventory(body: SearchRequest, db: Session = Depends(get_db)):
    page = InventoryService(db).search(body.to_params())
    return search_response(page, InventoryResponse)


@router.post("/low-stock", response_model=SearchResponse[InventoryResponse])
def search_low_stock(body: SearchRequest, db: Session = Depends(get_db)):
    """최소 재고 이하 재고 행"""
    page = InventoryService(db).search_low_stock(body.to_params())
    return search_response(page, InventoryResponse)


@router.post("/warehouse/{warehouse_id}", response_model=SearchResponse[InventoryResponse])
def search_by_warehouse(warehouse_id: int, body: SearchRequest, db: Session = Depends(get_db)):
    page = InventoryService(db).search_by_warehouse(warehouse_id, body.to_params())
    return search_response(page, InventoryResponse)


@router.post("/product/{product_id}", response_model=SearchResponse[InventoryResponse])
def search_by_product(product_id: int, body: SearchRequest, db: Session = Depends(get_db)):
    page = InventoryService(db).search_by_product(product_id, body.to_params())
    return search_response(page, InventoryResponse)


@router.post("/bulk-update", response_model=ApiResponse[list[InventoryBulkResult]])
def bulk_update(body: InventoryBulkRequest, background_tasks: BackgroundTasks,
                db: Session = Depends(get_db)):
    """항목별 수량 변경: 실패 항목은 error로 반환"""
    service = InventoryService(db)
    results = service.bulk_update([item.model_dump() for item in body.updates])
    background_tasks.add_task(publish_events, service.events)
    return {"data": [
        {"id": r.id, "success": r.success, "data": r.inventory, "error": r.error}
        for r in results
    ]}


@router.get("/{inventory_id}", response_model=ApiResponse[InventoryResponse])
def get_inventory(inventory_id: int, db: Session = Depends(get_db)):
    return {"data": InventoryService(db).get(inventory_id)}


@router.post("", response_model=ApiResponse[InventoryResponse])
def upsert_inventory(body: InventoryUpsert, background_tasks: BackgroundTasks,
                     db: Session = Depends(get_db)):
    """(창고, 제품) 재고 행 생성 또는 갱신"""
    service = InventoryService(db)
    inventory = service.upsert(**body.model_dump())
    background_tasks.add_task(publish_events, service.events)
    return {"data": inventory}


@router.patch("/{inventory_id}/quantity", response_model=ApiResponse[InventoryResponse])
def update_quantity(inventory_id: int, body: QuantityUpdate, background_tasks: BackgroundTasks,
                    db: Session = Depends(get_db)):
    """수량 변경 (SET / ADD / SUBTRACT)"""
    service = InventoryService(db)
    inventory = service.update_quantity(inventory_id, body.quantity, body.action, body.notes)
    background_tasks.add_task(publish_events, service.events)
    return {"data": inventory}


@router.delete("/{inventory_id}", response_model=ApiResponse[MessageResponse])
def delete_inventory(inventory_id: int, db: Session = Depends(get_db)):
    InventoryService(db).delete(inventory_id)
    return {"data": {"message": "Inventory record deleted successfully"}}
