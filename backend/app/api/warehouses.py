"""
창고 / 사용자 API
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.common import (
    ApiResponse, MessageResponse, SearchRequest, SearchResponse, search_response,
)
from app.schemas.warehouses import (
    InventorySummaryResponse, UserCreate, UserResponse,
    WarehouseCreate, WarehouseResponse, WarehouseUpdate,
)
from app.services import UserService, WarehouseService

router = APIRouter(prefix="/api/warehouses", tags=["warehouses"])
users_router = APIRouter(prefix="/api/users", tags=["users"])


# ── 사용자 ────────────────────────────────────────────

@users_router.get("", response_model=ApiResponse[list[UserResponse]])
def list_users(db: Session = Depends(get_db)):
    return {"data": UserService(db).list_all()}


@users_router.get("/{user_id}", response_model=ApiResponse[UserResponse])
def get_user(user_id: int, db: Session = Depends(get_db)):
    return {"data": UserService(db).get(user_id)}


@users_router.post("", response_model=ApiResponse[UserResponse], status_code=201)
def create_user(body: UserCreate, db: Session = Depends(get_db)):
    return {"data": UserService(db).create(body.model_dump())}


# ── 창고 ──────────────────────────────────────────────

@router.get("", response_model=ApiResponse[list[WarehouseResponse]])
def list_warehouses(db: Session = Depends(get_db)):
    """전체 창고 목록 (이름순)"""
    return {"data": WarehouseService(db).list_all()}


@router.post("/search", response_model=SearchResponse[WarehouseResponse])
def search_warehouses(body: SearchRequest, db: Session = Depends(get_db)):
    page = WarehouseService(db).search(body.to_params())
    return search_response(page, WarehouseResponse)


@router.get("/{warehouse_id}", response_model=ApiResponse[WarehouseResponse])
def get_warehouse(warehouse_id: int, db: Session = Depends(get_db)):
    return {"data": WarehouseService(db).get(warehouse_id)}


@router.get("/{warehouse_id}/inventory-summary", response_model=ApiResponse[InventorySummaryResponse])
def get_inventory_summary(warehouse_id: int, db: Session = Depends(get_db)):
    """창고 재고 요약 (품목 수, 수량, 금액, 저재고/품절 수)"""
    return {"data": WarehouseService(db).inventory_summary(warehouse_id)}


@router.post("", response_model=ApiResponse[WarehouseResponse], status_code=201)
def create_warehouse(body: WarehouseCreate, db: Session = Depends(get_db)):
    return {"data": WarehouseService(db).create(body.model_dump())}


@router.put("/{warehouse_id}", response_model=ApiResponse[WarehouseResponse])
def update_warehouse(warehouse_id: int, body: WarehouseUpdate, db: Session = Depends(get_db)):
    return {"data": WarehouseService(db).update(warehouse_id, body.model_dump(exclude_unset=True))}


@router.delete("/{warehouse_id}", response_model=ApiResponse[MessageResponse])
def delete_warehouse(warehouse_id: int, db: Session = Depends(get_db)):
    WarehouseService(db).delete(warehouse_id)
    return {"data": {"message": "Warehouse deleted successfully"}}
