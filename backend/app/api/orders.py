"""
주문 API — 주문 검색, 생성(재고 예약), 상태 전이
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.events.event_bus import publish_events
from app.schemas.common import ApiResponse, Pagination, SearchRequest, SearchResponse
from app.schemas.orders import OrderCreate, OrderDetailResponse, OrderResponse, OrderUpdate
from app.services import OrderService
from app.services.order_service import OrderItemInput

router = APIRouter(prefix="/api/orders", tags=["orders"])


def _order_page(page) -> dict:
    """Order Page → 진행률·탄소 합계를 포함한 검색 응답"""
    return {
        "data": [OrderResponse.from_order(order) for order in page.items],
        "pagination": Pagination.from_page(page),
    }


@router.post("/search", response_model=SearchResponse[OrderResponse])
def search_orders(body: SearchRequest, db: Session = Depends(get_db)):
    return _order_page(OrderService(db).search(body.to_params()))


@router.post("/status/{status}", response_model=SearchResponse[OrderResponse])
def search_orders_by_status(status: str, body: SearchRequest, db: Session = Depends(get_db)):
    return _order_page(OrderService(db).search_by_status(status, body.to_params()))


@router.post("/to-fulfill", response_model=SearchResponse[OrderResponse])
def search_orders_to_fulfill(body: SearchRequest, db: Session = Depends(get_db)):
    """처리 대기 주문 (NEW, PROCESSING, PICKING): 오래된 순"""
    return _order_page(OrderService(db).search_to_fulfill(body.to_params()))


@router.get("/{order_id}", response_model=ApiResponse[OrderDetailResponse])
def get_order(order_id: int, db: Session = Depends(get_db)):
    """주문 상세: 품목별 가용 재고와 충족 가능 여부 포함"""
    service = OrderService(db)
    order = service.get(order_id)
    return {"data": OrderDetailResponse.from_order_with_availability(order, service.availability(order))}


@router.post("", response_model=ApiResponse[OrderResponse], status_code=201)
def create_order(body: OrderCreate, background_tasks: BackgroundTasks,
                 db: Session = Depends(get_db)):
    """주문 생성: 출하 창고가 지정되면 재고 예약"""
    service = OrderService(db)
    fields = body.model_dump(exclude={"items", "customer_name", "created_by_id"})
    order = service.create(
        customer_name=body.customer_name,
        created_by_id=body.created_by_id,
        items=[OrderItemInput(i.product_id, i.quantity, i.unit_price) for i in body.items],
        **fields,
    )
    background_tasks.add_task(publish_events, service.events)
    return {"data": OrderResponse.from_order(order)}


@router.put("/{order_id}", response_model=ApiResponse[OrderResponse])
def update_order(order_id: int, body: OrderUpdate, background_tasks: BackgroundTasks,
                 db: Session = Depends(get_db)):
    """주문 수정 / 상태 전이 (허용되지 않은 전이는 400)"""
    service = OrderService(db)
    order = service.update(order_id, body.model_dump(exclude_unset=True))
    background_tasks.add_task(publish_events, service.events)
    return {"data": OrderResponse.from_order(order)}
