"""
FastAPI 앱 엔트리포인트
- CORS 설정
- 라우터 등록 (마스터 데이터, 재고, 트랜잭션, 이송, 주문, 지속가능성, WebSocket)
- AsyncEventBus + Stock Monitor 백그라운드 시작
- 서비스 예외 → {success: false, error} 응답 변환
- 헬스체크 엔드포인트
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.database import engine, Base, SessionLocal
from app.api import inventory, orders, sustainability, transactions, transfers
from app.api.catalog import categories_router, products_router
from app.api.warehouses import router as warehouses_router, users_router
from app.api.websocket import router as ws_router
from app.exceptions import ServiceError
from app.schemas.common import HealthResponse
from app.events.event_bus import AsyncEventBus, get_event_bus, set_event_bus
from app.events.stock_monitor import StockMonitor

# 로깅 설정
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """앱 시작/종료 시 이벤트 버스와 재고 모니터 관리"""
    # ── 1. DB 테이블 확인 ──
    Base.metadata.create_all(bind=engine)
    logger.info("데이터베이스 테이블 확인 완료")

    # ── 2. AsyncEventBus 생성 ──
    event_bus = AsyncEventBus(settings.REDIS_URL)

    # ── 3. Stock Monitor 구독 등록 ──
    monitor = StockMonitor(event_bus)
    await monitor.start()

    # ── 4. AsyncEventBus 시작 (구독자 루프) ──
    await event_bus.start()
    set_event_bus(event_bus)
    logger.info("AsyncEventBus 시작 완료")

    yield

    # ── 종료 ──
    set_event_bus(None)
    await event_bus.stop()
    logger.info("AsyncEventBus 중지 완료")


app = FastAPI(
    title="EcoCycle IMS",
    description="친환경 제품 다중 창고 재고 관리 API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(p) for p in e['loc'] if p != 'body')}: {e['msg']}" for e in errors
    )
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": message or "Validation failed"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"처리되지 않은 예외: {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


# 라우터 등록
app.include_router(users_router)
app.include_router(warehouses_router)
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(inventory.router)
app.include_router(transactions.router)
app.include_router(transfers.router)
app.include_router(orders.router)
app.include_router(sustainability.router)
app.include_router(ws_router)


@app.get("/api/health", response_model=HealthResponse)
def health_check():
    """시스템 상태 확인"""
    db_ok = False
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning(f"DB 헬스체크 실패: {e}")
    finally:
        db.close()

    event_bus = get_event_bus()

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        db_connected=db_ok,
        redis_connected=event_bus.is_redis if event_bus else False,
        event_bus_running=event_bus.is_running if event_bus else False,
        timestamp=datetime.now(timezone.utc),
    )
