"""
WebSocket 엔드포인트 — 실시간 재고 이벤트 Push
클라이언트가 /ws/realtime에 연결하면 다음 메시지를 받는다:
  - inventory_summary: 30초마다 저재고/품절 재고 행 수
  - inventory.updated, inventory.low_stock: 재고 변동 및 재주문 경보
  - transactions.*, transfers.*, orders.*: 도메인 이벤트
"""

import asyncio
import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from sqlalchemy import func

from app.database import SessionLocal
from app.models import Inventory
from app.models.inventory import ReorderStatus

logger = logging.getLogger(__name__)

router = APIRouter()

SUMMARY_INTERVAL_SECONDS = 30


class ConnectionManager:
    """WebSocket 연결 관리자"""

    def __init__(self):
        self.active_connections: list[WebSocket] = []

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"WebSocket 연결: {len(self.active_connections)}개 활성")

    def disconnect(self, websocket: WebSocket):
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
        logger.info(f"WebSocket 해제: {len(self.active_connections)}개 활성")

    async def broadcast(self, message: dict):
        """모든 연결된 클라이언트에게 메시지 전송"""
        if not self.active_connections:
            return

        text = json.dumps(message, ensure_ascii=False, default=str)
        disconnected = []
        for ws in self.active_connections:
            try:
                await ws.send_text(text)
            except (WebSocketDisconnect, RuntimeError):
                disconnected.append(ws)

        for ws in disconnected:
            self.disconnect(ws)


ws_manager = ConnectionManager()


async def broadcast_event(event_type: str, data: dict):
    """외부에서 호출 가능한 브로드캐스트 헬퍼"""
    await ws_manager.broadcast({
        "type": event_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data,
    })


def _get_inventory_summary() -> dict:
    """재주문 상태별 재고 행 수 (블로킹)"""
    db = SessionLocal()
    try:
        rows = (
            db.query(Inventory.reorder_status, func.count(Inventory.id))
            .group_by(Inventory.reorder_status).all()
        )
        by_status = {ReorderStatus(s).value: c for s, c in rows}
        out_of_stock = (
            db.query(func.count(Inventory.id))
            .filter(Inventory.quantity == 0)
            .scalar() or 0
        )
        return {
            "by_reorder_status": by_status,
            "low_stock_count": by_status.get(ReorderStatus.BELOW_REORDER.value, 0)
            + by_status.get(ReorderStatus.BELOW_MIN.value, 0),
            "out_of_stock_count": out_of_stock,
        }
    finally:
        db.close()


@router.websocket("/ws/realtime")
async def websocket_endpoint(websocket: WebSocket):
    """실시간 WebSocket 엔드포인트"""
    await ws_manager.connect(websocket)

    async def summary_loop():
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(SUMMARY_INTERVAL_SECONDS)
            summary = await loop.run_in_executor(None, _get_inventory_summary)
            try:
                await websocket.send_text(json.dumps({
                    "type": "inventory_summary",
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "data": summary,
                }, ensure_ascii=False, default=str))
            except (WebSocketDisconnect, RuntimeError):
                logger.info("WebSocket 요약 전송 중단: 연결 종료")
                return

    summary_task = asyncio.create_task(summary_loop())
    try:
        # 클라이언트 메시지 수신 루프 (핑/퐁 유지)
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
    except WebSocketDisconnect:
        pass
    finally:
        summary_task.cancel()
        await asyncio.gather(summary_task, return_exceptions=True)
        ws_manager.disconnect(websocket)
