"""
Stock Monitor — 재고 이벤트 구독 및 재주문 경보.
inventory.updated 이벤트로 재주문점 이하 품목을 추적하고,
새로 진입한 품목에 대해 inventory.low_stock을 발행한다.
모든 도메인 이벤트는 WebSocket 클라이언트에 전달한다.
"""

import asyncio
import logging

from app.database import SessionLocal
from app.events.event_bus import AsyncEventBus
from app.models import Inventory
from app.models.inventory import ReorderStatus

logger = logging.getLogger(__name__)

# WebSocket으로 그대로 전달하는 토픽
FORWARDED_TOPICS = [
    "transactions.created",
    "transactions.reversed",
    "transfers.created",
    "transfers.status_changed",
    "transfers.completed",
    "orders.created",
    "orders.status_changed",
]


class StockMonitor:
    """
    재고 모니터.
    - inventory.updated 구독 → 저재고 품목 상태 갱신
    - OK → BELOW_REORDER/BELOW_MIN 진입 시 경보 로그 + inventory.low_stock 발행
    """

    def __init__(self, event_bus: AsyncEventBus):
        self.event_bus = event_bus
        # (warehouse_id, product_id) → reorder_status
        self.low_stock_items: dict[tuple[int, int], str] = {}

    async def start(self):
        """이벤트 구독 등록 및 초기 상태 로드"""
        await self.event_bus.subscribe("inventory.updated", self._on_inventory_updated)
        await self.event_bus.subscribe("inventory.low_stock", self._broadcast)
        for topic in FORWARDED_TOPICS:
            await self.event_bus.subscribe(topic, self._broadcast)

        loop = asyncio.get_running_loop()
        self.low_stock_items = await loop.run_in_executor(None, self._load_low_stock)
        logger.info(f"Stock Monitor 준비 완료: 저재고 품목 {len(self.low_stock_items)}개")

    def _load_low_stock(self) -> dict[tuple[int, int], str]:
        """DB에서 현재 저재고 품목 로드 (블로킹)"""
        db = SessionLocal()
        try:
            rows = (
                db.query(Inventory.warehouse_id, Inventory.product_id, Inventory.reorder_status)
                .filter(Inventory.reorder_status != ReorderStatus.OK)
                .all()
            )
            return {(w, p): ReorderStatus(s).value for w, p, s in rows}
        finally:
            db.close()

    async def _on_inventory_updated(self, topic: str, data: dict):
        """재고 변동 이벤트 처리"""
        warehouse_id = data.get("warehouse_id")
        product_id = data.get("product_id")
        status = data.get("reorder_status")
        if warehouse_id is None or product_id is None or status is None:
            return

        key = (int(warehouse_id), int(product_id))
        previous = self.low_stock_items.get(key)

        if status == ReorderStatus.OK.value:
            self.low_stock_items.pop(key, None)
        else:
            self.low_stock_items[key] = status
            # 새로 진입했거나 BELOW_REORDER → BELOW_MIN으로 악화된 경우만 경보
            if previous != status:
                logger.warning(
                    f"[StockMonitor] 재주문 필요: 창고 {warehouse_id} / "
                    f"{data.get('sku', product_id)} 수량 {data.get('quantity')} ({status})"
                )
                await self.event_bus.publish("inventory.low_stock", data)

        await self._broadcast(topic, data)

    async def _broadcast(self, topic: str, data: dict):
        """WebSocket 클라이언트에 이벤트 전달"""
        from app.api.websocket import broadcast_event
        await broadcast_event(topic, data)
