"""
이벤트 시스템 패키지
- 비동기 pub/sub 이벤트 버스 (Redis Streams 기반, 인메모리 fallback)
- 재고 모니터 (재주문점 경보)
"""

from app.events.event_bus import AsyncEventBus, publish_event, publish_events, set_event_bus
from app.events.stock_monitor import StockMonitor

__all__ = ["AsyncEventBus", "StockMonitor", "publish_event", "publish_events", "set_event_bus"]
