"""
비동기 이벤트 버스 — 재고 도메인 이벤트 pub/sub
- Redis Streams 사용 시도, 실패 시 인메모리 asyncio.Queue로 fallback
- 서비스 계층은 커밋 이후에만 publish_event()로 이벤트를 발행한다
- Redis 스트림 메시지는 payload 필드 하나에 JSON으로 담는다
"""

import asyncio
import json
import logging
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

# 지원하는 토픽 목록
TOPICS = [
    "inventory.updated",          # 재고 행 변동 (창고 x 제품)
    "inventory.low_stock",        # 재주문점 이하 진입
    "transactions.created",       # 재고 트랜잭션 적용
    "transactions.reversed",      # 재고 트랜잭션 삭제(역적용)
    "transfers.created",          # 이송 요청 생성
    "transfers.status_changed",   # 이송 상태 변경
    "transfers.completed",        # 이송 완료 (재고 이동)
    "orders.created",             # 새 주문 생성
    "orders.status_changed",      # 주문 상태 변경
]

QUEUE_MAXSIZE = 10000
STREAM_MAXLEN = 1000
RECENT_PER_TOPIC = 500

# 핸들러 타입: async callable(topic, data)
Handler = Callable[[str, dict], Coroutine[Any, Any, None]]


def _encode(event: dict) -> dict[str, str]:
    """이벤트 → Redis 스트림 필드"""
    return {"payload": json.dumps(event, ensure_ascii=False, default=str)}


def _decode(fields: dict) -> dict:
    """Redis 스트림 필드 → 이벤트"""
    return json.loads(fields["payload"])


class AsyncEventBus:
    """
    비동기 이벤트 버스: Redis Streams 기반, 인메모리 fallback.

    사용법:
        bus = AsyncEventBus(redis_url="redis://localhost:6379")
        await bus.subscribe("inventory.updated", my_handler)
        await bus.start()  # 토픽별 소비자 태스크 시작
        await bus.publish("inventory.updated", {"warehouse_id": 1, "product_id": 3})

    use_redis=False면 Redis 연결을 시도하지 않는다 (테스트용).
    """

    def __init__(self, redis_url: str = "redis://localhost:6379", use_redis: bool = True):
        self._redis_url = redis_url
        self._try_redis = use_redis
        self._redis: aioredis.Redis | None = None

        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._queues: dict[str, asyncio.Queue] = {}
        self._recent: dict[str, deque] = defaultdict(lambda: deque(maxlen=RECENT_PER_TOPIC))

        self._running = False
        self._tasks: list[asyncio.Task] = []

    @property
    def is_redis(self) -> bool:
        return self._redis is not None

    @property
    def is_running(self) -> bool:
        return self._running

    # ── 구독 / 발행 ──────────────────────────────────────

    async def subscribe(self, topic: str, handler: Handler):
        """토픽에 핸들러를 등록한다. start() 이전에 호출해야 소비자가 생긴다."""
        if topic not in TOPICS:
            logger.warning(f"알 수 없는 토픽 구독: {topic}")
        self._handlers[topic].append(handler)
        self._queues.setdefault(topic, asyncio.Queue(maxsize=QUEUE_MAXSIZE))
        logger.debug(f"구독 등록: {topic} → {handler.__qualname__}")

    async def publish(self, topic: str, data: dict):
        """이벤트를 토픽에 발행한다."""
        event = {
            "topic": topic,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        self._recent[topic].append(event)

        if self._redis is not None:
            try:
                await self._redis.xadd(topic, _encode(event), maxlen=STREAM_MAXLEN)
                return
            except aioredis.RedisError as e:
                logger.error(f"Redis publish 실패, 인메모리로 전달 ({topic}): {e}")
        self._put_local(topic, event)

    def _put_local(self, topic: str, event: dict):
        """인메모리 큐에 넣는다. 가득 차면 가장 오래된 이벤트를 버린다."""
        queue = self._queues.get(topic)
        if queue is None:
            return
        if queue.full():
            queue.get_nowait()
            logger.warning(f"인메모리 큐 포화: 오래된 이벤트 폐기: {topic}")
        queue.put_nowait(event)

    def get_recent(self, topic: str, count: int = 10) -> list[dict]:
        """최근 발행 이벤트 (오래된 순)"""
        return list(self._recent.get(topic, ()))[-count:]

    # ── 소비자 ────────────────────────────────────────────

    async def _dispatch(self, topic: str, data: dict):
        for handler in self._handlers.get(topic, []):
            try:
                await handler(topic, data)
            except Exception as e:
                logger.error(f"핸들러 에러 ({topic}, {handler.__qualname__}): {e}")

    async def _consume_local(self, topic: str):
        queue = self._queues[topic]
        while self._running:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            await self._dispatch(topic, event["data"])

    async def _consume_stream(self, topic: str):
        last_id = "$"  # 시작 이후 메시지만
        while self._running:
            try:
                results = await self._redis.xread({topic: last_id}, count=10, block=1000)
            except aioredis.RedisError as e:
                logger.error(f"Redis 소비자 에러 ({topic}): {e}")
                await asyncio.sleep(1.0)
                continue
            for _stream, messages in results:
                for message_id, fields in messages:
                    last_id = message_id
                    await self._dispatch(topic, _decode(fields)["data"])

    # ── 수명 주기 ────────────────────────────────────────

    async def _connect_redis(self):
        client = aioredis.from_url(self._redis_url, decode_responses=True)
        try:
            await client.ping()
        except (aioredis.RedisError, OSError) as e:
            logger.warning(f"Redis 연결 실패, 인메모리 모드로 동작: {e}")
            await client.aclose()
            return
        self._redis = client
        logger.info(f"Redis 연결 성공: {self._redis_url}")

    async def start(self):
        """구독된 토픽마다 소비자 태스크를 만든다."""
        if self._try_redis:
            await self._connect_redis()
        self._running = True

        consume = self._consume_stream if self._redis is not None else self._consume_local
        for topic in self._handlers:
            self._tasks.append(asyncio.create_task(consume(topic), name=f"consumer-{topic}"))

        logger.info(
            f"AsyncEventBus 시작: 소비자 {len(self._tasks)}개 "
            f"({'Redis' if self._redis is not None else '인메모리'})"
        )

    async def stop(self):
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        logger.info("AsyncEventBus 중지 완료")


# 앱 전역 이벤트 버스 (main.py lifespan에서 설정)
_event_bus: AsyncEventBus | None = None


def set_event_bus(bus: AsyncEventBus | None):
    global _event_bus
    _event_bus = bus


def get_event_bus() -> AsyncEventBus | None:
    return _event_bus


async def publish_event(topic: str, data: dict):
    """
    전역 버스로 이벤트 발행. 버스가 없거나 발행에 실패해도 요청 결과에는 영향을 주지 않는다.
    FastAPI BackgroundTasks에서 커밋 이후에 호출된다.
    """
    if _event_bus is None:
        logger.debug(f"이벤트 버스 미설정: 발행 생략: {topic}")
        return
    try:
        await _event_bus.publish(topic, data)
    except Exception as e:
        logger.error(f"이벤트 발행 실패 ({topic}): {e}")


async def publish_events(events: list[tuple[str, dict]]):
    """여러 이벤트를 순서대로 발행"""
    for topic, data in events:
        await publish_event(topic, data)
