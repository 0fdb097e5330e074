"""
재고 상태 전이 규칙 — quantity / reserved / available 카운터 계산.

트랜잭션 적용·역적용, 이송 출고·입고, 주문 예약·해제를
DB와 무관한 순수 함수로 정의한다. 서비스 계층은 결과를 inventory 행에 기록한다.
"""

from typing import NamedTuple

from app.exceptions import ServiceError
from app.models.inventory import ReorderStatus
from app.models.transaction import TransactionType

# 재고를 늘리는 유형 (재고 행이 없으면 새로 생성)
INBOUND_TYPES = frozenset({TransactionType.STOCK_IN, TransactionType.RETURN})

# 재고를 줄이는 유형 (available >= q 확인 필요)
OUTBOUND_TYPES = frozenset({
    TransactionType.STOCK_OUT,
    TransactionType.WASTE,
    TransactionType.RECYCLING,
})


class StockLevel(NamedTuple):
    """inventory 행의 세 카운터"""
    quantity: int
    reserved: int
    available: int

    @classmethod
    def of(cls, inventory) -> "StockLevel":
        return cls(inventory.quantity, inventory.reserved, inventory.available)


EMPTY = StockLevel(0, 0, 0)


def apply_transaction(level: StockLevel, tx_type: TransactionType, qty: int) -> StockLevel:
    """트랜잭션 1건(품목 1개)을 재고에 적용한 결과를 반환한다."""
    if tx_type in INBOUND_TYPES:
        return level._replace(
            quantity=level.quantity + qty,
            available=level.available + qty,
        )
    if tx_type in OUTBOUND_TYPES:
        if level.available < qty:
            raise ServiceError(
                f"Insufficient available stock: {level.available} < {qty}"
            )
        return level._replace(
            quantity=level.quantity - qty,
            available=level.available - qty,
        )
    if tx_type == TransactionType.ADJUSTMENT:
        # 절대값 설정, available은 0 미만으로 내려가지 않는다
        return level._replace(
            quantity=qty,
            available=max(0, qty - level.reserved),
        )
    raise ServiceError(f"Unsupported transaction type: {tx_type}")


def reverse_transaction(
    level: StockLevel,
    tx_type: TransactionType,
    qty: int,
    previous_qty: int | None = None,
) -> StockLevel:
    """
    apply_transaction의 역연산.
    ADJUSTMENT는 생성 시점에 기록된 previous_qty로 복원한다.
    결과 카운터가 음수가 되면 거부한다 (이미 소비된 입고분 등).
    """
    if tx_type in INBOUND_TYPES:
        result = level._replace(
            quantity=level.quantity - qty,
            available=level.available - qty,
        )
    elif tx_type in OUTBOUND_TYPES:
        result = level._replace(
            quantity=level.quantity + qty,
            available=level.available + qty,
        )
    elif tx_type == TransactionType.ADJUSTMENT:
        if previous_qty is None:
            return level
        result = level._replace(
            quantity=previous_qty,
            available=max(0, previous_qty - level.reserved),
        )
    else:
        raise ServiceError(f"Unsupported transaction type: {tx_type}")

    if result.quantity < 0 or result.available < 0:
        raise ServiceError(
            f"Reversal would leave negative stock "
            f"(quantity={result.quantity}, available={result.available})"
        )
    return result


def ship_out(level: StockLevel, qty: int) -> StockLevel:
    """이송 완료 시 출발 창고 차감"""
    if level.available < qty:
        raise ServiceError(
            f"Insufficient available stock: {level.available} < {qty}"
        )
    return level._replace(
        quantity=level.quantity - qty,
        available=level.available - qty,
    )


def receive(level: StockLevel, qty: int) -> StockLevel:
    """이송 완료 시 도착 창고 가산"""
    return level._replace(
        quantity=level.quantity + qty,
        available=level.available + qty,
    )


def reserve(level: StockLevel, qty: int) -> StockLevel:
    """주문 생성 시 예약"""
    if level.available < qty:
        raise ServiceError(
            f"Insufficient available stock: {level.available} < {qty}"
        )
    return level._replace(
        reserved=level.reserved + qty,
        available=level.available - qty,
    )


def release(level: StockLevel, qty: int) -> StockLevel:
    """주문 취소 시 예약 해제"""
    released = min(qty, level.reserved)
    return level._replace(
        reserved=level.reserved - released,
        available=level.available + released,
    )


def consume_reservation(level: StockLevel, qty: int) -> StockLevel:
    """주문 출하 시 예약분을 실제 재고에서 차감 (available은 변하지 않음)"""
    consumed = min(qty, level.reserved)
    return level._replace(
        quantity=level.quantity - consumed,
        reserved=level.reserved - consumed,
    )


def restock(level: StockLevel, qty: int) -> StockLevel:
    """주문 반품 시 재입고"""
    return receive(level, qty)


def reorder_status(quantity: int, min_stock_level: int, reorder_point: int) -> ReorderStatus:
    """재주문 상태: 최소 재고 이하 BELOW_MIN, 재주문점 이하 BELOW_REORDER"""
    if quantity <= min_stock_level:
        return ReorderStatus.BELOW_MIN
    if quantity <= reorder_point:
        return ReorderStatus.BELOW_REORDER
    return ReorderStatus.OK
