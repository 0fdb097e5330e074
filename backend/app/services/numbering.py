"""
사람이 읽을 수 있는 일련번호 생성
- "SI-20260206-00001", "TRF-202602-00001", "ORD-20260206-00001" 형식
"""

from sqlalchemy import func
from sqlalchemy.orm import Session


def next_number(db: Session, column, scope_prefix: str, prefix: str, width: int = 5) -> str:
    """
    scope_prefix로 시작하는 기존 번호 중 최대값의 일련번호 + 1.
    count가 아닌 max 기반이므로 중간 삭제가 있어도 번호가 중복되지 않는다.
    """
    latest = (
        db.query(func.max(column))
        .filter(column.like(f"{scope_prefix}%"))
        .scalar()
    )
    seq = 1
    if latest:
        try:
            seq = int(latest.rsplit("-", 1)[-1]) + 1
        except ValueError:
            seq = 1
    return f"{prefix}-{seq:0{width}d}"
