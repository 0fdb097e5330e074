"""
감사 로그 기록기 — 재고에 영향을 주는 변경을 audit_logs 테이블에 기록한다.
- 호출한 서비스와 같은 DB 세션/트랜잭션에 추가된다 (커밋은 호출자 책임)
"""

import logging

from sqlalchemy.orm import Session

from app.models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: int | None,
    user_id: int | None = None,
    old_values: dict | None = None,
    new_values: dict | None = None,
) -> AuditLog:
    """감사 로그 1건을 세션에 추가하고 반환한다."""
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_values=old_values,
        new_values=new_values,
    )
    db.add(entry)
    logger.debug(f"[Audit] {entity_type}#{entity_id} {action} (user={user_id})")
    return entry
