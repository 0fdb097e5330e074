"""
검색/페이지네이션 공통 헬퍼
- 모든 검색 API가 {search, currentPage, limit, filters, sort} 요청을 받아
  {data, pagination} 응답을 만드는 동일한 흐름을 공유한다.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import asc, desc, or_
from sqlalchemy.orm import Query

from app.config import settings
from app.exceptions import ServiceError


@dataclass
class SearchParams:
    search: str = ""
    current_page: int = 1
    limit: int = settings.DEFAULT_PAGE_LIMIT
    filters: dict[str, Any] = field(default_factory=dict)
    sort_field: str | None = None
    sort_order: str = "desc"

    def with_filters(self, **extra) -> "SearchParams":
        """기존 필터에 고정 필터를 덧붙인 사본 (창고별/상태별 검색용)"""
        return SearchParams(
            search=self.search,
            current_page=self.current_page,
            limit=self.limit,
            filters={**self.filters, **extra},
            sort_field=self.sort_field,
            sort_order=self.sort_order,
        )


@dataclass
class Page:
    items: list
    current_page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.current_page * self.limit < self.total

    @property
    def has_prev(self) -> bool:
        return self.current_page > 1


LIKE_ESCAPE = "\\"


def like_pattern(text: str) -> str:
    """부분 일치 패턴. %, _ 는 문자 그대로 찾는다 (escape=LIKE_ESCAPE와 함께 사용)"""
    escaped = (
        text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def text_search(query: Query, search: str, *columns) -> Query:
    """대소문자 무시 부분 일치 검색 (OR)"""
    if not search:
        return query
    pattern = like_pattern(search.strip())
    return query.filter(or_(*(col.ilike(pattern, escape=LIKE_ESCAPE) for col in columns)))


def paginate(
    query: Query,
    params: SearchParams,
    sort_columns: dict[str, Any],
    default_sort: tuple[str, str],
) -> Page:
    """
    정렬 + 페이지네이션 적용 후 Page 반환.
    sort_columns에 없는 정렬 필드는 default_sort로 대체한다.
    """
    current_page = max(1, params.current_page)
    limit = min(max(1, params.limit), settings.MAX_PAGE_LIMIT)

    total = query.order_by(None).count()

    field_name, order = default_sort
    if params.sort_field in sort_columns:
        field_name, order = params.sort_field, params.sort_order
    column = sort_columns[field_name]
    direction = asc if str(order).lower() == "asc" else desc

    items = (
        query.order_by(direction(column))
        .offset((current_page - 1) * limit)
        .limit(limit)
        .all()
    )
    return Page(items=items, current_page=current_page, limit=limit, total=total)


def parse_datetime(value: Any, name: str) -> datetime:
    """필터 값(ISO 8601 문자열)을 datetime으로 변환"""
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ServiceError(f"Invalid date for filter {name}: {value}")


def parse_int(value: Any, name: str) -> int:
    """정수 필터 값 변환 (숫자가 아니면 400)"""
    if isinstance(value, bool):
        raise ServiceError(f"Invalid value for {name}: {value}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ServiceError(f"Invalid value for {name}: {value}")


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("true", "1", "yes")


def parse_enum(enum_cls, value: Any, name: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise ServiceError(f"Invalid value for {name}: {value}")
