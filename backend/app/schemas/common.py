"""
공통 Pydantic 스키마
- JSON 키는 camelCase (alias), 파이썬 속성은 snake_case
- 응답 봉투: {success, data} / {success, data, pagination} / {success, error}
"""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.config import settings
from app.services.search import Page, SearchParams

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SortSpec(CamelModel):
    field: str | None = None
    order: str = "desc"


class SearchRequest(CamelModel):
    search: str = ""
    current_page: int = Field(1, ge=1)
    limit: int = Field(default_factory=lambda: settings.DEFAULT_PAGE_LIMIT, ge=1)
    filters: dict[str, Any] = Field(default_factory=dict)
    sort: SortSpec | None = None

    def to_params(self) -> SearchParams:
        sort = self.sort or SortSpec()
        return SearchParams(
            search=self.search or "",
            current_page=self.current_page,
            limit=self.limit,
            filters={k: v for k, v in self.filters.items() if v is not None and v != ""},
            sort_field=sort.field,
            sort_order=sort.order,
        )


class Pagination(CamelModel):
    current_page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def from_page(cls, page: Page) -> "Pagination":
        return cls(
            current_page=page.current_page,
            limit=page.limit,
            total=page.total,
            total_pages=page.total_pages,
            has_next=page.has_next,
            has_prev=page.has_prev,
        )


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    data: T


class SearchResponse(CamelModel, Generic[T]):
    success: bool = True
    data: list[T]
    pagination: Pagination


def search_response(page: Page, schema: type[BaseModel]) -> dict:
    """Page → {success, data, pagination} (response_model이 검증/직렬화)"""
    return {
        "success": True,
        "data": [schema.model_validate(item) for item in page.items],
        "pagination": Pagination.from_page(page),
    }


class ErrorResponse(CamelModel):
    success: bool = False
    error: str


class MessageResponse(CamelModel):
    message: str


class HealthResponse(CamelModel):
    status: str
    db_connected: bool
    redis_connected: bool
    event_bus_running: bool
    timestamp: datetime


class UserBrief(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str


class WarehouseBrief(CamelModel):
    id: int
    code: str
    name: str


class CategoryBrief(CamelModel):
    id: int
    name: str


class ProductBrief(CamelModel):
    id: int
    sku: str
    name: str
    unit: str
