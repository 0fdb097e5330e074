"""
Category Service — 자기 참조 계층 구조의 제품 분류
"""

import logging
from dataclasses import dataclass, field

from app.exceptions import NotFoundError, ServiceError
from app.models import Category, Product
from app.services.base import BaseService
from app.services.search import Page, SearchParams, paginate, parse_bool, text_search

logger = logging.getLogger(__name__)

CATEGORY_FIELDS = ("name", "description", "parent_id", "is_recyclable")

SORT_COLUMNS = {
    "name": Category.name,
    "createdAt": Category.created_at,
    "updatedAt": Category.updated_at,
}


@dataclass
class CategoryNode:
    category: Category
    children: list["CategoryNode"] = field(default_factory=list)


class CategoryService(BaseService):
    """카테고리 서비스"""

    def search(self, params: SearchParams) -> Page:
        query = text_search(
            self.db.query(Category), params.search, Category.name, Category.description
        )
        filters = params.filters
        if "parentId" in filters:
            parent_id = filters["parentId"]
            if parent_id is None or parent_id == "null":
                query = query.filter(Category.parent_id.is_(None))
            else:
                query = query.filter(Category.parent_id == int(parent_id))
        if filters.get("isRecyclable") is not None:
            query = query.filter(Category.is_recyclable.is_(parse_bool(filters["isRecyclable"])))
        return paginate(query, params, SORT_COLUMNS, ("name", "asc"))

    def get(self, category_id: int) -> Category:
        return self._get_or_404(Category, category_id, "Category not found")

    def tree(self) -> list[CategoryNode]:
        """루트 카테고리부터 하위 트리 구성 (이름순)"""
        categories = self.db.query(Category).order_by(Category.name).all()
        by_parent: dict[int | None, list[Category]] = {}
        for category in categories:
            by_parent.setdefault(category.parent_id, []).append(category)

        def build(parent_id):
            return [
                CategoryNode(category=c, children=build(c.id))
                for c in by_parent.get(parent_id, [])
            ]

        return build(None)

    def subcategories(self, parent_id: int) -> list[Category]:
        self.get(parent_id)
        return (
            self.db.query(Category)
            .filter(Category.parent_id == parent_id)
            .order_by(Category.name)
            .all()
        )

    def products(self, category_id: int, params: SearchParams) -> Page:
        """카테고리 소속 제품 검색"""
        self.get(category_id)
        query = text_search(
            self.db.query(Product).filter(Product.category_id == category_id),
            params.search, Product.name, Product.sku, Product.description,
        )
        if params.filters.get("isActive") is not None:
            query = query.filter(Product.is_active.is_(parse_bool(params.filters["isActive"])))
        sort_columns = {"name": Product.name, "sku": Product.sku, "createdAt": Product.created_at}
        return paginate(query, params, sort_columns, ("name", "asc"))

    def create(self, data: dict) -> Category:
        name = (data.get("name") or "").strip()
        if not name:
            raise ServiceError("Category name is required")

        with self.atomic():
            if self.db.query(Category).filter(Category.name == name).first():
                raise ServiceError(f'Category with name "{name}" already exists')
            parent_id = data.get("parent_id")
            if parent_id and self.db.get(Category, parent_id) is None:
                raise NotFoundError("Parent category not found")
            category = Category(
                name=name,
                description=data.get("description"),
                parent_id=parent_id,
                is_recyclable=bool(data.get("is_recyclable", False)),
            )
            self.db.add(category)

        self.db.refresh(category)
        logger.info(f"카테고리 생성: {category.name}")
        return category

    def update(self, category_id: int, data: dict) -> Category:
        with self.atomic():
            category = self.get(category_id)

            if "parent_id" in data and data["parent_id"]:
                self._check_parent(category_id, data["parent_id"])

            if "name" in data:
                name = (data["name"] or "").strip()
                if not name:
                    raise ServiceError("Category name is required")
                if name != category.name:
                    if self.db.query(Category).filter(Category.name == name).first():
                        raise ServiceError(f'Category with name "{name}" already exists')
                data = {**data, "name": name}

            for key, value in data.items():
                if key in CATEGORY_FIELDS:
                    setattr(category, key, value)

        self.db.refresh(category)
        logger.info(f"카테고리 수정: {category.name}")
        return category

    def _check_parent(self, category_id: int, parent_id: int):
        """새 부모에서 루트까지 거슬러 올라가며 순환 참조 검사"""
        if parent_id == category_id:
            raise ServiceError("Category cannot be its own parent")
        if self.db.get(Category, parent_id) is None:
            raise NotFoundError("Parent category not found")

        visited = set()
        current = parent_id
        while current is not None:
            if current == category_id or current in visited:
                raise ServiceError("Circular reference detected")
            visited.add(current)
            current = self.db.get(Category, current).parent_id

    def delete(self, category_id: int) -> None:
        with self.atomic():
            category = self.get(category_id)
            if self.db.query(Product).filter(Product.category_id == category_id).count():
                raise ServiceError(
                    "Cannot delete category with products. Move or delete products first."
                )
            if self.db.query(Category).filter(Category.parent_id == category_id).count():
                raise ServiceError(
                    "Cannot delete category with subcategories. Delete or move subcategories first."
                )
            name = category.name
            self.db.delete(category)
        logger.info(f"카테고리 삭제: {name}")
