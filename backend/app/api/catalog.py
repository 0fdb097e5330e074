"""
카테고리 / 제품 API
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.catalog import (
    CategoryCreate, CategoryResponse, CategoryTreeNode, CategoryUpdate,
    ProductBulkRequest, ProductBulkResult, ProductDetailResponse,
    ProductInventoryResponse, ProductResponse, ProductUpsert,
)
from app.schemas.common import (
    ApiResponse, MessageResponse, SearchRequest, SearchResponse, search_response,
)
from app.services import CategoryService, ProductService

categories_router = APIRouter(prefix="/api/categories", tags=["categories"])
products_router = APIRouter(prefix="/api/products", tags=["products"])


# ── 카테고리 ──────────────────────────────────────────

@categories_router.post("/search", response_model=SearchResponse[CategoryResponse])
def search_categories(body: SearchRequest, db: Session = Depends(get_db)):
    page = CategoryService(db).search(body.to_params())
    return search_response(page, CategoryResponse)


@categories_router.get("/tree", response_model=ApiResponse[list[CategoryTreeNode]])
def get_category_tree(db: Session = Depends(get_db)):
    """루트부터 전체 카테고리 트리"""
    nodes = CategoryService(db).tree()
    return {"data": [CategoryTreeNode.from_node(node) for node in nodes]}


@categories_router.get("/{category_id}/subcategories", response_model=ApiResponse[list[CategoryResponse]])
def get_subcategories(category_id: int, db: Session = Depends(get_db)):
    return {"data": CategoryService(db).subcategories(category_id)}


@categories_router.post("/{category_id}/products", response_model=SearchResponse[ProductResponse])
def search_category_products(category_id: int, body: SearchRequest, db: Session = Depends(get_db)):
    page = CategoryService(db).products(category_id, body.to_params())
    return search_response(page, ProductResponse)


@categories_router.get("/{category_id}", response_model=ApiResponse[CategoryResponse])
def get_category(category_id: int, db: Session = Depends(get_db)):
    return {"data": CategoryService(db).get(category_id)}


@categories_router.post("", response_model=ApiResponse[CategoryResponse], status_code=201)
def create_category(body: CategoryCreate, db: Session = Depends(get_db)):
    return {"data": CategoryService(db).create(body.model_dump())}


@categories_router.put("/{category_id}", response_model=ApiResponse[CategoryResponse])
def update_category(category_id: int, body: CategoryUpdate, db: Session = Depends(get_db)):
    return {"data": CategoryService(db).update(category_id, body.model_dump(exclude_unset=True))}


@categories_router.delete("/{category_id}", response_model=ApiResponse[MessageResponse])
def delete_category(category_id: int, db: Session = Depends(get_db)):
    CategoryService(db).delete(category_id)
    return {"data": {"message": "Category deleted successfully"}}


# ── 제품 ──────────────────────────────────────────────

@products_router.post("/search", response_model=SearchResponse[ProductResponse])
def search_products(body: SearchRequest, db: Session = Depends(get_db)):
    page = ProductService(db).search(body.to_params())
    return search_response(page, ProductResponse)


@products_router.post("/low-stock", response_model=SearchResponse[ProductResponse])
def search_low_stock_products(body: SearchRequest, db: Session = Depends(get_db)):
    """전체 창고 가용 재고 합계가 재주문점(또는 filters.threshold) 이하인 활성 제품"""
    page = ProductService(db).search_low_stock(body.to_params())
    return search_response(page, ProductResponse)


@products_router.post("/category/{category_id}", response_model=SearchResponse[ProductResponse])
def search_products_by_category(category_id: int, body: SearchRequest, db: Session = Depends(get_db)):
    page = ProductService(db).search_by_category(category_id, body.to_params())
    return search_response(page, ProductResponse)


@products_router.post("/bulk-update", response_model=ApiResponse[list[ProductBulkResult]])
def bulk_update_products(body: ProductBulkRequest, db: Session = Depends(get_db)):
    results = ProductService(db).bulk_update(
        [(item.id, item.data.model_dump(exclude_unset=True)) for item in body.updates]
    )
    return {"data": [
        {"id": r.id, "success": r.success, "data": r.product, "error": r.error}
        for r in results
    ]}


@products_router.get("/{product_id}/inventory", response_model=ApiResponse[ProductInventoryResponse])
def get_product_inventory(product_id: int, db: Session = Depends(get_db)):
    """제품의 창고별 재고와 합계"""
    return {"data": ProductService(db).inventory(product_id)}


@products_router.get("/{product_id}", response_model=ApiResponse[ProductDetailResponse])
def get_product(product_id: int, db: Session = Depends(get_db)):
    service = ProductService(db)
    product = service.get(product_id)
    detail = ProductDetailResponse.model_validate(
        {**ProductResponse.model_validate(product).model_dump(), "totals": service.totals(product_id)}
    )
    return {"data": detail}


@products_router.post("", response_model=ApiResponse[ProductResponse], status_code=201)
def create_product(body: ProductUpsert, db: Session = Depends(get_db)):
    return {"data": ProductService(db).upsert(body.model_dump(exclude_unset=True))}


@products_router.put("/{product_id}", response_model=ApiResponse[ProductResponse])
def update_product(product_id: int, body: ProductUpsert, db: Session = Depends(get_db)):
    return {"data": ProductService(db).upsert(body.model_dump(exclude_unset=True), product_id)}


@products_router.delete("/{product_id}", response_model=ApiResponse[MessageResponse])
def delete_product(product_id: int, db: Session = Depends(get_db)):
    ProductService(db).delete(product_id)
    return {"data": {"message": "Product deleted successfully"}}
