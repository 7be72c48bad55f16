"""Public catalog routes: categories, products and search"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from shop_service.api.dependencies import get_optional_user
from shop_service.db.database import get_db
from shop_service.models.schemas import (
    CategoryResponse,
    ProductListResponse,
    ProductResponse,
    ProductSearchParams,
    ProductSearchResponse,
    ProductSort,
)
from shop_service.models.user import User
from shop_service.services.category_service import CategoryService
from shop_service.services.product_service import ProductService
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog"])


@router.get("/categories", response_model=List[CategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    return CategoryService.get_categories(db)


@router.get("/categories/{category_id}", response_model=CategoryResponse)
def get_category(category_id: int, db: Session = Depends(get_db)):
    return CategoryService.get_category(db, category_id)


@router.get("/products", response_model=ProductListResponse)
def list_products(
    skip: int = Query(0, ge=0, description="Number of items to skip"),
    limit: int = Query(20, ge=1, le=100, description="Max items to return"),
    category_id: Optional[int] = Query(None, description="Filter by category"),
    db: Session = Depends(get_db)
):
    """List products with pagination"""
    products, total = ProductService.get_products(db, skip=skip, limit=limit, category_id=category_id)

    return ProductListResponse(
        total=total,
        products=[ProductResponse.model_validate(p) for p in products],
        page=skip // limit + 1,
        page_size=limit
    )


@router.get("/products/search", response_model=ProductSearchResponse)
def search_products(
    title: Optional[str] = Query(None, description="Case-insensitive title substring"),
    category_id: Optional[int] = Query(None),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    sort_by: Optional[ProductSort] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """
    Search products

    Without ``sort_by`` results are ordered by popularity, then by title when
    a title is given or by newest first otherwise.
    """
    params = ProductSearchParams(
        title=title,
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        limit=limit,
        offset=offset
    )
    products, total = ProductService.search_products(db, params)

    ProductService.log_search(
        db,
        user_id=user.id if user else None,
        query=title,
        filters=params.model_dump(mode="json", exclude={"title", "limit", "offset"}, exclude_none=True),
        results=total
    )

    return ProductSearchResponse(
        products=[ProductResponse.model_validate(p) for p in products],
        total=total,
        limit=limit,
        offset=offset,
        has_more=offset + len(products) < total
    )


@router.get("/products/{product_id}", response_model=ProductResponse)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return ProductService.get_product(db, product_id)
