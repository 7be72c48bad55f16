"""Product catalog business logic"""
from sqlalchemy import select, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from shop_service.exceptions import CategoryNotFound, InsufficientStock, PersistenceError, ProductInUse, ProductNotFound
from shop_service.models.order import OrderItem
from shop_service.models.product import Category, Product, SearchLog
from shop_service.models.schemas import ProductCreate, ProductUpdate, ProductSearchParams, ProductSort
from typing import List, Optional, Tuple
from datetime import datetime, timezone
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SORT_ORDERS = {
    ProductSort.PRICE_ASC: (Product.price.asc(),),
    ProductSort.PRICE_DESC: (Product.price.desc(),),
    ProductSort.POPULARITY_ASC: (Product.order_count.asc(),),
    ProductSort.POPULARITY_DESC: (Product.order_count.desc(),),
    ProductSort.CREATED_AT_ASC: (Product.created_at.asc(),),
    ProductSort.CREATED_AT_DESC: (Product.created_at.desc(),),
}


def _live_products():
    return select(Product).where(Product.deleted_at.is_(None))


class ProductService:
    """Product service for business logic"""

    @staticmethod
    def get_product(db: Session, product_id: int) -> Product:
        """Get product by ID"""
        with tracer.start_as_current_span("product_service.get_product") as span:
            span.set_attribute("product.id", product_id)
            product = db.scalars(_live_products().where(Product.id == product_id)).first()
            if product is None:
                raise ProductNotFound(product_id)
            return product

    @staticmethod
    def get_products(
        db: Session,
        skip: int = 0,
        limit: int = 20,
        category_id: Optional[int] = None
    ) -> Tuple[List[Product], int]:
        """Get list of products with pagination"""
        query = _live_products()

        if category_id is not None:
            query = query.where(Product.category_id == category_id)

        total = db.scalar(select(func.count()).select_from(query.subquery()))
        products = db.scalars(query.order_by(Product.id).offset(skip).limit(limit)).all()

        return list(products), total

    @staticmethod
    def _ensure_category(db: Session, category_id: int):
        if db.get(Category, category_id) is None:
            raise CategoryNotFound(category_id)

    @staticmethod
    def create_product(db: Session, product_data: ProductCreate) -> Product:
        """Create new product"""
        ProductService._ensure_category(db, product_data.category_id)

        product = Product(**product_data.model_dump())
        product.order_count = 0
        db.add(product)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("failed to create product") from e
        db.refresh(product)

        logger.info(f"Created product {product.id}: {product.title}")
        return product

    @staticmethod
    def update_product(db: Session, product_id: int, product_data: ProductUpdate) -> Product:
        """Update catalog fields of an existing product"""
        product = ProductService.get_product(db, product_id)

        update_data = product_data.model_dump(exclude_unset=True)
        if update_data.get("category_id") is not None:
            ProductService._ensure_category(db, update_data["category_id"])

        for field, value in update_data.items():
            if value is None and field != "extra_info":
                continue
            setattr(product, field, value)

        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("failed to update product") from e
        db.refresh(product)
        return product

    @staticmethod
    def adjust_stock(db: Session, product_id: int, delta: int) -> Product:
        """
        Add ``delta`` units to stock (negative removes units).

        Applied as one conditional update so it composes with concurrent
        order confirmations and can never drive stock below zero.
        """
        with tracer.start_as_current_span("product_service.adjust_stock") as span:
            span.set_attribute("product.id", product_id)
            span.set_attribute("stock.delta", delta)

            product = ProductService.get_product(db, product_id)
            try:
                result = db.execute(
                    update(Product)
                    .where(
                        Product.id == product_id,
                        Product.deleted_at.is_(None),
                        Product.stock + delta >= 0
                    )
                    .values(stock=Product.stock + delta)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    db.refresh(product)
                    raise InsufficientStock(product.title, product.stock, -delta)
                db.commit()
            except InsufficientStock:
                db.rollback()
                raise
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError("failed to adjust stock") from e

            db.refresh(product)
            logger.info(
                f"Adjusted stock of product {product_id} by {delta}",
                extra={"event": "stock_adjusted", "product_id": product_id, "delta": delta, "stock": product.stock}
            )
            return product

    @staticmethod
    def delete_product(db: Session, product_id: int):
        """Soft delete; refused while any order references the product"""
        product = ProductService.get_product(db, product_id)

        referenced = db.scalar(
            select(func.count()).select_from(OrderItem).where(OrderItem.product_id == product_id)
        )
        if referenced:
            raise ProductInUse("cannot delete product with existing orders")

        product.deleted_at = datetime.now(timezone.utc)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("failed to delete product") from e

        logger.info(f"Deleted product {product_id}")

    @staticmethod
    def search_products(db: Session, params: ProductSearchParams) -> Tuple[List[Product], int]:
        """Filter by title, category and price range, then sort and paginate"""
        with tracer.start_as_current_span("product_service.search_products") as span:
            query = _live_products()

            if params.title:
                span.set_attribute("search.title", params.title)
                query = query.where(Product.title.ilike(f"%{params.title}%"))
            if params.category_id is not None:
                query = query.where(Product.category_id == params.category_id)
            if params.min_price is not None:
                query = query.where(Product.price >= params.min_price)
            if params.max_price is not None:
                query = query.where(Product.price <= params.max_price)

            total = db.scalar(select(func.count()).select_from(query.subquery()))

            if params.sort_by is not None:
                order_by = SORT_ORDERS[params.sort_by]
            elif params.title:
                order_by = (Product.order_count.desc(), Product.title.asc())
            else:
                order_by = (Product.order_count.desc(), Product.created_at.desc())

            products = db.scalars(
                query.order_by(*order_by, Product.id).offset(params.offset).limit(params.limit)
            ).all()

            span.set_attribute("search.total", total)
            return list(products), total

    @staticmethod
    def log_search(db: Session, user_id: Optional[int], query: str, filters: dict, results: int):
        """Record a search for analytics; failures are logged and swallowed"""
        db.add(SearchLog(user_id=user_id, query=query or "", filters=filters, results=results))
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Failed to log search {query!r}: {e}")
