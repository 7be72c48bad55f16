"""Category business logic"""
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from shop_service.exceptions import AlreadyExists, CategoryNotFound, PersistenceError, ProductInUse
from shop_service.models.product import Category, Product
from shop_service.models.schemas import CategoryCreate, CategoryUpdate
from typing import List
import logging

logger = logging.getLogger(__name__)


class CategoryService:

    @staticmethod
    def _name_taken(db: Session, name: str, exclude_id: int = None) -> bool:
        query = select(Category.id).where(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        return db.scalar(query) is not None

    @staticmethod
    def _commit(db: Session, name: str, action: str):
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise AlreadyExists(f"category {name} already exists") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError(f"failed to {action} category") from e

    @staticmethod
    def get_categories(db: Session) -> List[Category]:
        return list(db.scalars(select(Category).order_by(Category.name)).all())

    @staticmethod
    def get_category(db: Session, category_id: int) -> Category:
        category = db.get(Category, category_id)
        if category is None:
            raise CategoryNotFound(category_id)
        return category

    @staticmethod
    def create_category(db: Session, category_data: CategoryCreate) -> Category:
        """Create a category with a unique (case-insensitive) name"""
        if CategoryService._name_taken(db, category_data.name):
            raise AlreadyExists(f"category {category_data.name} already exists")

        category = Category(name=category_data.name, description=category_data.description)
        db.add(category)
        CategoryService._commit(db, category_data.name, "create")
        db.refresh(category)

        logger.info(f"Created category {category.id}: {category.name}")
        return category

    @staticmethod
    def update_category(db: Session, category_id: int, category_data: CategoryUpdate) -> Category:
        category = CategoryService.get_category(db, category_id)
        update_data = category_data.model_dump(exclude_unset=True, exclude_none=True)

        if "name" in update_data and CategoryService._name_taken(db, update_data["name"], exclude_id=category_id):
            raise AlreadyExists(f"category {update_data['name']} already exists")

        for field, value in update_data.items():
            setattr(category, field, value)

        CategoryService._commit(db, category.name, "update")
        db.refresh(category)
        return category

    @staticmethod
    def delete_category(db: Session, category_id: int):
        """Delete a category no product row refers to"""
        category = CategoryService.get_category(db, category_id)

        # Soft-deleted products still hold the foreign key
        in_use = db.scalar(
            select(func.count()).select_from(Product).where(Product.category_id == category_id)
        )
        if in_use:
            raise ProductInUse("cannot delete category with products")

        db.delete(category)
        CategoryService._commit(db, category.name, "delete")
        logger.info(f"Deleted category {category_id}")
