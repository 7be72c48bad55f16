"""Favorites: products and categories bookmarked by a user"""
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from shop_service.exceptions import (
    AlreadyExists,
    CategoryNotFound,
    FavoriteNotFound,
    PersistenceError,
    ProductNotFound,
)
from shop_service.models.product import Category, Product
from shop_service.models.user import Favorite, FavoriteItemType
from shop_service.models.schemas import FavoriteCreate
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class FavoriteService:

    @staticmethod
    def _ensure_item(db: Session, item_id: int, item_type: FavoriteItemType):
        if item_type == FavoriteItemType.PRODUCT:
            product = db.get(Product, item_id)
            if product is None or product.deleted_at is not None:
                raise ProductNotFound(item_id)
        elif db.get(Category, item_id) is None:
            raise CategoryNotFound(item_id)

    @staticmethod
    def _find(db: Session, user_id: int, item_id: int, item_type: FavoriteItemType) -> Optional[Favorite]:
        return db.scalars(
            select(Favorite).where(
                Favorite.user_id == user_id,
                Favorite.item_id == item_id,
                Favorite.item_type == item_type
            )
        ).first()

    @staticmethod
    def add_favorite(db: Session, user_id: int, favorite_data: FavoriteCreate) -> Favorite:
        FavoriteService._ensure_item(db, favorite_data.item_id, favorite_data.item_type)

        if FavoriteService._find(db, user_id, favorite_data.item_id, favorite_data.item_type):
            raise AlreadyExists("item already in favorites")

        favorite = Favorite(user_id=user_id, item_id=favorite_data.item_id, item_type=favorite_data.item_type)
        db.add(favorite)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise AlreadyExists("item already in favorites") from e
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("failed to add favorite") from e
        db.refresh(favorite)

        logger.info(f"User {user_id} added {favorite.item_type.value} {favorite.item_id} to favorites")
        return favorite

    @staticmethod
    def get_favorites(db: Session, user_id: int, item_type: Optional[FavoriteItemType] = None) -> List[Favorite]:
        query = select(Favorite).where(Favorite.user_id == user_id)
        if item_type is not None:
            query = query.where(Favorite.item_type == item_type)
        return list(db.scalars(query.order_by(Favorite.created_at.desc(), Favorite.id.desc())).all())

    @staticmethod
    def remove_favorite(db: Session, user_id: int, favorite_id: int):
        """Delete one of the user's favorites; other users' favorites are not found"""
        favorite = db.scalars(
            select(Favorite).where(Favorite.id == favorite_id, Favorite.user_id == user_id)
        ).first()
        if favorite is None:
            raise FavoriteNotFound(favorite_id)

        db.delete(favorite)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceError("failed to remove favorite") from e

    @staticmethod
    def is_favorite(db: Session, user_id: int, item_id: int, item_type: FavoriteItemType) -> bool:
        return FavoriteService._find(db, user_id, item_id, item_type) is not None
