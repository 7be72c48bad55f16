"""Favorites of the calling user"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from shop_service.api.dependencies import get_current_user
from shop_service.db.database import get_db
from shop_service.models.schemas import FavoriteCheckResponse, FavoriteCreate, FavoriteResponse, MessageResponse
from shop_service.models.user import FavoriteItemType, User
from shop_service.services.favorite_service import FavoriteService
from typing import List, Optional

router = APIRouter(tags=["favorites"])


@router.post("/favorites", response_model=FavoriteResponse, status_code=status.HTTP_201_CREATED)
def add_favorite(
    favorite: FavoriteCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return FavoriteService.add_favorite(db, user.id, favorite)


@router.get("/favorites", response_model=List[FavoriteResponse])
def list_favorites(
    item_type: Optional[FavoriteItemType] = Query(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return FavoriteService.get_favorites(db, user.id, item_type)


# Declared before /favorites/{favorite_id} so "check" is not parsed as an id
@router.get("/favorites/check", response_model=FavoriteCheckResponse)
def check_favorite(
    item_id: int = Query(..., gt=0),
    item_type: FavoriteItemType = Query(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return FavoriteCheckResponse(
        item_id=item_id,
        item_type=item_type,
        is_favorite=FavoriteService.is_favorite(db, user.id, item_id, item_type)
    )


@router.delete("/favorites/{favorite_id}", response_model=MessageResponse)
def remove_favorite(favorite_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    FavoriteService.remove_favorite(db, user.id, favorite_id)
    return MessageResponse(message="favorite removed")
