"""Customer order routes"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from shop_service.api.dependencies import get_current_user
from shop_service.db.database import get_db
from shop_service.models.schemas import OrderCreate, OrderResponse, OrderUpdate
from shop_service.models.user import User
from shop_service.services.order_service import OrderService
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    order: OrderCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Create a new order

    This endpoint:
    1. Validates products exist
    2. Checks stock availability
    3. Freezes unit prices and calculates total amount
    4. Creates the order in ``pending``

    Stock is decremented when an administrator confirms the order.
    """
    logger.info(f"Creating order for user {user.id}")
    return OrderService.create_order(db, user.id, order)


@router.get("/orders", response_model=List[OrderResponse])
def list_my_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Orders of the calling user, newest first"""
    return OrderService.get_user_orders(db, user.id)


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Get one of the caller's orders; other users' orders are not found"""
    return OrderService.get_order(db, order_id, user_id=user.id)


@router.put("/orders/{order_id}", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    status_update: OrderUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update order status; customers may only cancel"""
    return OrderService.update_order_status(db, order_id, user.id, status_update.status)


@router.post("/orders/{order_id}/pay", response_model=OrderResponse)
def pay_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return OrderService.pay_order(db, order_id, user.id)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(order_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return OrderService.cancel_order(db, order_id, user_id=user.id)
