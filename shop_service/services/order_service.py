# shop_service/services/order_service.py
"""
Order lifecycle: creation, status transitions and the inventory side effects
of confirmation and cancellation.

Every operation that touches more than one row runs in the caller's session
as a single transaction and rolls back completely on any failure.
"""
from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from shop_service.exceptions import (
    ShopError,
    OrderNotFound,
    ProductNotFound,
    InsufficientStock,
    InvalidStatusTransition,
    PersistenceError,
)
from shop_service.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    STOCK_COMMITTED_STATUSES,
    can_transition,
)
from shop_service.models.product import Product
from shop_service.models.schemas import OrderCreate
from typing import Callable, List, Optional, Tuple
from collections import Counter
from opentelemetry import trace
import logging
import secrets
import time

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ORDER_NUMBER_PREFIX = "ORD"


def generate_order_number(user_id: int) -> str:
    """
    Build ``ORD-<unix seconds>-<user id>-<random suffix>``.

    The suffix keeps retried requests within the same second from colliding
    on the unique index.
    """
    return f"{ORDER_NUMBER_PREFIX}-{int(time.time())}-{user_id}-{secrets.token_hex(3).upper()}"


class OrderService:
    """Order service for business logic"""

    @staticmethod
    def create_order(db: Session, user_id: int, order_data: OrderCreate) -> Order:
        """
        Create new order with stock validation

        Process:
        1. Load every product (missing product fails the whole order)
        2. Check stock against the summed quantity per product
        3. Freeze unit prices and calculate total
        4. Persist order and items in one commit

        Stock is not reserved here; it is decremented on confirmation.
        """
        with tracer.start_as_current_span("order_service.create_order") as span:
            span.set_attribute("user.id", user_id)
            span.set_attribute("items.count", len(order_data.items))

            logger.info(f"Creating order for user {user_id} with {len(order_data.items)} items")

            try:
                order_items = []
                total_amount = 0.0
                requested = Counter()
                for item_data in order_data.items:
                    requested[item_data.product_id] += item_data.quantity

                for item_data in order_data.items:
                    product = db.scalars(
                        select(Product).where(
                            Product.id == item_data.product_id,
                            Product.deleted_at.is_(None)
                        )
                    ).first()
                    if product is None:
                        raise ProductNotFound(item_data.product_id)

                    if product.stock < requested[product.id]:
                        raise InsufficientStock(product.title, product.stock, requested[product.id])

                    price = product.price
                    total_amount += price * item_data.quantity

                    order_items.append(OrderItem(
                        product_id=product.id,
                        quantity=item_data.quantity,
                        price_at_moment=price
                    ))

                span.set_attribute("order.total_amount", total_amount)

                order = Order(
                    user_id=user_id,
                    order_number=generate_order_number(user_id),
                    status=OrderStatus.PENDING,
                    total_amount=total_amount,
                    items=order_items
                )
                db.add(order)
                db.commit()
            except ShopError as e:
                db.rollback()
                logger.warning(f"Order creation rejected for user {user_id}: {e.message}")
                raise
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to create order for user {user_id}: {e}")
                raise PersistenceError("failed to create order") from e

            db.refresh(order)

            span.set_attribute("order.id", order.id)
            logger.info(f"Order {order.id} ({order.order_number}) created successfully")

            return order

    @staticmethod
    def _find_order(
        db: Session,
        order_id: int,
        user_id: Optional[int] = None,
        for_update: bool = False
    ) -> Order:
        """Load a live order; ownership is part of the predicate when user_id is given"""
        query = select(Order).where(Order.id == order_id, Order.deleted_at.is_(None))
        if user_id is not None:
            query = query.where(Order.user_id == user_id)
        if for_update:
            query = query.with_for_update()

        order = db.scalars(query).first()
        if order is None:
            raise OrderNotFound(order_id)
        return order

    @staticmethod
    def get_order(db: Session, order_id: int, user_id: Optional[int] = None) -> Order:
        """Get order by ID"""
        with tracer.start_as_current_span("order_service.get_order") as span:
            span.set_attribute("order.id", order_id)
            return OrderService._find_order(db, order_id, user_id=user_id)

    @staticmethod
    def get_user_orders(db: Session, user_id: int) -> List[Order]:
        """Orders of one user, newest first"""
        with tracer.start_as_current_span("order_service.get_user_orders") as span:
            span.set_attribute("user.id", user_id)
            query = (
                select(Order)
                .where(Order.user_id == user_id, Order.deleted_at.is_(None))
                .order_by(Order.created_at.desc(), Order.id.desc())
            )
            return list(db.scalars(query).all())

    @staticmethod
    def get_all_orders(
        db: Session,
        skip: int = 0,
        limit: int = 20,
        status: Optional[OrderStatus] = None
    ) -> Tuple[List[Order], int]:
        """Get list of orders with filters"""
        with tracer.start_as_current_span("order_service.get_all_orders") as span:
            query = select(Order).where(Order.deleted_at.is_(None))

            if status:
                query = query.where(Order.status == status)
                span.set_attribute("filter.status", status.value)

            total = db.scalar(select(func.count()).select_from(query.subquery()))
            orders = db.scalars(
                query.order_by(Order.created_at.desc(), Order.id.desc()).offset(skip).limit(limit)
            ).all()

            span.set_attribute("orders.total", total)
            span.set_attribute("orders.returned", len(orders))

            return list(orders), total

    @staticmethod
    def _change_status(
        db: Session,
        order_id: int,
        target: OrderStatus,
        message: str,
        user_id: Optional[int] = None,
        side_effect: Optional[Callable[[Session, Order], None]] = None
    ) -> Order:
        """
        Move an order to ``target`` inside one transaction.

        ``side_effect`` runs after the status check and before the commit, so
        its writes and the status change succeed or fail together.
        """
        with tracer.start_as_current_span("order_service.change_status") as span:
            span.set_attribute("order.id", order_id)
            span.set_attribute("status.new", target.value)

            try:
                order = OrderService._find_order(db, order_id, user_id=user_id, for_update=True)
                old_status = order.status

                if not can_transition(old_status, target):
                    raise InvalidStatusTransition(old_status, target, message)

                if side_effect is not None:
                    side_effect(db, order)

                order.status = target
                db.commit()
            except ShopError as e:
                db.rollback()
                logger.warning(f"Order {order_id} -> {target.value} rejected: {e.message}")
                raise
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to update order {order_id} status: {e}")
                raise PersistenceError("failed to update order status") from e

            # Conditional updates bypass the identity map
            db.expire_all()
            db.refresh(order)

            span.set_attribute("status.old", old_status.value)
            logger.info(f"Order {order_id} status updated: {old_status.value} -> {target.value}")

            return order

    @staticmethod
    def _commit_inventory(db: Session, order: Order):
        """
        Decrement stock by each line quantity and bump order_count by one per line.

        The ``stock >= quantity`` guard re-validates availability at
        confirmation time, so pending orders cannot oversell.
        """
        for item in order.items:
            result = db.execute(
                update(Product)
                .where(Product.id == item.product_id, Product.stock >= item.quantity)
                .values(
                    stock=Product.stock - item.quantity,
                    order_count=Product.order_count + 1
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                product = db.get(Product, item.product_id)
                if product is None:
                    raise ProductNotFound(item.product_id)
                raise InsufficientStock(product.title, product.stock, item.quantity)

    @staticmethod
    def _restore_inventory(db: Session, order: Order):
        """Return stock taken at confirmation; order_count is left as is"""
        for item in order.items:
            db.execute(
                update(Product)
                .where(Product.id == item.product_id)
                .values(stock=Product.stock + item.quantity)
                .execution_options(synchronize_session=False)
            )
        logger.warning(
            f"Restoring stock for cancelled order {order.id}",
            extra={
                "event": "stock_restored",
                "order_id": order.id,
                "previous_status": order.status.value,
                "items": [{"product_id": i.product_id, "quantity": i.quantity} for i in order.items],
            }
        )

    @staticmethod
    def pay_order(db: Session, order_id: int, user_id: int) -> Order:
        """Mark an own pending order as paid"""
        return OrderService._change_status(
            db, order_id, OrderStatus.PAID,
            message="only pending orders can be paid",
            user_id=user_id
        )

    @staticmethod
    def confirm_order(db: Session, order_id: int) -> Order:
        """Confirm a paid order, committing its stock and popularity counters"""
        return OrderService._change_status(
            db, order_id, OrderStatus.CONFIRMED,
            message="order must be paid before confirmation",
            side_effect=OrderService._commit_inventory
        )

    @staticmethod
    def ship_order(db: Session, order_id: int) -> Order:
        return OrderService._change_status(
            db, order_id, OrderStatus.SHIPPED,
            message="order must be confirmed before shipping"
        )

    @staticmethod
    def deliver_order(db: Session, order_id: int) -> Order:
        return OrderService._change_status(
            db, order_id, OrderStatus.DELIVERED,
            message="order must be shipped before delivery"
        )

    @staticmethod
    def cancel_order(db: Session, order_id: int, user_id: Optional[int] = None) -> Order:
        """
        Cancel any non-terminal order.

        With ``user_id`` only that user's order is found (self-service);
        without it any order can be cancelled (admin). Orders cancelled after
        confirmation get their stock back.
        """
        def restore_if_committed(session: Session, order: Order):
            if order.status in STOCK_COMMITTED_STATUSES:
                OrderService._restore_inventory(session, order)

        return OrderService._change_status(
            db, order_id, OrderStatus.CANCELLED,
            message="order cannot be cancelled",
            user_id=user_id,
            side_effect=restore_if_committed
        )

    @staticmethod
    def update_order_status(db: Session, order_id: int, user_id: int, status: OrderStatus) -> Order:
        """User-facing status update: cancellation is the only allowed target"""
        OrderService._find_order(db, order_id, user_id=user_id)

        if status != OrderStatus.CANCELLED:
            raise InvalidStatusTransition(None, status, "users can only cancel orders")

        return OrderService.cancel_order(db, order_id, user_id=user_id)
